from __future__ import annotations
import re
from typing import Iterable, List, Tuple

from .candidates import Candidate

_run_re = re.compile(r"\d+|\D")

# Primary groups: punctuation and spaces, then digits, then letters
_PUNCT, _DIGIT, _LETTER = 0, 1, 2


def natural_key(label: str) -> Tuple[tuple, tuple, str]:
    """Collation key for labels, numeric-aware: "C-2" < "C1" < "c2" < "C10".

    Digit runs weigh as one number and sort below letters; separators sort
    below both. Case only decides labels that are otherwise equal, lowercase
    first. The raw label makes the order total ("01" vs "1").
    """
    primary = []
    for run in _run_re.findall(label):
        if run.isdecimal():
            primary.append((_DIGIT, int(run)))
        elif run.isalpha():
            primary.append((_LETTER, run.casefold()))
        else:
            primary.append((_PUNCT, run))
    case = tuple(1 if ch.isupper() else 0 for ch in label if ch.isalpha())
    return tuple(primary), case, label


def sort_candidates(candidates: Iterable[Candidate]) -> List[Candidate]:
    return sorted(candidates, key=lambda c: natural_key(c.label))

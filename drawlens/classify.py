from __future__ import annotations
import logging
import math
import re
from typing import Iterable, List

from .candidates import Candidate, Kind, Mode, PositionedToken
from .errors import NoTextFound

logger = logging.getLogger("drawlens.classify")

# Label patterns, matched anywhere in the trimmed token text
FOOTING_RX = re.compile(r"(?:F|P)-?\d+", re.I)
COLUMN_RX = re.compile(r"(?:C|SC)-?\d+", re.I)
BEAM_RX = re.compile(r"(?:[PRSG]?B-?\d+[A-Z]?)|(?:RB\d+)|(?:SB\d+)", re.I)


def round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def classify(tokens: Iterable[PositionedToken], mode: Mode | str) -> List[Candidate]:
    """Turn positioned tokens into typed candidates for one extraction mode.

    In Beam mode, tokens matching the column pattern (and not the beam pattern)
    are emitted as ``ref-column-<n>`` candidates so the resolver has supports
    to snap to; they are not meant to be kept as output.

    Raises NoTextFound when no token has non-empty text after trimming.
    """
    mode = Mode.coerce(mode)
    out: List[Candidate] = []
    count = 0
    seen_text = False

    for tok in tokens:
        text = (tok.text or "").strip()
        if not text:
            continue
        seen_text = True
        x, y = round_half_up(tok.x), round_half_up(tok.y)

        if mode is Mode.FOOTING:
            if FOOTING_RX.search(text):
                out.append(Candidate(id=f"footing-{count}", kind=Kind.FOOTING, label=text, x=x, y=y))
                count += 1
        elif mode is Mode.COLUMN:
            if COLUMN_RX.search(text):
                out.append(Candidate(id=f"column-{count}", kind=Kind.COLUMN, label=text, x=x, y=y))
                count += 1
        else:
            if BEAM_RX.search(text):
                out.append(Candidate(id=f"beam-{count}", kind=Kind.BEAM, label=text, x=x, y=y, connected=False))
                count += 1
            elif COLUMN_RX.search(text):
                out.append(Candidate(id=f"ref-column-{count}", kind=Kind.COLUMN, label=text, x=x, y=y))
                count += 1

    if not seen_text:
        raise NoTextFound()

    logger.debug("Classified %d candidate(s) in %s mode", len(out), mode.value)
    return out

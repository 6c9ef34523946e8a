from __future__ import annotations
import logging
import threading
from dataclasses import replace
from typing import Iterable, List, Optional

from .candidates import Candidate, Kind, Mode, PositionedToken, RIGHT_ANGLE
from .classify import classify
from .resolve import TOLERANCE, resolve
from .sequence import sort_candidates

logger = logging.getLogger("drawlens.pipeline")


def extract_candidates(
    tokens: Iterable[PositionedToken],
    mode: Mode | str,
    tolerance: float = TOLERANCE,
) -> List[Candidate]:
    """classify -> resolve (Beam mode only) -> natural label order."""
    mode = Mode.coerce(mode)
    found = classify(tokens, mode)

    if mode is Mode.BEAM:
        beams = [c for c in found if c.kind is Kind.BEAM]
        columns = [c for c in found if c.kind is Kind.COLUMN]
        # reference columns only feed the resolver
        found = resolve(beams, columns, tolerance)

    result = sort_candidates(found)
    logger.debug("Extracted %d %s candidate(s)", len(result), mode.value)
    return result


class ExtractionRun:
    """The ordered output of one extraction, open to orientation overrides.

    Overrides may come from another thread than the one that produced the run;
    each flip is a single locked read-replace.
    """

    def __init__(self, mode: Mode | str, candidates: Iterable[Candidate]):
        self.mode = Mode.coerce(mode)
        self._items: List[Candidate] = list(candidates)
        self._lock = threading.Lock()

    @classmethod
    def from_tokens(cls, tokens: Iterable[PositionedToken], mode: Mode | str,
                    tolerance: float = TOLERANCE) -> "ExtractionRun":
        return cls(mode, extract_candidates(tokens, mode, tolerance))

    @property
    def candidates(self) -> List[Candidate]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def get(self, candidate_id: str) -> Optional[Candidate]:
        with self._lock:
            for c in self._items:
                if c.id == candidate_id:
                    return c
        return None

    def flip_orientation(self, candidate_id: str) -> bool:
        """Toggle a connected beam between horizontal and vertical.

        Returns False, leaving the run untouched, for unknown ids, point members
        and unresolved beams.
        """
        with self._lock:
            for i, c in enumerate(self._items):
                if c.id != candidate_id:
                    continue
                if c.kind is not Kind.BEAM or not c.connected:
                    logger.warning("Ignoring orientation override for %s (%s, connected=%s)",
                                   candidate_id, c.kind.value, c.connected)
                    return False
                new = RIGHT_ANGLE if c.orientation == 0 else 0.0
                self._items[i] = replace(c, orientation=new)
                logger.info("Flipped %s (%s) to orientation %.4f", c.id, c.label, new)
                return True
        logger.warning("Ignoring orientation override for unknown id %s", candidate_id)
        return False

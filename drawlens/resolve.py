"""Snap beams to the pair of columns they span between.

A beam label sits somewhere along its member, so the supports are the nearest
columns on either side of it along one principal axis, within a tolerance band
on the other axis. Coordinates are the rounded page units from classification.
"""
from __future__ import annotations
import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Tuple

from .candidates import Candidate, Kind, RIGHT_ANGLE

logger = logging.getLogger("drawlens.resolve")

# Page units (about 1.5 m at 50 units per metre)
TOLERANCE = 80


def _nearest_below(cols: Sequence[Candidate], axis: str, pivot: float) -> Optional[Candidate]:
    best = None
    for c in cols:
        v = getattr(c, axis)
        if v < pivot and (best is None or v > getattr(best, axis)):
            best = c
    return best


def _nearest_above(cols: Sequence[Candidate], axis: str, pivot: float) -> Optional[Candidate]:
    best = None
    for c in cols:
        v = getattr(c, axis)
        if v > pivot and (best is None or v < getattr(best, axis)):
            best = c
    return best


def horizontal_neighbors(
    beam: Candidate, columns: Sequence[Candidate], tolerance: float = TOLERANCE
) -> Tuple[Optional[Candidate], Optional[Candidate]]:
    """(left, right) among columns in the beam's horizontal band."""
    band = [c for c in columns if abs(c.y - beam.y) < tolerance]
    return _nearest_below(band, "x", beam.x), _nearest_above(band, "x", beam.x)


def vertical_neighbors(
    beam: Candidate, columns: Sequence[Candidate], tolerance: float = TOLERANCE
) -> Tuple[Optional[Candidate], Optional[Candidate]]:
    """(bottom, top) among columns in the beam's vertical band."""
    band = [c for c in columns if abs(c.x - beam.x) < tolerance]
    return _nearest_below(band, "y", beam.y), _nearest_above(band, "y", beam.y)


def _span(beam: Candidate, a: Candidate, b: Candidate, length: float, orientation: float) -> Candidate:
    return replace(
        beam,
        x=(a.x + b.x) / 2,
        y=(a.y + b.y) / 2,
        length=length,
        orientation=orientation,
        connected=True,
    )


def resolve_beam(beam: Candidate, columns: Sequence[Candidate], tolerance: float = TOLERANCE) -> Candidate:
    left, right = horizontal_neighbors(beam, columns, tolerance)
    bottom, top = vertical_neighbors(beam, columns, tolerance)
    is_horiz = left is not None and right is not None
    is_vert = bottom is not None and top is not None

    if is_horiz and is_vert:
        h_dist = right.x - left.x
        v_dist = abs(top.y - bottom.y)
        # shorter span wins at a junction; equal spans go horizontal
        if h_dist <= v_dist:
            is_vert = False
        else:
            is_horiz = False
        logger.debug("%s is ambiguous (h=%s, v=%s)", beam.label, h_dist, v_dist)

    if is_horiz:
        return _span(beam, left, right, right.x - left.x, 0.0)
    if is_vert:
        return _span(beam, bottom, top, abs(top.y - bottom.y), RIGHT_ANGLE)

    return replace(beam, connected=False, length=None)


def resolve(
    beams: Iterable[Candidate], columns: Iterable[Candidate], tolerance: float = TOLERANCE
) -> List[Candidate]:
    """Resolve every beam against the same column set.

    Beams are independent of each other. A beam with no complete pair on either
    axis comes back with ``connected=False`` and its label position intact.
    Ties between columns on the same coordinate go to the one listed first.
    """
    cols = [c for c in columns if c.kind is Kind.COLUMN]
    out: List[Candidate] = []
    for b in beams:
        if b.kind is not Kind.BEAM:
            out.append(b)
            continue
        out.append(resolve_beam(b, cols, tolerance))

    connected = sum(1 for b in out if b.kind is Kind.BEAM and b.connected)
    logger.debug("Resolved %d/%d beam(s) against %d column(s)", connected, len(out), len(cols))
    return out

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, Dict, Any

from .errors import InvalidMode

RIGHT_ANGLE = math.pi / 2


class Kind(str, Enum):
    FOOTING = "Footing"
    COLUMN = "Column"
    BEAM = "Beam"


class Mode(str, Enum):
    FOOTING = "Footing"
    COLUMN = "Column"
    BEAM = "Beam"

    @classmethod
    def coerce(cls, value: "Mode | str") -> "Mode":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for m in cls:
                if m.value.lower() == value.strip().lower():
                    return m
        raise InvalidMode(value)


@dataclass(frozen=True)
class PositionedToken:
    """One run of text on the page; (x, y) is its baseline origin in PDF user space."""
    text: str
    x: float
    y: float


@dataclass(frozen=True)
class Candidate:
    id: str                 # "<kind>-<n>" | "ref-column-<n>"
    kind: Kind
    label: str
    x: float
    y: float
    orientation: float = 0.0          # 0 | RIGHT_ANGLE (radians)
    length: Optional[float] = None    # beams with a resolved connection only
    connected: bool = True

    @property
    def is_point(self) -> bool:
        return self.kind is not Kind.BEAM

    def to_public(self) -> Dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d

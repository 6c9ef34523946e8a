from __future__ import annotations
import uuid
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Iterable, List, Optional, Dict, Any, Tuple

from .candidates import Candidate, Kind


class ElementStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In_Progress"
    COMPLETED = "Completed"


# Vertical placement relative to the level, in metres
ELEVATION_OFFSETS = {
    Kind.FOOTING: -0.25,  # below ground
    Kind.COLUMN: 1.5,     # centre of a 3 m column
    Kind.BEAM: 3.0,       # ceiling
}


@dataclass(frozen=True)
class Level:
    id: str
    project_id: str
    name: str
    elevation: float        # metres above ground
    order: int


@dataclass(frozen=True)
class Element:
    id: str
    project_id: str
    level_id: str
    kind: Kind
    label: str
    grid_location: str
    coordinates: Tuple[float, float, float]   # x, y (up), z (depth) in metres
    status: ElementStatus = ElementStatus.PENDING
    rotation: float = 0.0
    length: Optional[float] = None
    connected: bool = True

    def to_public(self) -> Dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        d["status"] = self.status.value
        d["coordinates"] = list(self.coordinates)
        return d


def to_element(cand: Candidate, project_id: str, level: Level, units_per_meter: float = 50) -> Element:
    """Page units become metres; page y becomes model depth (z)."""
    return Element(
        id=f"el-{uuid.uuid4().hex[:12]}-{cand.id}",
        project_id=project_id,
        level_id=level.id,
        kind=cand.kind,
        label=cand.label,
        grid_location="TBD",
        coordinates=(
            cand.x / units_per_meter,
            level.elevation + ELEVATION_OFFSETS[cand.kind],
            cand.y / units_per_meter,
        ),
        rotation=cand.orientation,
        length=None if cand.length is None else cand.length / units_per_meter,
        connected=cand.connected,
    )


def to_elements(
    candidates: Iterable[Candidate], project_id: str, level: Level, units_per_meter: float = 50
) -> List[Element]:
    return [to_element(c, project_id, level, units_per_meter) for c in candidates]

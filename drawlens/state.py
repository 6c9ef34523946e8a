import logging
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, List, Optional

from .candidates import Kind
from .classify import round_half_up
from .mapper import Element, ElementStatus, Level

logger = logging.getLogger("drawlens.state")

DDL = """
CREATE TABLE IF NOT EXISTS projects (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  structure_type TEXT NOT NULL,
  floors_above_ground INTEGER NOT NULL,
  floor_height REAL NOT NULL,
  created_at INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS levels (
  id TEXT PRIMARY KEY,
  project_id TEXT NOT NULL REFERENCES projects(id),
  name TEXT NOT NULL,
  elevation REAL NOT NULL,
  ord INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS drawings (
  id TEXT PRIMARY KEY,
  project_id TEXT NOT NULL REFERENCES projects(id),
  name TEXT NOT NULL,
  file_path TEXT NOT NULL,
  scale_factor REAL,
  created_at INTEGER NOT NULL,
  seq INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS elements (
  id TEXT PRIMARY KEY,
  project_id TEXT NOT NULL REFERENCES projects(id),
  level_id TEXT NOT NULL REFERENCES levels(id),
  kind TEXT NOT NULL,
  label TEXT NOT NULL,
  grid_location TEXT NOT NULL,
  x REAL NOT NULL,
  y REAL NOT NULL,
  z REAL NOT NULL,
  status TEXT NOT NULL,
  rotation REAL NOT NULL,
  length REAL,
  connected INTEGER NOT NULL,
  seq INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS tasks (
  id TEXT PRIMARY KEY,
  element_id TEXT NOT NULL UNIQUE REFERENCES elements(id),
  name TEXT NOT NULL,
  status TEXT NOT NULL,
  start_date TEXT,
  end_date TEXT,
  seq INTEGER NOT NULL
);
"""

TASK_DURATION = timedelta(days=7)


class StructureType(str, Enum):
    RCC_FRAMED = "RCC_Framed"
    SHEAR_WALL = "Shear_Wall"
    PREFAB = "PreFab"


class TaskStatus(str, Enum):
    TODO = "Todo"
    IN_PROGRESS = "In_Progress"
    DONE = "Done"


_ELEMENT_STATUS_FOR = {
    TaskStatus.TODO: ElementStatus.PENDING,
    TaskStatus.IN_PROGRESS: ElementStatus.IN_PROGRESS,
    TaskStatus.DONE: ElementStatus.COMPLETED,
}


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    structure_type: StructureType
    floors_above_ground: int
    floor_height: float     # metres
    created_at: int


@dataclass(frozen=True)
class Task:
    id: str
    element_id: str
    name: str
    status: TaskStatus
    start_date: Optional[str] = None
    end_date: Optional[str] = None


@dataclass(frozen=True)
class Drawing:
    id: str
    project_id: str
    name: str
    file_path: str
    scale_factor: Optional[float] = None    # drawing units per metre; None = settings default


@dataclass(frozen=True)
class LevelProgress:
    level_id: str
    name: str
    done: int
    total: int


@dataclass(frozen=True)
class Progress:
    done: int
    total: int
    percent: int
    levels: List[LevelProgress]


def percent_done(done: int, total: int) -> int:
    return round_half_up(done * 100 / total) if total else 0


def _element(row) -> Element:
    return Element(
        id=row[0], project_id=row[1], level_id=row[2], kind=Kind(row[3]), label=row[4],
        grid_location=row[5], coordinates=(row[6], row[7], row[8]),
        status=ElementStatus(row[9]), rotation=row[10], length=row[11], connected=bool(row[12]),
    )


def _task(row) -> Task:
    return Task(id=row[0], element_id=row[1], name=row[2], status=TaskStatus(row[3]),
                start_date=row[4], end_date=row[5])


class ProjectStore:
    """Projects, their levels, placed elements and WBS tasks, kept in sqlite."""

    def __init__(self, path: str):
        self.conn = sqlite3.connect(path)
        self.conn.executescript(DDL)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    # -- projects / levels ---------------------------------------------------

    def add_project(self, name: str, structure_type: StructureType = StructureType.RCC_FRAMED,
                    floors_above_ground: int = 0, floor_height: float = 3.5) -> str:
        """Create a project with a ground floor plus one level per floor above ground."""
        if floors_above_ground < 0:
            raise ValueError("floors_above_ground must be >= 0")
        structure_type = StructureType(structure_type)
        pid = f"proj-{uuid.uuid4().hex[:12]}"
        self.conn.execute(
            "INSERT INTO projects(id, name, structure_type, floors_above_ground, floor_height, created_at) "
            "VALUES(?, ?, ?, ?, ?, strftime('%s','now'))",
            (pid, name, structure_type.value, floors_above_ground, floor_height),
        )
        rows = [(f"lvl-{pid}-0", pid, "Ground Floor", 0.0, 0)]
        for i in range(1, floors_above_ground + 1):
            rows.append((f"lvl-{pid}-{i}", pid, f"Level {i}", i * floor_height, i))
        self.conn.executemany(
            "INSERT INTO levels(id, project_id, name, elevation, ord) VALUES(?, ?, ?, ?, ?)", rows
        )
        self.conn.commit()
        logger.info("Created project %s (%s) with %d level(s)", pid, name, len(rows))
        return pid

    def get_project(self, project_id: str) -> Optional[Project]:
        row = self.conn.execute(
            "SELECT id, name, structure_type, floors_above_ground, floor_height, created_at "
            "FROM projects WHERE id=?", (project_id,)
        ).fetchone()
        if row is None:
            return None
        return Project(row[0], row[1], StructureType(row[2]), row[3], row[4], row[5])

    def levels(self, project_id: str) -> List[Level]:
        cur = self.conn.execute(
            "SELECT id, project_id, name, elevation, ord FROM levels WHERE project_id=? ORDER BY ord",
            (project_id,),
        )
        return [Level(*r) for r in cur.fetchall()]

    def get_level(self, level_id: str) -> Optional[Level]:
        row = self.conn.execute(
            "SELECT id, project_id, name, elevation, ord FROM levels WHERE id=?", (level_id,)
        ).fetchone()
        return None if row is None else Level(*row)

    # -- drawings ------------------------------------------------------------

    def add_drawing(self, project_id: str, name: str, file_path: str,
                    scale_factor: Optional[float] = None) -> str:
        if scale_factor is not None and scale_factor <= 0:
            raise ValueError("scale_factor must be > 0")
        did = f"dwg-{uuid.uuid4().hex[:12]}"
        seq = self.conn.execute("SELECT COALESCE(MAX(seq), -1) + 1 FROM drawings").fetchone()[0]
        self.conn.execute(
            "INSERT INTO drawings(id, project_id, name, file_path, scale_factor, created_at, seq) "
            "VALUES(?, ?, ?, ?, ?, strftime('%s','now'), ?)",
            (did, project_id, name, file_path, scale_factor, seq),
        )
        self.conn.commit()
        logger.info("Recorded drawing %s (%s) for project %s", did, name, project_id)
        return did

    def get_drawing(self, drawing_id: str) -> Optional[Drawing]:
        row = self.conn.execute(
            "SELECT id, project_id, name, file_path, scale_factor FROM drawings WHERE id=?", (drawing_id,)
        ).fetchone()
        return None if row is None else Drawing(*row)

    def drawings(self, project_id: str) -> List[Drawing]:
        cur = self.conn.execute(
            "SELECT id, project_id, name, file_path, scale_factor FROM drawings "
            "WHERE project_id=? ORDER BY seq",
            (project_id,),
        )
        return [Drawing(*r) for r in cur.fetchall()]

    def update_drawing_scale(self, drawing_id: str, scale_factor: float) -> Drawing:
        if scale_factor <= 0:
            raise ValueError("scale_factor must be > 0")
        with self.conn:
            cur = self.conn.execute("UPDATE drawings SET scale_factor=? WHERE id=?",
                                    (scale_factor, drawing_id))
        if cur.rowcount == 0:
            raise KeyError(drawing_id)
        return self.get_drawing(drawing_id)

    # -- elements ------------------------------------------------------------

    def add_elements(self, elements: Iterable[Element]) -> int:
        start = self.conn.execute("SELECT COALESCE(MAX(seq), -1) + 1 FROM elements").fetchone()[0]
        rows = [
            (e.id, e.project_id, e.level_id, e.kind.value, e.label, e.grid_location,
             *e.coordinates, e.status.value, e.rotation, e.length, int(e.connected), start + n)
            for n, e in enumerate(elements)
        ]
        self.conn.executemany(
            "INSERT INTO elements(id, project_id, level_id, kind, label, grid_location, x, y, z, "
            "status, rotation, length, connected, seq) VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            rows,
        )
        self.conn.commit()
        return len(rows)

    def elements(self, project_id: str) -> List[Element]:
        cur = self.conn.execute(
            "SELECT id, project_id, level_id, kind, label, grid_location, x, y, z, status, rotation, "
            "length, connected FROM elements WHERE project_id=? ORDER BY seq",
            (project_id,),
        )
        return [_element(r) for r in cur.fetchall()]

    # -- WBS -----------------------------------------------------------------

    def generate_wbs(self, project_id: str, now: Optional[datetime] = None) -> List[Task]:
        """Add a casting task for every element of the project that has none yet."""
        now = now or datetime.now(timezone.utc)
        start, end = now.isoformat(), (now + TASK_DURATION).isoformat()
        seq = self.conn.execute("SELECT COALESCE(MAX(seq), -1) + 1 FROM tasks").fetchone()[0]
        have = {r[0] for r in self.conn.execute("SELECT element_id FROM tasks")}

        new: List[Task] = []
        for el in self.elements(project_id):
            if el.id in have:
                continue
            new.append(Task(id=f"task-{el.id}", element_id=el.id, name=f"Cast {el.kind.value} {el.label}",
                            status=TaskStatus.TODO, start_date=start, end_date=end))
        self.conn.executemany(
            "INSERT INTO tasks(id, element_id, name, status, start_date, end_date, seq) "
            "VALUES(?, ?, ?, ?, ?, ?, ?)",
            [(t.id, t.element_id, t.name, t.status.value, t.start_date, t.end_date, seq + n)
             for n, t in enumerate(new)],
        )
        self.conn.commit()
        logger.info("Generated %d task(s) for project %s", len(new), project_id)
        return new

    def tasks(self, project_id: str) -> List[Task]:
        cur = self.conn.execute(
            "SELECT t.id, t.element_id, t.name, t.status, t.start_date, t.end_date FROM tasks t "
            "JOIN elements e ON e.id = t.element_id WHERE e.project_id=? ORDER BY t.seq",
            (project_id,),
        )
        return [_task(r) for r in cur.fetchall()]

    def update_task_status(self, task_id: str, status: TaskStatus) -> Task:
        """Set a task's status and move its element to the matching status."""
        status = TaskStatus(status)
        row = self.conn.execute(
            "SELECT id, element_id, name, status, start_date, end_date FROM tasks WHERE id=?", (task_id,)
        ).fetchone()
        if row is None:
            raise KeyError(task_id)
        with self.conn:
            self.conn.execute("UPDATE tasks SET status=? WHERE id=?", (status.value, task_id))
            self.conn.execute("UPDATE elements SET status=? WHERE id=?",
                              (_ELEMENT_STATUS_FOR[status].value, row[1]))
        return _task((row[0], row[1], row[2], status.value, row[4], row[5]))

    def progress(self, project_id: str) -> Progress:
        """Done/total task counts for the project and for each level that has tasks."""
        cur = self.conn.execute(
            "SELECT l.id, l.name, SUM(t.status = ?), COUNT(t.id) FROM tasks t "
            "JOIN elements e ON e.id = t.element_id JOIN levels l ON l.id = e.level_id "
            "WHERE e.project_id=? GROUP BY l.id, l.name, l.ord ORDER BY l.ord",
            (TaskStatus.DONE.value, project_id),
        )
        levels = [LevelProgress(r[0], r[1], int(r[2] or 0), r[3]) for r in cur.fetchall()]
        done = sum(lv.done for lv in levels)
        total = sum(lv.total for lv in levels)
        return Progress(done=done, total=total, percent=percent_done(done, total), levels=levels)

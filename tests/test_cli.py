from __future__ import annotations

import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import fitz
from typer.testing import CliRunner

from drawlens.cli import app
from drawlens.config import load_settings
from drawlens.state import ProjectStore, TaskStatus

PAGE_H = 400
# C1-C2 stacked on x=100, C1-C3 roughly level; every label on its own row
LABELS = [("C1", 100, 50), ("B2", 200, 75), ("C3", 300, 100), ("B1", 105, 150), ("C2", 100, 250), ("B7", 500, 330)]


def write_pdf(path: Path, labels) -> Path:
    doc = fitz.open()
    page = doc.new_page(width=600, height=PAGE_H)
    for text, x, y in labels:
        page.insert_text((x, PAGE_H - y), text, fontsize=10)
    doc.save(path.as_posix())
    doc.close()
    return path


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.tmp, True)
        self.db = (self.tmp / "state" / "test.sqlite").as_posix()
        self.env = {"DRAWLENS_STATE_DB": self.db, "DRAWLENS_LOG_LEVEL": "WARNING"}
        self.runner = CliRunner()
        self.pdf = write_pdf(self.tmp / "plan.pdf", LABELS)

    def invoke(self, *args: str):
        return self.runner.invoke(app, list(args), env=self.env)

    def test_extract_beams_to_json(self) -> None:
        out = self.tmp / "beams.json"
        res = self.invoke("extract", str(self.pdf), "--mode", "beam", "--out", str(out))
        self.assertEqual(res.exit_code, 0, res.output)
        rows = {r["label"]: r for r in json.loads(out.read_text(encoding="utf-8"))}
        self.assertEqual(set(rows), {"B1", "B2", "B7"})
        self.assertTrue(rows["B1"]["connected"])
        self.assertEqual(rows["B1"]["kind"], "Beam")
        self.assertFalse(rows["B7"]["connected"])
        self.assertIsNone(rows["B7"]["length"])

    def test_extract_with_flip(self) -> None:
        out = self.tmp / "beams.json"
        base = self.tmp / "base.json"
        self.assertEqual(self.invoke("extract", str(self.pdf), "--mode", "Beam", "--out", str(base)).exit_code, 0)
        b2 = next(r for r in json.loads(base.read_text(encoding="utf-8")) if r["label"] == "B2")
        self.assertTrue(b2["connected"])

        res = self.invoke("extract", str(self.pdf), "--mode", "Beam", "--flip", b2["id"], "--out", str(out))
        self.assertEqual(res.exit_code, 0, res.output)
        flipped = next(r for r in json.loads(out.read_text(encoding="utf-8")) if r["id"] == b2["id"])
        self.assertNotEqual(flipped["orientation"], b2["orientation"])
        self.assertEqual((flipped["x"], flipped["y"], flipped["length"]), (b2["x"], b2["y"], b2["length"]))

    def test_extract_columns_table(self) -> None:
        res = self.invoke("extract", str(self.pdf))
        self.assertEqual(res.exit_code, 0, res.output)
        self.assertIn("C3", res.output)

    def test_blank_page_fails(self) -> None:
        blank = write_pdf(self.tmp / "blank.pdf", [])
        res = self.invoke("extract", str(blank))
        self.assertEqual(res.exit_code, 1)

    def test_missing_file_and_bad_mode(self) -> None:
        self.assertEqual(self.invoke("extract", str(self.tmp / "nope.pdf")).exit_code, 1)
        self.assertNotEqual(self.invoke("extract", str(self.pdf), "--mode", "slab").exit_code, 0)

    def test_import_and_wbs(self) -> None:
        Path(self.db).parent.mkdir(parents=True, exist_ok=True)
        store = ProjectStore(self.db)
        pid = store.add_project("Skyline Plaza", floors_above_ground=1, floor_height=3.5)
        level = store.levels(pid)[1]
        store.close()

        res = self.invoke("import", str(self.pdf), "--project", pid, "--level", level.id, "--mode", "column")
        self.assertEqual(res.exit_code, 0, res.output)
        res = self.invoke("wbs", pid)
        self.assertEqual(res.exit_code, 0, res.output)

        store = ProjectStore(self.db)
        self.addCleanup(store.close)
        els = store.elements(pid)
        self.assertEqual([e.label for e in els], ["C1", "C2", "C3"])
        self.assertTrue(all(e.level_id == level.id for e in els))
        tasks = store.tasks(pid)
        self.assertEqual([t.name for t in tasks], ["Cast Column C1", "Cast Column C2", "Cast Column C3"])

        res = self.invoke("task-status", tasks[0].id, "done")
        self.assertEqual(res.exit_code, 0, res.output)
        self.assertIs(store.tasks(pid)[0].status, TaskStatus.DONE)

    def test_import_unknown_level(self) -> None:
        res = self.invoke("import", str(self.pdf), "--project", "proj-x", "--level", "lvl-x")
        self.assertEqual(res.exit_code, 1)

    def test_project_create_and_levels(self) -> None:
        res = self.invoke("project-create", "Tower", "--floors", "3")
        self.assertEqual(res.exit_code, 0, res.output)
        store = ProjectStore(self.db)
        self.addCleanup(store.close)
        (pid,) = [r[0] for r in store.conn.execute("SELECT id FROM projects")]
        self.assertEqual(len(store.levels(pid)), 4)
        self.assertEqual(self.invoke("levels", pid).exit_code, 0)
        self.assertEqual(self.invoke("levels", "proj-none").exit_code, 1)

    def _project(self) -> tuple[str, str]:
        Path(self.db).parent.mkdir(parents=True, exist_ok=True)
        store = ProjectStore(self.db)
        try:
            pid = store.add_project("Skyline Plaza", floors_above_ground=1, floor_height=3.5)
            return pid, store.levels(pid)[0].id
        finally:
            store.close()

    def test_import_records_drawing_and_applies_scale(self) -> None:
        pid, level = self._project()
        res = self.invoke("import", str(self.pdf), "--project", pid, "--level", level, "--scale", "25")
        self.assertEqual(res.exit_code, 0, res.output)
        res = self.invoke("import", str(self.pdf), "--project", pid, "--level", level)
        self.assertEqual(res.exit_code, 0, res.output)

        store = ProjectStore(self.db)
        self.addCleanup(store.close)
        dwgs = store.drawings(pid)
        self.assertEqual([(d.name, d.scale_factor) for d in dwgs], [("plan.pdf", 25), ("plan.pdf", None)])
        c1 = [e.coordinates[0] for e in store.elements(pid) if e.label == "C1"]
        self.assertEqual(c1, [4.0, 2.0])

        res = self.invoke("drawing-scale", dwgs[1].id, "100")
        self.assertEqual(res.exit_code, 0, res.output)
        self.assertEqual(store.get_drawing(dwgs[1].id).scale_factor, 100)
        self.assertEqual(self.invoke("drawing-scale", "dwg-missing", "10").exit_code, 1)
        self.assertEqual(self.invoke("drawing-scale", dwgs[1].id, "0").exit_code, 1)
        self.assertEqual(self.invoke("drawings", pid).exit_code, 0)

    def test_import_rejects_non_positive_scale(self) -> None:
        pid, level = self._project()
        res = self.invoke("import", str(self.pdf), "--project", pid, "--level", level, "--scale", "0")
        self.assertEqual(res.exit_code, 1)

    def test_wbs_requires_elements(self) -> None:
        pid, _ = self._project()
        res = self.invoke("wbs", pid)
        self.assertEqual(res.exit_code, 1)
        self.assertIn("drawing layer", res.output)
        self.assertEqual(self.invoke("wbs", "proj-none").exit_code, 1)

    def test_progress_after_status_change(self) -> None:
        pid, level = self._project()
        self.assertEqual(self.invoke("import", str(self.pdf), "--project", pid, "--level", level).exit_code, 0)
        self.assertIn("No tasks yet", self.invoke("progress", pid).output)

        res = self.invoke("wbs", pid)
        self.assertEqual(res.exit_code, 0, res.output)
        self.assertIn("0/3 task(s) done (0%)", res.output)

        store = ProjectStore(self.db)
        self.addCleanup(store.close)
        self.assertEqual(self.invoke("task-status", store.tasks(pid)[0].id, "done").exit_code, 0)
        res = self.invoke("progress", pid)
        self.assertEqual(res.exit_code, 0, res.output)
        self.assertIn("1/3 task(s) done (33%)", res.output)
        self.assertIn("Ground Floor", res.output)
        self.assertEqual(self.invoke("progress", "proj-none").exit_code, 1)


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        tmp = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmp, True)
        db = os.path.join(tmp, "sub", "s.sqlite")
        with mock.patch.dict(os.environ, {"DRAWLENS_STATE_DB": db}, clear=True):
            s = load_settings()
        self.assertEqual((s.tolerance, s.units_per_meter, s.text_backend), (80.0, 50.0, "pymupdf"))
        self.assertTrue(os.path.isdir(os.path.dirname(db)))

    def test_invalid_values(self) -> None:
        env = {"DRAWLENS_TOLERANCE": "wide", "DRAWLENS_TEXT_BACKEND": "ocr", "DRAWLENS_STATE_DB": ":memory:"}
        with mock.patch.dict(os.environ, env, clear=True):
            with self.assertRaises(RuntimeError) as ctx:
                load_settings()
        self.assertIn("DRAWLENS_TOLERANCE", str(ctx.exception))
        self.assertIn("DRAWLENS_TEXT_BACKEND", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()

from dataclasses import dataclass
import os
from pathlib import Path
from dotenv import load_dotenv, find_dotenv
load_dotenv(find_dotenv(filename=".env", usecwd=True))

from .text_source import BACKENDS


@dataclass(frozen=True)
class Settings:
    tolerance: float
    units_per_meter: float
    text_backend: str
    state_db: str
    log_level: str

def load_settings() -> Settings:
    bad = []
    def num(k, default):
        raw = os.getenv(k, default)
        try:
            v = float(raw)
        except ValueError:
            bad.append(k)
            return float(default)
        if v <= 0:
            bad.append(k)
        return v
    s = Settings(
        tolerance = num("DRAWLENS_TOLERANCE", "80"),
        units_per_meter = num("DRAWLENS_UNITS_PER_METER", "50"),
        text_backend = os.getenv("DRAWLENS_TEXT_BACKEND", "pymupdf").strip().lower(),
        state_db = os.getenv("DRAWLENS_STATE_DB", "./state/drawlens.sqlite"),
        log_level = os.getenv("DRAWLENS_LOG_LEVEL", "INFO").strip().upper(),
    )
    if s.text_backend not in BACKENDS:
        bad.append("DRAWLENS_TEXT_BACKEND")
    if s.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        bad.append("DRAWLENS_LOG_LEVEL")
    if bad:
        raise RuntimeError(f"Invalid env vars: {', '.join(bad)}")
    Path(s.state_db).parent.mkdir(parents=True, exist_ok=True)
    return s

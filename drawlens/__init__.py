from .logging_config import setup_logging

# Initialize logging early when the package is imported so modules log consistently.
setup_logging()

from .candidates import Candidate, Kind, Mode, PositionedToken, RIGHT_ANGLE  # noqa: E402
from .errors import DrawlensError, InvalidMode, NoTextFound  # noqa: E402
from .pipeline import ExtractionRun, extract_candidates  # noqa: E402

__all__ = [
    "Candidate",
    "DrawlensError",
    "ExtractionRun",
    "InvalidMode",
    "Kind",
    "Mode",
    "NoTextFound",
    "PositionedToken",
    "RIGHT_ANGLE",
    "extract_candidates",
]

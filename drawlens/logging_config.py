import logging
from rich.logging import RichHandler

# Third-party loggers that flood the console while a drawing is being read
NOISY_LOGGERS = ("pdfminer", "pdfplumber")


def setup_logging(level: int | str = logging.INFO) -> None:
    """Route drawlens logs (``drawlens.<module>``) through one RichHandler.

    The package calls this at import with INFO; CLI commands call it again with
    ``DRAWLENS_LOG_LEVEL`` once settings are loaded. Each call drops the root
    handlers first, so the second call changes the level without doubling output.
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    logging.basicConfig(
        level=level,
        format="%(name)s | %(message)s",
        handlers=[RichHandler(show_time=False, show_path=False, rich_tracebacks=True)],
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.ERROR)


__all__ = ["NOISY_LOGGERS", "setup_logging"]

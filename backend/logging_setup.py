import logging
import sys
from pathlib import Path
from typing import Optional, Union

# Third-party loggers that only get to the console at WARNING+
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "alembic", "multipart")


class _ConsoleNoiseFilter(logging.Filter):
    """Keep planner logs and uvicorn access lines; quiet chatty libraries."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(NOISY_LOGGERS):
            return record.levelno >= logging.WARNING
        if record.name == "py.warnings":
            return record.levelno >= logging.ERROR
        return True


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure root logging: a filtered console handler and, when log_dir is
    given, a file handler that keeps everything.

    Call once at startup, before the first log line.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_dir / "planner.log"), encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    logging.captureWarnings(True)

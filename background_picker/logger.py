import logging
import os
import sys

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class _CategoryFilter(logging.Filter):
    def __init__(self, allowed: set[str]) -> None:
        super().__init__()
        self.allowed = allowed

    def filter(self, record: logging.LogRecord) -> bool:
        # record.name like: background_picker.scanner, background_picker.orchestrator
        parts = (record.name or "").split(".")
        suffix = parts[-1] if parts else record.name
        return suffix in self.allowed


def setup_logger(level: int | None = None, name: str = "background_picker") -> logging.Logger:
    """Create or update the project logger.

    - Respects env overrides BACKGROUND_PICKER_LOG_LEVEL/BACKGROUND_PICKER_LOG_CATS
      on every call, so late CLI parsing can still take effect.
    - Ensures there is exactly one stderr StreamHandler on the base logger and
      updates its formatter/filters instead of bailing out early.
    - An explicit ``level`` wins; otherwise the env level, otherwise the level
      already set on the logger (INFO on first use).
    """
    logger = logging.getLogger(name)

    env_level = (os.getenv("BACKGROUND_PICKER_LOG_LEVEL") or "").strip().lower()
    if level is None:
        level = _LEVELS.get(env_level, logger.level or logging.INFO)
    logger.setLevel(level)

    stream_handler: logging.StreamHandler | None = None
    for h in list(logger.handlers):
        if isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr:
            stream_handler = h
            break

    if stream_handler is None:
        stream_handler = logging.StreamHandler(stream=sys.stderr)
        logger.addHandler(stream_handler)

    # Do not include the full logger name in messages to keep output concise
    stream_handler.setFormatter(
        logging.Formatter(
            fmt="[%(asctime)s] %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )

    stream_handler.filters.clear()
    cats = (os.getenv("BACKGROUND_PICKER_LOG_CATS") or "").strip()
    if cats:
        allowed = {c.strip() for c in cats.split(",") if c.strip()}
        stream_handler.addFilter(_CategoryFilter(allowed))

    # Do not propagate beyond the project logger
    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = logging.getLogger("background_picker")
    if not base.handlers:
        base = setup_logger()
    return base if not name else base.getChild(name)

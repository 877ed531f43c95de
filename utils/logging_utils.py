import logging

import structlog
from structlog.stdlib import add_log_level, add_logger_name


def resolve_level(level: int | str | None, default: int = logging.INFO) -> int:
    """Turn a config value such as ``"debug"`` or ``10`` into a logging level."""
    if level is None:
        return default
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else default


def setup_logging(level: int | str | None = logging.INFO, colors: bool = True) -> None:
    """Configure structlog on top of standard logging at ``level``."""
    numeric_level = resolve_level(level)
    logging.basicConfig(level=numeric_level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_logger_name,
            add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False),
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

"""structlog + stdlib logging for the admin API, CLI and report workers.

``structlog.get_logger()`` calls and plain ``logging`` loggers (uvicorn,
SQLAlchemy) end up on the same stdout handler, rendered either as JSON lines
or through the console renderer during development.
"""

import logging
import sys

import structlog

# Library loggers that are far too chatty at INFO.
_NOISY_LOGGERS = ("sqlalchemy.engine.Engine", "aiosqlite", "uvicorn.access")


def configure_logging(json_output: bool = True, log_level: str = "INFO") -> None:
    """Install the shared processor chain and the root stdout handler.

    Args:
        json_output: Render JSON lines when ``True``, coloured console output
            otherwise.
        log_level: Root level name, e.g. ``"DEBUG"`` or ``"WARNING"``.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    if level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

"""Log routing for bookkeeper.

Library modules log with ``logging.getLogger(__name__)``; the CLI calls
:func:`configure_logging` once per invocation to send those records,
and anything logged through structlog, to stderr. stdout carries only
command results.
"""

from __future__ import annotations

import logging
import sys

import structlog

HANDLER_NAME = "bookkeeper-stderr"

# Third-party loggers that are only interesting when something breaks
QUIET_LOGGERS: tuple[str, ...] = ("urllib3", "requests")


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def _install_handler(formatter: logging.Formatter) -> None:
    """Put our stderr handler on the root logger, replacing a previous one."""
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(logging.WARNING)


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route stdlib and structlog records through one stderr handler.

    Args:
        verbose: Let ``bookkeeper.*`` DEBUG records through (lookups,
            cache hits, note writes). Otherwise only WARNING and above.
        log_json: One JSON object per line instead of console output.
    """
    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    _install_handler(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    logging.getLogger("bookkeeper").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

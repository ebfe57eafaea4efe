"""structlog setup shared by the API server and the scripts."""

import logging

import structlog


def configure_logging(verbose: bool = False, *, timestamps: bool = True) -> None:
    """Configure structlog console output.

    Args:
        verbose: Emit debug events (pool syncs, reverted transactions)
        timestamps: Prefix each line with an ISO timestamp
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    processors: list[structlog.typing.Processor] = [structlog.processors.add_log_level]
    if timestamps:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )


__all__ = ["configure_logging"]

"""
Structured logging for the catalog service using structlog.
Provides JSON or console output and a request-scoped logger for handlers.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Union
import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging with configurable output formats.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path
        debug: Add call-site information to every event
    """
    level = getattr(logging, log_level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(file_handler)

    logger = structlog.get_logger(__name__)
    logger.info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


class RequestLogger:
    """
    Logger for a single handler action, carrying the action and actor as context.
    """

    def __init__(self, action: str, user_id: Optional[int] = None, name: str = "api"):
        self.logger = structlog.get_logger(name)
        self.context = {"action": action, "user_id": user_id}

    def bind_context(self, **kwargs) -> 'RequestLogger':
        """
        Bind context variables to the logger.

        Args:
            **kwargs: Context variables to bind

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    def log_rejected(self, errors: Dict[str, str]) -> None:
        """Log a form submission that was sent back for correction."""
        self.logger.info(
            "Form rejected",
            fields=sorted(errors),
            **self.context
        )

    def log_mutation(self, entity: str, entity_id: Optional[int], operation: str) -> None:
        """Log a successful create, update or delete."""
        self.logger.info(
            "Entity mutated",
            entity=entity,
            entity_id=entity_id,
            operation=operation,
            **self.context
        )

    def log_denied(self, reason: str, status_code: int) -> None:
        """Log a request stopped by an existence, ownership or integrity guard."""
        self.logger.warning(
            "Request denied",
            reason=reason,
            status_code=status_code,
            **self.context
        )

    def log_skipped(self, reason: str) -> None:
        """Log a submission that was accepted but changed nothing."""
        self.logger.info(
            "Submission skipped",
            reason=reason,
            **self.context
        )

"""Logging and logfire observability for the Tool Lending engine."""

import logging
import sys

import logfire

from ..config import EngineConfig, get_config

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: EngineConfig | None = None) -> None:
    """Configure root logging for an entry point (scripts, cron jobs)."""
    config = config or get_config()
    level = logging.DEBUG if config.debug else getattr(logging, config.log_level)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    # SQL echo is only useful while debugging queries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def initialize_observability(config: EngineConfig | None = None) -> None:
    """Configure logfire from the engine configuration.

    When observability is disabled spans are still created but never exported,
    so traced code paths behave the same in tests and in production.
    """
    config = config or get_config()

    if not config.observability_enabled:
        logger.debug("Observability disabled via configuration")
        logfire.configure(send_to_logfire=False, console=False)
        return

    logfire.configure(
        token=config.logfire_token,
        service_name="tool-lending-engine",
        environment=config.environment,
        send_to_logfire="if-token-present",
        console=None if config.logfire_console else False,
    )

    if config.environment == "production":
        logfire.instrument_system_metrics()

    logger.info("Logfire observability initialized (environment=%s)", config.environment)


__all__ = [
    "initialize_observability",
    "setup_logging",
]

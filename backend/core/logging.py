import logging

from simulator.events import EVENTS_LOGGER_NAME

from .config import Settings


def setup_logging(settings: Settings) -> None:
    """Route the service, uvicorn and the simulator event log to one handler.

    ``LOG_LEVEL`` applies to everything except the simulator event log, which
    never goes quieter than INFO so a replay stays traceable from the console.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    logging.getLogger(EVENTS_LOGGER_NAME).setLevel(min(level, logging.INFO))

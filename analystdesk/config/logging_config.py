import logging
import sys

def setup_logging(level: str = "INFO") -> None:
    """
    Configure global logging for the analyst desk.
    """
    log_format = (
        "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | "
        "%(message)s"
    )

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
    )

    # HTTP client chatter from LLM analysts is rarely useful
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug("Logging initialized at level: %s", level.upper())

def get_logger(name: str | None = None) -> logging.Logger:
    """
    Convenience wrapper to get a project-wide logger instance.
    This respects the global logging configuration.
    """
    return logging.getLogger(name)

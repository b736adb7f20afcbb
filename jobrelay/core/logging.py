import logging
from pathlib import Path
from pythonjsonlogger.json import JsonFormatter

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = "INFO", log_file: str | None = None) -> logging.Logger:
    """Configure the jobrelay logger hierarchy with structured JSON output."""
    logger = logging.getLogger("jobrelay")
    logger.setLevel(level.upper())

    # Remove any existing handlers so repeated app creation does not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # create a json formatter for structured logging
    formatter = JsonFormatter(LOG_FORMAT)

    # Add console handler
    ch = logging.StreamHandler()
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    # Add file handler
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    logger.propagate = False
    return logger

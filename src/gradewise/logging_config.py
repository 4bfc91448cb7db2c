import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
HANDLER_NAME = "gradewise"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach a single stdout handler to the root logger.
    Safe to call more than once; only the level is updated on later calls.
    """
    logger = logging.getLogger()
    logger.setLevel(level.upper())

    if not any(handler.get_name() == HANDLER_NAME for handler in logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler.set_name(HANDLER_NAME)
        logger.addHandler(console_handler)

    return logger

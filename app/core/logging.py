# app/core/logging.py
import logging
import sys
import colorlog

FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

# Driver loggers are noisy at INFO (heartbeats, pool events)
QUIET_LOGGERS = ("pymongo", "motor", "redis", "httpx")


def configure_logging(level=logging.INFO, colored: bool = True):
    """
    Root handler on stdout. Colors are for terminals; set LOG_COLOR=false when
    shipping logs to an aggregator.
    """
    handler = colorlog.StreamHandler(sys.stdout)
    if colored:
        handler.setFormatter(
            colorlog.ColoredFormatter(
                "%(log_color)s" + FORMAT.replace(" %(message)s", "%(reset)s %(message)s"),
                datefmt="%H:%M:%S",
                log_colors=LEVEL_COLORS,
            )
        )
    else:
        handler.setFormatter(logging.Formatter(FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    for name in ("uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

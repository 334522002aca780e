import logging
import sys

from resender.config import get_config
from resender.container import setup_container
from resender.stats import setup_stats

CONSOLE_FORMAT = "%(message)s"
LOGFILE_FORMAT = "%(asctime)s %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def application_init(config_path: str | None = None, logfile: str | None = None) -> None:
    config = get_config(config_path)
    setup_logging(config.app.loglevel.value, logfile or config.app.logfile)
    if config.stats.enabled:
        setup_stats(config.stats)
    setup_container()


def setup_logging(loglevel: str, logfile: str | None = None) -> None:
    level = logging.getLevelName(loglevel.upper())

    if isinstance(level, str):
        raise ValueError(f"Invalid loglevel {loglevel.upper()}")

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handlers: list[logging.Handler] = [console]

    if logfile:
        # Append only, every console line is mirrored with a timestamp prefix
        file_handler = logging.FileHandler(logfile, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOGFILE_FORMAT, datefmt=DATE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

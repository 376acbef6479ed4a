import logging
import os

from settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
ERROR_LOG_FORMAT = "[%(asctime)s] %(message)s"
ERROR_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

log = logging.getLogger("earnbot")


class OneLineFormatter(logging.Formatter):
    """Drops tracebacks; the console handler still prints them."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        record.asctime = self.formatTime(record, self.datefmt)
        return self.formatMessage(record).replace("\n", " ")


def setup_logging(error_log_file: str | None = None) -> None:
    """Console logging plus an append-only error log, one timestamped line per failure."""
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    path = error_log_file or settings.error_log_file
    for h in log.handlers:
        if isinstance(h, logging.FileHandler) and h.baseFilename == os.path.abspath(path):
            return

    handler = logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)
    handler.setLevel(logging.ERROR)
    handler.setFormatter(OneLineFormatter(ERROR_LOG_FORMAT, datefmt=ERROR_LOG_DATEFMT))
    log.addHandler(handler)

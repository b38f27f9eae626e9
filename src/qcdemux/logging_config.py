import logging
import logging.handlers
from pathlib import Path

from rich.logging import RichHandler

# Formatting
FORMAT = "%(levelname)s\t[%(asctime)s]\t[%(filename)s:%(lineno)d]\t%(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
formatter = logging.Formatter(FORMAT, DATE_FORMAT)

# Configure logger
logger = logging.getLogger("qcdemux")
logger.setLevel(logging.INFO)

# Console output (level, time and source are rendered by rich)
console_handler = RichHandler(show_path=True, markup=False, log_time_format=f"[{DATE_FORMAT}]")
console_handler.setFormatter(logging.Formatter("%(message)s"))
logger.addHandler(console_handler)


# Function to get file handler
def get_log_file_handler(log_file: Path) -> logging.Handler:
    # Keep a single log file per run directory, rotate when it grows large
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(log_file, maxBytes=10_000_000, backupCount=8)
    file_handler.setFormatter(formatter)
    return file_handler

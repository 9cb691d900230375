import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

#-- configure the root logger once; every module then uses logging.getLogger(<name>)
def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    formatter = logging.Formatter(LOG_FORMAT)
    handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level.upper())

    if not root.hasHandlers():
        root.addHandler(handler)

    return root

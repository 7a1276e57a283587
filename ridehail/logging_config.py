import logging
from pathlib import Path

from ridehail.settings import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILENAME = "ridehail.log"

_LOGGING_INITIALIZED = False


def setup_logging(settings: Settings) -> None:
    """Configure the root logger once; repeated calls only adjust the level."""
    global _LOGGING_INITIALIZED

    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL)

    if _LOGGING_INITIALIZED:
        return

    formatter = logging.Formatter(LOG_FORMAT)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    root.addHandler(stream)

    log_path = Path(settings.LOG_DIR) / LOG_FILENAME
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    _LOGGING_INITIALIZED = True

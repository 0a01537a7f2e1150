# platestream/LoggingSetup.py
import sys
import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(message)s'
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# Third-party loggers that are too chatty at DEBUG (websockets logs every frame)
_QUIET_LOGGERS = ("websockets",)


def _attach(root: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)


def setup_logging(logs_dir: Path, verbose: bool = False, log_name: str = "platestream.log",
                  console: bool = True) -> None:
    """
    Route all platestream logging to a rotating file and, optionally, stdout.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate output.

    Args:
        logs_dir: Directory for log files; created if missing
        verbose: DEBUG when True, INFO otherwise
        log_name: File name inside logs_dir (server.log / client.log)
        console: Also write to stdout
    """
    logs_dir = Path(logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / log_name
    level = logging.DEBUG if verbose else logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    _attach(root, RotatingFileHandler(log_file, maxBytes=LOG_MAX_BYTES,
                                      backupCount=LOG_BACKUP_COUNT, encoding='utf-8'), level)
    if console:
        _attach(root, logging.StreamHandler(sys.stdout), level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))

    logging.info("Logging initialized: level=%s, file=%s", logging.getLevelName(level), log_file)

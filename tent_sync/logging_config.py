import logging
import os
import sys

from tqdm import tqdm

LOGGER_NAME = "tent_sync"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# httpx logs every request at INFO, which would drown the per-component lines.
NOISY_LOGGERS = ("httpx", "httpcore")


class TqdmLoggingHandler(logging.Handler):
    """
    Writes records with tqdm.write so the "Downloading translations" bar is
    redrawn below each message instead of being split by it.
    """

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception:
            self.handleError(record)


def _file_handler(log_file_path: str) -> logging.Handler:
    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    return logging.FileHandler(log_file_path, encoding='utf-8')


def setup_logger(log_level_str: str, log_file_path: str, log_to_console: bool) -> logging.Logger:
    """
    Configure the ``tent_sync`` logger for a download run.

    Every module logs through a child of this logger, so one call captures
    the orchestrator, the cache, the Transifex client and the materializer.
    Calling it again replaces the handlers of the previous call.

    Args:
        log_level_str: Level name such as 'INFO' or 'DEBUG'. Unknown names fall back to INFO.
        log_file_path: File receiving every record; its folder is created if needed.
        log_to_console: Also echo records to stderr through tqdm.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level_str.upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    handlers = [_file_handler(log_file_path)]
    if log_to_console:
        handlers.append(TqdmLoggingHandler())

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger

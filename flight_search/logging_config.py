"""Logging setup: brief console output plus a detailed rotating session file"""
import glob
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logging(
    log_file: str = "logs/flight-search.log",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    keep_sessions: int = 5,
):
    """
    Configure the root logger with two destinations.

    - Console: level name + message (INFO by default)
    - File: timestamp, logger and line number (DEBUG by default)

    Every process start writes to a new "<stem>_<timestamp>.log" file next to
    log_file. Only the newest keep_sessions files survive startup, and each
    session file rotates at 10MB.

    Args:
        log_file: Base path of the log file (relative to the working directory)
        console_level: Console handler level
        file_level: File handler level
        keep_sessions: Number of session files to retain, including the new one
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    session_pattern = str(log_path.parent / f"{log_path.stem}_*.log")
    previous_sessions = sorted(glob.glob(session_pattern), reverse=True)  # Newest first
    for stale in previous_sessions[max(keep_sessions - 1, 0):]:
        try:
            Path(stale).unlink()
        except OSError:
            pass  # Another process may hold or already removed it

    started = datetime.now().strftime("%Y%m%d_%H%M%S")
    session_log = log_path.parent / f"{log_path.stem}_{started}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Handlers do the filtering
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))

    file_handler = RotatingFileHandler(
        session_log,
        mode='a',
        maxBytes=10*1024*1024,  # 10MB
        backupCount=10,
        encoding='utf-8'
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Chatty libraries stay in the file only
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.info(
        f"Logging configured: console={logging.getLevelName(console_level)}, "
        f"file={session_log} ({logging.getLevelName(file_level)})"
    )

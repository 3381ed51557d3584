"""
Sum Club Predictor — Logging Module
Structured logging for sessions, predictions, weight fits and service health.
"""

import logging
import os
import traceback
from datetime import datetime, timezone

import config

# ── Log directory setup ─────────────────────────────────────────────────────
LOG_DIR = config.LOG_DIR
os.makedirs(LOG_DIR, exist_ok=True)

# ── Date-stamped log files ──────────────────────────────────────────────────
today_str = datetime.now(timezone.utc).strftime("%Y-%m-%d")

# Main service log (all events)
SERVICE_LOG_FILE = os.path.join(LOG_DIR, f"sumclub_{today_str}.log")

# Append-only record of failed server starts
STARTUP_ERROR_FILE = os.path.join(LOG_DIR, "server-error.log")


def _setup_logger(name: str, log_file: str, level=logging.DEBUG) -> logging.Logger:
    """Create a logger with both file and console handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers on re-import
    if logger.handlers:
        return logger

    # File handler — detailed
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))

    # Console handler — clean output
    ch = logging.StreamHandler()
    ch.setLevel(logging.INFO)
    ch.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S"
    ))

    logger.addHandler(fh)
    logger.addHandler(ch)
    return logger


# The main service logger
log = _setup_logger("sumclub", SERVICE_LOG_FILE)


def log_new_session(record, prediction):
    """Log a settled session and the call made for the one after it."""
    log.info(
        f"[SESSION] {record.session_id} dice={'-'.join(str(d) for d in record.dice)} "
        f"total={record.total} -> {record.result} | "
        f"next={record.session_id + 1} predict={prediction.display} "
        f"conf={prediction.confidence:.0%}"
    )


def log_prediction(next_session, prediction):
    """Log the standing prediction (startup and manual refreshes)."""
    kind = "vote" if prediction.informed else "fallback"
    log.info(
        f"[PREDICT] session={next_session if next_session is not None else 'n/a'} "
        f"predict={prediction.display} conf={prediction.confidence:.0%} ({kind})"
    )


def log_fit(window_size: int, hits: dict, weights: dict):
    """Log the startup backtest result."""
    if not hits:
        log.info(f"[FIT] window={window_size} too short -- weights left uniform")
        return
    ranked = sorted(weights.items(), key=lambda item: item[1], reverse=True)
    top = ", ".join(f"{sid}={w:.3f}" for sid, w in ranked[:3])
    log.info(f"[FIT] window={window_size} strategies={len(weights)} top: {top}")
    log.debug(f"[FIT] hits={hits}")


def log_error(context: str, error: Exception):
    """Log an error with context."""
    log.error(f"[ERROR] {context}: {type(error).__name__}: {error}")


def log_heartbeat(sessions: int, last_session, polls: int, errors: int):
    """Periodic health log."""
    log.info(
        f"[HEARTBEAT] sessions={sessions} last={last_session} "
        f"polls={polls} errors={errors}"
    )


def log_startup_failure(error: Exception):
    """Append a failed server start to the startup error log."""
    block = (
        "\n================= SERVER ERROR =================\n"
        f"Time: {datetime.now(timezone.utc).isoformat()}\n"
        f"Error: {type(error).__name__}: {error}\n"
        f"Stack: {''.join(traceback.format_exception(type(error), error, error.__traceback__))}"
        "=================================================\n"
    )
    log.error(block)
    try:
        with open(STARTUP_ERROR_FILE, "a", encoding="utf-8") as f:
            f.write(block)
    except OSError as e:
        log.error(f"Failed to write startup error log: {e}")

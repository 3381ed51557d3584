"""
Sum Club Predictor — Configuration Module
Loads all settings from .env and provides typed access to service parameters.

The service polls the Sum Club dice feed, keeps an adaptive ensemble of
pattern strategies warm on the session history, and serves the standing
Tai/Xiu prediction over HTTP.
"""

import os
from dotenv import load_dotenv

from models import EnsembleConfig

# Load .env from the same directory as this file
load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"))


# ── Upstream Feed ───────────────────────────────────────────────────────────
FEED_URL = os.getenv("FEED_URL", "https://taixiu1.gsum01.com/api/luckydice1/GetSoiCau")
FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "10"))     # seconds per request

# ── Polling ─────────────────────────────────────────────────────────────────
POLL_INTERVAL = float(os.getenv("POLL_INTERVAL", "5"))      # seconds between fetches
HEARTBEAT_INTERVAL = int(os.getenv("HEARTBEAT_INTERVAL", "300"))

# ── HTTP Server ─────────────────────────────────────────────────────────────
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
SERVICE_NAME = os.getenv("SERVICE_NAME", "Sum Club Predictor")
PUBLIC_IP_URL = os.getenv("PUBLIC_IP_URL", "https://ifconfig.me/ip")

# ── Ensemble ────────────────────────────────────────────────────────────────
EMA_ALPHA = float(os.getenv("EMA_ALPHA", "0.1"))            # weight smoothing factor
MIN_WEIGHT = float(os.getenv("MIN_WEIGHT", "0.001"))        # floor for every strategy
HISTORY_WINDOW = int(os.getenv("HISTORY_WINDOW", "500"))    # records used by the startup fit

# ── Display ─────────────────────────────────────────────────────────────────
DISPLAY_HISTORY_LIMIT = int(os.getenv("DISPLAY_HISTORY_LIMIT", "200"))  # /api/history cap
TERMINAL_DASHBOARD = os.getenv("TERMINAL_DASHBOARD", "false").lower() == "true"

# ── Logs ────────────────────────────────────────────────────────────────────
LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs"))


def ensemble_config() -> EnsembleConfig:
    """Build the ensemble settings from the environment."""
    return EnsembleConfig(
        ema_alpha=EMA_ALPHA,
        min_weight=MIN_WEIGHT,
        history_window=HISTORY_WINDOW,
    )


def validate_config() -> list[str]:
    """Return a list of configuration errors. Empty list = all good."""
    errors = []
    if not FEED_URL:
        errors.append("FEED_URL is not set")
    if POLL_INTERVAL <= 0:
        errors.append(f"POLL_INTERVAL={POLL_INTERVAL} must be > 0")
    if FETCH_TIMEOUT <= 0:
        errors.append(f"FETCH_TIMEOUT={FETCH_TIMEOUT} must be > 0")
    if not 0 < EMA_ALPHA < 1:
        errors.append(f"EMA_ALPHA={EMA_ALPHA} out of range (0, 1)")
    if MIN_WEIGHT <= 0:
        errors.append(f"MIN_WEIGHT={MIN_WEIGHT} must be > 0")
    if HISTORY_WINDOW < 1:
        errors.append(f"HISTORY_WINDOW={HISTORY_WINDOW} must be >= 1")
    if DISPLAY_HISTORY_LIMIT < 1:
        errors.append(f"DISPLAY_HISTORY_LIMIT={DISPLAY_HISTORY_LIMIT} must be >= 1")
    if not 0 < PORT < 65536:
        errors.append(f"PORT={PORT} out of range")
    return errors


def print_config_summary():
    """Print a human-readable summary of the active configuration."""
    dashboard = "ON" if TERMINAL_DASHBOARD else "OFF"
    feed = FEED_URL if len(FEED_URL) <= 35 else FEED_URL[:32] + "..."
    print(f"""
+======================================================+
|          SUM CLUB PREDICTOR -- CONFIGURATION         |
+======================================================+
|  Feed URL:          {feed:<33}|
|  Poll interval:     {str(POLL_INTERVAL) + 's':<33}|
|  Listen:            {HOST + ':' + str(PORT):<33}|
+------------------------------------------------------+
|  ENSEMBLE                                            |
|  EMA alpha:         {EMA_ALPHA:<33}|
|  Min weight:        {MIN_WEIGHT:<33}|
|  Fit window:        {HISTORY_WINDOW:<33}|
+------------------------------------------------------+
|  History shown:     {DISPLAY_HISTORY_LIMIT:<33}|
|  Terminal UI:       {dashboard:<33}|
+======================================================+
""")

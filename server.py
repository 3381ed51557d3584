"""
Sum Club Predictor — HTTP Server
Read-only JSON API over the feed coordinator, plus a Socket.IO push of
every new prediction.

Routes:
  GET /                  health check
  GET /api/prediction    last session, pattern digest, next-session call
  GET /api/history       display history, newest first
  GET /api/weights       strategy weights and current votes

The earlier /api/taixiumd5/sumclub and /api/taixiumd5/history paths are
still served as aliases of /api/prediction and /api/history. Their field
names are now the English keys listed in those payloads.
"""

import logging
import signal
import sys

from flask import Flask, jsonify
from flask_socketio import SocketIO

import config
from coordinator import FeedCoordinator
from dashboard import dash_log, start_dashboard, stop_dashboard
from feed_client import fetch_public_ip
from logger import log, log_startup_failure

COORDINATOR_KEY = "FEED_COORDINATOR"

# Paths served by the earlier deployment, kept for existing clients
LEGACY_PREDICTION_PATH = "/api/taixiumd5/sumclub"
LEGACY_HISTORY_PATH = "/api/taixiumd5/history"


def create_app(coordinator: FeedCoordinator) -> Flask:
    """Build the Flask app around one coordinator instance."""
    app = Flask(__name__)
    app.config[COORDINATOR_KEY] = coordinator
    socketio = SocketIO(app, cors_allowed_origins="*", async_mode="threading")

    def _push(payload: dict):
        socketio.emit("prediction", payload)

    coordinator.add_listener(_push)

    @app.after_request
    def allow_any_origin(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    @app.route("/")
    def index():
        return jsonify({"status": "ok", "msg": "server is running"})

    @app.route("/api/prediction")
    @app.route(LEGACY_PREDICTION_PATH)
    def prediction():
        return jsonify(coordinator.prediction_payload())

    @app.route("/api/history")
    @app.route(LEGACY_HISTORY_PATH)
    def history():
        records = coordinator.display_history()
        if not records:
            return jsonify({"message": "no history yet."})
        return jsonify([r.to_dict() for r in records])

    @app.route("/api/weights")
    def weights():
        data = coordinator.manager.stats()
        data["polls"] = coordinator.polls
        data["errors"] = coordinator.errors
        return jsonify(data)

    @socketio.on("connect")
    def on_connect():
        socketio.emit("prediction", coordinator.prediction_payload())

    return app


# ══════════════════════════════════════════════════════════════════════════════
#  ENTRY POINT
# ══════════════════════════════════════════════════════════════════════════════

def main():
    print(r"""
    +===================================================+
    |        SUM CLUB PREDICTOR -- TAI / XIU API         |
    |   Adaptive strategy ensemble over the dice feed    |
    +===================================================+
    """)

    errors = config.validate_config()
    if errors:
        log.error("Configuration errors:")
        for e in errors:
            log.error(f"  - {e}")
        log.error("Fix these in .env and restart. Exiting.")
        sys.exit(1)
    config.print_config_summary()

    # Suppress Flask's default request logs
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    coordinator = FeedCoordinator()
    app = create_app(coordinator)
    socketio = app.extensions["socketio"]

    def shutdown_handler(signum, frame):
        log.info("Shutdown signal received. Cleaning up...")
        coordinator.stop()
        stop_dashboard()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)

    coordinator.start()
    if config.TERMINAL_DASHBOARD:
        coordinator.add_listener(
            lambda payload: dash_log(
                f"Session {payload['previous_session']} -> {payload['result']} | "
                f"next {payload['current_session']}: {payload['prediction']} "
                f"({payload['confidence']})",
                style="bold cyan",
            )
        )
        start_dashboard(coordinator)

    public_ip = fetch_public_ip()
    log.info(f"Local:   http://localhost:{config.PORT}/")
    log.info(f"Network: http://{public_ip}:{config.PORT}/")
    log.info(f"GET /api/prediction -> http://{public_ip}:{config.PORT}/api/prediction")
    log.info(f"GET /api/history    -> http://{public_ip}:{config.PORT}/api/history")

    try:
        socketio.run(app, host=config.HOST, port=config.PORT, debug=False,
                     allow_unsafe_werkzeug=True)
    except Exception as e:
        log_startup_failure(e)
        coordinator.stop()
        stop_dashboard()
        sys.exit(1)


if __name__ == "__main__":
    main()

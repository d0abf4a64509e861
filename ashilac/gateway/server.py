"""
API gateway: combines the auth, events, formations, and dashboard blueprints
and starts the chat relay alongside them.
This is the local entrypoint for development.
"""

import asyncio
import logging
import os
import threading

from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

from ashilac.auth_service.routes import auth_bp
from ashilac.events_service.routes import events_bp
from ashilac.formations_service.routes import formations_bp
from ashilac.dashboard_service.routes import dashboard_bp
from ashilac.chat_service.server import start_chat_server

load_dotenv()

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")


def create_app() -> Flask:
    """
    Application factory for creating the Flask app.

    Returns:
        Flask: The configured Flask application.
    """
    app = Flask(__name__)

    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    CORS(app, resources={
        r"/api/*": {
            "origins": origins,
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }
    })

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(events_bp, url_prefix="/api/events")
    app.register_blueprint(formations_bp, url_prefix="/api/formations")
    app.register_blueprint(dashboard_bp, url_prefix="/api/dashboard")

    logging.info("All blueprints registered successfully.")

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"status": "gateway_ok"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    # Unmatched routes, including non-numeric ids in /<int:...> paths
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    return app


def _run_chat_server() -> None:
    try:
        asyncio.run(start_chat_server())
    except Exception:
        logging.exception("Chat relay stopped")


def main() -> None:
    """Start the chat relay on a background thread, then serve HTTP."""
    threading.Thread(target=_run_chat_server, name="chat-relay", daemon=True).start()

    app = create_app()
    port = int(os.getenv("PORT", 3000))
    logging.info(f"Server started on port {port}")
    app.run(host="0.0.0.0", port=port, threaded=True)


if __name__ == "__main__":
    main()

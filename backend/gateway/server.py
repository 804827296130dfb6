"""
API gateway: combines the users and events blueprints.
This is the local entrypoint for development.
"""

import logging
import os
from typing import List

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

load_dotenv()

# Basic console logging during API requests
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="[%(levelname)s] %(asctime)s - %(message)s",
)

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",  # Local frontend dev server
    "http://localhost:5500",  # Local development (some editors)
    "http://localhost:8080",  # Local static server
]


def cors_origins() -> List[str]:
    """Origins allowed by CORS, from CORS_ORIGINS (comma-separated) if set."""
    raw = os.getenv("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or DEFAULT_CORS_ORIGINS


def create_app() -> Flask:
    """
    Application factory for creating the Flask app.

    Returns:
        Flask: The configured Flask application.
    """
    app = Flask(__name__)

    CORS(app, resources={
        r"/*": {
            "origins": cors_origins(),
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "expose_headers": ["Content-Type", "Authorization"],
            "supports_credentials": True
        }
    })

    # --- REGISTER BLUEPRINTS ---
    from backend.events_service.routes import events_bp
    from backend.users_service.routes import users_bp

    app.register_blueprint(users_bp, url_prefix="/users")
    app.register_blueprint(events_bp, url_prefix="/events")

    logging.info("All blueprints registered successfully.")

    # --- JSON ERRORS ---
    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        logging.exception(f"Unhandled error: {error}")
        return jsonify({"error": "Internal Server Error"}), 500

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

    return app


if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("GATEWAY_PORT", 5050))
    app.run(host="0.0.0.0", port=port, debug=os.getenv("FLASK_DEBUG") == "1")

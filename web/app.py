"""
Web Application Factory

Creates the Flask app that serves the OAuth redirects and the crosspost API
for the frontend.
"""

import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import settings
from services.crosspost_coordinator import CrosspostCoordinator
from utils.exceptions import ConfigurationError, InvalidRequestError
from utils.logger import get_logger

logger = get_logger(__name__)


def create_app(config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """Application factory for creating the Flask app"""
    app = Flask(__name__)

    secret_key = settings.FLASK_SECRET_KEY
    if not secret_key:
        logger.warning("FLASK_SECRET_KEY is not set; using a random key. "
                       "Logins in progress will not survive a restart.")
        secret_key = secrets.token_hex(32)

    app.config.update(
        SECRET_KEY=secret_key,
        MAX_CONTENT_LENGTH=settings.MAX_CONTENT_LENGTH,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=settings.BACKEND_URL.startswith("https://"),
    )
    if config_overrides:
        app.config.update(config_overrides)

    # Enable CORS for the frontend
    CORS(app, origins=[settings.FRONTEND_URL], supports_credentials=True)

    app.extensions["crosspost_coordinator"] = CrosspostCoordinator()

    # Register blueprints
    from web.routes import combined_bp, linkedin_bp, twitter_bp

    app.register_blueprint(linkedin_bp)
    app.register_blueprint(twitter_bp)
    app.register_blueprint(combined_bp)

    @app.route('/api/health', methods=['GET'])
    def health():
        """Health check"""
        return jsonify({
            'status': 'OK',
            'message': 'Social Crossposter backend is running!',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'version': settings.APP_VERSION,
        })

    @app.errorhandler(InvalidRequestError)
    def handle_invalid_request(error):
        return jsonify({'status': 'error', 'error': error.detail or str(error)}), 400

    @app.errorhandler(ConfigurationError)
    def handle_configuration_error(error):
        logger.error(f"Configuration error: {error}")
        return jsonify({'status': 'error', 'error': 'Service is not configured for this platform'}), 503

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'status': 'error',
            'message': 'Not Found',
            'path': request.path,
        }), 404

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logger.error(f"Unhandled error on {request.path}: {error}", exc_info=True)
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    return app

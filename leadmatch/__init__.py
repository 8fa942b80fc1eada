"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints and the
error handler that renders LeadMatchError as JSON.
"""
import importlib
import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger('leadmatch')


def create_app():
    """Create and configure the Flask application."""
    from leadmatch.config import SECRET_KEY
    from leadmatch.errors import LeadMatchError, INFRASTRUCTURE
    from leadmatch.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    # Secret key for the session cookie shared with the account service
    app.secret_key = SECRET_KEY

    @app.errorhandler(LeadMatchError)
    def handle_engine_error(error):
        if error.kind == INFRASTRUCTURE:
            logger.error("%s during %s: %s", error.code, getattr(error, 'operation', None) or 'request',
                         error, exc_info=error)
            body = {'error': error.code, 'message': error.default_message}
        else:
            body = error.to_dict()
        return jsonify(body), error.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'error': error.name.upper().replace(' ', '_'), 'message': error.description}), error.code

    # Register blueprints
    from leadmatch.routes.health import bp as health_bp
    from leadmatch.routes.leads import bp as leads_bp
    from leadmatch.routes.proposals import bp as proposals_bp
    from leadmatch.routes.feed import bp as feed_bp
    from leadmatch.routes.preferences import bp as preferences_bp
    from leadmatch.routes.messages import bp as messages_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(leads_bp)
    app.register_blueprint(proposals_bp)
    app.register_blueprint(feed_bp)
    app.register_blueprint(preferences_bp)
    app.register_blueprint(messages_bp)

    # Import models so Base.metadata knows about them.
    # Schema is managed by Alembic, never create_all().
    importlib.import_module('leadmatch.models.lead')
    importlib.import_module('leadmatch.models.message')
    importlib.import_module('leadmatch.models.proposal')
    importlib.import_module('leadmatch.models.provider_profile')

    return app

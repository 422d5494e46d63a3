"""Flask application factory."""
import logging
import os
import traceback

from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect, CSRFError
from werkzeug.exceptions import HTTPException

from admin_edificios.database import init_db


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Initialize CSRF protection (token served by /api/csrf-token)
    CSRFProtect(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({'status': 'error', 'message': 'La sesión ha expirado. Recarga la página.'}), 400

    # Sentry error tracking in production
    sentry_dsn = app.config.get('SENTRY_DSN')
    if sentry_dsn and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Initialize database
    init_db(app)

    # Error Handlers
    from admin_edificios.exceptions import AppError

    @app.errorhandler(AppError)
    def handle_app_error(error):
        """Handle custom application exceptions."""
        app.logger.warning(f"AppError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Not Found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'status': 'error', 'message': 'Method Not Allowed'}), 405

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        if isinstance(error, HTTPException) and error.code and error.code < 500:
            return jsonify({'status': 'error', 'message': error.description}), error.code
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'message': 'Error interno del servidor'}), 500

    @app.after_request
    def log_request(response):
        if response.status_code >= 400:
            app.logger.info(f"{request.method} {request.path} -> {response.status_code}")
        return response

    # Register blueprints
    from admin_edificios.blueprints.main import main_bp
    from admin_edificios.blueprints.apartments import apartments_bp
    from admin_edificios.blueprints.residents import residents_bp
    from admin_edificios.blueprints.services import services_bp
    from admin_edificios.blueprints.transactions import transactions_bp
    from admin_edificios.blueprints.banks import banks_bp
    from admin_edificios.blueprints.logbook import logbook_bp
    from admin_edificios.blueprints.reports import reports_bp
    from admin_edificios.blueprints.uploads import uploads_bp
    from admin_edificios.blueprints.backups import backups_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(apartments_bp)
    app.register_blueprint(residents_bp)
    app.register_blueprint(services_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(banks_bp)
    app.register_blueprint(logbook_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(uploads_bp)
    app.register_blueprint(backups_bp)

    # Register CLI commands
    from admin_edificios.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app

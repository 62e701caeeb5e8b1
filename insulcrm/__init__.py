"""Flask application factory."""
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from insulcrm.database import init_db
import logging
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.json.sort_keys = False

    log_level = app.config.get('LOG_LEVEL', 'INFO')
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    app.logger.setLevel(log_level)

    # Sentry error tracking in production only
    sentry_dsn = app.config.get('SENTRY_DSN')
    if sentry_dsn and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Error Handlers
    from insulcrm.exceptions import CrmError

    @app.errorhandler(CrmError)
    def handle_crm_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"CrmError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"CrmError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from insulcrm.blueprints.main import main_bp
    from insulcrm.blueprints.catalog import catalog_bp
    from insulcrm.blueprints.quotes import quotes_bp
    from insulcrm.blueprints.companies import companies_bp
    from insulcrm.blueprints.clients import clients_bp
    from insulcrm.blueprints.opportunities import opportunities_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(quotes_bp)
    app.register_blueprint(companies_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(opportunities_bp)

    # Register CLI commands
    from insulcrm.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app

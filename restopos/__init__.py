"""Flask application factory."""
from flask import Flask, request, jsonify
from restopos.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize Sentry for error tracking in production
    if app.config.get('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Change notifications (Redis pub/sub)
    from restopos.services.notifier import init_notifier
    init_notifier(app)

    # Prometheus metrics instrumentation
    from restopos.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Load the acting user before each request
    from restopos.middleware import load_user

    @app.before_request
    def before_request_handler():
        load_user()

    # Error Handlers
    from restopos.exceptions import PosError
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(PosError)
    def handle_pos_error(error):
        """Handle custom application exceptions."""
        app.logger.warning(f"PosError [{error.status_code}] {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'status': 'error', 'kind': 'http', 'message': error.name}), error.code

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'kind': 'internal', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from restopos.blueprints.orders import orders_bp
    from restopos.blueprints.tables import tables_bp
    from restopos.blueprints.stock import stock_bp
    from restopos.blueprints.metrics import metrics_bp

    app.register_blueprint(orders_bp)
    app.register_blueprint(tables_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from restopos.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app

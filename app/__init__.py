"""
Flask application factory.

Creates and configures the Flask app, builds the data service client and
registers all blueprints.
"""
import os

from flask import Flask


def create_app(lead_client=None, features=None):
    """
    Create and configure the Flask application.

    lead_client: optional pre-built data service client (tests pass a fake).
                 Defaults to one built from SUPABASE_URL / SUPABASE_ANON_KEY.
    features:    optional MonitorFeatures; defaults to the MONITOR_* env vars.
    """
    from app.config import SECRET_KEY
    from app.extensions import init_extensions
    from app.logging_config import configure_logging
    from app.presentation import register_filters

    root = os.path.dirname(os.path.dirname(__file__))
    app = Flask(
        __name__,
        template_folder=os.path.join(root, 'templates'),
        static_folder=os.path.join(root, 'static'),
    )

    configure_logging(app)

    # Signs the session cookie that maps a browser to its monitor
    app.secret_key = SECRET_KEY

    register_filters(app)
    init_extensions(app, lead_client=lead_client, features=features)

    from app.routes.dashboard import bp as dashboard_bp
    from app.routes.monitor import bp as monitor_bp

    app.register_blueprint(dashboard_bp)
    app.register_blueprint(monitor_bp)

    return app

"""
Flask application for Contract Guardian.

Run locally with `flask --app main run` or in production via run_waitress.py.
"""
import logging

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from contract_guardian.config import Config
from contract_guardian.container import build_services
from contract_guardian.routes.api_routes import api_bp

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )


def create_app(config_class=Config, **service_overrides) -> Flask:
    """
    Create the Flask app and wire the analysis services.

    Args:
        config_class: Configuration object loaded with app.config.from_object.
        **service_overrides: llm_client, store or norm_index replacements (tests).
    """
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app.config['LOG_LEVEL'])

    # Deployed behind a reverse proxy (App Service, nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    app.extensions['contract_guardian'] = build_services(app.config, **service_overrides)
    app.register_blueprint(api_bp)

    if not app.config.get('OPENAI_API_KEY') and 'llm_client' not in service_overrides:
        logger.warning("OPENAI_API_KEY not set: analysis requests will fail")

    logger.info(f"Contract Guardian ready (model={app.config['OPENAI_MODEL']})")
    return app


app = create_app()


if __name__ == '__main__':
    app.run(debug=False, port=5000)

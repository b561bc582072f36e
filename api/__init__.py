from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from .extensions import init_auth
from models import storage  # DBStorage singleton (scoped_session)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Blog Auth API",
        "version": "1.0.0",
        "description": "Token issuance, refresh and OAuth2 login for the blog.",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(config_name: str | None = None, overrides: dict | None = None,
               oauth2_transport=None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
      - config_name picks the config class (dev/test/prod, else APP_ENV)
      - overrides are applied on top (tests use them for DATABASE_URL)
      - oauth2_transport replaces the httpx transport used to reach providers
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)

    storage.configure(
        app.config["DATABASE_URL"],
        timeout=app.config["STORE_TIMEOUT_SECONDS"],
        echo=app.config.get("SQL_ECHO", False),
    )

    # Authentication filter, route policy and auth components
    init_auth(app, oauth2_transport=oauth2_transport)

    from .health import bp as health_bp
    from .token import bp as token_bp
    from .oauth2 import bp as oauth2_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(token_bp)
    app.register_blueprint(oauth2_bp)
    app.register_blueprint(users_bp)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Blog Auth API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app

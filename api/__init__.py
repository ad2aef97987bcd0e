from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import DEV_JWT_SECRET, get_config
from .errors import register_error_handlers
from models import MemoryCredentialStore, MemoryRefreshSessionStore
from services import AuthService
from utils.security import Clock, now_ms

__version__ = "1.0.0"

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Token Auth Service",
        "version": __version__,
        "description": "Issues short-lived access tokens and rotating refresh tokens.",
    },
    "basePath": "/",
    "schemes": ["http"],
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


def create_app(
    config_name: str | None = None,
    *,
    auth_service: AuthService | None = None,
    clock: Clock = now_ms,
) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    The stores are in-memory and live as long as the app; tests pass their
    own clock (or a fully built AuthService) to control time and hashing cost.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))

    if app.config.get("REQUIRE_STRONG_SECRET") and app.config["JWT_SECRET"] == DEV_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set in production")

    if auth_service is None:
        auth_service = AuthService(
            MemoryCredentialStore(),
            MemoryRefreshSessionStore(clock=clock),
            app.config["JWT_SECRET"],
            access_ttl=app.config["ACCESS_TOKEN_EXPIRES"],
            refresh_ttl=app.config["REFRESH_TOKEN_EXPIRES"],
            clock=clock,
        )
    app.extensions["auth_service"] = auth_service

    # Cross-Origin Resource Sharing: cookies need credentials support
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Token Auth Service",
            "docs": "/apidocs/",
            "health": "/health",
        }, 200

    return app

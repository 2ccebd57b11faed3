from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from models.db_storage import DBStorage
from models.directories import LibraryDirectory, UserDirectory
from models.token_store import TokenStore
from utils.decorators import OAuthComponents
from utils.orchestrator import TokenOrchestrator
from utils.security import CredentialVerifier

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Library Catalog API",
        "version": "1.0.0",
        "description": "REST API for library catalogs, secured by opaque OAuth bearer tokens.",
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


def build_oauth(config) -> OAuthComponents:
    """Construct storage and the token core from a config mapping."""
    storage = DBStorage(
        config["DATABASE_URL"],
        timeout=config.get("STORE_TIMEOUT_SECONDS", 5.0),
        echo=config.get("DATABASE_ECHO", False),
    )
    storage.reload()
    verifier = CredentialVerifier(
        time_cost=config.get("ARGON2_TIME_COST"),
        memory_cost=config.get("ARGON2_MEMORY_COST"),
        parallelism=config.get("ARGON2_PARALLELISM"),
    )
    store = TokenStore(storage)
    users = UserDirectory(storage)
    orchestrator = TokenOrchestrator(
        store,
        users,
        verifier,
        access_token_lifetime=config["ACCESS_TOKEN_LIFETIME"],
        issue_refresh_token=config["ISSUE_REFRESH_TOKEN"],
        refresh_token_lifetime=config["REFRESH_TOKEN_LIFETIME"],
    )
    return OAuthComponents(
        storage=storage,
        store=store,
        users=users,
        libraries=LibraryDirectory(storage),
        verifier=verifier,
        orchestrator=orchestrator,
        superuser_scope=config.get("SUPERUSER_SCOPE", "superuser"),
    )


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Storage and the token orchestrator are built here and stored in
    app.extensions["oauth"]; nothing reaches for a module-level database handle.
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

    oauth = build_oauth(app.config)
    app.extensions["oauth"] = oauth

    from .health import bp as health_bp
    from .oauth import bp as oauth_bp
    from .users import bp as users_bp
    from .libraries import bp as libraries_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(oauth_bp, url_prefix="/api/v1/oauth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")
    app.register_blueprint(libraries_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        oauth.storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Library Catalog API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app

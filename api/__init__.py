from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from .log_setup import setup_logging
from models.db_storage import DBStorage
from models.revocation_store import RevocationStore, build_revocation_store
from models.user_store import UserStore
from services.auth_service import AuthService
from services.user_service import UserService
from utils.tokens import TokenIssuer

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "User Access API",
        "version": "1.0.0",
        "description": "Registration, login, rotating refresh tokens and role-based access to user accounts.",
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
    storage: DBStorage | None = None,
    revocation_store: RevocationStore | None = None,
) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    The token issuer, the credential store and the revocation store are built
    once here and handed to the services; views reach them through
    app.extensions. Tests may pass their own storage or revocation store.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    setup_logging(app.config.get("LOG_LEVEL"))

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)

    if storage is None:
        storage = DBStorage(app.config["DATABASE_URL"], echo=app.config.get("SQLALCHEMY_ECHO", False))
        storage.reload()
    if revocation_store is None:
        revocation_store = build_revocation_store(app.config)

    token_issuer = TokenIssuer(
        app.config["JWT_SECRET"],
        algorithm=app.config["JWT_ALGORITHM"],
        access_ttl=app.config["ACCESS_TOKEN_EXPIRES"],
        refresh_ttl=app.config["REFRESH_TOKEN_EXPIRES"],
        issuer=app.config["JWT_ISSUER"],
    )
    user_store = UserStore(storage)

    app.extensions["storage"] = storage
    app.extensions["token_issuer"] = token_issuer
    app.extensions["revocation_store"] = revocation_store
    app.extensions["auth_service"] = AuthService(
        user_store=user_store,
        token_issuer=token_issuer,
        revocation_store=revocation_store,
    )
    app.extensions["user_service"] = UserService(
        user_store=user_store,
        revocation_store=revocation_store,
    )

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(users_bp, url_prefix="/api/users")

    # Ensure the DB session is removed at the end of each request/app context
    # This calls scoped_session.remove(), preventing connection leaks
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to User Access API",
            "docs": "/apidocs/",
            "health": "/health",
        }, 200

    return app

from flask import Flask
from .config import async_database_url, get_config
from .extensions import db, migrate, cors, init_async_db
from .logger import configure_logging
from sqlalchemy import text
from dotenv import load_dotenv
from werkzeug.middleware.proxy_fix import ProxyFix


def create_app(config_name: str | None = None, config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__)

    # Ensure .env is loaded before reading env vars
    load_dotenv()
    config = get_config(config_name)
    for key, value in (config_overrides or {}).items():
        setattr(config, key, value)
    if "SQLALCHEMY_DATABASE_URI" in (config_overrides or {}) and "ASYNC_DATABASE_URI" not in config_overrides:
        config.ASYNC_DATABASE_URI = async_database_url(config.SQLALCHEMY_DATABASE_URI)
    app.config.from_object(config)
    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Honor proxy headers from Nginx for correct url_for(_external=True) scheme/host
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=1)  # type: ignore[assignment]

    # Init extensions
    cors.init_app(app)
    db.init_app(app)
    migrate.init_app(app, db)
    init_async_db(app)

    # Register blueprints (v1 API)
    from .apis.v1 import register_api
    register_api(app)

    from .modules.matches.cli import rescan_matches_command
    app.cli.add_command(rescan_matches_command)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/db-check")
    def db_check():
        try:
            db.session.execute(text("SELECT 1"))
            return {"db": "ok"}
        except Exception as e:
            return {"db": "error", "message": str(e)}, 500

    return app

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
import os

# Flask extensions singletons

db = SQLAlchemy()
migrate = Migrate()

# Configure allowed origins from env (comma-separated). In production avoid wildcard.
_allowed = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
_origins = [o.strip() for o in _allowed.split(",") if o.strip()] if _allowed else []
if not _origins:
    # Fallback defaults for local development
    env = os.getenv("FLASK_ENV", "development").lower()
    if env != "production":
        _origins = [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
cors = CORS(resources={r"*": {"origins": _origins}})

_SESSION_FACTORY_KEY = "lostfound.async_session_factory"


def create_session_factory(url: str) -> async_sessionmaker[AsyncSession]:
    """Build the async session factory used by the matching core.

    NullPool: each Flask async view (and each Celery job) runs its own event
    loop, so connections must not outlive the loop that opened them.
    """
    engine = create_async_engine(url, poolclass=NullPool)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def init_async_db(app) -> None:
    app.extensions[_SESSION_FACTORY_KEY] = create_session_factory(app.config["ASYNC_DATABASE_URI"])


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return current_app.extensions[_SESSION_FACTORY_KEY]

"""
Connections for the two stores this service uses.

Office records live in MongoDB. The secure key-value table lives in a small
relational database: PostgreSQL when POSTGRES_URL is set and reachable,
otherwise a local SQLite file.
"""

import os
import logging
from contextlib import contextmanager
from typing import Optional, Any, Dict, Iterator

from sqlalchemy import create_engine, text, Engine
from sqlalchemy.orm import sessionmaker, Session
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from ..config import get_config
from .models import Base

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_PATH = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "../../../data/secure_store.db")
)

_engine: Optional[Engine] = None
_sessions: Optional[sessionmaker] = None
_mongo_client: Optional[MongoClient] = None
_mongo_db: Optional[Database] = None


def _connect_postgres(url: str) -> Optional[Engine]:
    try:
        engine = create_engine(url, pool_pre_ping=True)
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Secure store using PostgreSQL")
        return engine
    except Exception as e:
        logger.warning(f"PostgreSQL unavailable, falling back to SQLite: {e}")
        return None


def _connect_sqlite() -> Engine:
    path = get_config().sqlite_path or DEFAULT_SQLITE_PATH
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    logger.info(f"Secure store using SQLite at {path}")
    # Subscription and dashboard threads share the engine
    return create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})


def get_secure_engine() -> Engine:
    """Engine for the secure key-value table, created with its schema on first use."""
    global _engine, _sessions

    if _engine is None:
        postgres_url = get_config().postgres_url
        _engine = (postgres_url and _connect_postgres(postgres_url)) or _connect_sqlite()
        Base.metadata.create_all(bind=_engine)
        _sessions = sessionmaker(bind=_engine, autoflush=False)
    return _engine


@contextmanager
def secure_session() -> Iterator[Session]:
    """Session that commits on success and rolls back on error."""
    get_secure_engine()
    session = _sessions()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def set_mongo_client(client: Any, db_name: Optional[str] = None):
    """Install an already-connected client (tests pass a mongomock client)."""
    global _mongo_client, _mongo_db

    _mongo_client = client
    _mongo_db = client[db_name or get_config().mongo_db] if client is not None else None


def get_mongo_database() -> Optional[Database]:
    """The office database, or None while MongoDB is unreachable."""
    if _mongo_db is not None:
        return _mongo_db

    config = get_config()
    try:
        client = MongoClient(config.mongo_url, serverSelectionTimeoutMS=5000, connectTimeoutMS=5000)
        client.admin.command("ping")
    except Exception as e:
        logger.warning(f"MongoDB connection failed: {e}")
        return None

    logger.info("MongoDB connection established")
    set_mongo_client(client)
    return _mongo_db


def get_mongo_collection(collection_name: str) -> Optional[Collection]:
    db = get_mongo_database()
    return db[collection_name] if db is not None else None


def get_database_info() -> Dict[str, Any]:
    return {
        "secure_store_db": get_secure_engine().dialect.name,
        "mongo_available": get_mongo_database() is not None,
        "mongo_db": get_config().mongo_db,
    }


def init_databases():
    get_secure_engine()
    if get_mongo_database() is None:
        logger.warning("MongoDB not available - document operations will fail until it is reachable")
    logger.info(f"Database status: {get_database_info()}")


def close_databases():
    global _engine, _sessions, _mongo_client, _mongo_db

    if _engine is not None:
        _engine.dispose()
    if _mongo_client is not None:
        _mongo_client.close()
    _engine = _sessions = _mongo_client = _mongo_db = None

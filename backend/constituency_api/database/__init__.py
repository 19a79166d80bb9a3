"""
Database configuration and initialization module.
Provides the MongoDB document store and the relational secure key-value store.
"""

from .database_config import (
    get_secure_engine,
    secure_session,
    set_mongo_client,
    get_mongo_database,
    get_mongo_collection,
    get_database_info,
    init_databases,
    close_databases,
)

from .models import Base, SecureItem
from .mongo_service import MongoService, get_mongo_service
from .secure_store import SecureStore, get_secure_store

__all__ = [
    'get_secure_engine',
    'secure_session',
    'set_mongo_client',
    'get_mongo_database',
    'get_mongo_collection',
    'get_database_info',
    'init_databases',
    'close_databases',
    'Base',
    'SecureItem',
    'MongoService',
    'get_mongo_service',
    'SecureStore',
    'get_secure_store'
]

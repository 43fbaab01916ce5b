"""
SQL storage for Assessly.
"""

from assessly.database.base import Base, ModelBase, metadata
from assessly.database.init_db import (
    initialize_database,
    close_database,
    get_engine,
    get_session_factory,
    create_all,
    drop_all,
    run_migrations,
)

__all__ = [
    'Base',
    'ModelBase',
    'metadata',
    'initialize_database',
    'close_database',
    'get_engine',
    'get_session_factory',
    'create_all',
    'drop_all',
    'run_migrations',
]

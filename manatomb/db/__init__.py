from manatomb.db.database import (
    as_utc,
    async_session_factory,
    get_session_factory,
    init_db,
    transaction,
    utcnow,
)

__all__ = [
    "as_utc",
    "async_session_factory",
    "get_session_factory",
    "init_db",
    "transaction",
    "utcnow",
]

"""Database infrastructure for the back-office kernel."""

from backoffice_kernel.db.base import Base, TrackedBase, UUIDString
from backoffice_kernel.db.engine import (
    create_tables,
    drop_tables,
    engine_options,
    get_engine,
    get_session,
    init_engine_from_config,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "create_tables",
    "drop_tables",
    "engine_options",
    "get_engine",
    "get_session",
    "init_engine_from_config",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]

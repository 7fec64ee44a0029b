# app/services/schema_guard.py
import logging
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import Base
from app.exceptions import SchemaMissing, StorageUnavailable
from app.models import CHAT_TABLES

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Postgres SQLSTATE for undefined_table
UNDEFINED_TABLE = "42P01"


def missing_relation(exc: BaseException) -> Optional[SchemaMissing]:
    """
    Translate a store error into SchemaMissing if it reports a missing table.

    Checks the DBAPI SQLSTATE first (psycopg2 exposes it as ``pgcode``,
    psycopg 3 as ``sqlstate``), then falls back to the message text that
    Postgres and SQLite use for unknown tables.
    """
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == UNDEFINED_TABLE:
        return SchemaMissing(str(orig))

    message = str(orig if orig is not None else exc).lower()
    if "no such table" in message:
        return SchemaMissing(message)
    if "relation" in message and "does not exist" in message:
        return SchemaMissing(message)
    return None


class SchemaGuard:
    """
    Runs store operations and repairs a cold store on the way.

    When an operation fails because a chat table is missing, the guard
    creates the chat tables (IF NOT EXISTS) and runs the operation one more
    time. A second missing-table failure is fatal.
    """

    def __init__(self, db: Session):
        self.db = db

    def ensure_schema(self) -> None:
        """Create the conversations, participants and messages tables if absent"""
        Base.metadata.create_all(bind=self.db.get_bind(), tables=CHAT_TABLES, checkfirst=True)

    def run(self, operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return operation(*args, **kwargs)
        except SQLAlchemyError as e:
            self.db.rollback()
            schema_error = missing_relation(e)
            if schema_error is None:
                raise

        logger.warning(f"Chat schema missing ({schema_error.detail}); provisioning tables and retrying")
        self.ensure_schema()

        try:
            return operation(*args, **kwargs)
        except SQLAlchemyError as e:
            self.db.rollback()
            if missing_relation(e) is None:
                raise
            logger.error(f"Chat schema still missing after provisioning: {str(e)}")
            raise StorageUnavailable("Chat storage is unavailable") from e

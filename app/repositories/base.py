"""Shared commit/rollback handling and error logging for repositories."""

import functools
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session


logger = logging.getLogger("shenv.repositories")


class BaseRepository:
    """Holds the session, wraps writes in commit-or-rollback and logs read failures."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _write(self, operation: str) -> Iterator[Session]:
        """
        Run a write and commit it.

        Usage:
            with self._write("upsert sheet"):
                self.db.add(sheet)
        """
        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Database error during {operation}")
            raise

    @contextmanager
    def _read(self, operation: str) -> Iterator[Session]:
        """Log a failed query and re-raise the driver error unchanged."""
        try:
            yield self.db
        except SQLAlchemyError:
            logger.exception(f"Database error during {operation}")
            raise


def read_operation(operation: str):
    """
    Run a repository method inside BaseRepository._read().

    Usage:
        @read_operation("find sheet")
        def find_by_id(self, sheet_id): ...
    """
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self: BaseRepository, *args, **kwargs):
            with self._read(operation):
                return method(self, *args, **kwargs)
        return wrapper
    return decorator

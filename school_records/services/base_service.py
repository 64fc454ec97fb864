# school_records/services/base_service.py
"""Base service holding the session and the transaction boundary."""
import contextlib
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import DBAPIError, IntegrityError
from typing import Type, TypeVar, Generic, AsyncIterator

from ..core.exceptions import TransactionFailureError

logger = logging.getLogger(__name__)

# Define generic type
T = TypeVar('T')


def is_unique_violation(error: IntegrityError) -> bool:
    """True when the integrity failure is a uniqueness clash, not a dangling reference"""
    orig = getattr(error, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == "23505"
    return "unique" in str(orig if orig is not None else error).lower()


class BaseService(Generic[T]):
    def __init__(self, model: Type[T], db: AsyncSession):
        self.model = model
        self.db = db

    @contextlib.asynccontextmanager
    async def atomic(self, operation: str) -> AsyncIterator[AsyncSession]:
        """All-or-nothing unit of work.

        Anything raised inside the block rolls the transaction back.
        Integrity errors propagate for the caller to classify; other driver
        failures surface as TransactionFailureError.
        """
        try:
            async with self.db.begin():
                yield self.db
        except IntegrityError:
            raise
        except DBAPIError as e:
            logger.error(f"{operation} failed to commit: {e}")
            raise TransactionFailureError(
                f"{operation} could not be committed; retry the operation",
                details={"cause": type(e.orig).__name__ if e.orig is not None else type(e).__name__}
            ) from e

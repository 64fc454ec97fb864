# school_records/services/access_policy.py
import abc
import logging
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..core.exceptions import PermissionDeniedError, CollaboratorFailureError
from ..models.teacher import Teacher

logger = logging.getLogger(__name__)


class AccessPolicy(abc.ABC):
    @abc.abstractmethod
    async def ensure_can_record(self, staff_id: UUID) -> None:
        """Raise PermissionDeniedError unless staff_id may create result records."""


class StaffAccessPolicy(AccessPolicy):
    """Only active, non-deleted teachers may create or roll over results."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def ensure_can_record(self, staff_id: UUID) -> None:
        stmt = select(Teacher.id).where(
            Teacher.id == staff_id,
            Teacher.is_active == True,
            Teacher.is_deleted == False
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Staff lookup failed for {staff_id}: {e}")
            raise CollaboratorFailureError("Staff directory is unavailable") from e

        if result.scalar_one_or_none() is None:
            raise PermissionDeniedError(
                f"Staff member {staff_id} is not allowed to record results",
                details={"staff_id": str(staff_id)}
            )

# school_records/services/student_directory.py
import abc
import logging
from typing import List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..core.exceptions import NotFoundError, CollaboratorFailureError
from ..models.student import Student

logger = logging.getLogger(__name__)


class StudentDirectory(abc.ABC):
    @abc.abstractmethod
    async def find_students_by_class(self, class_id: UUID) -> List[UUID]:
        """Ids of the students currently assigned to a class."""

    @abc.abstractmethod
    async def resolve_student_by_business_key(self, key: str) -> UUID:
        """Internal id for an admission number; NotFoundError when unknown."""


class SqlStudentDirectory(StudentDirectory):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_students_by_class(self, class_id: UUID) -> List[UUID]:
        stmt = (
            select(Student.id)
            .where(
                Student.current_class_id == class_id,
                Student.status == "active",
                Student.is_deleted == False
            )
            .order_by(Student.admission_number)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Student directory lookup failed for class {class_id}: {e}")
            raise CollaboratorFailureError("Student directory is unavailable") from e
        return list(result.scalars().all())

    async def resolve_student_by_business_key(self, key: str) -> UUID:
        stmt = select(Student.id).where(
            Student.admission_number == key,
            Student.is_deleted == False
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Student directory lookup failed for admission number {key}: {e}")
            raise CollaboratorFailureError("Student directory is unavailable") from e

        student_id = result.scalar_one_or_none()
        if student_id is None:
            raise NotFoundError("Student", key)
        return student_id

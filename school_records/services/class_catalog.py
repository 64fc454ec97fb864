# school_records/services/class_catalog.py
"""Class catalog: class id -> ordered mandatory subject ids."""
import abc
import logging
from typing import List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..core.exceptions import NotFoundError, CollaboratorFailureError
from ..models.class_model import ClassModel, ClassMandatorySubject

logger = logging.getLogger(__name__)


class ClassCatalog(abc.ABC):
    @abc.abstractmethod
    async def get_mandatory_subjects(self, class_id: UUID) -> List[UUID]:
        """Ordered, duplicate-free subject ids; NotFoundError for an unknown class."""


class SqlClassCatalog(ClassCatalog):
    """Reads the subject set from the database on every call; records are seeded from it."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_mandatory_subjects(self, class_id: UUID) -> List[UUID]:
        try:
            class_stmt = select(ClassModel.id).where(
                ClassModel.id == class_id,
                ClassModel.is_deleted == False
            )
            if (await self.db.execute(class_stmt)).scalar_one_or_none() is None:
                raise NotFoundError("Class", str(class_id))

            subjects_stmt = (
                select(ClassMandatorySubject.subject_id)
                .where(
                    ClassMandatorySubject.class_id == class_id,
                    ClassMandatorySubject.is_deleted == False
                )
                .order_by(ClassMandatorySubject.position, ClassMandatorySubject.created_at)
            )
            rows = (await self.db.execute(subjects_stmt)).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Class catalog lookup failed for {class_id}: {e}")
            raise CollaboratorFailureError("Class catalog is unavailable") from e

        # Order-preserving de-duplication
        return list(dict.fromkeys(rows))

# school_records/services/term_result_service.py
import logging
from collections.abc import Sequence
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar, Union
from uuid import UUID
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased, selectinload

from .base_service import BaseService, is_unique_violation
from .class_catalog import ClassCatalog, SqlClassCatalog
from .student_directory import StudentDirectory, SqlStudentDirectory
from .access_policy import AccessPolicy, StaffAccessPolicy
from ..core.exceptions import InvalidArgumentError, NotFoundError, ConflictError
from ..models.term_result import Term, TermResult, SubjectGrade
from ..schemas.term_result_schemas import (
    InitializeTermResult, ScoreUpdateItem, SingleScoreUpdate, validation_details
)

logger = logging.getLogger(__name__)

S = TypeVar('S', bound=BaseModel)


def validate_request(schema: Type[S], payload: Any) -> S:
    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise InvalidArgumentError(
            f"Invalid {schema.__name__} request",
            details={"errors": validation_details(e.errors())}
        ) from e


class TermResultService(BaseService[TermResult]):
    """Creates seeded term results and applies composite-key score edits."""

    def __init__(
        self,
        db: AsyncSession,
        catalog: Optional[ClassCatalog] = None,
        directory: Optional[StudentDirectory] = None,
        access_policy: Optional[AccessPolicy] = None,
    ):
        super().__init__(TermResult, db)
        self.catalog = catalog or SqlClassCatalog(db)
        self.directory = directory or SqlStudentDirectory(db)
        self.access_policy = access_policy or StaffAccessPolicy(db)

    # ------------------------------------------------------------------
    # Result initializer
    # ------------------------------------------------------------------

    async def initialize(
        self,
        student_id: UUID,
        class_id: UUID,
        academic_year: str,
        term: Union[Term, str],
        recorded_by: UUID,
    ) -> TermResult:
        """Create a result for the student seeded with a zero score per mandatory subject.

        Raises NotFoundError for an unknown class and ConflictError when a
        result already exists for (student, class, academic_year, term).
        """
        request = validate_request(InitializeTermResult, {
            "student_id": student_id,
            "class_id": class_id,
            "academic_year": academic_year,
            "term": term,
            "recorded_by": recorded_by,
        })

        try:
            async with self.atomic("Term result initialization"):
                await self.access_policy.ensure_can_record(request.recorded_by)
                subject_ids = await self.catalog.get_mandatory_subjects(request.class_id)
                return await self._insert_seeded(request, subject_ids)
        except IntegrityError as e:
            raise self._insert_error(e, request) from e

    async def create_seeded_result(self, request: InitializeTermResult, subject_ids: Iterable[UUID]) -> TermResult:
        """Initializer step for callers that already resolved the catalog and authorization"""
        try:
            async with self.atomic("Term result initialization"):
                return await self._insert_seeded(request, subject_ids)
        except IntegrityError as e:
            raise self._insert_error(e, request) from e

    async def _insert_seeded(self, request: InitializeTermResult, subject_ids: Iterable[UUID]) -> TermResult:
        grades = [
            SubjectGrade(subject_id=subject_id, position=position, ca_score=0.0, exam_score=0.0)
            for position, subject_id in enumerate(dict.fromkeys(subject_ids))
        ]
        result = TermResult(
            student_id=request.student_id,
            class_id=request.class_id,
            academic_year=request.academic_year,
            term=request.term.value,
            recorded_by=request.recorded_by,
            grades=grades,
        )
        self.db.add(result)
        await self.db.flush()

        logger.info(
            f"Initialized term result {result.id} for student {request.student_id} "
            f"({request.term.value} {request.academic_year}) with {len(grades)} subjects"
        )
        return await self._load(result.id)

    def _insert_error(self, error: IntegrityError, request: InitializeTermResult):
        key = {
            "student_id": str(request.student_id),
            "class_id": str(request.class_id),
            "academic_year": request.academic_year,
            "term": request.term.value,
        }
        if is_unique_violation(error):
            return ConflictError(
                "Term result already exists for this student, class, academic year and term",
                details=key
            )
        return NotFoundError("Student, class, subject or staff member referenced by the term result", details=key)

    # ------------------------------------------------------------------
    # Composite-key score updates
    # ------------------------------------------------------------------

    async def update_score(
        self,
        student_key: Union[UUID, str],
        academic_year: str,
        term: Union[Term, str],
        subject_id: UUID,
        ca_score: Optional[float] = None,
        exam_score: Optional[float] = None,
        class_id: Optional[UUID] = None,
    ) -> TermResult:
        """Set the CA and/or exam score of one subject in one term result.

        ``student_key`` is either the internal student id or an admission
        number, which is resolved through the student directory first.
        """
        payload = {
            "academic_year": academic_year,
            "term": term,
            "subject_id": subject_id,
            "ca_score": ca_score,
            "exam_score": exam_score,
            "class_id": class_id,
        }
        if isinstance(student_key, UUID):
            payload["student_id"] = student_key
        else:
            payload["admission_number"] = student_key
        request = validate_request(SingleScoreUpdate, payload)

        async with self.atomic("Score update"):
            student_id = request.student_id
            if student_id is None:
                student_id = await self.directory.resolve_student_by_business_key(request.admission_number)

            term_result_id = await self._apply_score(
                student_id, request.academic_year, request.term, request.subject_id,
                request.changes(), request.class_id
            )
            if term_result_id is None:
                raise NotFoundError(
                    "Term result for the specified term/subject",
                    details={
                        "student_id": str(student_id),
                        "academic_year": request.academic_year,
                        "term": request.term.value,
                        "subject_id": str(request.subject_id),
                    }
                )
            return await self._load(term_result_id)

    async def bulk_update_scores(self, updates: Sequence) -> int:
        """Apply a batch of composite-key score edits as one transaction.

        Every element is validated before anything is written; a single
        unresolvable key rolls the whole batch back with NotFoundError.
        """
        if isinstance(updates, (str, bytes, dict)) or not isinstance(updates, Sequence) or not updates:
            raise InvalidArgumentError("Updates must be a non-empty list of score updates")

        items: List[ScoreUpdateItem] = []
        invalid: List[Dict[str, Any]] = []
        for index, raw in enumerate(updates):
            try:
                items.append(raw if isinstance(raw, ScoreUpdateItem) else ScoreUpdateItem.model_validate(raw))
            except ValidationError as e:
                invalid.append({"index": index, "errors": validation_details(e.errors())})

        if invalid:
            raise InvalidArgumentError(
                f"{len(invalid)} of {len(updates)} score updates are invalid; nothing was applied",
                details={"invalid": invalid}
            )

        # Stable order across batches keeps row-lock acquisition consistent
        ordered = sorted(
            enumerate(items),
            key=lambda pair: (str(pair[1].student_id), pair[1].academic_year, pair[1].term.value, str(pair[1].subject_id))
        )

        async with self.atomic("Bulk score update"):
            for index, item in ordered:
                term_result_id = await self._apply_score(
                    item.student_id, item.academic_year, item.term, item.subject_id,
                    item.changes(), item.class_id
                )
                if term_result_id is None:
                    raise NotFoundError(
                        "Term result for the specified term/subject",
                        details={
                            "index": index,
                            "student_id": str(item.student_id),
                            "academic_year": item.academic_year,
                            "term": item.term.value,
                            "subject_id": str(item.subject_id),
                        }
                    )

        logger.info(f"Bulk score update applied {len(items)} updates")
        return len(items)

    async def _apply_score(
        self,
        student_id: UUID,
        academic_year: str,
        term: Term,
        subject_id: UUID,
        changes: Dict[str, float],
        class_id: Optional[UUID] = None,
    ) -> Optional[UUID]:
        """Single conditional UPDATE of the matched grade row; returns its term result id"""
        grade = aliased(SubjectGrade)
        target = (
            select(TermResult.id)
            .join(grade, grade.term_result_id == TermResult.id)
            .where(
                TermResult.student_id == student_id,
                TermResult.academic_year == academic_year,
                TermResult.term == term.value,
                TermResult.is_deleted == False,
                grade.subject_id == subject_id,
                grade.is_deleted == False
            )
        )
        if class_id is not None:
            target = target.where(TermResult.class_id == class_id)
        target = target.order_by(TermResult.created_at.desc(), TermResult.id).limit(1).scalar_subquery()

        stmt = (
            update(SubjectGrade)
            .where(
                SubjectGrade.term_result_id == target,
                SubjectGrade.subject_id == subject_id
            )
            .values(**changes)
            .returning(SubjectGrade.term_result_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _load(self, term_result_id: UUID) -> Optional[TermResult]:
        stmt = (
            select(TermResult)
            .options(selectinload(TermResult.grades))
            .where(TermResult.id == term_result_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_result(self, term_result_id: UUID) -> TermResult:
        result = await self._load(term_result_id)
        if result is None or result.is_deleted:
            raise NotFoundError("Term result", str(term_result_id))
        return result

    async def list_results(
        self,
        student_id: Optional[UUID] = None,
        class_id: Optional[UUID] = None,
        academic_year: Optional[str] = None,
        term: Optional[Union[Term, str]] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[TermResult]:
        """Result history ordered by academic year, term and creation time"""
        stmt = (
            select(TermResult)
            .options(selectinload(TermResult.grades))
            .where(TermResult.is_deleted == False)
        )
        if student_id:
            stmt = stmt.where(TermResult.student_id == student_id)
        if class_id:
            stmt = stmt.where(TermResult.class_id == class_id)
        if academic_year:
            stmt = stmt.where(TermResult.academic_year == academic_year)
        if term:
            try:
                stmt = stmt.where(TermResult.term == Term(term).value)
            except ValueError as e:
                raise InvalidArgumentError(f"Unknown term: {term}") from e

        stmt = stmt.order_by(
            TermResult.academic_year.asc(),
            TermResult.term.asc(),
            TermResult.created_at.asc()
        ).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return result.scalars().all()

# school_records/services/rollover_service.py
import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Union
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .class_catalog import ClassCatalog, SqlClassCatalog
from .student_directory import StudentDirectory, SqlStudentDirectory
from .access_policy import AccessPolicy, StaffAccessPolicy
from .term_result_service import TermResultService, validate_request
from ..core.config import settings
from ..core.exceptions import NotFoundError, ConflictError, RecordsException
from ..models.term_result import Term
from ..schemas.term_result_schemas import (
    InitializeTermResult, OpenNewTerm, RolloverReport, RolloverFailure
)

logger = logging.getLogger(__name__)


class RolloverOutcome(enum.Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


@dataclass
class StudentRollover:
    student_id: UUID
    outcome: RolloverOutcome
    error: Optional[BaseException] = None


def classify_failure(error: BaseException) -> RolloverOutcome:
    """An existing record already satisfies the rollover; anything else is a failure"""
    if isinstance(error, ConflictError):
        return RolloverOutcome.ALREADY_EXISTS
    return RolloverOutcome.FAILED


def describe_error(error: BaseException) -> str:
    if isinstance(error, RecordsException):
        return error.message
    return str(error) or type(error).__name__


class TermRolloverService:
    """Opens a new term by seeding zeroed results for every student of a class.

    Each student is initialized in its own session and transaction, so one
    student's failure never undoes another's record.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        catalog_factory: Callable[[AsyncSession], ClassCatalog] = SqlClassCatalog,
        directory_factory: Callable[[AsyncSession], StudentDirectory] = SqlStudentDirectory,
        policy_factory: Callable[[AsyncSession], AccessPolicy] = StaffAccessPolicy,
        concurrency: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.catalog_factory = catalog_factory
        self.directory_factory = directory_factory
        self.policy_factory = policy_factory
        self.concurrency = max(1, concurrency or settings.rollover_concurrency)

    async def open_new_term(
        self,
        class_id: UUID,
        next_academic_year: str,
        next_term: Union[Term, str],
        initiated_by: UUID,
    ) -> RolloverReport:
        request = validate_request(OpenNewTerm, {
            "next_academic_year": next_academic_year,
            "next_term": next_term,
            "initiated_by": initiated_by,
        })
        start_time = datetime.now()

        async with self.session_factory() as session:
            async with session.begin():
                await self.policy_factory(session).ensure_can_record(request.initiated_by)
                subject_ids = await self.catalog_factory(session).get_mandatory_subjects(class_id)
                student_ids = await self.directory_factory(session).find_students_by_class(class_id)

        if not student_ids:
            raise NotFoundError("Students for class", str(class_id))

        semaphore = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(*[
            self._initialize_student(
                semaphore,
                InitializeTermResult(
                    student_id=student_id,
                    class_id=class_id,
                    academic_year=request.next_academic_year,
                    term=request.next_term,
                    recorded_by=request.initiated_by,
                ),
                subject_ids,
            )
            for student_id in student_ids
        ])

        report = self._build_report(class_id, request, results)
        processing_time = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Opened {request.next_term.value} {request.next_academic_year} for class {class_id}: "
            f"{report.created} created, {report.already_existed} already existed, "
            f"{len(report.failed)} failed in {processing_time:.3f}s"
        )
        return report

    async def _initialize_student(
        self,
        semaphore: asyncio.Semaphore,
        request: InitializeTermResult,
        subject_ids: List[UUID],
    ) -> StudentRollover:
        async with semaphore:
            try:
                async with self.session_factory() as session:
                    await TermResultService(session).create_seeded_result(request, subject_ids)
            except Exception as e:
                outcome = classify_failure(e)
                if outcome is RolloverOutcome.FAILED:
                    logger.warning(f"Rollover failed for student {request.student_id}: {describe_error(e)}")
                return StudentRollover(request.student_id, outcome, e)
        return StudentRollover(request.student_id, RolloverOutcome.CREATED)

    @staticmethod
    def _build_report(class_id: UUID, request: OpenNewTerm, results: List[StudentRollover]) -> RolloverReport:
        created = sum(1 for r in results if r.outcome is RolloverOutcome.CREATED)
        already_existed = sum(1 for r in results if r.outcome is RolloverOutcome.ALREADY_EXISTS)
        failed = [
            RolloverFailure(
                student_id=r.student_id,
                error=describe_error(r.error),
                error_type=type(r.error).__name__,
            )
            for r in results if r.outcome is RolloverOutcome.FAILED
        ]
        return RolloverReport(
            class_id=class_id,
            academic_year=request.next_academic_year,
            term=request.next_term,
            processed=len(results),
            succeeded=created + already_existed,
            created=created,
            already_existed=already_existed,
            failed=failed,
        )

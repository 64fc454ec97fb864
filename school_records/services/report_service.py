# school_records/services/report_service.py
"""Derived term report cards; nothing here is persisted."""
import logging
from typing import Dict, Iterable, List, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from .term_result_service import TermResultService
from ..core.cache import CacheManager, cache_manager
from ..core.config import settings
from ..models.subject import Subject
from ..models.term_result import TermResult
from ..schemas.term_result_schemas import ReportCard, SubjectReportLine

logger = logging.getLogger(__name__)

# (minimum total, letter), highest band first
DEFAULT_GRADE_SCALE: List[Tuple[float, str]] = [
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
    (0, "F"),
]

LABEL_FIELDS = ("subject_name", "subject_code")


def grade_letter(total: float, scale: List[Tuple[float, str]] = DEFAULT_GRADE_SCALE) -> str:
    for minimum, letter in scale:
        if total >= minimum:
            return letter
    return scale[-1][1]


def build_report_card(term_result: TermResult, labels: Dict[UUID, Dict[str, str]]) -> ReportCard:
    lines = []
    for grade in term_result.grades:
        label = labels.get(grade.subject_id, {})
        lines.append(SubjectReportLine(
            subject_id=grade.subject_id,
            subject_name=label.get("subject_name"),
            subject_code=label.get("subject_code"),
            ca_score=grade.ca_score,
            exam_score=grade.exam_score,
            total=grade.total,
            grade_letter=grade_letter(grade.total),
        ))

    grand_total = sum(line.total for line in lines)
    average = round(grand_total / len(lines), 2) if lines else 0.0

    return ReportCard(
        term_result_id=term_result.id,
        student_id=term_result.student_id,
        class_id=term_result.class_id,
        academic_year=term_result.academic_year,
        term=term_result.term,
        subjects=lines,
        subject_count=len(lines),
        grand_total=grand_total,
        average=average,
        overall_grade=grade_letter(average),
    )


class ReportCardService:
    def __init__(self, db: AsyncSession, cache: CacheManager = cache_manager):
        self.db = db
        self.cache = cache
        self.results = TermResultService(db)

    @staticmethod
    def cache_key(subject_id: UUID) -> str:
        return f"report_card:subject_label:{subject_id}"

    async def get_report_card(self, term_result_id: UUID) -> ReportCard:
        term_result = await self.results.get_result(term_result_id)
        labels = await self._subject_labels(grade.subject_id for grade in term_result.grades)
        return build_report_card(term_result, labels)

    async def _subject_labels(self, subject_ids: Iterable[UUID]) -> Dict[UUID, Dict[str, str]]:
        """Display names and codes, read through the cache"""
        labels: Dict[UUID, Dict[str, str]] = {}
        missing: List[UUID] = []
        for subject_id in subject_ids:
            cached = await self.cache.get(self.cache_key(subject_id))
            if isinstance(cached, dict) and all(field in cached for field in LABEL_FIELDS):
                labels[subject_id] = cached
            else:
                if cached is not None:
                    logger.warning(f"Discarding malformed subject label cache entry for {subject_id}")
                missing.append(subject_id)

        if not missing:
            return labels

        result = await self.db.execute(select(Subject).where(Subject.id.in_(missing)))
        for subject in result.scalars().all():
            label = {"subject_name": subject.subject_name, "subject_code": subject.subject_code}
            labels[subject.id] = label
            await self.cache.set(
                self.cache_key(subject.id), label, expire=settings.subject_cache_ttl_seconds
            )
        return labels

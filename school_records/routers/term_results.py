# school_records/routers/term_results.py
from typing import Any, Dict, List, Optional
from uuid import UUID
from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..models.term_result import Term
from ..schemas.term_result_schemas import (
    InitializeTermResult, SingleScoreUpdate, TermResultRead, BulkUpdateResult, ReportCard
)
from ..services.term_result_service import TermResultService
from ..services.report_service import ReportCardService

router = APIRouter(prefix="/api/v1/term-results", tags=["Term Results"])


@router.post("/initialize", response_model=TermResultRead, status_code=status.HTTP_201_CREATED)
async def initialize_term_result(
    payload: InitializeTermResult,
    db: AsyncSession = Depends(get_db)
):
    """Seed a zeroed result for every mandatory subject of the class"""
    service = TermResultService(db)
    return await service.initialize(
        student_id=payload.student_id,
        class_id=payload.class_id,
        academic_year=payload.academic_year,
        term=payload.term,
        recorded_by=payload.recorded_by,
    )


@router.put("/scores", response_model=TermResultRead)
async def update_single_score(
    payload: SingleScoreUpdate,
    db: AsyncSession = Depends(get_db)
):
    """Update one subject's scores, addressed by student, year, term and subject"""
    service = TermResultService(db)
    return await service.update_score(
        student_key=payload.student_id or payload.admission_number,
        academic_year=payload.academic_year,
        term=payload.term,
        subject_id=payload.subject_id,
        ca_score=payload.ca_score,
        exam_score=payload.exam_score,
        class_id=payload.class_id,
    )


@router.put("/scores/bulk", response_model=BulkUpdateResult)
async def bulk_update_scores(
    updates: List[Dict[str, Any]] = Body(...),
    db: AsyncSession = Depends(get_db)
):
    """Apply a batch of score updates atomically"""
    service = TermResultService(db)
    updated_count = await service.bulk_update_scores(updates)
    return BulkUpdateResult(updated_count=updated_count)


@router.get("/", response_model=List[TermResultRead])
async def list_term_results(
    student_id: Optional[UUID] = Query(None),
    class_id: Optional[UUID] = Query(None),
    academic_year: Optional[str] = Query(None),
    term: Optional[Term] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    """Result history, oldest first"""
    service = TermResultService(db)
    return await service.list_results(
        student_id=student_id,
        class_id=class_id,
        academic_year=academic_year,
        term=term,
        skip=skip,
        limit=limit,
    )


@router.get("/{term_result_id}", response_model=TermResultRead)
async def get_term_result(
    term_result_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    service = TermResultService(db)
    return await service.get_result(term_result_id)


@router.get("/{term_result_id}/report-card", response_model=ReportCard)
async def get_report_card(
    term_result_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """Totals and grade letters derived from the stored scores"""
    service = ReportCardService(db)
    return await service.get_report_card(term_result_id)

# school_records/routers/classes.py
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..core.database import get_session_factory
from ..schemas.term_result_schemas import OpenNewTerm, RolloverReport
from ..services.rollover_service import TermRolloverService

router = APIRouter(prefix="/api/v1/classes", tags=["Classes - Term Rollover"])


@router.post("/{class_id}/open-new-term", response_model=RolloverReport)
async def open_new_term(
    class_id: UUID,
    payload: OpenNewTerm,
    session_factory: async_sessionmaker = Depends(get_session_factory)
):
    """Seed results for every student of the class for the next term.

    Students that already have a result count as succeeded; other per-student
    failures are listed in the report without undoing the rest.
    """
    service = TermRolloverService(session_factory)
    return await service.open_new_term(
        class_id=class_id,
        next_academic_year=payload.next_academic_year,
        next_term=payload.next_term,
        initiated_by=payload.initiated_by,
    )

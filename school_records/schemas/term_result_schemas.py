# school_records/schemas/term_result_schemas.py
from typing import List, Optional, Dict, Any
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.term_result import Term


class ScoreValues(BaseModel):
    """caScore and examScore are independently settable; at least one is required."""
    model_config = ConfigDict(extra="ignore")

    ca_score: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    exam_score: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def require_a_score(self):
        if self.ca_score is None and self.exam_score is None:
            raise ValueError("At least one of ca_score or exam_score must be supplied")
        return self

    def changes(self) -> Dict[str, float]:
        values = {}
        if self.ca_score is not None:
            values["ca_score"] = self.ca_score
        if self.exam_score is not None:
            values["exam_score"] = self.exam_score
        return values


class ScoreUpdateItem(ScoreValues):
    """One element of a bulk score edit, addressed by composite key."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    student_id: UUID
    academic_year: str = Field(..., min_length=1, max_length=20)
    term: Term
    subject_id: UUID
    class_id: Optional[UUID] = None


class SingleScoreUpdate(ScoreValues):
    """Single score edit; the student is named by admission number or internal id."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    admission_number: Optional[str] = Field(default=None, min_length=1, max_length=20)
    student_id: Optional[UUID] = None
    academic_year: str = Field(..., min_length=1, max_length=20)
    term: Term
    subject_id: UUID
    class_id: Optional[UUID] = None

    @model_validator(mode="after")
    def require_student(self):
        if self.admission_number is None and self.student_id is None:
            raise ValueError("Either admission_number or student_id must be supplied")
        return self


class InitializeTermResult(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    student_id: UUID
    class_id: UUID
    academic_year: str = Field(..., min_length=1, max_length=20)
    term: Term
    recorded_by: UUID


class OpenNewTerm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    next_academic_year: str = Field(..., min_length=1, max_length=20)
    next_term: Term
    initiated_by: UUID


class SubjectGradeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subject_id: UUID
    ca_score: float
    exam_score: float
    total: float


class TermResultRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    class_id: UUID
    academic_year: str
    term: Term
    recorded_by: UUID
    grades: List[SubjectGradeRead] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BulkUpdateResult(BaseModel):
    updated_count: int


class RolloverFailure(BaseModel):
    student_id: UUID
    error: str
    error_type: str


class RolloverReport(BaseModel):
    class_id: UUID
    academic_year: str
    term: Term
    processed: int
    succeeded: int
    created: int
    already_existed: int
    failed: List[RolloverFailure] = []


class SubjectReportLine(BaseModel):
    subject_id: UUID
    subject_name: Optional[str] = None
    subject_code: Optional[str] = None
    ca_score: float
    exam_score: float
    total: float
    grade_letter: str


class ReportCard(BaseModel):
    term_result_id: UUID
    student_id: UUID
    class_id: UUID
    academic_year: str
    term: Term
    subjects: List[SubjectReportLine] = []
    subject_count: int
    grand_total: float
    average: float
    overall_grade: str


def validation_details(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Trim pydantic error dicts down to JSON-safe fields"""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in errors
    ]

# school_records/models/term_result.py
import enum
from sqlalchemy import Column, String, Integer, Float, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base


class Term(str, enum.Enum):
    FIRST = "1st Term"
    SECOND = "2nd Term"
    THIRD = "3rd Term"


class TermResult(Base):
    """One student's score sheet for one class, academic year and term."""
    __tablename__ = "term_results"

    # Foreign Keys
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True)
    recorded_by = Column(UUID(as_uuid=True), ForeignKey("teachers.id"), nullable=False)

    academic_year = Column(String(20), nullable=False)
    term = Column(String(20), nullable=False)

    # A student has at most one result per class, year and term
    __table_args__ = (
        UniqueConstraint("student_id", "class_id", "academic_year", "term", name="uq_term_result_identity"),
    )

    # Relationships
    student = relationship("Student", back_populates="term_results")
    class_ref = relationship("ClassModel")
    grades = relationship(
        "SubjectGrade",
        back_populates="term_result",
        order_by="SubjectGrade.position",
        cascade="all, delete-orphan",
    )


class SubjectGrade(Base):
    __tablename__ = "term_result_grades"

    # Foreign Keys
    term_result_id = Column(
        UUID(as_uuid=True), ForeignKey("term_results.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id"), nullable=False, index=True)

    position = Column(Integer, nullable=False, default=0)
    ca_score = Column(Float, nullable=False, default=0)
    exam_score = Column(Float, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("term_result_id", "subject_id", name="uq_term_result_grade_subject"),
        CheckConstraint("ca_score >= 0", name="ck_grade_ca_score_non_negative"),
        CheckConstraint("exam_score >= 0", name="ck_grade_exam_score_non_negative"),
    )

    # Relationships
    term_result = relationship("TermResult", back_populates="grades")
    subject = relationship("Subject")

    @property
    def total(self) -> float:
        return (self.ca_score or 0) + (self.exam_score or 0)

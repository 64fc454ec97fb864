# school_records/models/__init__.py
"""Import all models here so they register on Base.metadata (Alembic, create_all)."""
from .base import Base
from .subject import Subject
from .teacher import Teacher
from .class_model import ClassModel, ClassMandatorySubject
from .student import Student
from .term_result import Term, TermResult, SubjectGrade

__all__ = [
    "Base",
    "Subject",
    "Teacher",
    "ClassModel",
    "ClassMandatorySubject",
    "Student",
    "Term",
    "TermResult",
    "SubjectGrade",
]

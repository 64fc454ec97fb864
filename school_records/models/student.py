# school_records/models/student.py
from sqlalchemy import Column, String, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base


class Student(Base):
    __tablename__ = "students"

    # Business key, e.g. '2025/0015'
    admission_number = Column(String(20), nullable=False, unique=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)

    # Academic Information
    current_class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True)
    status = Column(String(20), default="active", nullable=False)

    # Relationships
    current_class = relationship("ClassModel", back_populates="students")
    term_results = relationship("TermResult", back_populates="student")

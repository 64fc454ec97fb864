# school_records/models/class_model.py
from sqlalchemy import Column, String, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import Base


class ClassModel(Base):
    __tablename__ = "classes"

    # Class Information
    class_name = Column(String(50), nullable=False, unique=True, index=True)  # e.g. 'SS 1 Arts'
    grade_level = Column(String(20), nullable=False)  # e.g. 'SS 1', 'JSS 2'
    academic_year = Column(String(20), nullable=False)

    # Relationships
    mandatory_subjects = relationship(
        "ClassMandatorySubject",
        back_populates="class_ref",
        order_by="ClassMandatorySubject.position",
    )
    students = relationship("Student", back_populates="current_class")


class ClassMandatorySubject(Base):
    __tablename__ = "class_mandatory_subjects"

    # Foreign Keys
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id"), nullable=False)

    # Catalog ordering of the grade skeleton
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("class_id", "subject_id", name="uq_class_mandatory_subject"),
    )

    # Relationships
    class_ref = relationship("ClassModel", back_populates="mandatory_subjects")
    subject = relationship("Subject", back_populates="class_links")

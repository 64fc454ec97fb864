# school_records/models/subject.py
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from .base import Base


class Subject(Base):
    __tablename__ = "subjects"

    subject_code = Column(String(20), nullable=False, unique=True, index=True)
    subject_name = Column(String(100), nullable=False)

    # Relationships
    class_links = relationship("ClassMandatorySubject", back_populates="subject")

# school_records/models/teacher.py
from sqlalchemy import Column, String, Boolean
from .base import Base


class Teacher(Base):
    __tablename__ = "teachers"

    # Basic Information
    staff_number = Column(String(20), nullable=False, unique=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(100), index=True)

    # Inactive staff may not record results
    is_active = Column(Boolean, default=True, nullable=False)

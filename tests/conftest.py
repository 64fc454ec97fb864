import json
import os

# Settings are read at import time; point them at SQLite and disable Redis
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.pop("REDIS_URL", None)

from dataclasses import dataclass, field
from typing import List
from uuid import UUID

import httpx
import pytest
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from school_records.core.cache import CacheManager
from school_records.core.database import build_engine, build_session_factory, get_db, get_session_factory
from school_records.models import (
    Base, Subject, Teacher, ClassModel, ClassMandatorySubject, Student, Term, TermResult
)
from school_records.services.class_catalog import ClassCatalog
from school_records.services.term_result_service import TermResultService


@dataclass
class SchoolData:
    class_id: UUID
    empty_class_id: UUID
    teacher_id: UUID
    inactive_teacher_id: UUID
    extra_subject_id: UUID
    subject_ids: List[UUID] = field(default_factory=list)
    student_ids: List[UUID] = field(default_factory=list)
    admission_numbers: List[str] = field(default_factory=list)


SUBJECTS = [
    ("MTH", "Mathematics"),
    ("ENG", "English Language"),
    ("BIO", "Biology"),
    ("PHY", "Physics"),
]


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite so concurrent sessions use separate connections"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'records.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def school(session_factory) -> SchoolData:
    async with session_factory() as session:
        subjects = [Subject(subject_code=code, subject_name=name) for code, name in SUBJECTS]
        french = Subject(subject_code="FRE", subject_name="French")
        teacher = Teacher(staff_number="STF001", first_name="Ada", last_name="Obi", email="ada.obi@school.test")
        inactive = Teacher(staff_number="STF002", first_name="Tunde", last_name="Bello", is_active=False)
        science = ClassModel(class_name="SS 1 Science", grade_level="SS 1", academic_year="2025/2026")
        empty = ClassModel(class_name="JSS 1 A", grade_level="JSS 1", academic_year="2025/2026")
        session.add_all(subjects + [french, teacher, inactive, science, empty])
        await session.flush()

        session.add_all([
            ClassMandatorySubject(class_id=science.id, subject_id=subject.id, position=position)
            for position, subject in enumerate(subjects)
        ])
        students = [
            Student(
                admission_number=f"2025/{number:04d}",
                first_name=f"Student{number}",
                last_name="Test",
                current_class_id=science.id,
            )
            for number in range(1, 11)
        ]
        session.add_all(students)
        await session.commit()

        return SchoolData(
            class_id=science.id,
            empty_class_id=empty.id,
            teacher_id=teacher.id,
            inactive_teacher_id=inactive.id,
            extra_subject_id=french.id,
            subject_ids=[subject.id for subject in subjects],
            student_ids=[student.id for student in students],
            admission_numbers=[student.admission_number for student in students],
        )


async def fetch_result(session_factory, term_result_id) -> TermResult:
    async with session_factory() as session:
        result = await session.execute(
            select(TermResult).options(selectinload(TermResult.grades)).where(TermResult.id == term_result_id)
        )
        return result.scalar_one()


async def count_results(session_factory, **filters) -> int:
    async with session_factory() as session:
        stmt = select(func.count()).select_from(TermResult)
        for key, value in filters.items():
            stmt = stmt.where(getattr(TermResult, key) == value)
        return (await session.execute(stmt)).scalar()


def grade_snapshot(term_result: TermResult):
    return [(grade.subject_id, grade.ca_score, grade.exam_score) for grade in term_result.grades]


class DictCache(CacheManager):
    """In-process stand-in for Redis that keeps the JSON round trip"""

    def __init__(self):
        super().__init__("redis://unused")
        self.store = {}

    async def get(self, key):
        value = self.store.get(key)
        return json.loads(value) if value is not None else None

    async def set(self, key, value, expire=None):
        self.store[key] = json.dumps(value)
        return True


class StaticCatalog(ClassCatalog):
    def __init__(self, subject_ids):
        self.subject_ids = subject_ids

    async def get_mandatory_subjects(self, class_id):
        return list(self.subject_ids)


async def initialize(session_factory, school, student_index=0, term=Term.FIRST, catalog=None, **overrides):
    params = dict(
        student_id=school.student_ids[student_index],
        class_id=school.class_id,
        academic_year="2025/2026",
        term=term,
        recorded_by=school.teacher_id,
    )
    params.update(overrides)
    async with session_factory() as session:
        return await TermResultService(session, catalog=catalog).initialize(**params)


@pytest.fixture
async def client(session_factory):
    from school_records.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()

"""
Tests for opening a new term across a whole class.
"""
import asyncio
import uuid

import pytest

from school_records.core.exceptions import (
    ConflictError, NotFoundError, PermissionDeniedError, InvalidArgumentError
)
from school_records.models import Term
from school_records.services.rollover_service import (
    TermRolloverService, RolloverOutcome, classify_failure, describe_error
)
from school_records.services.term_result_service import TermResultService

from conftest import count_results, initialize


async def open_new_term(session_factory, school, class_id=None, term=Term.SECOND, **kwargs):
    concurrency = kwargs.pop("concurrency", None)
    service = TermRolloverService(session_factory, concurrency=concurrency)
    params = dict(
        class_id=class_id or school.class_id,
        next_academic_year="2025/2026",
        next_term=term,
        initiated_by=school.teacher_id,
    )
    params.update(kwargs)
    return await service.open_new_term(**params)


class TestOpenNewTerm:

    async def test_open_new_term_creates_result_for_every_student(self, session_factory, school):
        report = await open_new_term(session_factory, school)

        assert report.processed == 10
        assert report.succeeded == 10
        assert report.created == 10
        assert report.already_existed == 0
        assert report.failed == []
        assert await count_results(session_factory, term=Term.SECOND.value) == 10

    async def test_open_new_term_counts_existing_records_as_succeeded(self, session_factory, school):
        for index in range(3):
            await initialize(session_factory, school, student_index=index, term=Term.SECOND)

        report = await open_new_term(session_factory, school)

        assert report.succeeded == 10
        assert report.created == 7
        assert report.already_existed == 3
        assert report.failed == []
        assert await count_results(session_factory, class_id=school.class_id, term=Term.SECOND.value) == 10

    async def test_open_new_term_twice_is_idempotent(self, session_factory, school):
        await open_new_term(session_factory, school)

        report = await open_new_term(session_factory, school)

        assert report.created == 0
        assert report.already_existed == 10
        assert await count_results(session_factory) == 10

    async def test_open_new_term_when_class_has_no_students_then_not_found(self, session_factory, school):
        with pytest.raises(NotFoundError, match="Students for class"):
            await open_new_term(session_factory, school, class_id=school.empty_class_id)

    async def test_open_new_term_when_class_unknown_then_not_found(self, session_factory, school):
        with pytest.raises(NotFoundError, match="Class not found"):
            await open_new_term(session_factory, school, class_id=uuid.uuid4())

    async def test_open_new_term_when_initiator_inactive_then_permission_denied(self, session_factory, school):
        with pytest.raises(PermissionDeniedError):
            await open_new_term(session_factory, school, initiated_by=school.inactive_teacher_id)

        assert await count_results(session_factory) == 0

    async def test_open_new_term_when_term_unknown_then_invalid_argument(self, session_factory, school):
        with pytest.raises(InvalidArgumentError):
            await open_new_term(session_factory, school, term="Summer")

    async def test_one_student_failure_does_not_affect_others(self, session_factory, school, monkeypatch):
        broken = school.student_ids[4]
        clashing = school.student_ids[7]
        original = TermResultService.create_seeded_result

        async def flaky_create(self, request, subject_ids):
            if request.student_id == broken:
                raise RuntimeError("disk full")
            if request.student_id == clashing:
                raise ConflictError("Term result already exists")
            return await original(self, request, subject_ids)

        monkeypatch.setattr(TermResultService, "create_seeded_result", flaky_create)

        report = await open_new_term(session_factory, school)

        assert report.processed == 10
        assert report.created == 8
        assert report.already_existed == 1
        assert report.succeeded == 9
        assert len(report.failed) == 1
        assert report.failed[0].student_id == broken
        assert report.failed[0].error == "disk full"
        assert report.failed[0].error_type == "RuntimeError"
        assert await count_results(session_factory) == 8

    async def test_rollover_respects_concurrency_bound(self, session_factory, school, monkeypatch):
        running = 0
        peak = 0
        original = TermResultService.create_seeded_result

        async def slow_create(self, request, subject_ids):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            try:
                await asyncio.sleep(0.01)
                return await original(self, request, subject_ids)
            finally:
                running -= 1

        monkeypatch.setattr(TermResultService, "create_seeded_result", slow_create)

        report = await open_new_term(session_factory, school, concurrency=3)

        assert report.created == 10
        assert 1 < peak <= 3


class TestClassifyFailure:

    def test_conflict_counts_as_already_existing(self):
        assert classify_failure(ConflictError("exists")) is RolloverOutcome.ALREADY_EXISTS

    @pytest.mark.parametrize("error", [
        NotFoundError("Student", "x"),
        PermissionDeniedError(),
        RuntimeError("boom"),
    ])
    def test_other_errors_are_failures(self, error):
        assert classify_failure(error) is RolloverOutcome.FAILED

    def test_describe_error_prefers_message(self):
        assert describe_error(NotFoundError("Class", "abc")) == "Class not found with id: abc"
        assert describe_error(ValueError()) == "ValueError"

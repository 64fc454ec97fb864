"""
Tests for composite-key score updates.
"""
import asyncio
import uuid

import pytest

from school_records.core.exceptions import NotFoundError, InvalidArgumentError
from school_records.models import Term
from school_records.services.term_result_service import TermResultService

from conftest import StaticCatalog, fetch_result, grade_snapshot, initialize


async def update(session_factory, student_key, subject_id, term=Term.FIRST, academic_year="2025/2026", **scores):
    async with session_factory() as session:
        return await TermResultService(session).update_score(
            student_key=student_key,
            academic_year=academic_year,
            term=term,
            subject_id=subject_id,
            **scores,
        )


class TestUpdateScore:

    async def test_update_ca_score_changes_only_that_field(self, session_factory, school):
        created = await initialize(session_factory, school)
        before = grade_snapshot(await fetch_result(session_factory, created.id))
        maths = school.subject_ids[0]

        updated = await update(session_factory, school.student_ids[0], maths, ca_score=40)

        after = grade_snapshot(await fetch_result(session_factory, created.id))
        assert updated.id == created.id
        assert after[0] == (maths, 40.0, 0.0)
        assert after[1:] == before[1:]

    async def test_update_returns_full_record(self, session_factory, school):
        await initialize(session_factory, school)

        updated = await update(session_factory, school.student_ids[0], school.subject_ids[2], exam_score=55.5)

        assert len(updated.grades) == len(school.subject_ids)
        biology = next(g for g in updated.grades if g.subject_id == school.subject_ids[2])
        assert biology.exam_score == 55.5
        assert biology.ca_score == 0
        assert biology.total == 55.5

    async def test_scores_are_independently_settable(self, session_factory, school):
        created = await initialize(session_factory, school)
        maths = school.subject_ids[0]

        await update(session_factory, school.student_ids[0], maths, ca_score=30)
        await update(session_factory, school.student_ids[0], maths, exam_score=50)

        stored = await fetch_result(session_factory, created.id)
        assert grade_snapshot(stored)[0] == (maths, 30.0, 50.0)

    async def test_update_by_admission_number_resolves_student(self, session_factory, school):
        created = await initialize(session_factory, school, student_index=3)

        await update(session_factory, school.admission_numbers[3], school.subject_ids[1], ca_score=25, exam_score=45)

        stored = await fetch_result(session_factory, created.id)
        assert grade_snapshot(stored)[1] == (school.subject_ids[1], 25.0, 45.0)

    async def test_update_when_admission_number_unknown_then_not_found(self, session_factory, school):
        await initialize(session_factory, school)

        with pytest.raises(NotFoundError, match="Student not found"):
            await update(session_factory, "1999/9999", school.subject_ids[0], ca_score=10)

    async def test_update_when_subject_not_in_record_then_not_found_and_unmodified(self, session_factory, school):
        created = await initialize(session_factory, school)
        before = grade_snapshot(await fetch_result(session_factory, created.id))

        with pytest.raises(NotFoundError, match="specified term/subject"):
            await update(session_factory, school.student_ids[0], school.extra_subject_id, ca_score=10)

        after = await fetch_result(session_factory, created.id)
        assert grade_snapshot(after) == before
        assert len(after.grades) == len(school.subject_ids)

    async def test_update_when_no_record_for_term_then_not_found(self, session_factory, school):
        await initialize(session_factory, school, term=Term.FIRST)

        with pytest.raises(NotFoundError):
            await update(session_factory, school.student_ids[0], school.subject_ids[0], term=Term.THIRD, ca_score=10)

    async def test_update_when_no_scores_then_invalid_argument(self, session_factory, school):
        await initialize(session_factory, school)

        with pytest.raises(InvalidArgumentError):
            await update(session_factory, school.student_ids[0], school.subject_ids[0])

    async def test_update_when_negative_score_then_invalid_argument(self, session_factory, school):
        created = await initialize(session_factory, school)

        with pytest.raises(InvalidArgumentError):
            await update(session_factory, school.student_ids[0], school.subject_ids[0], exam_score=-1)

        stored = await fetch_result(session_factory, created.id)
        assert grade_snapshot(stored)[0][2] == 0

    @pytest.mark.parametrize("score", [float("inf"), float("nan")])
    async def test_update_when_score_not_finite_then_invalid_argument(self, session_factory, school, score):
        created = await initialize(session_factory, school)

        with pytest.raises(InvalidArgumentError):
            await update(session_factory, school.student_ids[0], school.subject_ids[0], ca_score=score)

        stored = await fetch_result(session_factory, created.id)
        assert grade_snapshot(stored)[0][1] == 0

    async def test_update_with_unparseable_subject_id_then_invalid_argument(self, session_factory, school):
        with pytest.raises(InvalidArgumentError):
            await update(session_factory, school.student_ids[0], "not-a-uuid", ca_score=1)

    async def test_update_for_unknown_student_id_then_not_found(self, session_factory, school):
        await initialize(session_factory, school)

        with pytest.raises(NotFoundError):
            await update(session_factory, uuid.uuid4(), school.subject_ids[0], ca_score=1)

    async def test_update_with_class_id_targets_that_class(self, session_factory, school):
        maths = school.subject_ids[0]
        science = await initialize(session_factory, school)
        other = await initialize(
            session_factory, school, class_id=school.empty_class_id, catalog=StaticCatalog([maths])
        )

        async with session_factory() as session:
            updated = await TermResultService(session).update_score(
                student_key=school.student_ids[0],
                academic_year="2025/2026",
                term=Term.FIRST,
                subject_id=maths,
                ca_score=35,
                class_id=school.class_id,
            )

        assert updated.id == science.id
        assert grade_snapshot(await fetch_result(session_factory, science.id))[0] == (maths, 35.0, 0.0)
        assert grade_snapshot(await fetch_result(session_factory, other.id))[0] == (maths, 0.0, 0.0)


class TestConcurrentUpdates:

    async def test_concurrent_updates_to_different_subjects_keep_both(self, session_factory, school):
        created = await initialize(session_factory, school)
        maths, english = school.subject_ids[:2]

        await asyncio.gather(
            update(session_factory, school.student_ids[0], maths, ca_score=38),
            update(session_factory, school.student_ids[0], english, exam_score=52),
        )

        snapshot = grade_snapshot(await fetch_result(session_factory, created.id))
        assert snapshot[0] == (maths, 38.0, 0.0)
        assert snapshot[1] == (english, 0.0, 52.0)

    async def test_concurrent_updates_to_same_subject_never_tear(self, session_factory, school):
        created = await initialize(session_factory, school)
        maths = school.subject_ids[0]

        await asyncio.gather(
            update(session_factory, school.student_ids[0], maths, ca_score=10, exam_score=20),
            update(session_factory, school.student_ids[0], maths, ca_score=30, exam_score=40),
        )

        snapshot = grade_snapshot(await fetch_result(session_factory, created.id))
        assert snapshot[0] in [(maths, 10.0, 20.0), (maths, 30.0, 40.0)]

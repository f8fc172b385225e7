"""
Tests for the SQLite persistence layer: course creation and the transactional
quiz-pass cascade.
"""
import sqlite3

import pytest

from factories import make_course, make_quiz

from learnpath import database
from learnpath.errors import PersistenceFailure
from learnpath.models import (
    CertificateData,
    CourseStatus,
    MilestoneResources,
    MilestoneStatus,
    RoadmapSource,
)


def _statuses(ctx, course_id):
    by_id = {p.milestone_id: p.status for p in database.get_progress(ctx.user_id, course_id)}
    return [by_id[m.id] for m in database.get_milestones(course_id)]


def _cert_data(cert_id="CERT-ABCDEF12"):
    return CertificateData(
        recipient_name="Test User", course_name="Test Course", duration="1 week",
        completion_date="2026-01-01", issuer="LearnPath Academy", certificate_id=cert_id,
    )


class TestUsers:
    def test_upsert_returns_same_id(self, db):
        first = database.upsert_user("Ada")
        assert database.upsert_user("Ada") == first
        assert database.get_user_by_id(first)["name"] == "Ada"

    def test_duplicate_name_is_persistence_failure(self, db):
        database.create_user("Ada")
        with pytest.raises(PersistenceFailure):
            database.create_user("Ada")


class TestCreateCourse:
    def test_first_active_rest_locked(self, ctx):
        course, milestones = make_course(ctx, n_milestones=4)
        assert [m.order_index for m in milestones] == [1, 2, 3, 4]
        assert _statuses(ctx, course.id) == [
            MilestoneStatus.ACTIVE, MilestoneStatus.LOCKED,
            MilestoneStatus.LOCKED, MilestoneStatus.LOCKED,
        ]
        assert course.status == CourseStatus.ACTIVE

    def test_quiz_round_trips(self, ctx):
        _, milestones = make_course(ctx, key=(3, 0))
        stored = database.get_milestone(milestones[0].id)
        assert [q.correct_index for q in stored.quiz] == [3, 0]

    def test_failed_insert_leaves_nothing(self, ctx):
        # Duplicate order_index violates UNIQUE(course_id, order_index) mid-transaction.
        with pytest.raises(PersistenceFailure):
            database.create_course_with_milestones(
                user_id=ctx.user_id, name="Broken", duration="1 week", roadmap={},
                roadmap_source=RoadmapSource.LLM,
                milestones=[
                    (1, "a", MilestoneResources(), make_quiz()),
                    (1, "b", MilestoneResources(), make_quiz()),
                ],
            )
        assert database.list_courses(ctx.user_id) == []
        conn = sqlite3.connect(str(database._DB_PATH))
        assert conn.execute("SELECT COUNT(*) FROM milestones").fetchone()[0] == 0
        assert conn.execute("SELECT COUNT(*) FROM progress").fetchone()[0] == 0
        conn.close()

    def test_course_not_visible_to_other_user(self, ctx, course3):
        other = database.create_user("Someone Else")
        assert database.get_course(course3[0].id, other) is None

    def test_trace_stored(self, ctx):
        course, _ = database.create_course_with_milestones(
            user_id=ctx.user_id, name="Traced", duration="", roadmap={},
            roadmap_source=RoadmapSource.SYNTHETIC,
            milestones=[(1, "a", MilestoneResources(), make_quiz())],
            trace_json='{"run_id": "ABC"}',
        )
        assert database.get_course_trace(course.id) == {"run_id": "ABC"}
        assert course.roadmap_source == RoadmapSource.SYNTHETIC


class TestCompleteMilestone:
    def test_cascade_unlocks_next(self, ctx, course3):
        course, ms = course3
        completed_now, cert = database.complete_milestone(
            ctx.user_id, course.id, ms[0].id, 100, next_milestone_id=ms[1].id,
        )
        assert completed_now and cert is None
        assert _statuses(ctx, course.id) == [
            MilestoneStatus.COMPLETED, MilestoneStatus.ACTIVE, MilestoneStatus.LOCKED,
        ]

    def test_non_active_milestone_is_noop(self, ctx, course3):
        course, ms = course3
        completed_now, _ = database.complete_milestone(
            ctx.user_id, course.id, ms[1].id, 100, next_milestone_id=ms[2].id,
        )
        assert not completed_now
        assert _statuses(ctx, course.id)[2] == MilestoneStatus.LOCKED

    def test_last_milestone_issues_one_certificate(self, ctx):
        course, ms = make_course(ctx, n_milestones=1)
        _, cert = database.complete_milestone(
            ctx.user_id, course.id, ms[0].id, 100, None, _cert_data("CERT-00000001"),
        )
        assert cert.id == "CERT-00000001"
        _, again = database.complete_milestone(
            ctx.user_id, course.id, ms[0].id, 100, None, _cert_data("CERT-00000002"),
        )
        assert again.id == "CERT-00000001"
        assert len(database.list_certificates(ctx.user_id)) == 1
        assert database.get_course(course.id, ctx.user_id).status == CourseStatus.COMPLETED

    def test_locked_last_milestone_does_not_complete_course(self, ctx, course3):
        course, ms = course3
        completed_now, cert = database.complete_milestone(
            ctx.user_id, course.id, ms[-1].id, 100, None, _cert_data("CERT-00000003"),
        )
        assert not completed_now
        assert cert is None
        assert database.get_course(course.id, ctx.user_id).status == CourseStatus.ACTIVE
        assert database.list_certificates(ctx.user_id) == []
        assert _statuses(ctx, course.id)[-1] == MilestoneStatus.LOCKED

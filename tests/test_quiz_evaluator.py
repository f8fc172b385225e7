"""
Tests for QuizEvaluator (quiz_evaluator.py).
Validates scoring, the all-or-nothing pass rule, the unlock cascade and
one-time certificate issue.
"""
import pytest

from factories import make_course, make_quiz

from learnpath import database
from learnpath.errors import AuthRequired, IncompleteSubmission, LockedMilestone, NotFound
from learnpath.models import CourseStatus, MilestoneStatus
from learnpath.progression import ProgressionEngine, check_frontier
from learnpath.quiz_evaluator import QuizEvaluator, score

KEY = [0, 1, 2]


@pytest.fixture
def evaluator():
    return QuizEvaluator()


def _statuses(ctx, course_id):
    return [m.status for m in ProgressionEngine().course_progress(ctx, course_id).milestones]


class TestScore:
    def test_all_correct(self):
        result = score(make_quiz(KEY), [0, 1, 2])
        assert result.score == 100
        assert result.passed is True
        assert all(f.correct for f in result.feedback)

    def test_two_of_three_rounds_to_67(self):
        result = score(make_quiz(KEY), [0, 1, 1])
        assert result.score == 67
        assert result.correct_count == 2
        assert result.passed is False
        assert [f.correct for f in result.feedback] == [True, True, False]

    def test_unanswered_rejected(self):
        with pytest.raises(IncompleteSubmission):
            score(make_quiz(KEY), [0, -1, 2])

    def test_none_rejected(self):
        with pytest.raises(IncompleteSubmission):
            score(make_quiz(KEY), [0, None, 2])

    def test_wrong_length_rejected(self):
        with pytest.raises(IncompleteSubmission):
            score(make_quiz(KEY), [0, 1])

    def test_out_of_range_index_is_wrong(self):
        result = score(make_quiz(KEY), [0, 1, 9])
        assert result.correct_count == 2


class TestSubmit:
    def test_wrong_answer_keeps_milestone_active(self, evaluator, ctx, course3):
        course, ms = course3
        outcome = evaluator.submit(ctx, course.id, ms[0].id, [0, 1, 1])
        assert outcome.passed is False
        assert outcome.score == 67
        assert outcome.message == "You need 100% to pass. Try again!"
        assert _statuses(ctx, course.id) == [
            MilestoneStatus.ACTIVE, MilestoneStatus.LOCKED, MilestoneStatus.LOCKED,
        ]
        stored = {p.milestone_id: p for p in database.get_progress(ctx.user_id, course.id)}
        assert stored[ms[0].id].quiz_score is None

    def test_incomplete_submission_changes_nothing(self, evaluator, ctx, course3):
        course, ms = course3
        with pytest.raises(IncompleteSubmission):
            evaluator.submit(ctx, course.id, ms[0].id, [0, -1, 2])
        stored = {p.milestone_id: p for p in database.get_progress(ctx.user_id, course.id)}
        assert stored[ms[0].id].quiz_score is None
        assert stored[ms[0].id].status == MilestoneStatus.ACTIVE

    def test_pass_unlocks_next(self, evaluator, ctx, course3):
        course, ms = course3
        outcome = evaluator.submit(ctx, course.id, ms[0].id, KEY)
        assert outcome.passed and not outcome.course_completed
        assert _statuses(ctx, course.id) == [
            MilestoneStatus.COMPLETED, MilestoneStatus.ACTIVE, MilestoneStatus.LOCKED,
        ]

    def test_locked_milestone_rejected(self, evaluator, ctx, course3):
        course, ms = course3
        with pytest.raises(LockedMilestone):
            evaluator.submit(ctx, course.id, ms[1].id, KEY)
        assert _statuses(ctx, course.id)[1] == MilestoneStatus.LOCKED

    def test_full_course_issues_one_certificate(self, evaluator, ctx, course3):
        course, ms = course3
        engine = ProgressionEngine()
        for m in ms:
            outcome = evaluator.submit(ctx, course.id, m.id, KEY)
            check_frontier(engine.course_progress(ctx, course.id))
        assert outcome.course_completed
        assert outcome.certificate.id.startswith("CERT-")
        assert len(outcome.certificate.id) == len("CERT-") + 8
        data = outcome.certificate.certificate_data
        assert data.recipient_name == "Test User"
        assert data.course_name == "Test Course"
        assert data.issuer == "LearnPath Academy"
        assert database.get_course(course.id, ctx.user_id).status == CourseStatus.COMPLETED

        # Retrying the last quiz neither changes state nor duplicates the certificate.
        retry = evaluator.submit(ctx, course.id, ms[-1].id, KEY)
        assert retry.course_completed
        assert retry.certificate.id == outcome.certificate.id
        assert len(database.list_certificates(ctx.user_id)) == 1
        assert engine.course_progress(ctx, course.id).display_pct == 100

    def test_single_milestone_course(self, evaluator, ctx):
        course, ms = make_course(ctx, n_milestones=1, key=(3,))
        outcome = evaluator.submit(ctx, course.id, ms[0].id, [3])
        assert outcome.course_completed
        assert outcome.certificate is not None

    def test_failed_attempt_on_reviewed_milestone_changes_nothing(self, evaluator, ctx, course3):
        course, ms = course3
        evaluator.submit(ctx, course.id, ms[0].id, KEY)
        outcome = evaluator.submit(ctx, course.id, ms[0].id, [2, 2, 2])
        assert not outcome.passed
        assert _statuses(ctx, course.id)[0] == MilestoneStatus.COMPLETED

    def test_unknown_milestone(self, evaluator, ctx, course3):
        with pytest.raises(NotFound):
            evaluator.submit(ctx, course3[0].id, 9999, KEY)

    def test_requires_user(self, evaluator, db):
        with pytest.raises(AuthRequired):
            evaluator.submit(None, 1, 1, KEY)

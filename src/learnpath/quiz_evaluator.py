"""
quiz_evaluator.py — Milestone quiz scoring and the pass cascade
===============================================================
Scores a learner's answers against a milestone quiz and, on a pass, drives
the progression forward through database.complete_milestone():

  fail   (score < 100)   nothing written, milestone stays active
  pass   (score == 100)  milestone → completed, next milestone → active
  pass on last milestone  course → completed, certificate issued once

Scoring is pure (score()); submit() adds the ownership / lock checks and the
single persisted transition.  Unanswered questions (``None`` or ``-1``) reject
the whole submission before anything is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from learnpath import database
from learnpath.certificate import build_certificate_data
from learnpath.errors import IncompleteSubmission, LockedMilestone, NotFound
from learnpath.models import Certificate, CourseStatus, QuizItem, UserContext
from learnpath.progression import ProgressionEngine, round_half_up

logger = logging.getLogger(__name__)

UNANSWERED = -1


# ─── Data models ─────────────────────────────────────────────────────────────

@dataclass
class QuestionFeedback:
    """Per-question result after the learner answers."""
    question:      str
    correct:       bool
    learner_index: int
    correct_index: int


@dataclass
class QuizResult:
    score_pct:     float
    correct_count: int
    total_count:   int
    feedback:      list[QuestionFeedback] = field(default_factory=list)

    @property
    def score(self) -> int:
        """Display score, 0–100."""
        return round_half_up(self.score_pct)

    @property
    def passed(self) -> bool:
        return self.score_pct >= QuizEvaluator.PASS_MARK_PCT


@dataclass
class SubmissionResult:
    passed:           bool
    score:            int
    course_completed: bool = False
    certificate:      Optional[Certificate] = None
    result:           Optional[QuizResult] = None

    @property
    def message(self) -> str:
        if self.course_completed:
            return "Congratulations! You have completed the course."
        if self.passed:
            return "Quiz passed! The next milestone is unlocked."
        return "You need 100% to pass. Try again!"


# ─── Scoring ─────────────────────────────────────────────────────────────────

def score(quiz: Sequence[QuizItem], answers: Sequence[Optional[int]]) -> QuizResult:
    """
    Score *answers* against *quiz*.

    Parameters
    ----------
    quiz    : the milestone's questions, in display order
    answers : 0-based option index per question; ``None`` / ``-1`` = unanswered

    An index outside a question's options is scored as wrong.
    """
    if len(answers) != len(quiz):
        raise IncompleteSubmission()
    if any(a is None or a == UNANSWERED for a in answers):
        raise IncompleteSubmission()

    feedback: list[QuestionFeedback] = []
    correct_count = 0
    for q, chosen in zip(quiz, answers):
        is_correct = chosen == q.correct_index
        correct_count += int(is_correct)
        feedback.append(QuestionFeedback(
            question=q.question,
            correct=is_correct,
            learner_index=chosen,
            correct_index=q.correct_index,
        ))

    score_pct = (correct_count / len(quiz)) * 100 if quiz else 0.0
    return QuizResult(
        score_pct=score_pct,
        correct_count=correct_count,
        total_count=len(quiz),
        feedback=feedback,
    )


class QuizEvaluator:
    """
    Scores a milestone quiz and applies the resulting progress transition.

    Usage::

        evaluator = QuizEvaluator()
        outcome   = evaluator.submit(ctx, course_id, milestone_id, [0, 2, 1])
        if outcome.course_completed:
            print(outcome.certificate.id)
    """

    PASS_MARK_PCT: float = 100.0

    def __init__(self, engine: ProgressionEngine | None = None) -> None:
        self._engine = engine or ProgressionEngine()

    def submit(
        self,
        ctx: Optional[UserContext],
        course_id: int,
        milestone_id: int,
        answers: Sequence[Optional[int]],
    ) -> SubmissionResult:
        view = self._engine.course_progress(ctx, course_id)   # AuthRequired / NotFound
        item = view.get(milestone_id)
        if item is None:
            raise NotFound("Milestone not found.")
        if item.is_locked:
            raise LockedMilestone()

        result = score(item.milestone.quiz, answers)

        if item.is_completed:
            # Re-submission on a reviewed milestone changes nothing.
            course_done = view.course.status == CourseStatus.COMPLETED
            return SubmissionResult(
                passed=result.passed,
                score=result.score,
                course_completed=course_done,
                certificate=database.get_certificate(ctx.user_id, course_id) if course_done else None,
                result=result,
            )

        if not result.passed:
            logger.info("User %s scored %d%% on milestone %s (not passed)",
                        ctx.user_id, result.score, milestone_id)
            return SubmissionResult(passed=False, score=result.score, result=result)

        successor = view.successor(milestone_id)
        certificate_data = None
        if successor is None:
            certificate_data = build_certificate_data(ctx, view.course)

        _, certificate = database.complete_milestone(
            user_id=ctx.user_id,
            course_id=course_id,
            milestone_id=milestone_id,
            score=result.score,
            next_milestone_id=successor.milestone.id if successor else None,
            certificate_data=certificate_data,
        )
        logger.info("User %s passed milestone %s of course %s",
                    ctx.user_id, milestone_id, course_id)

        return SubmissionResult(
            passed=True,
            score=result.score,
            course_completed=successor is None,
            certificate=certificate,
            result=result,
        )

"""
progression.py — Progression Engine
===================================
Derives each milestone's lock / active / completed state from the stored
progress rows and enforces which milestones may be opened.

State machine (per milestone, monotonic)
----------------------------------------
  course created            milestone 1 → active, 2..N → locked
  quiz passed (evaluator)   active → completed
  predecessor completed     locked → active
  nothing else              no regressions, no skipping ahead

Frontier invariant: per course at most one milestone is active; every
milestone before it is completed and every milestone after it is locked.
check_frontier() verifies this on any CourseView.

The engine never writes.  Writes happen only in QuizEvaluator, through the
single-transaction cascade in database.complete_milestone().
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from learnpath import database
from learnpath.errors import AuthRequired, LockedMilestone, NotFound, ProgressInvariantError
from learnpath.models import (
    Certificate,
    Course,
    CourseStatus,
    Milestone,
    MilestoneStatus,
    ProgressRecord,
    UserContext,
)


def round_half_up(value: float) -> int:
    """Round for display (x.5 always rounds up, unlike round())."""
    return int(math.floor(value + 0.5))


def completion_percentage(completed: int, total: int) -> float:
    return (completed / total) * 100 if total else 0.0


# ─── View models ─────────────────────────────────────────────────────────────

@dataclass
class MilestoneView:
    milestone:  Milestone
    status:     MilestoneStatus
    quiz_score: Optional[int] = None

    @property
    def is_locked(self) -> bool:
        return self.status == MilestoneStatus.LOCKED

    @property
    def is_active(self) -> bool:
        return self.status == MilestoneStatus.ACTIVE

    @property
    def is_completed(self) -> bool:
        return self.status == MilestoneStatus.COMPLETED


@dataclass
class CourseView:
    """A course's milestones in order_index order, each with its derived status."""
    milestones: list[MilestoneView] = field(default_factory=list)
    course:     Optional[Course] = None

    @property
    def total(self) -> int:
        return len(self.milestones)

    @property
    def completed_count(self) -> int:
        return sum(1 for m in self.milestones if m.is_completed)

    @property
    def completion_pct(self) -> float:
        return completion_percentage(self.completed_count, self.total)

    @property
    def display_pct(self) -> int:
        return round_half_up(self.completion_pct)

    @property
    def frontier(self) -> Optional[MilestoneView]:
        return next((m for m in self.milestones if m.is_active), None)

    @property
    def all_completed(self) -> bool:
        return bool(self.milestones) and all(m.is_completed for m in self.milestones)

    def get(self, milestone_id: int) -> Optional[MilestoneView]:
        return next((m for m in self.milestones if m.milestone.id == milestone_id), None)

    def successor(self, milestone_id: int) -> Optional[MilestoneView]:
        """The milestone immediately after *milestone_id* by order_index."""
        for i, m in enumerate(self.milestones):
            if m.milestone.id == milestone_id:
                return self.milestones[i + 1] if i + 1 < len(self.milestones) else None
        return None


@dataclass
class OpenedMilestone:
    view:      MilestoneView
    read_only: bool          # True when reviewing a completed milestone


# ─── Pure functions ──────────────────────────────────────────────────────────

def build_view(
    milestones: list[Milestone],
    progress: list[ProgressRecord],
    course: Optional[Course] = None,
) -> CourseView:
    """Pair every milestone with its progress status; a missing row reads as locked."""
    by_milestone = {p.milestone_id: p for p in progress}
    views = []
    for m in sorted(milestones, key=lambda m: m.order_index):
        record = by_milestone.get(m.id)
        views.append(MilestoneView(
            milestone=m,
            status=record.status if record else MilestoneStatus.LOCKED,
            quiz_score=record.quiz_score if record else None,
        ))
    return CourseView(milestones=views, course=course)


def check_frontier(view: CourseView) -> None:
    """Raise ProgressInvariantError unless the single-frontier rule holds."""
    statuses = [m.status for m in view.milestones]
    active = [i for i, s in enumerate(statuses) if s == MilestoneStatus.ACTIVE]
    if len(active) > 1:
        raise ProgressInvariantError(f"{len(active)} active milestones; at most one allowed.")

    if active:
        pivot = active[0]
        before, after = statuses[:pivot], statuses[pivot + 1:]
    else:
        # No frontier: a completed prefix followed by a locked suffix.
        pivot = next((i for i, s in enumerate(statuses) if s != MilestoneStatus.COMPLETED), len(statuses))
        before, after = statuses[:pivot], statuses[pivot:]
    if any(s != MilestoneStatus.COMPLETED for s in before):
        raise ProgressInvariantError("A milestone before the frontier is not completed.")
    if any(s != MilestoneStatus.LOCKED for s in after):
        raise ProgressInvariantError("A milestone after the frontier is not locked.")


def open_milestone(view: CourseView, milestone_id: int) -> OpenedMilestone:
    """Gate for opening a milestone: locked is rejected, completed opens read-only."""
    item = view.get(milestone_id)
    if item is None:
        raise NotFound("Milestone not found.")
    if item.is_locked:
        raise LockedMilestone()
    return OpenedMilestone(view=item, read_only=item.is_completed)


# ─── Engine (store-backed) ───────────────────────────────────────────────────

@dataclass
class CourseSummary:
    course:          Course
    display_pct:     int
    has_certificate: bool


@dataclass
class Dashboard:
    courses:           list[CourseSummary]
    active_count:      int
    completed_count:   int
    certificate_count: int


def require_user(ctx: Optional[UserContext]) -> UserContext:
    if ctx is None:
        raise AuthRequired()
    return ctx


class ProgressionEngine:
    """
    Read side of the course state machine.

    Usage::

        engine = ProgressionEngine()
        view   = engine.course_progress(ctx, course_id)
        opened = engine.open(ctx, course_id, milestone_id)   # may raise LockedMilestone
    """

    def course_progress(self, ctx: Optional[UserContext], course_id: int) -> CourseView:
        ctx = require_user(ctx)
        course = database.get_course(course_id, ctx.user_id)
        if course is None:
            raise NotFound()
        return build_view(
            database.get_milestones(course_id),
            database.get_progress(ctx.user_id, course_id),
            course=course,
        )

    def open(self, ctx: Optional[UserContext], course_id: int, milestone_id: int) -> OpenedMilestone:
        return open_milestone(self.course_progress(ctx, course_id), milestone_id)

    def dashboard(self, ctx: Optional[UserContext]) -> Dashboard:
        ctx = require_user(ctx)
        courses = database.list_courses(ctx.user_id)
        certified = {c.course_id for c in database.list_certificates(ctx.user_id)}
        summaries = [
            CourseSummary(
                course=c,
                display_pct=self.course_progress(ctx, c.id).display_pct,
                has_certificate=c.id in certified,
            )
            for c in courses
        ]
        return Dashboard(
            courses=summaries,
            active_count=sum(1 for c in courses if c.status == CourseStatus.ACTIVE),
            completed_count=sum(1 for c in courses if c.status == CourseStatus.COMPLETED),
            certificate_count=len(certified),
        )

    def certificate(self, ctx: Optional[UserContext], course_id: int) -> Certificate:
        """Certificate of a completed course the caller owns, for re-download."""
        ctx = require_user(ctx)
        course = database.get_course(course_id, ctx.user_id)
        if course is None:
            raise NotFound()
        cert = database.get_certificate(ctx.user_id, course_id)
        if course.status != CourseStatus.COMPLETED or cert is None:
            raise NotFound("Finish every milestone to earn this certificate.")
        return cert

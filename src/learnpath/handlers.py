"""
handlers.py — Request/response surface
======================================
Dict-in / dict-out entry points matching the wire contract the front-end
uses (camelCase keys).  Every LearnPathError is turned into
``{"error": <short message>}``; a success carries ``"success": True``.

  generate_roadmap({topic, duration, goal, skillLevel, preference, userId})
      → {success, course, milestones}
  submit_quiz({userId, courseId, milestoneId, answers})
      → {success, passed, score, courseCompleted, certificateId?}
  suggest_next_course({completedCourse, userPreferences})
      → {success, suggestions}

sign_in() resolves or creates a learner by name and returns the
UserContext the other operations expect.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Optional

from learnpath import database
from learnpath.errors import AuthRequired, InvalidRequest, LearnPathError
from learnpath.models import Course, Milestone, RoadmapRequest, UserContext
from learnpath.quiz_evaluator import QuizEvaluator
from learnpath.roadmap_agent import RoadmapGeneratorAgent
from learnpath.suggestion_agent import SuggestionAgent

logger = logging.getLogger(__name__)

Payload = dict[str, Any]


# ─── Session ─────────────────────────────────────────────────────────────────

def sign_in(name: str, pin: str = "1234") -> UserContext:
    """Return the context for *name*, creating the learner on first sign-in."""
    name = (name or "").strip()
    if not name:
        raise AuthRequired("Enter your name to sign in.")
    existing = database.get_user(name)
    if existing is not None:
        if existing["pin"] != pin:
            raise AuthRequired("Incorrect PIN.")
        return UserContext(user_id=existing["id"], name=existing["name"])
    return UserContext(user_id=database.create_user(name, pin), name=name)


def resolve_user(user_id: Any) -> UserContext:
    if user_id is None:
        raise AuthRequired()
    row = database.get_user_by_id(_as_int(user_id, "userId"))
    if row is None:
        raise AuthRequired()
    return UserContext(user_id=row["id"], name=row["name"])


# ─── Payload helpers ─────────────────────────────────────────────────────────

def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise InvalidRequest(f"'{key}' must be an integer.")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidRequest(f"'{key}' must be an integer.")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequest(f"'{key}' must be an integer.") from None


def _require(payload: Payload, key: str) -> Any:
    if key not in payload or payload[key] is None:
        raise InvalidRequest(f"Missing '{key}'.")
    return payload[key]


def _course_dict(course: Course) -> Payload:
    return {
        "id":            course.id,
        "userId":        course.user_id,
        "name":          course.name,
        "duration":      course.duration,
        "status":        course.status.value,
        "roadmap":       course.roadmap,
        "roadmapSource": course.roadmap_source.value,
        "createdAt":     course.created_at,
    }


def _milestone_dict(m: Milestone) -> Payload:
    return {
        "id":         m.id,
        "courseId":   m.course_id,
        "title":      m.title,
        "orderIndex": m.order_index,
        "resources":  m.resources.model_dump(by_alias=True),
        "quiz":       [q.model_dump(by_alias=True) for q in m.quiz],
    }


def handler(fn: Callable[..., Payload]) -> Callable[..., Payload]:
    """Turn LearnPathError into an ``{"error": ...}`` response."""
    @wraps(fn)
    def wrapper(payload: Optional[Payload], *args: Any, **kwargs: Any) -> Payload:
        try:
            return fn(payload or {}, *args, **kwargs)
        except LearnPathError as exc:
            logger.warning("%s failed: %s: %s", fn.__name__, exc.__class__.__name__, exc)
            return {"error": exc.user_message}
    return wrapper


# ─── Operations ──────────────────────────────────────────────────────────────

@handler
def generate_roadmap(payload: Payload, agent: RoadmapGeneratorAgent | None = None) -> Payload:
    ctx = resolve_user(payload.get("userId"))
    request = RoadmapRequest(
        topic       = str(payload.get("topic") or ""),
        duration    = str(payload.get("duration") or ""),
        skill_level = str(payload.get("skillLevel") or ""),
        preference  = str(payload.get("preference") or ""),
        goal        = str(payload.get("goal") or ""),
    )
    course, milestones, _ = (agent or RoadmapGeneratorAgent()).run(ctx, request)
    return {
        "success":    True,
        "course":     _course_dict(course),
        "milestones": [_milestone_dict(m) for m in milestones],
    }


@handler
def submit_quiz(payload: Payload, evaluator: QuizEvaluator | None = None) -> Payload:
    ctx = resolve_user(payload.get("userId"))
    answers = _require(payload, "answers")
    if not isinstance(answers, list):
        raise InvalidRequest("'answers' must be a list.")
    outcome = (evaluator or QuizEvaluator()).submit(
        ctx,
        _as_int(_require(payload, "courseId"), "courseId"),
        _as_int(_require(payload, "milestoneId"), "milestoneId"),
        [None if a is None else _as_int(a, "answers") for a in answers],
    )
    response: Payload = {
        "success":         True,
        "passed":          outcome.passed,
        "score":           outcome.score,
        "courseCompleted": outcome.course_completed,
        "message":         outcome.message,
    }
    if outcome.certificate is not None:
        response["certificateId"] = outcome.certificate.id
    return response


@handler
def suggest_next_course(payload: Payload, agent: SuggestionAgent | None = None) -> Payload:
    doc, _ = (agent or SuggestionAgent()).suggest(
        str(payload.get("completedCourse") or ""),
        payload.get("userPreferences"),
    )
    return {"success": True, "suggestions": doc.model_dump(by_alias=True)}

"""
guardrails.py – Request and output guardrails
=============================================
Validates what goes into the roadmap generator and what comes out of it.

Guardrail levels
----------------
BLOCK   – Hard-stop: generation does not proceed.
WARN    – Soft-stop: generation proceeds; the warning is logged and traced.
INFO    – Advisory note recorded in the run trace.

Guards implemented
------------------
Request guards (before RoadmapGeneratorAgent):
  G-01  Topic must not be empty
  G-02  Topic length ≤ 200 characters
  G-03  Duration recognised (else default milestone count applies)
  G-04  Preference / skill level / goal recognised (else no prompt rules)

Roadmap guards (after validation, before persistence):
  G-05  Milestone count matches the duration policy
  G-06  Resource URLs use http(s)
  G-07  No duplicate question text inside a milestone quiz
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from learnpath.models import (
    DURATION_OPTIONS,
    GOAL_OPTIONS,
    PREFERENCE_OPTIONS,
    SKILL_LEVEL_OPTIONS,
    RoadmapDocument,
    RoadmapRequest,
    milestone_count_for,
    normalise_duration,
)

MAX_TOPIC_LENGTH = 200

_URL_OK = re.compile(r"^https?://", re.I)


# ─── Enums & data models ─────────────────────────────────────────────────────

class GuardrailLevel(str, Enum):
    BLOCK = "BLOCK"
    WARN  = "WARN"
    INFO  = "INFO"


@dataclass
class GuardrailViolation:
    code:    str
    level:   GuardrailLevel
    message: str
    field:   str = ""   # which field triggered the violation


@dataclass
class GuardrailResult:
    passed:     bool
    violations: list[GuardrailViolation] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return any(v.level == GuardrailLevel.BLOCK for v in self.violations)

    @property
    def warnings(self) -> list[GuardrailViolation]:
        return [v for v in self.violations if v.level == GuardrailLevel.WARN]

    def summary(self) -> str:
        if not self.violations:
            return "All guardrails passed."
        return "\n".join(f"[{v.code}] {v.level.value}: {v.message}" for v in self.violations)


def _result(violations: list[GuardrailViolation]) -> GuardrailResult:
    return GuardrailResult(
        passed=not any(v.level == GuardrailLevel.BLOCK for v in violations),
        violations=violations,
    )


# ─── Guardrail checks ─────────────────────────────────────────────────────────

class RequestGuardrails:
    """G-01 – G-04: Validates a RoadmapRequest before any model call."""

    def check(self, request: RoadmapRequest) -> GuardrailResult:
        violations: list[GuardrailViolation] = []
        topic = (request.topic or "").strip()

        # G-01 Non-empty topic
        if not topic:
            violations.append(GuardrailViolation(
                code="G-01", level=GuardrailLevel.BLOCK, field="topic",
                message="Tell us what you want to learn.",
            ))

        # G-02 Topic length
        if len(topic) > MAX_TOPIC_LENGTH:
            violations.append(GuardrailViolation(
                code="G-02", level=GuardrailLevel.BLOCK, field="topic",
                message=f"Topic is too long ({len(topic)} > {MAX_TOPIC_LENGTH} characters).",
            ))

        # G-03 Duration recognised
        if normalise_duration(request.duration) not in DURATION_OPTIONS:
            violations.append(GuardrailViolation(
                code="G-03", level=GuardrailLevel.WARN, field="duration",
                message=(
                    f"Duration '{request.duration}' not recognised; "
                    f"using {milestone_count_for(request.duration)} milestones."
                ),
            ))

        # G-04 Known personalisation values
        for fname, value, allowed in (
            ("preference",  request.preference,  PREFERENCE_OPTIONS),
            ("skill_level", request.skill_level, SKILL_LEVEL_OPTIONS),
            ("goal",        request.goal,        GOAL_OPTIONS),
        ):
            if value not in allowed:
                violations.append(GuardrailViolation(
                    code="G-04", level=GuardrailLevel.INFO, field=fname,
                    message=f"{fname} '{value}' has no personalisation rules.",
                ))

        return _result(violations)


class RoadmapGuardrails:
    """G-05 – G-07: Checks a validated roadmap before it is persisted."""

    def check(self, roadmap: RoadmapDocument, request: RoadmapRequest) -> GuardrailResult:
        violations: list[GuardrailViolation] = []

        # G-05 Milestone count
        expected = milestone_count_for(request.duration)
        if len(roadmap.milestones) != expected:
            violations.append(GuardrailViolation(
                code="G-05", level=GuardrailLevel.WARN, field="milestones",
                message=f"Roadmap has {len(roadmap.milestones)} milestones; expected {expected}.",
            ))

        for i, m in enumerate(roadmap.milestones, start=1):
            # G-06 URL scheme
            urls = [m.resources.website] if m.resources.website else []
            urls += [v.url for v in m.resources.youtube]
            urls += [a.url for a in m.resources.additional]
            bad = [u for u in urls if not _URL_OK.match(u.strip())]
            if bad:
                violations.append(GuardrailViolation(
                    code="G-06", level=GuardrailLevel.WARN, field=f"milestones[{i}].resources",
                    message=f"Milestone {i} has {len(bad)} resource(s) without an http(s) URL.",
                ))

            # G-07 Duplicate questions
            questions = [q.question.strip().lower() for q in m.quiz]
            if len(questions) != len(set(questions)):
                violations.append(GuardrailViolation(
                    code="G-07", level=GuardrailLevel.WARN, field=f"milestones[{i}].quiz",
                    message=f"Milestone {i} repeats a quiz question.",
                ))

        return _result(violations)

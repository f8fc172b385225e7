"""
roadmap_agent.py — Roadmap Generator
====================================
Turns an onboarding RoadmapRequest into a persisted Course with ordered
Milestones and initial progress rows.

Pipeline
--------
  RequestGuardrails [G-01..G-04]
  → one LLM call (schema-anchored prompt, personalised by preference /
    skill level / goal)
  → recover_json()          five ordered parse strategies
  → RoadmapDocument.model_validate()   trust-boundary schema
  → RoadmapGuardrails [G-05..G-07]
  → database.create_course_with_milestones()   single transaction

Fallback policy
---------------
  • Parse failure, or a document without a course name / usable milestones
    → synthetic roadmap (deterministic placeholders), source="synthetic",
      logged at WARNING and marked "fallback" in the RunTrace.
  • Mock mode (no Azure OpenAI credentials or FORCE_MOCK_MODE)
    → the same synthetic roadmap, source="mock".
  • The model call itself failing (network, HTTP, timeout)
    → GenerationFailure; nothing is persisted and the learner may retry.
"""

from __future__ import annotations

import json
import logging
import textwrap
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from learnpath import database
from learnpath.agent_trace import RunTrace
from learnpath.config import Settings, get_settings
from learnpath.errors import AuthRequired, InvalidRequest
from learnpath.guardrails import GuardrailLevel, GuardrailResult, RequestGuardrails, RoadmapGuardrails
from learnpath.json_recovery import JSONRecoveryError, recover_json
from learnpath.llm_client import LLMClient
from learnpath.models import (
    AdditionalResource,
    Course,
    Milestone,
    MilestoneDraft,
    MilestoneResources,
    QuizItem,
    RoadmapDocument,
    RoadmapRequest,
    RoadmapSource,
    UserContext,
    YouTubeVideo,
    milestone_count_for,
)

logger = logging.getLogger(__name__)


# ─── Prompt ──────────────────────────────────────────────────────────────────

# The exact JSON shape we expect back from the LLM.
_ROADMAP_JSON_SCHEMA = {
    "courseName": "Course title here",
    "duration": "<echo the requested duration>",
    "milestones": [
        {
            "title": "Milestone title",
            "order": 1,
            "resources": {
                "website": "High-quality website URL",
                "youtube": [
                    {"title": "Exact video title", "channel": "Channel name", "url": "YouTube URL"},
                ],
                "additional": [
                    {"title": "Resource title", "url": "URL", "type": "article | documentation"},
                ],
            },
            "quiz": [
                {
                    "question": "Quiz question here?",
                    "options": ["Option A", "Option B", "Option C", "Option D"],
                    "correct": 0,
                },
            ],
        }
    ],
}

_PREFERENCE_RULES: dict[str, str] = {
    "Videos":      "- Include 2-3 YouTube videos and 1 website/documentation link per milestone",
    "Notes":       "- Include 2 websites/documentation links and 1 video per milestone",
    "Interactive": "- Include coding playgrounds, GitHub labs, and interactive tutorials",
}

_SKILL_RULES: dict[str, str] = {
    "Beginner": (
        "- Use simple explanations and easier quiz questions\n"
        "- Focus on fundamentals and basic concepts"
    ),
    "Advanced": (
        "- Include advanced documentation and complex tutorials\n"
        "- Create challenging quiz questions"
    ),
}

_GOAL_RULES: dict[str, str] = {
    "Exam": (
        "- Create practice-style quiz questions similar to exam format\n"
        "- Focus on testable concepts"
    ),
    "Project": (
        "- Include 1 small project idea or exercise per milestone\n"
        "- Focus on practical application"
    ),
    "Placement": (
        "- Add interview-style questions and resources\n"
        "- Include real-world problem-solving scenarios"
    ),
}

_SYSTEM_PROMPT = textwrap.dedent("""
    You are an expert curriculum designer who builds short, practical
    learning roadmaps made of sequential milestones.

    Each milestone has curated resources and a multiple-choice quiz that the
    learner must answer fully correctly to unlock the next milestone, so every
    question needs exactly one unambiguous correct option.

    ## Output
    Respond with ONLY a valid JSON object matching this schema exactly:
""") + json.dumps(_ROADMAP_JSON_SCHEMA, indent=2) + (
    "\n\n\"correct\" is the 0-based index of the right option."
    "\nDo NOT include any explanation, markdown, or extra text outside the JSON."
)


def build_user_message(request: RoadmapRequest) -> str:
    """Template-substitute the learner's answers into the generation prompt."""
    count = milestone_count_for(request.duration)
    rules = [
        f"- Exactly {count} milestones",
        "- Each milestone: 3-5 quiz questions",
    ]
    for table, key in (
        (_PREFERENCE_RULES, request.preference),
        (_SKILL_RULES,      request.skill_level),
        (_GOAL_RULES,       request.goal),
    ):
        if key in table:
            rules.append(table[key])
    rules += ["- Real URLs only", "- Logical progression"]

    return textwrap.dedent(f"""
        Generate a learning roadmap for: "{request.topic}" (Duration: {request.duration})

        User Profile: {request.skill_level} level, prefers {request.preference}, goal: {request.goal}

        REQUIREMENTS:
    """).strip() + "\n" + "\n".join(rules) + "\n\nRESPOND WITH JSON ONLY. NO OTHER TEXT."


# ─── Synthetic roadmap ───────────────────────────────────────────────────────

def synthetic_roadmap(topic: str, duration: str) -> RoadmapDocument:
    """Deterministic placeholder roadmap used when generation output is unusable."""
    topic = topic.strip()
    milestones = [
        MilestoneDraft(
            title=f"{topic} - Milestone {i}",
            order=i,
            resources=MilestoneResources(
                website="https://developer.mozilla.org/en-US/docs/Web",
                youtube=[YouTubeVideo(
                    title="Introduction Tutorial",
                    channel="Educational Channel",
                    url="https://youtube.com",
                )],
                additional=[AdditionalResource(
                    title="Documentation",
                    url="https://docs.example.com",
                    type="documentation",
                )],
            ),
            quiz=[
                QuizItem(
                    question=f"What is the key concept in {topic}?",
                    options=["Option A", "Option B", "Option C", "Option D"],
                    correct_index=0,
                ),
                QuizItem(
                    question=f"How do you implement {topic}?",
                    options=["Method 1", "Method 2", "Method 3", "Method 4"],
                    correct_index=1,
                ),
                QuizItem(
                    question=f"What are best practices for {topic}?",
                    options=["Practice A", "Practice B", "Practice C", "Practice D"],
                    correct_index=2,
                ),
            ],
        )
        for i in range(1, milestone_count_for(duration) + 1)
    ]
    return RoadmapDocument(course_name=f"{topic} Learning Path", duration=duration, milestones=milestones)


# ─── Agent ───────────────────────────────────────────────────────────────────

@dataclass
class GeneratedRoadmap:
    """Validated roadmap plus provenance, before persistence."""
    roadmap:        RoadmapDocument
    source:         RoadmapSource
    trace:          RunTrace
    guardrails:     GuardrailResult
    parse_strategy: Optional[str] = None


class RoadmapGeneratorAgent:
    """
    Generates and persists a course roadmap.

    Usage::

        agent = RoadmapGeneratorAgent()
        course, milestones, generated = agent.run(ctx, request)
        if generated.source is not RoadmapSource.LLM:
            ...  # degraded output, flagged for operators
    """

    TEMPERATURE = 0.7
    MAX_TOKENS  = 2000

    def __init__(self, client: LLMClient | None = None, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        if client is None and self._settings.live_mode:
            client = LLMClient(self._settings.openai)
        self._client = client
        self._request_guard = RequestGuardrails()
        self._roadmap_guard = RoadmapGuardrails()

    @property
    def live(self) -> bool:
        return self._client is not None

    # ── Generation ───────────────────────────────────────────────────────────

    def generate(self, request: RoadmapRequest) -> GeneratedRoadmap:
        """
        Produce a validated roadmap (real or synthetic) without persisting it.

        Raises:
            InvalidRequest     – a request guardrail blocked the input.
            GenerationFailure  – the live model call failed.
        """
        trace = RunTrace.start(request.topic, "azure_openai" if self.live else "mock")

        t0 = trace.elapsed_ms()
        req_check = self._request_guard.check(request)
        trace.record(
            "request_guardrails", "Request Guardrails", t0,
            status="success" if req_check.passed else "skipped",
            input_summary=f"topic='{request.topic}', duration='{request.duration}'",
            output_summary=req_check.summary(),
            warnings=[v.message for v in req_check.violations if v.level != GuardrailLevel.INFO],
        )
        if req_check.blocked:
            blocking = next(v for v in req_check.violations if v.level == GuardrailLevel.BLOCK)
            raise InvalidRequest(blocking.message)
        for v in req_check.warnings:
            logger.warning("Roadmap request guardrail %s: %s", v.code, v.message)

        if not self.live:
            roadmap = synthetic_roadmap(request.topic, request.duration)
            source, strategy = RoadmapSource.MOCK, None
            logger.info("Mock mode: synthetic roadmap for '%s'", request.topic)
            trace.record(
                "roadmap_generator", "Roadmap Generator", trace.elapsed_ms(),
                status="fallback",
                input_summary="No model configured",
                output_summary=f"Synthetic roadmap with {len(roadmap.milestones)} milestones",
                decisions=["mock mode: synthetic roadmap"],
            )
        else:
            t1 = trace.elapsed_ms()
            raw_text = self._client.complete(
                _SYSTEM_PROMPT,
                build_user_message(request),
                temperature=self.TEMPERATURE,
                max_tokens=self.MAX_TOKENS,
            )
            roadmap, source, strategy, reason = self._interpret(raw_text, request)
            trace.record(
                "roadmap_generator", "Roadmap Generator", t1,
                status={
                    RoadmapSource.LLM: "repaired" if strategy != "direct" else "success",
                    RoadmapSource.SYNTHETIC: "fallback",
                }[source],
                input_summary=f"{len(raw_text)} characters of model output",
                output_summary=f"{source.value} roadmap with {len(roadmap.milestones)} milestones",
                decisions=[f"parse strategy: {strategy}"] if strategy else [],
                warnings=[reason] if reason else [],
            )

        t2 = trace.elapsed_ms()
        out_check = self._roadmap_guard.check(roadmap, request)
        for v in out_check.warnings:
            logger.warning("Roadmap guardrail %s: %s", v.code, v.message)
        trace.record(
            "roadmap_guardrails", "Roadmap Guardrails", t2,
            status="success",
            input_summary=f"'{roadmap.course_name}'",
            output_summary=out_check.summary(),
            warnings=[v.message for v in out_check.warnings],
        )

        return GeneratedRoadmap(
            roadmap=roadmap,
            source=source,
            trace=trace,
            guardrails=out_check,
            parse_strategy=strategy,
        )

    def _interpret(
        self, raw_text: str, request: RoadmapRequest,
    ) -> tuple[RoadmapDocument, RoadmapSource, Optional[str], Optional[str]]:
        """Recover + validate model output; fall back to a synthetic roadmap."""
        try:
            outcome = recover_json(raw_text)
        except JSONRecoveryError as exc:
            reason = f"unparseable model output: {exc}"
        else:
            try:
                roadmap = RoadmapDocument.model_validate(outcome.data)
            except ValidationError as exc:
                reason = f"model output failed schema validation ({exc.error_count()} errors)"
            else:
                if outcome.strategy != "direct":
                    logger.info("Roadmap JSON recovered with strategy '%s'", outcome.strategy)
                return roadmap, RoadmapSource.LLM, outcome.strategy, None

        logger.warning(
            "Synthetic roadmap used for '%s': %s", request.topic, reason,
        )
        return synthetic_roadmap(request.topic, request.duration), RoadmapSource.SYNTHETIC, None, reason

    # ── Public interface ─────────────────────────────────────────────────────

    def run(
        self, ctx: UserContext, request: RoadmapRequest,
    ) -> tuple[Course, list[Milestone], GeneratedRoadmap]:
        """Generate a roadmap and persist course, milestones and progress together."""
        if ctx is None:
            raise AuthRequired()
        generated = self.generate(request)
        roadmap = generated.roadmap

        course, milestones = database.create_course_with_milestones(
            user_id=ctx.user_id,
            name=roadmap.course_name.strip(),
            duration=request.duration.strip() or roadmap.duration,
            roadmap=roadmap.model_dump(by_alias=True),
            roadmap_source=generated.source,
            milestones=[
                (order_index, m.title.strip(), m.resources, m.quiz)
                for order_index, m in roadmap.ordered_milestones()
            ],
            trace_json=json.dumps(generated.trace.to_dict()),
        )
        return course, milestones, generated

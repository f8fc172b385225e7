"""
suggestion_agent.py — Next-course / career suggestions
======================================================
Given the name of a completed course and the learner's free-text
preferences, asks the model for a structured SuggestionDocument:

  currentOpportunities   {title, items[str]}
  nextSteps              {title, items[{name, description, impact}]}
  careerPaths            {title, items[str]}

Recovery policy: one direct ``json.loads`` + schema validation.  Anything
else yields the static fallback document templated with the course name, so
the caller always receives a well-formed result.  There are no retries.  A
failed model call (network, HTTP, timeout) raises GenerationFailure.
"""

from __future__ import annotations

import json
import logging
import textwrap
from typing import Any

from pydantic import ValidationError

from learnpath.config import Settings, get_settings
from learnpath.errors import InvalidRequest
from learnpath.llm_client import LLMClient
from learnpath.models import NextStep, NextStepList, SuggestionDocument, SuggestionList

logger = logging.getLogger(__name__)


_SYSTEM_PROMPT = textwrap.dedent("""\
    You are a career development assistant that analyses completed courses and
    provides personalised learning recommendations.

    Return ONLY a JSON object with this exact structure and no additional text:
    {
      "currentOpportunities": {"title": "What You Can Do Now With <course>",
                               "items": ["<job role with salary range>",
                                         "<project idea>", "<freelance opportunity>"]},
      "nextSteps": {"title": "Strategic Next Learning Steps",
                    "items": [{"name": "<advanced course or certification>",
                               "description": "<how it builds on the course>",
                               "impact": "<concrete career impact>"}]},
      "careerPaths": {"title": "Career Trajectories From <course>",
                      "items": ["<progressive role>", "<leadership role>", "<specialist role>"]}
    }

    Requirements:
    - Every suggestion must be specific to the completed course; no generic advice.
    - Include realistic salary ranges and timeframes where relevant.
    - Make career paths progressive (junior → senior → leadership).
    - Be concrete and actionable.
""")


def build_user_message(completed_course: str, user_preferences: Any) -> str:
    prefs = user_preferences if isinstance(user_preferences, str) else json.dumps(user_preferences)
    return (
        f'COMPLETED COURSE: "{completed_course}"\n'
        f"USER PREFERENCES: {prefs or 'none given'}\n\n"
        "Analyse the skills gained, consider current industry demand, and suggest "
        "next steps that build directly on this course."
    )


def fallback_suggestions(completed_course: str) -> SuggestionDocument:
    """Static document used whenever the model output cannot be used."""
    c = completed_course
    return SuggestionDocument(
        current_opportunities=SuggestionList(
            title=f"What You Can Do Now With {c}",
            items=[
                f"Apply {c} skills in practical projects",
                f"Build a portfolio showcasing {c} expertise",
                f"Connect with {c} professionals and communities",
            ],
        ),
        next_steps=NextStepList(
            title="Recommended Next Steps",
            items=[
                NextStep(
                    name=f"Advanced {c} Concepts",
                    description=f"Deepen your {c} expertise with advanced techniques",
                    impact=f"Become a recognized expert in {c}",
                ),
                NextStep(
                    name="Industry Certifications",
                    description=f"Obtain relevant certifications in {c} domain",
                    impact="Increase credibility and job market value",
                ),
            ],
        ),
        career_paths=SuggestionList(
            title="Career Opportunities",
            items=[f"{c} Specialist", f"{c} Consultant", f"{c} Team Lead"],
        ),
    )


class SuggestionAgent:
    """
    Suggests what to learn next after a completed course.

    Usage::

        agent = SuggestionAgent()
        doc, used_fallback = agent.suggest("React Basics", {"goal": "Placement"})
        payload = doc.model_dump(by_alias=True)
    """

    TEMPERATURE = 0.3
    MAX_TOKENS  = 2048

    def __init__(self, client: LLMClient | None = None, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        if client is None and self._settings.live_mode:
            client = LLMClient(self._settings.openai)
        self._client = client

    @property
    def live(self) -> bool:
        return self._client is not None

    def suggest(self, completed_course: str, user_preferences: Any = None) -> tuple[SuggestionDocument, bool]:
        """
        Return ``(document, used_fallback)``.

        Raises:
            InvalidRequest     – no course name given.
            GenerationFailure  – the live model call failed.
        """
        completed_course = (completed_course or "").strip()
        if not completed_course:
            raise InvalidRequest("A completed course name is required.")

        if not self.live:
            logger.info("Mock mode: fallback suggestions for '%s'", completed_course)
            return fallback_suggestions(completed_course), True

        raw_text = self._client.complete(
            _SYSTEM_PROMPT,
            build_user_message(completed_course, user_preferences),
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        try:
            return SuggestionDocument.model_validate(json.loads(raw_text or "{}")), False
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning(
                "Fallback suggestions used for '%s': %s (raw length %d)",
                completed_course, exc.__class__.__name__, len(raw_text or ""),
            )
            return fallback_suggestions(completed_course), True

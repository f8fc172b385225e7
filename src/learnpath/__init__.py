"""
learnpath — Personalised learning-path generator with gated progression
=======================================================================
Package containing the generators, progression state machine, quiz
evaluation, configuration and persistence for LearnPath.

Module map
----------
  models.py             Shared dataclasses, Pydantic schemas, enums and the
                        duration → milestone-count policy.
  config.py             Settings loaded from .env; live vs mock detection.
  errors.py             LearnPathError taxonomy with user-facing messages.
  database.py           SQLite persistence (users, courses, milestones,
                        progress, certificates); transactional cascades.
  json_recovery.py      Five ordered strategies to pull JSON out of model text.
  llm_client.py         Azure OpenAI chat-completions wrapper.
  guardrails.py         Request and roadmap guardrails [G-01..G-07].
  agent_trace.py        Lightweight AgentStep / RunTrace audit log.

  intake_agent.py       Onboarding interview (CLI) → RoadmapRequest.
  roadmap_agent.py      Roadmap Generator: LLM / synthetic → persisted course.
  progression.py        Progression Engine: lock / active / completed views.
  quiz_evaluator.py     Quiz scoring + unlock cascade + certificate issue.
  suggestion_agent.py   Next-course suggestions with static fallback.
  certificate.py        Certificate data, HTML and PDF export.
  handlers.py           Dict-in / dict-out request surface.

Flow
----
  OnboardingAgent → RequestGuardrails [G-01..G-04]
  → RoadmapGeneratorAgent → RoadmapGuardrails [G-05..G-07]
  → course + milestones + progress (one transaction)
  ** learner studies the active milestone and takes its quiz **
  → QuizEvaluator → complete_milestone cascade (one transaction)
  ** last milestone passed **
  → Certificate → SuggestionAgent
"""
__version__ = "0.1.0"

"""
intake_agent.py — Onboarding interview
======================================
OnboardingAgent
    Collects the five onboarding answers via an interactive CLI interview
    (topic, duration, preference, skill level, goal).
    Returns: RoadmapRequest

run_onboarding_and_generate()
    Interview + RoadmapGeneratorAgent.run() as a single step.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from learnpath.models import (
    DURATION_OPTIONS,
    GOAL_OPTIONS,
    PREFERENCE_OPTIONS,
    SKILL_LEVEL_OPTIONS,
    Course,
    Milestone,
    RoadmapRequest,
    UserContext,
)
from learnpath.roadmap_agent import GeneratedRoadmap, RoadmapGeneratorAgent

console = Console()


class OnboardingAgent:
    """
    Conducts the guided onboarding interview and returns a RoadmapRequest.
    Fixed-choice questions are validated by the Rich prompt itself.
    """

    BANNER = "[bold magenta]LearnPath — Build Your Learning Path[/bold magenta]"

    def run(self) -> RoadmapRequest:
        console.print()
        console.print(Panel(self.BANNER, subtitle="Five questions to personalise your course", expand=False))
        console.print()

        # Q1 – Topic
        topic = ""
        while not topic.strip():
            topic = Prompt.ask(
                "[cyan]1.[/cyan] What do you want to learn? "
                "[dim](e.g. React Development, Data Structures)[/dim]"
            )

        # Q2 – Duration (choice or free text; unknown values use the default count)
        duration = Prompt.ask(
            "[cyan]2.[/cyan] How long do you have? "
            f"[dim]({' / '.join(DURATION_OPTIONS)}, or your own)[/dim]",
            default="2 weeks",
        )

        # Q3 – Preference
        preference = Prompt.ask(
            "[cyan]3.[/cyan] How do you prefer to learn?",
            choices=PREFERENCE_OPTIONS,
            default="Videos",
        )

        # Q4 – Skill level
        skill_level = Prompt.ask(
            "[cyan]4.[/cyan] Your current skill level",
            choices=SKILL_LEVEL_OPTIONS,
            default="Beginner",
        )

        # Q5 – Goal
        goal = Prompt.ask(
            "[cyan]5.[/cyan] What is your goal?",
            choices=GOAL_OPTIONS,
            default="Project",
        )

        console.print()
        console.print("[bold green]✓ Onboarding complete.[/bold green] Generating your roadmap…")
        console.print()
        return RoadmapRequest(
            topic=topic.strip(),
            duration=duration.strip(),
            skill_level=skill_level,
            preference=preference,
            goal=goal,
        )


def run_onboarding_and_generate(
    ctx: UserContext,
    agent: RoadmapGeneratorAgent | None = None,
) -> tuple[RoadmapRequest, Course, list[Milestone], GeneratedRoadmap]:
    """
    Full onboarding pipeline:
      1. OnboardingAgent        → RoadmapRequest
      2. RoadmapGeneratorAgent  → persisted Course + Milestones

    Returns the request too so callers can show what was asked for.
    """
    request = OnboardingAgent().run()
    agent = agent or RoadmapGeneratorAgent()
    with console.status("[bold blue]Roadmap generator: building your milestones…"):
        course, milestones, generated = agent.run(ctx, request)
    return request, course, milestones, generated

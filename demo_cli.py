"""
demo_cli.py – Interactive LearnPath demo

Run:
    python demo_cli.py

Without Azure OpenAI credentials the generators run in mock mode and every
course uses the synthetic roadmap.  See .env.example for live settings.
"""

from __future__ import annotations

import sys
from pathlib import Path

# ── make src/ importable without installing the package ──────────────────────
sys.path.insert(0, str(Path(__file__).parent / "src"))

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt
from rich.table import Table
from rich import box

from learnpath import database
from learnpath.certificate import write_certificate_files
from learnpath.config import get_settings
from learnpath.errors import LearnPathError
from learnpath.handlers import sign_in
from learnpath.intake_agent import run_onboarding_and_generate
from learnpath.models import Certificate, MilestoneStatus, UserContext
from learnpath.progression import CourseView, ProgressionEngine
from learnpath.quiz_evaluator import QuizEvaluator
from learnpath.suggestion_agent import SuggestionAgent

console = Console()
engine = ProgressionEngine()

STATUS_STYLE = {
    MilestoneStatus.LOCKED:    "[dim]🔒 locked[/dim]",
    MilestoneStatus.ACTIVE:    "[bold cyan]▶ active[/bold cyan]",
    MilestoneStatus.COMPLETED: "[bold green]✓ completed[/bold green]",
}


# ─── Display helpers ─────────────────────────────────────────────────────────

def _bar(pct: int, width: int = 20) -> str:
    filled = round(pct / 100 * width)
    return "[" + "█" * filled + "░" * (width - filled) + f"] {pct}%"


def show_dashboard(ctx: UserContext) -> None:
    dash = engine.dashboard(ctx)
    table = Table(box=box.SIMPLE_HEAD, header_style="bold white on dark_violet", padding=(0, 1))
    table.add_column("#",        justify="right")
    table.add_column("Course",   style="white", min_width=30)
    table.add_column("Duration", justify="center")
    table.add_column("Progress", min_width=28)
    table.add_column("Cert",     justify="center")
    for s in dash.courses:
        table.add_row(
            str(s.course.id), s.course.name, s.course.duration,
            _bar(s.display_pct), "🏅" if s.has_certificate else "",
        )
    console.print(Panel(
        table,
        title=f"[bold]{ctx.name}'s Dashboard[/bold]",
        subtitle=(f"{dash.active_count} active · {dash.completed_count} completed · "
                  f"{dash.certificate_count} certificates"),
        border_style="magenta",
    ))


def show_course(view: CourseView) -> None:
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan", padding=(0, 1))
    table.add_column("#",         justify="right")
    table.add_column("Milestone", min_width=36)
    table.add_column("Status",    justify="center")
    table.add_column("Score", justify="right")
    for m in view.milestones:
        score = f"{m.quiz_score}%" if m.quiz_score is not None else "—"
        table.add_row(str(m.milestone.order_index), m.milestone.title, STATUS_STYLE[m.status], score)
    console.print(Panel(
        table,
        title=f"[bold]{view.course.name}[/bold]",
        subtitle=_bar(view.display_pct),
        border_style="blue",
    ))


def show_resources(view: CourseView, milestone_id: int) -> None:
    res = view.get(milestone_id).milestone.resources
    lines = []
    if res.website:
        lines.append(f"🌐 {res.website}")
    lines += [f"▶ {v.title} [dim]({v.channel})[/dim] {v.url}" for v in res.youtube]
    lines += [f"📄 {a.title} [dim]({a.type})[/dim] {a.url}" for a in res.additional]
    console.print(Panel("\n".join(lines) or "[dim]No resources[/dim]",
                        title="[bold]Study Resources[/bold]", border_style="cyan"))


def export_certificate(cert: Certificate) -> None:
    html_path, pdf_path = write_certificate_files(cert.certificate_data)
    console.print(f"[bold green]🏅 Certificate {cert.id} saved:[/bold green] {html_path}, {pdf_path}")


def show_suggestions(course_name: str) -> None:
    doc, used_fallback = SuggestionAgent().suggest(course_name, {})
    body = [f"[bold]{doc.current_opportunities.title}[/bold]"]
    body += [f"  • {i}" for i in doc.current_opportunities.items]
    body += ["", f"[bold]{doc.next_steps.title}[/bold]"]
    body += [f"  • [cyan]{s.name}[/cyan] — {s.description} [dim]({s.impact})[/dim]"
             for s in doc.next_steps.items]
    body += ["", f"[bold]{doc.career_paths.title}[/bold]"]
    body += [f"  • {i}" for i in doc.career_paths.items]
    console.print(Panel("\n".join(body), title="[bold]What's Next[/bold]",
                        subtitle="[dim]template[/dim]" if used_fallback else None,
                        border_style="green"))


# ─── Flows ───────────────────────────────────────────────────────────────────

def take_quiz(ctx: UserContext, view: CourseView, milestone_id: int) -> None:
    quiz = view.get(milestone_id).milestone.quiz
    answers = []
    for n, q in enumerate(quiz, start=1):
        console.print(f"\n[bold]Q{n}.[/bold] {q.question}")
        for i, opt in enumerate(q.options, start=1):
            console.print(f"   {i}. {opt}")
        answers.append(IntPrompt.ask("   Your answer", choices=[str(i) for i in range(1, len(q.options) + 1)]) - 1)

    outcome = QuizEvaluator(engine).submit(ctx, view.course.id, milestone_id, answers)
    colour = "green" if outcome.passed else "red"
    console.print(f"\n[bold {colour}]Score: {outcome.score}%[/bold {colour}]  {outcome.message}")
    if outcome.course_completed and outcome.certificate is not None:
        export_certificate(outcome.certificate)
        show_suggestions(view.course.name)


def course_loop(ctx: UserContext, course_id: int) -> None:
    while True:
        view = engine.course_progress(ctx, course_id)
        show_course(view)
        choice = Prompt.ask("Open milestone # (or [bold]b[/bold]ack)", default="b")
        if choice.lower().startswith("b"):
            return
        item = next((m for m in view.milestones if str(m.milestone.order_index) == choice), None)
        if item is None:
            console.print("[yellow]No such milestone.[/yellow]")
            continue
        try:
            opened = engine.open(ctx, course_id, item.milestone.id)
        except LearnPathError as e:
            console.print(f"[yellow]{e.user_message}[/yellow]")
            continue
        show_resources(view, item.milestone.id)
        if opened.read_only:
            console.print("[dim]Completed — review only.[/dim]")
        elif Prompt.ask("Take the quiz now?", choices=["y", "n"], default="y") == "y":
            take_quiz(ctx, view, item.milestone.id)


# ─── Main ────────────────────────────────────────────────────────────────────

def main() -> None:
    settings = get_settings()
    console.print()
    console.print(Panel(
        "[bold]LearnPath[/bold]\n"
        "[dim]Personalised learning paths  •  "
        + ("live Azure OpenAI" if settings.live_mode else "mock mode") + "[/dim]",
        style="on dark_violet",
        expand=False,
    ))

    try:
        database.init_db()
        ctx = sign_in(Prompt.ask("Your name"), Prompt.ask("PIN", default="1234", password=True))
        while True:
            show_dashboard(ctx)
            choice = Prompt.ask(
                r"\[n]ew course, open course #, \[c]ertificate #, \[s]uggestions #, or \[q]uit",
                default="n",
            ).strip().lower()
            if choice.startswith("q"):
                break
            try:
                if choice.startswith("n"):
                    _, course, _, generated = run_onboarding_and_generate(ctx)
                    console.print(f"[bold green]✓ Created[/bold green] {course.name} "
                                  f"[dim](roadmap: {generated.source.value})[/dim]")
                    course_loop(ctx, course.id)
                elif choice[:1] in ("c", "s") and choice[1:].strip().isdigit():
                    cert = engine.certificate(ctx, int(choice[1:]))
                    if choice.startswith("c"):
                        export_certificate(cert)
                    else:
                        show_suggestions(cert.certificate_data.course_name)
                elif choice.isdigit():
                    course_loop(ctx, int(choice))
            except LearnPathError as e:
                console.print(f"[bold red]{e.user_message}[/bold red]")

    except LearnPathError as e:
        console.print(f"\n[bold red]{e.user_message}[/bold red]")
        sys.exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(0)

    except Exception:
        console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()

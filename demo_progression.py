"""
demo_progression.py – Console walkthrough of the Learning Progression Engine

Run:
    python demo_progression.py [certificate.pdf]

Walks one learner through the built-in Data Literacy Program: passes the
fundamentals quiz, completes the remaining lessons in unlock order, and
requests a certificate.  If a path is given, the certificate PDF is written
there.  Optional settings are read from .env (see .env.example).
"""

from __future__ import annotations

import sys
from pathlib import Path

# ── make src/ importable without installing the package ──────────────────────
sys.path.insert(0, str(Path(__file__).parent / "src"))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box

from progression.certification import Rejected
from progression.config import configure_logging
from progression.engine import ProgressionEngine
from progression.errors import ProgressionError
from progression.models import ProgressRecord
from progression.resolver import Availability

console = Console()

# ─── Colour map for lesson availability ──────────────────────────────────────
AVAILABILITY_STYLE = {
    Availability.LOCKED:    "bold red",
    Availability.AVAILABLE: "bold cyan",
    Availability.COMPLETED: "bold green",
}

AVAILABILITY_ICON = {
    Availability.LOCKED:    "🔒",
    Availability.AVAILABLE: "◑",
    Availability.COMPLETED: "✓",
}


# ─── Display helpers ─────────────────────────────────────────────────────────

def _bar(percent: float, width: int = 16) -> str:
    filled = round(percent / 100 * width)
    return "[" + "█" * filled + "░" * (width - filled) + f"] {percent:.0f}%"


def show_progress(engine: ProgressionEngine, progress: ProgressRecord, heading: str) -> None:
    """Render lesson availability and module completion."""
    console.print()
    console.rule(f"[bold magenta]{heading}[/bold magenta]")

    lessons = Table(
        box=box.SIMPLE_HEAD,
        show_header=True,
        header_style="bold white on dark_violet",
        padding=(0, 1),
    )
    lessons.add_column("Module",  style="dim white", min_width=14)
    lessons.add_column("Lesson",  style="white",     min_width=34)
    lessons.add_column("Status",  justify="center",  min_width=12)
    lessons.add_column("Waiting on", style="dim white")

    for module in engine.catalog.modules:
        for lesson in module.lessons:
            status, missing = engine.lesson_availability(lesson.id, progress)
            style = AVAILABILITY_STYLE[status]
            lessons.add_row(
                module.title,
                lesson.title,
                f"[{style}]{AVAILABILITY_ICON[status]} {status.value.upper()}[/{style}]",
                ", ".join(missing),
            )
    console.print(Panel(lessons, title="[bold]Lessons[/bold]", border_style="blue"))

    modules = Table(box=box.ROUNDED, show_header=False, padding=(0, 1))
    modules.add_column("Module", style="bold cyan", no_wrap=True)
    modules.add_column("Completion")
    for module_id, pct in engine.get_module_completion(progress).items():
        modules.add_row(engine.catalog.module(module_id).title, _bar(pct))
    modules.add_row("[bold]Overall[/bold]", _bar(engine.overall_completion(progress)))
    console.print(Panel(modules, title="[bold]Completion[/bold]", border_style="green"))


# ─── Main ────────────────────────────────────────────────────────────────────

def main() -> None:
    configure_logging("WARNING")
    pdf_path = Path(sys.argv[1]) if len(sys.argv) > 1 else None

    console.print()
    console.print(Panel(
        "[bold]Learning Progression Engine[/bold]\n"
        "[dim]Data Literacy Program  •  lesson gating, quizzes and certification[/dim]",
        style="on dark_violet",
        expand=False,
    ))

    try:
        engine = ProgressionEngine()
        progress = engine.load_progress("demo-learner")
        show_progress(engine, progress, "Starting point")

        quiz = engine.catalog.quiz("fundamentals-quiz")
        first = engine.submit_quiz(quiz.id, [0, 2], progress)
        console.print(f"\n[yellow]First quiz attempt:[/yellow] {first.score_percent}% "
                      f"(pass mark {quiz.passing_score_percent}%)")
        second = engine.submit_quiz(quiz.id, [2, 2], progress)
        console.print(f"[green]Second quiz attempt:[/green] {second.score_percent}% → "
                      f"lesson '{quiz.lesson_id}' completed")

        early = engine.try_issue_certificate(progress)
        if isinstance(early, Rejected):
            console.print(f"[dim]Certificate request:[/dim] {early.message}")

        engine.record_study_time(progress, 45)
        for lesson_id in engine.catalog.lesson_ids:
            if not progress.is_completed(lesson_id):
                engine.set_lesson_completed(lesson_id, True, progress)
        show_progress(engine, progress, "Curriculum complete")

        outcome = engine.try_issue_certificate(progress)
        if isinstance(outcome, Rejected):
            console.print(f"[bold red]Certificate rejected:[/bold red] {outcome.message}")
            sys.exit(1)

        card = Table(box=box.ROUNDED, show_header=False, padding=(0, 1))
        card.add_column("Key",   style="bold cyan", no_wrap=True)
        card.add_column("Value", style="white")
        card.add_row("Certificate", outcome.title)
        card.add_row("ID",          outcome.id)
        card.add_row("Issued",      outcome.issued_date.strftime("%Y-%m-%d"))
        card.add_row("Expires",     outcome.expiration_date.strftime("%Y-%m-%d"))
        card.add_row("Score",       f"{outcome.overall_score_percent}%")
        console.print(Panel(card, title="[bold]Certificate issued[/bold]", border_style="green"))

        if pdf_path is not None:
            pdf_path.write_bytes(engine.certificate_pdf(outcome, learner_name="Demo Learner"))
            console.print(f"[dim]PDF written to {pdf_path}[/dim]")

        console.print(Panel(engine.learning_insights(progress).summary,
                            title="[bold]Insights[/bold]", border_style="cyan"))

    except ProgressionError as e:
        console.print(f"\n[bold red]Progression error:[/bold red] {e}")
        sys.exit(1)

    except ValueError as e:
        console.print(f"\n[bold red]Configuration error:[/bold red] {e}")
        console.print("[dim]Check your .env file against .env.example and retry.[/dim]")
        sys.exit(1)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()

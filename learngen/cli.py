"""
Typer CLI for learngen.

Commands:
    learngen templates                       - List the latest template of every technique
    learngen show TECHNIQUE [--version V]    - Print a template document as JSON
    learngen generate TECHNIQUE --input F    - Generate an artifact from a JSON input file
    learngen review GRADE [...]              - Compute the next SM-2 review date

Usage:
    learngen --help
    learngen generate flashcards_index_it --input items.json
    learngen review good --interval 6 --reps 2 --reviewed-at 2024-01-01T00:00:00+00:00
"""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from config import Settings, get_settings
from learngen.errors import ConfigurationError, LearnGenError
from learngen.generation.orchestrator import GenerationOrchestrator, create_orchestrator
from learngen.review.scheduler import CardState, ReviewGrade, schedule_review
from learngen.templates.store import load_default_store

app = typer.Typer(
    help="learngen CLI: template-driven generation of mnemonics, stories, flashcards and coaching",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level, format="<level>{level}: {message}</level>")
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB")


def _fail(error: Exception) -> None:
    err_console.print(f"[red]Error:[/red] {escape(str(error))}", highlight=False)
    raise typer.Exit(code=2 if isinstance(error, ConfigurationError) else 1)


@app.command("templates")
def list_templates() -> None:
    """List the latest template of every technique."""
    settings = get_settings()
    try:
        templates = load_default_store(settings.template_dir).list_templates()
    except LearnGenError as e:
        _fail(e)

    table = Table(title="Templates")
    table.add_column("Technique", style="cyan")
    table.add_column("Version")
    table.add_column("Language")
    table.add_column("Input fields")
    table.add_column("Max length", justify="right")
    table.add_column("Required fields")
    for template in templates:
        table.add_row(
            template.technique.value,
            template.version,
            template.language,
            ", ".join(template.input_fields),
            str(template.guardrails.max_answer_length),
            ", ".join(template.guardrails.required_fields),
        )
    console.print(table)


@app.command("show")
def show_template(
    technique: str = typer.Argument(..., help="Technique id, e.g. mnemonic_it"),
    version: str | None = typer.Option(None, "--version", "-v", help="Template version"),
) -> None:
    """Print a template document as JSON."""
    settings = get_settings()
    try:
        template = load_default_store(settings.template_dir).get(technique, version)
    except LearnGenError as e:
        _fail(e)
    console.print_json(json.dumps(template.to_document(), ensure_ascii=False))


async def _generate(
    orchestrator: GenerationOrchestrator, technique: str, payload: dict, version: str | None
):
    try:
        return await orchestrator.generate(technique, payload, version)
    finally:
        await orchestrator.client.aclose()


@app.command("generate")
def generate(
    technique: str = typer.Argument(..., help="Technique id"),
    input_file: Path = typer.Option(..., "--input", "-i", exists=True, dir_okay=False, help="JSON input payload"),
    version: str | None = typer.Option(None, "--version", "-v", help="Template version"),
) -> None:
    """Generate an artifact from a JSON input file."""
    settings = get_settings()

    try:
        payload = json.loads(input_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        err_console.print(f"[red]Error:[/red] {input_file} is not valid JSON: {e}")
        raise typer.Exit(code=1)

    try:
        orchestrator = create_orchestrator(settings)
        artifact = asyncio.run(_generate(orchestrator, technique, payload, version))
    except LearnGenError as e:
        _fail(e)

    console.print_json(json.dumps(artifact.to_payload(), ensure_ascii=False))


@app.command("review")
def review(
    grade: ReviewGrade = typer.Argument(..., help="Review grade"),
    easiness: float = typer.Option(2.5, help="Current easiness factor"),
    interval: float = typer.Option(0, help="Current interval in days"),
    reps: int = typer.Option(0, help="Consecutive successful reviews"),
    reviewed_at: str | None = typer.Option(None, help="ISO timestamp of the review (now if omitted)"),
) -> None:
    """Compute the next SM-2 review date."""
    try:
        schedule = schedule_review(
            CardState(
                grade=grade,
                easiness=easiness,
                interval=interval,
                reps=reps,
                reviewed_at=reviewed_at or datetime.now(timezone.utc),
            )
        )
    except ValueError as e:
        _fail(e)

    console.print_json(
        json.dumps(
            {
                "nextDueAt": schedule.next_due_at.isoformat(),
                "easiness": round(schedule.easiness, 4),
                "interval": schedule.interval,
                "reps": schedule.reps,
            }
        )
    )


def main() -> None:
    """CLI entry point."""
    configure_logging(get_settings())
    app()


if __name__ == "__main__":
    main()

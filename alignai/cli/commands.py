"""AlignAI operator commands.

Each command opens its own database session (where it needs one) and drives
the same service functions the REST API uses.  Typer commands are sync, so
the async work runs under asyncio.run().

Usage:
    alignai init-db
    alignai questions problem --context "B2B invoicing tool for freelancers"
    alignai alignment <section_id> [--threshold 0.8]
    alignai prd <project_id> [--output prd.md]
"""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from alignai.conflict.detector import detect_conflict
from alignai.db.session import engine, get_session, init_db
from alignai.errors import AlignAIError, UnknownCategoryError
from alignai.pipeline.completion import get_completion_provider
from alignai.prd.export import generate_prd
from alignai.prompts.catalog import SECTION_INFO, resolve_category
from alignai.prompts.questions import get_personalized_questions
from alignai.schemas import AlignmentStatus, ConflictResult

console = Console()

_STATUS_STYLE = {
    AlignmentStatus.insufficient_data: "dim",
    AlignmentStatus.aligned: "green",
    AlignmentStatus.conflict: "yellow",
    AlignmentStatus.provider_error: "red",
}


async def _run_init_db() -> None:
    try:
        await init_db()
    finally:
        await engine.dispose()


def init_db_command() -> None:
    """Create the database schema (and the pgvector extension on PostgreSQL)."""
    asyncio.run(_run_init_db())
    console.print("[green]Database schema is ready.[/green]")


def questions(
    category: str = typer.Argument(..., help="Section category, e.g. problem or target_users."),
    context: Optional[str] = typer.Option(
        None,
        "--context",
        help="Project description used to tailor the questions.",
    ),
) -> None:
    """Print the discovery questions for a section category."""
    try:
        resolved = resolve_category(category)
    except UnknownCategoryError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from None

    result = asyncio.run(get_personalized_questions(resolved, context, get_completion_provider()))
    info = SECTION_INFO[resolved]
    body = "\n".join(f"• {q}" for q in result)
    console.print(Panel(body, title=info.title, subtitle=info.description, border_style="blue"))


def _render_result(result: ConflictResult) -> None:
    style = _STATUS_STYLE[result.status]
    lines = [
        f"[{style}]{result.status.value}[/{style}]",
        f"Usable responses: {result.usable_responses}",
        f"Threshold: {result.threshold:.2f}",
    ]
    if result.similarity_score is not None:
        lines.append(f"Min similarity: {result.similarity_score:.3f}")
        lines.append(f"Mean similarity: {result.mean_similarity:.3f}")
    console.print(Panel("\n".join(lines), title="Section alignment", border_style=style))

    if result.analysis is None:
        return
    table = Table(title=f"Conflict analysis (severity: {result.analysis.conflict_severity})")
    table.add_column("Differences")
    table.add_column("Agreement")
    rows = max(len(result.analysis.differences), len(result.analysis.areas_of_agreement))
    for i in range(rows):
        table.add_row(
            result.analysis.differences[i] if i < len(result.analysis.differences) else "",
            result.analysis.areas_of_agreement[i] if i < len(result.analysis.areas_of_agreement) else "",
        )
    console.print(table)
    console.print(Panel(result.analysis.suggested_merge, title="Suggested merge", border_style="cyan"))


async def _run_alignment(section_id: uuid.UUID, threshold: float | None) -> ConflictResult:
    try:
        async with get_session() as session:
            return await detect_conflict(session, section_id, get_completion_provider(), threshold)
    finally:
        await engine.dispose()


def alignment(
    section_id: str = typer.Argument(..., help="Section UUID."),
    threshold: Optional[float] = typer.Option(
        None,
        "--threshold",
        min=-1.0,
        max=1.0,
        help="Override ALIGNAI_CONFLICT_SIMILARITY_THRESHOLD for this run.",
    ),
) -> None:
    """Run conflict detection for a section and show the verdict."""
    try:
        result = asyncio.run(_run_alignment(uuid.UUID(section_id), threshold))
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from None
    except AlignAIError as exc:
        console.print(f"[red]{type(exc).__name__}: {exc}[/red]")
        raise typer.Exit(code=1) from None
    _render_result(result)


async def _run_prd(project_id: uuid.UUID):
    try:
        async with get_session() as session:
            return await generate_prd(session, project_id, get_completion_provider())
    finally:
        await engine.dispose()


def prd(
    project_id: str = typer.Argument(..., help="Project UUID."),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the PRD markdown to this file instead of the terminal.",
    ),
) -> None:
    """Generate the PRD for a project from its approved consensus."""
    try:
        document = asyncio.run(_run_prd(uuid.UUID(project_id)))
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from None
    except AlignAIError as exc:
        console.print(f"[red]{type(exc).__name__}: {exc}[/red]")
        raise typer.Exit(code=1) from None

    if output is None:
        console.print(document.markdown)
        return
    output.write_text(document.markdown, encoding="utf-8")
    console.print(f"[green]PRD written to {output}[/green]")

"""CLI commands for WordMemo.

Commands:
- import-bank: Parse a word bank file into the main bank or a new tag
- tags / show / remove-tag: Manage tags
- quiz: Interactive exam over a tag or the mistakes collection
- mistakes / clear-mistakes: Inspect or reset the mistakes collection
- history: Past exam results
- grade: Grade one answer without running an exam
- storage-info: Show which storage backend is active
"""

from __future__ import annotations

import asyncio
import random
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from wordmemo.config.app_config import load_app_config
from wordmemo.core.grader import grade_answer
from wordmemo.core.models import MISTAKES_TAG
from wordmemo.core.quiz_session import (
    GRADE_MODES,
    QuizSessionError,
    SessionContext,
    add_tag,
    check_answer,
    clear_mistakes as do_clear_mistakes,
    exam_history,
    finish_exam,
    load_session,
    next_question,
    remove_tag as do_remove_tag,
    save_word_bank,
    select_tag,
    start_exam,
    start_mistakes_exam,
)
from wordmemo.core.word_parser import format_word_bank
from wordmemo.storage.base import StorageError
from wordmemo.storage.facade import StorageFacade, get_storage

app = typer.Typer(
    name="wordmemo",
    help="Vocabulary drills with strict and lenient answer grading.",
    no_args_is_help=True,
)

console = Console()

QUIT_WORDS = {"", ":q"}


def _truncate(text: str, max_len: int = 60) -> str:
    """Truncate text with ellipsis if too long."""
    if len(text) <= max_len:
        return text
    return text[:max_len - 3] + "..."


async def _open_session() -> tuple[StorageFacade, SessionContext]:
    storage = get_storage()
    ctx = await load_session(storage)
    return storage, ctx


def _fail(message: str) -> None:
    console.print(f"[red]✗ {escape(message)}[/red]")
    raise typer.Exit(code=1)


# =============================================================================
# WORD BANKS AND TAGS
# =============================================================================


@app.command(name="import-bank")
def import_bank(
    file: str = typer.Argument(..., help="Path to a word bank text file"),
    tag: str | None = typer.Option(None, "--tag", "-t", help="Create a new tag instead of replacing the main bank"),
) -> None:
    """Import a word bank (term [phonetic] line, then definition line)."""
    file_path = Path(file).expanduser()
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        _fail(f"Cannot read {file_path}: {e}")

    async def _import():
        storage, ctx = await _open_session()
        if tag:
            return await add_tag(ctx, storage, tag, text)
        return await save_word_bank(ctx, storage, text)

    try:
        records = asyncio.run(_import())
    except QuizSessionError as e:
        _fail(str(e))

    target = tag or "main bank"
    console.print(f"[green]✓ {len(records)} words imported into {escape(target)}[/green]")
    if not records:
        console.print("[yellow]⚠ No entries recognized; check the two-line format[/yellow]")


@app.command()
def tags() -> None:
    """List tags with their word counts."""
    _, ctx = asyncio.run(_open_session())

    if not ctx.tagged_word_banks:
        console.print("[dim]No tags yet.[/dim]")
        return

    for name, records in ctx.tagged_word_banks.items():
        marker = " [dim](mistakes)[/dim]" if name == MISTAKES_TAG else ""
        console.print(f"  [cyan]{escape(name)}[/cyan]{marker}: {len(records)} words")


@app.command()
def show(tag: str = typer.Argument(..., help="Tag name")) -> None:
    """Print a tag in the editable word bank format."""
    _, ctx = asyncio.run(_open_session())
    try:
        records = select_tag(ctx, tag)
    except QuizSessionError as e:
        _fail(str(e))

    console.print(format_word_bank(records), markup=False, highlight=False)


@app.command(name="remove-tag")
def remove_tag(
    tag: str = typer.Argument(..., help="Tag name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete a tag and its words."""
    if not yes and not typer.confirm(f"Delete tag '{tag}'?"):
        raise typer.Exit(code=0)

    async def _remove():
        storage, ctx = await _open_session()
        await do_remove_tag(ctx, storage, tag)

    try:
        asyncio.run(_remove())
    except QuizSessionError as e:
        _fail(str(e))

    console.print(f"[green]✓ Tag removed: {escape(tag)}[/green]")


# =============================================================================
# QUIZ
# =============================================================================


async def _run_quiz(
    tag: str | None,
    mode: str,
    mistakes: bool,
    seed: int | None,
    auto_advance: bool = True,
) -> None:
    storage, ctx = await _open_session()
    if mistakes:
        exam = start_mistakes_exam(ctx, mode)  # type: ignore[arg-type]
    else:
        exam = start_exam(ctx, tag, mode)  # type: ignore[arg-type]

    direction = "type the term" if exam.mode == "term" else "type the meaning"
    console.print(f"[blue]Exam on '{escape(exam.tag)}': {exam.total} words, {direction}[/blue]")
    console.print("[dim]Empty answer or :q ends the exam.[/dim]")

    rng = random.Random(seed)
    while True:
        question = next_question(ctx, rng)
        if question is None:
            break

        console.print(f"\n[bold]({question.number}/{question.total})[/bold] {escape(question.prompt)}")
        try:
            answer = typer.prompt("Answer", default="", show_default=False)
        except typer.Abort:
            break
        if answer.strip() in QUIT_WORDS:
            break

        outcome = await check_answer(ctx, storage, answer)
        if outcome.is_correct:
            console.print(f"[green]✓ Correct[/green] [dim]({outcome.grade.match})[/dim]")
        else:
            console.print(f"[red]✗ Wrong.[/red] Expected: {escape(outcome.expected)}")

        if not auto_advance and question.number < question.total:
            try:
                typer.prompt("Press Enter for the next word", default="", show_default=False)
            except typer.Abort:
                break

    record = await finish_exam(ctx, storage)
    if record is None:
        console.print("[yellow]⚠ No answers given; nothing recorded[/yellow]")
        return

    console.print(
        f"\n[bold]Exam finished[/bold]\n"
        f"  Correct: {record.correct}\n"
        f"  Wrong:   {record.wrong}\n"
        f"  Accuracy: {record.accuracy}%"
    )


@app.command()
def quiz(
    tag: str | None = typer.Option(None, "--tag", "-t", help="Tag to study (default: current/default bank)"),
    mode: str | None = typer.Option(None, "--mode", "-m", help="term | definition"),
    mistakes: bool = typer.Option(False, "--mistakes", help="Study the mistakes collection"),
    seed: int | None = typer.Option(None, "--seed", help="Random seed for question order"),
) -> None:
    """Take an interactive exam."""
    quiz_config = load_app_config().quiz
    effective_mode = mode or quiz_config.default_mode
    if effective_mode not in GRADE_MODES:
        _fail(f"Unknown mode: {effective_mode} (use term or definition)")

    try:
        asyncio.run(_run_quiz(tag, effective_mode, mistakes, seed, quiz_config.auto_advance))
    except QuizSessionError as e:
        _fail(str(e))


# =============================================================================
# MISTAKES AND HISTORY
# =============================================================================


@app.command()
def mistakes() -> None:
    """List missed words with their mistake counts."""
    _, ctx = asyncio.run(_open_session())

    if not ctx.mistakes:
        console.print("[green]No mistakes recorded.[/green]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Term", style="cyan")
    table.add_column("Phonetic")
    table.add_column("Definition", width=50)
    table.add_column("Misses", justify="right")

    for record in sorted(ctx.mistakes, key=lambda r: r.mistake_count, reverse=True):
        table.add_row(record.term, escape(record.phonetic), _truncate(record.definition), str(record.mistake_count))

    console.print(table)


@app.command(name="clear-mistakes")
def clear_mistakes(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Empty the mistakes collection."""
    if not yes and not typer.confirm("Clear all recorded mistakes?"):
        raise typer.Exit(code=0)

    async def _clear():
        storage, ctx = await _open_session()
        await do_clear_mistakes(ctx, storage)

    asyncio.run(_clear())
    console.print("[green]✓ Mistakes cleared[/green]")


@app.command()
def history() -> None:
    """Show past exam results, newest first."""
    _, ctx = asyncio.run(_open_session())
    records = exam_history(ctx)

    if not records:
        console.print("[dim]No exams recorded yet.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Tag", style="cyan")
    table.add_column("When")
    table.add_column("Correct", justify="right")
    table.add_column("Wrong", justify="right")
    table.add_column("Accuracy", justify="right")

    for record in records:
        table.add_row(
            escape(record.tag),
            record.timestamp[:16].replace("T", " "),
            str(record.correct),
            str(record.wrong),
            f"{record.accuracy}%",
        )

    console.print(table)


# =============================================================================
# UTILITIES
# =============================================================================


@app.command()
def grade(
    expected: str = typer.Argument(..., help="Expected answer"),
    candidate: str = typer.Argument(..., help="Answer to grade"),
    mode: str = typer.Option("lenient", "--mode", "-m", help="strict | lenient"),
) -> None:
    """Grade one answer and explain the decision."""
    if mode not in ("strict", "lenient"):
        _fail(f"Unknown grade mode: {mode}")

    result = grade_answer(mode, candidate, expected)  # type: ignore[arg-type]
    if result.is_correct:
        console.print(f"[green]✓ Correct[/green] ({result.match}, similarity {result.similarity:.0%})")
    else:
        console.print(f"[red]✗ Incorrect[/red] (similarity {result.similarity:.0%})")
        raise typer.Exit(code=1)


@app.command(name="storage-info")
def storage_info() -> None:
    """Show the requested and active storage backend."""

    async def _select():
        return await get_storage().initialize()

    try:
        selection = asyncio.run(_select())
    except StorageError as e:
        _fail(f"Storage unavailable: {e}")

    console.print(f"  [dim]requested:[/dim] {selection.requested}")
    console.print(f"  [dim]active:[/dim]    {selection.active}")
    for warning in selection.warnings:
        console.print(f"[yellow]⚠ {warning}[/yellow]")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

"""
CLI Main - Typer command-line interface.
========================================

Commands:
- export: Export a course page to <slug>.json and <slug>-v2.json
- parse: Extract a saved course page offline
- info: Show effective configuration
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from course_exporter.shared.logging import get_console, get_logger, setup_logging

logger = get_logger(__name__)

app = typer.Typer(
    name="course-exporter",
    help="""📦 Course Exporter - course page to JSON

Reads a course-detail page and writes two files:

  <slug>.json      course metadata and the ordered lesson list
  <slug>-v2.json   one task per lesson

QUICK START:

  course-exporter export https://frontendmasters.com/courses/web-auth/
  course-exporter export <url> --download
  course-exporter parse saved-page.html --url <url> -o exports/
""",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """Configure logging from settings before any command runs."""
    from course_exporter.shared.config import get_settings

    settings = get_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.get_effective_log_level(),
        use_rich=settings.logging.rich_console,
        log_file=settings.logging.file or None,
        log_format=settings.logging.format,
        force=True,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Export Command
# ─────────────────────────────────────────────────────────────────────────────


def _prompt_for_folder() -> Optional[str]:
    """Ask for a project folder; Ctrl-C or an empty answer means cancel."""
    try:
        return typer.prompt("Project folder", default="", show_default=False)
    except typer.Abort:
        return None


@app.command()
def export(
    url: str = typer.Argument(..., help="Course page URL (https://<site>/courses/<slug>/)."),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Folder to save into (default: export.output_dir from settings).",
    ),
    download: bool = typer.Option(
        False,
        "--download",
        help="Offer the files into the downloads folder instead of a project folder.",
    ),
    pick_folder: bool = typer.Option(
        False,
        "--pick-folder",
        help="Ask for the project folder interactively.",
    ),
    inject: bool = typer.Option(
        True,
        "--inject/--no-inject",
        help="Recover a missing listener by injection (otherwise by reloading).",
    ),
    reload_timeout: Optional[float] = typer.Option(
        None,
        "--reload-timeout",
        help="Seconds to wait for a reload to complete (default: 15).",
    ),
):
    """
    🌐 Export a course page.

    Examples:
        course-exporter export https://frontendmasters.com/courses/web-auth/
        course-exporter export <url> --download
        course-exporter export <url> --no-inject --reload-timeout 30
    """
    from course_exporter.orchestration.context import BrowserTab
    from course_exporter.orchestration.exporter import CourseExporter
    from course_exporter.orchestration.orchestrator import (
        RequestOrchestrator,
        validate_course_location,
    )
    from course_exporter.orchestration.persistence import (
        DirectoryWriter,
        DownloadWriter,
        choose_directory,
    )
    from course_exporter.shared.config import get_settings
    from course_exporter.shared.errors import ExportError, UserCancelledError

    settings = get_settings()
    indent = settings.export.indent

    writer = None
    choose_writer = None
    if download or (settings.get_effective_export_mode() == "download" and not output_dir and not pick_folder):
        writer = DownloadWriter(settings.get_effective_downloads_dir(), indent=indent)
    elif pick_folder:
        choose_writer = lambda: choose_directory(_prompt_for_folder, indent=indent)  # noqa: E731
    else:
        writer = DirectoryWriter(output_dir or settings.get_effective_output_dir(), indent=indent)

    logger.debug(f"Export target: {url} (writer: {writer.mode if writer else 'prompt'})")

    exporter = CourseExporter(
        writer=writer,
        choose_writer=choose_writer,
        orchestrator=RequestOrchestrator(reload_timeout=reload_timeout),
        status_callback=lambda message: get_console().print(message, style="dim"),
    )
    tab = BrowserTab(
        url,
        scripting_enabled=inject and settings.orchestration.allow_script_injection,
        auto_attach_listener=settings.orchestration.auto_attach_listener,
    )

    async def _run():
        # reject a non-course URL before loading anything
        validate_course_location(tab.url, exporter.orchestrator.course_url_pattern)
        try:
            await tab.open()
            return await exporter.export(tab)
        finally:
            await tab.close()

    try:
        summary = asyncio.run(_run())
    except UserCancelledError as e:
        console.print(f"[yellow]⚠️ {e}[/yellow]")
        raise typer.Exit(0)
    except ExportError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    console.print(Panel(
        f"[bold]{summary.slug}[/bold]\n"
        f"Sections: {summary.section_count}\n"
        f"Lessons: {summary.lesson_count}\n"
        + "\n".join(f"→ {path}" for path in summary.paths),
        title=f"✅ {summary.message}",
    ))


# ─────────────────────────────────────────────────────────────────────────────
# Parse Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def parse(
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Saved HTML of a course page.",
    ),
    url: str = typer.Option(..., "--url", "-u", help="URL the page was saved from."),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Write both JSON artifacts into this folder.",
    ),
):
    """
    📄 Extract a saved course page without a browser tab.

    Example:
        course-exporter parse page.html -u https://frontendmasters.com/courses/web-auth/
    """
    from course_exporter.extraction.assembler import assemble_export_payload
    from course_exporter.extraction.parser import PageDocument
    from course_exporter.orchestration.exporter import build_artifacts
    from course_exporter.orchestration.persistence import DirectoryWriter, save_artifacts
    from course_exporter.shared.config import get_settings
    from course_exporter.shared.errors import ExportError

    logger.info(f"Parsing saved page {file} as {url}")
    settings = get_settings()
    document = PageDocument.from_html(file.read_text(encoding="utf-8"), url)

    try:
        result = assemble_export_payload(document)
    except ExportError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    course = result.payload.course_data
    console.print(Panel(
        f"[bold]{course.title}[/bold]\n"
        f"Tutor: {course.tutor or '-'}\n"
        f"Duration: {course.total_duration_minutes or '-'} min\n"
        f"Published: {course.published_date or '-'}\n"
        f"Sections: {course.section_count} | Lessons: {course.lesson_count}",
        title=f"📄 {result.slug}",
    ))

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Section")
    table.add_column("Lesson")
    table.add_column("Min", justify="right")
    table.add_column("Range")
    for lesson in result.payload.lessons:
        table.add_row(
            str(lesson.id),
            lesson.section_title or f"({lesson.section_id})",
            lesson.title,
            lesson.duration_minutes,
            lesson.time_range,
        )
    console.print(table)

    if output_dir:
        writer = DirectoryWriter(output_dir, indent=settings.export.indent)
        try:
            saved = save_artifacts(
                writer, build_artifacts(result, settings.export.task_list_suffix)
            )
        except ExportError as e:
            console.print(f"[red]❌ {e}[/red]")
            raise typer.Exit(1)
        console.print(f"[green]Saved: {', '.join(saved.filenames)}[/green]")


# ─────────────────────────────────────────────────────────────────────────────
# Info Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def info():
    """ℹ️ Show effective configuration."""
    from course_exporter import __version__
    from course_exporter.shared.config import get_settings

    settings = get_settings()

    table = Table(title=f"Course Exporter v{__version__}", show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Project root", str(settings.project_root))
    table.add_row("Course URL pattern", settings.site.course_url_pattern)
    table.add_row("Export mode", settings.get_effective_export_mode())
    table.add_row("Output dir", str(settings.get_effective_output_dir()))
    table.add_row("Downloads dir", str(settings.get_effective_downloads_dir()))
    table.add_row("Reload timeout", f"{settings.get_effective_reload_timeout():g}s")
    table.add_row("Script injection", "on" if settings.orchestration.allow_script_injection else "off")
    table.add_row("Log level", settings.get_effective_log_level())
    console.print(table)


# ─────────────────────────────────────────────────────────────────────────────
# Entry Point
# ─────────────────────────────────────────────────────────────────────────────


def cli():
    """CLI entry point."""
    app()


if __name__ == "__main__":
    cli()

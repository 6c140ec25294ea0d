"""Typer CLI: projects, images, settings, batch analysis, and CSV export."""

import asyncio
import signal
from collections.abc import AsyncIterator
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from captioner.ai.schema import KEYWORD_COUNT_CHOICES, ProviderName
from captioner.core.config import get_config
from captioner.core.errors import CaptionerError, ConfigurationError
from captioner.core.export import generate_csv
from captioner.core.logging import get_flight_logger, setup_logging
from captioner.core.projects import ProjectManager
from captioner.models.entities import KeyValue
from captioner.models.project import ImageStatus, Project
from captioner.repository.kv_repo import KeyValueRepository
from captioner.repository.project_repo import ProjectRepository
from captioner.repository.settings_repo import SettingsRepository
from captioner.workers.batch import BatchProcessor

app = typer.Typer(no_args_is_help=True)
project_app = typer.Typer(help="Create, rename, delete, and list projects.")
app.add_typer(project_app, name="project")
image_app = typer.Typer(help="Add, delete, and edit images in a project.")
app.add_typer(image_app, name="image")
settings_app = typer.Typer(help="Select the vision provider and store API keys.")
app.add_typer(settings_app, name="settings")

_STATUS_STYLE = {
    ImageStatus.pending: "dim",
    ImageStatus.processing: "yellow",
    ImageStatus.completed: "green",
    ImageStatus.error: "red",
}


def _get_session_factory():
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from sqlmodel import SQLModel

    cfg = get_config()
    engine = create_engine(cfg.database_url, pool_pre_ping=True)
    SQLModel.metadata.create_all(engine, tables=[KeyValue.__table__])
    return sessionmaker(engine, autocommit=False, autoflush=False, expire_on_commit=False)


def _get_repos() -> tuple[ProjectRepository, SettingsRepository]:
    kv_repo = KeyValueRepository(_get_session_factory())
    return ProjectRepository(kv_repo), SettingsRepository(kv_repo)


def _get_manager() -> tuple[ProjectManager, ProjectRepository, SettingsRepository]:
    project_repo, settings_repo = _get_repos()
    return ProjectManager(project_repo, settings_repo), project_repo, settings_repo


def _fail(e: Exception) -> NoReturn:
    typer.secho(str(e), fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


def _require_project(project_repo: ProjectRepository, project_id: str) -> Project:
    project = project_repo.get(project_id)
    if project is None:
        typer.echo(f"Project not found: '{project_id}'. Use 'project list' to see valid ids.", err=True)
        raise typer.Exit(1)
    return project


def _print_images(project: Project) -> None:
    table = Table(title=None)
    table.add_column("#", style="dim")
    table.add_column("Filename")
    table.add_column("Status")
    table.add_column("Description")
    table.add_column("Keywords")
    for i, img in enumerate(project.images):
        description = img.output.description if img.output else (img.error or "")
        keywords = ", ".join(k for k in img.output.keywords[:5] if k) if img.output else ""
        if img.output and len(img.output.keywords) > 5:
            keywords += ", ..."
        style = _STATUS_STYLE[img.status]
        table.add_row(str(i), img.filename, f"[{style}]{img.status.value}[/{style}]", description, keywords)
    Console().print(table)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log DEBUG to stderr."),
) -> None:
    """Caption images with a vision API and export the results as CSV."""
    setup_logging(verbose=verbose)


# ---------- projects ----------


@project_app.command("create")
def project_create(name: str = typer.Argument(..., help="Display name for the project")) -> None:
    """Create a new, empty project."""
    manager, _, _ = _get_manager()
    try:
        project = manager.create_project(name)
    except CaptionerError as e:
        _fail(e)
    typer.echo(f"Project created: '{project.name}' (id {project.id}).")


@project_app.command("list")
def project_list() -> None:
    """List projects (Id | Name | Created | Images | Progress)."""
    project_repo, _ = _get_repos()
    projects = project_repo.list_projects()
    if not projects:
        typer.echo("No projects.")
        return
    table = Table(title=None)
    table.add_column("Id", style="dim")
    table.add_column("Name")
    table.add_column("Created")
    table.add_column("Images")
    table.add_column("Progress")
    for p in projects:
        table.add_row(
            p.id,
            p.name,
            p.created_at.strftime("%Y-%m-%d %H:%M"),
            str(len(p.images)),
            f"{ProjectManager.progress(p):.0f}%",
        )
    Console().print(table)


@project_app.command("show")
def project_show(project_id: str = typer.Argument(..., help="Project id")) -> None:
    """Show a project's images with status, description, and keywords."""
    project_repo, settings_repo = _get_repos()
    project = _require_project(project_repo, project_id)
    settings = settings_repo.get_project_settings(project_id)
    typer.echo(f"{project.name} (id {project.id}): {len(project.images)} image(s), "
               f"{ProjectManager.progress(project):.0f}% complete")
    typer.echo(f"max description characters: {settings.max_description_characters}, "
               f"keywords: {settings.keyword_count}")
    if project.images:
        _print_images(project)


@project_app.command("rename")
def project_rename(
    project_id: str = typer.Argument(..., help="Project id"),
    name: str = typer.Argument(..., help="New display name"),
) -> None:
    """Rename a project."""
    manager, _, _ = _get_manager()
    try:
        manager.rename_project(project_id, name)
    except CaptionerError as e:
        _fail(e)
    typer.echo("Project updated.")


@project_app.command("delete")
def project_delete(
    project_id: str = typer.Argument(..., help="Project id"),
    force: bool = typer.Option(False, "--force", help="Skip confirmation"),
) -> None:
    """Delete a project, its previews, and its settings. Cannot be undone."""
    if not force:
        typer.confirm("Delete this project and all its results? This cannot be undone.", abort=True)
    manager, _, _ = _get_manager()
    try:
        manager.delete_project(project_id)
    except CaptionerError as e:
        _fail(e)
    typer.echo("Project deleted.")


@project_app.command("settings")
def project_settings(
    project_id: str = typer.Argument(..., help="Project id"),
    max_chars: int | None = typer.Option(None, "--max-chars", help="Maximum description length in characters."),
    keywords: int | None = typer.Option(
        None, "--keywords", help=f"Number of keywords ({', '.join(map(str, KEYWORD_COUNT_CHOICES))})."
    ),
) -> None:
    """Show or change the analysis settings of a project."""
    project_repo, settings_repo = _get_repos()
    _require_project(project_repo, project_id)
    settings = settings_repo.get_project_settings(project_id)
    update: dict[str, int] = {}
    if max_chars is not None:
        if max_chars <= 0:
            _fail(ValueError("--max-chars must be greater than 0."))
        update["max_description_characters"] = max_chars
    if keywords is not None:
        if keywords not in KEYWORD_COUNT_CHOICES:
            _fail(ValueError(f"--keywords must be one of {', '.join(map(str, KEYWORD_COUNT_CHOICES))}."))
        update["keyword_count"] = keywords
    if update:
        settings = settings.model_copy(update=update)
        settings_repo.save_project_settings(project_id, settings)
    typer.echo(f"max_description_characters: {settings.max_description_characters}")
    typer.echo(f"keyword_count: {settings.keyword_count}")


# ---------- images ----------


@image_app.command("add")
def image_add(
    project_id: str = typer.Argument(..., help="Project id"),
    paths: list[Path] = typer.Argument(..., help="Image files to upload"),
) -> None:
    """Add images to a project (pending until analysed)."""
    manager, _, _ = _get_manager()
    try:
        report = manager.add_images(project_id, paths)
    except CaptionerError as e:
        _fail(e)
    if report.skipped:
        typer.secho(
            f"Some images are larger than {manager.max_image_size_mb}MB and were not uploaded: "
            + ", ".join(report.skipped),
            fg=typer.colors.YELLOW,
            err=True,
        )
    n = len(report.added)
    typer.echo(f"{n} image{'s' if n != 1 else ''} uploaded.")


@image_app.command("delete")
def image_delete(
    project_id: str = typer.Argument(..., help="Project id"),
    index: int = typer.Argument(..., help="Image position (see 'project show')"),
) -> None:
    """Delete one image and release its preview."""
    manager, _, _ = _get_manager()
    try:
        manager.delete_image(project_id, index)
    except CaptionerError as e:
        _fail(e)
    typer.echo("Image deleted.")


@image_app.command("edit")
def image_edit(
    project_id: str = typer.Argument(..., help="Project id"),
    index: int = typer.Argument(..., help="Image position"),
    description: str = typer.Argument(..., help="New description"),
) -> None:
    """Replace the description of an analysed image."""
    manager, _, _ = _get_manager()
    try:
        manager.edit_description(project_id, index, description)
    except CaptionerError as e:
        _fail(e)
    typer.echo("Description updated.")


@image_app.command("remove-keyword")
def image_remove_keyword(
    project_id: str = typer.Argument(..., help="Project id"),
    index: int = typer.Argument(..., help="Image position"),
    keyword_index: int = typer.Argument(..., help="Keyword position"),
) -> None:
    """Remove one keyword from an analysed image."""
    manager, _, _ = _get_manager()
    try:
        manager.remove_keyword(project_id, index, keyword_index)
    except CaptionerError as e:
        _fail(e)
    typer.echo("Keyword removed.")


# ---------- settings ----------


@settings_app.command("show")
def settings_show() -> None:
    """Show the active provider and which API keys are set."""
    _, settings_repo = _get_repos()
    settings = settings_repo.get_app_settings()
    typer.echo(f"provider: {settings.api_provider.value}")
    for name in (ProviderName.gemini, ProviderName.openai):
        key = getattr(settings.api_keys, name.value)
        typer.echo(f"{name.value} key: {'set' if key else 'not set'}")


@settings_app.command("provider")
def settings_provider(provider: ProviderName = typer.Argument(..., help="gemini, openai, or mock")) -> None:
    """Select the vision provider used by run and regenerate."""
    _, settings_repo = _get_repos()
    settings_repo.set_provider(provider)
    typer.echo(f"Provider set to {provider.value}.")


@settings_app.command("key")
def settings_key(
    provider: ProviderName = typer.Argument(..., help="gemini or openai"),
    key: str = typer.Argument(..., help="API key (empty string clears it)"),
) -> None:
    """Store the API key for a provider."""
    _, settings_repo = _get_repos()
    try:
        settings_repo.set_api_key(provider, key)
    except ValueError as e:
        _fail(e)
    typer.echo(f"API key for {provider.value} saved.")


# ---------- analysis ----------


def _resolve_provider(
    settings_repo: SettingsRepository, provider: ProviderName | None
) -> tuple[ProviderName, str | None]:
    app_settings = settings_repo.get_app_settings()
    if provider is not None:
        app_settings = app_settings.model_copy(update={"api_provider": provider})
    return app_settings.api_provider, app_settings.active_api_key()


async def _run_with_pause_on_sigint(processor: BatchProcessor, batch: AsyncIterator[Project]) -> Project | None:
    """Consume a run, echoing progress. Ctrl+C requests a pause at the next image boundary."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, processor.pause)
    except (NotImplementedError, RuntimeError):
        pass  # e.g. Windows or non-main thread: Ctrl+C then aborts instead of pausing
    last: Project | None = None
    try:
        async for snapshot in batch:
            last = snapshot
            idx = processor.state.current_index
            if idx < len(snapshot.images):
                img = snapshot.images[idx]
                if img.status in (ImageStatus.completed, ImageStatus.error):
                    msg = f"[{idx + 1}/{len(snapshot.images)}] {img.filename}: {img.status.value}"
                    if img.error:
                        msg += f" ({img.error})"
                    typer.echo(msg)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
    return last


@app.command("run")
def run(
    project_id: str = typer.Argument(..., help="Project id"),
    provider: ProviderName | None = typer.Option(None, "--provider", help="Override the configured provider."),
    forensics: bool = typer.Option(False, "--forensics", help="Dump the in-memory log when any image fails."),
) -> None:
    """Analyse every image that is not completed. Ctrl+C pauses; run again to resume."""
    project_repo, settings_repo = _get_repos()
    project = _require_project(project_repo, project_id)
    provider_name, api_key = _resolve_provider(settings_repo, provider)
    settings = settings_repo.get_project_settings(project_id)
    processor = BatchProcessor(project_repo)

    try:
        batch = processor.run_batch(project, settings, provider_name, api_key)
    except ConfigurationError as e:
        typer.secho(f"{e}. Use 'settings key {provider_name.value} <key>'.", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except CaptionerError as e:
        _fail(e)

    typer.echo(f"Analysing '{project.name}' with {provider_name.value} (Ctrl+C to pause)...")
    final = asyncio.run(_run_with_pause_on_sigint(processor, batch)) or project

    errors = sum(1 for img in final.images if img.status == ImageStatus.error)
    if processor.state.is_paused:
        typer.secho("Paused. Run the same command again to resume.", fg=typer.colors.YELLOW)
    else:
        typer.secho("All images processed.", fg=typer.colors.GREEN)
    typer.echo(f"{ProjectManager.progress(final):.0f}% complete, {errors} error(s).")

    if forensics and errors:
        fl = get_flight_logger()
        if fl is not None:
            path = fl.dump(f"run-{project_id}")
            typer.echo(f"Forensic log written to {path}")


@app.command("regenerate")
def regenerate(
    project_id: str = typer.Argument(..., help="Project id"),
    index: int = typer.Argument(..., help="Image position"),
    provider: ProviderName | None = typer.Option(None, "--provider", help="Override the configured provider."),
) -> None:
    """Re-analyse one image, replacing its previous result."""
    project_repo, settings_repo = _get_repos()
    project = _require_project(project_repo, project_id)
    provider_name, api_key = _resolve_provider(settings_repo, provider)
    settings = settings_repo.get_project_settings(project_id)
    processor = BatchProcessor(project_repo)
    try:
        updated = asyncio.run(processor.regenerate(project, index, settings, provider_name, api_key))
    except CaptionerError as e:
        _fail(e)
    img = updated.images[index]
    if img.status == ImageStatus.completed:
        typer.secho("Image regenerated.", fg=typer.colors.GREEN)
    else:
        typer.secho(f"Failed to regenerate image: {img.error}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


@app.command("export")
def export(
    project_id: str = typer.Argument(..., help="Project id"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write CSV here instead of stdout."),
) -> None:
    """Export completed descriptions as CSV (Filename, Description, Keywords)."""
    project_repo, _ = _get_repos()
    project = _require_project(project_repo, project_id)
    try:
        csv_text = generate_csv(project.images)
    except CaptionerError as e:
        _fail(e)
    if output is None:
        typer.echo(csv_text)
        return
    output.write_text(csv_text, encoding="utf-8")
    typer.echo(f"Wrote {output}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

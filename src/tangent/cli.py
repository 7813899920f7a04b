"""
Tangent CLI - Command-line interface for exploration trails.

Commands:
- init: Create tangent.toml and the trail database
- new: Start a new trail
- search: Search (starting a new trail when the query changes)
- open / branch / note: Record steps on the current trail
- show / score: Display the current trail and its exploration score
- export / import: Move trails in and out as files
- fetch: Load a stored trail by id
- list: List stored trails
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from .client import TrailApiClient
from .config import TangentConfig, create_default_config, load_config_or_default
from .search.mock import MockSearchProvider, MockTangentGenerator
from .session import TrailSession, load_session_state, save_session_state
from .trail import engine
from .trail.models import BranchStep, NoteStep, OpenStep, SourceCard, Trail
from .trail.store import TrailStore
from .utils.logging import setup_logging

app = typer.Typer(
    name="tangent",
    help="Exploration trails: search, branch into tangents, score your session",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()

CONFIG_OPTION = typer.Option(Path("tangent.toml"), "--config", "-c", help="Config file path")


# --- Session wiring ---


@asynccontextmanager
async def _session(config_path: Path, save_state: bool = True) -> AsyncIterator[TrailSession]:
    """Build a session from config and state file; flush writes and state on exit."""
    config = load_config_or_default(config_path)
    setup_logging(level=config.logging.level, log_file=config.logging.file)

    store: TrailStore | None = None
    api_client: TrailApiClient | None = None

    if config.api.enabled or not config.search.mock:
        api_client = TrailApiClient(
            base_url=config.api.base_url,
            timeout_seconds=config.api.timeout_seconds,
            max_retries=config.api.max_retries,
        )

    if config.api.enabled:
        persistence = api_client
    else:
        store = TrailStore(config.storage.db_path)
        await store.initialize()
        persistence = store

    if config.search.mock:
        search_provider, tangent_generator = MockSearchProvider(), MockTangentGenerator()
    else:
        search_provider, tangent_generator = api_client, api_client

    session = TrailSession(
        settings=config.search.to_params(),
        persistence=persistence,
        search_provider=search_provider,
        tangent_generator=tangent_generator,
    )
    load_session_state(session, config.storage.state_path)

    try:
        yield session
    finally:
        await session.drain()
        for failure in session.persistence_failures:
            console.print(f"[yellow]Warning:[/yellow] {escape(str(failure))}")
        if save_state:
            save_session_state(session, config.storage.state_path)
        if store:
            await store.close()


def _run(coro) -> None:
    """Run an async command body with the CLI's error handling."""
    try:
        asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _require_trail(session: TrailSession) -> Trail:
    if session.current_trail is None:
        console.print("[yellow]No active trail. Start one with 'tangent new'.[/yellow]")
        raise typer.Exit(1)
    return session.current_trail


# --- Rendering ---


def _step_label(index: int, step) -> str:
    time_str = step.ts.strftime("%H:%M")
    if isinstance(step, OpenStep):
        return f"[blue]#{index}[/blue] {escape(step.title)} [dim]{escape(step.domain)} {time_str}[/dim]"
    elif isinstance(step, BranchStep):
        return f'[green]#{index} branch[/green] "{escape(step.query)}" [dim]{time_str}[/dim]'
    elif isinstance(step, NoteStep):
        return f"[yellow]#{index} note[/yellow] [italic]{escape(step.text)}[/italic] [dim]{time_str}[/dim]"
    return f"#{index} {step}"


def _render_trail(session: TrailSession) -> Tree:
    trail = session.current_trail
    metrics = session.metrics
    tree = Tree(
        f"[bold]{escape(trail.query or 'Untitled trail')}[/bold] "
        f"[dim]({trail.id})[/dim] score [bold]{session.exploration_score()}[/bold] | "
        f"{metrics.outbound_clicks} clicks | {len(metrics.unique_domains)} domains | "
        f"depth {metrics.depth}"
    )

    # Nest each step under the last node one level up
    parents = [tree]
    for index, (depth, step) in enumerate(engine.step_depths(trail.steps), 1):
        parent = parents[min(depth, len(parents) - 1)]
        node = parent.add(_step_label(index, step))
        if isinstance(step, BranchStep):
            del parents[depth + 1 :]
            parents.append(node)

    return tree


def _render_cards(cards: list[SourceCard]) -> Table:
    table = Table(title="Sources", show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Domain")
    table.add_column("Bucket")
    table.add_column("Tangents", style="dim")

    for i, card in enumerate(cards, 1):
        table.add_row(str(i), escape(card.title), card.domain, card.bucket, escape(", ".join(card.tangents)))

    return table


def _show_search_result(session: TrailSession) -> None:
    if session.error:
        console.print(f"[red]Search failed:[/red] {escape(session.error)}")
    elif not session.current_cards:
        console.print("[yellow]No sources found.[/yellow]")
    else:
        console.print(_render_cards(session.current_cards))


# --- Commands ---


@app.command()
def init(
    path: Path = typer.Option(Path.cwd(), "--path", "-p", help="Project directory"),
) -> None:
    """
    Create tangent.toml and the local trail database.

    Example:
        tangent init
        tangent init --path ~/research
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        config_path = path / "tangent.toml"

        if config_path.exists():
            console.print(f"[yellow]Warning:[/yellow] tangent.toml already exists in {path}")
            raise typer.Exit(1)

        create_default_config(config_path)
        db_path = path / TangentConfig().storage.db_path
        asyncio.run(_init_database(db_path))

        console.print(Panel.fit(
            f"[green]✓[/green] Initialized tangent\n\n"
            f"Configuration: {config_path}\n"
            f"Database: {db_path}\n\n"
            "[dim]Next step:[/dim] tangent new \"your question\"",
            title="Ready",
            border_style="green",
        ))
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


async def _init_database(db_path: Path) -> None:
    store = TrailStore(db_path)
    await store.initialize()
    await store.close()


@app.command()
def new(
    query: str = typer.Argument("", help="Query that starts the trail (may be empty)"),
    config: Path = CONFIG_OPTION,
) -> None:
    """
    Start a new trail, replacing the current one.

    Example:
        tangent new "history of cartography"
    """
    _run(_new(config, query))


async def _new(config_path: Path, query: str) -> None:
    async with _session(config_path) as session:
        trail = session.start_new_trail(query.strip())
        console.print(f"[green]✓[/green] Started trail [bold]{trail.id}[/bold]")
        if trail.query:
            await session.perform_search(trail.query)
            _show_search_result(session)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    config: Path = CONFIG_OPTION,
) -> None:
    """
    Search for sources. A query different from the trail's starts a new trail.
    """
    _run(_search(config, query))


async def _search(config_path: Path, query: str) -> None:
    async with _session(config_path) as session:
        await session.submit_query(query)
        _show_search_result(session)


@app.command("open")
def open_source(
    url: str = typer.Argument(..., help="URL of the source"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Source title"),
    domain: Optional[str] = typer.Option(None, "--domain", "-d", help="Domain (default: from URL)"),
    config: Path = CONFIG_OPTION,
) -> None:
    """
    Record that you opened a source.

    Example:
        tangent open https://en.wikipedia.org/wiki/Cartography --domain wikipedia.org
    """
    _run(_add_step(config, engine.open_step(url, title, domain)))


@app.command()
def branch(
    query: str = typer.Argument(..., help="Tangent to follow"),
    config: Path = CONFIG_OPTION,
) -> None:
    """
    Branch the trail into a new query and search it.
    """
    _run(_branch(config, query))


async def _branch(config_path: Path, query: str) -> None:
    async with _session(config_path) as session:
        _require_trail(session)
        await session.follow_tangent(query)
        console.print(f"[green]✓[/green] Branched to \"{query}\" (score {session.exploration_score()})")
        _show_search_result(session)


@app.command()
def note(
    text: str = typer.Argument(..., help="Note text"),
    config: Path = CONFIG_OPTION,
) -> None:
    """
    Add a note to the trail.
    """
    if not text.strip():
        console.print("[yellow]Empty note ignored.[/yellow]")
        raise typer.Exit(1)
    _run(_add_step(config, engine.note_step(text.strip())))


async def _add_step(config_path: Path, step) -> None:
    async with _session(config_path) as session:
        _require_trail(session)
        trail = session.add_step(step)
        console.print(
            f"[green]✓[/green] Step #{len(trail.steps)} ({step.type}) added | "
            f"score {session.exploration_score()}"
        )


@app.command()
def show(config: Path = CONFIG_OPTION) -> None:
    """
    Show the current trail, nested by branch.
    """
    _run(_show(config))


async def _show(config_path: Path) -> None:
    async with _session(config_path, save_state=False) as session:
        _require_trail(session)
        console.print(_render_trail(session))


@app.command()
def score(config: Path = CONFIG_OPTION) -> None:
    """
    Show the exploration score breakdown of the current trail.
    """
    _run(_score(config))


async def _score(config_path: Path) -> None:
    async with _session(config_path, save_state=False) as session:
        _require_trail(session)
        breakdown = session.score_breakdown()

        table = Table(title=f"Exploration Score: {breakdown.score}")
        table.add_column("Component")
        table.add_column("Value", justify="right")
        table.add_column("Weight", justify="right")
        table.add_column("Points", justify="right")
        for label, value, weight, contribution in breakdown.components():
            table.add_row(label, str(value), str(weight), f"{contribution:.1f}")

        console.print(table)


@app.command()
def export(
    output: Path = typer.Argument(..., help="Output file (or directory for JSON)"),
    format: str = typer.Option("json", "--format", "-f", help="Format: json or markdown"),
    config: Path = CONFIG_OPTION,
) -> None:
    """
    Export the current trail.

    Example:
        tangent export trail.json
        tangent export trail.md --format markdown
    """
    _run(_export(config, output, format))


async def _export(config_path: Path, output: Path, format: str) -> None:
    from .export import export_trail_to_json, export_trail_to_markdown

    async with _session(config_path, save_state=False) as session:
        trail = _require_trail(session)

        if format == "json":
            written = export_trail_to_json(trail, output)
        elif format == "markdown":
            written = export_trail_to_markdown(trail, output)
        else:
            raise ValueError(f"Unsupported format: {format}")

        console.print(f"[green]✓[/green] Exported to {written}")


@app.command("import")
def import_trail(
    input_file: Path = typer.Argument(..., help="Exported trail JSON file"),
    config: Path = CONFIG_OPTION,
) -> None:
    """
    Import an exported trail and make it the current trail.
    """
    _run(_import(config, input_file))


async def _import(config_path: Path, input_file: Path) -> None:
    if not input_file.exists():
        raise FileNotFoundError(f"Trail file not found: {input_file}")

    async with _session(config_path) as session:
        trail = session.import_trail(input_file.read_text(encoding="utf-8"))
        session.save_current_trail()
        console.print(
            f"[green]✓[/green] Imported trail {trail.id} "
            f"({len(trail.steps)} steps, score {session.exploration_score()})"
        )


@app.command()
def fetch(
    trail_id: str = typer.Argument(..., help="Trail ID"),
    config: Path = CONFIG_OPTION,
) -> None:
    """
    Load a stored or shared trail by id and make it the current trail.
    """
    _run(_fetch(config, trail_id))


async def _fetch(config_path: Path, trail_id: str) -> None:
    async with _session(config_path) as session:
        await session.fetch_trail(trail_id)
        console.print(_render_trail(session))


@app.command("list")
def list_trails(
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum trails to list"),
    config: Path = CONFIG_OPTION,
) -> None:
    """
    List trails in the local store.
    """
    _run(_list(config, limit))


async def _list(config_path: Path, limit: int) -> None:
    async with _session(config_path, save_state=False) as session:
        if not isinstance(session.persistence, TrailStore):
            raise ValueError("Listing is only available for the local trail store")

        summaries = await session.persistence.list_trails(limit=limit)
        if not summaries:
            console.print("[yellow]No stored trails.[/yellow]")
            return

        table = Table(title="Trails")
        table.add_column("ID")
        table.add_column("Query")
        table.add_column("Started")
        table.add_column("Steps", justify="right")
        current_id = session.current_trail.id if session.current_trail else None
        for s in summaries:
            marker = " *" if s.id == current_id else ""
            table.add_row(
                f"{s.id}{marker}", s.query or "-", s.created_at.strftime("%Y-%m-%d %H:%M"), str(s.step_count)
            )
        console.print(table)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

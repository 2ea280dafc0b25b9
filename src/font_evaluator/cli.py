"""CLI for the font evaluator."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import structlog
import typer
import uvicorn
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from font_evaluator import __version__
from font_evaluator.api import create_app
from font_evaluator.core.catalog import PromptCatalog
from font_evaluator.core.config import EvaluatorConfig, load_config
from font_evaluator.core.errors import (
    AuthenticationError,
    ConfigurationError,
    EndpointError,
    FeedbackStoreError,
    ReasonRequiredError,
)
from font_evaluator.core.progress import StreamProgress
from font_evaluator.models import RecommendationCandidate, Score
from font_evaluator.services.auth import UserDirectory
from font_evaluator.services.preview import preview_url
from font_evaluator.services.reconciler import ScoreReconciler, ScoreSummary, SessionScoreSet
from font_evaluator.services.recommendation import (
    RecommendationClient,
    RecommendationError,
    create_client,
)
from font_evaluator.services.storage import create_store
from font_evaluator.session import EvaluationSession

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="font-evaluator",
    help="Font Evaluator - rate AI font recommendations per prompt",
    add_completion=False,
)
console = Console()

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config YAML file")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")]
DryRunOption = Annotated[
    bool, typer.Option("--dry-run", help="Use fake recommendations, no API calls")
]
UserOption = Annotated[str, typer.Option("--username", "-u", help="Evaluator username")]

SCORE_STYLES = {Score.GOOD: "green", Score.AVERAGE: "yellow", Score.BAD: "red"}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"font-evaluator v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Font Evaluator CLI."""
    load_dotenv()


def _setup_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load(config_path: Path | None) -> EvaluatorConfig:
    if config_path is None:
        return EvaluatorConfig().apply_env()
    return load_config(config_path)


def _catalog(config: EvaluatorConfig) -> PromptCatalog:
    return PromptCatalog(config.prompts)


def _resolve_prompt(catalog: PromptCatalog, value: str) -> str:
    """Accept a 1-based catalog id or the prompt text itself."""
    if value.isdigit():
        try:
            return catalog.get(int(value))
        except IndexError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from e
    return value


def _create_client(config: EvaluatorConfig, dry_run: bool) -> RecommendationClient:
    if dry_run:
        console.print("[yellow]DRY RUN MODE - using fake recommendations[/yellow]")
        return create_client(config, dry_run=True)
    try:
        return create_client(config)
    except ValueError as e:
        raise EndpointError() from e


def _candidates_table(
    candidates: list[RecommendationCandidate], config: EvaluatorConfig, previews: bool
) -> Table:
    table = Table(title="Recommendations")
    table.add_column("#", justify="right")
    table.add_column("Family")
    table.add_column("Style")
    table.add_column("Foundry")
    table.add_column("Font key")
    if previews:
        table.add_column("Preview")
    for candidate in candidates:
        marker = " [bold magenta]TOP[/bold magenta]" if candidate.is_top else ""
        row = [
            f"{candidate.rank + 1}{marker}",
            candidate.family_name,
            candidate.style_name,
            candidate.foundry_name,
            candidate.font_key,
        ]
        if previews:
            row.append(preview_url(candidate.font_key, config.preview))
        table.add_row(*row)
    return table


def _print_summary(prompt: str, summary: ScoreSummary) -> None:
    console.print(f"\n[bold]{prompt}[/bold]")
    console.print(
        f"  Rated: {summary.total}/{summary.total_candidates} ({summary.progress_percent}%)"
    )
    console.print(
        f"  [green]Good: {summary.good_percent}%[/green]  "
        f"[yellow]Average: {summary.average_percent}%[/yellow]  "
        f"[red]Bad: {summary.bad_percent}%[/red]"
    )
    if summary.pending or summary.failed:
        console.print(f"  Pending: {summary.pending}  Failed: {summary.failed}")


def _fail(e: Exception, verbose: bool = False) -> typer.Exit:
    if isinstance(e, ConfigurationError):
        console.print(f"[red]{e}")
    elif isinstance(e, RecommendationError | FeedbackStoreError | FileNotFoundError):
        console.print(f"[red]Error:[/red] {e}")
    else:
        console.print(f"[red]Unexpected error:[/red] {e}")
        if verbose:
            console.print_exception()
    return typer.Exit(1)


@app.command()
def prompts(config_path: ConfigOption = None) -> None:
    """List the prompt catalog."""
    try:
        config = _load(config_path)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        raise _fail(e) from e

    table = Table(title="Prompts")
    table.add_column("ID", justify="right")
    table.add_column("Prompt")
    catalog = _catalog(config)
    for prompt in catalog:
        table.add_row(str(catalog.prompt_id(prompt)), prompt)
    console.print(table)


@app.command()
def recommend(
    prompt: Annotated[str, typer.Argument(help="Prompt text or catalog id")],
    config_path: ConfigOption = None,
    dry_run: DryRunOption = False,
    previews: Annotated[bool, typer.Option("--previews", help="Show preview URLs")] = False,
    verbose: VerboseOption = False,
) -> None:
    """Stream recommendations for one prompt and print them."""
    _setup_logging(verbose)
    try:
        config = _load(config_path)
        prompt = _resolve_prompt(_catalog(config), prompt)
        client = _create_client(config, dry_run)

        async def _run() -> list[RecommendationCandidate]:
            try:
                with StreamProgress(console) as progress:
                    result = await client.recommend(prompt, on_progress=progress.update)
                return result.candidates
            finally:
                await client.close()

        candidates = asyncio.run(_run())
    except typer.Exit:
        raise
    except Exception as e:
        raise _fail(e, verbose) from e

    if not candidates:
        console.print("[yellow]No recommendations found[/yellow]")
        return
    console.print(_candidates_table(candidates, config, previews))


async def _rating_loop(session: EvaluationSession) -> None:
    while True:
        choice = typer.prompt("Font # to rate (blank to finish)", default="", show_default=False)
        if not choice.strip():
            return
        try:
            candidate = session.candidate(choice.strip())
        except KeyError as e:
            console.print(f"[red]{e.args[0]}[/red]")
            continue

        label = typer.prompt("Score (good/average/bad)")
        try:
            score = Score.normalize(label)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            continue

        reason = ""
        if score.requires_reason:
            reason = typer.prompt("Reason")
        try:
            await session.rate(candidate, score, reason)
        except ReasonRequiredError as e:
            console.print(f"[red]{e}[/red]")
            continue
        except FeedbackStoreError as e:
            console.print(f"[red]Could not save rating:[/red] {e}")
        style = SCORE_STYLES[score]
        console.print(f"[{style}]{candidate.family_name}: {score.value}[/{style}]")
        _print_summary(session.prompt, session.summary())


@app.command()
def evaluate(
    username: UserOption,
    password: Annotated[
        str, typer.Option("--password", "-p", prompt=True, hide_input=True, help="Password")
    ],
    config_path: ConfigOption = None,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Log in, pick prompts and rate their recommendations interactively."""
    _setup_logging(verbose)
    try:
        config = _load(config_path)
        user = UserDirectory(config.users_path).authenticate(username, password)
    except AuthenticationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    except Exception as e:
        raise _fail(e, verbose) from e

    console.print(f"Logged in as: [bold]{username}[/bold]")
    catalog = _catalog(config)

    async def _run() -> None:
        client = _create_client(config, dry_run)
        store = create_store(config)
        session = EvaluationSession(
            username, client, store, catalog=catalog, email=str(user.get("email", ""))
        )
        try:
            while True:
                choice = typer.prompt(
                    "Prompt id or text (blank to quit)", default="", show_default=False
                )
                if not choice.strip():
                    return
                prompt = _resolve_prompt(catalog, choice.strip())
                try:
                    with StreamProgress(console) as progress:
                        candidates = await session.select_prompt(prompt, progress.update)
                except RecommendationError as e:
                    console.print(f"[red]Error:[/red] {e}")
                    console.print("Try again or select a different prompt")
                    continue
                if not candidates:
                    console.print("[yellow]No recommendations found[/yellow]")
                    continue
                console.print(_candidates_table(candidates, config, previews=False))
                _print_summary(prompt, session.summary())
                await _rating_loop(session)
        finally:
            await client.close()
            await store.close()

    try:
        asyncio.run(_run())
    except typer.Exit:
        raise
    except Exception as e:
        raise _fail(e, verbose) from e


@app.command()
def summary(
    prompt: Annotated[str, typer.Argument(help="Prompt text or catalog id")],
    username: UserOption,
    total: Annotated[
        int | None, typer.Option("--total", help="Candidates shown for the prompt")
    ] = None,
    config_path: ConfigOption = None,
) -> None:
    """Show a user's stored ratings for one prompt."""
    try:
        config = _load(config_path)
        prompt = _resolve_prompt(_catalog(config), prompt)
        store = create_store(config)

        async def _run() -> list:
            try:
                return await store.get_history(username)
            finally:
                await store.close()

        history = asyncio.run(_run())
    except typer.Exit:
        raise
    except Exception as e:
        raise _fail(e) from e

    reconciler = ScoreReconciler()
    effective = reconciler.reconcile(history, SessionScoreSet(), prompt)
    total_candidates = total if total is not None else config.recommendation.max_recommendations
    table = Table(title="Ratings")
    table.add_column("Font")
    table.add_column("Score")
    table.add_column("Reason")
    for record in effective:
        style = SCORE_STYLES[record.score]
        table.add_row(record.family_name, f"[{style}]{record.score.value}[/{style}]", record.reason)
    console.print(table)
    _print_summary(prompt, reconciler.summarize(effective, total_candidates))


@app.command()
def reset(
    prompt: Annotated[str, typer.Argument(help="Prompt text or catalog id")],
    username: UserOption,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
    config_path: ConfigOption = None,
) -> None:
    """Delete all of a user's ratings for one prompt."""
    try:
        config = _load(config_path)
        prompt = _resolve_prompt(_catalog(config), prompt)
    except typer.Exit:
        raise
    except Exception as e:
        raise _fail(e) from e

    if not yes:
        typer.confirm(
            f'Reset all feedback data for "{prompt}"? This action cannot be undone.',
            abort=True,
        )

    async def _run() -> bool:
        store = create_store(config)
        try:
            return await store.delete_prompt(username, prompt)
        finally:
            await store.close()

    try:
        removed = asyncio.run(_run())
    except Exception as e:
        raise _fail(e) from e
    if removed:
        console.print(f'[green]Feedback data cleared for "{prompt}".[/green]')
    else:
        console.print(f'No feedback stored for "{prompt}".')


@app.command()
def serve(
    config_path: ConfigOption = None,
    host: Annotated[str | None, typer.Option("--host", help="Bind address")] = None,
    port: Annotated[int | None, typer.Option("--port", help="Bind port")] = None,
    verbose: VerboseOption = False,
) -> None:
    """Run the feedback API."""
    _setup_logging(verbose)
    try:
        config = _load(config_path)
        api = create_app(config)
    except Exception as e:
        raise _fail(e, verbose) from e

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    console.print(f"[bold green]Feedback API on http://{bind_host}:{bind_port}[/bold green]")
    console.print(f"  Backend: {config.store.backend}")
    uvicorn.run(api, host=bind_host, port=bind_port)


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to config YAML file")],
) -> None:
    """Validate a configuration file without running."""
    try:
        config = load_config(config_path)
        console.print("[green]Configuration is valid![/green]")
        console.print(f"  Endpoint: {config.recommendation.endpoint or '(env)'}")
        console.print(f"  Max recommendations: {config.recommendation.max_recommendations}")
        console.print(f"  Timeout: {config.recommendation.timeout:g}s")
        console.print(f"  Store backend: {config.store.backend}")
        console.print(f"  Prompts: {len(_catalog(config))}")

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        console.print(f"[red]{e}")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]Validation error:[/red] {e}")
        raise typer.Exit(1) from e


@app.command()
def info() -> None:
    """Show tool information and example commands."""
    console.print("[bold]Font Evaluator[/bold]")
    console.print(f"Version: {__version__}\n")

    console.print("[bold]Example Commands:[/bold]")
    console.print("  # Dry run (fake recommendations)")
    console.print("  font-evaluator recommend 1 --dry-run\n")

    console.print("  # Rate recommendations interactively")
    console.print("  font-evaluator evaluate -u alice -c config.yaml\n")

    console.print("  # Show stored ratings for a prompt")
    console.print('  font-evaluator summary "fonts from helvetica" -u alice\n')

    console.print("  # Reset a prompt")
    console.print("  font-evaluator reset 1 -u alice --yes\n")

    console.print("  # Run the feedback API")
    console.print("  font-evaluator serve -c config.yaml")


if __name__ == "__main__":
    app()

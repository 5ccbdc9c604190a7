"""Click CLI for orchestration rounds, history and provider status."""

import asyncio
import json
import logging
import sys

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from config.config_loader import AppConfig, load_config
from orchestra.errors import OrchestraError
from orchestra.healthcheck import run_health_checks
from orchestra.history import HistoryStore
from orchestra.limiter import ConcurrencyLimiter
from orchestra.models import SelectionStrategy, TaskType
from orchestra.orchestrator import Orchestrator
from orchestra.output import print_comparison, print_history, print_result, print_stats, save_to_file
from orchestra.providers.registry import ProviderRegistry, build_registry
from orchestra.service import OrchestrationService

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _determine_models(config: AppConfig, models_arg: str | None) -> list[str]:
    """--models wins; otherwise the configured default models."""
    if models_arg:
        return [m.strip() for m in models_arg.split(",") if m.strip()]
    return list(config.defaults.default_models)


def _build_service(config: AppConfig, registry: ProviderRegistry | None = None) -> OrchestrationService:
    registry = registry if registry is not None else build_registry(config)
    orchestrator = Orchestrator(
        registry,
        limiter=ConcurrencyLimiter(config.defaults.max_parallel),
        timeout_sec=config.defaults.provider_timeout_sec,
    )
    history = HistoryStore(config.defaults.history_path, limit=config.defaults.history_limit)
    history.load()
    return OrchestrationService(orchestrator, history=history, known_providers=sorted(config.models))


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    sys.exit(1)


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Model Orchestra -- run one prompt across several AI providers and pick the best answer.

    \b
    Examples:
      orchestra run "Build a login screen" --models openai,anthropic,gemini
      orchestra run "Summarize RFC 9110" --strategy balanced --task-type text
      orchestra compare "Explain CRDTs" --models openai,gemini
      orchestra stats
      orchestra providers --check
    """
    # Reconfigure stdout/stderr to UTF-8 on Windows so model responses containing
    # Unicode chars don't crash the ANSI render path.
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    ctx.obj = config


@main.command()
@click.argument("prompt")
@click.option("--models", default=None, help="Comma-separated provider ids (default: from config)")
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in SelectionStrategy]),
    default=None,
    help="Selection strategy (default: from config)",
)
@click.option(
    "--task-type",
    type=click.Choice([t.value for t in TaskType]),
    default=None,
    help="Scoring profile (default: from config)",
)
@click.option("--system", "system_prompt", default=None, help="System prompt sent to every provider")
@click.option("--context", "context_json", default=None, help="JSON object prepended to the prompt")
@click.option(
    "--tier",
    type=click.IntRange(1, 5),
    default=None,
    help="Subscription tier (1-5) for the no-demo policy",
)
@click.option("--enforce-policy", is_flag=True, help="Scan the selected output for mock/demo code (tier 3+)")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.option("--save", is_flag=True, help="Save a markdown report to the output directory")
@click.pass_obj
def run(
    config: AppConfig,
    prompt: str,
    models: str | None,
    strategy: str | None,
    task_type: str | None,
    system_prompt: str | None,
    context_json: str | None,
    tier: int | None,
    enforce_policy: bool,
    as_json: bool,
    save: bool,
) -> None:
    """Run one orchestration round for PROMPT."""
    service = _build_service(config)

    request: dict = {
        "prompt": prompt,
        "models": _determine_models(config, models),
        "selectionStrategy": strategy or config.defaults.selection_strategy,
        "taskType": task_type or config.defaults.task_type,
    }
    if system_prompt:
        request["systemPrompt"] = system_prompt
    if context_json:
        try:
            request["context"] = json.loads(context_json)
        except ValueError as exc:
            _fail(f"--context is not valid JSON: {exc}")
    if tier is not None:
        request["tier"] = tier
    if enforce_policy:
        request["enforcePolicyCheck"] = True

    try:
        result = asyncio.run(service.orchestrate(request))
    except OrchestraError as exc:
        _fail(str(exc))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        print_result(result)

    if save:
        saved_path = save_to_file(result, config.defaults.output_dir)
        console.print(f"\n[dim]Saved to: {saved_path}[/dim]")


@main.command()
@click.argument("prompt")
@click.option("--models", required=True, help="Comma-separated provider ids (2-10)")
@click.option(
    "--task-type",
    type=click.Choice([t.value for t in TaskType]),
    default=TaskType.TEXT.value,
    show_default=True,
)
@click.pass_obj
def compare(config: AppConfig, prompt: str, models: str, task_type: str) -> None:
    """Run PROMPT on several providers and show every scored response."""
    service = _build_service(config)
    try:
        comparison = asyncio.run(service.compare_models(prompt, _determine_models(config, models), task_type))
    except OrchestraError as exc:
        _fail(str(exc))

    print_comparison(comparison.responses, comparison.consensus)


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print stats as JSON")
@click.pass_obj
def stats(config: AppConfig, as_json: bool) -> None:
    """Show per-provider stats derived from the local history."""
    history = HistoryStore(config.defaults.history_path, limit=config.defaults.history_limit)
    history.load()
    model_stats = history.model_stats()
    if as_json:
        click.echo(json.dumps({k: v.to_dict() for k, v in model_stats.items()}, indent=2))
        return
    if not model_stats:
        click.echo("No history yet.")
        return
    print_stats(model_stats)


@main.command()
@click.option("--limit", default=20, show_default=True, type=click.IntRange(1, 100))
@click.option("--offset", default=0, show_default=True, type=click.IntRange(0))
@click.option("--show", "show_id", default=None, help="Show the full history entry with this id")
@click.option("--json", "as_json", is_flag=True, help="With --show, print the entry as JSON")
@click.option("--delete", "delete_id", default=None, help="Delete the history entry with this id")
@click.option("--clear", is_flag=True, help="Delete all history")
@click.pass_obj
def history(
    config: AppConfig,
    limit: int,
    offset: int,
    show_id: str | None,
    as_json: bool,
    delete_id: str | None,
    clear: bool,
) -> None:
    """List, show, delete or clear past orchestration rounds."""
    store = HistoryStore(config.defaults.history_path, limit=config.defaults.history_limit)
    store.load()

    if clear:
        if click.confirm(f"Delete all {len(store)} history entries?", default=False):
            store.clear()
            click.echo("History cleared.")
        return

    if show_id:
        entry = store.get(show_id)
        if entry is None:
            _fail(f"No history entry with id {show_id}")
        if as_json:
            click.echo(json.dumps(entry.to_dict(), indent=2))
        else:
            print_result(entry)
        return

    if delete_id:
        if store.delete(delete_id):
            click.echo(f"Deleted {delete_id}.")
        else:
            _fail(f"No history entry with id {delete_id}")
        return

    items, total, has_more = store.page(limit, offset)
    if not items:
        click.echo("No history yet.")
        return
    print_history(items, total)
    if has_more:
        console.print(f"[dim]More entries available: --offset {offset + limit}[/dim]")


@main.command()
@click.option("--check", is_flag=True, help="Ping every configured provider")
@click.pass_obj
def providers(config: AppConfig, check: bool) -> None:
    """List known and configured providers."""
    registry = build_registry(config)
    status = _build_service(config, registry).provider_status()
    console.print(f"Known: {', '.join(status['all']) or 'none'}")
    console.print(f"Configured ({status['count']}): {', '.join(status['configured']) or 'none'}")

    if not check or not status["configured"]:
        return

    console.print("\n[bold]Checking providers...[/bold]")
    results = asyncio.run(run_health_checks(registry.as_dict()))
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {escape(short_err)}")


if __name__ == "__main__":
    main()

"""Rich console output and markdown file save for orchestration results."""

import logging
import re
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from orchestra.models import ConsensusResult, ModelResponse, ModelStats, OrchestrationResult, PolicyCheck

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _response_preview(response: ModelResponse, words: int = 50) -> str:
    """Return first N words of a response."""
    if response.error:
        return f"[red]Error:[/red] {escape(response.error)}"
    all_words = response.content.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return escape(preview)


def print_responses(responses: list[ModelResponse], selected: ModelResponse | None = None) -> None:
    """Print one panel per response; the selected one is highlighted."""
    for resp in responses:
        is_selected = resp is selected
        title = f"[bold]{resp.model_id}[/bold] ({resp.model})"
        if is_selected:
            title += " [green]selected[/green]"
        console.print(
            Panel(
                _response_preview(resp),
                title=title,
                subtitle=f"q={resp.quality_score:.0f} | {resp.response_time_ms}ms | ${resp.cost:.4f}",
                border_style="green" if is_selected else "dim",
            )
        )


def _policy_line(check: PolicyCheck) -> str:
    return f"Policy (tier {check.tier}): {check.message}"


def print_result(result: OrchestrationResult) -> None:
    """Print a round summary followed by the selected output as markdown."""
    console.print(Rule(f"[bold cyan]Orchestration {result.id}[/bold cyan]"))
    print_responses(result.responses, result.selected_response)
    summary = (
        f"Path: {result.path} | Strategy: {result.strategy} | "
        f"Total: {result.total_time_ms}ms, ${result.total_cost:.4f}"
    )
    if result.consensus is not None:
        summary += (
            f" | Agreement: {result.consensus.agreement:.0%}"
            f" | Confidence: {result.consensus.confidence:.0%}"
        )
    console.print(Text(summary, style="dim"))
    if result.policy_check is not None:
        style = "green" if result.policy_check.allowed else "bold red"
        console.print(Text(_policy_line(result.policy_check), style=style))
    console.print(Rule(f"[bold green]Selected: {result.selected_response.model_id}[/bold green]"))
    console.print(Markdown(result.selected_response.content or "_(empty)_"))


def print_comparison(responses: list[ModelResponse], consensus: ConsensusResult) -> None:
    """Print every scored response, the consensus summary and the winning answer."""
    winner = consensus.winner
    selected = next((r for r in responses if winner and r.model_id == winner.provider), None)
    print_responses(responses, selected)
    console.print(Text(
        f"Agreement: {consensus.agreement:.0%} | Confidence: {consensus.confidence:.0%} | {consensus.reasoning}",
        style="dim",
    ))
    if winner is not None and consensus.text:
        console.print(Rule(f"[bold green]Consensus: {winner.provider}[/bold green]"))
        console.print(Markdown(consensus.text))


def print_stats(stats: dict[str, ModelStats]) -> None:
    table = Table(title="Model stats")
    table.add_column("Provider", style="bold")
    table.add_column("Requests", justify="right")
    table.add_column("Avg quality", justify="right")
    table.add_column("Avg time (ms)", justify="right")
    table.add_column("Total cost", justify="right")
    table.add_column("Selected", justify="right")
    table.add_column("Success", justify="right")
    for provider_id in sorted(stats):
        s = stats[provider_id]
        table.add_row(
            provider_id,
            str(s.total_requests),
            f"{s.avg_quality:.1f}",
            f"{s.avg_response_time:.0f}",
            f"${s.total_cost:.4f}",
            str(s.times_selected),
            f"{s.success_rate:.0%}",
        )
    console.print(table)


def print_history(items: list[OrchestrationResult], total: int) -> None:
    table = Table(title=f"History ({len(items)} of {total})")
    table.add_column("Created")
    table.add_column("Id", style="dim")
    table.add_column("Prompt")
    table.add_column("Selected", style="bold")
    table.add_column("Quality", justify="right")
    table.add_column("Cost", justify="right")
    for item in items:
        prompt = item.prompt if len(item.prompt) <= 40 else item.prompt[:40] + "..."
        table.add_row(
            item.created_at.strftime("%Y-%m-%d %H:%M"),
            item.id,
            prompt,
            item.selected_response.model_id,
            f"{item.selected_response.quality_score:.0f}",
            f"${item.total_cost:.4f}",
        )
    console.print(table)


def save_to_file(result: OrchestrationResult, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the round as a markdown report.

    Args:
        result: The completed OrchestrationResult.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the prompt text.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = result.created_at.strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(result.prompt)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    lines: list[str] = [
        f"# Orchestration: {result.prompt[:80]}",
        "",
        f"**Date:** {result.created_at.isoformat()}",
        f"**Models:** {', '.join(result.models)}",
        f"**Strategy:** {result.strategy}",
        f"**Path:** {result.path}",
        f"**Selected:** {result.selected_response.model_id} ({result.selected_response.model})",
        f"**Total time:** {result.total_time_ms}ms",
        f"**Total cost:** ${result.total_cost:.4f}",
    ]
    if result.consensus is not None:
        lines.append(
            f"**Consensus:** agreement {result.consensus.agreement:.0%}, "
            f"confidence {result.consensus.confidence:.0%}"
        )
        lines.append(f"**Reasoning:** {result.consensus.reasoning}")
    if result.policy_check is not None:
        lines.append(f"**Policy (tier {result.policy_check.tier}):** {result.policy_check.message}")
    lines += ["", "---", ""]

    for resp in result.responses:
        marker = " (selected)" if resp is result.selected_response else ""
        lines.append(f"## {resp.model_id} ({resp.model}){marker}")
        lines.append("")
        lines.append(resp.content if resp.error is None else f"*Error: {resp.error}*")
        lines.append("")
        lines.append(
            f"*Quality: {resp.quality_score:.0f} | Latency: {resp.response_time_ms}ms"
            + (f" | Tokens: {resp.tokens_used}" if resp.tokens_used else "")
            + f" | Cost: ${resp.cost:.4f}*"
        )
        lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Report saved to: %s", filepath)
    return filepath

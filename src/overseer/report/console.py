"""
Console rendering for Overseer results.

Rich output used by the CLI: supervision results, guardian decisions,
visible tool lists and supervisor configurations.

Design Principles:
    - Status at a glance: icon and color per action
    - Reasons listed in the order supervisors produced them
    - Rendering only; no supervision logic lives here
"""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from overseer.schema import (
    GuardianDecision,
    RequestSupervisionResult,
    ResponseSupervisionResult,
    SupervisionAction,
    SupervisorConfig,
    ToolDescriptor,
)

# Status icons
ICON_ALLOW = "[green]✓[/green]"
ICON_MODIFY = "[cyan]✎[/cyan]"
ICON_BLOCK = "[red]✗[/red]"

_ACTION_STYLES = {
    SupervisionAction.ALLOW: ("green", ICON_ALLOW),
    SupervisionAction.MODIFY: ("cyan", ICON_MODIFY),
    SupervisionAction.BLOCK: ("red", ICON_BLOCK),
}


def print_supervision_result(
    console: Console,
    result: RequestSupervisionResult | ResponseSupervisionResult,
    session_id: str | None = None,
) -> None:
    """Print a request or response supervision result."""
    style, icon = _ACTION_STYLES[result.action]

    header = Text()
    header.append(" Supervision ", style="bold")
    if session_id:
        header.append(session_id, style="bold cyan")
        header.append(" │ ", style="dim")
    header.append(result.action.value.upper(), style=f"bold {style}")
    console.print(Panel(header, expand=False))
    console.print(f"  {icon} [dim]action:[/dim] {result.action.value}")

    if isinstance(result, RequestSupervisionResult) and result.final_message is not None:
        content = result.final_message.content
        if content is not None:
            console.print(f"  [dim]message:[/dim] {escape(_truncate(content, 200))}")

    if result.reasons:
        console.print("  [dim]reasons:[/dim]")
        for reason in result.reasons:
            console.print(f"    - {escape(reason)}")

    if result.metadata:
        details = ", ".join(f"{k}={v}" for k, v in result.metadata.items())
        console.print(f"  [dim]metadata:[/dim] {details}")


def print_guardian_decision(console: Console, decision: GuardianDecision) -> None:
    """Print the outcome of a guardian content check."""
    if decision.allowed:
        console.print(f"{ICON_ALLOW} [green]allowed[/green] (confidence {decision.confidence:.1f})")
    else:
        console.print(
            f"{ICON_BLOCK} [red]blocked[/red]: {escape(decision.reason or '')} "
            f"(confidence {decision.confidence:.1f})"
        )


def print_tool_list(console: Console, tools: list[ToolDescriptor], title: str = "Tools") -> None:
    """Print the tools visible to a model."""
    if not tools:
        console.print("[dim]No tools visible.[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Tool", style="cyan")
    table.add_column("Description")
    for tool in tools:
        table.add_row(tool.name, _truncate(tool.description, 80))
    console.print(table)


def print_supervisor_configs(console: Console, configs: list[SupervisorConfig]) -> None:
    """Print supervisor configuration records."""
    if not configs:
        console.print("[dim]No supervisors configured.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=3, justify="right")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type", style="magenta")
    table.add_column("Config", overflow="fold")
    for index, config in enumerate(configs, start=1):
        keys = ", ".join(sorted(config.config)) or "[dim]-[/dim]"
        table.add_row(str(index), config.id, config.name, config.type.value, keys)
    console.print(table)


def _truncate(s: str, max_len: int) -> str:
    """Truncate a string to max_len, adding ellipsis if needed."""
    if len(s) <= max_len:
        return s
    return s[: max_len - 3] + "..."

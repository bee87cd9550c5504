"""
CLI entry point for Overseer.

This module provides the Typer-based command-line interface for Overseer.

Commands:
    check        Run the guardian content check on a message
    redact       Redact profanity and personal information from a message
    supervise    Run a request through supervisors loaded from a config file
    tools        Preview which tools a session would expose to the model
    supervisors  Validate and list supervisor configurations

Architecture Note:
    The CLI is intentionally thin - it parses arguments and delegates to the
    library. Agent-backed supervisors need a host-provided planner and are
    skipped by `supervise`.
"""

import asyncio
import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from overseer import __version__
from overseer.config import get_settings
from overseer.errors import OverseerError
from overseer.logging_config import configure_logging, get_logger
from overseer.report import (
    print_guardian_decision,
    print_supervision_result,
    print_supervisor_configs,
    print_tool_list,
)
from overseer.schema import (
    ChatMessage,
    ChatSession,
    SessionToolPermission,
    SupervisionAction,
    SupervisorKind,
    load_supervisor_configs,
    load_tool_servers,
)
from overseer.supervision import SupervisionManager
from overseer.supervisors import GuardianSupervisor, create_supervisor
from overseer.tools import ToolPermissionGate

logger = get_logger(__name__)

app = typer.Typer(
    name="overseer",
    help="Supervise AI chat requests and responses with a chain of policy agents.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]overseer[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option(
            "--log-level",
            help="Log level (DEBUG, INFO, WARNING, ERROR). Defaults to OVERSEER_LOG_LEVEL.",
        ),
    ] = None,
) -> None:
    """
    Overseer - supervision layer for AI chat pipelines.

    Inspect, modify or block chat traffic with guardian, collection and
    agent-backed supervisors, and gate which tools a model may use.
    """
    settings = get_settings()
    configure_logging(log_level or settings.log_level, settings.log_file)


@app.command()
def check(
    message: Annotated[str, typer.Argument(help="Message content to check.")],
    rules: Annotated[
        list[str],
        typer.Option(
            "--rule",
            "-r",
            help="Guardrail rule phrase, e.g. 'no personal info'. Repeatable.",
        ),
    ],
    words: Annotated[
        Optional[list[str]],
        typer.Option(
            "--word",
            help="Profanity keyword (replaces the default list). Repeatable.",
        ),
    ] = None,
) -> None:
    """
    Check a message against guardian rules.

    Exits with code 1 when the message would be blocked.

    Example:
        $ overseer check "call me at 555-123-4567" --rule "no personal info"
    """
    guardian = GuardianSupervisor(
        "cli-guardian",
        "CLI Guardian",
        rules=rules,
        profanity_words=words or None,
    )
    decision = asyncio.run(guardian.check_content(ChatMessage.user(message)))
    print_guardian_decision(console, decision)
    if not decision.allowed:
        raise typer.Exit(code=1)


@app.command()
def redact(
    message: Annotated[str, typer.Argument(help="Message content to redact.")],
    words: Annotated[
        Optional[list[str]],
        typer.Option(
            "--word",
            help="Profanity keyword (replaces the default list). Repeatable.",
        ),
    ] = None,
) -> None:
    """
    Redact profanity and personal information from a message.

    Example:
        $ overseer redact "mail me at a@b.com"
        mail me at [EMAIL]
    """
    guardian = GuardianSupervisor("cli-guardian", "CLI Guardian", profanity_words=words or None)
    redacted = asyncio.run(guardian.apply_guardrails(ChatMessage.user(message)))
    console.print(redacted.content, markup=False, highlight=False)


@app.command()
def supervise(
    message: Annotated[str, typer.Argument(help="User message to supervise.")],
    config_path: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            help="Path to the supervisors YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    session_id: Annotated[
        str,
        typer.Option("--session", "-s", help="Session id to register supervisors for."),
    ] = "cli-session",
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the result in JSON format."),
    ] = False,
) -> None:
    """
    Run a request through the supervisors of a config file.

    Supervisors are registered for the session in file order. Exits with
    code 1 when the request is blocked.

    Example:
        $ overseer supervise "my ssn is 123-45-6789" --config supervisors.yaml
    """
    try:
        configs = load_supervisor_configs(config_path)
        result = asyncio.run(_run_supervision(configs, session_id, message))
    except OverseerError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1)

    if json_output:
        print(json.dumps(result.model_dump(mode="json"), indent=2, default=str))
    else:
        print_supervision_result(console, result, session_id)

    if result.action == SupervisionAction.BLOCK:
        raise typer.Exit(code=1)


async def _run_supervision(configs, session_id: str, message: str):
    manager = SupervisionManager(get_settings())
    for config in configs:
        if config.type == SupervisorKind.AGENT:
            logger.warning("Skipping agent supervisor %s: no planner available", config.id)
            continue
        supervisor = create_supervisor(config)
        await manager.add_supervisor(supervisor)
        manager.register_supervisor(session_id, supervisor)

    session = ChatSession(id=session_id)
    return await manager.process_request(session, [ChatMessage.user(message)])


@app.command()
def tools(
    servers_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the tool servers YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    autonomous: Annotated[
        bool,
        typer.Option("--autonomous", help="Preview an autonomous session."),
    ] = False,
    permission: Annotated[
        SessionToolPermission,
        typer.Option("--permission", "-p", help="Session tool permission."),
    ] = SessionToolPermission.TOOL,
) -> None:
    """
    List the tools a session would expose to the model.

    Example:
        $ overseer tools servers.yaml --autonomous --permission tool
    """
    try:
        configs = load_tool_servers(servers_path)
    except OverseerError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1)

    gate = ToolPermissionGate.from_configs(configs)
    session = ChatSession(id="cli-session", autonomous=autonomous, tool_permission=permission)
    mode = "autonomous" if autonomous else "interactive"
    print_tool_list(console, gate.list_tools(session), title=f"Tools ({mode}, {permission.value})")


@app.command()
def supervisors(
    config_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the supervisors YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
) -> None:
    """
    Validate and list supervisor configurations.

    Example:
        $ overseer supervisors supervisors.yaml
    """
    try:
        configs = load_supervisor_configs(config_path)
    except OverseerError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1)

    print_supervisor_configs(console, configs)
    console.print(f"[green]✓[/green] {len(configs)} supervisor(s) valid")


if __name__ == "__main__":
    app()

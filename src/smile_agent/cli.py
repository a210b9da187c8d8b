"""CLI commands for planning and running agent requests against a workspace."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
import yaml

from .config import DEFAULT_CONFIG_NAME, EngineSettings, copy_config_template, load_config, write_config
from .engine import AgentEngine
from .errors import ConfigError, PlanSynthesisError
from .models import CompletionClient, HTTPCompletionClient, LLMClientError
from .planning.executor import ExecutionSettings
from .planning.synthesizer import PlanSynthesizer
from .tools.operations import FencedBlockOperationHandler
from .tools.run_logs import load_run_log
from .workspace import LocalWorkspace

APP_HELP = "Smile AI agent: plan and execute coding requests with a generative backend."

app = typer.Typer(help=APP_HELP)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_settings(config: str, workspace: Optional[str]) -> EngineSettings:
    try:
        settings = load_config(Path(config))
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error
    if workspace:
        settings.workspace_root = Path(workspace).resolve()
    return settings


def _build_client(settings: EngineSettings) -> CompletionClient:
    models_cfg = settings.models
    try:
        return HTTPCompletionClient(
            provider=models_cfg.provider,
            base_url=models_cfg.base_url,
            model=models_cfg.model,
            api_key_env=models_cfg.api_key_env,
            timeout=models_cfg.timeout,
        )
    except ValueError as error:
        typer.echo(f"Failed to initialise completion client: {error}")
        raise typer.Exit(code=1) from error


def build_engine(settings: EngineSettings, client: CompletionClient | None = None) -> AgentEngine:
    """Wire an engine for ``settings`` using the local workspace."""
    workspace = LocalWorkspace(settings.workspace_root)
    execution = settings.execution
    return AgentEngine(
        client or _build_client(settings),
        workspace,
        FencedBlockOperationHandler(workspace),
        settings=ExecutionSettings(
            task_temperature=execution.task_temperature,
            recovery_temperature=execution.recovery_temperature,
            max_tokens=execution.max_tokens,
        ),
        planning_temperature=execution.planning_temperature,
        logs_root=settings.logs_root,
    )


@app.command()
def init(
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help="Path to write the configuration file."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration file."),
) -> None:
    """Write the default configuration file."""
    config_path = Path(config)
    if config_path.exists() and not force:
        typer.echo(f"Configuration already exists at {config_path}; pass --force to overwrite.")
        raise typer.Exit(code=1)
    write_config(config_path, copy_config_template())
    typer.echo(f"Wrote default configuration to {config_path}")


@app.command()
def plan(
    request: str = typer.Argument(..., help="Natural-language description of the change."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help="Path to the agent configuration file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Synthesize a plan for REQUEST and print it without executing anything."""
    _configure_logging(verbose)
    settings = _load_settings(config, None)
    synthesizer = PlanSynthesizer(
        _build_client(settings),
        temperature=settings.execution.planning_temperature,
    )
    try:
        result = asyncio.run(synthesizer.synthesize(request))
    except (PlanSynthesisError, LLMClientError) as error:
        typer.echo(f"Failed to build a plan: {error}")
        raise typer.Exit(code=1) from error

    payload = result.model_dump(mode="json", exclude={"results"})
    typer.echo(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True))


@app.command()
def run(
    request: str = typer.Argument(..., help="Natural-language description of the change."),
    config: str = typer.Option(DEFAULT_CONFIG_NAME, "--config", "-c", help="Path to the agent configuration file."),
    workspace: Optional[str] = typer.Option(None, "--workspace", "-w", help="Workspace root override."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Plan and execute REQUEST against the workspace, then print the summary."""
    _configure_logging(verbose)
    settings = _load_settings(config, workspace)
    engine = build_engine(settings)
    outcome = asyncio.run(engine.run(request))

    typer.echo(outcome.message)
    if outcome.log_path is not None:
        typer.echo(f"Run log: {outcome.log_path.as_posix()}")
    if not outcome.success:
        raise typer.Exit(code=1)


@app.command("show-log")
def show_log(path: str = typer.Argument(..., help="Run log written by `run`.")) -> None:
    """Print the plan and summary recorded in a run log."""
    log_path = Path(path)
    try:
        entry = load_run_log(log_path)
    except (OSError, ValueError) as error:
        typer.echo(f"Unable to read run log: {error}")
        raise typer.Exit(code=1) from error

    typer.echo(f"Request: {entry.get('request', '')}")
    plan_data = entry.get("plan") or {}
    if plan_data:
        typer.echo(f"Plan {plan_data.get('id')} [{plan_data.get('status')}] goal='{plan_data.get('main_goal')}'")
        for task in plan_data.get("tasks") or []:
            depends = task.get("dependencies") or []
            suffix = f" (depends on: {', '.join(depends)})" if depends else ""
            typer.echo(f"- [{task.get('status')}] {task.get('id')}: {task.get('description')}{suffix}")
    typer.echo("")
    typer.echo(str(entry.get("summary", "")).rstrip())


if __name__ == "__main__":
    app()

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console

from .config import DEFAULT_ERROR_LOG_FILE, LOG_LEVELS, AppConfig
from .dispatcher import PlanDispatcher
from .errors import AgentError
from .history import History
from .llm_client import OpenAIChatLLM
from .logger import log_fatal, setup_logging
from .plan_parser import parse_plan
from .session import Session
from .shell import InteractiveShell


@dataclass
class CLIState:
    config_path: Optional[str] = None
    cwd: Optional[str] = None
    log_level: Optional[str] = None
    session: Optional[Session] = None


def _build(state: CLIState, *, need_api_key: bool) -> PlanDispatcher:
    config = AppConfig.load_or_default(Path(state.config_path) if state.config_path else None)
    setup_logging(state.log_level or config.log_level, config.log_file)

    if need_api_key and not config.api_key:
        click.echo("You need to provide your API key once.")
        config.api_key = click.prompt("Enter your API key", hide_input=True).strip()
        if not config.api_key:
            raise click.UsageError("API key cannot be empty")
        config.save()

    history = History.load_or_empty(Path(config.history_file).expanduser()) if config.auto_save else History()
    session = Session(config=config, cwd=state.cwd, history=history)
    state.session = session
    llm = OpenAIChatLLM(model=config.model, base_url=config.base_url, api_key=config.api_key or None)
    return PlanDispatcher(session, llm, console=Console())


@click.group(invoke_without_command=True)
@click.option("--config", "config_path", default=None, help="Config file (default ~/.ai-agent-config.json)")
@click.option("--cwd", default=None, help="Starting directory for the session")
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default=None, help="Override the configured log level")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], cwd: Optional[str], log_level: Optional[str]) -> Optional[int]:
    """Super AI Agent: run developer tasks from plain Hindi/English instructions."""
    state = ctx.ensure_object(CLIState)
    state.config_path = config_path
    state.cwd = cwd
    state.log_level = log_level
    if ctx.invoked_subcommand is None:
        return ctx.invoke(shell_cmd)
    return None


@cli.command("shell")
@click.pass_obj
def shell_cmd(state: CLIState) -> int:
    """Start the interactive session (default)."""
    dispatcher = _build(state, need_api_key=True)
    return InteractiveShell(dispatcher).run()


@cli.command("run")
@click.argument("instruction", nargs=-1, required=True)
@click.pass_obj
def run_cmd(state: CLIState, instruction: tuple) -> int:
    """Execute a single instruction, then stop anything it started."""
    dispatcher = _build(state, need_api_key=True)
    try:
        report = dispatcher.handle(" ".join(instruction))
    finally:
        dispatcher.session.registry.shutdown()
    if report.error:
        click.echo(f"Error: {report.error}", err=True)
    return 0 if report.success else 1


@cli.command("exec-plan")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def exec_plan_cmd(state: CLIState, plan_file: str) -> int:
    """Execute a plan JSON file without asking the model."""
    dispatcher = _build(state, need_api_key=False)
    try:
        plan = parse_plan(Path(plan_file).read_text(encoding="utf-8"), strict=dispatcher.session.strict_actions)
    except AgentError as exc:
        raise click.ClickException(str(exc)) from exc
    try:
        report = dispatcher.execute(plan)
    finally:
        dispatcher.session.registry.shutdown()
    if report.error:
        click.echo(f"Error: {report.error}", err=True)
    return 0 if report.success else 1


def _cleanup(state: CLIState) -> None:
    if state.session is not None:
        click.echo("Attempting to stop running processes before exit...", err=True)
        state.session.registry.shutdown()


def _fatal(exc: BaseException, state: CLIState) -> None:
    click.echo(f"Fatal error: {exc}", err=True)
    _cleanup(state)
    log_fatal(exc, DEFAULT_ERROR_LOG_FILE)


def main(argv: Optional[List[str]] = None) -> int:
    state = CLIState()
    try:
        rv = cli.main(args=argv if argv is not None else sys.argv[1:], standalone_mode=False, obj=state)
    except click.ClickException as e:
        e.show()
        return 2
    except (click.Abort, KeyboardInterrupt):
        click.echo("Interrupted.", err=True)
        _cleanup(state)
        return 1
    except SystemExit as e:
        return int(e.code or 0)
    except Exception as exc:
        _fatal(exc, state)
        return 1
    return rv if isinstance(rv, int) else 0


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from pymongo import MongoClient
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from watchdog.observers import Observer

from .database import DatabaseManager
from .deploy import Deployer
from .errors import AgentError, ModelRequestError
from .file_ops import FileOperations
from .git_client import GitClient
from .llm_client import LLMInterface
from .models import (
    Action,
    DatabaseAction,
    DeployAction,
    DispatchReport,
    FileAction,
    GitAction,
    PackageAction,
    Plan,
    ProcessAction,
    ProjectSetupAction,
    UnknownAction,
)
from .package_manager import PackageManager
from .plan_parser import parse_plan
from .process_manager import ProcessManager
from .project_setup import ProjectSetup
from .session import Session
from .shell_runner import ShellRunner

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    AWAITING_INPUT = "awaiting-input"
    PARSING = "parsing"
    EXECUTING = "executing"
    IDLE = "idle"


class PlanDispatcher:
    """Turn one instruction into a plan and run its actions in order.

    The first action that raises aborts the rest of the plan. Whatever the
    earlier actions created (files, processes, connections) is left in place.
    """

    def __init__(
        self,
        session: Session,
        llm: Optional[LLMInterface] = None,
        *,
        console: Optional[Console] = None,
        mongo_client_factory: Callable[[str], Any] = MongoClient,
        observer_factory: Callable[[], Any] = Observer,
    ):
        self.session = session
        self.llm = llm
        self.console = console or Console()
        self.state = DispatchState.IDLE

        self.shell = ShellRunner(session=session)
        self.files = FileOperations(session, observer_factory=observer_factory)
        self.packages = PackageManager(session, self.shell)
        self.processes = ProcessManager(session, self.shell)
        self.databases = DatabaseManager(session, client_factory=mongo_client_factory)
        self.git = GitClient(session, self.shell)
        self.deployer = Deployer(session, self.shell)
        self.project_setup = ProjectSetup(
            session,
            shell=self.shell,
            files=self.files,
            packages=self.packages,
            processes=self.processes,
            git=self.git,
            databases=self.databases,
        )

    def parse(self, command: str) -> Plan:
        if self.llm is None:
            raise ModelRequestError("No model client configured")
        text = self.llm.generate_plan(command=command, language=self.session.config.language)
        logger.debug("Model response: %s", text)
        return parse_plan(text, strict=self.session.strict_actions)

    def handle(self, command: str) -> DispatchReport:
        self.state = DispatchState.PARSING
        try:
            with self.console.status("Parsing your command..."):
                plan = self.parse(command)
        except AgentError as exc:
            logger.error("Error: %s", exc)
            self.state = DispatchState.IDLE
            return DispatchReport(plan=None, error=str(exc))

        self.session.history.record(command, plan.type, plan.context.description)
        self.console.print(f"[green]✓ Command parsed:[/green] {escape(plan.context.description or plan.type)}")
        return self.execute(plan)

    def execute(self, plan: Plan) -> DispatchReport:
        self.state = DispatchState.EXECUTING
        report = DispatchReport(plan=plan)
        try:
            for action in plan.actions:
                self.session.registry.drain_events()
                result = self.dispatch(action)
                report.results.append(result)
                report.completed += 1
                self._show(action, result)
        except Exception as exc:
            logger.error("Action %d of %d failed: %s", report.completed + 1, len(plan.actions), exc)
            report.error = str(exc)
        finally:
            self.state = DispatchState.IDLE

        if report.error is None and plan.context.needs_monitoring:
            self.console.print("[cyan]Setting up monitoring...[/cyan]")
            self.console.print("Use 'info' to check running processes and file watchers.")
        return report

    def dispatch(self, action: Action) -> Dict[str, Any]:
        if isinstance(action, FileAction):
            return self.files.execute(action)
        if isinstance(action, ProcessAction):
            return self.processes.execute(action)
        if isinstance(action, PackageAction):
            return self.packages.execute(action)
        if isinstance(action, DatabaseAction):
            return self.databases.execute(action)
        if isinstance(action, GitAction):
            return self.git.execute(action)
        if isinstance(action, DeployAction):
            return self.deployer.execute(action)
        if isinstance(action, ProjectSetupAction):
            return self.project_setup.execute(action)
        if isinstance(action, UnknownAction):
            return {"success": False, "skipped": True, "message": f"Unsupported action type: {action.type}"}
        raise TypeError(f"Not an action: {action!r}")

    def _show(self, action: Action, result: Dict[str, Any]) -> None:
        if isinstance(action, FileAction) and action.action == "read":
            self.console.print(Panel(Text(result.get("content", "")), title=escape(action.path), border_style="yellow"))
        elif isinstance(action, FileAction) and action.action == "list":
            self.console.print(Text("\n".join(result.get("files", [])) or "(empty)"))
        elif isinstance(action, ProcessAction) and action.action == "list":
            self.console.print(process_table(result.get("processes", [])))
        elif isinstance(action, DatabaseAction) and action.action == "query" and result.get("success"):
            for doc in result.get("data", []):
                self.console.print(doc)
        elif result.get("message"):
            style = "green" if result.get("success") else "yellow"
            self.console.print(f"[{style}]{escape(str(result['message']))}[/{style}]")


def process_table(processes: list) -> Table:
    table = Table(title="Running processes")
    for column in ("name", "command", "uptime", "log file"):
        table.add_column(column)
    for proc in processes:
        table.add_row(
            escape(proc["name"]),
            escape(proc["command"]),
            f"{int(proc['uptime_seconds'])} seconds",
            escape(proc.get("log_file") or "N/A"),
        )
    return table

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict

from .database import DatabaseManager
from .errors import ActionValidationError, UnsupportedOperation
from .file_ops import FileOperations
from .git_client import GitClient
from .models import (
    DatabaseAction,
    FileAction,
    GitAction,
    PackageAction,
    ProcessAction,
    ProjectSetupAction,
    SetupStep,
)
from .package_manager import PackageManager
from .process_manager import ProcessManager
from .session import Session
from .shell_runner import ShellRunner

logger = logging.getLogger(__name__)


class ProjectSetup:
    """Create a project directory, move the session into it and run setup steps.

    Steps run in order and the first failure aborts the rest; files created
    by earlier steps stay on disk. On success the session stays in the new
    project directory, on failure the previous directory is restored.
    """

    def __init__(
        self,
        session: Session,
        *,
        shell: ShellRunner,
        files: FileOperations,
        packages: PackageManager,
        processes: ProcessManager,
        git: GitClient,
        databases: DatabaseManager,
    ):
        self.session = session
        self.shell = shell
        self.files = files
        self.packages = packages
        self.processes = processes
        self.git = git
        self.databases = databases
        self._steps: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "mkdir": self._mkdir,
            "write": self._write,
            "exec": self._exec,
            "install": self._install,
            "start": self._start,
            "stop": self._stop,
            "git": lambda d: self.git.execute(GitAction.from_dict(d)),
            "database": lambda d: self.databases.execute(DatabaseAction.from_dict(d)),
            "config": self._config,
        }

    def execute(self, action: ProjectSetupAction) -> Dict[str, Any]:
        project_path = Path(self.session.resolve_path(action.path or action.name))
        logger.info("Setting up %s project: %s", action.project_type or "new", action.name)
        previous = self.session.cwd
        try:
            project_path.mkdir(parents=True, exist_ok=True)
            self.session.change_directory(str(project_path))
            for step in action.steps:
                self.run_step(step)
        except Exception as exc:
            self.session.cwd = previous
            logger.error("Project setup error: %s", exc)
            raise
        logger.info("Project setup complete: %s", action.name)
        return {
            "success": True,
            "message": f"Project setup complete: {action.name}",
            "cwd": self.session.cwd,
            "steps": len(action.steps),
        }

    def run_step(self, step: SetupStep) -> Any:
        handler = self._steps.get(step.type)
        if handler is None:
            if self.session.strict_actions:
                raise UnsupportedOperation(f"Unsupported setup step: {step.type}")
            logger.warning("Unsupported setup step: %s", step.type)
            return None
        return handler(step.details)

    def _mkdir(self, details: Dict[str, Any]) -> Any:
        result = self.files.execute(FileAction.from_dict({**details, "action": "mkdir"}))
        logger.info("Created directory: %s", details.get("path"))
        return result

    def _write(self, details: Dict[str, Any]) -> Any:
        result = self.files.execute(FileAction.from_dict({**details, "action": "write"}))
        logger.info("Created file: %s", details.get("path"))
        return result

    def _exec(self, details: Dict[str, Any]) -> str:
        command = details.get("command")
        if not command:
            raise ActionValidationError("exec step needs 'command'")
        return self.shell.check(str(command))

    def _install(self, details: Dict[str, Any]) -> Any:
        return self.packages.execute(PackageAction.from_dict({**details, "action": "install"}))

    def _start(self, details: Dict[str, Any]) -> Any:
        return self.processes.execute(ProcessAction.from_dict({**details, "action": "start"}))

    def _stop(self, details: Dict[str, Any]) -> Any:
        options = dict(details.get("options") or {})
        options.setdefault("name", details.get("name"))
        return self.processes.execute(ProcessAction.from_dict({"action": "stop", "options": options}))

    def _config(self, details: Dict[str, Any]) -> Any:
        if details.get("path") and isinstance(details.get("content"), str):
            return self._write(details)
        return self._exec(details)

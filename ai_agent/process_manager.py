from __future__ import annotations

import logging
import os
import subprocess
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ExternalCommandError, UnsupportedOperation
from .models import ProcessAction
from .registry import ProcessEntry, ProcessExited
from .session import Session
from .shell_runner import ShellRunner

logger = logging.getLogger(__name__)


class ProcessManager:
    """Start, stop and list long-running child processes tracked by name."""

    def __init__(self, session: Session, shell: Optional[ShellRunner] = None):
        self.session = session
        self.shell = shell or ShellRunner(session=session)

    @property
    def registry(self):
        return self.session.registry

    def execute(self, action: ProcessAction) -> Any:
        if action.action == "start":
            opts = action.options
            return self.start(
                action.command or "",
                name=opts.name,
                wait_for_exit=opts.wait_for_exit,
                cwd=opts.cwd,
                log_file=opts.log_file,
            )
        if action.action == "stop":
            return self.stop(action.options.name or "")
        if action.action == "list":
            return {"success": True, "processes": self.list()}
        raise UnsupportedOperation(f"Unsupported process operation: {action.action}")

    def start(
        self,
        command: str,
        *,
        name: Optional[str] = None,
        wait_for_exit: bool = False,
        cwd: Optional[str] = None,
        log_file: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not command.strip():
            raise ExternalCommandError(command, "Cannot start an empty command")
        process_name = name or command.split()[0]

        self.registry.drain_events()
        if self.registry.lookup_process(process_name) is not None:
            self.stop(process_name)

        workdir = self.session.resolve_path(cwd) if cwd else self.session.cwd
        if wait_for_exit:
            output = self.shell.check(command, cwd=workdir)
            return {"success": True, "output": output}

        log_path: Optional[str] = None
        log_stream = None
        if log_file:
            log_path = self.session.resolve_path(log_file)
            Path(log_path).parent.mkdir(parents=True, exist_ok=True)
            log_stream = open(log_path, "a", encoding="utf-8")
        try:
            handle = subprocess.Popen(
                command,
                shell=True,
                cwd=workdir,
                stdin=subprocess.DEVNULL,
                stdout=log_stream,
                stderr=subprocess.STDOUT if log_stream else None,
                start_new_session=os.name == "posix",
            )
        except OSError as exc:
            if log_stream is not None:
                log_stream.close()
            raise ExternalCommandError(command, f"Failed to start {process_name}: {exc}") from exc

        self.registry.register_process(
            process_name,
            ProcessEntry(
                name=process_name,
                handle=handle,
                command=command,
                log_file=log_path,
                log_stream=log_stream,
            ),
        )
        threading.Thread(
            target=self._observe_exit,
            args=(process_name, handle),
            name=f"exit-observer-{process_name}",
            daemon=True,
        ).start()
        logger.info("Started process: %s (pid %s)", process_name, handle.pid)
        return {"success": True, "processName": process_name, "pid": handle.pid}

    def _observe_exit(self, name: str, handle: subprocess.Popen) -> None:
        code = handle.wait()
        self.registry.post(ProcessExited(name=name, handle=handle, exit_code=code))

    def stop(self, name: str) -> Dict[str, Any]:
        entry = self.registry.lookup_process(name)
        if entry is None:
            logger.warning("No running process named %s", name)
            return {"success": False, "message": f"No running process named {name}"}
        self.registry.remove_process(name)
        try:
            entry.terminate()
        except OSError as exc:
            logger.error("Error stopping process %s: %s", name, exc)
            return {"success": False, "error": str(exc)}
        logger.info("Stopped process: %s", name)
        return {"success": True, "message": f"Process {name} stopped"}

    def list(self) -> List[Dict[str, Any]]:
        self.registry.drain_events()
        return [
            {
                "name": name,
                "command": entry.command,
                "uptime_seconds": entry.uptime_seconds(),
                "log_file": entry.log_file,
            }
            for name, entry in self.registry.processes.items()
        ]

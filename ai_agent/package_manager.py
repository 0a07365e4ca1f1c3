from __future__ import annotations

import logging
import shlex
from typing import Any, Dict, List, Optional

from .errors import UnsupportedOperation
from .models import PackageAction
from .session import Session
from .shell_runner import ShellRunner

logger = logging.getLogger(__name__)

# (manager, action) -> template; {packages} and {options} are substituted
COMMAND_TEMPLATES = {
    ("npm", "install"): "npm install {packages} {options}",
    ("npm", "uninstall"): "npm uninstall {packages}",
    ("npm", "update"): "npm update {packages}",
    ("npm", "init"): "npm init -y",
    ("npm", "run"): "npm run {options}",
    ("pip", "install"): "pip install {packages} {options}",
    ("pip", "uninstall"): "pip uninstall -y {packages}",
    ("pip", "update"): "pip install --upgrade {packages}",
}


def build_command(manager: str, action: str, packages: List[str], options: Optional[str] = None) -> str:
    template = COMMAND_TEMPLATES.get((manager, action))
    if template is None:
        managers = {m for m, _ in COMMAND_TEMPLATES}
        if manager not in managers:
            raise UnsupportedOperation(f"Unsupported package manager: {manager}")
        raise UnsupportedOperation(f"Unsupported {manager} action: {action}")
    command = template.format(
        packages=" ".join(shlex.quote(p) for p in packages),
        options=options or "",
    )
    return " ".join(command.split())


class PackageManager:
    def __init__(self, session: Session, shell: Optional[ShellRunner] = None):
        self.session = session
        self.shell = shell or ShellRunner(session=session)

    def execute(self, action: PackageAction) -> Dict[str, Any]:
        command = build_command(action.manager, action.action, action.packages, action.options)
        try:
            with self.session.pushd(action.directory):
                output = self.shell.check(command)
        except Exception as exc:
            logger.error("Package management error: %s", exc)
            raise
        return {"success": True, "command": command, "output": output}

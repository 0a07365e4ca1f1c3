from __future__ import annotations

import logging
import shlex
from typing import Any, Dict, Optional

from .errors import ActionValidationError, UnsupportedOperation
from .models import GitAction
from .session import Session
from .shell_runner import ShellRunner

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
DEFAULT_COMMIT_MESSAGE = "Commit by AI Agent"


class GitClient:
    """Git operations run through the shell runner in the session directory.

    Every operation returns ``{success, message, output}`` or raises
    ExternalCommandError.
    """

    def __init__(self, session: Session, shell: Optional[ShellRunner] = None):
        self.session = session
        self.shell = shell or ShellRunner(session=session)

    def _git(self, *args: str) -> str:
        return self.shell.check(shlex.join(["git", *args]))

    def init(self) -> Dict[str, Any]:
        return {"success": True, "message": "Git repository initialized", "output": self._git("init")}

    def clone(self, repository: str) -> Dict[str, Any]:
        output = self._git("clone", repository)
        return {"success": True, "message": f"Repository cloned from {repository}", "output": output}

    def add_all(self) -> Dict[str, Any]:
        return {"success": True, "message": "Changes staged", "output": self._git("add", ".")}

    def commit(self, message: Optional[str] = None) -> Dict[str, Any]:
        output = self._git("commit", "-m", message or DEFAULT_COMMIT_MESSAGE)
        return {"success": True, "message": "Changes committed", "output": output}

    def push(self, branch: Optional[str] = None) -> Dict[str, Any]:
        branch = branch or DEFAULT_BRANCH
        return {"success": True, "message": f"Pushed to {branch}", "output": self._git("push", "origin", branch)}

    def checkout(self, branch: str) -> Dict[str, Any]:
        output = self._git("checkout", branch)
        return {"success": True, "message": f"Switched to branch {branch}", "output": output}

    def execute(self, action: GitAction) -> Dict[str, Any]:
        try:
            if action.action == "init":
                return self.init()
            if action.action == "clone":
                if not action.repository:
                    raise ActionValidationError("git clone needs 'repository'")
                return self.clone(action.repository)
            if action.action == "add":
                return self.add_all()
            if action.action == "commit":
                return self.commit(action.message)
            if action.action == "push":
                return self.push(action.branch)
            if action.action == "checkout":
                if not action.branch:
                    raise ActionValidationError("git checkout needs 'branch'")
                return self.checkout(action.branch)
            raise UnsupportedOperation(f"Unsupported Git operation: {action.action}")
        except Exception as exc:
            logger.error("Git error: %s", exc)
            raise

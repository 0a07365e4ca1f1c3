from __future__ import annotations

from typing import Optional


class AgentError(Exception):
    """Base class for every error raised by the agent."""


class ConfigLoadError(AgentError):
    pass


class ModelRequestError(AgentError):
    pass


class PlanParseError(AgentError):
    pass


class UnsupportedOperation(AgentError):
    pass


class ActionValidationError(AgentError):
    """An action is of a known kind but is missing required fields."""


class ResourceNotFound(AgentError):
    pass


class FileOperationError(AgentError):
    pass


class DatabaseError(AgentError):
    pass


class ExternalCommandError(AgentError):
    """A shelled-out command exited non-zero or could not be spawned."""

    def __init__(self, command: str, message: str, exit_code: Optional[int] = None, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        text = message
        if stderr.strip():
            text = f"{message}\n{stderr.strip()}"
        super().__init__(text)


class HistoryLoadError(AgentError):
    pass

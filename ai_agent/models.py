from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from .errors import ActionValidationError


def _str(raw: Dict[str, Any], key: str, *, required: bool = False, kind: str = "") -> Optional[str]:
    value = raw.get(key)
    if value is None or value == "":
        if required:
            raise ActionValidationError(f"{kind or 'action'} is missing required field '{key}'")
        return None
    if isinstance(value, (dict, list)):
        raise ActionValidationError(f"{kind or 'action'} field '{key}' must be a string")
    return str(value)


def _dict(raw: Dict[str, Any], key: str, kind: str) -> Dict[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ActionValidationError(f"{kind} field '{key}' must be an object")
    return value


def _list(raw: Dict[str, Any], key: str, kind: str) -> List[Any]:
    value = raw.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ActionValidationError(f"{kind} field '{key}' must be a list")
    return value


@dataclass
class SetupStep:
    type: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProjectSetupAction:
    name: str
    path: Optional[str] = None
    project_type: Optional[str] = None
    template: Optional[str] = None
    steps: List[SetupStep] = field(default_factory=list)

    kind = "project-setup"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ProjectSetupAction":
        name = _str(raw, "name", kind=cls.kind)
        path = _str(raw, "path", kind=cls.kind)
        if not name and not path:
            raise ActionValidationError("project-setup needs a 'name' or a 'path'")
        steps = []
        for item in _list(raw, "steps", cls.kind):
            if not isinstance(item, dict) or not item.get("type"):
                raise ActionValidationError("project-setup steps must be objects with a 'type'")
            details = item.get("details")
            if details is None:
                details = {k: v for k, v in item.items() if k != "type"}
            if not isinstance(details, dict):
                raise ActionValidationError("project-setup step 'details' must be an object")
            steps.append(SetupStep(type=str(item["type"]), details=details))
        return cls(
            name=name or path or "",
            path=path,
            project_type=_str(raw, "projectType", kind=cls.kind),
            template=_str(raw, "template", kind=cls.kind),
            steps=steps,
        )


@dataclass
class FileAction:
    action: str
    path: str
    content: Optional[str] = None
    new_path: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    kind = "file-operation"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FileAction":
        content = raw.get("content")
        if content is not None and not isinstance(content, str):
            raise ActionValidationError("file-operation field 'content' must be a string")
        return cls(
            action=_str(raw, "action", required=True, kind=cls.kind) or "",
            path=_str(raw, "path", required=True, kind=cls.kind) or "",
            content=content,
            new_path=_str(raw, "newPath", kind=cls.kind),
            options=_dict(raw, "options", cls.kind),
        )


@dataclass
class PackageAction:
    manager: str
    action: str
    packages: List[str] = field(default_factory=list)
    options: Optional[str] = None
    directory: Optional[str] = None

    kind = "package-operation"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PackageAction":
        options = raw.get("options")
        if isinstance(options, list):
            options = " ".join(str(o) for o in options)
        elif isinstance(options, dict):
            raise ActionValidationError("package-operation field 'options' must be a string")
        return cls(
            manager=_str(raw, "manager", required=True, kind=cls.kind) or "",
            action=_str(raw, "action", required=True, kind=cls.kind) or "",
            packages=[str(p) for p in _list(raw, "packages", cls.kind)],
            options=str(options) if options else None,
            directory=_str(raw, "directory", kind=cls.kind),
        )


@dataclass
class ProcessOptions:
    name: Optional[str] = None
    wait_for_exit: bool = False
    cwd: Optional[str] = None
    log_file: Optional[str] = None


@dataclass
class ProcessAction:
    action: str
    command: Optional[str] = None
    options: ProcessOptions = field(default_factory=ProcessOptions)

    kind = "process-operation"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ProcessAction":
        action = _str(raw, "action", required=True, kind=cls.kind) or ""
        opts = _dict(raw, "options", cls.kind)
        options = ProcessOptions(
            name=_str(opts, "name", kind=cls.kind),
            wait_for_exit=bool(opts.get("waitForExit", False)),
            cwd=_str(opts, "cwd", kind=cls.kind),
            log_file=_str(opts, "logFile", kind=cls.kind),
        )
        command = _str(raw, "command", required=action == "start", kind=cls.kind)
        if action == "stop" and not options.name:
            raise ActionValidationError("process-operation stop needs options.name")
        return cls(action=action, command=command, options=options)


@dataclass
class DatabaseAction:
    db_type: str
    action: str
    connection_string: Optional[str] = None
    database: Optional[str] = None
    collection: Optional[str] = None
    data: List[Dict[str, Any]] = field(default_factory=list)
    query: Dict[str, Any] = field(default_factory=dict)

    kind = "database-operation"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DatabaseAction":
        data = raw.get("data")
        if isinstance(data, dict):
            data = [data]
        elif data is None:
            data = []
        elif not isinstance(data, list):
            raise ActionValidationError("database-operation field 'data' must be a list of objects")
        return cls(
            db_type=_str(raw, "dbType", required=True, kind=cls.kind) or "",
            action=_str(raw, "action", required=True, kind=cls.kind) or "",
            connection_string=_str(raw, "connectionString", kind=cls.kind),
            database=_str(raw, "database", kind=cls.kind),
            collection=_str(raw, "collection", kind=cls.kind),
            data=data,
            query=_dict(raw, "query", cls.kind),
        )


@dataclass
class GitAction:
    action: str
    repository: Optional[str] = None
    branch: Optional[str] = None
    message: Optional[str] = None

    kind = "git-operation"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "GitAction":
        return cls(
            action=_str(raw, "action", required=True, kind=cls.kind) or "",
            repository=_str(raw, "repository", kind=cls.kind),
            branch=_str(raw, "branch", kind=cls.kind),
            message=_str(raw, "message", kind=cls.kind),
        )


@dataclass
class DeployStep:
    type: str
    command: Optional[str] = None
    path: Optional[str] = None
    content: Optional[str] = None


@dataclass
class DeployAction:
    platform: str
    steps: List[DeployStep] = field(default_factory=list)

    kind = "deploy-operation"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DeployAction":
        steps = []
        for item in _list(raw, "steps", cls.kind):
            if not isinstance(item, dict) or not item.get("type"):
                raise ActionValidationError("deploy-operation steps must be objects with a 'type'")
            steps.append(
                DeployStep(
                    type=str(item["type"]),
                    command=_str(item, "command", kind=cls.kind),
                    path=_str(item, "path", kind=cls.kind),
                    content=item.get("content") if isinstance(item.get("content"), str) else None,
                )
            )
        return cls(platform=_str(raw, "platform", kind=cls.kind) or "unknown", steps=steps)


@dataclass
class UnknownAction:
    type: str
    raw: Dict[str, Any] = field(default_factory=dict)

    kind = "unknown"


Action = Union[
    ProjectSetupAction,
    FileAction,
    PackageAction,
    ProcessAction,
    DatabaseAction,
    GitAction,
    DeployAction,
    UnknownAction,
]

ACTION_TYPES = {
    cls.kind: cls
    for cls in (
        ProjectSetupAction,
        FileAction,
        PackageAction,
        ProcessAction,
        DatabaseAction,
        GitAction,
        DeployAction,
    )
}


@dataclass
class PlanContext:
    description: str = ""
    needs_monitoring: bool = False
    estimated_time: Optional[str] = None


@dataclass(frozen=True)
class Plan:
    type: str
    actions: tuple
    context: PlanContext


@dataclass
class HistoryEntry:
    command: str
    timestamp: datetime
    type: str
    description: str


@dataclass
class DispatchReport:
    """Outcome of executing one plan."""

    plan: Optional[Plan]
    results: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    completed: int = 0

    @property
    def success(self) -> bool:
        return self.plan is not None and self.error is None

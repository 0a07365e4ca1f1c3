from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import ActionValidationError, FileOperationError, UnsupportedOperation
from .models import FileAction
from .registry import FileChanged, ResourceRegistry, WatcherEntry
from .session import Session

logger = logging.getLogger(__name__)


def _is_hidden(path: str) -> bool:
    return any(part.startswith(".") for part in Path(path).parts if part not in (".", ".."))


class _ChangeHandler(FileSystemEventHandler):
    """Runs on the watchdog thread: logs and posts, never touches the registry maps."""

    def __init__(self, root: str, registry: ResourceRegistry):
        super().__init__()
        self.root = root
        self.registry = registry

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = os.fsdecode(event.src_path)
        if _is_hidden(os.path.relpath(path, self.root)):
            return
        logger.info("File changed: %s", path)
        self.registry.post(FileChanged(root=self.root, path=path))


class FileOperations:
    def __init__(self, session: Session, observer_factory: Callable[[], Any] = Observer):
        self.session = session
        self.observer_factory = observer_factory

    def execute(self, action: FileAction, callback: Optional[Callable[[str], None]] = None) -> Dict[str, Any]:
        handler = getattr(self, f"_op_{action.action.replace('-', '_')}", None)
        if handler is None and action.action != "watch":
            raise UnsupportedOperation(f"Unsupported file operation: {action.action}")
        full_path = self.session.resolve_path(action.path)
        try:
            if action.action == "watch":
                return self.watch(full_path, callback)
            return handler(full_path, action)
        except OSError as exc:
            logger.error("File operation error: %s", exc)
            raise FileOperationError(f"{action.action} failed for {action.path}: {exc}") from exc

    def _op_read(self, full_path: str, action: FileAction) -> Dict[str, Any]:
        with open(full_path, "r", encoding="utf-8") as f:
            return {"success": True, "content": f.read()}

    def _op_write(self, full_path: str, action: FileAction) -> Dict[str, Any]:
        Path(full_path).parent.mkdir(parents=True, exist_ok=True)
        with open(full_path, "w", encoding="utf-8") as f:
            f.write(action.content or "")
        return {"success": True, "message": f"File written: {action.path}"}

    def _op_append(self, full_path: str, action: FileAction) -> Dict[str, Any]:
        Path(full_path).parent.mkdir(parents=True, exist_ok=True)
        with open(full_path, "a", encoding="utf-8") as f:
            f.write(action.content or "")
        return {"success": True, "message": f"Content appended to: {action.path}"}

    def _op_delete(self, full_path: str, action: FileAction) -> Dict[str, Any]:
        os.unlink(full_path)
        return {"success": True, "message": f"File deleted: {action.path}"}

    def _op_rename(self, full_path: str, action: FileAction) -> Dict[str, Any]:
        if not action.new_path:
            raise ActionValidationError("rename needs 'newPath'")
        os.rename(full_path, self.session.resolve_path(action.new_path))
        return {"success": True, "message": f"File renamed from {action.path} to {action.new_path}"}

    def _op_mkdir(self, full_path: str, action: FileAction) -> Dict[str, Any]:
        Path(full_path).mkdir(parents=True, exist_ok=True)
        return {"success": True, "message": f"Directory created: {action.path}"}

    def _op_rmdir(self, full_path: str, action: FileAction) -> Dict[str, Any]:
        if action.options.get("recursive"):
            force = bool(action.options.get("force", True))
            if os.path.exists(full_path) or not force:
                shutil.rmtree(full_path)
        else:
            os.rmdir(full_path)
        return {"success": True, "message": f"Directory removed: {action.path}"}

    def _op_list(self, full_path: str, action: FileAction) -> Dict[str, Any]:
        return {"success": True, "files": sorted(os.listdir(full_path))}

    def _op_unwatch(self, full_path: str, action: FileAction) -> Dict[str, Any]:
        return self.unwatch(full_path)

    def watch(self, path: str, callback: Optional[Callable[[str], None]] = None) -> Dict[str, Any]:
        """Start a watcher on ``path``. Watching an already watched path is a no-op."""
        full_path = str(Path(self.session.resolve_path(path)).resolve())
        registry = self.session.registry
        if registry.lookup_watcher(full_path) is not None:
            return {"success": True, "message": f"Already watching: {full_path}"}
        if not os.path.isdir(full_path):
            raise NotADirectoryError(f"Not a directory: {full_path}")

        observer = self.observer_factory()
        observer.schedule(_ChangeHandler(full_path, registry), full_path, recursive=True)
        observer.start()
        registry.register_watcher(full_path, WatcherEntry(path=full_path, observer=observer, callback=callback))
        logger.info("Watching directory: %s", full_path)
        return {"success": True, "message": f"Watching: {full_path}"}

    def unwatch(self, path: str) -> Dict[str, Any]:
        full_path = str(Path(self.session.resolve_path(path)).resolve())
        registry = self.session.registry
        if registry.lookup_watcher(full_path) is None:
            logger.warning("No file watcher for %s", full_path)
            return {"success": False, "message": f"No file watcher for {full_path}"}
        registry.remove_watcher(full_path).close()
        logger.info("Stopped watching: %s", full_path)
        return {"success": True, "message": f"Stopped watching: {full_path}"}

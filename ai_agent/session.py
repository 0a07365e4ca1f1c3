from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .config import AppConfig
from .history import History
from .registry import ResourceRegistry


class Session:
    """Mutable state for one interactive run.

    ``cwd`` is the directory every executor resolves paths and runs commands
    in. The interpreter's own working directory is never changed.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        cwd: Optional[str] = None,
        history: Optional[History] = None,
        registry: Optional[ResourceRegistry] = None,
    ):
        self.config = config or AppConfig()
        self.cwd = str(Path(cwd or os.getcwd()).resolve())
        self.history = history or History()
        self.registry = registry or ResourceRegistry()

    @property
    def strict_actions(self) -> bool:
        return bool(self.config.strict_actions)

    def resolve_path(self, path: str) -> str:
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return str(candidate)
        return str(Path(self.cwd) / candidate)

    def change_directory(self, path: str) -> str:
        target = Path(self.resolve_path(path)).resolve()
        if not target.is_dir():
            raise NotADirectoryError(f"Not a directory: {target}")
        self.cwd = str(target)
        return self.cwd

    @contextmanager
    def pushd(self, path: Optional[str]) -> Iterator[str]:
        """Temporarily switch ``cwd``; always restored on exit."""
        previous = self.cwd
        try:
            if path:
                self.change_directory(path)
            yield self.cwd
        finally:
            self.cwd = previous

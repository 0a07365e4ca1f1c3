"""In-memory table of live resources: child processes, file watchers and
database connections.

All mutation happens on the main thread. Background threads (process exit
observers and watchdog handlers) only ``post`` events; the main loop applies
them with ``drain_events``.
"""

from __future__ import annotations

import logging
import os
import queue
import signal
import subprocess
import time
from dataclasses import dataclass, field
from typing import IO, Any, Callable, Dict, List, Optional

from .errors import ResourceNotFound

logger = logging.getLogger(__name__)


@dataclass
class ProcessEntry:
    name: str
    handle: subprocess.Popen
    command: str
    start_time: float = field(default_factory=time.monotonic)
    log_file: Optional[str] = None
    log_stream: Optional[IO[Any]] = None

    def uptime_seconds(self) -> float:
        return time.monotonic() - self.start_time

    def terminate(self) -> None:
        if self.handle.poll() is None:
            try:
                if os.name == "posix":
                    os.killpg(self.handle.pid, signal.SIGTERM)
                else:
                    self.handle.terminate()
            except ProcessLookupError:
                # exited between poll() and the signal
                pass
        if self.log_stream is not None:
            self.log_stream.close()


@dataclass
class WatcherEntry:
    path: str
    observer: Any
    callback: Optional[Callable[[str], None]] = None

    def close(self) -> None:
        self.observer.stop()
        self.observer.join(timeout=5)


@dataclass
class ProcessExited:
    name: str
    handle: subprocess.Popen
    exit_code: Optional[int]


@dataclass
class FileChanged:
    root: str
    path: str


class ResourceRegistry:
    def __init__(self) -> None:
        self.processes: Dict[str, ProcessEntry] = {}
        self.watchers: Dict[str, WatcherEntry] = {}
        self.databases: Dict[str, Any] = {}
        self._events: "queue.Queue[object]" = queue.Queue()

    # processes

    def register_process(self, name: str, entry: ProcessEntry) -> None:
        self.processes[name] = entry

    def lookup_process(self, name: str) -> Optional[ProcessEntry]:
        return self.processes.get(name)

    def remove_process(self, name: str) -> ProcessEntry:
        try:
            return self.processes.pop(name)
        except KeyError:
            raise ResourceNotFound(f"No running process named {name}") from None

    # watchers

    def register_watcher(self, path: str, entry: WatcherEntry) -> None:
        self.watchers[path] = entry

    def lookup_watcher(self, path: str) -> Optional[WatcherEntry]:
        return self.watchers.get(path)

    def remove_watcher(self, path: str) -> WatcherEntry:
        try:
            return self.watchers.pop(path)
        except KeyError:
            raise ResourceNotFound(f"No file watcher for {path}") from None

    # database connections

    def register_database(self, connection_string: str, connection: Any) -> None:
        self.databases[connection_string] = connection

    def lookup_database(self, connection_string: str) -> Optional[Any]:
        return self.databases.get(connection_string)

    def remove_database(self, connection_string: str) -> Any:
        try:
            return self.databases.pop(connection_string)
        except KeyError:
            raise ResourceNotFound(f"No database connection for {connection_string}") from None

    # events

    def post(self, event: object) -> None:
        """Thread-safe; the only registry call allowed off the main thread."""
        self._events.put(event)

    def drain_events(self) -> List[object]:
        handled: List[object] = []
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return handled
            self._apply(event)
            handled.append(event)

    def _apply(self, event: object) -> None:
        if isinstance(event, ProcessExited):
            entry = self.processes.get(event.name)
            # a newer process may have been started under the same name
            if entry is not None and entry.handle is event.handle:
                del self.processes[event.name]
                if entry.log_stream is not None:
                    entry.log_stream.close()
                logger.info("Process %s exited with code %s", event.name, event.exit_code)
        elif isinstance(event, FileChanged):
            watcher = self.watchers.get(event.root)
            if watcher is not None and watcher.callback is not None:
                try:
                    watcher.callback(event.path)
                except Exception:
                    logger.exception("File watcher callback failed for %s", event.path)

    def shutdown(self) -> List[str]:
        """Stop processes, close watchers and database connections.

        Individual failures are logged and skipped. Returns the failures.
        """
        failures: List[str] = []
        for name in list(self.processes):
            entry = self.processes.pop(name)
            logger.info("Stopping process: %s", name)
            try:
                entry.terminate()
            except Exception as exc:
                logger.error("Failed to stop process %s: %s", name, exc)
                failures.append(f"process:{name}")
        for path in list(self.watchers):
            watcher = self.watchers.pop(path)
            logger.info("Stopping file watcher for: %s", path)
            try:
                watcher.close()
            except Exception as exc:
                logger.error("Failed to close watcher for %s: %s", path, exc)
                failures.append(f"watcher:{path}")
        for conn_str in list(self.databases):
            connection = self.databases.pop(conn_str)
            logger.info("Closing database connection: %s", conn_str)
            try:
                connection.close()
            except Exception as exc:
                logger.error("Failed to close database connection %s: %s", conn_str, exc)
                failures.append(f"database:{conn_str}")
        # pending exit events refer to entries that are already gone
        self.drain_events()
        return failures

# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Deletion of registered paths at process exit.

A :class:`CleanupRegistry` collects paths (typically temp files and
directories) and deletes them when flushed. Attaching the registry to a
:class:`SignalSource` flushes it on normal exit and on ``SIGINT`` or
``SIGTERM``; after a signal-triggered flush the process exits with the
conventional status (``130`` and ``143``).

Example::

    registry = CleanupRegistry()
    registry.attach()

    scratch = FileHandle("/tmp").create_temp_file()
    scratch.parent.delete_on_exit(registry, recursive=True)
"""

from __future__ import annotations

import atexit
import signal
import sys
import threading
import types
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, ClassVar, Final, Protocol

from ._handle import FileHandle
from .logging import get_logger

if TYPE_CHECKING:
    from types import FrameType

_logger = get_logger(__name__)

type Listener = Callable[[], object]

EXIT_EVENT: Final[str] = "exit"
INTERRUPT_EVENT: Final[str] = "SIGINT"
TERMINATE_EVENT: Final[str] = "SIGTERM"

INTERRUPT_EXIT_CODE: Final[int] = 130
TERMINATE_EXIT_CODE: Final[int] = 143


class SignalSource(Protocol):
    """Event source the registry attaches its listeners to.

    Events are named ``"exit"``, ``"SIGINT"`` and ``"SIGTERM"``.
    """

    def add_listener(self, event: str, listener: Listener) -> None: ...

    def remove_listener(self, event: str, listener: Listener) -> None: ...


class ProcessSignalSource:
    """Dispatches process exit (``atexit``) and POSIX signals to listeners.

    Each event's dispatcher is installed once, when its first listener is
    added. Use :meth:`shared` for the process-wide instance.
    """

    _instance: ClassVar[ProcessSignalSource | None] = None
    _instance_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self) -> None:
        super().__init__()
        self._listeners: dict[str, list[Listener]] = {}
        self._installed: set[str] = set()
        self._lock = threading.Lock()

    @classmethod
    def shared(cls) -> ProcessSignalSource:
        """Return the process-wide source, creating it on first use."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def add_listener(self, event: str, listener: Listener) -> None:
        with self._lock:
            self._listeners.setdefault(event, []).append(listener)
            if event not in self._installed:
                self._install(event)
                self._installed.add(event)

    def remove_listener(self, event: str, listener: Listener) -> None:
        with self._lock:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

    def listeners(self, event: str) -> tuple[Listener, ...]:
        with self._lock:
            return tuple(self._listeners.get(event, ()))

    def dispatch(self, event: str) -> None:
        """Invoke every listener of ``event`` in registration order.

        A listener requesting exit does not prevent the remaining listeners
        from running; the first exit request is re-raised afterwards.
        """
        exit_request: SystemExit | None = None
        for listener in self.listeners(event):
            try:
                _ = listener()
            except SystemExit as request:
                exit_request = exit_request or request
        if exit_request is not None:
            raise exit_request

    def _install(self, event: str) -> None:
        if event == EXIT_EVENT:
            _ = atexit.register(self.dispatch, EXIT_EVENT)
            return
        _ = signal.signal(signal.Signals[event], self._handle_signal)

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        _ = frame
        self.dispatch(signal.Signals(signum).name)


class CleanupRegistry:
    """Queue of paths to delete when the process ends.

    Args:
        backend: Blocking backend the paths are deleted through. Defaults to
            the host filesystem.
    """

    def __init__(self, backend: object | None = None) -> None:
        super().__init__()
        self._backend = backend
        self._pending: dict[str, bool] = {}
        self._lock = threading.Lock()
        self._source: SignalSource | None = None
        self._handlers: dict[str, Listener] = {
            EXIT_EVENT: self._on_exit,
            INTERRUPT_EVENT: self._on_interrupt,
            TERMINATE_EVENT: self._on_terminate,
        }

    @property
    def pending(self) -> Mapping[str, bool]:
        """Registered paths mapped to their recursive flag."""
        with self._lock:
            return types.MappingProxyType(dict(self._pending))

    @property
    def attached(self) -> bool:
        return self._source is not None

    def register(self, path: str, *, recursive: bool = False) -> None:
        """Queue ``path``; registering again overwrites the recursive flag."""
        with self._lock:
            self._pending[path] = recursive

    def unregister(self, path: str) -> None:
        with self._lock:
            _ = self._pending.pop(path, None)

    def flush(self) -> list[str]:
        """Delete every queued path, clear the queue and detach.

        Paths that no longer exist are skipped.

        Returns:
            Paths whose deletion failed.
        """
        with self._lock:
            entries = list(self._pending.items())
            self._pending.clear()
        failed: list[str] = []
        for path, recursive in entries:
            handle = FileHandle(path, self._backend)
            if handle.exists() and handle.delete(recursive=recursive) is None:
                failed.append(path)
        if failed:
            _logger.warning(
                "Exit cleanup left paths behind.",
                event="handlefs.cleanup.partial_failure",
                context={"failed": failed},
            )
        self.detach()
        return failed

    def attach(self, source: SignalSource | None = None) -> None:
        """Listen for exit and termination events on ``source``.

        Attaching again, to the same or another source, never leaves a
        listener registered twice.
        """
        target = source if source is not None else ProcessSignalSource.shared()
        if self._source is not None and self._source is not target:
            self.detach()
        for event, listener in self._handlers.items():
            target.remove_listener(event, listener)
            target.add_listener(event, listener)
        self._source = target

    def detach(self) -> None:
        source, self._source = self._source, None
        if source is None:
            return
        for event, listener in self._handlers.items():
            source.remove_listener(event, listener)

    def _on_exit(self) -> None:
        _ = self.flush()

    def _on_interrupt(self) -> None:
        _ = self.flush()
        sys.exit(INTERRUPT_EXIT_CODE)

    def _on_terminate(self) -> None:
        _ = self.flush()
        sys.exit(TERMINATE_EXIT_CODE)


__all__ = [
    "EXIT_EVENT",
    "INTERRUPT_EVENT",
    "INTERRUPT_EXIT_CODE",
    "TERMINATE_EVENT",
    "TERMINATE_EXIT_CODE",
    "CleanupRegistry",
    "Listener",
    "ProcessSignalSource",
    "SignalSource",
]

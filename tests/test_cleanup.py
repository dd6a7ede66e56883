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

"""Tests for exit-time deletion of registered paths."""

from __future__ import annotations

import signal
from collections.abc import Callable

import pytest

from handlefs import (
    INTERRUPT_EXIT_CODE,
    TERMINATE_EXIT_CODE,
    CleanupRegistry,
    FileHandle,
    InMemoryBackend,
    ProcessSignalSource,
)
from tests.helpers import RecordingBackend, TreeBuilder


class FakeSignalSource:
    """Signal source that only fires when told to."""

    def __init__(self) -> None:
        super().__init__()
        self.listeners: dict[str, list[Callable[[], object]]] = {}

    def add_listener(self, event: str, listener: Callable[[], object]) -> None:
        self.listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: str, listener: Callable[[], object]) -> None:
        if listener in self.listeners.get(event, []):
            self.listeners[event].remove(listener)

    def fire(self, event: str) -> None:
        for listener in list(self.listeners.get(event, [])):
            _ = listener()

    def count(self) -> dict[str, int]:
        return {event: len(items) for event, items in self.listeners.items()}


@pytest.fixture
def source() -> FakeSignalSource:
    return FakeSignalSource()


@pytest.fixture
def registry(memory: InMemoryBackend) -> CleanupRegistry:
    return CleanupRegistry(memory)


class TestRegistration:
    def test_register_and_unregister(self, registry: CleanupRegistry) -> None:
        registry.register("/a")
        registry.register("/b", recursive=True)
        registry.register("/a", recursive=True)
        registry.unregister("/b")
        registry.unregister("/never-registered")
        assert dict(registry.pending) == {"/a": True}

    def test_pending_is_a_snapshot(self, registry: CleanupRegistry) -> None:
        registry.register("/a")
        view = registry.pending
        registry.register("/b")
        assert list(view) == ["/a"]
        with pytest.raises(TypeError):
            view["/c"] = False  # pyright: ignore[reportIndexIssue]

    def test_handle_registration(
        self, build_tree: TreeBuilder, registry: CleanupRegistry
    ) -> None:
        root = build_tree({"scratch/a.txt": "a"})
        root.to("scratch").delete_on_exit(registry, recursive=True)
        root.to("scratch", "a.txt").delete_on_exit(registry)
        assert dict(registry.pending) == {"/scratch": True, "/scratch/a.txt": False}


class TestFlush:
    def test_deletes_registered_paths(
        self, build_tree: TreeBuilder, registry: CleanupRegistry
    ) -> None:
        root = build_tree({"tmp/job/out.log": "x", "tmp/single.txt": "y"})
        registry.register("/tmp/job", recursive=True)
        registry.register("/tmp/single.txt")
        assert registry.flush() == []
        assert root.to("tmp").list_filenames() == []
        assert dict(registry.pending) == {}

    def test_skips_paths_already_gone(self, registry: CleanupRegistry) -> None:
        registry.register("/never-created")
        assert registry.flush() == []

    def test_reports_failures(
        self,
        build_tree: TreeBuilder,
        memory: InMemoryBackend,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        _ = build_tree({"keep/a.txt": "a"})
        registry = CleanupRegistry(memory)
        registry.register("/keep")
        with caplog.at_level("WARNING", logger="handlefs"):
            assert registry.flush() == ["/keep"]
        assert any(
            getattr(record, "event", "") == "handlefs.cleanup.partial_failure"
            for record in caplog.records
        )

    def test_failure_of_one_path_does_not_stop_others(
        self, build_tree: TreeBuilder, memory: InMemoryBackend
    ) -> None:
        root = build_tree({"a.txt": "a", "b.txt": "b"})
        backend = RecordingBackend(memory)
        backend.fail("unlink", "/a.txt")
        registry = CleanupRegistry(backend)
        registry.register("/a.txt")
        registry.register("/b.txt")
        assert registry.flush() == ["/a.txt"]
        assert root.to("a.txt").exists() is True
        assert root.to("b.txt").exists() is False

    def test_flush_detaches(
        self, registry: CleanupRegistry, source: FakeSignalSource
    ) -> None:
        registry.attach(source)
        _ = registry.flush()
        assert registry.attached is False
        assert all(count == 0 for count in source.count().values())


class TestAttachment:
    def test_attach_listens_for_every_event(
        self, registry: CleanupRegistry, source: FakeSignalSource
    ) -> None:
        registry.attach(source)
        assert registry.attached is True
        assert source.count() == {"exit": 1, "SIGINT": 1, "SIGTERM": 1}

    def test_reattach_never_duplicates(
        self, registry: CleanupRegistry, source: FakeSignalSource
    ) -> None:
        registry.attach(source)
        registry.attach(source)
        registry.attach(source)
        assert source.count() == {"exit": 1, "SIGINT": 1, "SIGTERM": 1}

    def test_attach_elsewhere_moves_listeners(
        self, registry: CleanupRegistry, source: FakeSignalSource
    ) -> None:
        other = FakeSignalSource()
        registry.attach(source)
        registry.attach(other)
        assert all(count == 0 for count in source.count().values())
        assert other.count() == {"exit": 1, "SIGINT": 1, "SIGTERM": 1}

    def test_detach_without_source_is_noop(self, registry: CleanupRegistry) -> None:
        registry.detach()
        assert registry.attached is False

    def test_exit_event_flushes(
        self,
        build_tree: TreeBuilder,
        registry: CleanupRegistry,
        source: FakeSignalSource,
    ) -> None:
        root = build_tree({"a.txt": "a"})
        registry.register("/a.txt")
        registry.attach(source)
        source.fire("exit")
        assert root.to("a.txt").exists() is False

    @pytest.mark.parametrize(
        ("event", "code"),
        [("SIGINT", INTERRUPT_EXIT_CODE), ("SIGTERM", TERMINATE_EXIT_CODE)],
    )
    def test_signal_flushes_then_exits(
        self,
        build_tree: TreeBuilder,
        registry: CleanupRegistry,
        source: FakeSignalSource,
        event: str,
        code: int,
    ) -> None:
        root = build_tree({"a.txt": "a"})
        registry.register("/a.txt")
        registry.attach(source)
        with pytest.raises(SystemExit) as excinfo:
            source.fire(event)
        assert excinfo.value.code == code
        assert root.to("a.txt").exists() is False

    def test_exit_codes(self) -> None:
        assert (INTERRUPT_EXIT_CODE, TERMINATE_EXIT_CODE) == (130, 143)


class TestProcessSignalSource:
    @pytest.fixture
    def installed(self, monkeypatch: pytest.MonkeyPatch) -> list[object]:
        calls: list[object] = []
        monkeypatch.setattr(
            "handlefs._cleanup.atexit.register",
            lambda *args: calls.append(("atexit", *args)),
        )
        monkeypatch.setattr(
            "handlefs._cleanup.signal.signal",
            lambda signum, handler: calls.append(("signal", signum)),
        )
        return calls

    def test_dispatcher_installed_once_per_event(self, installed: list[object]) -> None:
        source = ProcessSignalSource()
        source.add_listener("SIGTERM", lambda: None)
        source.add_listener("SIGTERM", lambda: None)
        source.add_listener("exit", lambda: None)
        assert installed == [
            ("signal", signal.SIGTERM),
            ("atexit", source.dispatch, "exit"),
        ]

    def test_dispatch_runs_every_listener_then_exits(
        self, installed: list[object]
    ) -> None:
        _ = installed
        source = ProcessSignalSource()
        ran: list[str] = []

        def first() -> None:
            ran.append("first")
            raise SystemExit(130)

        def second() -> None:
            ran.append("second")
            raise SystemExit(1)

        source.add_listener("SIGINT", first)
        source.add_listener("SIGINT", second)
        with pytest.raises(SystemExit) as excinfo:
            source.dispatch("SIGINT")
        assert ran == ["first", "second"]
        assert excinfo.value.code == 130

    def test_remove_listener(self, installed: list[object]) -> None:
        _ = installed
        source = ProcessSignalSource()
        ran: list[str] = []

        def listener() -> None:
            ran.append("ran")

        source.add_listener("exit", listener)
        source.remove_listener("exit", listener)
        source.remove_listener("exit", listener)
        source.dispatch("exit")
        assert ran == []
        assert source.listeners("exit") == ()

    def test_signal_handler_dispatches_by_name(self, installed: list[object]) -> None:
        _ = installed
        source = ProcessSignalSource()
        ran: list[str] = []
        source.add_listener("SIGTERM", lambda: ran.append("term"))
        source._handle_signal(signal.SIGTERM, None)  # pyright: ignore[reportPrivateUsage]
        assert ran == ["term"]

    def test_shared_is_singleton(self) -> None:
        assert ProcessSignalSource.shared() is ProcessSignalSource.shared()

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

"""Tests for walk and the recursive bulk operations."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from handlefs import FileHandle, HandleSettings, InMemoryBackend
from tests.helpers import RecordingBackend, TreeBuilder


def _handle(
    path: str, backend: object, settings: HandleSettings
) -> FileHandle:
    return FileHandle(path, backend, settings=settings)


def _first(calls: list[tuple[str, tuple[Any, ...]]], name: str, path: str) -> int:
    return next(
        index
        for index, (capability, args) in enumerate(calls)
        if capability == name and args and args[0] == path
    )


class TestWalk:
    def test_pre_order_listing_order(
        self, build_tree: TreeBuilder, memory: InMemoryBackend, settings: HandleSettings
    ) -> None:
        _ = build_tree(
            {"root/a.txt": "a", "root/sub/b.txt": "b"},
        )
        start = _handle("/root", memory, settings)
        assert [h.full_path for h in start.walk()] == [
            "/root",
            "/root/a.txt",
            "/root/sub",
            "/root/sub/b.txt",
        ]

    def test_walk_of_file_is_itself(
        self, build_tree: TreeBuilder, memory: InMemoryBackend, settings: HandleSettings
    ) -> None:
        _ = build_tree({"a.txt": "a"})
        start = _handle("/a.txt", memory, settings)
        assert list(start.walk()) == [start]

    def test_walk_of_missing_path_yields_only_itself(self, root: FileHandle) -> None:
        missing = root.to("missing")
        assert list(missing.walk()) == [missing]

    def test_walk_is_lazy(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"root/a.txt": "a"})
        walker = _handle("/root", recording, settings).walk()
        assert recording.calls == []
        first = next(walker)
        assert first.full_path == "/root"
        assert recording.calls == []

    def test_walk_reflects_changes_between_steps(
        self, build_tree: TreeBuilder, memory: InMemoryBackend, settings: HandleSettings
    ) -> None:
        _ = build_tree({"root/a": None, "root/b": None})
        walker = _handle("/root", memory, settings).walk()
        seen = [next(walker).full_path, next(walker).full_path]
        memory.write_text("/root/b/late.txt", "x")
        seen.extend(h.full_path for h in walker)
        assert seen == ["/root", "/root/a", "/root/b", "/root/b/late.txt"]


class TestDelete:
    def test_delete_file(self, build_tree: TreeBuilder) -> None:
        root = build_tree({"a.txt": "a"})
        target = root.to("a.txt")
        assert target.delete() is target
        assert target.exists() is False

    def test_delete_non_empty_directory_requires_recursive(
        self, build_tree: TreeBuilder
    ) -> None:
        root = build_tree({"dir/a.txt": "a"})
        assert root.to("dir").delete() is None
        assert root.to("dir", "a.txt").exists() is True

    def test_delete_empty_directory(self, build_tree: TreeBuilder) -> None:
        root = build_tree({"dir": None})
        assert root.to("dir").delete() is not None
        assert root.to("dir").exists() is False

    def test_recursive_prefers_native_rmtree(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"dir/sub/a.txt": "a"})
        target = _handle("/dir", recording, settings)
        assert target.delete(recursive=True) is target
        assert recording.capabilities == ["rmtree"]
        assert target.exists() is False

    def test_recursive_fallback_removes_children_first(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"dir/sub/a.txt": "a", "dir/b.txt": "b"})
        recording.hide("rmtree")
        target = _handle("/dir", recording, settings)
        assert target.delete(recursive=True) is target
        calls = recording.calls
        assert _first(calls, "unlink", "/dir/sub/a.txt") < _first(
            calls, "rmdir", "/dir/sub"
        )
        assert _first(calls, "rmdir", "/dir/sub") < _first(calls, "rmdir", "/dir")
        assert target.exists() is False

    def test_partial_failure_attempts_every_child(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        memory: InMemoryBackend,
        settings: HandleSettings,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        _ = build_tree({"dir/a.txt": "a", "dir/b.txt": "b", "dir/c.txt": "c"})
        recording.hide("rmtree")
        recording.fail("unlink", "/dir/b.txt")

        with caplog.at_level(logging.WARNING, logger="handlefs"):
            result = _handle("/dir", recording, settings).delete(recursive=True)

        assert result is None
        assert [args[0] for args in recording.called("unlink")] == [
            "/dir/a.txt",
            "/dir/b.txt",
            "/dir/c.txt",
        ]
        assert memory.exists("/dir/a.txt") is False
        assert memory.exists("/dir/b.txt") is True
        assert memory.exists("/dir/c.txt") is False
        assert recording.called("rmdir") == []
        record = next(
            r for r in caplog.records if getattr(r, "event", "").endswith("partial_failure")
        )
        assert record.context["failed"] == ["/dir/b.txt"]  # pyright: ignore[reportAttributeAccessIssue]

    def test_fallback_unlinks_symlinked_directory_without_following(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        memory: InMemoryBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"dir": None, "other/x": "x"})
        memory.symlink("/other", "/dir/link")
        recording.hide("rmtree")
        target = _handle("/dir", recording, settings)

        assert target.delete(recursive=True) is target

        assert memory.exists("/dir") is False
        assert memory.read_text("/other/x") == "x"
        assert recording.called("unlink") == [("/dir/link",)]
        assert recording.called("listdir") == [("/dir",)]

    def test_symlink_to_directory_is_unlinked(
        self, build_tree: TreeBuilder, memory: InMemoryBackend
    ) -> None:
        root = build_tree({"other/x": "x"})
        memory.symlink("/other", "/link")
        assert root.to("link").delete() is not None
        assert root.to("link").is_symbolic_link() is None
        assert root.to("other", "x").exists() is True

    def test_native_failure_is_reported(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"dir/a.txt": "a"})
        recording.fail("rmtree", "/dir")
        assert _handle("/dir", recording, settings).delete(recursive=True) is None
        assert recording.called("unlink") == []

    def test_recursive_delete_of_missing_path_is_forced(self, root: FileHandle) -> None:
        missing = root.to("missing")
        assert missing.delete(recursive=True) is missing
        assert missing.delete(recursive=True, force=False) is None


class TestCopy:
    def test_copy_to_self_makes_no_backend_calls(
        self, recording: RecordingBackend, settings: HandleSettings
    ) -> None:
        source = _handle("/a/b.txt", recording, settings)
        assert source.copy_to(_handle("/a/./b.txt", recording, settings)) is source
        assert recording.calls == []

    def test_existing_destination_is_deleted_before_write(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        memory: InMemoryBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"src.txt": "new", "dst.txt": "old"})
        source = _handle("/src.txt", recording, settings)

        assert source.copy_to(_handle("/dst.txt", recording, settings)) is source

        calls = recording.calls
        assert _first(calls, "unlink", "/dst.txt") < _first(
            calls, "write_bytes", "/dst.txt"
        )
        assert memory.read_text("/dst.txt") == "new"

    def test_overwrite_skips_delete(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        memory: InMemoryBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"src.txt": "new", "dst.txt": "old"})
        source = _handle("/src.txt", recording, settings)
        destination = _handle("/dst.txt", recording, settings)
        assert source.copy_to(destination, overwrite=True) is source
        assert recording.called("unlink") == []
        assert memory.read_text("/dst.txt") == "new"

    def test_failed_destination_delete_aborts(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        memory: InMemoryBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"src.txt": "new", "dst.txt": "old"})
        recording.fail("unlink", "/dst.txt")
        source = _handle("/src.txt", recording, settings)
        assert source.copy_to(_handle("/dst.txt", recording, settings)) is None
        assert recording.called("read_bytes") == []
        assert memory.read_text("/dst.txt") == "old"

    def test_missing_source_fails(self, root: FileHandle) -> None:
        assert root.to("missing").copy_to(root.to("dst")) is None

    def test_copy_directory_tree(self, build_tree: TreeBuilder) -> None:
        root = build_tree({"src/a.txt": "a", "src/sub/b.txt": "b", "src/empty": None})
        source = root.to("src")
        assert source.copy_to(root.to("dst"), recursive=True) is source
        assert [h.full_path for h in root.to("dst").walk()] == [
            "/dst",
            "/dst/a.txt",
            "/dst/empty",
            "/dst/sub",
            "/dst/sub/b.txt",
        ]
        assert root.to("dst", "sub", "b.txt").read("utf-8") == "b"
        assert root.to("src", "sub", "b.txt").exists() is True

    def test_copy_directory_into_missing_parent_needs_recursive(
        self, build_tree: TreeBuilder
    ) -> None:
        root = build_tree({"src/a.txt": "a"})
        assert root.to("src").copy_to(root.to("x", "y")) is None
        assert root.to("src").copy_to(root.to("x", "y"), recursive=True) is not None

    def test_copy_into_own_subtree_fails(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        memory: InMemoryBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"src/a.txt": "a"})
        source = _handle("/src", recording, settings)
        destination = _handle("/src/copy", recording, settings)
        assert source.copy_to(destination, recursive=True) is None
        assert recording.calls == []
        assert memory.listdir("/src") == ["a.txt"]

    def test_copy_aggregates_child_failures(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        memory: InMemoryBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"src/a.txt": "a", "src/b.txt": "b", "src/c.txt": "c"})
        recording.fail("read_bytes", "/src/a.txt")
        source = _handle("/src", recording, settings)
        assert source.copy_to(_handle("/dst", recording, settings)) is None
        assert memory.exists("/dst/a.txt") is False
        assert memory.read_text("/dst/b.txt") == "b"
        assert memory.read_text("/dst/c.txt") == "c"

    def test_copy_across_backends(
        self, build_tree: TreeBuilder, settings: HandleSettings
    ) -> None:
        root = build_tree({"src/a.txt": "a"})
        other = InMemoryBackend()
        destination = _handle("/copy", other, settings)
        assert root.to("src").copy_to(destination) is not None
        assert other.read_text("/copy/a.txt") == "a"


class TestRename:
    def test_rename_file(self, build_tree: TreeBuilder) -> None:
        root = build_tree({"a.txt": "a"})
        source = root.to("a.txt")
        assert source.rename_to(root.to("b.txt")) is source
        assert root.to("a.txt").exists() is False
        assert root.to("b.txt").read("utf-8") == "a"

    def test_rename_to_self_is_noop(
        self, recording: RecordingBackend, settings: HandleSettings
    ) -> None:
        source = _handle("/a.txt", recording, settings)
        assert source.rename_to(source) is source
        assert recording.calls == []

    def test_recursive_creates_destination_parents(
        self, build_tree: TreeBuilder
    ) -> None:
        root = build_tree({"a.txt": "a"})
        destination = root.to("x", "y", "a.txt")
        assert root.to("a.txt").rename_to(destination) is None
        assert root.to("a.txt").rename_to(destination, recursive=True) is not None
        assert destination.read("utf-8") == "a"

    def test_existing_destination_is_replaced(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"src": None, "src/a.txt": "a", "dst/old.txt": "old"})
        source = _handle("/src", recording, settings)
        assert source.rename_to(_handle("/dst", recording, settings), recursive=True)
        assert _first(recording.calls, "rmtree", "/dst") < _first(
            recording.calls, "rename", "/src"
        )
        assert [h.name for h in _handle("/dst", recording, settings).walk()] == [
            "dst",
            "a.txt",
        ]

    def test_failed_destination_delete_aborts(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        memory: InMemoryBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"a.txt": "a", "b.txt": "b"})
        recording.fail("unlink", "/b.txt")
        source = _handle("/a.txt", recording, settings)
        assert source.rename_to(_handle("/b.txt", recording, settings)) is None
        assert recording.called("rename") == []
        assert memory.read_text("/a.txt") == "a"


class TestClear:
    def test_recursive_clear_empties_directory(self, build_tree: TreeBuilder) -> None:
        root = build_tree({"dir/a.txt": "a", "dir/sub/b.txt": "b"})
        folder = root.to("dir")
        assert folder.clear(recursive=True) is folder
        assert folder.exists() is True
        assert folder.list_filenames() == []

    def test_recursive_clear_attempts_every_child(
        self,
        build_tree: TreeBuilder,
        recording: RecordingBackend,
        memory: InMemoryBackend,
        settings: HandleSettings,
    ) -> None:
        _ = build_tree({"dir/a.txt": "a", "dir/b.txt": "b", "dir/c.txt": "c"})
        recording.fail("rmtree", "/dir/a.txt")
        assert _handle("/dir", recording, settings).clear(recursive=True) is None
        assert memory.listdir("/dir") == ["a.txt"]

    def test_clear_file_truncates(self, build_tree: TreeBuilder) -> None:
        root = build_tree({"a.txt": "content"})
        target = root.to("a.txt")
        assert target.clear() is target
        assert target.read() == b""
        assert target.size() == 0

    def test_recursive_clear_of_file_fails(self, build_tree: TreeBuilder) -> None:
        root = build_tree({"a.txt": "content"})
        assert root.to("a.txt").clear(recursive=True) is None

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

"""In-memory filesystem backend.

A complete blocking backend that keeps its tree in a dict keyed by segment
tuples. Suitable for tests and sandboxes; wrap it in
:class:`~handlefs.ThreadedAsyncBackend` for suspending handles.

Example usage::

    from handlefs import FileHandle, InMemoryBackend

    backend = InMemoryBackend()
    note = FileHandle("/docs/note.txt", backend)
    note.parent.mkdirs()
    note.write("hello")
    assert backend.read_text("/docs/note.txt") == "hello"
"""

from __future__ import annotations

import errno
import io
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Literal, override
from uuid import uuid4

from ._path import normalize_segments
from ._types import MODE_DEFAULT, MODE_EXECUTABLE, R_OK, W_OK, X_OK, FileStat, now

type _Key = tuple[str, ...]

_MAX_LINK_DEPTH = 40
_TEMP_ROOT: _Key = ("tmp",)


# ---------------------------------------------------------------------------
# Internal Types
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _Node:
    """One entry of the tree. Content is stored as raw bytes."""

    kind: Literal["file", "directory", "symlink"]
    mode: int
    created_at: datetime
    modified_at: datetime
    accessed_at: datetime
    content: bytes = b""
    target: str = ""

    @classmethod
    def make(
        cls,
        kind: Literal["file", "directory", "symlink"],
        *,
        content: bytes = b"",
        target: str = "",
    ) -> _Node:
        stamp = now()
        return cls(
            kind=kind,
            mode=MODE_EXECUTABLE if kind == "directory" else MODE_DEFAULT,
            created_at=stamp,
            modified_at=stamp,
            accessed_at=stamp,
            content=content,
            target=target,
        )


def _root_nodes() -> dict[_Key, _Node]:
    return {(): _Node.make("directory")}


class _MemoryWriter(io.BytesIO):
    """Write stream that stores its buffer in the backend on flush and close."""

    def __init__(self, backend: InMemoryBackend, key: _Key, initial: bytes) -> None:
        super().__init__()
        self._backend = backend
        self._key = key
        _ = self.write(initial)

    @override
    def flush(self) -> None:
        super().flush()
        if not self.closed:
            self._backend.store(self._key, self.getvalue())

    @override
    def close(self) -> None:
        if not self.closed:
            self._backend.store(self._key, self.getvalue())
        super().close()


# ---------------------------------------------------------------------------
# InMemoryBackend Implementation
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class InMemoryBackend:
    """Blocking backend that keeps the whole tree in memory.

    Errors mirror the host backend: ``FileNotFoundError``,
    ``FileExistsError``, ``IsADirectoryError``, ``NotADirectoryError`` and
    ``OSError`` with the matching ``errno``. Listings are sorted by name.
    """

    _nodes: dict[_Key, _Node] = field(default_factory=_root_nodes)

    # --- Resolution ---

    def _follow(self, key: _Key) -> _Key:
        """Resolve symbolic links in every segment of ``key``."""
        current: _Key = ()
        for segment in key:
            candidate = (*current, segment)
            for _ in range(_MAX_LINK_DEPTH):
                node = self._nodes.get(candidate)
                if node is None or node.kind != "symlink":
                    break
                candidate = normalize_segments(node.target, candidate[:-1])
            else:
                raise OSError(errno.ELOOP, "Too many levels of symbolic links")
            current = candidate
        return current

    def _entry_key(self, path: str) -> _Key:
        """Resolve links in the parents of ``path`` but not in its last segment."""
        key = normalize_segments(path)
        if not key:
            return key
        return (*self._follow(key[:-1]), key[-1])

    def _node(self, path: str, *, follow: bool = True) -> tuple[_Key, _Node]:
        key = self._follow(normalize_segments(path)) if follow else self._entry_key(path)
        node = self._nodes.get(key)
        if node is None:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        return key, node

    def _file(self, path: str) -> _Node:
        _, node = self._node(path)
        if node.kind == "directory":
            raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
        return node

    def _children(self, key: _Key) -> list[_Key]:
        depth = len(key) + 1
        return [
            candidate
            for candidate in self._nodes
            if len(candidate) == depth and candidate[:-1] == key
        ]

    def _subtree(self, key: _Key) -> list[_Key]:
        depth = len(key)
        return [candidate for candidate in self._nodes if candidate[:depth] == key]

    def _require_directory(self, key: _Key, path: str) -> None:
        node = self._nodes.get(key)
        if node is None:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        if node.kind != "directory":
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)

    def store(self, key: _Key, content: bytes) -> None:
        """Replace the content of the file at ``key``, creating it if needed."""
        node = self._nodes.get(key)
        if node is None:
            self._nodes[key] = _Node.make("file", content=content)
            return
        node.content = content
        node.modified_at = now()

    @staticmethod
    def _to_stat(node: _Node) -> FileStat:
        return FileStat(
            size=len(node.content) if node.kind == "file" else len(node.target),
            is_file=node.kind == "file",
            is_directory=node.kind == "directory",
            is_symlink=node.kind == "symlink",
            created_at=node.created_at,
            modified_at=node.modified_at,
            accessed_at=node.accessed_at,
        )

    # --- Queries ---

    def exists(self, path: str) -> bool:
        try:
            return self._follow(normalize_segments(path)) in self._nodes
        except OSError:
            return False

    def access(self, path: str, mode: int) -> bool:
        """Check ``mode`` against the owner permission bits."""
        try:
            _, node = self._node(path)
        except OSError:
            return False
        checks = ((R_OK, 0o400), (W_OK, 0o200), (X_OK, 0o100))
        return all(node.mode & bit for flag, bit in checks if mode & flag)

    def stat(self, path: str) -> FileStat:
        _, node = self._node(path)
        return self._to_stat(node)

    def lstat(self, path: str) -> FileStat:
        _, node = self._node(path, follow=False)
        return self._to_stat(node)

    def listdir(self, path: str) -> list[str]:
        key, node = self._node(path)
        if node.kind != "directory":
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
        node.accessed_at = now()
        return sorted(child[-1] for child in self._children(key))

    def readlink(self, path: str) -> str:
        _, node = self._node(path, follow=False)
        if node.kind != "symlink":
            raise OSError(errno.EINVAL, "Not a symbolic link", path)
        return node.target

    def symlink(self, target: str, path: str) -> None:
        """Create a symbolic link at ``path`` pointing to ``target``.

        ``target`` is stored verbatim; relative targets resolve against the
        directory containing the link.
        """
        key = self._entry_key(path)
        if key in self._nodes:
            raise FileExistsError(errno.EEXIST, "File exists", path)
        self._require_directory(key[:-1], path)
        self._nodes[key] = _Node.make("symlink", target=target)

    # --- Metadata mutation ---

    def chmod(self, path: str, mode: int) -> None:
        _, node = self._node(path)
        node.mode = mode

    def utime(self, path: str, accessed: datetime, modified: datetime) -> None:
        _, node = self._node(path)
        node.accessed_at = accessed
        node.modified_at = modified

    # --- Tree mutation ---

    def mkdir(self, path: str, *, parents: bool = False) -> None:
        key = self._entry_key(path)
        existing = self._nodes.get(self._follow(key))
        if existing is not None:
            if parents and existing.kind == "directory":
                return
            raise FileExistsError(errno.EEXIST, "File exists", path)
        if parents:
            for depth in range(1, len(key)):
                ancestor = key[:depth]
                node = self._nodes.get(ancestor)
                if node is None:
                    self._nodes[ancestor] = _Node.make("directory")
                elif node.kind != "directory":
                    raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
        self._require_directory(key[:-1], path)
        self._nodes[key] = _Node.make("directory")

    def rmdir(self, path: str) -> None:
        key, node = self._node(path, follow=False)
        if node.kind != "directory":
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
        if not key:
            raise PermissionError(errno.EPERM, "Cannot remove the root", path)
        if self._children(key):
            raise OSError(errno.ENOTEMPTY, "Directory not empty", path)
        del self._nodes[key]

    def rmtree(self, path: str, *, force: bool = False) -> None:
        """Remove ``path`` and everything below it; links are not followed."""
        key = self._entry_key(path)
        if key not in self._nodes:
            if force:
                return
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        if not key:
            raise PermissionError(errno.EPERM, "Cannot remove the root", path)
        for entry in self._subtree(key):
            del self._nodes[entry]

    def unlink(self, path: str) -> None:
        key, node = self._node(path, follow=False)
        if node.kind == "directory":
            raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
        del self._nodes[key]

    def rename(self, source: str, destination: str) -> None:
        """Move ``source`` to ``destination``, replacing a file or empty directory."""
        source_key, source_node = self._node(source, follow=False)
        target_key = self._entry_key(destination)
        if source_key == target_key:
            return
        if target_key[: len(source_key)] == source_key:
            raise OSError(errno.EINVAL, "Cannot move a directory into itself", destination)
        self._require_directory(target_key[:-1], destination)
        existing = self._nodes.get(target_key)
        if existing is not None:
            if existing.kind == "directory" and source_node.kind != "directory":
                raise IsADirectoryError(errno.EISDIR, "Is a directory", destination)
            if existing.kind == "directory" and self._children(target_key):
                raise OSError(errno.ENOTEMPTY, "Directory not empty", destination)
            del self._nodes[target_key]
        depth = len(source_key)
        for entry in self._subtree(source_key):
            self._nodes[(*target_key, *entry[depth:])] = self._nodes.pop(entry)

    def mkdtemp(self, prefix: str, *, directory: str | None = None) -> str:
        """Create a uniquely named directory; defaults to ``/tmp``."""
        if directory is None:
            parent = _TEMP_ROOT
            self.mkdir("/" + "/".join(parent), parents=True)
        else:
            parent = self._follow(normalize_segments(directory))
            self._require_directory(parent, directory)
        key = (*parent, f"{prefix}{uuid4().hex[:8]}")
        self._nodes[key] = _Node.make("directory")
        return "/" + "/".join(key)

    # --- Content ---

    def read_bytes(self, path: str) -> bytes:
        node = self._file(path)
        node.accessed_at = now()
        return node.content

    def read_text(self, path: str, *, encoding: str = "utf-8") -> str:
        return self.read_bytes(path).decode(encoding)

    def _writable_key(self, path: str) -> _Key:
        key = self._follow(normalize_segments(path))
        node = self._nodes.get(key)
        if node is not None and node.kind == "directory":
            raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
        self._require_directory(key[:-1], path)
        return key

    def write_bytes(self, path: str, data: bytes, *, append: bool = False) -> None:
        key = self._writable_key(path)
        node = self._nodes.get(key)
        prefix = node.content if append and node is not None else b""
        self.store(key, prefix + data)

    def write_text(
        self,
        path: str,
        data: str,
        *,
        encoding: str = "utf-8",
        append: bool = False,
    ) -> None:
        self.write_bytes(path, data.encode(encoding), append=append)

    def open_read(self, path: str) -> BinaryIO:
        return io.BytesIO(self.read_bytes(path))

    def open_write(self, path: str, *, append: bool = False) -> BinaryIO:
        key = self._writable_key(path)
        node = self._nodes.get(key)
        initial = node.content if append and node is not None else b""
        self.store(key, initial)
        return _MemoryWriter(self, key, initial)


__all__ = ["InMemoryBackend"]

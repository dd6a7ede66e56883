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

"""Backend capability protocols.

A backend is the set of low-level filesystem operations a handle forwards to.
The protocols below document the full contract, but every member is
optional: handles look members up with ``getattr`` at call time and treat an
absent member like a failed call. Embedders can therefore hand in anything
from a complete host filesystem to a three-method test fake.

All paths are full path strings rendered by the calling handle. Members
signal failure by raising (typically ``OSError`` subclasses); handles turn
those exceptions into sentinel results.

Implementations:

- ``HostBackend``: the real filesystem
- ``InMemoryBackend``: a dict-backed tree for tests and sandboxes
- ``ThreadedAsyncBackend``: suspending view over any blocking backend
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import BinaryIO, Protocol

from ._types import FileStat


class Backend(Protocol):
    """Blocking backend contract.

    Example::

        class ReadOnlyBackend:
            def stat(self, path: str) -> FileStat: ...
            def listdir(self, path: str) -> Sequence[str]: ...
            def read_bytes(self, path: str) -> bytes: ...

        # Mutating handle calls on this backend return their sentinel.
        FileHandle("/etc/hosts", ReadOnlyBackend()).delete()  # None
    """

    # --- Queries ---

    def exists(self, path: str) -> bool:
        """Return True if ``path`` exists (following links)."""
        ...

    def access(self, path: str, mode: int) -> bool:
        """Return True if ``path`` is accessible with ``mode`` (``F_OK``, ``R_OK``...)."""
        ...

    def stat(self, path: str) -> FileStat:
        """Return metadata for ``path``, following links.

        Raises:
            FileNotFoundError: Path does not exist.
        """
        ...

    def lstat(self, path: str) -> FileStat:
        """Return metadata for ``path`` without following a final link."""
        ...

    def listdir(self, path: str) -> Sequence[str]:
        """Return the entry names of a directory in listing order.

        Raises:
            FileNotFoundError: Path does not exist.
            NotADirectoryError: Path is not a directory.
        """
        ...

    def readlink(self, path: str) -> str:
        """Return the raw target of a symbolic link."""
        ...

    # --- Metadata mutation ---

    def chmod(self, path: str, mode: int) -> None:
        """Change permission bits."""
        ...

    def utime(self, path: str, accessed: datetime, modified: datetime) -> None:
        """Set access and modification times."""
        ...

    # --- Tree mutation ---

    def mkdir(self, path: str, *, parents: bool = False) -> None:
        """Create a directory.

        With ``parents=True`` missing ancestors are created and an existing
        directory is not an error.
        """
        ...

    def rmdir(self, path: str) -> None:
        """Remove an empty directory."""
        ...

    def rmtree(self, path: str, *, force: bool = False) -> None:
        """Remove ``path`` and everything below it in one call.

        Works on files as well as directories. With ``force=True`` a missing
        path is not an error.
        """
        ...

    def unlink(self, path: str) -> None:
        """Remove a file or link."""
        ...

    def rename(self, source: str, destination: str) -> None:
        """Move ``source`` to ``destination``."""
        ...

    def mkdtemp(self, prefix: str, *, directory: str | None = None) -> str:
        """Create a uniquely named directory and return its full path."""
        ...

    # --- Content ---

    def read_bytes(self, path: str) -> bytes:
        """Return the full content of a file."""
        ...

    def read_text(self, path: str, *, encoding: str = "utf-8") -> str:
        """Return the full content of a file decoded with ``encoding``."""
        ...

    def write_bytes(self, path: str, data: bytes, *, append: bool = False) -> None:
        """Replace (or extend, with ``append``) a file's content."""
        ...

    def write_text(
        self,
        path: str,
        data: str,
        *,
        encoding: str = "utf-8",
        append: bool = False,
    ) -> None:
        """Replace (or extend, with ``append``) a file's content with text."""
        ...

    def open_read(self, path: str) -> BinaryIO:
        """Return a binary stream positioned at the start of the file."""
        ...

    def open_write(self, path: str, *, append: bool = False) -> BinaryIO:
        """Return a binary stream that truncates (or appends to) the file."""
        ...


class AsyncBackend(Protocol):
    """Suspending backend contract.

    Mirrors :class:`Backend` member for member with coroutine functions.
    ``ThreadedAsyncBackend`` derives one from any blocking backend.
    """

    async def exists(self, path: str) -> bool: ...

    async def access(self, path: str, mode: int) -> bool: ...

    async def stat(self, path: str) -> FileStat: ...

    async def lstat(self, path: str) -> FileStat: ...

    async def listdir(self, path: str) -> Sequence[str]: ...

    async def readlink(self, path: str) -> str: ...

    async def chmod(self, path: str, mode: int) -> None: ...

    async def utime(self, path: str, accessed: datetime, modified: datetime) -> None: ...

    async def mkdir(self, path: str, *, parents: bool = False) -> None: ...

    async def rmdir(self, path: str) -> None: ...

    async def rmtree(self, path: str, *, force: bool = False) -> None: ...

    async def unlink(self, path: str) -> None: ...

    async def rename(self, source: str, destination: str) -> None: ...

    async def mkdtemp(self, prefix: str, *, directory: str | None = None) -> str: ...

    async def read_bytes(self, path: str) -> bytes: ...

    async def read_text(self, path: str, *, encoding: str = "utf-8") -> str: ...

    async def write_bytes(
        self, path: str, data: bytes, *, append: bool = False
    ) -> None: ...

    async def write_text(
        self,
        path: str,
        data: str,
        *,
        encoding: str = "utf-8",
        append: bool = False,
    ) -> None: ...

    async def open_read(self, path: str) -> BinaryIO: ...

    async def open_write(self, path: str, *, append: bool = False) -> BinaryIO: ...


#: Names of every backend member, in protocol order.
CAPABILITIES: tuple[str, ...] = (
    "exists",
    "access",
    "stat",
    "lstat",
    "listdir",
    "readlink",
    "chmod",
    "utime",
    "mkdir",
    "rmdir",
    "rmtree",
    "unlink",
    "rename",
    "mkdtemp",
    "read_bytes",
    "read_text",
    "write_bytes",
    "write_text",
    "open_read",
    "open_write",
)


__all__ = [
    "CAPABILITIES",
    "AsyncBackend",
    "Backend",
]

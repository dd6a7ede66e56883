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

"""Host filesystem backend.

Forwards every member to :mod:`os`, :mod:`shutil` and :mod:`tempfile`.
Errors propagate as the ``OSError`` subclasses those modules raise.

Example usage::

    from handlefs import FileHandle, HostBackend

    handle = FileHandle("/tmp/report.txt", HostBackend())
    handle.write("done")
"""

from __future__ import annotations

import os
import shutil
import stat as stat_module
import tempfile
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO

from ._types import FileStat


def _timestamp(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=UTC)


def _to_stat(result: os.stat_result) -> FileStat:
    # st_birthtime exists on macOS, BSD and Windows; Linux only reports ctime.
    created = getattr(result, "st_birthtime", None)
    return FileStat(
        size=result.st_size,
        is_file=stat_module.S_ISREG(result.st_mode),
        is_directory=stat_module.S_ISDIR(result.st_mode),
        is_symlink=stat_module.S_ISLNK(result.st_mode),
        created_at=_timestamp(created if created is not None else result.st_ctime),
        modified_at=_timestamp(result.st_mtime),
        accessed_at=_timestamp(result.st_atime),
    )


@dataclass(slots=True, frozen=True)
class HostBackend:
    """Blocking backend over the process's real filesystem."""

    # --- Queries ---

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def access(self, path: str, mode: int) -> bool:
        return os.access(path, mode)

    def stat(self, path: str) -> FileStat:
        return _to_stat(os.stat(path))

    def lstat(self, path: str) -> FileStat:
        return _to_stat(os.lstat(path))

    def listdir(self, path: str) -> list[str]:
        """Return entry names sorted by name."""
        return sorted(os.listdir(path))

    def readlink(self, path: str) -> str:
        return os.readlink(path)

    # --- Metadata mutation ---

    def chmod(self, path: str, mode: int) -> None:
        os.chmod(path, mode)

    def utime(self, path: str, accessed: datetime, modified: datetime) -> None:
        os.utime(path, (accessed.timestamp(), modified.timestamp()))

    # --- Tree mutation ---

    def mkdir(self, path: str, *, parents: bool = False) -> None:
        Path(path).mkdir(parents=parents, exist_ok=parents)

    def rmdir(self, path: str) -> None:
        os.rmdir(path)

    def rmtree(self, path: str, *, force: bool = False) -> None:
        """Remove a directory tree, a file or a link.

        Links are removed themselves, never followed.
        """
        if force and not os.path.lexists(path):
            return
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.unlink(path)

    def unlink(self, path: str) -> None:
        os.unlink(path)

    def rename(self, source: str, destination: str) -> None:
        os.replace(source, destination)

    def mkdtemp(self, prefix: str, *, directory: str | None = None) -> str:
        return tempfile.mkdtemp(prefix=prefix, dir=directory)

    # --- Content ---

    def read_bytes(self, path: str) -> bytes:
        return Path(path).read_bytes()

    def read_text(self, path: str, *, encoding: str = "utf-8") -> str:
        with open(path, encoding=encoding, newline="") as stream:
            return stream.read()

    def write_bytes(self, path: str, data: bytes, *, append: bool = False) -> None:
        with open(path, "ab" if append else "wb") as stream:
            _ = stream.write(data)

    def write_text(
        self,
        path: str,
        data: str,
        *,
        encoding: str = "utf-8",
        append: bool = False,
    ) -> None:
        with open(path, "a" if append else "w", encoding=encoding, newline="") as stream:
            _ = stream.write(data)

    def open_read(self, path: str) -> BinaryIO:
        return open(path, "rb")  # noqa: SIM115

    def open_write(self, path: str, *, append: bool = False) -> BinaryIO:
        return open(path, "ab" if append else "wb")  # noqa: SIM115


__all__ = ["HostBackend"]

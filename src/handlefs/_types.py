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

"""Core metadata types and constants shared by handles and backends.

Constants:

- ``KIB``, ``MIB``, ``GIB``: 1024-based size units used by ``size_kb()`` etc.
- ``MODE_*``: permission bits applied by the ``set_readable()`` family.
- ``F_OK``, ``R_OK``, ``W_OK``, ``X_OK``: access modes passed to backends.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Final

KIB: Final[int] = 1024
MIB: Final[int] = 1024 * KIB
GIB: Final[int] = 1024 * MIB

F_OK: Final[int] = os.F_OK
R_OK: Final[int] = os.R_OK
W_OK: Final[int] = os.W_OK
X_OK: Final[int] = os.X_OK

MODE_EXECUTABLE: Final[int] = 0o755
MODE_DEFAULT: Final[int] = 0o644
MODE_READ_ONLY: Final[int] = 0o444
MODE_NO_ACCESS: Final[int] = 0o000


@dataclass(slots=True, frozen=True)
class FileStat:
    """Metadata for a file, directory or link.

    Returned by a backend's ``stat()`` (links followed) and ``lstat()``
    (links not followed).

    Attributes:
        size: Size in bytes as reported by the backend.
        is_file: True for regular files.
        is_directory: True for directories.
        is_symlink: True when the entry itself is a symbolic link. Only
            meaningful for ``lstat()`` results.
        created_at: Creation time, or None when the backend cannot tell.
        modified_at: Last modification time.
        accessed_at: Last access time.

    Example::

        stat = backend.stat("/srv/data.bin")
        if stat.is_file and stat.size > 0:
            payload = backend.read_bytes("/srv/data.bin")
    """

    size: int
    is_file: bool
    is_directory: bool
    is_symlink: bool = False
    created_at: datetime | None = None
    modified_at: datetime | None = None
    accessed_at: datetime | None = None


def now() -> datetime:
    """Return the current UTC time truncated to milliseconds."""
    value = datetime.now(UTC)
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


__all__ = [
    "F_OK",
    "GIB",
    "KIB",
    "MIB",
    "MODE_DEFAULT",
    "MODE_EXECUTABLE",
    "MODE_NO_ACCESS",
    "MODE_READ_ONLY",
    "R_OK",
    "W_OK",
    "X_OK",
    "FileStat",
    "now",
]

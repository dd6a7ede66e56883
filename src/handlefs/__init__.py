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

"""Uniform file handles over pluggable filesystem backends.

A handle is an immutable, normalized path bound to a backend. The same set
of operations is available in two calling conventions:

- ``FileHandle``: blocking; every call returns its result.
- ``AsyncFileHandle``: suspending; every call returns a coroutine.

Example usage::

    from handlefs import FileHandle, InMemoryBackend

    root = FileHandle("/", InMemoryBackend())
    docs = root.to("docs").mkdirs()
    docs.to("a.txt").write("alpha")
    assert [h.name for h in root.walk()] == ["", "docs", "a.txt"]

Backends provided here:

- ``HostBackend``: the process's real filesystem
- ``InMemoryBackend``: dict-backed tree for tests and sandboxes
- ``ThreadedAsyncBackend``: suspending view over any blocking backend
"""

from __future__ import annotations

from ._cleanup import (
    INTERRUPT_EXIT_CODE,
    TERMINATE_EXIT_CODE,
    CleanupRegistry,
    ProcessSignalSource,
    SignalSource,
)
from ._config import AsyncConfigFile, ConfigFile
from ._handle import AsyncFileHandle, BaseHandle, FileHandle
from ._host import HostBackend
from ._memory import InMemoryBackend
from ._outcome import Outcome
from ._path import normalize_segments, path_contains, render_path, render_uri
from ._protocol import CAPABILITIES, AsyncBackend, Backend
from ._settings import HandleSettings, default_settings
from ._threaded import ThreadedAsyncBackend
from ._types import F_OK, R_OK, W_OK, X_OK, FileStat
from .errors import (
    BackendMismatchError,
    DownloadError,
    HandleFsError,
    MissingCapabilityError,
)

__all__ = [
    "CAPABILITIES",
    "F_OK",
    "INTERRUPT_EXIT_CODE",
    "R_OK",
    "TERMINATE_EXIT_CODE",
    "W_OK",
    "X_OK",
    "AsyncBackend",
    "AsyncConfigFile",
    "AsyncFileHandle",
    "Backend",
    "BackendMismatchError",
    "BaseHandle",
    "CleanupRegistry",
    "ConfigFile",
    "DownloadError",
    "FileHandle",
    "FileStat",
    "HandleFsError",
    "HandleSettings",
    "HostBackend",
    "InMemoryBackend",
    "MissingCapabilityError",
    "Outcome",
    "ProcessSignalSource",
    "SignalSource",
    "ThreadedAsyncBackend",
    "default_settings",
    "normalize_segments",
    "path_contains",
    "render_path",
    "render_uri",
]

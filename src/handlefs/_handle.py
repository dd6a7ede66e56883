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

"""Segment-addressed file handles.

A handle pairs a canonical segment tuple with a backend. Everything derived
from the path alone (name, extension, parent, URI...) is computed on access;
everything else is forwarded to the backend through the operations in
:mod:`handlefs._ops`.

Two surfaces are composed from the same operations:

- :class:`FileHandle` runs each operation to completion before returning.
- :class:`AsyncFileHandle` returns coroutines, and ``walk()`` an async
  iterator.

Example usage::

    from handlefs import FileHandle

    folder = FileHandle("folder").mkdirs()
    note = folder.to("note.txt")
    note.write("Hello,")
    note.append(" world!")
    assert note.read("utf-8") == "Hello, world!"
"""

from __future__ import annotations

import functools
import os
from collections.abc import AsyncIterator, Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Any, Concatenate, Self, cast, overload, override

import httpx

from . import _download, _ops
from ._engine import Op, Traversal, drive, drive_async, iterate, iterate_async
from ._host import HostBackend
from ._path import normalize_segments, path_contains, render_path, render_uri
from ._settings import HandleSettings, default_settings
from ._threaded import ThreadedAsyncBackend
from .errors import BackendMismatchError

if TYPE_CHECKING:
    from ._cleanup import CleanupRegistry

type PathInput = str | os.PathLike[str] | Sequence[str]

_HOST_BACKEND = HostBackend()
_THREADED_HOST_BACKEND = ThreadedAsyncBackend(_HOST_BACKEND)


class _Blocking[**P, T]:
    """Expose an operation as a method that drives it to completion."""

    def __init__(self, op: Callable[Concatenate[Any, P], Op[T]]) -> None:
        super().__init__()
        self._op = op
        self.__doc__ = op.__doc__

    @overload
    def __get__(self, instance: None, owner: type[Any]) -> Self: ...

    @overload
    def __get__(self, instance: BaseHandle, owner: type[Any]) -> Callable[P, T]: ...

    def __get__(
        self, instance: BaseHandle | None, owner: type[Any]
    ) -> Self | Callable[P, T]:
        if instance is None:
            return self
        op = self._op

        @functools.wraps(op)
        def bound(*args: P.args, **kwargs: P.kwargs) -> T:
            return drive(op(instance, *args, **kwargs))

        return bound


class _Suspending[**P, T]:
    """Expose an operation as a coroutine method."""

    def __init__(self, op: Callable[Concatenate[Any, P], Op[T]]) -> None:
        super().__init__()
        self._op = op
        self.__doc__ = op.__doc__

    @overload
    def __get__(self, instance: None, owner: type[Any]) -> Self: ...

    @overload
    def __get__(
        self, instance: BaseHandle, owner: type[Any]
    ) -> Callable[P, Any]: ...

    def __get__(
        self, instance: BaseHandle | None, owner: type[Any]
    ) -> Self | Callable[P, Any]:
        if instance is None:
            return self
        op = self._op

        @functools.wraps(op)
        async def bound(*args: P.args, **kwargs: P.kwargs) -> T:
            return await drive_async(op(instance, *args, **kwargs))

        return bound


class BaseHandle:
    """Path arithmetic shared by both handle surfaces.

    Construction from a string (or path-like object) normalizes it against
    the settings' working directory. Construction from a sequence of
    segments trusts them as already canonical and only copies them.
    """

    __slots__ = ("_backend", "_segments", "_settings")

    def __init__(
        self,
        path: PathInput,
        backend: object | None = None,
        *,
        settings: HandleSettings | None = None,
    ) -> None:
        super().__init__()
        self._settings = settings if settings is not None else default_settings()
        if isinstance(path, os.PathLike):
            path = os.fspath(path)
        if isinstance(path, str):
            self._segments = normalize_segments(path, self._settings.resolved_base())
        else:
            self._segments = tuple(path)
        self._backend = backend if backend is not None else self._default_backend()

    @classmethod
    def _default_backend(cls) -> object:
        return _HOST_BACKEND

    # --- Derived properties ---

    @property
    def segments(self) -> tuple[str, ...]:
        return self._segments

    @property
    def backend(self) -> object:
        return self._backend

    @property
    def settings(self) -> HandleSettings:
        return self._settings

    @property
    def separator(self) -> str:
        return self._settings.separator

    @property
    def full_path(self) -> str:
        """Path rendered with the configured separator; the root is the separator."""
        return render_path(self._segments, self.separator)

    @property
    def name(self) -> str:
        """Last segment, or ``""`` at the root."""
        return self._segments[-1] if self._segments else ""

    @property
    def stem(self) -> str:
        """Name without its final extension."""
        name = self.name
        dot = name.rfind(".")
        return name if dot == -1 else name[:dot]

    @property
    def extension(self) -> str:
        """Text after the last dot of the name, ``""`` when there is none."""
        name = self.name
        dot = name.rfind(".")
        return "" if dot == -1 else name[dot + 1 :]

    @property
    def parent(self) -> Self | None:
        """Handle for the containing directory, or None at the root."""
        if not self._segments:
            return None
        return self.with_segments(self._segments[:-1])

    @property
    def uri(self) -> str:
        return render_uri(self._segments)

    @property
    def is_hidden(self) -> bool:
        """True when any segment of the path starts with a dot."""
        return any(segment.startswith(".") for segment in self._segments)

    # --- Derivation ---

    def with_segments(self, segments: Sequence[str]) -> Self:
        """Return a handle on the same backend for trusted ``segments``."""
        return type(self)(tuple(segments), self._backend, settings=self._settings)

    def resolve(self, path: str) -> Self:
        """Return a handle for ``path`` resolved against this handle's path."""
        return self.with_segments(normalize_segments(path, self._segments))

    def to(self, *parts: str) -> Self:
        """Return a handle for ``parts`` joined below this path.

        The parts are joined as text and re-normalized, so ``..`` walks up.
        """
        return type(self)(
            self.full_path + "/" + "/".join(parts),
            self._backend,
            settings=self._settings,
        )

    def contains(self, other: BaseHandle) -> bool:
        """True when ``other`` lies strictly below this path."""
        return path_contains(self._segments, other.segments)

    def delete_on_exit(
        self, registry: CleanupRegistry, *, recursive: bool = False
    ) -> None:
        """Queue this path for deletion when ``registry`` is flushed."""
        registry.register(self.full_path, recursive=recursive)

    # --- Dunder protocol ---

    def __fspath__(self) -> str:
        return self.full_path

    @override
    def __str__(self) -> str:
        return self.full_path

    @override
    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.full_path!r})"

    @override
    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        peer = cast(Self, other)
        return self._segments == peer._segments and self._backend is peer._backend

    @override
    def __hash__(self) -> int:
        return hash((type(self), self._segments, id(self._backend)))


class FileHandle(BaseHandle):
    """Blocking file handle.

    Every operation returns its result directly. Failures are reported with
    sentinels: ``None`` for operations returning a value or the handle,
    ``False`` for ``exists()`` and the permission queries.
    """

    __slots__ = ()

    exists = _Blocking(_ops.exists)
    stat = _Blocking(_ops.stat)
    lstat = _Blocking(_ops.lstat)
    is_file = _Blocking(_ops.is_file)
    is_directory = _Blocking(_ops.is_directory)
    is_symbolic_link = _Blocking(_ops.is_symbolic_link)
    created_at = _Blocking(_ops.created_at)
    modified_at = _Blocking(_ops.modified_at)
    accessed_at = _Blocking(_ops.accessed_at)
    size = _Blocking(_ops.size)
    size_kb = _Blocking(_ops.size_kb)
    size_mb = _Blocking(_ops.size_mb)
    size_gb = _Blocking(_ops.size_gb)
    is_empty = _Blocking(_ops.is_empty)

    can_read = _Blocking(_ops.can_read)
    can_write = _Blocking(_ops.can_write)
    can_execute = _Blocking(_ops.can_execute)
    set_readable = _Blocking(_ops.set_readable)
    set_writable = _Blocking(_ops.set_writable)
    set_executable = _Blocking(_ops.set_executable)
    set_times = _Blocking(_ops.set_times)
    set_last_modified = _Blocking(_ops.set_last_modified)

    list_filenames = _Blocking(_ops.list_filenames)
    list_files = _Blocking(_ops.list_files)
    mkdir = _Blocking(_ops.mkdir)
    mkdirs = _Blocking(_ops.mkdirs)
    create_file = _Blocking(_ops.create_file)
    delete = _Blocking(_ops.delete)
    clear = _Blocking(_ops.clear)
    copy_to = _Blocking(_ops.copy_to)
    rename_to = _Blocking(_ops.rename_to)

    read = _Blocking(_ops.read)
    read_lines = _Blocking(_ops.read_lines)
    read_json = _Blocking(_ops.read_json)
    readlink = _Blocking(_ops.readlink)
    write = _Blocking(_ops.write)
    append = _Blocking(_ops.append)
    write_json = _Blocking(_ops.write_json)

    open_read = _Blocking(_ops.open_read)
    open_write = _Blocking(_ops.open_write)
    open_append = _Blocking(_ops.open_append)
    create_temp_file = _Blocking(_ops.create_temp_file)

    def walk(self) -> Iterator[FileHandle]:
        """Lazily yield this handle and every descendant, pre-order."""
        traversal: Traversal = _ops.walk(self)
        return iterate(traversal)

    def download(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: bytes | str | None = None,
        progress: _download.ProgressCallback | None = None,
        client: httpx.Client | None = None,
    ) -> Exception | None:
        """Stream ``url`` into this file; see :func:`handlefs._download.download`."""
        return _download.download(
            self,
            url,
            method=method,
            headers=headers,
            body=body,
            progress=progress,
            client=client,
        )

    def to_async(self, backend: object | None = None) -> AsyncFileHandle:
        """Return a suspending handle for the same path.

        The current backend is wrapped in a :class:`ThreadedAsyncBackend`
        unless ``backend`` is given.
        """
        return AsyncFileHandle(
            self.segments,
            backend if backend is not None else ThreadedAsyncBackend(self.backend),
            settings=self.settings,
        )


class AsyncFileHandle(BaseHandle):
    """Suspending file handle.

    Operations are coroutines with the same results and sentinels as
    :class:`FileHandle`. Backends may expose coroutine members or plain
    blocking members; awaitable results are awaited, others used as-is.
    """

    __slots__ = ()

    @classmethod
    @override
    def _default_backend(cls) -> object:
        return _THREADED_HOST_BACKEND

    exists = _Suspending(_ops.exists)
    stat = _Suspending(_ops.stat)
    lstat = _Suspending(_ops.lstat)
    is_file = _Suspending(_ops.is_file)
    is_directory = _Suspending(_ops.is_directory)
    is_symbolic_link = _Suspending(_ops.is_symbolic_link)
    created_at = _Suspending(_ops.created_at)
    modified_at = _Suspending(_ops.modified_at)
    accessed_at = _Suspending(_ops.accessed_at)
    size = _Suspending(_ops.size)
    size_kb = _Suspending(_ops.size_kb)
    size_mb = _Suspending(_ops.size_mb)
    size_gb = _Suspending(_ops.size_gb)
    is_empty = _Suspending(_ops.is_empty)

    can_read = _Suspending(_ops.can_read)
    can_write = _Suspending(_ops.can_write)
    can_execute = _Suspending(_ops.can_execute)
    set_readable = _Suspending(_ops.set_readable)
    set_writable = _Suspending(_ops.set_writable)
    set_executable = _Suspending(_ops.set_executable)
    set_times = _Suspending(_ops.set_times)
    set_last_modified = _Suspending(_ops.set_last_modified)

    list_filenames = _Suspending(_ops.list_filenames)
    list_files = _Suspending(_ops.list_files)
    mkdir = _Suspending(_ops.mkdir)
    mkdirs = _Suspending(_ops.mkdirs)
    create_file = _Suspending(_ops.create_file)
    delete = _Suspending(_ops.delete)
    clear = _Suspending(_ops.clear)
    copy_to = _Suspending(_ops.copy_to)
    rename_to = _Suspending(_ops.rename_to)

    read = _Suspending(_ops.read)
    read_lines = _Suspending(_ops.read_lines)
    read_json = _Suspending(_ops.read_json)
    readlink = _Suspending(_ops.readlink)
    write = _Suspending(_ops.write)
    append = _Suspending(_ops.append)
    write_json = _Suspending(_ops.write_json)

    open_read = _Suspending(_ops.open_read)
    open_write = _Suspending(_ops.open_write)
    open_append = _Suspending(_ops.open_append)
    create_temp_file = _Suspending(_ops.create_temp_file)

    def walk(self) -> AsyncIterator[AsyncFileHandle]:
        """Lazily yield this handle and every descendant, pre-order."""
        traversal: Traversal = _ops.walk(self)
        return iterate_async(traversal)

    async def download(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: bytes | str | None = None,
        progress: _download.ProgressCallback | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> Exception | None:
        """Stream ``url`` into this file; see :func:`handlefs._download.download_async`."""
        return await _download.download_async(
            self,
            url,
            method=method,
            headers=headers,
            body=body,
            progress=progress,
            client=client,
        )

    def to_sync(self, backend: object | None = None) -> FileHandle:
        """Return a blocking handle for the same path.

        A :class:`ThreadedAsyncBackend` is unwrapped to its blocking backend.
        Any other suspending backend requires an explicit ``backend``.

        Raises:
            BackendMismatchError: No blocking backend can be derived.
        """
        if backend is None:
            if not isinstance(self.backend, ThreadedAsyncBackend):
                msg = (
                    f"Cannot derive a blocking backend from {type(self.backend).__name__}; "
                    "pass one explicitly."
                )
                raise BackendMismatchError(msg)
            backend = self.backend.inner
        return FileHandle(self.segments, backend, settings=self.settings)


__all__ = [
    "AsyncFileHandle",
    "BaseHandle",
    "FileHandle",
    "PathInput",
]

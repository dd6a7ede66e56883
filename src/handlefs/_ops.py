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

"""Handle operations written once for both calling conventions.

Each function is a generator over :class:`~handlefs._engine.Call` requests
(see :mod:`handlefs._engine`). Operations compose with ``yield from``, so a
recursive delete is literally the delete of every child followed by the
delete of the directory. No operation raises for environmental failures;
failures surface as ``None`` (or ``False`` for permission queries).

Existence and type checks always issue a fresh backend query: nothing is
cached between steps, so a recursive operation observes the tree as it is
at each step.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any, BinaryIO

from ._engine import Call, Emit, Op, Traversal
from ._types import (
    F_OK,
    GIB,
    KIB,
    MIB,
    MODE_DEFAULT,
    MODE_EXECUTABLE,
    MODE_NO_ACCESS,
    MODE_READ_ONLY,
    R_OK,
    W_OK,
    X_OK,
    FileStat,
)
from .logging import get_logger

if TYPE_CHECKING:
    from ._handle import BaseHandle

_logger = get_logger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")


def _call(
    handle: BaseHandle,
    capability: str,
    *args: Any,  # noqa: ANN401
    required: bool = False,
    **kwargs: Any,  # noqa: ANN401
) -> Call:
    return Call(
        backend=handle.backend,
        capability=capability,
        args=(handle.full_path, *args),
        kwargs=kwargs,
        required=required,
    )


def _result[H: BaseHandle](handle: H, ok: bool) -> H | None:
    return handle if ok else None


def _partial_failure(operation: str, handle: BaseHandle, failed: list[str]) -> None:
    _logger.warning(
        "Bulk operation left entries behind.",
        event=f"handlefs.{operation}.partial_failure",
        context={"path": handle.full_path, "failed": failed},
    )


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


def exists(handle: BaseHandle) -> Op[bool]:
    """Return True if the path exists.

    Falls back to an ``access(path, F_OK)`` probe when the backend has no
    ``exists`` member or it fails.
    """
    outcome = yield _call(handle, "exists")
    if outcome.ok:
        return bool(outcome.value)
    probe = yield _call(handle, "access", F_OK)
    return probe.ok and bool(probe.value)


def stat(handle: BaseHandle) -> Op[FileStat | None]:
    """Return backend metadata (links followed), or None."""
    outcome = yield _call(handle, "stat")
    return outcome.value if outcome.ok else None


def lstat(handle: BaseHandle) -> Op[FileStat | None]:
    """Return backend metadata for the entry itself, or None."""
    outcome = yield _call(handle, "lstat")
    return outcome.value if outcome.ok else None


def is_file(handle: BaseHandle) -> Op[bool | None]:
    """Return whether the path is a regular file, or None if unknown."""
    info = yield from stat(handle)
    return None if info is None else info.is_file


def is_directory(handle: BaseHandle) -> Op[bool | None]:
    """Return whether the path is a directory, or None if unknown."""
    info = yield from stat(handle)
    return None if info is None else info.is_directory


def is_symbolic_link(handle: BaseHandle) -> Op[bool | None]:
    """Return whether the path itself is a symbolic link, or None if unknown."""
    info = yield from lstat(handle)
    return None if info is None else info.is_symlink



def _is_tree(handle: BaseHandle) -> Op[bool]:
    """Return True when the entry itself is a directory (links are leaves).

    Backends without ``lstat`` cannot report links, so ``stat`` stands in.
    """
    outcome = yield _call(handle, "lstat")
    if outcome.missing:
        directory = yield from is_directory(handle)
        return bool(directory)
    return outcome.ok and outcome.value is not None and outcome.value.is_directory


def created_at(handle: BaseHandle) -> Op[datetime | None]:
    info = yield from stat(handle)
    return None if info is None else info.created_at


def modified_at(handle: BaseHandle) -> Op[datetime | None]:
    info = yield from stat(handle)
    return None if info is None else info.modified_at


def accessed_at(handle: BaseHandle) -> Op[datetime | None]:
    info = yield from stat(handle)
    return None if info is None else info.accessed_at


def size(handle: BaseHandle) -> Op[int | None]:
    """Return the size in bytes as reported by the backend."""
    info = yield from stat(handle)
    return None if info is None else info.size


def _scaled(handle: BaseHandle, unit: int) -> Op[float | None]:
    value = yield from size(handle)
    return None if value is None else value / unit


def size_kb(handle: BaseHandle) -> Op[float | None]:
    return (yield from _scaled(handle, KIB))


def size_mb(handle: BaseHandle) -> Op[float | None]:
    return (yield from _scaled(handle, MIB))


def size_gb(handle: BaseHandle) -> Op[float | None]:
    return (yield from _scaled(handle, GIB))


def is_empty(handle: BaseHandle) -> Op[bool | None]:
    """Return True for an empty directory or a zero-byte file.

    Returns None when the path's type cannot be determined.
    """
    directory = yield from is_directory(handle)
    if directory is None:
        return None
    if directory:
        names = yield from list_filenames(handle)
        return not names
    value = yield from size(handle)
    return value == 0


# ---------------------------------------------------------------------------
# Permissions and timestamps
# ---------------------------------------------------------------------------


def _access(handle: BaseHandle, mode: int) -> Op[bool]:
    outcome = yield _call(handle, "access", mode)
    return outcome.ok and bool(outcome.value)


def can_read(handle: BaseHandle) -> Op[bool]:
    return (yield from _access(handle, R_OK))


def can_write(handle: BaseHandle) -> Op[bool]:
    return (yield from _access(handle, W_OK))


def can_execute(handle: BaseHandle) -> Op[bool]:
    return (yield from _access(handle, X_OK))


def _chmod[H: BaseHandle](handle: H, mode: int) -> Op[H | None]:
    outcome = yield _call(handle, "chmod", mode)
    return _result(handle, outcome.ok)


def set_readable[H: BaseHandle](handle: H, value: bool = True) -> Op[H | None]:
    """Grant (``0o644``) or revoke (``0o000``) read access."""
    return (yield from _chmod(handle, MODE_DEFAULT if value else MODE_NO_ACCESS))


def set_writable[H: BaseHandle](handle: H, value: bool = True) -> Op[H | None]:
    """Grant (``0o644``) or revoke (``0o444``) write access."""
    return (yield from _chmod(handle, MODE_DEFAULT if value else MODE_READ_ONLY))


def set_executable[H: BaseHandle](handle: H, value: bool = True) -> Op[H | None]:
    """Grant (``0o755``) or revoke (``0o644``) execute access."""
    return (yield from _chmod(handle, MODE_EXECUTABLE if value else MODE_DEFAULT))


def set_times[H: BaseHandle](
    handle: H, accessed: datetime, modified: datetime
) -> Op[H | None]:
    outcome = yield _call(handle, "utime", accessed, modified)
    return _result(handle, outcome.ok)


def set_last_modified[H: BaseHandle](handle: H, when: datetime) -> Op[H | None]:
    """Set both the access and modification time to ``when``."""
    return (yield from set_times(handle, when, when))


# ---------------------------------------------------------------------------
# Directories
# ---------------------------------------------------------------------------


def list_filenames(handle: BaseHandle) -> Op[list[str] | None]:
    """Return the directory's entry names in listing order, or None."""
    outcome = yield _call(handle, "listdir")
    if not outcome.ok or outcome.value is None:
        return None
    return list(outcome.value)


def list_files[H: BaseHandle](handle: H) -> Op[list[H] | None]:
    """Return child handles, or None when the path is not a listable directory."""
    directory = yield from is_directory(handle)
    if not directory:
        return None
    names = yield from list_filenames(handle)
    if names is None:
        return None
    return [handle.to(name) for name in names]


def mkdir[H: BaseHandle](handle: H, *, parents: bool = False) -> Op[H | None]:
    """Create the directory; ``parents`` also creates missing ancestors."""
    outcome = yield _call(handle, "mkdir", parents=parents)
    return _result(handle, outcome.ok)


def mkdirs[H: BaseHandle](handle: H) -> Op[H | None]:
    return (yield from mkdir(handle, parents=True))


def walk(handle: BaseHandle) -> Traversal:
    """Yield the handle, then every descendant depth-first in listing order.

    Directories are emitted before their contents.
    """
    yield Emit(handle)
    children = yield from list_files(handle)
    for child in children or ():
        yield from walk(child)


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------


def _delete_children(
    handle: BaseHandle, children: Sequence[BaseHandle], *, force: bool
) -> Op[list[str]]:
    failed: list[str] = []
    for child in children:
        removed = yield from delete(child, recursive=True, force=force)
        if removed is None:
            failed.append(child.full_path)
    if failed:
        _partial_failure("delete", handle, failed)
    return failed


def delete[H: BaseHandle](
    handle: H,
    *,
    recursive: bool = False,
    force: bool | None = None,
) -> Op[H | None]:
    """Delete the entry.

    With ``recursive`` the backend's native ``rmtree`` is preferred. Without
    it every child is deleted first; all children are attempted even when
    some fail, and any failure fails the whole operation before the
    directory itself is touched. Symbolic links are unlinked, never
    followed. ``force`` defaults to ``recursive``.
    """
    force = recursive if force is None else force
    if recursive:
        native = yield _call(handle, "rmtree", force=force)
        if not native.missing:
            return _result(handle, native.ok)
        tree = yield from _is_tree(handle)
        if tree:
            names = yield from list_filenames(handle)
            children = [handle.to(name) for name in names or ()]
            failed = yield from _delete_children(handle, children, force=force)
            if failed:
                return None

    directory = yield from _is_tree(handle)
    outcome = yield _call(handle, "rmdir" if directory else "unlink")
    return _result(handle, outcome.ok)


def clear[H: BaseHandle](handle: H, *, recursive: bool = False) -> Op[H | None]:
    """Empty the entry.

    With ``recursive`` every child of the directory is deleted (all are
    attempted). Otherwise the file is truncated to zero bytes.
    """
    if recursive:
        children = yield from list_files(handle)
        if children is None:
            return None
        failed = yield from _delete_children(handle, children, force=True)
        return _result(handle, not failed)
    return (yield from write(handle, b""))


def copy_to[H: BaseHandle](
    handle: H,
    destination: BaseHandle,
    *,
    overwrite: bool = False,
    recursive: bool = False,
) -> Op[H | None]:
    """Copy the entry to ``destination``.

    Copying onto the same path succeeds without touching the backend and a
    destination inside the source tree fails. An existing destination is
    deleted first unless ``overwrite`` is set, and the copy aborts if that
    delete fails. Files are read fully, then written fully. Directories
    create the destination and copy every child by name; all children are
    attempted and any failure fails the copy.
    """
    if handle.full_path == destination.full_path:
        return handle
    if handle.contains(destination):
        return None
    source_exists = yield from exists(handle)
    if not source_exists:
        return None
    destination_exists = yield from exists(destination)
    if destination_exists and not overwrite:
        removed = yield from delete(destination, recursive=recursive)
        if removed is None:
            return None

    source_is_file = yield from is_file(handle)
    if source_is_file:
        data = yield from read(handle)
        if data is None:
            return None
        written = yield from write(destination, data)
        return _result(handle, written is not None)

    created = yield from mkdir(destination, parents=recursive)
    if created is None:
        return None
    children = yield from list_files(handle)
    if children is None:
        return None
    failed: list[str] = []
    for child in children:
        copied = yield from copy_to(
            child,
            destination.to(child.name),
            overwrite=overwrite,
            recursive=recursive,
        )
        if copied is None:
            failed.append(child.full_path)
    if failed:
        _partial_failure("copy", handle, failed)
    return _result(handle, not failed)


def rename_to[H: BaseHandle](
    handle: H,
    destination: BaseHandle,
    *,
    overwrite: bool = False,
    recursive: bool = False,
) -> Op[H | None]:
    """Move the entry to ``destination``.

    An existing destination is deleted first unless ``overwrite`` is set,
    and the move aborts if that delete fails. With ``recursive`` the
    destination's parent directories are created before renaming.
    """
    if handle.full_path == destination.full_path:
        return handle
    destination_exists = yield from exists(destination)
    if destination_exists and not overwrite:
        removed = yield from delete(destination, recursive=recursive)
        if removed is None:
            return None
    if recursive and (parent := destination.parent) is not None:
        _ = yield from mkdirs(parent)
    outcome = yield _call(handle, "rename", destination.full_path)
    return _result(handle, outcome.ok)


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


def read(handle: BaseHandle, encoding: str | None = None) -> Op[Any]:
    """Return the content as bytes, or as text when ``encoding`` is given."""
    if encoding is None:
        outcome = yield _call(handle, "read_bytes")
    else:
        outcome = yield _call(handle, "read_text", encoding=encoding)
    return outcome.value if outcome.ok else None


def read_lines(handle: BaseHandle, encoding: str = "utf-8") -> Op[list[str] | None]:
    """Return the text split on ``\\n`` or ``\\r\\n``."""
    text = yield from read(handle, encoding)
    if not isinstance(text, str):
        return None
    return _LINE_BREAK.split(text)


def read_json(handle: BaseHandle) -> Op[Any]:
    """Return the parsed JSON document, or None if unreadable or malformed."""
    text = yield from read(handle, "utf-8")
    if not isinstance(text, str):
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as error:
        _logger.debug(
            "Ignoring malformed JSON.",
            event="handlefs.read_json.malformed",
            context={"path": handle.full_path, "error": str(error)},
        )
        return None


def readlink[H: BaseHandle](handle: H) -> Op[H | None]:
    """Return a handle to the link target.

    Relative targets resolve against the directory containing the link.
    """
    link = yield from is_symbolic_link(handle)
    if not link:
        return None
    outcome = yield _call(handle, "readlink")
    if not outcome.ok or not outcome.value:
        return None
    directory = handle.parent if handle.parent is not None else handle
    return directory.resolve(str(outcome.value))


def write[H: BaseHandle](
    handle: H, data: str | bytes, encoding: str = "utf-8"
) -> Op[H | None]:
    """Replace the content with ``data``, creating the file if needed."""
    if isinstance(data, str):
        outcome = yield _call(handle, "write_text", data, encoding=encoding)
    else:
        outcome = yield _call(handle, "write_bytes", bytes(data))
    return _result(handle, outcome.ok)


def append[H: BaseHandle](
    handle: H, data: str | bytes, encoding: str = "utf-8"
) -> Op[H | None]:
    """Append ``data``, creating the file if needed."""
    if isinstance(data, str):
        outcome = yield _call(
            handle, "write_text", data, encoding=encoding, append=True
        )
    else:
        outcome = yield _call(handle, "write_bytes", bytes(data), append=True)
    return _result(handle, outcome.ok)


def write_json[H: BaseHandle](
    handle: H, data: object, indent: int | None = 2
) -> Op[H | None]:
    """Serialize ``data`` as JSON and write it. Unserializable data yields None."""
    try:
        text = json.dumps(data, indent=indent)
    except (TypeError, ValueError) as error:
        _logger.debug(
            "Refusing to write unserializable JSON.",
            event="handlefs.write_json.unserializable",
            context={"path": handle.full_path, "error": str(error)},
        )
        return None
    return (yield from write(handle, text))


def create_file[H: BaseHandle](
    handle: H, value: str | bytes = "", encoding: str = "utf-8"
) -> Op[H | None]:
    """Create the file with ``value`` unless it exists.

    Returns the handle when the file was created or already is a file, and
    None when the path holds something else or creation failed.
    """
    present = yield from exists(handle)
    if not present:
        return (yield from write(handle, value, encoding))
    regular = yield from is_file(handle)
    return _result(handle, bool(regular))


# ---------------------------------------------------------------------------
# Streams and temporary files
# ---------------------------------------------------------------------------


def open_read(handle: BaseHandle) -> Op[BinaryIO | None]:
    """Open a binary read stream.

    Raises:
        MissingCapabilityError: The backend has no ``open_read`` member.
    """
    outcome = yield _call(handle, "open_read", required=True)
    return outcome.value if outcome.ok else None


def open_write(handle: BaseHandle, *, append: bool = False) -> Op[BinaryIO | None]:
    """Open a binary write stream that truncates (or appends to) the file.

    Raises:
        MissingCapabilityError: The backend has no ``open_write`` member.
    """
    outcome = yield _call(handle, "open_write", required=True, append=append)
    return outcome.value if outcome.ok else None


def open_append(handle: BaseHandle) -> Op[BinaryIO | None]:
    return (yield from open_write(handle, append=True))


def create_temp_file[H: BaseHandle](
    handle: H, prefix: str = "handlefs-temp", suffix: str = ".tmp"
) -> Op[H | None]:
    """Return a handle for a new file name inside a fresh temp directory.

    The directory is created below this handle; the file itself is not.

    Raises:
        MissingCapabilityError: The backend has no ``mkdtemp`` member.
    """
    outcome = yield Call(
        backend=handle.backend,
        capability="mkdtemp",
        args=(f"{prefix}-",),
        kwargs={"directory": handle.full_path},
        required=True,
    )
    if not outcome.ok or not outcome.value:
        return None
    return handle.resolve(str(outcome.value)).to(f"{prefix}{suffix}")

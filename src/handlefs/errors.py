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

"""Base exception hierarchy for :mod:`handlefs`.

Most handle operations never raise: environmental failures (missing files,
denied access, a backend that throws) are reported through sentinel return
values. The exceptions below cover the remaining cases, which all indicate a
misconfigured backend or an error value handed back to the caller.
"""

from __future__ import annotations


class HandleFsError(Exception):
    """Base class for all handlefs exceptions.

    Allows callers to catch every library-specific error with a single
    handler while standard Python exceptions propagate normally.

    Example:
        Guarding stream creation against a limited backend::

            try:
                stream = handle.open_write()
            except HandleFsError as e:
                logger.error("Cannot stream to %s: %s", handle, e)
    """


class MissingCapabilityError(HandleFsError, RuntimeError):
    """Raised when a backend lacks a member that an operation requires.

    Only stream creation (``open_read``, ``open_write``, ``open_append``) and
    temporary file creation raise this error. Every other operation reports a
    missing capability through its sentinel result instead.

    Attributes:
        capability: Name of the backend member that was looked up.
    """

    def __init__(self, capability: str) -> None:
        super().__init__(f"Backend does not support '{capability}'.")
        self.capability = capability


class BackendMismatchError(HandleFsError, TypeError):
    """Raised when a blocking handle receives an awaitable from its backend.

    Blocking handles require a blocking backend. Pair suspending backends with
    :class:`~handlefs.AsyncFileHandle`, or wrap a blocking backend with
    :class:`~handlefs.ThreadedAsyncBackend` for the opposite direction.
    """


class DownloadError(HandleFsError, RuntimeError):
    """Error value describing a failed download.

    Returned (never raised) by ``download()`` when the server responds with a
    non-success status or the transfer fails.

    Attributes:
        status_code: HTTP status of the response, when one was received.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "BackendMismatchError",
    "DownloadError",
    "HandleFsError",
    "MissingCapabilityError",
]

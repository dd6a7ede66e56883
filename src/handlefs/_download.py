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

"""Stream an HTTP response body into a handle's write channel.

Both helpers report failure by returning the error instead of raising, so a
download behaves like every other handle operation. The only exception that
escapes is :class:`~handlefs.errors.MissingCapabilityError`, raised when the
backend cannot open write streams at all.

Example usage::

    def report(received: int, total: int) -> None:
        print(f"{received}/{total or '?'} bytes")

    error = FileHandle("/tmp/data.csv").download(
        "https://example.com/data.csv", progress=report
    )
    if error is not None:
        raise error
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import httpx

from .errors import DownloadError
from .logging import get_logger

if TYPE_CHECKING:
    from ._handle import AsyncFileHandle, FileHandle

_logger = get_logger(__name__)

type ProgressCallback = Callable[[int, int], object]


def _content_length(response: httpx.Response) -> int:
    try:
        return int(response.headers.get("content-length", 0))
    except ValueError:
        return 0


def _status_error(url: str, response: httpx.Response) -> DownloadError:
    return DownloadError(
        f"Download of {url} failed with HTTP {response.status_code}.",
        status_code=response.status_code,
    )


def _failed(url: str, path: str, error: Exception) -> Exception:
    _logger.debug(
        "Download failed.",
        event="handlefs.download.failed",
        context={"url": url, "path": path, "error": repr(error)},
    )
    return error


def _completed(url: str, path: str, received: int) -> None:
    _logger.debug(
        "Download completed.",
        event="handlefs.download.completed",
        context={"url": url, "path": path, "bytes": received},
    )


def download(
    handle: FileHandle,
    url: str,
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    body: bytes | str | None = None,
    progress: ProgressCallback | None = None,
    client: httpx.Client | None = None,
) -> Exception | None:
    """Download ``url`` into ``handle`` with a blocking client.

    ``progress(received, total)`` is called once with ``received=0`` before
    the first chunk and again after every chunk; ``total`` is the
    ``Content-Length`` header, or 0 when the server does not send one.

    Args:
        handle: Destination; its content is replaced.
        url: Absolute URL to request.
        method: HTTP method.
        headers: Extra request headers.
        body: Request body.
        progress: Optional progress callback.
        client: Client to send the request with. A temporary client that
            follows redirects is used (and closed) when omitted.

    Returns:
        None on success, otherwise the error: a :class:`DownloadError` for a
        non-2xx status, or the exception raised by the client or the stream.
    """
    stream = handle.open_write()
    if stream is None:
        return _failed(
            url, handle.full_path, DownloadError(f"Cannot write {handle.full_path}.")
        )
    http = client if client is not None else httpx.Client(follow_redirects=True)
    try:
        with http.stream(method, url, headers=headers, content=body) as response:
            if not response.is_success:
                return _failed(url, handle.full_path, _status_error(url, response))
            total = _content_length(response)
            received = 0
            if progress is not None:
                _ = progress(received, total)
            for chunk in response.iter_bytes():
                _ = stream.write(chunk)
                received += len(chunk)
                if progress is not None:
                    _ = progress(received, total)
    except Exception as error:
        return _failed(url, handle.full_path, error)
    finally:
        stream.close()
        if client is None:
            http.close()
    _completed(url, handle.full_path, received)
    return None


async def _maybe_await(result: Any) -> Any:  # noqa: ANN401
    if inspect.isawaitable(result):
        return await result
    return result


async def download_async(
    handle: AsyncFileHandle,
    url: str,
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    body: bytes | str | None = None,
    progress: ProgressCallback | None = None,
    client: httpx.AsyncClient | None = None,
) -> Exception | None:
    """Suspending counterpart of :func:`download`.

    Streams whose ``write``/``close`` return awaitables are awaited.
    """
    stream = await handle.open_write()
    if stream is None:
        return _failed(
            url, handle.full_path, DownloadError(f"Cannot write {handle.full_path}.")
        )
    http = client if client is not None else httpx.AsyncClient(follow_redirects=True)
    try:
        async with http.stream(method, url, headers=headers, content=body) as response:
            if not response.is_success:
                return _failed(url, handle.full_path, _status_error(url, response))
            total = _content_length(response)
            received = 0
            if progress is not None:
                _ = progress(received, total)
            async for chunk in response.aiter_bytes():
                _ = await _maybe_await(stream.write(chunk))
                received += len(chunk)
                if progress is not None:
                    _ = progress(received, total)
    except Exception as error:
        return _failed(url, handle.full_path, error)
    finally:
        _ = await _maybe_await(stream.close())
        if client is None:
            await http.aclose()
    _completed(url, handle.full_path, received)
    return None


__all__ = ["ProgressCallback", "download", "download_async"]

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

"""Path normalization over segment tuples.

A canonical path is a tuple of non-empty segments that never contains ``.``
or ``..``. The empty tuple is the filesystem root; on volume-letter systems
the drive (``"C:"``) is the first segment.

Functions:
    normalize_segments: Resolve a raw string against a base segment tuple
    render_path: Join segments back into a path string
    render_uri: Render segments as a ``file://`` URI
    path_contains: Strict prefix test between two segment tuples
    is_drive: Whether a segment is a drive prefix
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Final

SEPARATORS: Final[str] = "/\\"

_DRIVE_ABSOLUTE = re.compile(r"^[A-Za-z]:[\\/]")
_DRIVE_SEGMENT = re.compile(r"^[A-Za-z]:$")
_SPLIT = re.compile(r"[\\/]+")


def normalize_segments(path: str, base: Sequence[str] = ()) -> tuple[str, ...]:
    """Resolve ``path`` against ``base`` into a canonical segment tuple.

    Rooted paths (leading ``/`` or ``\\``) discard the base. Drive-absolute
    paths (``C:\\...``) discard the base and keep the drive as the first
    segment. Everything else is appended to a copy of the base.

    ``..`` pops the previous segment and is ignored at the root; ``.`` and
    empty tokens are skipped. Segment contents are not validated.

    Examples:
        >>> normalize_segments("/../../x", ("a",))
        ('x',)
        >>> normalize_segments("C:\\\\a\\\\b", ("x", "y"))
        ('C:', 'a', 'b')
        >>> normalize_segments("c/./d/", ("a", "b"))
        ('a', 'b', 'c', 'd')
    """
    result: list[str]
    if path[:1] and path[0] in SEPARATORS:
        result = []
    elif _DRIVE_ABSOLUTE.match(path):
        result = [path[:2]]
        path = path[3:]
    else:
        result = list(base)

    for token in _SPLIT.split(path):
        if token == "..":
            if result:
                _ = result.pop()
        elif token not in {"", "."}:
            result.append(token)
    return tuple(result)


def is_drive(segment: str) -> bool:
    """Return True when ``segment`` is a volume prefix such as ``C:``."""
    return _DRIVE_SEGMENT.match(segment) is not None


def render_path(segments: Sequence[str], separator: str = "/") -> str:
    """Join ``segments`` into a path string.

    Rooted paths get a leading separator and the root renders as the
    separator alone. Only the ``\\`` separator renders a leading ``C:``
    segment as a drive; with ``/`` it is an ordinary directory name.

    Examples:
        >>> render_path(())
        '/'
        >>> render_path(("usr", "lib"))
        '/usr/lib'
        >>> render_path(("C:", "Users"), "\\\\")
        'C:\\\\Users'
        >>> render_path(("C:", "Users"))
        '/C:/Users'
    """
    if not segments:
        return separator
    if separator == "\\" and is_drive(segments[0]):
        if len(segments) == 1:
            return segments[0] + separator
        return separator.join(segments)
    return separator + separator.join(segments)


def render_uri(segments: Sequence[str]) -> str:
    """Render ``segments`` as a ``file://`` URI with forward slashes."""
    rendered = "/".join(segments)
    if len(segments) == 1 and is_drive(segments[0]):
        rendered += "/"
    return "file:///" + rendered


def path_contains(outer: Sequence[str], inner: Sequence[str]) -> bool:
    """Return True when ``inner`` lies strictly below ``outer``.

    Equal paths do not contain each other.
    """
    if len(inner) <= len(outer):
        return False
    return all(a == b for a, b in zip(outer, inner, strict=False))


__all__ = [
    "SEPARATORS",
    "is_drive",
    "normalize_segments",
    "path_contains",
    "render_path",
    "render_uri",
]

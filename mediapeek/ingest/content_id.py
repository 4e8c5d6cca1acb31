from __future__ import annotations

import os
from hashlib import sha256
from typing import Union

__all__ = ["content_identifier"]


def content_identifier(path: Union[str, os.PathLike]) -> str:
    """Return the cache key for ``path``: the hex SHA256 of its UTF-8 encoding.

    The key depends on the path string only, never on file contents, so it is
    stable across sessions and cheap enough to compute on every submission.

    Args:
        path: The media path as stored on the playlist entry.

    Returns:
        The 64 character hexadecimal digest.
    """
    return sha256(os.fspath(path).encode("utf-8")).hexdigest()

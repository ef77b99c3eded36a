"""Local to remote path helpers."""

import os
import posixpath

ALLOWED_EXTENSIONS = frozenset([
    "css",
    "js",
    "json",
    "html",
    "txt",
    "md",
    "jpg",
    "jpeg",
    "png",
    "gif",
    "map",
    "svg",
    "ttf",
    "woff",
    "woff2",
    "zip",
])


def convert_to_unix_path(path: str) -> str:
    """Normalize separators to forward slashes."""
    return path.replace("\\", "/")


def get_ext(path: str) -> str:
    """Lower-cased extension of ``path`` without the leading dot."""
    _, ext = os.path.splitext(path)
    return ext[1:].lower()


def is_allowed_extension(path: str) -> bool:
    """Whether the remote store accepts files with this extension."""
    return get_ext(path) in ALLOWED_EXTENSIONS


def get_remote_path(src: str, dest: str, local_path: str) -> str:
    """Map ``local_path`` under ``src`` onto the remote root ``dest``.

    The ``src`` prefix is stripped and the remainder joined onto ``dest``.
    Remote paths are always slash-delimited.

    Raises:
        ValueError: If ``local_path`` does not live under ``src``
    """
    if os.path.isabs(src) != os.path.isabs(local_path):
        src, local_path = os.path.abspath(src), os.path.abspath(local_path)

    unix_src = convert_to_unix_path(src).rstrip("/")
    unix_local = convert_to_unix_path(local_path)

    if unix_local != unix_src and not unix_local.startswith(unix_src + "/"):
        raise ValueError(f"{local_path} is not under {src}")

    relative_path = unix_local[len(unix_src):].lstrip("/")
    remote = posixpath.join(convert_to_unix_path(dest), relative_path)
    return posixpath.normpath(remote) if remote else remote

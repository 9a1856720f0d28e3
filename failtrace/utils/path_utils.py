"""
Path Utils
==========
Path normalisation and containment helpers used by the source classifier.

Responsibilities:
    - Normalise path separators to forward slashes
    - Decide whether a path lives under a directory root
    - Recognise installed-package / stdlib locations ("vendor" code)
"""
import os
import sysconfig

# ---------------------------------------------------------------------------
# Vendor Path Rules
# ---------------------------------------------------------------------------
_VENDOR_SEGMENTS: list[str] = [
    "site-packages",
    "dist-packages",
    "node_modules",
]

_STDLIB_DIRS: list[str] = [
    p.replace("\\", "/").rstrip("/")
    for p in {sysconfig.get_paths().get("stdlib", ""), sysconfig.get_paths().get("platstdlib", "")}
    if p
]


def normalize_path(raw_path: str) -> str:
    """
    Convert a path as written in a stack trace into a comparable form.

    Steps:
        1. Strip quotes and whitespace
        2. Strip a file:// scheme prefix
        3. Replace backslashes with forward slashes
        4. Collapse "." / ".." segments

    Pseudo files such as "<string>" are returned unchanged.
    """
    path = raw_path.strip().strip("'\"")
    if path.startswith("<"):
        return path
    if path.startswith("file://"):
        path = path[len("file://"):]
    path = path.replace("\\", "/")
    drive_prefix = ""
    # Keep Windows drive letters intact; posixpath.normpath would not know them
    if len(path) > 1 and path[1] == ":":
        drive_prefix, path = path[:2], path[2:]
    normalized = os.path.normpath(path).replace("\\", "/") if path else path
    return drive_prefix + normalized


def is_under(path: str, root: str) -> bool:
    """Return True if ``path`` is ``root`` itself or lives below it."""
    if not path or not root or path.startswith("<"):
        return False
    p = normalize_path(path)
    r = normalize_path(root).rstrip("/")
    if os.name == "nt":
        p, r = p.lower(), r.lower()
    return p == r or p.startswith(r + "/")


def is_vendor_path(path: str) -> bool:
    """Return True for installed packages, the stdlib and pseudo files."""
    if not path or path.startswith("<"):
        return True
    normalized = normalize_path(path)
    for segment in _VENDOR_SEGMENTS:
        if f"/{segment}/" in f"/{normalized}/":
            return True
    return any(is_under(normalized, stdlib) for stdlib in _STDLIB_DIRS)

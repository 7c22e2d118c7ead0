"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Helpers for '/'-separated cloud paths.
"""

from urllib.parse import quote as _url_quote

SEPARATOR = "/"


def quote(path: str) -> str:
    """Percent-encode a path for use in a URL, keeping separators."""
    return _url_quote(path, safe=SEPARATOR)


def normalize(path: str) -> str:
    """
    Normalize a cloud path: backslashes become '/', duplicate and trailing
    separators are dropped, and the result always starts with '/'.
    """
    parts = [p for p in path.replace("\\", SEPARATOR).split(SEPARATOR) if p and p != "."]
    stack = []
    for part in parts:
        if part == "..":
            if stack:
                stack.pop()
        else:
            stack.append(part)
    return SEPARATOR + SEPARATOR.join(stack)


def combine(base: str, child: str) -> str:
    """Join ``child`` to ``base``; an absolute ``child`` replaces ``base``."""
    child = child.replace("\\", SEPARATOR)
    if child.startswith(SEPARATOR):
        return normalize(child)
    return normalize(f"{base}{SEPARATOR}{child}")


def parent(path: str) -> str:
    path = normalize(path)
    if path == SEPARATOR:
        return SEPARATOR
    return path.rsplit(SEPARATOR, 1)[0] or SEPARATOR


def name(path: str) -> str:
    return normalize(path).rsplit(SEPARATOR, 1)[-1]

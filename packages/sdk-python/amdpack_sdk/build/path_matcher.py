"""
Pattern Matching for Module Ids
===============================

Glob matching over '/'-delimited module ids, as used by combine policies.

Supports:
- Exact matches: "er/main" matches "er/main"
- Single segment wildcards: "er/*" matches "er/View" but not "er/a/b"
- Recursive wildcards: "er/**" matches "er/View" and "er/a/b", not "er"
- Package patterns: "~er" matches "er" and everything below "er/"
"""

import re
from functools import lru_cache
from typing import Pattern

from amdpack_common import ConfigError


def _translate_class(pattern: str, start: int) -> tuple[str, int]:
    """Translate the character class starting at ``pattern[start] == '['``."""
    end = start + 1
    if end < len(pattern) and pattern[end] in "!^":
        end += 1
    if end < len(pattern) and pattern[end] == "]":
        end += 1
    while end < len(pattern) and pattern[end] != "]":
        end += 1
    if end >= len(pattern):
        raise ConfigError(f"Unterminated character class in pattern '{pattern}'")

    body = pattern[start + 1 : end]
    if body[:1] in ("!", "^"):
        body = "^" + body[1:]
    body = body.replace("\\", "\\\\")
    return f"[{body}]", end + 1


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> Pattern[str]:
    """
    Compile a module id glob into a regular expression.

    Args:
        pattern: Glob pattern without a leading ``!``

    Returns:
        Compiled regex anchored at both ends

    Raises:
        ConfigError: If the pattern is empty or malformed
    """
    if not pattern or not pattern.strip():
        raise ConfigError("Module pattern cannot be empty")

    if pattern.startswith("~"):
        name = pattern[1:].rstrip("/")
        if not name:
            raise ConfigError(f"Package pattern '{pattern}' has no package name")
        return re.compile(re.escape(name) + r"(?:/.*)?\Z")

    parts = []
    i = 0
    length = len(pattern)
    while i < length:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < length and pattern[i] == "/":
                    # "**/" may also match nothing
                    parts.append("(?:.*/)?")
                    i += 1
                else:
                    parts.append(".*")
                continue
            parts.append("[^/]*")
        elif ch == "?":
            parts.append("[^/]")
        elif ch == "[":
            translated, i = _translate_class(pattern, i)
            parts.append(translated)
            continue
        elif ch == "/":
            parts.append("/")
        else:
            parts.append(re.escape(ch))
        i += 1

    try:
        return re.compile("".join(parts) + r"\Z")
    except re.error as e:
        raise ConfigError(f"Invalid module pattern '{pattern}': {e}") from e


def satisfy(module_id: str, pattern: str) -> bool:
    """
    Check if a module id matches a glob pattern.

    Examples:
        >>> satisfy("er/View", "er/*")
        True

        >>> satisfy("er/a/b", "er/*")
        False

        >>> satisfy("er", "~er")
        True
    """
    return compile_pattern(pattern).match(module_id) is not None

"""
Glob pattern support for key-pattern invalidation.
"""

import re
from typing import Iterable, List


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """
    Compile a glob pattern into an anchored regular expression.

    ``*`` matches any sequence (including empty) and ``?`` matches exactly
    one character. Every other character is matched literally, so regex
    metacharacters such as ``.``, ``[`` or ``+`` in a key never act as
    operators.
    """
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + r"\Z", re.DOTALL)


def filter_keys(keys: Iterable[str], pattern: str) -> List[str]:
    """Return the keys fully matched by a glob pattern, preserving order."""
    regex = glob_to_regex(pattern)
    return [key for key in keys if regex.match(key)]

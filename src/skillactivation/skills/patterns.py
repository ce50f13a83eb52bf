"""Glob patterns for skill file matching.

Supported syntax:
    *        any run of characters within one path segment
    **       any number of whole segments (including none)
    ?        one character other than /
    [abc]    character class, [!abc] negated
    {a,b}    alternation (not nested)

A pattern without a / matches the file's basename at any depth, so
``*.cds`` behaves like ``**/*.cds``. Alternatives are expanded first and the
rule applies to each one: ``{src/*.py,*.cds}`` matches ``src/app.py`` and
``deep/dir/model.cds``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache

_GLOB_CHARS = set("*?[{")


class GlobSyntaxError(ValueError):
    """Raised for a malformed glob pattern."""


def normalize_path(path: str) -> str:
    """Normalize a workspace path for matching: forward slashes, no leading ./"""
    norm = path.replace("\\", "/")
    while norm.startswith("./"):
        norm = norm[2:]
    return norm


def _class_end(pattern: str, start: int) -> int:
    """Index of the ] closing the class opened at ``start``."""
    i = start + 1
    if i < len(pattern) and pattern[i] == "!":
        i += 1
    # A leading ] is a literal member of the class
    if i < len(pattern) and pattern[i] == "]":
        i += 1
    while i < len(pattern) and pattern[i] != "]":
        i += 1
    if i >= len(pattern):
        raise GlobSyntaxError(f"unbalanced '[' in {pattern!r}")
    return i


def _translate_class(pattern: str, start: int) -> tuple[str, int]:
    """Translate a [...] class starting at ``start``; returns (regex, next index)."""
    end = _class_end(pattern, start)
    negate = pattern[start + 1] == "!"
    members = pattern[start + 2 if negate else start + 1 : end]
    if not members:
        raise GlobSyntaxError(f"empty character class in {pattern!r}")
    members = (
        members.replace("\\", "\\\\")
        .replace("^", "\\^")
        .replace("[", "\\[")
        .replace("]", "\\]")
    )
    if negate:
        return f"[^/{members}]", end + 1
    return f"[{members}]", end + 1


def _find_group(pattern: str) -> tuple[int, int] | None:
    """Locate the first {...} group outside character classes."""
    start = -1
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == "[":
            i = _class_end(pattern, i) + 1
            continue
        if c == "{":
            if start != -1:
                raise GlobSyntaxError(f"nested '{{' in {pattern!r}")
            start = i
        elif c == "}":
            if start == -1:
                raise GlobSyntaxError(f"unbalanced '}}' in {pattern!r}")
            return start, i
        i += 1
    if start != -1:
        raise GlobSyntaxError(f"unbalanced '{{' in {pattern!r}")
    return None


def _expand_braces(pattern: str) -> list[str]:
    """Every brace-free alternative of ``pattern``, in declaration order."""
    group = _find_group(pattern)
    if group is None:
        return [pattern]
    start, end = group
    head = pattern[:start]
    rests = _expand_braces(pattern[end + 1 :])
    return [
        head + option + rest
        for option in pattern[start + 1 : end].split(",")
        for rest in rests
    ]


def _translate(pattern: str) -> str:
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            at_segment_start = i == 0 or pattern[i - 1] == "/"
            if at_segment_start and pattern.startswith("**/", i):
                out.append("(?:.*/)?")
                i += 3
            elif pattern.startswith("**", i):
                out.append(".*")
                while i < n and pattern[i] == "*":
                    i += 1
            else:
                out.append("[^/]*")
                i += 1
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "[":
            regex, i = _translate_class(pattern, i)
            out.append(regex)
        else:
            out.append(re.escape(c))
            i += 1
    return "".join(out)


@lru_cache(maxsize=1024)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a glob pattern to an anchored regex.

    Raises:
        GlobSyntaxError: If the pattern is empty or malformed.
    """
    if not isinstance(pattern, str) or not pattern.strip():
        raise GlobSyntaxError("empty glob pattern")
    alternatives = []
    for alt in _expand_braces(normalize_path(pattern.strip())):
        if "/" not in alt.rstrip("/"):
            alt = "**/" + alt
        alternatives.append(_translate(alt))
    return re.compile("(?:" + "|".join(alternatives) + r")\Z")


def validate_glob(pattern: str) -> str | None:
    """Return an error message for an invalid pattern, or None if it is valid."""
    try:
        compile_glob(pattern)
    except GlobSyntaxError as e:
        return str(e)
    return None


def conflict_key(pattern: str) -> str | None:
    """The file type a pattern claims, used for same-category conflicts.

    ``**/*.cds`` claims ``.cds``; ``**/manifest.json`` claims
    ``manifest.json``; patterns whose last segment is anything else
    (``src/**``, ``test_*.py``) claim nothing.
    """
    last = normalize_path(pattern.strip()).rstrip("/").rsplit("/", 1)[-1]
    if not last:
        return None
    if last.startswith("*.") and not _GLOB_CHARS & set(last[2:]):
        return "." + last[2:].lower()
    if not _GLOB_CHARS & set(last):
        return last.lower()
    return None


@dataclass(frozen=True)
class FilePattern:
    """A validated glob with its compiled matcher."""

    pattern: str
    regex: re.Pattern[str] = field(compare=False, repr=False)

    @classmethod
    def parse(cls, pattern: str) -> FilePattern:
        return cls(pattern=pattern, regex=compile_glob(pattern))

    def matches(self, path: str) -> bool:
        return self.regex.match(normalize_path(path)) is not None

    @property
    def conflict_key(self) -> str | None:
        return conflict_key(self.pattern)

"""Glob pattern compilation and matching.

Patterns are matched against the POSIX form of a path relative to the
traversal root (the root's own name is not part of it).

Syntax:
    *       any run of characters except "/"
    **      any run of characters including "/"
    **/     zero or more leading directories
    ?       one character except "/"
    [a-z]   character class, [!a-z] negated class
    {a,b}   alternation
    \\x      literal x

A leading "!" turns a pattern into an exclusion. An exclusion ending in
"/**" prunes the whole directory it names instead of filtering entries.
"""

import os
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from fstree.core.errors import OptionError

GenericFilter = Callable[[Path, os.stat_result], bool]

NEGATION = "!"
DIRECTORY_SUFFIX = "/**"

_SPECIAL = frozenset("*?[]{}\\")


def translate(pattern: str) -> str:
    """Translate a glob pattern into an equivalent regular expression.

    Args:
        pattern: Glob pattern without the leading "!".

    Returns:
        Regular expression source intended for full matching.

    Raises:
        OptionError: If braces are unbalanced.
    """
    regex, end = _translate(pattern, 0, in_braces=False)
    if end != len(pattern):
        msg = f"Unbalanced '}}' in glob pattern {pattern!r}"
        raise OptionError(msg)
    return regex


def _translate(pattern: str, i: int, *, in_braces: bool) -> tuple[str, int]:
    parts: list[str] = []
    n = len(pattern)

    while i < n:
        c = pattern[i]

        if c == "*":
            if pattern.startswith("**/", i):
                parts.append("(?:.*/)?")
                i += 3
            elif pattern.startswith("**", i):
                parts.append(".*")
                i += 2
            else:
                parts.append("[^/]*")
                i += 1
        elif c == "?":
            parts.append("[^/]")
            i += 1
        elif c == "[":
            cls, i = _translate_class(pattern, i)
            parts.append(cls)
        elif c == "{":
            alternatives: list[str] = []
            i += 1
            while True:
                alt, i = _translate(pattern, i, in_braces=True)
                alternatives.append(alt)
                if i >= n:
                    msg = f"Unbalanced '{{' in glob pattern {pattern!r}"
                    raise OptionError(msg)
                if pattern[i] == "}":
                    i += 1
                    break
                i += 1  # ","
            parts.append("(?:" + "|".join(alternatives) + ")")
        elif in_braces and c in ",}":
            return "".join(parts), i
        elif c == "}":
            return "".join(parts), i
        elif c == "\\" and i + 1 < n:
            parts.append(re.escape(pattern[i + 1]))
            i += 2
        else:
            parts.append(re.escape(c))
            i += 1

    return "".join(parts), i


def _translate_class(pattern: str, start: int) -> tuple[str, int]:
    i = start + 1
    negate = i < len(pattern) and pattern[i] == "!"
    if negate:
        i += 1
    # A "]" right after the opening bracket is a literal member.
    if i < len(pattern) and pattern[i] == "]":
        i += 1
    end = pattern.find("]", i)
    if end < 0:
        return re.escape("["), start + 1

    body = pattern[start + 1 + (1 if negate else 0) : end]
    body = body.replace("\\", "\\\\").replace("^", "\\^")
    if negate:
        return f"[^/{body}]", end + 1
    return f"[{body}]", end + 1


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a single glob pattern (without "!") into a regex."""
    return re.compile(translate(pattern), re.DOTALL)


def escape(name: str) -> str:
    """Quote glob metacharacters so that name matches only itself."""
    escaped = "".join("\\" + c if c in _SPECIAL else c for c in name)
    if escaped.startswith(NEGATION):
        escaped = "\\" + escaped
    return escaped


def _matches_any(patterns: tuple[re.Pattern[str], ...], relative: str) -> bool:
    return any(p.fullmatch(relative) for p in patterns)


@dataclass(frozen=True)
class PatternSet:
    """Compiled include/exclude/directory-exclude predicates.

    Attributes:
        includes: Positive patterns, OR-combined. Empty means "everything".
        excludes: Negative entry patterns, OR-combined.
        directory_excludes: Prefixes of negative "/**" patterns; a directory
            matching one of them is pruned.
        generic_filter: Optional attribute predicate applied on top.
    """

    includes: tuple[re.Pattern[str], ...] = ()
    excludes: tuple[re.Pattern[str], ...] = ()
    directory_excludes: tuple[re.Pattern[str], ...] = ()
    generic_filter: GenericFilter | None = field(default=None, compare=False)

    def include(self, relative: str) -> bool:
        """Whether a positive pattern admits the path (true when there are none)."""
        return not self.includes or _matches_any(self.includes, relative)

    def exclude(self, relative: str) -> bool:
        """Whether an entry exclusion rejects the path."""
        return _matches_any(self.excludes, relative)

    def exclude_directory(self, relative: str) -> bool:
        """Whether the directory at this relative path is pruned."""
        return bool(relative) and _matches_any(self.directory_excludes, relative)

    def within_excluded_directory(self, relative: str) -> bool:
        """Whether the path or any of its ancestors is pruned."""
        if not self.directory_excludes or not relative:
            return False
        segments = relative.split("/")
        return any(
            self.exclude_directory("/".join(segments[:i])) for i in range(1, len(segments) + 1)
        )

    @property
    def matches_everything(self) -> bool:
        """True when no pattern and no filter restricts anything."""
        return not (self.includes or self.excludes or self.directory_excludes) and (
            self.generic_filter is None
        )

    def accepts(self, relative: str, path: Path, stat: os.stat_result | None = None) -> bool:
        """Full acceptance check for an entry.

        Args:
            relative: POSIX path relative to the traversal root.
            path: Absolute path, handed to the generic filter.
            stat: Entry attributes. Looked up lazily when a generic filter
                needs them.

        Returns:
            True if the entry is included, not excluded and passes the filter.
        """
        if self.exclude(relative) or not self.include(relative):
            return False
        if self.generic_filter is None:
            return True
        if stat is None:
            try:
                stat = path.stat()
            except OSError:
                return False
        return bool(self.generic_filter(path, stat))


def compile_patterns(
    patterns: Iterable[str], generic_filter: GenericFilter | None = None
) -> PatternSet:
    """Split patterns into include, exclude and directory-exclude sets.

    Args:
        patterns: Glob strings; "!" marks exclusions.
        generic_filter: Optional attribute predicate.

    Returns:
        Compiled PatternSet.

    Raises:
        OptionError: If a pattern is empty or malformed.
    """
    includes: list[re.Pattern[str]] = []
    excludes: list[re.Pattern[str]] = []
    directories: list[re.Pattern[str]] = []

    for pattern in patterns:
        if pattern.startswith(NEGATION):
            body = pattern[1:]
            if not body:
                msg = f"Empty exclusion pattern: {pattern!r}"
                raise OptionError(msg)
            if body.endswith(DIRECTORY_SUFFIX) and len(body) > len(DIRECTORY_SUFFIX):
                directories.append(compile_glob(body[: -len(DIRECTORY_SUFFIX)]))
            else:
                excludes.append(compile_glob(body))
        elif pattern:
            includes.append(compile_glob(pattern))
        else:
            msg = "Empty glob pattern"
            raise OptionError(msg)

    return PatternSet(
        includes=tuple(includes),
        excludes=tuple(excludes),
        directory_excludes=tuple(directories),
        generic_filter=generic_filter,
    )

"""Declarative traversal configuration.

An Option is an immutable value. Every builder returns a modified copy, so
callers can layer their own policy on top of an operation's defaults by
chaining ``Option -> Option`` transforms.

Example:
    >>> option = chain(lambda o: o.glob("**/*.py", "!build/**"), lambda o: o.strip())
    >>> option(Option()).strip_count
    1
"""

import math
import os
import sys
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from pathlib import Path, PurePosixPath

from fstree.core.errors import AlreadyExistsError, OptionError
from fstree.walk.glob import GenericFilter, PatternSet, compile_patterns

UNLIMITED_DEPTH = sys.maxsize

# File systems disagree on sub-second precision, so modification times
# are compared in whole seconds.
TIMESTAMP_GRANULARITY = 1.0


class ConflictPolicy(str, Enum):
    """What to do when the destination of an entry already exists.

    Attributes:
        REPLACE_ALWAYS: Overwrite unconditionally.
        REPLACE_IF_NEWER: Overwrite only when the source is newer.
        REPLACE_IF_DIFFERENT: Overwrite when size or modification time differ.
        SKIP_EXISTING: Never overwrite.
        FAIL_IF_EXISTING: Abort the traversal with AlreadyExistsError.
    """

    REPLACE_ALWAYS = "replace_always"
    REPLACE_IF_NEWER = "replace_if_newer"
    REPLACE_IF_DIFFERENT = "replace_if_different"
    SKIP_EXISTING = "skip_existing"
    FAIL_IF_EXISTING = "fail_if_existing"


class Outcome(str, Enum):
    """Per-entry result of conflict resolution."""

    REPLACED = "replaced"
    SKIPPED = "skipped"
    FAILED = "failed"


def _seconds(mtime: float) -> int:
    return math.floor(mtime / TIMESTAMP_GRANULARITY)


@dataclass(frozen=True)
class Option:
    """Immutable traversal configuration.

    Attributes:
        patterns: Glob patterns in the order they were added.
        generic_filter: Optional (path, stat) predicate applied to entries.
        max_depth: Deepest level visited; the root is level 0.
        strip_count: Leading segments removed from destination paths.
            0 keeps the root's name, 1 drops it, N drops N-1 more.
        destination_sub_path: Relative directory inserted below the
            destination root.
        conflict_policy: How to treat existing destination entries.
        synchronize: Delete destination entries that have no surviving
            source counterpart after the main pass.
    """

    patterns: tuple[str, ...] = ()
    generic_filter: GenericFilter | None = field(default=None, compare=False)
    max_depth: int = UNLIMITED_DEPTH
    strip_count: int = 0
    destination_sub_path: PurePosixPath = PurePosixPath()
    conflict_policy: ConflictPolicy = ConflictPolicy.REPLACE_ALWAYS
    synchronize: bool = False

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            msg = f"Depth must not be negative: {self.max_depth}"
            raise OptionError(msg)
        if self.strip_count < 0:
            msg = f"Strip count must not be negative: {self.strip_count}"
            raise OptionError(msg)
        sub_path = PurePosixPath(self.destination_sub_path)
        if sub_path.is_absolute() or sub_path.drive:
            msg = f"Only a relative path is acceptable: {self.destination_sub_path}"
            raise OptionError(msg)
        if ".." in sub_path.parts:
            msg = f"Sub path must stay inside the destination: {self.destination_sub_path}"
            raise OptionError(msg)
        object.__setattr__(self, "destination_sub_path", sub_path)

    @classmethod
    def of(cls, *patterns: str) -> "Option":
        """Build the default Option for a set of patterns.

        Patterns describe what to select inside a directory, so giving any
        also drops the root's own name from destinations.
        """
        option = cls().glob(*patterns)
        return option.strip() if patterns else option

    @cached_property
    def pattern_set(self) -> PatternSet:
        """Compiled predicates for the current patterns and filter."""
        return compile_patterns(self.patterns, self.generic_filter)

    # Builders

    def glob(self, *patterns: str) -> "Option":
        """Add glob patterns ("!" prefix for exclusions)."""
        if not patterns:
            return self
        return replace(self, patterns=self.patterns + tuple(patterns))

    def depth(self, depth: int) -> "Option":
        """Limit how deep the traversal descends (root is 0)."""
        return replace(self, max_depth=depth)

    def strip(self, count: int = 1) -> "Option":
        """Drop the root's name (and count-1 further segments) from destinations."""
        return replace(self, strip_count=count)

    def keep_root(self) -> "Option":
        """Keep the root's name in destinations."""
        return replace(self, strip_count=0)

    def allocate_in(self, relative: str | PurePosixPath) -> "Option":
        """Place every output below an extra relative directory.

        Raises:
            OptionError: If the path is absolute.
        """
        return replace(self, destination_sub_path=PurePosixPath(relative))

    def replace_existing(self) -> "Option":
        return replace(self, conflict_policy=ConflictPolicy.REPLACE_ALWAYS)

    def replace_old(self) -> "Option":
        return replace(self, conflict_policy=ConflictPolicy.REPLACE_IF_NEWER)

    def replace_different(self) -> "Option":
        return replace(self, conflict_policy=ConflictPolicy.REPLACE_IF_DIFFERENT)

    def skip_existing(self) -> "Option":
        return replace(self, conflict_policy=ConflictPolicy.SKIP_EXISTING)

    def stop_existing(self) -> "Option":
        return replace(self, conflict_policy=ConflictPolicy.FAIL_IF_EXISTING)

    def with_policy(self, policy: ConflictPolicy) -> "Option":
        return replace(self, conflict_policy=policy)

    def sync(self) -> "Option":
        """Mirror mode: remove destination entries the source no longer has."""
        return replace(self, synchronize=True)

    def take(self, generic_filter: GenericFilter) -> "Option":
        """Filter entries by an arbitrary (path, stat) predicate."""
        return replace(self, generic_filter=generic_filter)

    # Destination computation

    def destination_relative(
        self, root_name: str, relative: str, *, is_directory: bool = False
    ) -> PurePosixPath | None:
        """Compute an entry's path inside the destination root.

        Args:
            root_name: Name of the traversal root.
            relative: POSIX path of the entry relative to the root ("" for
                the root itself).
            is_directory: Directories whose segments are all stripped map
                onto the destination base; files keep their own name.

        Returns:
            Relative destination path, or None when the entry maps onto
            the destination root itself.
        """
        segments = [s for s in relative.split("/") if s]
        if self.strip_count == 0:
            segments.insert(0, root_name)
        elif self.strip_count > 1:
            drop = self.strip_count - 1
            if drop >= len(segments):
                segments = [] if is_directory else segments[-1:]
            else:
                segments = segments[drop:]

        target = self.destination_sub_path.joinpath(*segments)
        if not target.parts:
            return None
        return target

    def destination_for(
        self, destination_root: Path, root_name: str, relative: str, *, is_directory: bool = False
    ) -> Path:
        """Absolute destination path of an entry."""
        target = self.destination_relative(root_name, relative, is_directory=is_directory)
        return destination_root if target is None else destination_root.joinpath(*target.parts)

    def mirror_base(self, destination_root: Path, root_name: str) -> Path:
        """Directory of the destination that mirrors the traversal root."""
        return self.destination_for(destination_root, root_name, "", is_directory=True)

    # Conflict resolution

    def can_replace(self, source: Path, destination: Path) -> bool:
        """Decide whether source may overwrite destination.

        An absent destination can always be written, whatever the policy.

        Raises:
            AlreadyExistsError: Under FAIL_IF_EXISTING when destination exists.
        """
        try:
            dest_stat = destination.lstat()
        except FileNotFoundError:
            return True

        policy = self.conflict_policy
        if policy is ConflictPolicy.REPLACE_ALWAYS:
            return True
        if policy is ConflictPolicy.SKIP_EXISTING:
            return False
        if policy is ConflictPolicy.FAIL_IF_EXISTING:
            raise AlreadyExistsError(source, destination)

        src_stat = source.lstat()
        return self._compare(src_stat.st_size, src_stat.st_mtime, dest_stat)

    def can_replace_with(
        self, source: Path, size: int, modified: float, destination: Path
    ) -> bool:
        """Like can_replace, for a source known only by its size and mtime.

        Used for archive members, which have no file of their own.
        """
        try:
            dest_stat = destination.lstat()
        except FileNotFoundError:
            return True

        policy = self.conflict_policy
        if policy is ConflictPolicy.REPLACE_ALWAYS:
            return True
        if policy is ConflictPolicy.SKIP_EXISTING:
            return False
        if policy is ConflictPolicy.FAIL_IF_EXISTING:
            raise AlreadyExistsError(source, destination)
        return self._compare(size, modified, dest_stat)

    def _compare(self, size: int, modified: float, dest_stat: os.stat_result) -> bool:
        if self.conflict_policy is ConflictPolicy.REPLACE_IF_NEWER:
            return _seconds(dest_stat.st_mtime) < _seconds(modified)
        return _seconds(dest_stat.st_mtime) != _seconds(modified) or dest_stat.st_size != size

    def resolve_conflict(self, source: Path, destination: Path) -> Outcome:
        """Typed variant of can_replace that never raises for the policy itself."""
        try:
            allowed = self.can_replace(source, destination)
        except AlreadyExistsError:
            return Outcome.FAILED
        return Outcome.REPLACED if allowed else Outcome.SKIPPED


OptionTransform = Callable[[Option], Option]


def chain(*transforms: OptionTransform | None) -> OptionTransform:
    """Compose transforms left to right, ignoring None entries."""
    steps = [t for t in transforms if t is not None]

    def apply(option: Option) -> Option:
        for step in steps:
            option = step(option)
        return option

    return apply


def build_option(*patterns: str, option: OptionTransform | None = None) -> Option:
    """Resolve the common façade signature ``(*patterns, option=...)``."""
    return chain(option)(Option.of(*patterns))


def describe(option: Option) -> str:
    """One-line summary used in debug logs."""
    depth = "unlimited" if option.max_depth == UNLIMITED_DEPTH else str(option.max_depth)
    parts = [
        f"patterns={list(option.patterns)}",
        f"depth={depth}",
        f"strip={option.strip_count}",
        f"policy={option.conflict_policy.value}",
    ]
    if option.destination_sub_path.parts:
        parts.append(f"into={option.destination_sub_path}")
    if option.synchronize:
        parts.append("sync")
    if option.generic_filter is not None:
        parts.append("filter")
    return " ".join(parts)

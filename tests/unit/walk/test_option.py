"""Unit tests for Option.

Tests for the builders, destination computation and conflict policies.
"""

from collections.abc import Callable
from pathlib import Path, PurePosixPath

import pytest
from fstree.core.errors import AlreadyExistsError, OptionError
from fstree.walk.option import (
    UNLIMITED_DEPTH,
    ConflictPolicy,
    Option,
    Outcome,
    build_option,
    chain,
    describe,
)


class TestOptionBuilders:
    """Tests for the immutable builder methods."""

    def test_defaults(self) -> None:
        option = Option()

        assert option.patterns == ()
        assert option.max_depth == UNLIMITED_DEPTH
        assert option.strip_count == 0
        assert option.destination_sub_path == PurePosixPath()
        assert option.conflict_policy is ConflictPolicy.REPLACE_ALWAYS
        assert option.synchronize is False

    def test_builders_return_copies(self) -> None:
        base = Option()
        changed = base.glob("*.py").depth(2).strip().sync()

        assert base == Option()
        assert changed.patterns == ("*.py",)
        assert changed.max_depth == 2
        assert changed.strip_count == 1
        assert changed.synchronize is True

    def test_glob_appends_in_order(self) -> None:
        option = Option().glob("a").glob("b", "!c")

        assert option.patterns == ("a", "b", "!c")

    def test_of_strips_only_with_patterns(self) -> None:
        """Giving patterns selects content inside the root, dropping its name."""
        assert Option.of().strip_count == 0
        assert Option.of("**/*.py").strip_count == 1

    def test_keep_root_resets_strip(self) -> None:
        assert Option.of("*").keep_root().strip_count == 0

    @pytest.mark.parametrize(
        ("builder", "policy"),
        [
            (Option.replace_existing, ConflictPolicy.REPLACE_ALWAYS),
            (Option.replace_old, ConflictPolicy.REPLACE_IF_NEWER),
            (Option.replace_different, ConflictPolicy.REPLACE_IF_DIFFERENT),
            (Option.skip_existing, ConflictPolicy.SKIP_EXISTING),
            (Option.stop_existing, ConflictPolicy.FAIL_IF_EXISTING),
        ],
    )
    def test_policy_builders(
        self, builder: Callable[[Option], Option], policy: ConflictPolicy
    ) -> None:
        assert builder(Option()).conflict_policy is policy

    def test_take_sets_generic_filter(self) -> None:
        option = Option().take(lambda _path, stat: stat.st_size > 0)

        assert option.generic_filter is not None
        assert not option.pattern_set.matches_everything

    def test_pattern_set_is_compiled_lazily(self) -> None:
        """Invalid patterns fail when compiled, not when added."""
        option = Option().glob("{broken")

        with pytest.raises(OptionError):
            _ = option.pattern_set


class TestOptionValidation:
    """Tests for invalid configurations."""

    def test_negative_depth_rejected(self) -> None:
        with pytest.raises(OptionError, match="Depth"):
            Option().depth(-1)

    def test_negative_strip_rejected(self) -> None:
        with pytest.raises(OptionError, match="Strip"):
            Option().strip(-1)

    def test_absolute_sub_path_rejected(self) -> None:
        with pytest.raises(OptionError, match="relative"):
            Option().allocate_in("/abs/dir")

    def test_escaping_sub_path_rejected(self) -> None:
        with pytest.raises(OptionError, match="inside"):
            Option().allocate_in("../outside")

    def test_option_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            Option().depth(-5)


class TestDestination:
    """Tests for destination computation."""

    def test_strip_zero_keeps_root_name(self) -> None:
        option = Option()

        assert option.destination_relative("R", "a") == PurePosixPath("R/a")
        assert option.destination_relative("R", "b/c") == PurePosixPath("R/b/c")

    def test_strip_one_drops_root_name(self) -> None:
        option = Option().strip()

        assert option.destination_relative("R", "a") == PurePosixPath("a")
        assert option.destination_relative("R", "b/c") == PurePosixPath("b/c")

    def test_root_maps_onto_destination_with_strip(self) -> None:
        assert Option().strip().destination_relative("R", "", is_directory=True) is None
        assert Option().destination_relative("R", "", is_directory=True) == PurePosixPath("R")

    def test_strip_more_drops_leading_segments(self) -> None:
        option = Option().strip(2)

        assert option.destination_relative("R", "b/c/d") == PurePosixPath("c/d")

    def test_fully_stripped_file_keeps_its_name(self) -> None:
        option = Option().strip(3)

        assert option.destination_relative("R", "b/c") == PurePosixPath("c")
        assert option.destination_relative("R", "b/c", is_directory=True) is None

    def test_sub_path_is_inserted(self, tmp_path: Path) -> None:
        option = Option().strip().allocate_in("backup/today")

        assert option.destination_for(tmp_path, "R", "a.txt") == tmp_path / "backup/today/a.txt"
        assert option.mirror_base(tmp_path, "R") == tmp_path / "backup/today"

    def test_mirror_base(self, tmp_path: Path) -> None:
        assert Option().mirror_base(tmp_path, "R") == tmp_path / "R"
        assert Option().strip().mirror_base(tmp_path, "R") == tmp_path


class TestConflictPolicy:
    """Tests for can_replace and resolve_conflict."""

    @pytest.fixture
    def pair(self, tmp_path: Path) -> tuple[Path, Path]:
        source = tmp_path / "source.txt"
        destination = tmp_path / "destination.txt"
        source.write_text("source")
        destination.write_text("destination")
        return source, destination

    @pytest.mark.parametrize("policy", list(ConflictPolicy))
    def test_absent_destination_is_always_replaceable(
        self, tmp_path: Path, policy: ConflictPolicy
    ) -> None:
        source = tmp_path / "source.txt"
        source.write_text("x")

        assert Option().with_policy(policy).can_replace(source, tmp_path / "missing.txt")

    def test_replace_always(self, pair: tuple[Path, Path]) -> None:
        assert Option().replace_existing().can_replace(*pair)

    def test_skip_existing(self, pair: tuple[Path, Path]) -> None:
        assert not Option().skip_existing().can_replace(*pair)

    def test_fail_if_existing_raises(self, pair: tuple[Path, Path]) -> None:
        source, destination = pair

        with pytest.raises(AlreadyExistsError) as exc_info:
            Option().stop_existing().can_replace(source, destination)

        assert exc_info.value.destination == destination
        assert isinstance(exc_info.value, FileExistsError)

    def test_replace_if_newer(
        self, pair: tuple[Path, Path], set_mtime: Callable[[Path, float], None]
    ) -> None:
        source, destination = pair
        option = Option().replace_old()

        set_mtime(source, 10)
        set_mtime(destination, 20)
        assert not option.can_replace(source, destination)

        set_mtime(destination, 0)
        assert option.can_replace(source, destination)

    def test_replace_if_newer_ignores_sub_second_difference(
        self, pair: tuple[Path, Path], set_mtime: Callable[[Path, float], None]
    ) -> None:
        source, destination = pair
        set_mtime(source, 100.9)
        set_mtime(destination, 100.1)

        assert not Option().replace_old().can_replace(source, destination)

    def test_replace_if_different(
        self, pair: tuple[Path, Path], set_mtime: Callable[[Path, float], None]
    ) -> None:
        source, destination = pair
        option = Option().replace_different()
        destination.write_text("source")
        set_mtime(source, 50)
        set_mtime(destination, 50)
        assert not option.can_replace(source, destination)

        set_mtime(destination, 51)
        assert option.can_replace(source, destination)

        set_mtime(destination, 50)
        destination.write_text("longer content")
        set_mtime(destination, 50)
        assert option.can_replace(source, destination)

    def test_can_replace_with_metadata(
        self, pair: tuple[Path, Path], set_mtime: Callable[[Path, float], None]
    ) -> None:
        """Archive members are judged by size and mtime alone."""
        source, destination = pair
        set_mtime(destination, 20)
        option = Option().replace_old()

        assert option.can_replace_with(source, 5, 30.0, destination)
        assert not option.can_replace_with(source, 5, 10.0, destination)

    def test_resolve_conflict_outcomes(self, pair: tuple[Path, Path]) -> None:
        source, destination = pair

        assert Option().resolve_conflict(source, destination) is Outcome.REPLACED
        assert Option().skip_existing().resolve_conflict(source, destination) is Outcome.SKIPPED
        assert Option().stop_existing().resolve_conflict(source, destination) is Outcome.FAILED


class TestChain:
    """Tests for transform composition."""

    def test_chain_applies_left_to_right(self) -> None:
        transform = chain(lambda o: o.strip(2), None, lambda o: o.strip(1))

        assert transform(Option()).strip_count == 1

    def test_build_option_layers_transform_over_defaults(self) -> None:
        option = build_option("**/*.py", option=lambda o: o.keep_root().depth(3))

        assert option.patterns == ("**/*.py",)
        assert option.strip_count == 0
        assert option.max_depth == 3

    def test_describe(self) -> None:
        text = describe(Option().glob("*.py").allocate_in("out").sync())

        assert "patterns=['*.py']" in text
        assert "depth=unlimited" in text
        assert "into=out" in text
        assert text.endswith("sync")

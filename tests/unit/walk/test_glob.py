"""Unit tests for glob compilation and pattern sets.

Tests for translating globs to regular expressions and for splitting
pattern lists into include, exclude and directory-prune predicates.
"""

from pathlib import Path

import pytest
from fstree.core.errors import OptionError
from fstree.walk.glob import compile_glob, compile_patterns, escape


def _matches(pattern: str, relative: str) -> bool:
    return compile_glob(pattern).fullmatch(relative) is not None


class TestGlobPattern:
    """Tests for single glob patterns."""

    @pytest.mark.parametrize(
        ("pattern", "relative", "expected"),
        [
            ("*.txt", "a.txt", True),
            ("*.txt", "docs/a.txt", False),
            ("*", "a", True),
            ("*", "a/b", False),
            ("**", "a/b/c.txt", True),
            ("**/*.txt", "a.txt", True),
            ("**/*.txt", "a/b/c.txt", True),
            ("**/*.txt", "a/b/c.md", False),
            ("docs/**", "docs/guide/intro.md", True),
            ("docs/**", "src/docs/x", False),
            ("?.py", "a.py", True),
            ("?.py", "ab.py", False),
            ("?", "/", False),
            ("[ab].txt", "a.txt", True),
            ("[ab].txt", "c.txt", False),
            ("[!ab].txt", "c.txt", True),
            ("[!ab].txt", "a.txt", False),
            ("[a-c]x", "bx", True),
            ("{src,docs}/*.md", "docs/readme.md", True),
            ("{src,docs}/*.md", "pkg/readme.md", False),
            ("*.{py,pyc}", "core.pyc", True),
        ],
    )
    def test_matching(self, pattern: str, relative: str, expected: bool) -> None:
        """Patterns follow shell semantics on root-relative POSIX paths."""
        assert _matches(pattern, relative) is expected

    def test_double_star_matches_across_segments(self) -> None:
        """A pattern like **/dir** selects directories and everything below them."""
        for relative in ("dir1", "dir1/3.txt", "dir2/dir21/file", "a/dir9"):
            assert _matches("**/dir**", relative)
        assert not _matches("**/dir**", "1.txt")

    def test_escaped_metacharacters_are_literal(self) -> None:
        """A backslash makes the next character literal."""
        assert _matches("\\*.txt", "*.txt")
        assert not _matches("\\*.txt", "a.txt")

    def test_unclosed_class_is_literal(self) -> None:
        """An opening bracket without a closing one matches itself."""
        assert _matches("[abc", "[abc")

    @pytest.mark.parametrize("pattern", ["{a,b", "a}", "x/{y"])
    def test_unbalanced_braces_rejected(self, pattern: str) -> None:
        """Unbalanced braces raise OptionError."""
        with pytest.raises(OptionError, match="Unbalanced"):
            compile_glob(pattern)


class TestEscape:
    """Tests for escape()."""

    @pytest.mark.parametrize("name", ["plain.txt", "a*b.txt", "[1].log", "{x}.md", "!bang"])
    def test_escaped_name_matches_only_itself(self, name: str) -> None:
        """escape() quotes every metacharacter."""
        assert _matches(escape(name), name)

    def test_escaped_wildcard_does_not_match_others(self) -> None:
        assert not _matches(escape("*.txt"), "a.txt")

    def test_leading_negation_is_quoted(self) -> None:
        """A name starting with '!' does not become an exclusion."""
        patterns = compile_patterns([escape("!bang")])
        assert patterns.includes
        assert not patterns.excludes


class TestPatternSet:
    """Tests for compile_patterns() and PatternSet."""

    def test_empty_set_matches_everything(self, tmp_path: Path) -> None:
        patterns = compile_patterns([])

        assert patterns.matches_everything
        assert patterns.accepts("any/thing.txt", tmp_path / "any/thing.txt")

    def test_positive_patterns_are_or_combined(self, tmp_path: Path) -> None:
        patterns = compile_patterns(["*.py", "*.md"])

        assert patterns.accepts("a.py", tmp_path / "a.py")
        assert patterns.accepts("b.md", tmp_path / "b.md")
        assert not patterns.accepts("c.txt", tmp_path / "c.txt")

    def test_exclusion_beats_inclusion(self, tmp_path: Path) -> None:
        patterns = compile_patterns(["**/*.py", "!**/test_*.py"])

        assert patterns.accepts("pkg/core.py", tmp_path)
        assert not patterns.accepts("pkg/test_core.py", tmp_path)

    def test_only_exclusions_include_the_rest(self, tmp_path: Path) -> None:
        patterns = compile_patterns(["!*.log"])

        assert patterns.accepts("a.txt", tmp_path)
        assert not patterns.accepts("a.log", tmp_path)

    def test_directory_exclusion_is_classified_as_prune(self) -> None:
        """A negative pattern ending in /** prunes directories."""
        patterns = compile_patterns(["!**/.git/**"])

        assert not patterns.excludes
        assert patterns.exclude_directory(".git")
        assert patterns.exclude_directory("vendor/lib/.git")
        assert not patterns.exclude_directory("")
        assert not patterns.exclude_directory("src")

    def test_within_excluded_directory(self) -> None:
        patterns = compile_patterns(["!build/**"])

        assert patterns.within_excluded_directory("build/out/app.bin")
        assert patterns.within_excluded_directory("build")
        assert not patterns.within_excluded_directory("src/build.py")

    def test_generic_filter_is_and_combined(self, tmp_path: Path) -> None:
        """The attribute filter applies on top of the patterns."""
        small = tmp_path / "small.txt"
        large = tmp_path / "large.txt"
        small.write_text("a")
        large.write_text("a" * 100)
        patterns = compile_patterns(["*.txt"], lambda _path, stat: stat.st_size > 10)

        assert not patterns.matches_everything
        assert patterns.accepts("large.txt", large)
        assert not patterns.accepts("small.txt", small)

    def test_generic_filter_rejects_vanished_entries(self, tmp_path: Path) -> None:
        patterns = compile_patterns([], lambda _path, _stat: True)

        assert not patterns.accepts("gone.txt", tmp_path / "gone.txt")

    @pytest.mark.parametrize("pattern", ["", "!"])
    def test_empty_patterns_rejected(self, pattern: str) -> None:
        with pytest.raises(OptionError):
            compile_patterns([pattern])

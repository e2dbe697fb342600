"""Tests for glob compilation, validation and matching."""

import pytest

from tidy_organizer.core.glob_matcher import (
    GlobMatcher,
    compile_glob_pattern,
    expand_braces,
    filter_by_glob,
    is_glob_match,
    is_valid_glob_pattern,
    match_glob,
    validate_glob_pattern,
)


class TestBraceExpansion:
    """Test brace expansion."""

    def test_simple_alternatives(self):
        assert expand_braces("*.{jpg,png}") == ["*.jpg", "*.png"]

    def test_nested_braces(self):
        assert expand_braces("{a,b{1,2}}.txt") == ["a.txt", "b1.txt", "b2.txt"]

    def test_multiple_groups(self):
        assert expand_braces("{a,b}-{x,y}") == ["a-x", "a-y", "b-x", "b-y"]

    def test_unbalanced_brace_is_literal(self):
        assert expand_braces("file{a,b") == ["file{a,b"]

    def test_escaped_brace_is_not_expanded(self):
        assert expand_braces(r"\{a,b\}") == [r"\{a,b\}"]


class TestMatching:
    """Test whole-name glob matching."""

    @pytest.mark.parametrize("pattern,filename,expected", [
        ("*.jpg", "photo.jpg", True),
        ("*.jpg", "photo.jpeg", False),
        ("IMG_????.jpg", "IMG_0042.jpg", True),
        ("IMG_????.jpg", "IMG_042.jpg", False),
        ("[abc]*.txt", "beta.txt", True),
        ("[abc]*.txt", "delta.txt", False),
        ("[a-c]*", "cat", True),
        ("[!a]*", "apple", False),
        ("[^a]*", "banana", True),
        (r"file\*.txt", "file*.txt", True),
        (r"file\*.txt", "file1.txt", False),
        ("*.{jpg,png}", "shot.png", True),
        ("report_*.pdf", "report_q3.pdf", True),
        ("report_*.pdf", "my_report_q3.pdf", False),
    ])
    def test_patterns(self, pattern, filename, expected):
        assert is_glob_match(pattern, filename) is expected

    def test_extension_shorthand(self):
        """A bare-word alternative matches as an extension."""
        assert is_glob_match("{jpg,png}", "photo.png")
        assert is_glob_match("{jpg,png}", "photo.JPG")
        assert not is_glob_match("{jpg,png}", "photo.gif")

    def test_case_sensitivity(self):
        assert is_glob_match("*.JPG", "photo.jpg")
        assert not is_glob_match("*.JPG", "photo.jpg", case_sensitive=True)

    def test_regex_metacharacters_are_literal(self):
        assert is_glob_match("a+b(1).txt", "a+b(1).txt")
        assert not is_glob_match("a+b(1).txt", "aab1.txt")

    def test_match_glob_result(self):
        assert match_glob("*.pdf", "doc.pdf").matches

    def test_filter(self):
        names = ["a.jpg", "b.png", "c.gif", "d.JPG"]
        assert filter_by_glob("*.jpg", names) == ["a.jpg", "d.JPG"]
        assert GlobMatcher().filter("*.jpg", names, case_sensitive=True) == ["a.jpg"]

    def test_compile_without_cache(self):
        compiled = compile_glob_pattern("*.txt").value()
        assert compiled.match("notes.TXT")

    def test_trailing_newline_does_not_match(self):
        assert not is_glob_match("*.png", "photo.png\n")
        assert filter_by_glob("*.png", ["a.png", "b.png\n"]) == ["a.png"]
        assert not GlobMatcher().is_match("{jpg,png}", "photo.png\n")


class TestValidation:
    """Test structural pattern validation."""

    def test_valid_patterns(self):
        for pattern in ("*.jpg", "IMG_[0-9]*", "{a,b}", r"\[literal\]"):
            assert validate_glob_pattern(pattern).valid, pattern

    def test_empty_pattern(self):
        validation = validate_glob_pattern("   ")
        assert not validation.valid
        assert "empty" in validation.error

    def test_unclosed_bracket_position(self):
        validation = validate_glob_pattern("ab[cd")
        assert not validation.valid
        assert validation.position == 2

    def test_unclosed_brace(self):
        validation = validate_glob_pattern("*.{jpg,png")
        assert not validation.valid
        assert validation.position == 2

    def test_empty_character_class(self):
        assert not validate_glob_pattern("file[].txt").valid

    def test_empty_alternative(self):
        assert not validate_glob_pattern("*.{jpg,,png}").valid
        assert not validate_glob_pattern("*.{,png}").valid

    def test_trailing_comma(self):
        validation = validate_glob_pattern("*.{jpg,}")
        assert not validation.valid
        assert "Trailing comma" in validation.error

    def test_is_valid_helper(self):
        assert is_valid_glob_pattern("*.txt")
        assert not is_valid_glob_pattern("[")


class TestCache:
    """Test the compiled pattern cache."""

    def test_compiled_patterns_are_reused(self):
        matcher = GlobMatcher()
        first = matcher.compile("*.jpg").value()
        assert matcher.compile("*.jpg").value() is first
        assert len(matcher.cache) == 1
        matcher.clear_cache()
        assert len(matcher.cache) == 0

    def test_cache_is_bounded(self):
        from tidy_organizer.core.pattern_cache import RegexCache

        matcher = GlobMatcher(RegexCache(max_size=2))
        for pattern in ("*.a", "*.b", "*.c"):
            matcher.compile(pattern)
        assert len(matcher.cache) == 2

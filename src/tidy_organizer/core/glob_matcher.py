"""Glob pattern compilation and matching for filename rules.

Supported syntax: ``*``, ``?``, ``[abc]``, ``[a-z]``, ``[!a]``/``[^a]``,
backslash escapes and (nested) brace expansion ``{a,b}``. Patterns match
the whole file name, case-insensitively unless asked otherwise.

An alternative that is a bare word after brace expansion (no dot, wildcard,
bracket or escape) is an extension shorthand: ``{jpg,png}`` matches
``photo.png`` as well as a file literally named ``png``.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern

from ..domain.result import Failure, FilenameRuleError, Result, Success
from .pattern_cache import RegexCache

logger = logging.getLogger(__name__)

_SHORTHAND = re.compile(r"[^.*?\[\]\\{}]+")
_CLASS_SPECIAL = set("\\]^[&~|")


@dataclass(slots=True, frozen=True)
class GlobMatchResult:
    matches: bool


@dataclass(slots=True, frozen=True)
class PatternValidation:
    """Outcome of ``validate_glob_pattern``."""
    valid: bool
    error: Optional[str] = None
    position: Optional[int] = None


def expand_braces(pattern: str) -> List[str]:
    """Expand the first top-level brace group, recursively.

    ``"*.{jpg,png}"`` becomes ``["*.jpg", "*.png"]``. Unbalanced braces are
    left as literal text.
    """
    brace_start = brace_end = -1
    depth = 0
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\":
            i += 2
            continue
        if char == "{":
            if depth == 0:
                brace_start = i
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                brace_end = i
                break
        i += 1

    if brace_start == -1 or brace_end == -1:
        return [pattern]

    prefix = pattern[:brace_start]
    suffix = pattern[brace_end + 1:]
    content = pattern[brace_start + 1:brace_end]

    alternatives = []
    current = []
    depth = 0
    i = 0
    while i < len(content):
        char = content[i]
        if char == "\\" and i + 1 < len(content):
            current.append(content[i:i + 2])
            i += 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == "," and depth == 0:
            alternatives.append("".join(current))
            current = []
            i += 1
            continue
        current.append(char)
        i += 1
    alternatives.append("".join(current))

    expanded = []
    for alternative in alternatives:
        expanded.extend(expand_braces(prefix + alternative + suffix))
    return expanded


def _class_to_regex(body: str, negated: bool) -> str:
    parts = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\" and i + 1 < len(body):
            parts.append(re.escape(body[i + 1]))
            i += 2
            continue
        parts.append("\\" + char if char in _CLASS_SPECIAL else char)
        i += 1
    return ("[^" if negated else "[") + "".join(parts) + "]"


def glob_to_regex(pattern: str) -> str:
    """Translate one brace-free glob into an (unanchored) regex source."""
    if _SHORTHAND.fullmatch(pattern):
        return r"(?:.*\.)?" + re.escape(pattern)

    regex = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            regex.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if char == "*":
            regex.append(".*")
        elif char == "?":
            regex.append(".")
        elif char == "[":
            j = i + 1
            negated = j < len(pattern) and pattern[j] in "!^"
            if negated:
                j += 1
            body_start = j
            end = -1
            while j < len(pattern):
                if pattern[j] == "]" and j > body_start:
                    end = j
                    break
                if pattern[j] == "\\" and j + 1 < len(pattern):
                    j += 2
                    continue
                j += 1
            if end == -1:
                regex.append(re.escape(char))
            else:
                regex.append(_class_to_regex(pattern[body_start:end], negated))
                i = end
        else:
            regex.append(re.escape(char))
        i += 1
    return "".join(regex)


def glob_source(pattern: str) -> str:
    """Full anchored regex source for a glob, braces expanded."""
    sources = [glob_to_regex(p) for p in expand_braces(pattern)]
    combined = sources[0] if len(sources) == 1 else "(?:" + "|".join(sources) + ")"
    return "^" + combined + r"\Z"


def validate_glob_pattern(pattern: str) -> PatternValidation:
    """Check a glob for structural problems before it is stored in a rule."""
    if not pattern or not pattern.strip():
        return PatternValidation(False, "Pattern cannot be empty or whitespace-only")

    bracket_depth = brace_depth = 0
    bracket_start = brace_start = -1
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            i += 2
            continue
        if char == "[":
            if bracket_depth == 0:
                bracket_start = i
            bracket_depth += 1
        elif char == "]" and bracket_depth > 0:
            bracket_depth -= 1
            if bracket_start == i - 1:
                return PatternValidation(False, "Empty character class [] is not allowed", bracket_start)
        elif char == "{":
            if brace_depth == 0:
                brace_start = i
            brace_depth += 1
        elif char == "}" and brace_depth > 0:
            if pattern[i - 1] == ",":
                return PatternValidation(False, "Trailing comma in brace expansion is not allowed", i - 1)
            brace_depth -= 1
        elif char == "," and brace_depth > 0 and pattern[i - 1] in "{,":
            return PatternValidation(False, "Empty alternative in brace expansion is not allowed", i)
        i += 1

    if bracket_depth > 0:
        return PatternValidation(False, "Unclosed character class [", bracket_start)
    if brace_depth > 0:
        return PatternValidation(False, "Unclosed brace expansion {", brace_start)

    try:
        re.compile(glob_source(pattern))
    except re.error as e:
        return PatternValidation(False, f"Invalid pattern: {e}")
    return PatternValidation(True)


def is_valid_glob_pattern(pattern: str) -> bool:
    return validate_glob_pattern(pattern).valid


class GlobMatcher:
    """Compiles globs through a bounded cache and matches file names."""

    def __init__(self, cache: Optional[RegexCache] = None):
        self.cache = cache if cache is not None else RegexCache()

    def compile(self, pattern: str, case_sensitive: bool = False) -> Result[Pattern[str], FilenameRuleError]:
        """Compile ``pattern`` into an anchored regex."""
        try:
            return Success(self.cache.compile(glob_source(pattern), case_sensitive))
        except re.error as e:
            return Failure(FilenameRuleError(
                FilenameRuleError.INVALID_PATTERN,
                f"Invalid glob pattern '{pattern}': {e}",
                {"pattern": pattern},
            ))

    def match(self, pattern: str, filename: str, case_sensitive: bool = False) -> GlobMatchResult:
        compiled = self.compile(pattern, case_sensitive)
        if compiled.is_failure():
            logger.debug(compiled.error().message)
            return GlobMatchResult(False)
        return GlobMatchResult(compiled.value().match(filename) is not None)

    def is_match(self, pattern: str, filename: str, case_sensitive: bool = False) -> bool:
        return self.match(pattern, filename, case_sensitive).matches

    def filter(self, pattern: str, filenames: Iterable[str], case_sensitive: bool = False) -> List[str]:
        compiled = self.compile(pattern, case_sensitive)
        if compiled.is_failure():
            return []
        regex = compiled.value()
        return [name for name in filenames if regex.match(name)]

    def clear_cache(self) -> None:
        self.cache.clear()


def compile_glob_pattern(pattern: str, case_sensitive: bool = False) -> Result[Pattern[str], FilenameRuleError]:
    """Compile a glob without caching."""
    try:
        return Success(re.compile(glob_source(pattern), 0 if case_sensitive else re.IGNORECASE))
    except re.error as e:
        return Failure(FilenameRuleError(
            FilenameRuleError.INVALID_PATTERN,
            f"Invalid glob pattern '{pattern}': {e}",
            {"pattern": pattern},
        ))


def match_glob(pattern: str, filename: str, case_sensitive: bool = False) -> GlobMatchResult:
    """Match one file name; an invalid pattern never matches."""
    compiled = compile_glob_pattern(pattern, case_sensitive)
    if compiled.is_failure():
        return GlobMatchResult(False)
    return GlobMatchResult(compiled.value().match(filename) is not None)


def is_glob_match(pattern: str, filename: str, case_sensitive: bool = False) -> bool:
    return match_glob(pattern, filename, case_sensitive).matches


def filter_by_glob(pattern: str, filenames: Iterable[str], case_sensitive: bool = False) -> List[str]:
    """Keep the file names the pattern matches, in order."""
    compiled = compile_glob_pattern(pattern, case_sensitive)
    if compiled.is_failure():
        return []
    regex = compiled.value()
    return [name for name in filenames if regex.match(name)]

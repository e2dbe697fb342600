"""Render naming templates such as ``{year}-{month}-{day}_{original}``.

``{{`` and ``}}`` produce literal braces. Placeholders whose value is not
available render as ``unknown``; an unknown placeholder name is an error.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Union

from ..domain.result import Failure, Result, Success, TemplateError
from ..models.metadata import UnifiedMetadata
from ..utils.format import format_bytes

MISSING_VALUE = "unknown"

_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


@dataclass(slots=True, frozen=True)
class Placeholder:
    name: str
    position: int


Token = Union[str, Placeholder]


def parse_template(pattern: str) -> Result[List[Token], TemplateError]:
    """Split a pattern into literal strings and placeholders."""
    tokens: List[Token] = []
    literal: List[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "{":
            if pattern.startswith("{{", i):
                literal.append("{")
                i += 2
                continue
            end = pattern.find("}", i + 1)
            if end == -1:
                return Failure(TemplateError(
                    TemplateError.UNCLOSED_BRACE, f"Unclosed brace at position {i}", {"position": i},
                ))
            name = pattern[i + 1:end].strip()
            if not name:
                return Failure(TemplateError(
                    TemplateError.EMPTY_PLACEHOLDER, f"Empty placeholder at position {i}", {"position": i},
                ))
            if "{" in name:
                return Failure(TemplateError(
                    TemplateError.UNCLOSED_BRACE, f"Unclosed brace at position {i}", {"position": i},
                ))
            if literal:
                tokens.append("".join(literal))
                literal = []
            tokens.append(Placeholder(name, i))
            i = end + 1
        elif char == "}":
            if pattern.startswith("}}", i):
                literal.append("}")
                i += 2
                continue
            return Failure(TemplateError(
                TemplateError.UNEXPECTED_CLOSE_BRACE, f"Unexpected '}}' at position {i}", {"position": i},
            ))
        else:
            literal.append(char)
            i += 1
    if literal:
        tokens.append("".join(literal))
    return Success(tokens)


def best_date(metadata: UnifiedMetadata) -> Optional[datetime]:
    """EXIF capture date, then document dates, then file modification time."""
    if metadata.image and metadata.image.date_taken:
        return metadata.image.date_taken
    if metadata.pdf and metadata.pdf.creation_date:
        return metadata.pdf.creation_date
    if metadata.office and metadata.office.created:
        return metadata.office.created
    return metadata.file.modified_at


def _date_part(fmt: str) -> Callable[[UnifiedMetadata], Optional[str]]:
    def resolve(metadata: UnifiedMetadata) -> Optional[str]:
        date = best_date(metadata)
        return date.strftime(fmt) if date else None
    return resolve


def _title(metadata: UnifiedMetadata) -> Optional[str]:
    if metadata.pdf and metadata.pdf.title:
        return metadata.pdf.title
    if metadata.office and metadata.office.title:
        return metadata.office.title
    return None


def _author(metadata: UnifiedMetadata) -> Optional[str]:
    if metadata.pdf and metadata.pdf.author:
        return metadata.pdf.author
    if metadata.office and metadata.office.creator:
        return metadata.office.creator
    return None


def _camera(metadata: UnifiedMetadata) -> Optional[str]:
    image = metadata.image
    if image is None:
        return None
    parts = [p for p in (image.camera_make, image.camera_model) if p]
    return " ".join(parts) or None


PLACEHOLDERS: Dict[str, Callable[[UnifiedMetadata], Optional[str]]] = {
    "original": lambda m: m.file.name,
    "name": lambda m: m.file.name,
    "ext": lambda m: m.file.extension or None,
    "size": lambda m: format_bytes(m.file.size),
    "date": _date_part("%Y-%m-%d"),
    "year": _date_part("%Y"),
    "month": _date_part("%m"),
    "day": _date_part("%d"),
    "title": _title,
    "author": _author,
    "camera": _camera,
}


def sanitize_component(value: str) -> str:
    """Replace characters no file system accepts in a name."""
    return _INVALID_CHARS.sub("_", value).strip().strip(".")


def validate_template(pattern: str) -> List[str]:
    """Human-readable problems with a pattern (empty when it renders)."""
    parsed = parse_template(pattern)
    if parsed.is_failure():
        return [parsed.error().message]
    return [
        f"Unknown placeholder {{{token.name}}}"
        for token in parsed.value()
        if isinstance(token, Placeholder) and token.name not in PLACEHOLDERS
    ]


def render_template(pattern: str, metadata: UnifiedMetadata) -> Result[str, TemplateError]:
    """Render ``pattern`` for a file; the result has no extension."""
    parsed = parse_template(pattern)
    if parsed.is_failure():
        return parsed

    parts = []
    for token in parsed.value():
        if isinstance(token, str):
            parts.append(token)
            continue
        resolver = PLACEHOLDERS.get(token.name)
        if resolver is None:
            return Failure(TemplateError(
                TemplateError.UNKNOWN_PLACEHOLDER,
                f"Unknown placeholder {{{token.name}}}",
                {"placeholder": token.name, "position": token.position},
            ))
        value = resolver(metadata)
        parts.append(sanitize_component(value) if value else MISSING_VALUE)

    return Success(sanitize_component("".join(parts)))


def render_filename(pattern: str, metadata: UnifiedMetadata) -> Result[str, TemplateError]:
    """Render ``pattern`` and append the file's original extension."""
    extension = metadata.file.extension
    return render_template(pattern, metadata).map(
        lambda stem: f"{stem}.{extension}" if extension else stem
    )

"""Tests for naming template parsing and rendering."""

from datetime import datetime, timezone

import pytest

from tidy_organizer.core.template_renderer import (
    MISSING_VALUE,
    Placeholder,
    best_date,
    parse_template,
    render_filename,
    render_template,
    sanitize_component,
    validate_template,
)
from tidy_organizer.domain.result import TemplateError

from factories import image_metadata, make_file, office_metadata, pdf_metadata


class TestParseTemplate:
    """Test tokenizing patterns."""

    def test_literals_and_placeholders(self):
        tokens = parse_template("{year}-{month}_{original}").value()
        assert tokens == [Placeholder("year", 0), "-", Placeholder("month", 7), "_", Placeholder("original", 15)]

    def test_escaped_braces(self):
        assert parse_template("{{literal}}").value() == ["{literal}"]

    @pytest.mark.parametrize("pattern,code", [
        ("{year", TemplateError.UNCLOSED_BRACE),
        ("{}", TemplateError.EMPTY_PLACEHOLDER),
        ("year}", TemplateError.UNEXPECTED_CLOSE_BRACE),
        ("{ye{ar}", TemplateError.UNCLOSED_BRACE),
    ])
    def test_syntax_errors(self, pattern, code):
        result = parse_template(pattern)
        assert result.is_failure()
        assert result.error().code == code

    def test_validate_template(self):
        assert validate_template("{date}_{original}") == []
        assert validate_template("{bogus}") == ["Unknown placeholder {bogus}"]
        assert len(validate_template("{oops")) == 1


class TestRender:
    """Test rendering against metadata."""

    def test_photo_pattern(self, canon_photo):
        assert render_template("{date}_{camera}", canon_photo).value() == "2023-07-14_Canon EOS R5"

    def test_render_filename_keeps_extension(self, canon_photo):
        assert render_filename("{year}/{original}", canon_photo).value() == "2023_IMG_0001.jpg"

    def test_missing_values_render_unknown(self):
        metadata = image_metadata(camera_make=None)
        assert render_template("{camera}-{title}", metadata).value() == f"{MISSING_VALUE}-{MISSING_VALUE}"

    def test_document_fields(self):
        assert render_template("{author} - {title}", pdf_metadata(title="Q3", author="Ann")).value() == "Ann - Q3"
        assert render_template("{author}", office_metadata(creator="Bo")).value() == "Bo"

    def test_values_are_sanitized(self):
        metadata = pdf_metadata(title='a/b:c?')
        assert render_template("{title}", metadata).value() == "a_b_c_"

    def test_unknown_placeholder_is_error(self, canon_photo):
        result = render_template("{nope}", canon_photo)
        assert result.error().code == TemplateError.UNKNOWN_PLACEHOLDER
        assert result.error().details["placeholder"] == "nope"

    def test_size_placeholder(self):
        from tidy_organizer.models.metadata import UnifiedMetadata

        metadata = UnifiedMetadata.basic(make_file("notes.txt", size=1536))
        assert render_filename("{original} ({size})", metadata).value() == "notes (1.50 KB).txt"


class TestBestDate:
    """Test date precedence."""

    def test_prefers_capture_date(self, canon_photo):
        assert best_date(canon_photo).year == 2023

    def test_document_dates(self):
        created = datetime(2020, 1, 2, tzinfo=timezone.utc)
        assert best_date(pdf_metadata(creation_date=created)) == created
        assert best_date(office_metadata(created=created)) == created

    def test_falls_back_to_modification_time(self):
        metadata = image_metadata()
        assert best_date(metadata) == metadata.file.modified_at


def test_sanitize_component():
    assert sanitize_component(' ..name<>. ') == "name__"

"""Tests for dotted field path resolution."""

from datetime import datetime, timezone

from tidy_organizer.core.field_resolver import (
    VALID_FIELD_PATHS,
    field_exists,
    is_valid_field_path,
    resolve_field,
    resolve_multiple_fields,
)
from tidy_organizer.domain.result import FieldResolutionError
from tidy_organizer.models.metadata import GPSCoordinates

from factories import image_metadata, office_metadata, pdf_metadata


class TestResolveField:
    """Test resolving individual paths."""

    def test_image_field(self, canon_photo):
        resolved = resolve_field(canon_photo, "image.cameraMake").value()
        assert resolved.exists
        assert resolved.value == "Canon"
        assert resolved.original_type == "string"

    def test_numbers_keep_native_type(self, canon_photo):
        """Numbers resolve as numbers, not strings."""
        resolved = resolve_field(canon_photo, "image.iso").value()
        assert resolved.value == 400
        assert resolved.original_type == "number"
        assert resolved.text == "400"

    def test_dates_keep_native_type(self, canon_photo):
        resolved = resolve_field(canon_photo, "image.dateTaken").value()
        assert resolved.value == datetime(2023, 7, 14, 12, 0, tzinfo=timezone.utc)
        assert resolved.original_type == "date"
        assert resolved.text == "2023-07-14T12:00:00.000Z"

    def test_aliases(self, canon_photo):
        """make/model are aliases and camera joins both."""
        assert resolve_field(canon_photo, "image.make").value().value == "Canon"
        assert resolve_field(canon_photo, "image.model").value().value == "EOS R5"
        assert resolve_field(canon_photo, "image.camera").value().value == "Canon EOS R5"

    def test_gps_subfield(self):
        metadata = image_metadata(gps=GPSCoordinates(48.85, 2.35))
        assert resolve_field(metadata, "image.gps.latitude").value().value == 48.85
        assert not resolve_field(metadata, "image.gps.altitude").value().exists

    def test_pdf_and_office_fields(self):
        pdf = pdf_metadata(title="Annual Report", page_count=12)
        assert resolve_field(pdf, "pdf.title").value().value == "Annual Report"
        assert resolve_field(pdf, "pdf.pageCount").value().value == 12

        office = office_metadata(creator="Dana")
        assert resolve_field(office, "office.author").value().value == "Dana"

    def test_file_fields(self, canon_photo):
        assert resolve_field(canon_photo, "file.extension").value().value == "jpg"
        assert resolve_field(canon_photo, "file.fullName").value().value == "IMG_0001.jpg"
        assert resolve_field(canon_photo, "file.category").value().text == "image"

    def test_missing_section_is_absent_not_error(self, canon_photo):
        """A path into a missing section resolves with exists=False."""
        result = resolve_field(canon_photo, "pdf.title")
        assert result.is_success()
        assert not result.value().exists

    def test_unset_field_is_absent(self):
        metadata = image_metadata(camera_make="Nikon")
        assert not resolve_field(metadata, "image.cameraModel").value().exists

    def test_unknown_namespace_is_absent(self, canon_photo):
        assert not resolve_field(canon_photo, "audio.artist").value().exists

    def test_empty_path_is_error(self, canon_photo):
        result = resolve_field(canon_photo, "")
        assert result.is_failure()
        assert result.error().code == FieldResolutionError.INVALID_FIELD_PATH

    def test_empty_segment_is_error(self, canon_photo):
        result = resolve_field(canon_photo, "image..cameraMake")
        assert result.is_failure()
        assert "empty segment" in result.error().message


class TestHelpers:
    """Test convenience helpers."""

    def test_field_exists(self, canon_photo):
        assert field_exists(canon_photo, "image.cameraMake")
        assert not field_exists(canon_photo, "pdf.author")
        assert not field_exists(canon_photo, "")

    def test_resolve_multiple_fields(self, canon_photo):
        results = resolve_multiple_fields(canon_photo, ["image.cameraMake", "image.iso"])
        assert set(results) == {"image.cameraMake", "image.iso"}
        assert results["image.iso"].value().value == 400

    def test_valid_field_paths(self):
        assert is_valid_field_path("image.cameraMake")
        assert is_valid_field_path("image.gps.longitude")
        assert is_valid_field_path("office.wordCount")
        assert not is_valid_field_path("image.lens")
        assert VALID_FIELD_PATHS == sorted(VALID_FIELD_PATHS)

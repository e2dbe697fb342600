"""Unified metadata model: one record per scanned file.

Metadata extractors (EXIF, PDF info dictionary, OOXML core properties) are
external collaborators; they always hand back a ``UnifiedMetadata`` and encode
failures in ``extraction_status`` rather than raising.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .file_info import FileInfo, MetadataCapability
from ..utils.dates import format_timestamp, parse_timestamp


class ExtractionStatus(Enum):
    """Outcome of metadata extraction for a file."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    UNSUPPORTED = "unsupported"


@dataclass(slots=True, frozen=True)
class GPSCoordinates:
    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(slots=True, frozen=True)
class ImageMetadata:
    """EXIF-derived image metadata. Every field is optional."""
    date_taken: Optional[datetime] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    gps: Optional[GPSCoordinates] = None
    width: Optional[int] = None
    height: Optional[int] = None
    orientation: Optional[int] = None
    exposure_time: Optional[str] = None
    f_number: Optional[float] = None
    iso: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dateTaken": format_timestamp(self.date_taken),
            "cameraMake": self.camera_make,
            "cameraModel": self.camera_model,
            "gps": self.gps.to_dict() if self.gps else None,
            "width": self.width,
            "height": self.height,
            "orientation": self.orientation,
            "exposureTime": self.exposure_time,
            "fNumber": self.f_number,
            "iso": self.iso,
        }


@dataclass(slots=True, frozen=True)
class PDFMetadata:
    """PDF document information dictionary."""
    title: Optional[str] = None
    author: Optional[str] = None
    subject: Optional[str] = None
    keywords: Optional[str] = None
    creator: Optional[str] = None
    producer: Optional[str] = None
    creation_date: Optional[datetime] = None
    modification_date: Optional[datetime] = None
    page_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "subject": self.subject,
            "keywords": self.keywords,
            "creator": self.creator,
            "producer": self.producer,
            "creationDate": format_timestamp(self.creation_date),
            "modificationDate": format_timestamp(self.modification_date),
            "pageCount": self.page_count,
        }


@dataclass(slots=True, frozen=True)
class OfficeMetadata:
    """Office Open XML core (Dublin Core) and app properties."""
    title: Optional[str] = None
    subject: Optional[str] = None
    creator: Optional[str] = None
    keywords: Optional[str] = None
    description: Optional[str] = None
    last_modified_by: Optional[str] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    revision: Optional[int] = None
    category: Optional[str] = None
    application: Optional[str] = None
    app_version: Optional[str] = None
    page_count: Optional[int] = None
    word_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "subject": self.subject,
            "creator": self.creator,
            "keywords": self.keywords,
            "description": self.description,
            "lastModifiedBy": self.last_modified_by,
            "created": format_timestamp(self.created),
            "modified": format_timestamp(self.modified),
            "revision": self.revision,
            "category": self.category,
            "application": self.application,
            "appVersion": self.app_version,
            "pageCount": self.page_count,
            "wordCount": self.word_count,
        }


@dataclass(slots=True, frozen=True)
class UnifiedMetadata:
    """Extractor-agnostic metadata for one file.

    At most one of ``image``, ``pdf`` and ``office`` is set. A ``success``
    status with no section is only valid for files without a dedicated
    extractor.
    """
    file: FileInfo
    image: Optional[ImageMetadata] = None
    pdf: Optional[PDFMetadata] = None
    office: Optional[OfficeMetadata] = None
    extraction_status: ExtractionStatus = ExtractionStatus.UNSUPPORTED
    extraction_error: Optional[str] = None

    def __post_init__(self):
        sections = [s for s in (self.image, self.pdf, self.office) if s is not None]
        if len(sections) > 1:
            raise ValueError("UnifiedMetadata may carry at most one of image, pdf, office")
        if (self.extraction_status is ExtractionStatus.SUCCESS and not sections
                and self.file.metadata_capability is MetadataCapability.FULL):
            raise ValueError(
                f"extraction_status 'success' requires a metadata section for {self.file.full_name}"
            )

    @classmethod
    def basic(cls, file: FileInfo) -> "UnifiedMetadata":
        """Metadata for a file that has no dedicated extractor."""
        return cls(file=file, extraction_status=ExtractionStatus.UNSUPPORTED)

    @classmethod
    def failed(cls, file: FileInfo, error: str) -> "UnifiedMetadata":
        """Metadata for a file whose extractor failed."""
        return cls(file=file, extraction_status=ExtractionStatus.FAILED, extraction_error=error)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "file": self.file.to_dict(),
            "image": self.image.to_dict() if self.image else None,
            "pdf": self.pdf.to_dict() if self.pdf else None,
            "office": self.office.to_dict() if self.office else None,
            "extractionStatus": self.extraction_status.value,
            "extractionError": self.extraction_error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnifiedMetadata":
        """Create from dictionary (the JSON shape produced by ``to_dict``)."""
        image = data.get("image")
        pdf = data.get("pdf")
        office = data.get("office")
        return cls(
            file=FileInfo.from_dict(data["file"]),
            image=_image_from_dict(image) if image else None,
            pdf=_pdf_from_dict(pdf) if pdf else None,
            office=_office_from_dict(office) if office else None,
            extraction_status=ExtractionStatus(data.get("extractionStatus", "unsupported")),
            extraction_error=data.get("extractionError"),
        )


def _image_from_dict(data: Dict[str, Any]) -> ImageMetadata:
    gps = data.get("gps")
    return ImageMetadata(
        date_taken=parse_timestamp(data.get("dateTaken")),
        camera_make=data.get("cameraMake"),
        camera_model=data.get("cameraModel"),
        gps=GPSCoordinates(gps["latitude"], gps["longitude"]) if gps else None,
        width=data.get("width"),
        height=data.get("height"),
        orientation=data.get("orientation"),
        exposure_time=data.get("exposureTime"),
        f_number=data.get("fNumber"),
        iso=data.get("iso"),
    )


def _pdf_from_dict(data: Dict[str, Any]) -> PDFMetadata:
    return PDFMetadata(
        title=data.get("title"),
        author=data.get("author"),
        subject=data.get("subject"),
        keywords=data.get("keywords"),
        creator=data.get("creator"),
        producer=data.get("producer"),
        creation_date=parse_timestamp(data.get("creationDate")),
        modification_date=parse_timestamp(data.get("modificationDate")),
        page_count=data.get("pageCount"),
    )


def _office_from_dict(data: Dict[str, Any]) -> OfficeMetadata:
    return OfficeMetadata(
        title=data.get("title"),
        subject=data.get("subject"),
        creator=data.get("creator"),
        keywords=data.get("keywords"),
        description=data.get("description"),
        last_modified_by=data.get("lastModifiedBy"),
        created=parse_timestamp(data.get("created")),
        modified=parse_timestamp(data.get("modified")),
        revision=data.get("revision"),
        category=data.get("category"),
        application=data.get("application"),
        app_version=data.get("appVersion"),
        page_count=data.get("pageCount"),
        word_count=data.get("wordCount"),
    )

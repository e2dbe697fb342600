"""Shared fixtures for the tidy organizer tests."""

from datetime import datetime, timezone

import pytest

from tidy_organizer.core.operation_history import OperationHistoryStore
from tidy_organizer.models.history import PruneConfig
from tidy_organizer.models.metadata import UnifiedMetadata

from factories import image_metadata


@pytest.fixture
def canon_photo() -> UnifiedMetadata:
    """A Canon photo with full EXIF data."""
    return image_metadata(
        "IMG_0001.jpg",
        date_taken=datetime(2023, 7, 14, 12, 0, tzinfo=timezone.utc),
        camera_make="Canon",
        camera_model="EOS R5",
        width=8192,
        height=5464,
        iso=400,
    )


@pytest.fixture
def history_path(tmp_path):
    return tmp_path / "config" / "history.json"


@pytest.fixture
def history_store(history_path) -> OperationHistoryStore:
    """A history store in a temp dir with pruning disabled."""
    return OperationHistoryStore(history_path, PruneConfig(max_entries=0, max_age_days=0))

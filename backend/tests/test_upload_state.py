"""
Unit tests for the upload status state machine.
"""

from datetime import datetime

import pytest

from wellspend.core.errors import InvalidTransition
from wellspend.models.ingest_models import Upload, UploadStatus
from wellspend.services.upload_state import can_transition, transition


def _upload(status=UploadStatus.CREATED) -> Upload:
    return Upload(id="u-1", status=status, is_processed=False)


class TestTransitions:

    def test_happy_path(self):
        upload = _upload()
        transition(upload, UploadStatus.PROCESSING)
        transition(upload, UploadStatus.PROCESSED, at=datetime(2024, 3, 15))

        assert upload.status == UploadStatus.PROCESSED
        assert upload.is_processed is True
        assert upload.processed_at == datetime(2024, 3, 15)
        assert upload.error_log is None

    def test_failure_records_error(self):
        upload = _upload(UploadStatus.PROCESSING)
        transition(upload, UploadStatus.FAILED, error="Invalid JSON")

        assert upload.status == UploadStatus.FAILED
        assert upload.is_processed is False
        assert upload.error_log == "Invalid JSON"

    @pytest.mark.parametrize("current, target", [
        (UploadStatus.CREATED, UploadStatus.PROCESSED),
        (UploadStatus.PROCESSED, UploadStatus.FAILED),
        (UploadStatus.PROCESSED, UploadStatus.PROCESSING),
        (UploadStatus.FAILED, UploadStatus.PROCESSING),
        (UploadStatus.FAILED, UploadStatus.PROCESSED),
    ])
    def test_illegal_transitions_raise(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidTransition):
            transition(_upload(current), target)

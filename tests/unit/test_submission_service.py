"""
Unit tests for the submission pipeline and SubmissionService.

Bitrix24 is replaced by the `bitrix` stub fixture (patched requests.post).

Run: pytest tests/unit/test_submission_service.py -v
"""

import pytest

from services.scoring_service import score_inspection
from services.submission_service import (
    SubmissionService,
    encode_attachments,
    submit_inspection,
)
from exceptions import (
    CrmSubmissionError,
    InspectionValidationError,
    SubmissionInProgressError,
)

from tests.conftest import MockBitrixResponse
from tests.factories import InspectionFormFactory


class TestEncodeAttachments:
    """Tests for encode_attachments()"""

    def test_names_files_by_slot_and_batch(self):
        form = InspectionFormFactory.create_complete(batch_number="B100")

        attachments = encode_attachments(form)

        assert [a.filename for a in attachments] == ["exterior_B100.png", "crumb_B100.jpg"]

    def test_skips_empty_slots(self):
        form = InspectionFormFactory.create_complete(with_photos=False)

        assert encode_attachments(form) == []


class TestSubmitInspection:
    """Tests for submit_inspection()"""

    def test_creates_record_then_comment(self, bitrix, bitrix_client, sample_product):
        # Arrange
        form = InspectionFormFactory.create_complete(notes="Crisp")
        score = score_inspection(form, sample_product.reference_dimensions)

        # Act
        record_id = submit_inspection(form, sample_product, score, bitrix_client)

        # Assert
        assert record_id == "4242"
        assert bitrix.methods == ["crm.deal.add", "crm.timeline.comment.add"]

        deal = bitrix.payload("crm.deal.add")["fields"]
        assert deal["UF_CRM_1758475669"] == "B100"
        assert deal["UF_CRM_1758475694"] == "passed"
        assert deal["UF_CRM_1758475725"] == "5.00"
        assert deal["COMMENTS"] == "Initial notes: Crisp"

        comment = bitrix.payload("crm.timeline.comment.add")["fields"]
        assert comment["ENTITY_ID"] == 4242
        assert comment["ENTITY_TYPE"] == "deal"
        assert len(comment["FILES"]) == 2

    def test_create_failure_aborts(self, bitrix, bitrix_client, sample_product):
        # Arrange
        bitrix.set_response("crm.deal.add", {"error": "ACCESS_DENIED", "error_description": "No access"})
        form = InspectionFormFactory.create_complete()
        score = score_inspection(form, sample_product.reference_dimensions)

        # Act
        with pytest.raises(CrmSubmissionError) as exc_info:
            submit_inspection(form, sample_product, score, bitrix_client)

        # Assert
        assert "No access" in exc_info.value.message
        assert exc_info.value.status_code == 503
        assert bitrix.methods == ["crm.deal.add"]

    def test_comment_failure_still_succeeds(self, bitrix, bitrix_client, sample_product, connection_error):
        """The record exists, so a failed comment is not a failed submission."""
        # Arrange
        bitrix.set_response("crm.timeline.comment.add", connection_error)
        form = InspectionFormFactory.create_complete()
        score = score_inspection(form, sample_product.reference_dimensions)

        # Act
        record_id = submit_inspection(form, sample_product, score, bitrix_client)

        # Assert
        assert record_id == "4242"
        assert bitrix.methods == ["crm.deal.add", "crm.timeline.comment.add"]


class TestSubmissionService:
    """Tests for SubmissionService"""

    def test_successful_submit_resets_form(self, bitrix, bitrix_client, filled_inspection):
        # Arrange
        service = SubmissionService(filled_inspection, bitrix_client, reset_delay_seconds=0)

        # Act
        state = service.submit()

        # Assert
        assert state.outcome == "success"
        assert state.record_id == "4242"
        assert filled_inspection.get_form().selected_sku is None
        assert service.get_state().outcome is None

    def test_delayed_reset_blocks_resubmit(self, bitrix, bitrix_client, filled_inspection):
        """No duplicate record while the success message is showing."""
        # Arrange
        service = SubmissionService(filled_inspection, bitrix_client, reset_delay_seconds=60)
        service.submit()

        # Act / Assert
        assert service.get_state().reset_scheduled is True
        assert filled_inspection.get_form().batch_number == "B100"
        with pytest.raises(SubmissionInProgressError):
            service.submit()
        assert bitrix.methods.count("crm.deal.add") == 1

        # Manual reset cancels the pending timer
        service.reset_form()
        assert filled_inspection.get_form().selected_sku is None
        assert service.get_state().reset_scheduled is False

    def test_failed_submit_keeps_form(self, bitrix, bitrix_client, filled_inspection):
        # Arrange
        bitrix.set_response("crm.deal.add", MockBitrixResponse({"result": None}))
        service = SubmissionService(filled_inspection, bitrix_client, reset_delay_seconds=0)

        # Act
        with pytest.raises(CrmSubmissionError):
            service.submit()

        # Assert
        state = service.get_state()
        assert state.outcome == "error"
        assert state.pending is False
        assert state.error_message
        assert filled_inspection.get_form().batch_number == "B100"
        assert filled_inspection.get_form().exterior_photo is not None

    def test_retry_after_failure(self, bitrix, bitrix_client, filled_inspection, connection_error):
        # Arrange
        bitrix.set_response("crm.deal.add", connection_error)
        service = SubmissionService(filled_inspection, bitrix_client, reset_delay_seconds=0)
        with pytest.raises(CrmSubmissionError):
            service.submit()

        # Act
        bitrix.set_response("crm.deal.add", {"result": 5151})
        state = service.submit()

        # Assert
        assert state.record_id == "5151"

    def test_dismiss_error_keeps_form(self, bitrix, bitrix_client, filled_inspection, connection_error):
        bitrix.set_response("crm.deal.add", connection_error)
        service = SubmissionService(filled_inspection, bitrix_client, reset_delay_seconds=0)
        with pytest.raises(CrmSubmissionError):
            service.submit()

        state = service.dismiss_error()

        assert state.outcome is None
        assert filled_inspection.get_form().batch_number == "B100"

    def test_invalid_form_never_calls_crm(self, bitrix, bitrix_client, inspection):
        # Arrange
        service = SubmissionService(inspection, bitrix_client, reset_delay_seconds=0)

        # Act
        with pytest.raises(InspectionValidationError):
            service.submit()

        # Assert
        assert bitrix.calls == []
        assert service.get_state().pending is False
        assert service.get_state().outcome is None

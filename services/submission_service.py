"""
Inspection submission pipeline.

Sends a confirmed inspection to the CRM in two sequential steps:

    1. create the record (deal or smart-process item); failure aborts
    2. post the detailed timeline comment with both photos; failure is
       logged only, because the record already exists

On success the form resets after a short delay so the client can show the
success message. On failure the form is left untouched for a retry.
"""

import threading
from typing import Optional

import structlog

from config import settings
from integrations.bitrix import (
    BitrixClient,
    CrmAttachment,
    CrmError,
    format_record,
    format_timeline_comment,
    get_bitrix_client,
)
from models.inspection import InspectionForm, ScoreResult, SubmissionState
from models.photo import PhotoSlot
from models.product import Product
from services.inspection_service import InspectionService, get_inspection_service
from utils.file_utils import to_base64
from exceptions import CrmSubmissionError, SubmissionInProgressError

logger = structlog.get_logger(__name__)


def encode_attachments(form: InspectionForm) -> list[CrmAttachment]:
    """Base64-encode the attached photos, skipping empty slots."""
    attachments = []
    for slot in (PhotoSlot.EXTERIOR, PhotoSlot.CRUMB):
        photo = form.photo(slot)
        if photo is None:
            continue
        attachments.append(
            CrmAttachment(
                filename=f"{slot.value}_{form.batch_number}.{photo.extension}",
                data=to_base64(photo.content),
            )
        )
    return attachments


def submit_inspection(
    form: InspectionForm,
    product: Product,
    score: ScoreResult,
    client: BitrixClient
) -> str:
    """
    Send one inspection report to the CRM.

    Args:
        form: Confirmed inspection form
        product: Reference product
        score: Score computed at confirmation time
        client: Bitrix24 client

    Returns:
        Identifier of the created CRM record

    Raises:
        CrmSubmissionError: If the record could not be created
    """
    logger.info(
        "submitting_inspection",
        sku=product.sku,
        batch_number=form.batch_number,
        status=score.status.value,
        target=client.target.kind
    )

    # Step 1: the record itself
    try:
        record_id = client.create_record(format_record(form, product, score))
    except CrmError as e:
        logger.error(
            "inspection_submission_failed",
            sku=product.sku,
            batch_number=form.batch_number,
            error=str(e)
        )
        raise CrmSubmissionError(str(e), details={"batch_number": form.batch_number})

    # Step 2: detailed comment and photos
    try:
        client.add_timeline_comment(
            record_id,
            format_timeline_comment(form, product, score),
            encode_attachments(form)
        )
    except Exception as e:
        logger.error(
            "bitrix_timeline_comment_failed",
            record_id=record_id,
            error=str(e),
            error_type=type(e).__name__
        )

    logger.info("inspection_submitted", record_id=record_id, batch_number=form.batch_number)
    return record_id


class SubmissionService:
    """
    Submission orchestration.

    Guards against concurrent submissions, re-validates and re-scores the
    form, runs the pipeline and schedules the post-success reset.
    """

    def __init__(
        self,
        inspection: Optional[InspectionService] = None,
        client: Optional[BitrixClient] = None,
        reset_delay_seconds: Optional[float] = None
    ):
        self.inspection = inspection or get_inspection_service()
        self.client = client or get_bitrix_client()
        self.reset_delay_seconds = (
            settings.form_reset_delay_seconds if reset_delay_seconds is None else reset_delay_seconds
        )
        self._state = SubmissionState()
        self._lock = threading.Lock()
        self._reset_timer: Optional[threading.Timer] = None
        self.inspection.add_reset_listener(self._on_form_reset)

    # ===================
    # READ OPERATIONS
    # ===================

    def get_state(self) -> SubmissionState:
        """Status of the latest attempt."""
        with self._lock:
            return self._state.model_copy()

    # ===================
    # WRITE OPERATIONS
    # ===================

    def submit(self) -> SubmissionState:
        """
        Validate, score and send the current form.

        Returns:
            SubmissionState with the created record id

        Raises:
            SubmissionInProgressError: If a submission is pending or a
                successful one is waiting for its reset
            InspectionValidationError: If required fields are missing
            CrmSubmissionError: If the CRM record could not be created
        """
        with self._lock:
            if self._state.pending or self._state.reset_scheduled:
                raise SubmissionInProgressError()
            self._state = SubmissionState(pending=True)

        try:
            summary = self.inspection.build_summary()
            record_id = submit_inspection(summary.form, summary.product, summary.score, self.client)
        except CrmSubmissionError as e:
            with self._lock:
                self._state = SubmissionState(outcome="error", error_message=e.message)
            raise
        except Exception:
            with self._lock:
                self._state = SubmissionState()
            raise

        with self._lock:
            self._state = SubmissionState(
                outcome="success",
                record_id=record_id,
                reset_scheduled=True
            )
            result = self._state.model_copy()
        self._schedule_reset()
        return result

    def dismiss_error(self) -> SubmissionState:
        """Hide the failure banner. Form state is kept."""
        with self._lock:
            if self._state.outcome == "error":
                self._state = SubmissionState()
            return self._state.model_copy()

    def reset_form(self) -> None:
        """
        Abandon the current inspection.

        Raises:
            SubmissionInProgressError: If a submission is pending
        """
        with self._lock:
            if self._state.pending:
                raise SubmissionInProgressError()
        self.inspection.reset()

    # ===================
    # HELPERS
    # ===================

    def _schedule_reset(self) -> None:
        with self._lock:
            self._cancel_timer()
            if self.reset_delay_seconds <= 0:
                timer = None
            else:
                timer = threading.Timer(self.reset_delay_seconds, self._reset_after_success)
                timer.daemon = True
                self._reset_timer = timer

        if timer is None:
            self._reset_after_success()
        else:
            timer.start()
            logger.debug("form_reset_scheduled", delay_seconds=self.reset_delay_seconds)

    def _reset_after_success(self) -> None:
        with self._lock:
            self._reset_timer = None
        self.inspection.reset()
        logger.info("form_reset_after_submission")

    def _on_form_reset(self) -> None:
        """Drop status and any scheduled reset once the form is cleared."""
        with self._lock:
            if self._state.pending:
                return
            self._cancel_timer()
            self._state = SubmissionState()

    def _cancel_timer(self) -> None:
        if self._reset_timer is not None:
            self._reset_timer.cancel()
            self._reset_timer = None


# Singleton instance for convenience
_submission_service: Optional[SubmissionService] = None


def get_submission_service() -> SubmissionService:
    """Get or create SubmissionService instance."""
    global _submission_service
    if _submission_service is None:
        _submission_service = SubmissionService()
    return _submission_service

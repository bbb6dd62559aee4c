"""
Bitrix24 CRM integration for inspection reports.

Talks to a Bitrix24 inbound webhook. Two entity schemas are supported as a
tagged variant chosen at configuration time:

    deal           crm.deal.add, timeline entity type "deal"
    smart_process  crm.item.add, timeline entity type "DYNAMIC_{entityTypeId}"
"""

import html
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union

import requests
import structlog

from config import Settings, settings
from integrations.bitrix_messages import get_message
from models.inspection import InspectionForm, InspectionStatus, ScoreResult
from models.product import Product

logger = structlog.get_logger(__name__)


# Custom deal fields provisioned in the production portal
DEAL_FIELD_BATCH_NUMBER = "UF_CRM_1758475669"
DEAL_FIELD_STATUS = "UF_CRM_1758475694"
DEAL_FIELD_AVERAGE_SCORE = "UF_CRM_1758475725"


class CrmError(Exception):
    """Bitrix24 API error."""
    pass


# ===================
# RECORDS
# ===================

@dataclass(frozen=True)
class CrmRecord:
    """Named values of one inspection record, independent of entity schema."""
    title: str
    batch_number: str
    status: str
    average_score: str
    comment: str


@dataclass(frozen=True)
class CrmAttachment:
    """Inline file for a timeline comment (base64 data)."""
    filename: str
    data: str = field(repr=False)


# ===================
# TARGETS
# ===================

@dataclass(frozen=True)
class DealTarget:
    """Classic CRM deal."""

    batch_number_field: str = DEAL_FIELD_BATCH_NUMBER
    status_field: str = DEAL_FIELD_STATUS
    average_score_field: str = DEAL_FIELD_AVERAGE_SCORE
    kind: Literal["deal"] = "deal"

    create_method = "crm.deal.add"

    @property
    def timeline_entity_type(self) -> str:
        return "deal"

    def build_create_payload(self, record: CrmRecord) -> dict:
        return {
            "fields": {
                "TITLE": record.title,
                self.batch_number_field: record.batch_number,
                self.status_field: record.status,
                self.average_score_field: record.average_score,
                "COMMENTS": record.comment,
            }
        }

    def extract_id(self, result: Any) -> Optional[str]:
        if isinstance(result, bool) or not isinstance(result, (int, str)):
            return None
        return str(result) if str(result) else None


@dataclass(frozen=True)
class SmartProcessItemTarget:
    """Smart-process item. Every custom field name must be configured."""

    entity_type_id: int
    batch_number_field: str
    status_field: str
    average_score_field: str
    kind: Literal["smart_process"] = "smart_process"

    create_method = "crm.item.add"

    @property
    def timeline_entity_type(self) -> str:
        return f"DYNAMIC_{self.entity_type_id}"

    def build_create_payload(self, record: CrmRecord) -> dict:
        return {
            "entityTypeId": self.entity_type_id,
            "fields": {
                "title": record.title,
                self.batch_number_field: record.batch_number,
                self.status_field: record.status,
                self.average_score_field: record.average_score,
                "comments": record.comment,
            }
        }

    def extract_id(self, result: Any) -> Optional[str]:
        if not isinstance(result, dict):
            return None
        item_id = (result.get("item") or {}).get("id")
        return str(item_id) if item_id else None


CrmTarget = Union[DealTarget, SmartProcessItemTarget]


def target_from_settings(config: Settings) -> CrmTarget:
    """
    Build the configured CRM target.

    Settings validation guarantees the smart-process fields are present.
    """
    if config.crm_target == "smart_process":
        return SmartProcessItemTarget(
            entity_type_id=config.crm_entity_type_id,
            batch_number_field=config.crm_field_batch_number,
            status_field=config.crm_field_status,
            average_score_field=config.crm_field_average_score,
        )
    return DealTarget(
        batch_number_field=config.crm_field_batch_number or DEAL_FIELD_BATCH_NUMBER,
        status_field=config.crm_field_status or DEAL_FIELD_STATUS,
        average_score_field=config.crm_field_average_score or DEAL_FIELD_AVERAGE_SCORE,
    )


# ===================
# FORMATTING
# ===================

def _fmt(value: Any) -> str:
    """Render numbers without a trailing .0."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return html.escape(str(value)) if value is not None else ""


def format_record(form: InspectionForm, product: Product, score: ScoreResult) -> CrmRecord:
    """
    Build the create-record values.

    User-entered text is HTML-escaped.

    Args:
        form: Confirmed inspection form
        product: Reference product
        score: Precomputed score

    Returns:
        CrmRecord
    """
    notes = html.escape(form.notes) if form.notes else get_message("no_notes")
    return CrmRecord(
        title=get_message("record_title", product_name=product.name, batch_number=form.batch_number),
        batch_number=form.batch_number,
        status=score.status.value,
        average_score=score.formatted_average,
        comment=get_message("initial_comment", notes=notes),
    )


def format_timeline_comment(form: InspectionForm, product: Product, score: ScoreResult) -> str:
    """
    Build the detailed HTML report posted to the record timeline.

    User-entered text is HTML-escaped.
    """
    dims = product.reference_dimensions
    status_key = "status_passed" if score.status == InspectionStatus.PASSED else "status_not_passed"

    return get_message(
        "timeline_comment",
        status=get_message(status_key),
        average_score=score.formatted_average,
        height=_fmt(form.height),
        width=_fmt(form.width),
        length=_fmt(form.length),
        height_min=_fmt(dims.height.min),
        height_max=_fmt(dims.height.max),
        width_min=_fmt(dims.width.min),
        width_max=_fmt(dims.width.max),
        length_min=_fmt(dims.length.min),
        length_max=_fmt(dims.length.max),
        color_rating=form.color_rating,
        crumb_rating=form.crumb_rating,
        taste_rating=form.taste_rating,
        notes=html.escape(form.notes) if form.notes else get_message("no_notes"),
    )


# ===================
# CLIENT
# ===================

class BitrixClient:
    """
    Minimal Bitrix24 REST client.

    Every call is a JSON POST to {webhook_url}{method}.
    """

    def __init__(
        self,
        webhook_url: str,
        target: CrmTarget,
        timeout: float = 30.0
    ):
        self.webhook_url = webhook_url if webhook_url.endswith("/") else webhook_url + "/"
        self.target = target
        self.timeout = timeout

    def call(self, method: str, payload: dict) -> Any:
        """
        Call a REST method.

        Args:
            method: Bitrix24 method name, e.g. "crm.deal.add"
            payload: JSON body

        Returns:
            The "result" member of the response

        Raises:
            CrmError: On transport failure, non-JSON body or API error
        """
        url = f"{self.webhook_url}{method}"

        try:
            logger.info("calling_bitrix", method=method)
            response = requests.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error("bitrix_request_failed", method=method, error=str(e))
            raise CrmError(f"Failed to call {method}: {str(e)}")

        try:
            body = response.json()
        except ValueError:
            logger.error("bitrix_invalid_response", method=method, status_code=response.status_code)
            raise CrmError(f"{method} returned a non-JSON response (HTTP {response.status_code})")

        if not isinstance(body, dict):
            raise CrmError(f"{method} returned an unexpected response")

        if body.get("error"):
            error_msg = body.get("error_description") or body["error"]
            logger.error("bitrix_api_error", method=method, error=error_msg)
            raise CrmError(f"Bitrix24 API error: {error_msg}")

        if response.status_code >= 400:
            logger.error("bitrix_http_error", method=method, status_code=response.status_code)
            raise CrmError(f"{method} failed with HTTP {response.status_code}")

        return body.get("result")

    def create_record(self, record: CrmRecord) -> str:
        """
        Create a deal or smart-process item.

        Returns:
            Identifier of the created record

        Raises:
            CrmError: If the call fails or no identifier comes back
        """
        result = self.call(self.target.create_method, self.target.build_create_payload(record))
        record_id = self.target.extract_id(result)

        if not record_id:
            logger.error("bitrix_record_id_missing", target=self.target.kind)
            raise CrmError("Failed to create record: no identifier in response")

        logger.info("bitrix_record_created", target=self.target.kind, record_id=record_id)
        return record_id

    def add_timeline_comment(
        self,
        record_id: str,
        comment: str,
        attachments: Optional[list[CrmAttachment]] = None
    ) -> Any:
        """
        Post a comment (optionally with inline files) to a record's timeline.

        Raises:
            CrmError: If the call fails
        """
        fields: dict[str, Any] = {
            "ENTITY_ID": int(record_id) if record_id.isdigit() else record_id,
            "ENTITY_TYPE": self.target.timeline_entity_type,
            "COMMENT": comment,
        }
        if attachments:
            fields["FILES"] = [{"fileData": [a.filename, a.data]} for a in attachments]

        result = self.call("crm.timeline.comment.add", {"fields": fields})
        logger.info(
            "bitrix_timeline_comment_added",
            record_id=record_id,
            files=len(attachments or [])
        )
        return result


# Singleton instance for convenience
_bitrix_client: Optional[BitrixClient] = None


def get_bitrix_client() -> BitrixClient:
    """Get or create BitrixClient from settings."""
    global _bitrix_client
    if _bitrix_client is None:
        _bitrix_client = BitrixClient(
            webhook_url=settings.crm_webhook_url,
            target=target_from_settings(settings),
            timeout=settings.crm_timeout_seconds
        )
    return _bitrix_client

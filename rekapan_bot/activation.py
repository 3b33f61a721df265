import logging
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel

from .dates import format_stored_date, now_local
from .dedup import is_duplicate
from .errors import DuplicateError, ValidationError
from .extractor import ActivationExtractor
from .schemas import ActivationRecord, FormatTag
from .sheets import SheetStore


class WriteState(str, Enum):
    RECEIVED = "RECEIVED"
    CLASSIFIED = "CLASSIFIED"
    EXTRACTED = "EXTRACTED"
    VALIDATED = "VALIDATED"
    REJECTED_INCOMPLETE = "REJECTED_INCOMPLETE"
    REJECTED_DUPLICATE = "REJECTED_DUPLICATE"
    PERSISTED = "PERSISTED"


class ValidationMode(str, Enum):
    ENHANCED = "enhanced"  # AO is required
    LEGACY = "legacy"      # SN ONT and NIK ONT are required


REQUIRED_FIELDS = {
    ValidationMode.ENHANCED: [("AO", "reference_id")],
    ValidationMode.LEGACY: [("SN ONT", "ont_serial"), ("NIK ONT", "ont_owner_id")],
}


def missing_fields(record: ActivationRecord, mode: ValidationMode = ValidationMode.ENHANCED) -> List[str]:
    """Labels of the required fields that are empty in ``record``."""
    return [label for label, field in REQUIRED_FIELDS[ValidationMode(mode)] if not getattr(record, field).strip()]


class SubmissionResult(BaseModel):
    state: WriteState
    format_tag: FormatTag
    record: ActivationRecord


class ActivationService:
    """
    Write path of ``/aktivasi``.

    RECEIVED -> CLASSIFIED -> EXTRACTED -> VALIDATED -> PERSISTED, with
    ValidationError for REJECTED_INCOMPLETE and DuplicateError for
    REJECTED_DUPLICATE. Store failures propagate as UpstreamIOError; nothing is
    retried and at most one row is appended.
    """

    def __init__(
        self,
        store: SheetStore,
        activation_sheet: str,
        extractor: Optional[ActivationExtractor] = None,
        validation_mode: ValidationMode = ValidationMode.ENHANCED,
        tz_name: str = "Asia/Jakarta",
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.activation_sheet = activation_sheet
        self.logger = logger or logging.getLogger(__name__)
        self.extractor = extractor or ActivationExtractor(logger=self.logger)
        self.validation_mode = ValidationMode(validation_mode)
        self.clock = clock or (lambda: now_local(tz_name))

    def _transition(self, state: WriteState, reference_id: str = "") -> WriteState:
        self.logger.debug(f"Activation {reference_id or '?'} -> {state.value}")
        return state

    async def submit(self, raw_text: str, technician_handle: str) -> SubmissionResult:
        """
        Parse, validate, deduplicate and store one activation report.

        Args:
            raw_text: Text after the /aktivasi command
            technician_handle: Canonical handle of the submitter (from the USER sheet)

        Returns:
            SubmissionResult in state PERSISTED

        Raises:
            ValidationError: required fields are missing
            DuplicateError: the AO is already stored
            UpstreamIOError: the sheet could not be read or written
        """
        self._transition(WriteState.RECEIVED)

        tag = self.extractor.classify(raw_text)
        self._transition(WriteState.CLASSIFIED)

        record = self.extractor.extract(raw_text, technician_handle, format_tag=tag)
        self._transition(WriteState.EXTRACTED, record.reference_id)

        missing = missing_fields(record, self.validation_mode)
        if missing:
            self._transition(WriteState.REJECTED_INCOMPLETE, record.reference_id)
            raise ValidationError(missing)
        self._transition(WriteState.VALIDATED, record.reference_id)

        existing = await self.store.fetch_records(self.activation_sheet)
        if record.reference_id and is_duplicate(record.reference_id, existing):
            self._transition(WriteState.REJECTED_DUPLICATE, record.reference_id)
            raise DuplicateError(record.reference_id)

        record = record.model_copy(update={"record_date": format_stored_date(self.clock().date())})
        await self.store.append_row(self.activation_sheet, record.to_row())
        state = self._transition(WriteState.PERSISTED, record.reference_id)

        self.logger.info(f"Stored activation AO={record.reference_id} format={tag.value} teknisi={record.technician_handle}")
        return SubmissionResult(state=state, format_tag=tag, record=record)

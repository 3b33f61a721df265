import logging
from typing import Optional

from .format_registry import FormatRegistry
from .schemas import ActivationRecord, FormatTag


class ActivationExtractor:
    """Turns pasted activation text into an ActivationRecord.

    Extraction is pure: it never raises on unmatched text, missing fields are
    left as empty strings and the caller decides what is required.
    """

    def __init__(self, registry: Optional[FormatRegistry] = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.registry = registry or FormatRegistry(logger=self.logger)

    def classify(self, raw_text: str) -> FormatTag:
        return self.registry.classify(raw_text)

    def extract(
        self,
        raw_text: str,
        submitter_handle: str,
        format_tag: Optional[FormatTag] = None,
    ) -> ActivationRecord:
        """
        Extract the activation fields from ``raw_text``.

        Args:
            raw_text: Text pasted after the /aktivasi command
            submitter_handle: Canonical handle of the submitting technician
            format_tag: Pre-computed classification, classified here when omitted

        Returns:
            ActivationRecord without ``record_date`` (set when persisting)
        """
        tag = FormatTag(format_tag) if format_tag else self.classify(raw_text)
        fields = self.registry.get_format(tag).extract_fields(raw_text)

        # Upstream exports identify their owner; manual forms state it.
        if tag != FormatTag.MANUAL:
            fields["owner"] = tag.value

        fields["technician_handle"] = (submitter_handle or "").strip().lstrip("@")
        return ActivationRecord(**fields)


_default_extractor: Optional[ActivationExtractor] = None


def extract(raw_text: str, submitter_handle: str) -> ActivationRecord:
    """Module-level shortcut using a shared extractor."""
    global _default_extractor
    if _default_extractor is None:
        _default_extractor = ActivationExtractor()
    return _default_extractor.extract(raw_text, submitter_handle)

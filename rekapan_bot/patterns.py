"""Field extractor combinators.

A field is described by an ordered list of extractors. Each extractor takes
the raw text and returns the captured value or ``None``; ``first_of`` tries
them in order and keeps the first non-empty capture.
"""

import re
from typing import Callable, Dict, List, Optional, Pattern, Union

Extractor = Callable[[str], Optional[str]]
PatternLike = Union[str, Pattern[str]]


def _compile(pattern: PatternLike, flags: int) -> Pattern[str]:
    if isinstance(pattern, str):
        return re.compile(pattern, flags)
    return pattern


def search(pattern: PatternLike, flags: int = re.IGNORECASE) -> Extractor:
    """First match of ``pattern`` anywhere in the text, capture group 1."""
    regex = _compile(pattern, flags)

    def extract(text: str) -> Optional[str]:
        match = regex.search(text)
        if match and match.group(1):
            return match.group(1).strip() or None
        return None

    return extract


def last_of(pattern: PatternLike, flags: int = 0) -> Extractor:
    """Capture group 1 of the LAST match; upstream logs append newer lines."""
    regex = _compile(pattern, flags)

    def extract(text: str) -> Optional[str]:
        captures = [m.group(1) for m in regex.finditer(text) if m.group(1)]
        if not captures:
            return None
        return captures[-1].strip() or None

    return extract


def labelled(label: str) -> Extractor:
    """Value of the first ``LABEL : value`` line (everything after the first colon)."""
    prefix = f"{label.upper()} :"

    def extract(text: str) -> Optional[str]:
        for line in split_lines(text):
            if line.upper().startswith(prefix):
                value = line.split(":", 1)[1].strip()
                return value or None
        return None

    return extract


def first_of(*extractors: Extractor) -> Extractor:
    def extract(text: str) -> Optional[str]:
        for extractor in extractors:
            value = extractor(text)
            if value:
                return value
        return None

    return extract


def run_extractors(text: str, fields: Dict[str, Extractor]) -> Dict[str, str]:
    """Apply one extractor per field; misses become empty strings."""
    return {name: extractor(text) or "" for name, extractor in fields.items()}


def split_lines(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


# ONT serials are often pasted without a label, so vendor prefixes are
# matched wherever they occur.
ONT_BRAND_PREFIXES = ["ZTEG", "HWTC", "HUAW", "FHTT", "FIBR"]


def ont_serial(label_pattern: str, prefixes: Optional[List[str]] = None) -> Extractor:
    return first_of(
        search(label_pattern),
        *(search(rf"({prefix}[A-Z0-9]+)") for prefix in (prefixes or ONT_BRAND_PREFIXES)),
    )


# --- Pipe-delimited order logs shared by the BGES and WMS exports ---

PIPE_LOG_REFERENCE = re.compile(r"AO\|.*?(SC\d{6,})")
PIPE_LOG_SERVICE_NUMBER = re.compile(r"\b(\d{11,12})\b")
PIPE_LOG_CUSTOMER = re.compile(r"\d{2}/\d{2}/\d{4}\s+\d{2}:\d{2}\s+\d+\s+([A-Z0-9\s]+?)\s{2,}")
PIPE_LOG_WORK_ZONE = re.compile(r"AO\|\s+([A-Z]{2,})")

PIPE_LOG_FIELDS: Dict[str, Extractor] = {
    "reference_id": last_of(PIPE_LOG_REFERENCE),
    "service_number": last_of(PIPE_LOG_SERVICE_NUMBER),
    # The first customer line wins, unlike the AO and work zone lines.
    "customer_name": search(PIPE_LOG_CUSTOMER),
    "work_zone": last_of(PIPE_LOG_WORK_ZONE),
    "ont_serial": ont_serial(r"SN\s*ONT[:\s]+([A-Z0-9]+)"),
    "ont_owner_id": search(r"NIK\s*ONT[:\s]+(\d+)"),
    "stb_id": search(r"STB\s*ID[:\s]+([A-Z0-9]+)"),
    "stb_owner_id": search(r"NIK\s*STB[:\s]+(\d+)"),
}


def extract_pipe_log_fields(text: str) -> Dict[str, str]:
    fields = run_extractors(text, PIPE_LOG_FIELDS)
    fields["work_order_id"] = fields["reference_id"]
    return fields

"""Manual format - technician typed ``LABEL : value`` lines.

Used when no upstream export marker is present. Each field is read from its
labelled line first and falls back to a loose pattern anywhere in the text.
"""

from typing import Dict

from ..patterns import first_of, labelled, ont_serial, run_extractors, search
from ..schemas import FormatTag

FORMAT_TAG = FormatTag.MANUAL

PRIORITY = 100

MARKERS: list = []

DESCRIPTION = "Label based form typed by hand"

FIELDS = {
    "reference_id": first_of(labelled("AO"), search(r"AO[:\s]+([A-Z0-9]+)")),
    "work_order_id": first_of(labelled("WORKORDER"), search(r"WORKORDER[:\s]+([A-Z0-9-]+)")),
    "service_number": first_of(labelled("SERVICE NO"), search(r"SERVICE\s*NO[:\s]+(\d+)")),
    "customer_name": first_of(labelled("CUSTOMER NAME"), search(r"CUSTOMER\s*NAME[:\s]+(.+)")),
    "owner": first_of(labelled("OWNER"), search(r"OWNER[:\s]+([A-Z0-9]+)")),
    "work_zone": first_of(labelled("WORKZONE"), search(r"WORKZONE[:\s]+([A-Z0-9]+)")),
    "ont_serial": first_of(labelled("SN ONT"), ont_serial(r"SN\s*ONT[:\s]+([A-Z0-9]+)")),
    "ont_owner_id": first_of(labelled("NIK ONT"), search(r"NIK\s*ONT[:\s]+(\d+)")),
    "stb_id": first_of(labelled("STB ID"), search(r"STB\s*ID[:\s]+([A-Z0-9]+)")),
    "stb_owner_id": first_of(labelled("NIK STB"), search(r"NIK\s*STB[:\s]+(\d+)")),
}


def extract_fields(text: str) -> Dict[str, str]:
    return run_extractors(text, FIELDS)

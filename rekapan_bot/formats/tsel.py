"""TSEL format - DIGIPOS work order export with ``LABEL : value`` fields."""

from typing import Dict

from ..patterns import first_of, ont_serial, run_extractors, search
from ..schemas import FormatTag

FORMAT_TAG = FormatTag.TSEL

# Checked before the generic keywords of the other exports
PRIORITY = 10

MARKERS = ["CHANNEL : DIGIPOS", "DATE CREATED", "WORKORDER : WO"]

DESCRIPTION = "Telkomsel DIGIPOS order copied from the provisioning portal"

# DIGIPOS exports only carry the ZTEGDA family of ZTE serials
ONT_PREFIXES = ["ZTEGDA", "HWTC", "HUAW", "FHTT", "FIBR"]

FIELDS = {
    "reference_id": first_of(
        search(r"AO\s*:\s*([A-Za-z0-9]+)"),
        search(r"AO\s*([A-Za-z0-9]+)"),
    ),
    "work_order_id": search(r"WORKORDER\s*:\s*([A-Za-z0-9]+)"),
    "service_number": search(r"SERVICE\s*NO\s*:\s*(\d+)"),
    "customer_name": search(r"CUSTOMER\s*NAME\s*:\s*([A-Z0-9 \t]+)"),
    "work_zone": search(r"WORKZONE\s*:\s*([A-Z0-9]+)"),
    "ont_serial": ont_serial(r"SN\s*ONT\s*:\s*([A-Z0-9]+)", ONT_PREFIXES),
    "ont_owner_id": search(r"NIK\s*ONT\s*:\s*(\d+)"),
    "stb_id": search(r"STB\s*ID\s*:\s*([A-Z0-9]+)"),
}

STB_OWNER = search(r"NIK\s*STB\s*:\s*(\d+)")


def extract_fields(text: str) -> Dict[str, str]:
    fields = run_extractors(text, FIELDS)
    fields["work_order_id"] = fields["work_order_id"] or fields["reference_id"]
    # Without an STB line the NIK STB pattern can pick up the ONT asset code.
    fields["stb_owner_id"] = (STB_OWNER(text) or "") if fields["stb_id"] else ""
    return fields

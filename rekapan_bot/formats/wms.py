"""WMS format - wholesale order log, same pipe layout as BGES."""

from typing import Dict

from ..patterns import extract_pipe_log_fields
from ..schemas import FormatTag

FORMAT_TAG = FormatTag.WMS

PRIORITY = 30

# MWS is a common misspelling in the upstream template
MARKERS = ["WMS", "MWS"]

DESCRIPTION = "Wholesale (WMS) order log pasted from the fulfilment system"


def extract_fields(text: str) -> Dict[str, str]:
    return extract_pipe_log_fields(text)

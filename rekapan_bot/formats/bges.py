"""BGES format - INDIBIZ/HSI pipe-delimited order log."""

from typing import Dict

from ..patterns import extract_pipe_log_fields
from ..schemas import FormatTag

FORMAT_TAG = FormatTag.BGES

PRIORITY = 20

MARKERS = ["INDIBIZ", "HSI"]

DESCRIPTION = "Business (INDIBIZ/HSI) order log pasted from the fulfilment system"


def extract_fields(text: str) -> Dict[str, str]:
    return extract_pipe_log_fields(text)

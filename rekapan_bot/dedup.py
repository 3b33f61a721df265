"""AO based duplicate detection.

The check and the following append are two separate store calls. Two
submissions of the same AO arriving together can both pass the check; the
Google Sheets append has no conditional write to close that window, so
``/clear`` exists to repair such rows after the fact.
"""

from typing import Any, Iterable, List, Sequence, Tuple

from .schemas import ActivationRecord

AO_COLUMN = 1


def normalize_reference_id(value: str) -> str:
    return (value or "").strip().upper()


def is_duplicate(candidate_reference_id: str, existing: Iterable[ActivationRecord]) -> bool:
    candidate = normalize_reference_id(candidate_reference_id)
    return any(normalize_reference_id(record.reference_id) == candidate for record in existing)


def remove_duplicates(rows: Sequence[Sequence[Any]]) -> Tuple[List[List[Any]], int]:
    """
    Keep the header and the first row of every AO.

    Rows without an AO are dropped along with repeated AOs.

    Returns:
        (rows to write back, number of rows removed)
    """
    if not rows:
        return [], 0

    unique = [list(rows[0])]
    seen = set()
    removed = 0
    for row in rows[1:]:
        ao = normalize_reference_id(str(row[AO_COLUMN])) if len(row) > AO_COLUMN else ""
        if ao and ao not in seen:
            seen.add(ao)
            unique.append(list(row))
        else:
            removed += 1
    return unique, removed

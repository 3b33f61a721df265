from typing import Dict, Iterable, List

from .schemas import ActivationRecord, Aggregation, RankedCount, normalize_handle

PLACEHOLDER = "-"


def group_key(value: str) -> str:
    """Upper-cased grouping key; blank values collapse into the placeholder."""
    key = (value or "").strip().upper()
    return key or PLACEHOLDER


def rank_counts(keys: Iterable[str]) -> List[RankedCount]:
    """Count keys and rank them by count, ties in first-seen order."""
    counts: Dict[str, int] = {}
    for key in keys:
        counts[key] = counts.get(key, 0) + 1
    # sorted() is stable and dicts keep insertion order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [RankedCount(key=key, count=count) for key, count in ranked]


def aggregate(records: Iterable[ActivationRecord]) -> Aggregation:
    records = list(records)
    return Aggregation(
        total=len(records),
        by_technician=rank_counts(group_key(normalize_handle(r.technician_handle)) for r in records),
        by_work_zone=rank_counts(group_key(r.work_zone) for r in records),
        by_owner=rank_counts(group_key(r.owner) for r in records),
    )


def records_of_technician(records: Iterable[ActivationRecord], handle: str) -> List[ActivationRecord]:
    """Records submitted by ``handle``, ignoring case and a leading "@"."""
    wanted = normalize_handle(handle)
    return [r for r in records if normalize_handle(r.technician_handle) == wanted]

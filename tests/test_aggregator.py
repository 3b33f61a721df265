from rekapan_bot.aggregator import PLACEHOLDER, aggregate, group_key, rank_counts, records_of_technician
from rekapan_bot.dedup import is_duplicate, normalize_reference_id, remove_duplicates
from rekapan_bot.schemas import SHEET_COLUMNS, ActivationRecord


def record(**fields):
    return ActivationRecord(**fields)


class TestAggregator:

    def test_ties_keep_encounter_order(self):
        keys = ["A", "B", "C", "B", "A", "C", "B", "C", "A", "B", "C", "B", "C"]
        ranked = rank_counts(keys)
        assert [(item.key, item.count) for item in ranked] == [("B", 5), ("C", 5), ("A", 3)]

    def test_group_key_normalization(self):
        assert group_key(" mdn ") == "MDN"
        assert group_key("") == PLACEHOLDER
        assert group_key(None) == PLACEHOLDER

    def test_aggregate(self):
        records = [
            record(technician_handle="andi", work_zone="mdn", owner="BGES"),
            record(technician_handle="Budi", work_zone="MDN", owner="WMS"),
            record(technician_handle="andi", work_zone="", owner="BGES"),
        ]
        agg = aggregate(records)

        assert agg.total == 3
        assert [(i.key, i.count) for i in agg.by_technician] == [("ANDI", 2), ("BUDI", 1)]
        assert [(i.key, i.count) for i in agg.by_work_zone] == [("MDN", 2), (PLACEHOLDER, 1)]
        assert [(i.key, i.count) for i in agg.by_owner] == [("BGES", 2), ("WMS", 1)]

    def test_technician_grouping_strips_at(self):
        records = [record(technician_handle="@budi"), record(technician_handle="budi"), record(technician_handle=" Budi ")]
        agg = aggregate(records)

        assert [(i.key, i.count) for i in agg.by_technician] == [("BUDI", 3)]

    def test_aggregate_empty(self):
        agg = aggregate([])
        assert agg.total == 0
        assert agg.by_technician == []

    def test_records_of_technician_ignores_case_and_at(self):
        records = [record(reference_id="1", technician_handle="Budi_Tech"), record(reference_id="2", technician_handle="andi")]
        assert [r.reference_id for r in records_of_technician(records, "@budi_tech")] == ["1"]


class TestDedup:

    def test_case_and_whitespace_variants_are_duplicates(self):
        existing = [record(reference_id="sc123456")]
        assert is_duplicate("SC123456 ", existing)
        assert not is_duplicate("SC123457", existing)

    def test_normalize_reference_id(self):
        assert normalize_reference_id(" sc1 ") == "SC1"
        assert normalize_reference_id(None) == ""

    def test_remove_duplicates_keeps_first_of_each_ao(self):
        rows = [
            list(SHEET_COLUMNS),
            ["d1", "SC1", "x"],
            ["d2", "sc1 ", "y"],
            ["d3", "", "z"],
            ["d4"],
            ["d5", "SC2", "w"],
        ]
        unique, removed = remove_duplicates(rows)

        assert removed == 3
        assert unique == [list(SHEET_COLUMNS), ["d1", "SC1", "x"], ["d5", "SC2", "w"]]

    def test_remove_duplicates_clean_sheet(self):
        rows = [list(SHEET_COLUMNS), ["d1", "SC1"]]
        assert remove_duplicates(rows) == (rows, 0)
        assert remove_duplicates([]) == ([], 0)

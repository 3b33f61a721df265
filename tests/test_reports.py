import csv
import io
from datetime import date

import pytest

from rekapan_bot.aggregator import aggregate
from rekapan_bot.reports import CSV_HEADERS, ReportFormatter, export_csv, export_filename
from rekapan_bot.schemas import ActivationRecord, Aggregation, PeriodKind, RankedCount


@pytest.fixture
def formatter(clock):
    return ReportFormatter(clock=clock)


@pytest.fixture
def agg():
    records = [
        ActivationRecord(technician_handle="andi", work_zone="MDN", owner="BGES"),
        ActivationRecord(technician_handle="andi", work_zone="BNJ", owner="WMS"),
        ActivationRecord(technician_handle="budi", work_zone="MDN", owner="BGES"),
    ]
    return aggregate(records)


class TestReportFormatter:

    def test_daily_report(self, formatter, agg):
        text = formatter.daily_report(agg)

        assert "LAPORAN AKTIVASI HARIAN" in text
        assert "Tanggal: Senin, 15 September 2025" in text
        assert "Total Aktivasi: 3 SSL" in text
        assert "- Teknisi Aktif: 2" in text
        assert "1. ANDI: 2 SSL" in text
        assert text.endswith("DATA SOURCE: REKAPAN_QUALITY\nGENERATED: 15/09/2025 10.30.00 WIB")

    def test_daily_report_uses_anchor_text(self, formatter, agg):
        assert "Tanggal: 01/09/2025" in formatter.daily_report(agg, "01/09/2025")

    def test_empty_period(self, formatter):
        text = formatter.weekly_report(Aggregation())
        assert "Belum ada data aktivasi untuk periode ini" in text
        assert "Minggu ini" in text

    def test_weekly_uses_medals(self, formatter, agg):
        text = formatter.weekly_report(agg, "15/09/2025")
        assert "Minggu dari: 15/09/2025" in text
        assert "🥇 ANDI: 2 SSL" in text
        assert "🥈 BUDI: 1 SSL" in text

    def test_monthly_average_per_day(self, formatter, agg):
        assert "Rata-rata per hari: 0.1 SSL" in formatter.monthly_report(agg)

    def test_ranking_truncates_and_skips_placeholder(self, formatter):
        ranking = [RankedCount(key="-", count=50)]
        ranking += [RankedCount(key=f"T{i}", count=30 - i) for i in range(22)]
        text = formatter.technician_ranking(Aggregation(total=100, by_technician=ranking), PeriodKind.ALL)

        assert "Periode: Keseluruhan" in text
        assert "Total Teknisi Aktif: 22" in text
        assert "🥇 T0: <b>30 SSL</b>" in text
        assert "20. T19" in text
        assert "T20" not in text
        assert "... dan 2 teknisi lainnya" in text
        assert "-: " not in text

    def test_ranking_period_label(self, formatter, agg):
        assert "Periode: Bulanan (01/09/2025)" in formatter.technician_ranking(agg, PeriodKind.MONTHLY, "01/09/2025")
        assert "Periode: Minggu ini" in formatter.technician_ranking(agg, PeriodKind.WEEKLY)

    def test_overall_summary(self, formatter, agg):
        text = formatter.overall_summary(agg)
        assert "TOTAL KESELURUHAN: 3 SSL" in text
        assert "- BGES: 2" in text
        assert "1. ANDI: 2" in text

    def test_keys_are_html_escaped(self, formatter):
        agg = Aggregation(total=1, by_owner=[RankedCount(key="A<B>", count=1)])
        assert "A&lt;B&gt;" in formatter.overall_summary(agg)

    def test_technician_stats(self, formatter, agg):
        own = formatter.technician_stats(agg, "budi")
        assert "STATISTIK ANDA" in own
        assert "/exportcari" in own

        other = formatter.technician_stats(Aggregation(), "/andi", own=False)
        assert "Username: /andi" in other
        assert "teknisi ini" in other

    def test_help_text_admin_section(self, formatter):
        assert "ADMIN COMMANDS" in formatter.help_text(is_admin=True)
        assert "ADMIN COMMANDS" not in formatter.help_text(is_admin=False)


class TestCsvExport:

    def test_export_csv(self):
        records = [ActivationRecord(record_date="Senin, 15 September 2025", reference_id="SC1", customer_name="PT A, B")]
        rows = list(csv.reader(io.StringIO(export_csv(records).decode("utf-8"))))

        assert rows[0] == CSV_HEADERS
        assert rows[1][0] == "Senin, 15 September 2025"
        assert rows[1][4] == "PT A, B"

    def test_export_filename(self):
        assert export_filename("budi_tech", date(2025, 9, 15)) == "aktivasi_budi_tech_2025-09-15.csv"

"""Telegram (HTML) renderings of aggregation results."""

import csv
import html
import io
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional

from .aggregator import PLACEHOLDER
from .dates import format_stored_date, format_timestamp, now_local
from .schemas import ActivationRecord, Aggregation, PeriodKind, RankedCount

MEDALS = ["🥇", "🥈", "🥉"]

CSV_HEADERS = [
    "TANGGAL", "AO", "WORKORDER", "SERVICE_NO", "CUSTOMER_NAME", "OWNER",
    "WORKZONE", "SN_ONT", "NIK_ONT", "STB_ID", "NIK_STB", "TEKNISI",
]

EMPTY_PERIOD = "⚠️ Belum ada data aktivasi untuk periode ini.\n\n"

# Top-N per report section
WEEKLY_TOP_TECHNICIANS = 10
WEEKLY_TOP_WORK_ZONES = 5
MONTHLY_TOP_TECHNICIANS = 15
MONTHLY_TOP_WORK_ZONES = 8
RANKING_TOP_TECHNICIANS = 20
OVERALL_TOP_TECHNICIANS = 5


def _numbered(ranking: List[RankedCount], medals: bool = False, bold_count: bool = False) -> str:
    lines = ""
    for index, item in enumerate(ranking):
        marker = MEDALS[index] if medals and index < len(MEDALS) else f"{index + 1}."
        count = f"<b>{item.count} SSL</b>" if bold_count else f"{item.count} SSL"
        lines += f"{marker} {html.escape(item.key)}: {count}\n"
    return lines


def _bulleted(ranking: List[RankedCount]) -> str:
    return "".join(f"- {html.escape(item.key)}: {item.count}\n" for item in ranking)


class ReportFormatter:
    """Builds the report messages; top-N truncation happens here, not in the aggregator."""

    def __init__(self, tz_name: str = "Asia/Jakarta", clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or (lambda: now_local(tz_name))

    def _generated(self) -> str:
        return f"\nDATA SOURCE: REKAPAN_QUALITY\nGENERATED: {format_timestamp(self.clock())} WIB"

    def _metrics(self, title: str, agg: Aggregation) -> str:
        return (
            f"{title}:\n"
            f"- Teknisi Aktif: {len(agg.by_technician)}\n"
            f"- Workzone Tercover: {len(agg.by_work_zone)}\n"
            f"- Owner: {len(agg.by_owner)}\n"
        )

    def daily_report(self, agg: Aggregation, anchor_text: Optional[str] = None) -> str:
        date_label = anchor_text or format_stored_date(self.clock().date())
        msg = f"📊 <b>LAPORAN AKTIVASI HARIAN</b>\nTanggal: {html.escape(date_label)}\nTotal Aktivasi: {agg.total} SSL\n\n"

        if agg.total == 0:
            msg += EMPTY_PERIOD
        else:
            msg += self._metrics("METRICS PERIODE INI", agg) + "\n"
            msg += "PERFORMA TEKNISI:\n" + _numbered(agg.by_technician)
            msg += "\nPERFORMA WORKZONE:\n" + _numbered(agg.by_work_zone)
            msg += "\nPERFORMA OWNER:\n" + _numbered(agg.by_owner)

        return msg + self._generated()

    def weekly_report(self, agg: Aggregation, anchor_text: Optional[str] = None) -> str:
        period_label = f"Minggu dari: {html.escape(anchor_text)}" if anchor_text else "Minggu ini"
        msg = f"📈 <b>LAPORAN AKTIVASI MINGGUAN</b>\n{period_label}\nTotal Aktivasi: {agg.total} SSL\n\n"

        if agg.total == 0:
            msg += EMPTY_PERIOD
        else:
            msg += self._metrics("METRICS MINGGUAN", agg) + "\n"
            msg += f"TOP {WEEKLY_TOP_TECHNICIANS} TEKNISI MINGGU INI:\n"
            msg += _numbered(agg.by_technician[:WEEKLY_TOP_TECHNICIANS], medals=True)
            msg += "\nWORKZONE TERBAIK:\n" + _numbered(agg.by_work_zone[:WEEKLY_TOP_WORK_ZONES])

        return msg + self._generated()

    def monthly_report(self, agg: Aggregation, anchor_text: Optional[str] = None) -> str:
        period_label = f"Bulan dari: {html.escape(anchor_text)}" if anchor_text else "Bulan ini"
        msg = f"📅 <b>LAPORAN AKTIVASI BULANAN</b>\n{period_label}\nTotal Aktivasi: {agg.total} SSL\n\n"

        if agg.total == 0:
            msg += EMPTY_PERIOD
        else:
            msg += self._metrics("METRICS BULANAN", agg)
            msg += f"- Rata-rata per hari: {agg.total / 30:.1f} SSL\n\n"
            msg += f"TOP {MONTHLY_TOP_TECHNICIANS} TEKNISI BULAN INI:\n"
            msg += _numbered(agg.by_technician[:MONTHLY_TOP_TECHNICIANS], medals=True)
            msg += "\nWORKZONE TERBAIK:\n" + _numbered(agg.by_work_zone[:MONTHLY_TOP_WORK_ZONES])

        return msg + self._generated()

    def technician_ranking(self, agg: Aggregation, period: PeriodKind, anchor_text: Optional[str] = None) -> str:
        ranking = [item for item in agg.by_technician if item.key != PLACEHOLDER]
        suffix = f" ({html.escape(anchor_text)})" if anchor_text else ""
        period_label = {
            PeriodKind.DAILY: f"Harian{suffix}" if anchor_text else "Hari ini",
            PeriodKind.WEEKLY: f"Mingguan{suffix}" if anchor_text else "Minggu ini",
            PeriodKind.MONTHLY: f"Bulanan{suffix}" if anchor_text else "Bulan ini",
        }.get(period, "Keseluruhan")

        msg = f"🏆 <b>RANKING TEKNISI TERBAIK</b>\nPeriode: {period_label}\n\n"
        if not ranking:
            msg += "⚠️ Belum ada data teknisi untuk periode ini.\n"
        else:
            msg += f"Total Teknisi Aktif: {len(ranking)}\n\n"
            msg += f"🏅 <b>TOP {RANKING_TOP_TECHNICIANS} TEKNISI:</b>\n"
            msg += _numbered(ranking[:RANKING_TOP_TECHNICIANS], medals=True, bold_count=True)
            if len(ranking) > RANKING_TOP_TECHNICIANS:
                msg += f"\n... dan {len(ranking) - RANKING_TOP_TECHNICIANS} teknisi lainnya"

        return msg + self._generated()

    def overall_summary(self, agg: Aggregation) -> str:
        msg = "📊 <b>RINGKASAN AKTIVASI TOTAL</b>\n"
        msg += f"TOTAL KESELURUHAN: {agg.total} SSL\n\n"
        msg += "BERDASARKAN OWNER:\n" + _bulleted(agg.by_owner)
        msg += "\nBERDASARKAN SEKTOR/WORKZONE:\n" + _bulleted(agg.by_work_zone)
        msg += "\nTOP TEKNISI:\n"
        for index, item in enumerate(agg.by_technician[:OVERALL_TOP_TECHNICIANS], 1):
            msg += f"{index}. {html.escape(item.key)}: {item.count}\n"
        return msg

    def technician_stats(self, agg: Aggregation, technician_label: str, own: bool = True) -> str:
        """Stats of one technician; ``own`` selects the /cari wording over the admin lookup."""
        if own:
            msg = f"📊 <b>STATISTIK ANDA</b>\n👤 Teknisi: {html.escape(technician_label)}\n"
        else:
            msg = f"📊 <b>STATISTIK TEKNISI</b>\n👤 Username: {html.escape(technician_label)}\n"
        msg += f"📈 Total Aktivasi: {agg.total} SSL\n\n"

        if agg.total == 0:
            whose = "Anda" if own else "teknisi ini"
            msg += f"⚠️ Belum ada data aktivasi yang tercatat untuk {whose}.\n"
        else:
            msg += "DETAIL PER OWNER:\n" + _bulleted(agg.by_owner)
            msg += "\nDETAIL PER WORKZONE:\n" + _bulleted(agg.by_work_zone)
            if own:
                msg += "\n💾 <i>Tip: Gunakan /exportcari untuk download data lengkap dalam format CSV</i>"

        return msg + f"\nUpdated: {format_timestamp(self.clock())} WIB"

    def help_text(self, is_admin: bool) -> str:
        msg = "🤖 <b>Bot Rekapan Quality - Panduan Lengkap</b>\n\n"

        msg += "📝 <b>COMMANDS UNTUK USER:</b>\n"
        msg += "• <code>/aktivasi [data]</code> - Input data aktivasi\n"
        msg += "• <code>/cari</code> - Lihat statistik total aktivasi Anda\n"
        msg += "• <code>/exportcari</code> - Download data aktivasi Anda dalam format CSV\n"
        msg += "• <code>/help</code> - Tampilkan bantuan ini\n\n"

        msg += "📊 <b>FORMAT INPUT AKTIVASI:</b>\n"
        msg += "Bot mendukung 3 format input:\n"
        msg += "1. <b>Auto-detect BGES/WMS:</b> Copy paste langsung dari sistem\n"
        msg += "2. <b>Auto-detect TSEL:</b> Copy paste langsung dari sistem\n"
        msg += "3. <b>Format Manual:</b>\n"
        msg += "   AO : SC123456\n"
        msg += "   SERVICE NO : 12345678901\n"
        msg += "   CUSTOMER NAME : JOHN DOE\n"
        msg += "   OWNER : BGES\n"
        msg += "   WORKZONE : MEDAN\n"
        msg += "   SN ONT : ZTEG12345678\n"
        msg += "   NIK ONT : 987654321\n\n"

        if is_admin:
            msg += "👑 <b>ADMIN COMMANDS:</b>\n"
            msg += "• <code>/ps [tanggal]</code> - Laporan harian\n"
            msg += "   Contoh: /ps atau /ps 01/09/2025\n"
            msg += "• <code>/weekly [tanggal]</code> - Laporan mingguan\n"
            msg += "   Contoh: /weekly atau /weekly 01/09/2025\n"
            msg += "• <code>/monthly [tanggal]</code> - Laporan bulanan\n"
            msg += "   Contoh: /monthly atau /monthly 01/09/2025\n"
            msg += "• <code>/topteknisi [periode] [tanggal]</code> - Ranking teknisi\n"
            msg += "   Periode: all, daily, weekly, monthly\n"
            msg += "   Contoh: /topteknisi monthly 01/09/2025\n"
            msg += "• <code>/allps</code> - Ringkasan total keseluruhan\n"
            msg += "• <code>/[username]</code> - Statistik teknisi tertentu\n"
            msg += "   Contoh: /HKS_HENDRA_16951456\n"
            msg += "• <code>/clear</code> - Hapus data duplikat dari sheet\n\n"

        msg += "💡 <b>TIPS PENGGUNAAN:</b>\n"
        msg += "• Field wajib: AO, SERVICE NO, CUSTOMER NAME, OWNER, WORKZONE, SN ONT, NIK ONT\n"
        msg += "• Bot otomatis mendeteksi format BGES, WMS, dan TSEL\n"
        msg += "• Gunakan format tanggal: DD/MM/YYYY atau DD-MM-YYYY\n"
        msg += "• Data duplikat (berdasarkan AO) akan ditolak sistem\n"
        msg += "• Export CSV tersedia untuk backup data personal\n\n"

        msg += "🚀 <b>Bot siap membantu aktivasi Anda!</b>\n"
        msg += f"📅 Generated: {format_timestamp(self.clock())} WIB"
        return msg


def export_csv(records: Iterable[ActivationRecord]) -> bytes:
    """CSV of the records with the export header, UTF-8 encoded."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(record.to_row())
    return buffer.getvalue().encode("utf-8")


def export_filename(handle: str, day: date) -> str:
    return f"aktivasi_{handle}_{day.isoformat()}.csv"

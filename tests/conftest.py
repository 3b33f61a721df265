import os
from datetime import datetime

import pytest
import pytz

# Settings are read on import of rekapan_bot.main
os.environ.setdefault("TELEGRAM_TOKEN", "123456:test-token")
os.environ.setdefault("SHEET_ID", "test-sheet")
os.environ.setdefault("GOOGLE_SERVICE_ACCOUNT_KEY", "{}")

from rekapan_bot.activation import ActivationService
from rekapan_bot.chat_orchestrator import ChatOrchestrator
from rekapan_bot.schemas import SHEET_COLUMNS, TelegramMessage
from rekapan_bot.sheets import InMemorySheetStore, UserDirectory

ACTIVATION_SHEET = "REKAPAN QUALITY"
USER_SHEET = "USER"

TSEL_TEXT = """CHANNEL : DIGIPOS
DATE CREATED : 15/09/2025 08:00
AO : SC000111
SERVICE NO : 12345678901
CUSTOMER NAME : BUDI SANTOSO
WORKZONE : MDN
SN ONT : ZTEGDA00001
NIK ONT : 111222333"""

BGES_TEXT = """INDIBIZ HSI ACTIVATION
15/09/2025 08:30 1 PT MAJU JAYA  BGES
AO| MDN SC1000001 INPROGRESS
AO| BNJ SC1000002 COMPLETE
SERVICE 131234567890
SN ONT: ZTEG12345678
NIK ONT: 998877"""

WMS_TEXT = """WMS ORDER
16/09/2025 09:15 2 TOKO SEJAHTERA  WMS
AO| KBJ SC2000001 COMPLETE
SERVICE 141234567890
HWTC1234ABCD
NIK ONT: 556677"""

MANUAL_TEXT = """AO : SC3000001
SERVICE NO : 12345678902
CUSTOMER NAME : SITI AMINAH
OWNER : TSEL
WORKZONE : LBP
SN ONT : FHTT99887766
NIK ONT : 123123"""

USER_ROWS = [
    ["NAMA", "USERNAME", "ROLE", "STATUS"],
    ["Budi", "@budi_tech", "USER", "AKTIF"],
    ["Rina", "rina_ops", "ADMIN", "AKTIF"],
    ["Lama", "old_tech", "USER", "NONAKTIF"],
]


def make_row(record_date, ao, owner="BGES", work_zone="MDN", technician="budi_tech"):
    return [record_date, ao, ao, "131234567890", "PELANGGAN", owner, work_zone,
            "ZTEG00000001", "998877", "", "", technician]


# Anchor week: Monday 15 to Sunday 21 September 2025
ACTIVATION_ROWS = [
    make_row("Senin, 15 September 2025", "SC100001"),
    make_row("Senin, 15 September 2025", "SC100002", owner="WMS", work_zone="BNJ", technician="andi"),
    make_row("Selasa, 16 September 2025", "SC100003", technician="andi"),
    make_row("Minggu, 21 September 2025", "SC100004", owner="TSEL", work_zone="BNJ"),
    make_row("Senin, 22 September 2025", "SC100005"),
    make_row("Senin, 1 September 2025", "SC100006", technician="andi"),
    make_row("Rabu, 1 Oktober 2025", "SC100007"),
    make_row("bukan tanggal", "SC100008"),
]


@pytest.fixture
def fixed_now():
    return pytz.timezone("Asia/Jakarta").localize(datetime(2025, 9, 15, 10, 30, 0))


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now


@pytest.fixture
def empty_store():
    return InMemorySheetStore({ACTIVATION_SHEET: [list(SHEET_COLUMNS)], USER_SHEET: USER_ROWS})


@pytest.fixture
def store():
    return InMemorySheetStore({ACTIVATION_SHEET: [list(SHEET_COLUMNS)] + ACTIVATION_ROWS, USER_SHEET: USER_ROWS})


@pytest.fixture
def orchestrator_factory(clock):
    def build(sheet_store):
        activation_service = ActivationService(sheet_store, ACTIVATION_SHEET, clock=clock)
        return ChatOrchestrator(
            store=sheet_store,
            users=UserDirectory(sheet_store, USER_SHEET),
            activation_service=activation_service,
            activation_sheet=ACTIVATION_SHEET,
            clock=clock,
        )

    return build


@pytest.fixture
def make_message():
    def build(text, username="budi_tech", chat_type="private", chat_id=100):
        return TelegramMessage.model_validate({
            "message_id": 1,
            "chat": {"id": chat_id, "type": chat_type},
            "from": {"id": 7, "username": username},
            "text": text,
        })

    return build

import base64
import json
import re

import httplib2
import pytest
from googleapiclient.errors import HttpError

from conftest import ACTIVATION_SHEET, USER_SHEET
from rekapan_bot.config import decode_service_account_key
from rekapan_bot.errors import UpstreamIOError
from rekapan_bot.schemas import SHEET_COLUMNS
from rekapan_bot.sheets import GoogleSheetStore, UserDirectory, stale_tail_range


class TestUserDirectory:

    @pytest.mark.asyncio
    async def test_resolve_active_user(self, empty_store):
        users = UserDirectory(empty_store, USER_SHEET)

        user = await users.resolve_user("@BUDI_TECH")
        assert user.name == "Budi"
        assert user.technician_handle == "budi_tech"
        assert not user.is_admin

    @pytest.mark.asyncio
    async def test_inactive_and_unknown_users(self, empty_store):
        users = UserDirectory(empty_store, USER_SHEET)

        assert await users.resolve_user("old_tech") is None
        assert await users.resolve_user("nobody") is None
        assert await users.resolve_user("") is None

    @pytest.mark.asyncio
    async def test_is_admin(self, empty_store):
        users = UserDirectory(empty_store, USER_SHEET)

        assert await users.is_admin("rina_ops")
        assert not await users.is_admin("budi_tech")


class TestInMemorySheetStore:

    @pytest.mark.asyncio
    async def test_append_and_replace(self, empty_store):
        await empty_store.append_row("LOG", ["a"])
        await empty_store.append_row("LOG", ["b"])
        assert await empty_store.fetch_rows("LOG") == [["a"], ["b"]]

        await empty_store.replace_rows("LOG", "A1:A1", [["c"]])
        assert await empty_store.fetch_rows("LOG") == [["c"]]

    @pytest.mark.asyncio
    async def test_fetch_records_skips_header(self, store):
        records = await store.fetch_records("REKAPAN QUALITY")
        assert records[0].reference_id == "SC100001"
        assert len(records) == 8


class TestServiceAccountKey:

    def test_raw_json(self):
        assert decode_service_account_key('{"type": "service_account"}') == {"type": "service_account"}

    def test_base64_json(self):
        raw = base64.b64encode(json.dumps({"client_email": "bot@example.iam"}).encode()).decode()
        assert decode_service_account_key(raw)["client_email"] == "bot@example.iam"

    @pytest.mark.parametrize("raw", ["not base64!!", "{broken"])
    def test_invalid_key(self, raw):
        with pytest.raises(ValueError):
            decode_service_account_key(raw)


class FakeRequest:

    def __init__(self, action):
        self.action = action

    def execute(self):
        return self.action()


class FakeSheetValues:
    """Single-sheet stand-in for ``service.spreadsheets().values()``."""

    def __init__(self, rows, fail_update=False):
        self.rows = [list(row) for row in rows]
        self.fail_update = fail_update
        self.calls = []

    def get(self, spreadsheetId, range):
        return FakeRequest(lambda: {"values": [list(row) for row in self.rows]})

    def update(self, spreadsheetId, range, valueInputOption, body):
        def run():
            self.calls.append(("update", range))
            if self.fail_update:
                raise HttpError(httplib2.Response({"status": "503"}), b"backend error")
            self.rows[:len(body["values"])] = body["values"]
            return {}
        return FakeRequest(run)

    def clear(self, spreadsheetId, range, body):
        def run():
            self.calls.append(("clear", range))
            start = int(re.search(r"!\D+(\d+):", range).group(1))
            del self.rows[start - 1:]
            return {}
        return FakeRequest(run)


class FakeSheetsService:

    def __init__(self, values):
        self._values = values

    def spreadsheets(self):
        return self

    def values(self):
        return self._values


class TestGoogleSheetStore:

    @pytest.mark.asyncio
    async def test_replace_rows_writes_then_clears_tail(self):
        values = FakeSheetValues([list(SHEET_COLUMNS), ["d1", "SC1"], ["d2", "SC1"], ["d3", "SC2"]])
        store = GoogleSheetStore("sheet-id", service=FakeSheetsService(values))

        await store.replace_rows(ACTIVATION_SHEET, "A1:L3", [list(SHEET_COLUMNS), ["d1", "SC1"], ["d3", "SC2"]])

        assert values.calls == [("update", f"{ACTIVATION_SHEET}!A1:L3"), ("clear", f"{ACTIVATION_SHEET}!A4:L")]
        assert await store.fetch_rows(ACTIVATION_SHEET) == [list(SHEET_COLUMNS), ["d1", "SC1"], ["d3", "SC2"]]

    @pytest.mark.asyncio
    async def test_failed_update_keeps_existing_rows(self):
        rows = [list(SHEET_COLUMNS), ["d1", "SC1"], ["d2", "SC1"], ["d3", "SC2"]]
        values = FakeSheetValues(rows, fail_update=True)
        store = GoogleSheetStore("sheet-id", service=FakeSheetsService(values))

        with pytest.raises(UpstreamIOError):
            await store.replace_rows(ACTIVATION_SHEET, "A1:L3", rows[:2] + rows[3:])

        assert values.rows == rows
        assert ("clear", f"{ACTIVATION_SHEET}!A4:L") not in values.calls

    @pytest.mark.parametrize("cell_range, expected", [
        ("A1:L3", "A4:L"),
        ("a1:l10", "A11:L"),
        ("A1:L", None),
    ])
    def test_stale_tail_range(self, cell_range, expected):
        assert stale_tail_range(cell_range) == expected

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .errors import UpstreamIOError
from .schemas import ActivationRecord, UserRecord, normalize_handle

Row = List[Any]

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

CELL_RANGE = re.compile(r"^([A-Z]+)\d+:([A-Z]+)(\d+)$")


def stale_tail_range(cell_range: str) -> Optional[str]:
    """Range below ``cell_range`` down to the end of the sheet, e.g. ``A1:L3`` -> ``A4:L``."""
    match = CELL_RANGE.match(cell_range.upper())
    if not match:
        return None
    first_column, last_column, last_row = match.groups()
    return f"{first_column}{int(last_row) + 1}:{last_column}"


class SheetStore(ABC):
    """Row-oriented access to named sheets. Row 0 of every sheet is its header."""

    @abstractmethod
    async def fetch_rows(self, sheet: str) -> List[Row]:
        ...

    @abstractmethod
    async def append_row(self, sheet: str, row: Sequence[Any]) -> None:
        ...

    @abstractmethod
    async def replace_rows(self, sheet: str, cell_range: str, rows: Sequence[Sequence[Any]]) -> None:
        """Overwrite the whole sheet with ``rows`` written at ``cell_range``."""

    async def fetch_records(self, sheet: str) -> List[ActivationRecord]:
        rows = await self.fetch_rows(sheet)
        return [ActivationRecord.from_row(row) for row in rows[1:]]


class GoogleSheetStore(SheetStore):
    """Google Sheets v4 backend authenticated with a service account."""

    def __init__(
        self,
        spreadsheet_id: str,
        credentials_info: Optional[Dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
        service: Any = None,
    ):
        self.spreadsheet_id = spreadsheet_id
        self.logger = logger or logging.getLogger(__name__)
        if service is None:
            credentials = service_account.Credentials.from_service_account_info(credentials_info, scopes=SCOPES)
            service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        self.service = service

    @property
    def _values(self):
        return self.service.spreadsheets().values()

    async def _call(self, operation: str, request) -> Dict[str, Any]:
        # googleapiclient is blocking
        try:
            return await asyncio.to_thread(request.execute)
        except (HttpError, GoogleAuthError, OSError) as exc:
            self.logger.error(f"Sheets {operation} failed: {exc}")
            raise UpstreamIOError(operation, f"Sheets {operation} failed: {exc}") from exc

    async def fetch_rows(self, sheet: str) -> List[Row]:
        request = self._values.get(spreadsheetId=self.spreadsheet_id, range=sheet)
        result = await self._call(f"get {sheet}", request)
        return result.get("values", [])

    async def append_row(self, sheet: str, row: Sequence[Any]) -> None:
        request = self._values.append(
            spreadsheetId=self.spreadsheet_id,
            range=sheet,
            valueInputOption="USER_ENTERED",
            body={"values": [list(row)]},
        )
        await self._call(f"append {sheet}", request)

    async def replace_rows(self, sheet: str, cell_range: str, rows: Sequence[Sequence[Any]]) -> None:
        # Write first; a failed update must leave the existing rows in place
        request = self._values.update(
            spreadsheetId=self.spreadsheet_id,
            range=f"{sheet}!{cell_range}",
            valueInputOption="USER_ENTERED",
            body={"values": [list(row) for row in rows]},
        )
        await self._call(f"update {sheet}", request)

        tail = stale_tail_range(cell_range)
        if tail:
            request = self._values.clear(spreadsheetId=self.spreadsheet_id, range=f"{sheet}!{tail}", body={})
            await self._call(f"clear {sheet}", request)


class InMemorySheetStore(SheetStore):
    """Process-local store for development and tests."""

    def __init__(self, sheets: Optional[Dict[str, List[Row]]] = None):
        self.sheets: Dict[str, List[Row]] = {name: [list(r) for r in rows] for name, rows in (sheets or {}).items()}
        self.lock = asyncio.Lock()

    async def fetch_rows(self, sheet: str) -> List[Row]:
        async with self.lock:
            return [list(row) for row in self.sheets.get(sheet, [])]

    async def append_row(self, sheet: str, row: Sequence[Any]) -> None:
        async with self.lock:
            self.sheets.setdefault(sheet, []).append(list(row))

    async def replace_rows(self, sheet: str, cell_range: str, rows: Sequence[Sequence[Any]]) -> None:
        async with self.lock:
            self.sheets[sheet] = [list(row) for row in rows]


class UserDirectory:
    """Looks up technicians in the USER sheet (name, handle, role, status)."""

    def __init__(self, store: SheetStore, user_sheet: str, logger: Optional[logging.Logger] = None):
        self.store = store
        self.user_sheet = user_sheet
        self.logger = logger or logging.getLogger(__name__)

    async def resolve_user(self, handle: str) -> Optional[UserRecord]:
        """Active user registered under ``handle``; ``None`` when unknown or inactive."""
        wanted = normalize_handle(handle)
        if not wanted:
            return None
        rows = await self.store.fetch_rows(self.user_sheet)
        for row in rows[1:]:
            user = UserRecord.from_row(row)
            if normalize_handle(user.handle) == wanted and user.is_active:
                return user
        return None

    async def is_admin(self, handle: str) -> bool:
        user = await self.resolve_user(handle)
        return bool(user and user.is_admin)

from enum import Enum
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class FormatTag(str, Enum):
    """Upstream export shapes the extractor understands."""
    TSEL = "TSEL"
    BGES = "BGES"
    WMS = "WMS"
    MANUAL = "MANUAL"


class PeriodKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL = "all"


# Column order of the activation sheet
SHEET_COLUMNS = [
    "TANGGAL", "AO", "WORKORDER", "SERVICE NO", "CUSTOMER NAME", "OWNER",
    "WORKZONE", "SN ONT", "NIK ONT", "STB ID", "NIK STB", "TEKNISI",
]


def normalize_handle(value: Optional[str]) -> str:
    """Lower-case a Telegram handle and drop its leading "@"."""
    return (value or "").strip().lstrip("@").lower()


class ActivationRecord(BaseModel):
    """One row of the activation sheet. Unmatched fields are empty strings."""

    record_date: str = ""
    reference_id: str = ""
    work_order_id: str = ""
    service_number: str = ""
    customer_name: str = ""
    owner: str = ""
    work_zone: str = ""
    ont_serial: str = ""
    ont_owner_id: str = ""
    stb_id: str = ""
    stb_owner_id: str = ""
    technician_handle: str = ""

    def to_row(self) -> List[str]:
        return [
            self.record_date,
            self.reference_id,
            self.work_order_id,
            self.service_number,
            self.customer_name,
            self.owner,
            self.work_zone,
            self.ont_serial,
            self.ont_owner_id,
            self.stb_id,
            self.stb_owner_id,
            self.technician_handle,
        ]

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "ActivationRecord":
        """Build a record from a sheet row; short rows are padded with empty cells."""
        cells = [str(cell) if cell is not None else "" for cell in row]
        cells += [""] * (len(SHEET_COLUMNS) - len(cells))
        return cls(
            record_date=cells[0],
            reference_id=cells[1],
            work_order_id=cells[2],
            service_number=cells[3],
            customer_name=cells[4],
            owner=cells[5],
            work_zone=cells[6],
            ont_serial=cells[7],
            ont_owner_id=cells[8],
            stb_id=cells[9],
            stb_owner_id=cells[10],
            technician_handle=cells[11],
        )


class UserRecord(BaseModel):
    """Row of the USER sheet: name, handle, role, status."""

    name: str = ""
    handle: str = ""
    role: str = ""
    status: str = ""

    @property
    def is_active(self) -> bool:
        return self.status.strip().upper() == "AKTIF"

    @property
    def is_admin(self) -> bool:
        return self.is_active and self.role.strip().upper() == "ADMIN"

    @property
    def technician_handle(self) -> str:
        return self.handle.strip().lstrip("@")

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "UserRecord":
        cells = [str(cell) if cell is not None else "" for cell in row]
        cells += [""] * (4 - len(cells))
        return cls(name=cells[0], handle=cells[1], role=cells[2], status=cells[3])


class RankedCount(BaseModel):
    key: str
    count: int


class Aggregation(BaseModel):
    """Ranked tallies of a record set, highest count first."""

    total: int = 0
    by_technician: List[RankedCount] = Field(default_factory=list)
    by_work_zone: List[RankedCount] = Field(default_factory=list)
    by_owner: List[RankedCount] = Field(default_factory=list)


# --- Telegram Bot API payloads (only the fields the bot reads) ---

class TelegramUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    username: Optional[str] = None
    first_name: Optional[str] = None


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    type: str = "private"


class TelegramMessage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: int
    chat: TelegramChat
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    text: Optional[str] = None

    @property
    def username(self) -> str:
        return (self.from_user.username or "") if self.from_user else ""

    @property
    def is_group(self) -> bool:
        return self.chat.type in ("group", "supergroup")


class TelegramUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    update_id: int
    message: Optional[TelegramMessage] = None


class BotReply(BaseModel):
    """Outbound answer to one inbound message: either text or a document."""

    chat_id: int
    text: Optional[str] = None
    document: Optional[bytes] = None
    filename: Optional[str] = None
    caption: Optional[str] = None
    reply_to_message_id: Optional[int] = None

import logging
import re
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Tuple

from .activation import ActivationService
from .aggregator import aggregate, records_of_technician
from .config import Settings, decode_service_account_key
from .dates import now_local, parse_anchor_date
from .dedup import remove_duplicates
from .errors import DuplicateError, UpstreamIOError, ValidationError
from .logging_config import get_chat_logger
from .periods import filter_by_period
from .reports import ReportFormatter, export_csv, export_filename
from .schemas import BotReply, PeriodKind, TelegramMessage, TelegramUpdate, normalize_handle
from .sheets import GoogleSheetStore, SheetStore, UserDirectory
from .telegram import TelegramClient

COMMAND_PATTERN = re.compile(r"^/([A-Za-z0-9_]+)(?:@[A-Za-z0-9_]+)?(?=\s|$)")
USERNAME_COMMAND = re.compile(r"^/[A-Za-z0-9_]+$")

# Prefixes that never resolve to a technician lookup
RESERVED_PREFIXES = (
    "cari", "ps", "allps", "clean", "clear", "help", "start", "aktivasi",
    "exportcari", "weekly", "monthly", "topteknisi",
)

MSG_NOT_REGISTERED = "❌ Anda tidak terdaftar sebagai user aktif."
MSG_SYSTEM_ERROR = "❌ Terjadi kesalahan sistem. Silakan coba lagi nanti."
MSG_UNKNOWN = "❓ Command tidak dikenali. Ketik /help untuk melihat daftar command yang tersedia untuk Anda."
MSG_EMPTY_ACTIVATION = "Silakan kirim data aktivasi setelah /aktivasi."
MSG_DUPLICATE = "❌ Data duplikat. AO sudah pernah diinput."
MSG_STORED = "✅ Data berhasil disimpan ke sheet, GASPOLLL 🚀🚀!\n\n<b>Lanjut GROUP FULFILLMENT dan PT1</b>\n"
MSG_NOTHING_TO_EXPORT = "❌ Tidak ada data aktivasi untuk diekspor."
MSG_SHEET_CLEAN = "✅ Sheet sudah bersih, tidak ada data duplikat."

Handler = Callable[[TelegramMessage, List[str]], Awaitable[List[BotReply]]]


def parse_command(text: str) -> Tuple[Optional[str], List[str]]:
    """Split ``/cmd@bot arg1 arg2`` into the lower-cased command and its arguments."""
    match = COMMAND_PATTERN.match(text)
    if not match:
        return None, []
    return match.group(1).lower(), text[match.end():].split()


class ChatOrchestrator:
    """
    Routes inbound chat messages to the activation write path or to a report.

    Workflow:
    1. Group chats only accept /aktivasi, everything else is ignored
    2. The command name selects a handler; admin-only handlers check the USER sheet
    3. /aktivasi runs ActivationService (classify, extract, validate, dedup, append)
    4. Report commands fetch the activation sheet, filter by period and aggregate
    5. Every handler returns BotReply objects; delivery belongs to the transport

    Any failure while handling one message is logged and answered with a
    generic error so that the next message is served normally.
    """

    def __init__(
        self,
        store: SheetStore,
        users: UserDirectory,
        activation_service: ActivationService,
        activation_sheet: str,
        formatter: Optional[ReportFormatter] = None,
        tz_name: str = "Asia/Jakarta",
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.users = users
        self.activation_service = activation_service
        self.activation_sheet = activation_sheet
        self.tz_name = tz_name
        self.clock = clock or (lambda: now_local(tz_name))
        self.formatter = formatter or ReportFormatter(tz_name=tz_name, clock=self.clock)
        self.logger = logger or logging.getLogger(__name__)

        self.handlers: List[Tuple[str, Handler]] = [
            ("exportcari", self._handle_export),
            ("ps", self._handle_daily),
            ("weekly", self._handle_weekly),
            ("monthly", self._handle_monthly),
            ("topteknisi", self._handle_top_technicians),
            ("allps", self._handle_overall),
            ("cari", self._handle_personal_stats),
            ("clear", self._handle_clear),
            ("aktivasi", self._handle_activation),
            ("help", self._handle_help),
            ("start", self._handle_help),
        ]

    @staticmethod
    def _reply(message: TelegramMessage, text: str) -> List[BotReply]:
        return [BotReply(chat_id=message.chat.id, text=text, reply_to_message_id=message.message_id)]

    def _resolve_handler(self, text: str) -> Tuple[Optional[Handler], List[str]]:
        command, args = parse_command(text)
        if command is None:
            return None, []
        for name, handler in self.handlers:
            if command == name:
                return handler, args
        if USERNAME_COMMAND.match(text) and not command.startswith(RESERVED_PREFIXES):
            return self._handle_technician_lookup, [text[1:]]
        return self._handle_unknown, args

    async def process_message(self, message: TelegramMessage) -> List[BotReply]:
        text = (message.text or "").strip()
        username = message.username
        self.logger.info(
            f"Message received - Chat: {message.chat.id}, User: @{username}, "
            f"Type: {message.chat.type}, Text: {text[:50]}"
        )

        if not text.startswith("/"):
            return []
        command, _ = parse_command(text)
        if message.is_group and command != "aktivasi":
            return []

        handler, args = self._resolve_handler(text)
        if handler is None:
            return []

        chat_logger = get_chat_logger(message.chat.id)
        chat_logger.info(f"@{username} -> /{command}")
        try:
            replies = await handler(message, args)
        except UpstreamIOError as exc:
            self.logger.exception(f"Upstream failure while handling /{command}: {exc}")
            chat_logger.error(f"/{command} failed: {exc.operation}")
            return self._reply(message, MSG_SYSTEM_ERROR)
        except Exception:
            self.logger.exception(f"Error processing message /{command}")
            chat_logger.error(f"/{command} failed unexpectedly")
            return self._reply(message, MSG_SYSTEM_ERROR)

        chat_logger.info(f"/{command} answered with {len(replies)} message(s)")
        return replies

    async def _require_admin(self, message: TelegramMessage, command: str) -> Optional[List[BotReply]]:
        """Denial reply when the sender is not an admin, ``None`` otherwise."""
        if await self.users.is_admin(message.username):
            return None
        scope = f"Command /{command}" if command else "Command ini"
        return self._reply(message, f"❌ Akses ditolak. {scope} hanya untuk admin.")

    # --- Write path ---

    async def _handle_activation(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        user = await self.users.resolve_user(message.username)
        if not user:
            return self._reply(message, MSG_NOT_REGISTERED)

        raw_text = COMMAND_PATTERN.sub("", (message.text or "").strip(), count=1).strip()
        if not raw_text:
            return self._reply(message, MSG_EMPTY_ACTIVATION)

        handle = user.technician_handle or message.username
        try:
            await self.activation_service.submit(raw_text, handle)
        except ValidationError as exc:
            return self._reply(message, f"❌ Data tidak lengkap. Field berikut wajib diisi: {', '.join(exc.missing_fields)}")
        except DuplicateError:
            return self._reply(message, MSG_DUPLICATE)
        return self._reply(message, MSG_STORED)

    # --- Read path ---

    async def _period_aggregate(self, period: PeriodKind, anchor_text: Optional[str]):
        records = await self.store.fetch_records(self.activation_sheet)
        anchor = parse_anchor_date(anchor_text)
        if anchor_text and anchor is None:
            self.logger.warning(f"Unrecognized date argument {anchor_text!r}, using today")
        return aggregate(filter_by_period(records, period, anchor or self.clock().date(), tz_name=self.tz_name))

    async def _handle_daily(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        denied = await self._require_admin(message, "ps")
        if denied:
            return denied
        anchor_text = args[0] if args else None
        agg = await self._period_aggregate(PeriodKind.DAILY, anchor_text)
        return self._reply(message, self.formatter.daily_report(agg, anchor_text))

    async def _handle_weekly(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        denied = await self._require_admin(message, "weekly")
        if denied:
            return denied
        anchor_text = args[0] if args else None
        agg = await self._period_aggregate(PeriodKind.WEEKLY, anchor_text)
        return self._reply(message, self.formatter.weekly_report(agg, anchor_text))

    async def _handle_monthly(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        denied = await self._require_admin(message, "monthly")
        if denied:
            return denied
        anchor_text = args[0] if args else None
        agg = await self._period_aggregate(PeriodKind.MONTHLY, anchor_text)
        return self._reply(message, self.formatter.monthly_report(agg, anchor_text))

    async def _handle_top_technicians(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        denied = await self._require_admin(message, "topteknisi")
        if denied:
            return denied
        try:
            period = PeriodKind((args[0] if args else "all").lower())
        except ValueError:
            period = PeriodKind.ALL
        anchor_text = args[1] if len(args) > 1 else None
        agg = await self._period_aggregate(period, anchor_text)
        return self._reply(message, self.formatter.technician_ranking(agg, period, anchor_text))

    async def _handle_overall(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        denied = await self._require_admin(message, "allps")
        if denied:
            return denied
        records = await self.store.fetch_records(self.activation_sheet)
        return self._reply(message, self.formatter.overall_summary(aggregate(records)))

    async def _handle_personal_stats(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        user = await self.users.resolve_user(message.username)
        if not user:
            return self._reply(message, MSG_NOT_REGISTERED)
        records = await self.store.fetch_records(self.activation_sheet)
        mine = records_of_technician(records, user.handle or message.username)
        label = user.handle or message.username
        return self._reply(message, self.formatter.technician_stats(aggregate(mine), label, own=True))

    async def _handle_technician_lookup(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        denied = await self._require_admin(message, "")
        if denied:
            return denied
        target = args[0]
        records = await self.store.fetch_records(self.activation_sheet)
        theirs = records_of_technician(records, target)
        return self._reply(message, self.formatter.technician_stats(aggregate(theirs), f"/{target}", own=False))

    async def _handle_export(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        user = await self.users.resolve_user(message.username)
        if not user:
            return self._reply(message, MSG_NOT_REGISTERED)
        records = await self.store.fetch_records(self.activation_sheet)
        mine = records_of_technician(records, user.handle or message.username)
        if not mine:
            return self._reply(message, MSG_NOTHING_TO_EXPORT)

        filename = export_filename(normalize_handle(user.handle or message.username), self.clock().date())
        return [BotReply(
            chat_id=message.chat.id,
            document=export_csv(mine),
            filename=filename,
            caption=f"📊 File CSV berhasil digenerate!\nFilename: {filename}",
            reply_to_message_id=message.message_id,
        )]

    # --- Maintenance ---

    async def _handle_clear(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        denied = await self._require_admin(message, "clear")
        if denied:
            return denied
        rows = await self.store.fetch_rows(self.activation_sheet)
        if len(rows) <= 1:
            return self._reply(message, MSG_SHEET_CLEAN)

        unique, removed = remove_duplicates(rows)
        if removed == 0:
            return self._reply(message, MSG_SHEET_CLEAN)

        await self.store.replace_rows(self.activation_sheet, f"A1:L{len(unique)}", unique)
        self.logger.info(f"Removed {removed} duplicate rows from {self.activation_sheet}")
        return self._reply(
            message,
            f"✅ Berhasil menghapus {removed} data duplikat berdasarkan AO. Sheet telah dibersihkan.",
        )

    async def _handle_help(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        is_admin = await self.users.is_admin(message.username)
        return self._reply(message, self.formatter.help_text(is_admin))

    async def _handle_unknown(self, message: TelegramMessage, args: List[str]) -> List[BotReply]:
        return self._reply(message, MSG_UNKNOWN)

    async def process_update(self, update: TelegramUpdate, transport: TelegramClient) -> None:
        """Handle one update and deliver its replies; delivery failures are logged, not raised."""
        if update.message is None:
            return
        replies = await self.process_message(update.message)
        for reply in replies:
            try:
                await transport.deliver(reply)
            except UpstreamIOError:
                self.logger.exception(f"Failed to deliver reply to chat {reply.chat_id}")


def build_orchestrator(
    settings: Settings,
    store: Optional[SheetStore] = None,
    logger: Optional[logging.Logger] = None,
) -> ChatOrchestrator:
    """Wire the orchestrator from settings; the Google Sheets store is used unless one is given."""
    if store is None:
        store = GoogleSheetStore(
            settings.sheet_id,
            decode_service_account_key(settings.google_service_account_key),
            logger=logger,
        )
    activation_service = ActivationService(
        store,
        settings.activation_sheet,
        validation_mode=settings.validation_mode,
        tz_name=settings.timezone,
        logger=logger,
    )
    return ChatOrchestrator(
        store=store,
        users=UserDirectory(store, settings.user_sheet, logger=logger),
        activation_service=activation_service,
        activation_sheet=settings.activation_sheet,
        tz_name=settings.timezone,
        logger=logger,
    )

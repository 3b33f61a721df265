"""Long-polling runner for local development.

Updates are fetched with getUpdates and handled strictly one at a time.
Run with ``python -m rekapan_bot.polling``.
"""

import asyncio
import logging
from typing import Optional

from .chat_orchestrator import ChatOrchestrator, build_orchestrator
from .config import get_settings
from .errors import UpstreamIOError
from .logging_config import close_all_chat_loggers, setup_logging
from .telegram import TelegramClient

POLL_TIMEOUT_SECONDS = 30
ERROR_BACKOFF_SECONDS = 5


async def poll_once(
    orchestrator: ChatOrchestrator,
    telegram: TelegramClient,
    offset: Optional[int] = None,
    timeout: int = POLL_TIMEOUT_SECONDS,
) -> Optional[int]:
    """Fetch and process one batch of updates; returns the next offset."""
    updates = await telegram.get_updates(offset=offset, timeout=timeout)
    for update in updates:
        await orchestrator.process_update(update, telegram)
        offset = update.update_id + 1
    return offset


async def run_polling(
    orchestrator: ChatOrchestrator,
    telegram: TelegramClient,
    logger: Optional[logging.Logger] = None,
) -> None:
    logger = logger or logging.getLogger(__name__)

    # getUpdates is refused while a webhook is registered
    await telegram.delete_webhook()
    logger.info("Polling for updates")

    offset = None
    while True:
        try:
            offset = await poll_once(orchestrator, telegram, offset)
        except UpstreamIOError as exc:
            logger.error(f"Polling error: {exc}")
            await asyncio.sleep(ERROR_BACKOFF_SECONDS)


async def main() -> None:
    settings = get_settings()
    logger = setup_logging(settings.log_level)
    orchestrator = build_orchestrator(settings, logger=logger)
    telegram = TelegramClient(
        settings.telegram_token,
        max_length=settings.message_max_length,
        max_retries=settings.send_max_retries,
        logger=logger,
    )
    try:
        await run_polling(orchestrator, telegram, logger=logger)
    finally:
        await telegram.aclose()
        close_all_chat_loggers()


if __name__ == "__main__":
    asyncio.run(main())

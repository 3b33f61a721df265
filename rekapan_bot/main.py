import secrets
import time
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Dict

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request
from pydantic import ValidationError as PayloadError

from .chat_orchestrator import ChatOrchestrator, build_orchestrator
from .config import get_settings
from .errors import UpstreamIOError
from .logging_config import close_all_chat_loggers, setup_logging
from .schemas import TelegramUpdate
from .telegram import TelegramClient

settings = get_settings()
logger = setup_logging(settings.log_level)


@lru_cache(maxsize=1)
def get_orchestrator() -> ChatOrchestrator:
    return build_orchestrator(settings, logger=logger)


@lru_cache(maxsize=1)
def get_telegram_client() -> TelegramClient:
    return TelegramClient(
        settings.telegram_token,
        max_length=settings.message_max_length,
        max_retries=settings.send_max_retries,
        logger=logger,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.webhook_url:
        try:
            await get_telegram_client().set_webhook(settings.webhook_url)
            logger.info(f"Webhook registered at {settings.public_url}")
        except UpstreamIOError:
            logger.exception("Failed to register webhook")
    elif settings.webhook_enabled:
        logger.warning("USE_WEBHOOK is set but PUBLIC_URL is missing, webhook not registered")
    else:
        logger.info("No public URL configured, run rekapan_bot.polling for updates")
    yield
    close_all_chat_loggers()


app = FastAPI(
    title="Rekapan Quality Bot",
    version="0.1.0",
    description="Telegram webhook that records activation reports into Google Sheets and answers report commands.",
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Request logging middleware with latency capture."""

    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    # The webhook path embeds the bot token
    path = "/bot<token>" if request.url.path.startswith("/bot") else request.url.path
    logger.info(
        "Handled request",
        extra={
            "path": path,
            "method": request.method,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "client": request.client.host if request.client else None,
        },
    )
    return response


@app.post("/bot{token}")
async def telegram_webhook(
    token: str,
    payload: Dict[str, Any],
    background_tasks: BackgroundTasks,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
    telegram: TelegramClient = Depends(get_telegram_client),
) -> Dict[str, bool]:
    """Accept a Telegram update and process it after the response is sent."""
    if not secrets.compare_digest(token, settings.telegram_token):
        raise HTTPException(status_code=404, detail="Not Found")

    try:
        update = TelegramUpdate.model_validate(payload)
    except PayloadError:
        logger.warning("Ignoring malformed update payload")
        return {"ok": True}

    background_tasks.add_task(orchestrator.process_update, update, telegram)
    return {"ok": True}


@app.get("/api/health")
async def healthcheck() -> Dict[str, str]:
    return {"status": "ok", "service": "rekapan-bot"}


@app.get("/")
async def root():
    return "Bot is running!"

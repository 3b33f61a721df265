import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .errors import UpstreamIOError
from .schemas import BotReply, TelegramUpdate

API_BASE = "https://api.telegram.org"


def split_message(text: str, max_length: int = 4000) -> List[str]:
    """Split on line boundaries so that every chunk fits ``max_length``."""
    if len(text) <= max_length:
        return [text]

    chunks = []
    chunk = ""
    for line in text.split("\n"):
        if chunk and len(chunk) + len(line) + 1 > max_length:
            chunks.append(chunk)
            chunk = ""
        # A single oversized line is cut hard
        while len(line) + 1 > max_length:
            chunks.append(line[:max_length])
            line = line[max_length:]
        chunk += line + "\n"
    if chunk.strip():
        chunks.append(chunk)
    return chunks


class TelegramClient:
    """Thin Bot API client: delivery with chunking and retry, documents, webhook and polling."""

    def __init__(
        self,
        token: str,
        max_length: int = 4000,
        max_retries: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.base_url = f"{API_BASE}/bot{token}"
        self.max_length = max_length
        self.max_retries = max_retries
        self.http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(30.0, read=60.0))
        self.logger = logger or logging.getLogger(__name__)

    async def _post(self, method: str, **kwargs) -> Any:
        """Call a Bot API method, retrying transport errors with exponential backoff."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries + 1),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception_type(httpx.HTTPError),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        self.logger.info(f"Retry {attempt.retry_state.attempt_number - 1} calling {method}")
                    response = await self.http.post(f"{self.base_url}/{method}", **kwargs)
                    response.raise_for_status()
                    payload = response.json()
        except httpx.HTTPError as exc:
            self.logger.error(f"Telegram {method} failed: {exc}")
            raise UpstreamIOError(method, f"Telegram {method} failed: {exc}") from exc

        if not payload.get("ok", False):
            raise UpstreamIOError(method, f"Telegram {method} rejected: {payload.get('description')}")
        return payload.get("result")

    async def send_message(self, chat_id: int, text: str, reply_to_message_id: Optional[int] = None) -> List[Any]:
        results = []
        for chunk in split_message(text, self.max_length):
            body: Dict[str, Any] = {"chat_id": chat_id, "text": chunk, "parse_mode": "HTML"}
            if reply_to_message_id is not None:
                body["reply_to_message_id"] = reply_to_message_id
            results.append(await self._post("sendMessage", json=body))
        return results

    async def send_document(
        self,
        chat_id: int,
        content: bytes,
        filename: str,
        caption: Optional[str] = None,
        reply_to_message_id: Optional[int] = None,
    ) -> Any:
        data: Dict[str, Any] = {"chat_id": str(chat_id)}
        if caption:
            data["caption"] = caption
        if reply_to_message_id is not None:
            data["reply_to_message_id"] = str(reply_to_message_id)
        files = {"document": (filename, content, "text/csv")}
        return await self._post("sendDocument", data=data, files=files)

    async def deliver(self, reply: BotReply) -> None:
        if reply.document is not None:
            await self.send_document(
                reply.chat_id,
                reply.document,
                reply.filename or "export.csv",
                caption=reply.caption,
                reply_to_message_id=reply.reply_to_message_id,
            )
        elif reply.text:
            await self.send_message(reply.chat_id, reply.text, reply_to_message_id=reply.reply_to_message_id)

    async def set_webhook(self, url: str) -> Any:
        return await self._post("setWebhook", json={"url": url})

    async def delete_webhook(self) -> Any:
        return await self._post("deleteWebhook", json={})

    async def get_updates(self, offset: Optional[int] = None, timeout: int = 30) -> List[TelegramUpdate]:
        body: Dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            body["offset"] = offset
        result = await self._post("getUpdates", json=body)
        return [TelegramUpdate.model_validate(item) for item in result or []]

    async def aclose(self) -> None:
        await self.http.aclose()

import logging
from typing import Any, Dict, Optional

import httpx

from keyboards import Keyboard, render_message

log = logging.getLogger("earnbot")


class TelegramClient:
    """Thin Bot API wrapper. Every call logs its own failures and never raises."""

    def __init__(self, token: str, base_url: str = "https://api.telegram.org", timeout: Optional[httpx.Timeout] = None):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or httpx.Timeout(connect=5.0, read=10.0, write=10.0, pool=5.0)

    def _url(self, method: str) -> str:
        return f"{self.base_url}/bot{self.token}/{method}"

    async def _call(self, method: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """POST a Bot API method. Returns the decoded body on success, else None."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(self._url(method), json=payload)

            try:
                body = r.json()
            except ValueError:
                body = None

            if r.status_code < 200 or r.status_code >= 300:
                log.error("%s failed: %s %s", method, r.status_code, r.text[:500])
                return None
            if not isinstance(body, dict) or not body.get("ok"):
                log.error("%s failed: %s", method, r.text[:500])
                return None
            return body

        except httpx.HTTPError as e:
            log.error("%s failed: %s", method, e)
            return None

    async def send_message(self, chat_id: int | str, text: str, keyboard: Optional[Keyboard] = None) -> bool:
        return await self._call("sendMessage", render_message(chat_id, text, keyboard)) is not None

    async def answer_callback_query(self, callback_query_id: str) -> bool:
        return await self._call("answerCallbackQuery", {"callback_query_id": callback_query_id}) is not None

    async def set_webhook(self, url: str) -> bool:
        body = await self._call("setWebhook", {"url": url})
        if body is None:
            return False
        log.info("Webhook set: %s", url)
        return True

    async def get_me(self) -> Optional[Dict[str, Any]]:
        body = await self._call("getMe", {})
        return body.get("result") if body else None

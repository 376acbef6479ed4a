import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from dispatcher import ButtonPress, Dispatcher, Event, TextMessage
from ledger_store import get_ledger_store
from processor import UpdateProcessor
from schemas.telegram import Update
from settings import settings
from telegram_api import TelegramClient

log = logging.getLogger("earnbot")

webhook_router = APIRouter()

_processor: Optional[UpdateProcessor] = None
# One processor per process: its lock is what serializes ledger updates
_processor_lock = asyncio.Lock()


def get_telegram() -> TelegramClient:
    return TelegramClient(settings.bot_token, base_url=settings.telegram_api_base)


async def _resolve_bot_username(telegram: TelegramClient) -> Optional[str]:
    if settings.bot_username:
        return settings.bot_username
    me = await telegram.get_me()
    username = (me or {}).get("username")
    if not username:
        log.warning("Bot username unknown (BOT_USERNAME not set, getMe failed), will retry")
    return username


async def get_processor() -> UpdateProcessor:
    global _processor
    async with _processor_lock:
        if _processor is None:
            telegram = get_telegram()
            dispatcher = Dispatcher(
                bot_username=await _resolve_bot_username(telegram),
                earn_amount=settings.earn_amount,
                earn_cooldown=settings.earn_cooldown_seconds,
                referral_bonus=settings.referral_bonus,
                min_withdrawal=settings.min_withdrawal,
                leaderboard_size=settings.leaderboard_size,
            )
            _processor = UpdateProcessor(get_ledger_store(), dispatcher, telegram)
        elif not _processor.dispatcher.bot_username:
            _processor.dispatcher.bot_username = await _resolve_bot_username(_processor.telegram)
    return _processor


def update_to_event(update: Update) -> Optional[Event]:
    if update.message is not None:
        return TextMessage(sender_id=str(update.message.chat.id), text=update.message.text or "")

    cb = update.callback_query
    if cb is not None and cb.message is not None:
        return ButtonPress(sender_id=str(cb.message.chat.id), command_tag=cb.data or "")

    return None


def webhook_url() -> str:
    if not settings.public_base_url:
        raise HTTPException(400, "PUBLIC_BASE_URL (or RENDER_EXTERNAL_URL) is not set")
    return settings.public_base_url.rstrip("/") + "/webhook"


@webhook_router.post("/webhook")
async def telegram_webhook(update: Update, processor: UpdateProcessor = Depends(get_processor)):
    event = update_to_event(update)
    if event is None:
        log.info("Ignoring update %s: no message or callback_query", update.update_id)
        return {"ok": True, "ignored": True}

    try:
        await processor.process(event)
    except Exception as e:
        log.exception("Main error: %s", e)
        raise HTTPException(500, "Error processing update")

    if update.callback_query is not None:
        await processor.telegram.answer_callback_query(update.callback_query.id)

    return {"ok": True}


@webhook_router.get("/webhook")
async def register_webhook(telegram: TelegramClient = Depends(get_telegram)):
    url = webhook_url()
    if not await telegram.set_webhook(url):
        raise HTTPException(502, "setWebhook failed")
    return {"ok": True, "url": url}

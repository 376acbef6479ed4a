import asyncio
import logging

from dispatcher import DispatchResult, Dispatcher, Event
from ledger_store import LedgerStore
from telegram_api import TelegramClient

log = logging.getLogger("earnbot")


class UpdateProcessor:
    """Runs one event through load -> dispatch -> save, then sends the replies.

    The lock covers the whole load-mutate-save sequence so concurrent webhook
    deliveries cannot overwrite each other's ledger changes. Replies go out
    after the save; a failed send does not undo the mutation.
    """

    def __init__(self, store: LedgerStore, dispatcher: Dispatcher, telegram: TelegramClient):
        self.store = store
        self.dispatcher = dispatcher
        self.telegram = telegram
        self._lock = asyncio.Lock()

    async def process(self, event: Event) -> DispatchResult:
        async with self._lock:
            ledger = await self.store.load()
            result = self.dispatcher.handle(ledger, event)
            if result.persist:
                await self.store.save(ledger)

        for msg in result.messages:
            await self.telegram.send_message(msg.chat_id, msg.text, msg.keyboard)
        return result

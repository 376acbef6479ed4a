import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Union

from keyboards import Keyboard, main_keyboard
from ledger import Ledger
from schemas.ledger import UserRecord
from settings import settings

log = logging.getLogger("earnbot")

START_COMMAND = "/start"


class Command(str, Enum):
    EARN = "earn"
    BALANCE = "balance"
    LEADERBOARD = "leaderboard"
    REFERRALS = "referrals"
    WITHDRAW = "withdraw"
    HELP = "help"


@dataclass(frozen=True)
class TextMessage:
    sender_id: str
    text: str


@dataclass(frozen=True)
class ButtonPress:
    sender_id: str
    command_tag: str


Event = Union[TextMessage, ButtonPress]


@dataclass
class OutgoingMessage:
    chat_id: str
    text: str
    keyboard: Optional[Keyboard] = None


@dataclass
class DispatchResult:
    messages: List[OutgoingMessage] = field(default_factory=list)
    # False when the event touched nothing worth writing back
    persist: bool = True


def resolve_referral(ledger: Ledger, code: str, requester_id: str, bonus: int) -> Optional[str]:
    """Credit the owner of `code` for referring `requester_id`.

    The referrer is the first record in ledger order that owns the code and
    is not the requester. Returns its id, or None when there is none. The
    caller checks that the requester has no referrer yet.
    """
    referrer_id = ledger.find_by_ref_code(code, exclude=requester_id)
    if referrer_id is None:
        return None

    requester = ledger.get(requester_id)
    referrer = ledger.get(referrer_id)
    if requester is None or referrer is None:
        return None

    requester.referred_by = referrer_id
    referrer.referrals += 1
    referrer.balance += bonus
    log.info("Referral: %s referred by %s (+%s)", requester_id, referrer_id, bonus)
    return referrer_id


class Dispatcher:
    def __init__(
        self,
        bot_username: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        earn_amount: Optional[int] = None,
        earn_cooldown: Optional[int] = None,
        referral_bonus: Optional[int] = None,
        min_withdrawal: Optional[int] = None,
        leaderboard_size: Optional[int] = None,
    ):
        # Unset values come from settings as they are now, not at import time
        self.bot_username = bot_username
        self.clock = clock
        self.earn_amount = settings.earn_amount if earn_amount is None else earn_amount
        self.earn_cooldown = settings.earn_cooldown_seconds if earn_cooldown is None else earn_cooldown
        self.referral_bonus = settings.referral_bonus if referral_bonus is None else referral_bonus
        self.min_withdrawal = settings.min_withdrawal if min_withdrawal is None else min_withdrawal
        self.leaderboard_size = settings.leaderboard_size if leaderboard_size is None else leaderboard_size

    def handle(self, ledger: Ledger, event: Event) -> DispatchResult:
        if isinstance(event, TextMessage):
            return self.handle_text(ledger, event)
        if isinstance(event, ButtonPress):
            return self.handle_button(ledger, event)
        raise TypeError(f"unsupported event: {event!r}")

    # --------- text messages ----------
    def handle_text(self, ledger: Ledger, event: TextMessage) -> DispatchResult:
        user_id = str(event.sender_id)
        user, created = ledger.ensure(user_id)
        if created:
            log.info("New user %s ref_code=%s", user_id, user.ref_code)

        text = (event.text or "").strip()
        if not text.startswith(START_COMMAND):
            log.info("Unhandled text from %s: %r", user_id, text[:50])
            return DispatchResult()

        result = DispatchResult()
        args = text.split()
        if len(args) > 1 and not user.referred_by:
            referrer_id = resolve_referral(ledger, args[1], user_id, self.referral_bonus)
            if referrer_id is not None:
                result.messages.append(
                    OutgoingMessage(referrer_id, f"🎉 New referral! +{self.referral_bonus} points bonus!")
                )

        welcome = (
            "Welcome to Earning Bot!\n"
            "Earn points, invite friends, and withdraw your earnings!\n"
            f"Your referral code: <b>{user.ref_code}</b>"
        )
        result.messages.append(OutgoingMessage(user_id, welcome, main_keyboard()))
        return result

    # --------- button presses ----------
    def handle_button(self, ledger: Ledger, event: ButtonPress) -> DispatchResult:
        user_id = str(event.sender_id)
        user = ledger.get(user_id)
        if user is None:
            return DispatchResult(
                messages=[OutgoingMessage(user_id, "❌ User not found. Please send /start again.")],
                persist=False,
            )

        try:
            command = Command(event.command_tag)
        except ValueError:
            log.info("Unknown command %r from %s", event.command_tag, user_id)
            response = "❌ Unknown command"
        else:
            response = self._run(command, ledger, user_id, user)

        return DispatchResult(messages=[OutgoingMessage(user_id, response, main_keyboard())])

    def _run(self, command: Command, ledger: Ledger, user_id: str, user: UserRecord) -> str:
        if command is Command.EARN:
            return self._earn(user)
        if command is Command.BALANCE:
            return f"💳 Your Balance\nPoints: {user.balance}\nReferrals: {user.referrals}"
        if command is Command.LEADERBOARD:
            return self._leaderboard(ledger)
        if command is Command.REFERRALS:
            return self._referrals(user)
        if command is Command.WITHDRAW:
            return self._withdraw(user_id, user)
        if command is Command.HELP:
            return (
                "❓ Help\n"
                f"💰 Earn: Get {self.earn_amount} points/min\n"
                f"👥 Refer: {self.referral_bonus} points/ref\n"
                f"🏧 Withdraw: Min {self.min_withdrawal} points\n"
                "Use buttons below to navigate!"
            )
        raise ValueError(f"unhandled command: {command}")

    def _earn(self, user: UserRecord) -> str:
        now = int(self.clock())
        elapsed = now - user.last_earn
        if elapsed < self.earn_cooldown:
            remaining = self.earn_cooldown - elapsed
            return f"⏳ Please wait {remaining} seconds before earning again!"

        user.balance += self.earn_amount
        user.last_earn = now
        return f"✅ You earned {self.earn_amount} points!\nNew balance: {user.balance}"

    def _leaderboard(self, ledger: Ledger) -> str:
        # sorted() is stable: equal balances keep ledger order
        top = sorted(ledger.items(), key=lambda item: item[1].balance, reverse=True)
        lines = ["🏆 Top Earners"]
        for position, (user_id, record) in enumerate(top[: self.leaderboard_size], start=1):
            lines.append(f"{position}. User {user_id}: {record.balance} points")
        return "\n".join(lines) + "\n"

    def _referrals(self, user: UserRecord) -> str:
        return (
            "👥 Referral System\n"
            f"Your code: <b>{user.ref_code}</b>\n"
            f"Referrals: {user.referrals}\n"
            f"Invite link: {self.invite_link(user.ref_code)}\n"
            f"{self.referral_bonus} points per referral!"
        )

    def invite_link(self, ref_code: str) -> str:
        return f"t.me/{self.bot_username or ''}?start={ref_code}"

    def _withdraw(self, user_id: str, user: UserRecord) -> str:
        if user.balance < self.min_withdrawal:
            return (
                "🏧 Withdrawal\n"
                f"Minimum: {self.min_withdrawal} points\n"
                f"Your balance: {user.balance}\n"
                f"Need {self.min_withdrawal - user.balance} more points!"
            )

        amount = user.balance
        user.balance = 0
        log.info("Withdrawal requested by %s: %s points", user_id, amount)
        return f"🏧 Withdrawal of {amount} points requested!\nOur team will process it soon."

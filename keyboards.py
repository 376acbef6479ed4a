from typing import Any, Dict, List, Optional

Keyboard = List[List[Dict[str, str]]]


def _button(text: str, callback_data: str) -> Dict[str, str]:
    return {"text": text, "callback_data": callback_data}


def main_keyboard() -> Keyboard:
    return [
        [_button("💰 Earn", "earn"), _button("💳 Balance", "balance")],
        [_button("🏆 Leaderboard", "leaderboard"), _button("👥 Referrals", "referrals")],
        [_button("🏧 Withdraw", "withdraw"), _button("❓ Help", "help")],
    ]


def render_message(chat_id: int | str, text: str, keyboard: Optional[Keyboard] = None) -> Dict[str, Any]:
    """Build a sendMessage body. reply_markup is only present when a keyboard is given."""
    payload: Dict[str, Any] = {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": "HTML",
    }
    if keyboard:
        payload["reply_markup"] = {"inline_keyboard": keyboard}
    return payload

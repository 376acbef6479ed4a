from keyboards import main_keyboard, render_message


def test_main_keyboard_is_fixed_three_by_two_grid():
    kb = main_keyboard()

    assert [len(row) for row in kb] == [2, 2, 2]
    assert [b["callback_data"] for row in kb for b in row] == [
        "earn", "balance", "leaderboard", "referrals", "withdraw", "help",
    ]
    assert main_keyboard() == kb


def test_render_message_with_and_without_keyboard():
    plain = render_message(1, "hi")
    with_kb = render_message(1, "hi", main_keyboard())

    assert plain == {"chat_id": 1, "text": "hi", "parse_mode": "HTML"}
    assert with_kb["reply_markup"] == {"inline_keyboard": main_keyboard()}

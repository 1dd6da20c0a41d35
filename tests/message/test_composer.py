import re
from datetime import datetime

import pytest

from commit_gatekeeper.message.composer import choose_summary, compose_message, timestamp_prefix


MESSAGE_PATTERN = re.compile(r"^\d{4}:\d{4} - .+$")


def test_timestamp_prefix_is_fixed_width():
    assert timestamp_prefix(datetime(2026, 1, 5, 7, 3)) == "0105:0703"
    assert timestamp_prefix(datetime(2026, 12, 31, 23, 59)) == "1231:2359"


def test_timestamp_prefix_defaults_to_now():
    assert re.fullmatch(r"\d{4}:\d{4}", timestamp_prefix())


def test_compose_message_format():
    message = compose_message("1017:0930", "  UI update: LoginButton.tsx  ")
    assert message == "1017:0930 - UI update: LoginButton.tsx"
    assert MESSAGE_PATTERN.match(message)


def test_compose_is_idempotent():
    assert compose_message("0101:0000", "Fix login") == compose_message("0101:0000", "Fix login")


def test_compose_collapses_to_single_line():
    message = compose_message("0101:0000", "first line\nsecond   line")
    assert "\n" not in message
    assert message.endswith("first line second line")


@pytest.mark.parametrize("summary", ["", "   ", "\n\t"])
def test_compose_rejects_empty_summary(summary):
    with pytest.raises(ValueError):
        compose_message("0101:0000", summary)


def test_user_summary_wins():
    assert choose_summary("  Add login  ", "UI update: Login.tsx") == "Add login"


def test_auto_summary_used_when_user_summary_blank():
    assert choose_summary("   ", "UI update: Login.tsx") == "UI update: Login.tsx"
    assert choose_summary(None, "UI update: Login.tsx") == "UI update: Login.tsx"


def test_no_summary_available():
    assert choose_summary(None, None) is None
    assert choose_summary("", "  ") is None

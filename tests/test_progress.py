"""Tests for the scan progress bar."""

import io

from wpmedia.progress import ProgressBar, _truncate_middle


def test_disabled_bar_counts_but_writes_nothing():
    out = io.StringIO()
    progress = ProgressBar("Check if media exists", total=3, enabled=False, file=out)

    for _ in range(3):
        progress.tick()
    progress.finish()

    assert progress.n == 3
    assert out.getvalue() == ""


def test_enabled_bar_renders_counts():
    out = io.StringIO()
    progress = ProgressBar("Check if media exists", total=2, enabled=True, file=out)

    progress.tick(desc="#1")
    progress.tick(desc="#2")
    progress.finish()

    text = out.getvalue()
    assert "Check if media exists" in text
    assert "2/2" in text
    assert text.endswith("\n")


def test_auto_detect_uses_tty_state():
    assert ProgressBar("x", total=1, file=io.StringIO()).enabled is False


def test_truncate_middle_keeps_both_ends():
    assert _truncate_middle("abcdefghij", 20) == "abcdefghij"
    truncated = _truncate_middle("abcdefghijklmnopqrstuvwxyz", 11)
    assert len(truncated) == 11
    assert truncated.startswith("abcd")
    assert truncated.endswith("wxyz")


def test_write_puts_message_on_its_own_line_and_redraws():
    out = io.StringIO()
    progress = ProgressBar("Check if media exists", total=2, enabled=True, file=out)
    progress.tick(desc="#1")

    progress.write("⚠️  Skipping attachment 2: not found via REST API")

    text = out.getvalue()
    assert "\r\x1b[2K⚠️  Skipping attachment 2: not found via REST API\n" in text
    assert "1/2" in text.split("\n")[-1]


def test_write_when_disabled_prints_plain_line():
    out = io.StringIO()
    progress = ProgressBar("x", total=1, enabled=False, file=out)

    progress.write("hello")

    assert out.getvalue() == "hello\n"

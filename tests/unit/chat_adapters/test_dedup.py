"""Tests for the message id de-duplication window."""

import pytest

from multichat.services.chat_adapters.dedup import DedupWindow


def test_new_ids_are_accepted_once():
    window = DedupWindow(capacity=3)

    assert window.add("a") is True
    assert window.add("a") is False
    assert "a" in window


def test_oldest_id_evicted_first():
    window = DedupWindow(capacity=3)
    for message_id in ("a", "b", "c", "d"):
        window.add(message_id)

    assert len(window) == 3
    assert list(window) == ["b", "c", "d"]
    assert window.add("a") is True


def test_repeat_does_not_refresh_position():
    window = DedupWindow(capacity=2)
    window.add("a")
    window.add("b")
    window.add("a")
    window.add("c")

    assert "a" not in window
    assert list(window) == ["b", "c"]


def test_missing_ids_always_accepted():
    window = DedupWindow()

    assert window.add(None) is True
    assert window.add(None) is True
    assert len(window) == 0


def test_default_capacity():
    window = DedupWindow()
    for i in range(600):
        window.add(f"id-{i}")

    assert len(window) == 500
    assert "id-99" not in window
    assert "id-100" in window


def test_invalid_capacity():
    with pytest.raises(ValueError):
        DedupWindow(capacity=0)

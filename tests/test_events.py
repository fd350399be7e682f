"""Tests for key-token translation and the ordered event channel."""

from __future__ import annotations

import threading
import unittest

from lazystage.events import (
    CTRL,
    SHIFT,
    EventChannel,
    KeyEvent,
    MouseEvent,
    ResizeEvent,
    TickEvent,
    event_from_token,
    key_event_from_token,
)


class TokenTranslationTests(unittest.TestCase):
    def test_plain_and_shifted_letters(self) -> None:
        self.assertEqual(key_event_from_token("p"), KeyEvent("p"))
        self.assertEqual(key_event_from_token("P"), KeyEvent("P", frozenset({SHIFT})))

    def test_control_tokens_carry_ctrl_modifier(self) -> None:
        self.assertEqual(key_event_from_token("CTRL_C"), KeyEvent("CTRL_C", frozenset({CTRL})))
        self.assertEqual(key_event_from_token("CTRL_QUESTION").modifiers, frozenset({CTRL}))

    def test_carriage_return_and_line_feed_both_mean_enter(self) -> None:
        self.assertEqual(key_event_from_token("ENTER_CR"), KeyEvent("ENTER"))
        self.assertEqual(key_event_from_token("ENTER_LF"), KeyEvent("ENTER"))

    def test_mouse_tokens_become_mouse_events(self) -> None:
        self.assertEqual(event_from_token("MOUSE_LEFT_DOWN:12:4"), MouseEvent("left_down", 12, 4))
        self.assertEqual(event_from_token("MOUSE_WHEEL_UP:1:9"), MouseEvent("wheel_up", 1, 9))

    def test_empty_and_unknown_mouse_tokens_are_dropped(self) -> None:
        self.assertIsNone(event_from_token(""))
        self.assertIsNone(event_from_token("MOUSE"))
        self.assertIsNone(event_from_token("MOUSE_LEFT_DOWN:x:y"))


class EventChannelTests(unittest.TestCase):
    def test_events_come_out_in_arrival_order(self) -> None:
        channel = EventChannel()
        events = [KeyEvent("j"), ResizeEvent(90, 30), KeyEvent("k")]
        for event in events:
            channel.put(event)
        self.assertEqual([channel.get(0.1) for _ in events], events)

    def test_empty_channel_yields_tick(self) -> None:
        channel = EventChannel()
        self.assertIsInstance(channel.get(0.01), TickEvent)

    def test_tick_is_due_even_while_keys_keep_arriving(self) -> None:
        now = [100.0]
        channel = EventChannel(clock=lambda: now[0])
        channel.put(KeyEvent("j"))
        channel.put(KeyEvent("k"))
        self.assertEqual(channel.get(0.5), KeyEvent("j"))

        now[0] = 100.6
        self.assertEqual(channel.get(0.5), TickEvent(100.6))
        self.assertEqual(channel.get(0.5), KeyEvent("k"))

    def test_ticks_are_spaced_by_the_interval(self) -> None:
        now = [10.0]
        channel = EventChannel(clock=lambda: now[0])
        now[0] = 10.2
        channel.put(KeyEvent("j"))
        self.assertEqual(channel.get(0.25), KeyEvent("j"))
        now[0] = 10.3
        channel.put(KeyEvent("k"))
        self.assertEqual(channel.get(0.25), TickEvent(10.3))
        self.assertEqual(channel.get(0.25), KeyEvent("k"))

    def test_producers_on_other_threads_are_merged(self) -> None:
        channel = EventChannel()

        def produce(prefix: str) -> None:
            for i in range(50):
                channel.put(KeyEvent(f"{prefix}{i}"))

        threads = [threading.Thread(target=produce, args=(prefix,)) for prefix in ("a", "b")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        received = channel.drain()
        self.assertEqual(len(received), 100)
        from_a = [event.code for event in received if event.code.startswith("a")]
        self.assertEqual(from_a, [f"a{i}" for i in range(50)])
        self.assertEqual(channel.drain(), [])


if __name__ == "__main__":
    unittest.main()

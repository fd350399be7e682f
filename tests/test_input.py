"""Regression tests for raw-key decoding.

Covers ESC timing, arrow/shift sequences, control-key token mapping, and
SGR mouse reports. These tests protect interactive input handling in raw
terminal mode.
"""

import os
import time
import unittest

from lazystage import input as input_mod


class ReadKeyRegressionTests(unittest.TestCase):
    def setUp(self) -> None:
        input_mod._PENDING_BYTES.clear()

    def tearDown(self) -> None:
        input_mod._PENDING_BYTES.clear()

    def _read_all(self, payload: bytes, count: int = 1) -> list[str]:
        read_fd, write_fd = os.pipe()
        try:
            os.write(write_fd, payload)
            return [input_mod.read_key(read_fd, timeout_ms=20) for _ in range(count)]
        finally:
            os.close(read_fd)
            os.close(write_fd)

    def test_single_escape_returns_esc_without_second_keypress(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            os.write(write_fd, b"\x1b")
            started = time.monotonic()
            key = input_mod.read_key(read_fd, timeout_ms=20)
            elapsed = time.monotonic() - started
        finally:
            os.close(read_fd)
            os.close(write_fd)

        self.assertEqual(key, "ESC")
        # Esc waits briefly for sequence bytes, but should not require another key press.
        self.assertLess(elapsed, 0.2)

    def test_no_input_returns_empty_token(self) -> None:
        self.assertEqual(self._read_all(b""), [""])

    def test_arrow_sequences_are_recognized(self) -> None:
        self.assertEqual(self._read_all(b"\x1b[A\x1b[B\x1b[C\x1b[D", 4), ["UP", "DOWN", "RIGHT", "LEFT"])

    def test_escape_does_not_swallow_following_printable_key(self) -> None:
        self.assertEqual(self._read_all(b"\x1bq", 2), ["ESC", "q"])

    def test_ctrl_c_and_ctrl_question_are_recognized(self) -> None:
        self.assertEqual(self._read_all(b"\x03\x1f", 2), ["CTRL_C", "CTRL_QUESTION"])

    def test_enter_backspace_and_tab_tokens(self) -> None:
        self.assertEqual(
            self._read_all(b"\r\n\x7f\t\x1b[Z", 5),
            ["ENTER_CR", "ENTER_LF", "BACKSPACE", "TAB", "BACKTAB"],
        )

    def test_shift_arrow_sequence_is_recognized(self) -> None:
        self.assertEqual(self._read_all(b"\x1b[1;2A"), ["SHIFT_UP"])

    def test_space_and_uppercase_letters_pass_through(self) -> None:
        self.assertEqual(self._read_all(b" P?", 3), [" ", "P", "?"])

    def test_multibyte_utf8_character_is_one_token(self) -> None:
        self.assertEqual(self._read_all("é".encode("utf-8")), ["é"])

    def test_sgr_mouse_left_click_press_and_release(self) -> None:
        self.assertEqual(
            self._read_all(b"\x1b[<0;15;7M\x1b[<0;15;7m", 2),
            ["MOUSE_LEFT_DOWN:15:7", "MOUSE_LEFT_UP:15:7"],
        )

    def test_sgr_mouse_wheel_up_and_down_are_recognized(self) -> None:
        self.assertEqual(
            self._read_all(b"\x1b[<64;10;4M\x1b[<65;11;5M", 2),
            ["MOUSE_WHEEL_UP:10:4", "MOUSE_WHEEL_DOWN:11:5"],
        )

    def test_sgr_mouse_motion_is_collapsed(self) -> None:
        self.assertEqual(self._read_all(b"\x1b[<35;3;3M"), ["MOUSE"])


if __name__ == "__main__":
    unittest.main()

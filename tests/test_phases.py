"""Tests for work/break classification and sub-task tags."""

import unittest

from factories import rest, work
from toggl_pomodoro.models import Phase
from toggl_pomodoro.phases import classify, task_minutes


class TestClassify(unittest.TestCase):
    def test_plain_entry_is_work(self):
        self.assertIs(classify(work(0, 25)), Phase.WORK)

    def test_break_description(self):
        self.assertIs(classify(rest(0, 5)), Phase.BREAK)

    def test_break_tag(self):
        e = work(0, 5, description="Coffee", tags=("misc", "pomodoro-break"))
        self.assertIs(classify(e), Phase.BREAK)

    def test_description_must_match_exactly(self):
        self.assertIs(classify(work(0, 5, description="pomodoro break")), Phase.WORK)

    def test_deterministic(self):
        e = work(0, None, tags=("pomodoro-break",))
        self.assertEqual({classify(e) for _ in range(5)}, {Phase.BREAK})


class TestTaskMinutes(unittest.TestCase):
    def test_no_tag(self):
        self.assertIsNone(task_minutes(work(0, None, tags=("misc",))))

    def test_minutes_tag(self):
        self.assertEqual(task_minutes(work(0, None, tags=("15min",))), 15)

    def test_first_matching_tag_wins(self):
        self.assertEqual(task_minutes(work(0, None, tags=("x", "10min", "20min"))), 10)

    def test_partial_match_is_ignored(self):
        e = work(0, None, tags=("15mins", "about 5min", "min"))
        self.assertIsNone(task_minutes(e))

    def test_non_ascii_digits_are_ignored(self):
        # "１５min" in full-width digits
        self.assertIsNone(task_minutes(work(0, None, tags=("\uff11\uff15min",))))


if __name__ == "__main__":
    unittest.main()

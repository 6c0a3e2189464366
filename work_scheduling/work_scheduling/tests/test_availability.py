"""
Tests for scheduling/availability.py

Tests day resolution, block precedence, and interval mathematics.
"""

import unittest
from datetime import date, datetime, time

import pytz

from work_scheduling.work_scheduling.doctype.block_set.block_set import (
	BlockedDate,
	BlockedRange,
	BlockSet,
	BookedRange,
)
from work_scheduling.work_scheduling.doctype.weekly_schedule.weekly_schedule import (
	DaySchedule,
	WEEKDAYS,
	WeeklySchedule,
	default_weekly_schedule,
)
from work_scheduling.work_scheduling.scheduling.availability import (
	BLOCKED_BY_COMPANY,
	BLOCKED_BY_PERSONAL,
	BLOCKED_BY_WEEKLY_CLOSED,
	BlockSetLayer,
	ResourceCalendar,
	intersect_intervals,
	resolve_day,
	subtract_intervals,
	_interval_subtract,
	_merge_intervals,
)
from work_scheduling.work_scheduling.scheduling.exceptions import (
	AmbiguousOrInvalidCivilTime,
	InvalidRange,
	UnknownTimezone,
	ValidationError,
)


ZONE = "Europe/Brussels"
MONDAY = date(2025, 3, 10)
SATURDAY = date(2025, 3, 15)


def utc(*args):
	return pytz.utc.localize(datetime(*args))


class TestResolveDay(unittest.TestCase):
	"""Tests for resolve_day and ResourceCalendar."""

	def setUp(self):
		"""Set up a Mon-Fri 09:00-17:00 Brussels worker."""
		self.weekly = default_weekly_schedule()
		self.company = BlockSet.company()
		self.personal = BlockSet.personal("w-1")

	def resolve(self, target_date, company=None, personal=None):
		return resolve_day(
			target_date,
			self.weekly,
			company or self.company,
			personal or self.personal,
			ZONE,
		)

	def test_open_day(self):
		"""Test that an unblocked weekday is open with its UTC window."""
		day = self.resolve(MONDAY)

		self.assertTrue(day.is_open)
		self.assertIsNone(day.blocked_by)
		self.assertEqual(day.window, {"start": utc(2025, 3, 10, 8, 0), "end": utc(2025, 3, 10, 16, 0)})
		self.assertEqual(list(day.free_intervals), [day.window])
		self.assertTrue(day.is_fully_free)
		self.assertEqual(day.window_minutes, 480)

	def test_window_follows_dst(self):
		"""Test that 09:00 local is 07:00 UTC after spring-forward."""
		day = self.resolve(date(2025, 3, 31))
		self.assertEqual(day.window["start"], utc(2025, 3, 31, 7, 0))

	def test_weekly_closed(self):
		day = self.resolve(SATURDAY)

		self.assertFalse(day.is_open)
		self.assertEqual(day.blocked_by, BLOCKED_BY_WEEKLY_CLOSED)
		self.assertIsNone(day.window)

	def test_weekly_closed_dominates_blocks(self):
		"""Test that a closed weekday reports weekly-closed even if also blocked."""
		company = BlockSet.company(dates=[BlockedDate(SATURDAY, reason="Audit")])
		day = self.resolve(SATURDAY, company=company)

		self.assertEqual(day.blocked_by, BLOCKED_BY_WEEKLY_CLOSED)
		self.assertIsNone(day.block_reason)

	def test_company_blocked_date_with_holiday(self):
		company = BlockSet.company(dates=[BlockedDate(MONDAY, reason="Carnival", is_holiday=True)])
		day = self.resolve(MONDAY, company=company)

		self.assertFalse(day.is_open)
		self.assertEqual(day.blocked_by, BLOCKED_BY_COMPANY)
		self.assertEqual(day.block_reason, "Carnival")
		self.assertTrue(day.is_holiday)

	def test_company_precedes_personal(self):
		"""Test that a day blocked by both reports the company block."""
		company = BlockSet.company(dates=[BlockedDate(MONDAY, reason="Closure")])
		personal = BlockSet.personal("w-1", dates=[BlockedDate(MONDAY, reason="Vacation")])
		day = self.resolve(MONDAY, company=company, personal=personal)

		self.assertEqual(day.blocked_by, BLOCKED_BY_COMPANY)
		self.assertEqual(day.block_reason, "Closure")

	def test_personal_block(self):
		personal = BlockSet.personal("w-1", ranges=[BlockedRange(date(2025, 3, 10), date(2025, 3, 12))])

		for offset in range(3):
			day = self.resolve(date(2025, 3, 10 + offset), personal=personal)
			self.assertEqual(day.blocked_by, BLOCKED_BY_PERSONAL)

		self.assertTrue(self.resolve(date(2025, 3, 13), personal=personal).is_open)

	def test_personal_block_does_not_leak(self):
		"""Test that one worker's block does not affect another worker."""
		blocked = ResourceCalendar.for_worker(
			"w-1",
			self.weekly,
			ZONE,
			personal_blocks=BlockSet.personal("w-1", dates=[BlockedDate(MONDAY)]),
		)
		other = ResourceCalendar.for_worker("w-2", self.weekly, ZONE)

		self.assertFalse(blocked.resolve(MONDAY).is_open)
		self.assertTrue(other.resolve(MONDAY).is_open)

	def test_range_touching_window_end_blocks(self):
		"""Test closed-interval semantics at the window boundary."""
		touching = BlockedRange(utc(2025, 3, 10, 16, 0), utc(2025, 3, 10, 20, 0))
		after = BlockedRange(utc(2025, 3, 10, 16, 1), utc(2025, 3, 10, 20, 0))

		self.assertFalse(self.resolve(MONDAY, company=BlockSet.company(ranges=[touching])).is_open)
		self.assertTrue(self.resolve(MONDAY, company=BlockSet.company(ranges=[after])).is_open)

	def test_bookings_consume_free_time(self):
		"""Test that bookings leave the day open with reduced free intervals."""
		booking = BookedRange(utc(2025, 3, 10, 10, 0), utc(2025, 3, 10, 12, 0))
		day = self.resolve(MONDAY, personal=BlockSet.personal("w-1", bookings=[booking]))

		self.assertTrue(day.is_open)
		self.assertFalse(day.is_fully_free)
		self.assertEqual(list(day.free_intervals), [
			{"start": utc(2025, 3, 10, 8, 0), "end": utc(2025, 3, 10, 10, 0)},
			{"start": utc(2025, 3, 10, 12, 0), "end": utc(2025, 3, 10, 16, 0)},
		])
		self.assertEqual(day.free_minutes, 360)

	def test_dst_gap_in_schedule(self):
		"""Test that a template time inside the DST gap is surfaced as an error."""
		weekly = WeeklySchedule({
			day: DaySchedule(available=day == "sunday", start_time=time(2, 30), end_time=time(10, 0))
			for day in WEEKDAYS
		})

		with self.assertRaises(AmbiguousOrInvalidCivilTime):
			resolve_day(date(2025, 3, 30), weekly, self.company, self.personal, ZONE)

	def test_unknown_zone(self):
		with self.assertRaises(UnknownTimezone):
			resolve_day(MONDAY, self.weekly, self.company, self.personal, "Europe/Atlantis")

	def test_custom_layers(self):
		"""Test that layers can be reordered without touching the resolver."""
		company = BlockSet.company(dates=[BlockedDate(MONDAY, reason="Closure")])
		personal = BlockSet.personal("w-1", dates=[BlockedDate(MONDAY, reason="Vacation")])

		day = resolve_day(
			MONDAY,
			self.weekly,
			company,
			personal,
			ZONE,
			layers=[BlockSetLayer(BLOCKED_BY_PERSONAL), BlockSetLayer(BLOCKED_BY_COMPANY)],
		)
		self.assertEqual(day.blocked_by, BLOCKED_BY_PERSONAL)

	def test_resolve_range(self):
		calendar = ResourceCalendar.for_worker("w-1", self.weekly, ZONE)
		days = list(calendar.resolve_range("2025-03-10", 7))

		self.assertEqual(days[0].date, MONDAY)
		self.assertEqual(len(days), 7)
		self.assertEqual([day.is_open for day in days], [True] * 5 + [False] * 2)

	def test_resolution_is_deterministic(self):
		"""Test that resolving twice gives the same ResolvedDay."""
		calendar = ResourceCalendar.for_worker("w-1", self.weekly, ZONE)
		self.assertEqual(calendar.resolve(MONDAY), calendar.resolve(MONDAY))

	def test_calendar_owner_checks(self):
		"""Test that block sets must belong to the right owners."""
		with self.assertRaises(ValidationError):
			ResourceCalendar("w-1", self.weekly, BlockSet.personal("w-2"), self.personal, ZONE)
		with self.assertRaises(ValidationError):
			ResourceCalendar("w-1", self.weekly, self.company, BlockSet.personal("w-2"), ZONE)

	def test_calendar_rejects_mixed_range_inverted_in_zone(self):
		"""Test that a mixed range is validated in the calendar's zone on construction."""
		company = BlockSet.from_dict(
			{"blockedRanges": [{"startDate": "2025-03-10T23:30:00Z", "endDate": "2025-03-10"}]},
			owner="company",
		)

		with self.assertRaises(InvalidRange):
			ResourceCalendar("w-1", self.weekly, company, self.personal, "Asia/Tokyo")

	def test_to_dict(self):
		closed = self.resolve(SATURDAY).to_dict()
		self.assertEqual(closed, {"date": "2025-03-15", "isOpen": False, "blockedBy": "weekly-closed"})

		opened = self.resolve(MONDAY).to_dict()
		self.assertEqual(opened["window"], {"start": "2025-03-10T08:00:00Z", "end": "2025-03-10T16:00:00Z"})


class TestIntervalMath(unittest.TestCase):
	"""Tests for interval mathematics."""

	def setUp(self):
		self.tz = pytz.timezone(ZONE)

	def at(self, hour):
		return self.tz.localize(datetime(2025, 3, 10, hour, 0))

	def test_merge_intervals_no_overlap(self):
		"""Test merging intervals with no overlap."""
		intervals = [
			{"start": self.at(9), "end": self.at(10)},
			{"start": self.at(11), "end": self.at(12)},
		]

		result = _merge_intervals(intervals)

		self.assertEqual(len(result), 2)

	def test_merge_intervals_with_overlap(self):
		"""Test merging overlapping intervals."""
		intervals = [
			{"start": self.at(9), "end": self.at(11)},
			{"start": self.at(10), "end": self.at(12)},
		]

		result = _merge_intervals(intervals)

		self.assertEqual(len(result), 1)
		self.assertEqual(result[0]["start"], self.at(9))
		self.assertEqual(result[0]["end"], self.at(12))

	def test_merge_intervals_adjacent(self):
		"""Test merging adjacent intervals."""
		intervals = [
			{"start": self.at(11), "end": self.at(12)},
			{"start": self.at(9), "end": self.at(11)},
		]

		result = _merge_intervals(intervals)

		self.assertEqual(result, [{"start": self.at(9), "end": self.at(12)}])

	def test_merge_intervals_does_not_mutate_input(self):
		intervals = [
			{"start": self.at(9), "end": self.at(10)},
			{"start": self.at(10), "end": self.at(12)},
		]

		_merge_intervals(intervals)

		self.assertEqual(intervals[0]["end"], self.at(10))

	def test_interval_subtract_no_overlap(self):
		"""Test subtracting non-overlapping block."""
		interval = {"start": self.at(9), "end": self.at(12)}
		block = {"start": self.at(13), "end": self.at(14)}

		self.assertEqual(_interval_subtract(interval, block), [interval])

	def test_interval_subtract_covers_all(self):
		"""Test subtracting block that covers entire interval."""
		interval = {"start": self.at(10), "end": self.at(11)}
		block = {"start": self.at(9), "end": self.at(12)}

		self.assertEqual(_interval_subtract(interval, block), [])

	def test_interval_subtract_start(self):
		"""Test subtracting block from start of interval."""
		interval = {"start": self.at(9), "end": self.at(12)}
		block = {"start": self.at(8), "end": self.at(10)}

		self.assertEqual(_interval_subtract(interval, block), [{"start": self.at(10), "end": self.at(12)}])

	def test_interval_subtract_end(self):
		"""Test subtracting block from end of interval."""
		interval = {"start": self.at(9), "end": self.at(12)}
		block = {"start": self.at(11), "end": self.at(13)}

		self.assertEqual(_interval_subtract(interval, block), [{"start": self.at(9), "end": self.at(11)}])

	def test_interval_subtract_middle(self):
		"""Test subtracting block from middle of interval (split)."""
		interval = {"start": self.at(9), "end": self.at(12)}
		block = {"start": self.at(10), "end": self.at(11)}

		result = _interval_subtract(interval, block)

		self.assertEqual(result, [
			{"start": self.at(9), "end": self.at(10)},
			{"start": self.at(11), "end": self.at(12)},
		])

	def test_subtract_intervals_multiple_blocks(self):
		intervals = [{"start": self.at(9), "end": self.at(17)}]
		blocks = [
			{"start": self.at(15), "end": self.at(16)},
			{"start": self.at(10), "end": self.at(11)},
		]

		result = subtract_intervals(intervals, blocks)

		self.assertEqual(result, [
			{"start": self.at(9), "end": self.at(10)},
			{"start": self.at(11), "end": self.at(15)},
			{"start": self.at(16), "end": self.at(17)},
		])

	def test_intersect_intervals(self):
		"""Test that only positive-length intersections are kept."""
		first = [{"start": self.at(9), "end": self.at(13)}]
		second = [
			{"start": self.at(8), "end": self.at(9)},
			{"start": self.at(11), "end": self.at(15)},
		]

		self.assertEqual(intersect_intervals(first, second), [{"start": self.at(11), "end": self.at(13)}])

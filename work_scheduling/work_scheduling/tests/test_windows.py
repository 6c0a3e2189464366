"""
Tests for scheduling/windows.py

Tests earliest-window search in hours, days and mixed modes.
"""

import unittest
from datetime import date, datetime, time

import pytz

from work_scheduling.work_scheduling.doctype.block_set.block_set import (
	BlockedDate,
	BlockSet,
	BookedRange,
)
from work_scheduling.work_scheduling.doctype.weekly_schedule.weekly_schedule import (
	DaySchedule,
	WEEKDAYS,
	WeeklySchedule,
	default_weekly_schedule,
)
from work_scheduling.work_scheduling.doctype.work_request.work_request import (
	Duration,
	TimeMode,
	WorkRequest,
)
from work_scheduling.work_scheduling.scheduling.availability import ResourceCalendar
from work_scheduling.work_scheduling.scheduling.exceptions import InvalidWorkRequest
from work_scheduling.work_scheduling.scheduling.windows import (
	BookingWindow,
	Unsatisfiable,
	earliest_window,
	validate_search_horizon,
)


ZONE = "Europe/Brussels"

# Monday 2025-03-10 08:00 Brussels (UTC+1)
NOW = pytz.utc.localize(datetime(2025, 3, 10, 7, 0))


def utc(*args):
	return pytz.utc.localize(datetime(*args))


def build_calendar(company_dates=(), personal_dates=(), bookings=()):
	"""Mon-Fri 09:00-17:00 Brussels worker with optional blocks."""
	return ResourceCalendar.for_worker(
		"w-1",
		default_weekly_schedule(),
		ZONE,
		company_blocks=BlockSet.company(dates=company_dates),
		personal_blocks=BlockSet.personal("w-1", dates=personal_dates, bookings=bookings),
	)


def find(work_request, calendar=None, now=NOW, horizon=None):
	calendar = calendar or build_calendar()
	return earliest_window(work_request, calendar.resolve, ZONE, now=now, search_horizon_days=horizon)


class TestHoursMode(unittest.TestCase):
	"""Tests for hours-mode windows."""

	def test_open_monday(self):
		"""A 4-hour job requested before opening starts at 09:00 local."""
		result = find(WorkRequest(Duration(4, "hours")))

		self.assertIsInstance(result, BookingWindow)
		self.assertEqual(result.first_available_instant, utc(2025, 3, 10, 8, 0))
		self.assertEqual(result.first_available_window["end"], utc(2025, 3, 10, 12, 0))
		self.assertEqual(result.shortest_throughput_window["end"], utc(2025, 3, 10, 12, 0))
		self.assertEqual(result.first_available_date, date(2025, 3, 10))

	def test_holiday_shifts_to_next_day(self):
		"""A company holiday on Monday moves the window to Tuesday 09:00."""
		calendar = build_calendar(company_dates=[BlockedDate(date(2025, 3, 10), "Holiday", is_holiday=True)])
		result = find(WorkRequest(Duration(4, "hours")), calendar)

		self.assertEqual(result.first_available_instant, utc(2025, 3, 11, 8, 0))

	def test_starts_at_now_inside_window(self):
		now = utc(2025, 3, 10, 9, 30)
		result = find(WorkRequest(Duration(4, "hours")), now=now)

		self.assertEqual(result.first_available_instant, now)
		self.assertEqual(result.first_available_window["end"], utc(2025, 3, 10, 13, 30))

	def test_not_enough_time_left_today(self):
		"""At 14:00 local a 4-hour job no longer fits before 17:00."""
		result = find(WorkRequest(Duration(4, "hours")), now=utc(2025, 3, 10, 13, 0))

		self.assertEqual(result.first_available_instant, utc(2025, 3, 11, 8, 0))

	def test_execution_is_not_split_around_bookings(self):
		"""A booking 11:00-13:00 local leaves 2h + 4h; the job takes the 4h gap."""
		booking = BookedRange(utc(2025, 3, 10, 10, 0), utc(2025, 3, 10, 12, 0))
		result = find(WorkRequest(Duration(4, "hours")), build_calendar(bookings=[booking]))

		self.assertEqual(result.first_available_instant, utc(2025, 3, 10, 12, 0))
		self.assertEqual(result.first_available_window["end"], utc(2025, 3, 10, 16, 0))

	def test_buffer_extends_throughput_only(self):
		"""The buffer is added after execution without changing the start."""
		without_buffer = find(WorkRequest(Duration(4, "hours")))
		with_buffer = find(WorkRequest(Duration(4, "hours"), buffer=Duration(2, "hours")))

		self.assertEqual(with_buffer.first_available_instant, without_buffer.first_available_instant)
		self.assertEqual(with_buffer.first_available_window, without_buffer.first_available_window)
		self.assertEqual(with_buffer.shortest_throughput_window["end"], utc(2025, 3, 10, 14, 0))
		self.assertEqual(with_buffer.throughput_minutes, without_buffer.throughput_minutes + 120)

	def test_preparation_is_lead_time(self):
		"""One day of preparation pushes the earliest start to Tuesday."""
		work_request = WorkRequest(Duration(4, "hours"), preparation=Duration(1, "days"))
		result = find(work_request)

		self.assertEqual(result.first_available_instant, utc(2025, 3, 11, 8, 0))

	def test_unsatisfiable(self):
		"""A 9-hour job never fits an 8-hour day."""
		result = find(WorkRequest(Duration(9, "hours")), horizon=14)

		self.assertIsInstance(result, Unsatisfiable)
		self.assertFalse(result)
		self.assertEqual(result.horizon_days, 14)
		self.assertEqual(result.searched_from, date(2025, 3, 10))
		self.assertEqual(result.searched_until, date(2025, 3, 23))
		self.assertIn("hours", result.reason)

	def test_larger_horizon_does_not_change_result(self):
		"""Extending the horizon never moves an existing result."""
		calendar = build_calendar(company_dates=[BlockedDate(date(2025, 3, 10))])
		short = find(WorkRequest(Duration(4, "hours")), calendar, horizon=7)
		long = find(WorkRequest(Duration(4, "hours")), calendar, horizon=60)

		self.assertEqual(short, long)

	def test_to_dict(self):
		data = find(WorkRequest(Duration(4, "hours"))).to_dict()

		self.assertEqual(data["mode"], "hours")
		self.assertEqual(data["firstAvailableInstant"], "2025-03-10T08:00:00Z")
		self.assertEqual(data["firstAvailableDate"], "2025-03-10")
		self.assertEqual(data["shortestThroughputWindow"], {
			"start": "2025-03-10T08:00:00Z",
			"end": "2025-03-10T12:00:00Z",
		})
		self.assertNotIn("preparationWindow", data)

	def test_dst_gap_day_is_skipped(self):
		"""A Sunday whose 02:30 start does not exist is skipped, not fatal."""
		weekly = WeeklySchedule({
			day: DaySchedule(available=day == "sunday", start_time=time(2, 30), end_time=time(10, 0))
			for day in WEEKDAYS
		})
		calendar = ResourceCalendar.for_worker("w-1", weekly, ZONE)

		with self.assertLogs("work_scheduling.work_scheduling.scheduling.windows", level="WARNING") as logs:
			result = find(WorkRequest(Duration(2, "hours")), calendar, now=utc(2025, 3, 30, 0, 0))

		# 02:30 CEST on the next Sunday
		self.assertEqual(result.first_available_instant, utc(2025, 4, 6, 0, 30))
		self.assertIn("2025-03-30", logs.output[0])


class TestDaysMode(unittest.TestCase):
	"""Tests for days-mode windows."""

	def test_run_skips_weekend_but_not_blocks(self):
		"""With Wednesday blocked, 3 days run Thu-Fri-Mon."""
		calendar = build_calendar(company_dates=[BlockedDate(date(2025, 3, 12), "Closure")])
		result = find(WorkRequest(Duration(3, "days"), TimeMode.DAYS), calendar)

		self.assertEqual(result.first_available_instant, utc(2025, 3, 13, 8, 0))
		self.assertEqual(result.first_available_window["end"], utc(2025, 3, 17, 16, 0))
		self.assertEqual(result.first_available_date, date(2025, 3, 13))

	def test_consecutive_days(self):
		result = find(WorkRequest(Duration(2, "days"), TimeMode.DAYS))

		self.assertEqual(result.first_available_instant, utc(2025, 3, 10, 8, 0))
		self.assertEqual(result.first_available_window["end"], utc(2025, 3, 11, 16, 0))

	def test_day_already_started_does_not_count(self):
		"""Requested at 10:00 local, Monday is no longer a full day."""
		result = find(WorkRequest(Duration(3, "days"), TimeMode.DAYS), now=utc(2025, 3, 10, 9, 0))

		self.assertEqual(result.first_available_instant, utc(2025, 3, 11, 8, 0))
		self.assertEqual(result.first_available_window["end"], utc(2025, 3, 13, 16, 0))

	def test_booked_day_breaks_run(self):
		"""A day with an existing booking is not fully free."""
		booking = BookedRange(utc(2025, 3, 11, 10, 0), utc(2025, 3, 11, 11, 0))
		result = find(WorkRequest(Duration(2, "days"), TimeMode.DAYS), build_calendar(bookings=[booking]))

		self.assertEqual(result.first_available_instant, utc(2025, 3, 12, 8, 0))

	def test_days_buffer_uses_calendar_days(self):
		"""A 1-day buffer after Monday 17:00 ends Tuesday 17:00."""
		calendar = build_calendar(company_dates=[BlockedDate(date(2025, 3, 12))])
		work_request = WorkRequest(Duration(3, "days"), TimeMode.DAYS, buffer=Duration(1, "days"))
		result = find(work_request, calendar)

		self.assertEqual(result.first_available_window["end"], utc(2025, 3, 17, 16, 0))
		self.assertEqual(result.shortest_throughput_window["end"], utc(2025, 3, 18, 16, 0))

	def test_run_across_dst(self):
		"""A run spanning the spring-forward weekend keeps 17:00 local."""
		result = find(
			WorkRequest(Duration(2, "days"), TimeMode.DAYS),
			now=utc(2025, 3, 27, 12, 0),
		)

		self.assertEqual(result.first_available_instant, utc(2025, 3, 28, 8, 0))
		self.assertEqual(result.first_available_window["end"], utc(2025, 3, 31, 15, 0))


class TestMixedMode(unittest.TestCase):
	"""Tests for mixed-mode windows."""

	def test_preparation_then_execution(self):
		"""Preparation on Monday morning, execution Tuesday and Wednesday."""
		work_request = WorkRequest(
			Duration(2, "days"),
			TimeMode.MIXED,
			preparation=Duration(2, "hours"),
		)
		result = find(work_request)

		self.assertEqual(result.first_available_instant, utc(2025, 3, 10, 8, 0))
		self.assertEqual(result.preparation_window, {
			"start": utc(2025, 3, 10, 8, 0),
			"end": utc(2025, 3, 10, 10, 0),
		})
		self.assertEqual(result.first_available_window["end"], utc(2025, 3, 12, 16, 0))
		self.assertIn("preparationWindow", result.to_dict())

	def test_execution_must_follow_preparation(self):
		"""With Wednesday blocked, preparation moves to Tuesday and execution to Thu-Fri."""
		calendar = build_calendar(company_dates=[BlockedDate(date(2025, 3, 12))])
		work_request = WorkRequest(
			Duration(2, "days"),
			TimeMode.MIXED,
			preparation=Duration(2, "hours"),
		)
		result = find(work_request, calendar)

		self.assertEqual(result.preparation_window["start"], utc(2025, 3, 11, 8, 0))
		self.assertEqual(result.first_available_window["end"], utc(2025, 3, 14, 16, 0))

	def test_without_preparation_behaves_like_days(self):
		mixed = find(WorkRequest(Duration(2, "days"), TimeMode.MIXED))
		days = find(WorkRequest(Duration(2, "days"), TimeMode.DAYS))

		self.assertEqual(mixed.first_available_window, days.first_available_window)


class TestSearchHorizon(unittest.TestCase):
	"""Tests for validate_search_horizon."""

	def test_default(self):
		self.assertEqual(validate_search_horizon(None), 180)

	def test_invalid(self):
		for value in (0, -5, 731, "30", True, 7.5):
			with self.assertRaises(InvalidWorkRequest, msg=repr(value)):
				validate_search_horizon(value)

# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Weekly Schedule

Plantilla semanal recurrente de la empresa: por cada día de la semana,
si está abierto y en qué franja horaria local. Los trabajadores no
definen su propia plantilla, solo excepciones (ver block_set).
"""

from dataclasses import dataclass
from datetime import date, time
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Tuple, Union

from work_scheduling.work_scheduling.scheduling.exceptions import MalformedWeeklySchedule
from work_scheduling.work_scheduling.scheduling.timezone import parse_civil_time


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DEFAULT_START_TIME = time(9, 0)
DEFAULT_END_TIME = time(17, 0)


def weekday_name(civil_date: date) -> str:
	"""Nombre en minúsculas del día de la semana de una fecha civil."""
	return WEEKDAYS[civil_date.weekday()]


@dataclass(frozen=True)
class DaySchedule:
	available: bool
	start_time: time = DEFAULT_START_TIME
	end_time: time = DEFAULT_END_TIME

	@classmethod
	def from_dict(cls, data: Mapping[str, Any], weekday: str = "") -> "DaySchedule":
		"""
		Construye un DaySchedule desde {available, startTime, endTime}.

		Un día cerrado puede omitir las horas; un día abierto no.
		"""
		if not isinstance(data, Mapping):
			raise MalformedWeeklySchedule(f"{weekday}: entry must be an object")

		available = data.get("available")
		if not isinstance(available, bool):
			raise MalformedWeeklySchedule(f"{weekday}: 'available' must be a boolean")

		start_value = data.get("startTime", data.get("start_time"))
		end_value = data.get("endTime", data.get("end_time"))

		if available and (start_value is None or end_value is None):
			raise MalformedWeeklySchedule(f"{weekday}: open days require startTime and endTime")

		start = parse_civil_time(start_value) if start_value is not None else DEFAULT_START_TIME
		end = parse_civil_time(end_value) if end_value is not None else DEFAULT_END_TIME
		return cls(available=available, start_time=start, end_time=end)

	def to_dict(self) -> Dict[str, Any]:
		return {
			"available": self.available,
			"startTime": self.start_time.strftime("%H:%M"),
			"endTime": self.end_time.strftime("%H:%M"),
		}


class WeeklySchedule:
	"""
	Weekly Schedule with validation.

	Validations:
	- exactly the seven lowercase weekday keys
	- no duplicate weekday
	- open days: start_time < end_time
	"""

	def __init__(self, days: Mapping[str, DaySchedule]):
		self._days = MappingProxyType(dict(days))
		self.validate()

	@classmethod
	def from_dict(cls, data: Mapping[str, Any]) -> "WeeklySchedule":
		if not isinstance(data, Mapping):
			raise MalformedWeeklySchedule("Weekly schedule must be an object keyed by weekday")
		return cls.from_entries(data.items())

	@classmethod
	def from_entries(cls, entries: Iterable[Tuple[str, Union[DaySchedule, Mapping[str, Any]]]]) -> "WeeklySchedule":
		"""
		Construye desde pares (weekday, entry), detectando duplicados.

		Útil cuando la fuente es una lista de filas y no un dict, donde un
		día repetido no se pierde silenciosamente.
		"""
		days: Dict[str, DaySchedule] = {}

		for weekday, entry in entries:
			if weekday in days:
				raise MalformedWeeklySchedule(f"Duplicate weekday: {weekday}")
			if not isinstance(entry, DaySchedule):
				entry = DaySchedule.from_dict(entry, weekday)
			days[weekday] = entry

		return cls(days)

	def validate(self) -> None:
		self._validate_weekday_keys()
		self._validate_day_times()

	def _validate_weekday_keys(self) -> None:
		"""Valida que estén exactamente los siete días."""
		unknown = sorted(set(self._days) - set(WEEKDAYS), key=str)
		if unknown:
			raise MalformedWeeklySchedule(f"Unknown weekday key(s): {', '.join(map(str, unknown))}")

		missing = [day for day in WEEKDAYS if day not in self._days]
		if missing:
			raise MalformedWeeklySchedule(f"Missing weekday key(s): {', '.join(missing)}")

	def _validate_day_times(self) -> None:
		"""Valida que cada día abierto tenga start_time < end_time."""
		for weekday in WEEKDAYS:
			day = self._days[weekday]
			if not day.available:
				continue

			if day.start_time >= day.end_time:
				raise MalformedWeeklySchedule(
					f"{weekday}: Start Time ({day.start_time.strftime('%H:%M')}) must be before "
					f"End Time ({day.end_time.strftime('%H:%M')})"
				)

	def for_weekday(self, weekday: str) -> DaySchedule:
		return self._days[weekday]

	def for_date(self, civil_date: date) -> DaySchedule:
		return self._days[weekday_name(civil_date)]

	def open_weekdays(self) -> Tuple[str, ...]:
		return tuple(day for day in WEEKDAYS if self._days[day].available)

	def to_dict(self) -> Dict[str, Dict[str, Any]]:
		return {day: self._days[day].to_dict() for day in WEEKDAYS}

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, WeeklySchedule):
			return NotImplemented
		return dict(self._days) == dict(other._days)

	def __hash__(self) -> int:
		return hash(tuple(self._days[day] for day in WEEKDAYS))

	def __repr__(self) -> str:
		return f"WeeklySchedule(open={list(self.open_weekdays())})"


def default_weekly_schedule() -> WeeklySchedule:
	"""Lunes a viernes 09:00-17:00, fines de semana cerrados."""
	return WeeklySchedule({
		day: DaySchedule(available=day not in ("saturday", "sunday"))
		for day in WEEKDAYS
	})

"""
Timezone Converter

Converts between civil time (a date and a time-of-day in a named IANA
zone) and absolute instants (timezone-aware UTC datetimes), DST-aware.

Every other scheduling module does its zone math through this module:
- to_instant / to_civil / zone_offset_at
- start_of_day / end_of_day for whole-day boundaries
- shift_civil_days for calendar-day arithmetic across DST changes

Policy for civil times that occur twice (DST fall-back overlap): the
first occurrence, i.e. the earlier UTC instant, is used. Civil times
that do not exist (DST spring-forward gap) raise
AmbiguousOrInvalidCivilTime.
"""

import re
from datetime import datetime, date, time, timedelta
from typing import NamedTuple, Union

import pytz

from .exceptions import (
	AmbiguousOrInvalidCivilTime,
	InvalidCivilTime,
	UnknownTimezone,
	ValidationError,
)


_CIVIL_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_CIVIL_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class CivilDateTime(NamedTuple):
	date: date
	time: time


def get_zone(zone_id: str) -> pytz.tzinfo.BaseTzInfo:
	"""
	Obtiene el tzinfo de pytz para un identificador IANA.

	Raises:
		UnknownTimezone: si el identificador no existe en la base IANA
	"""
	if not zone_id or not isinstance(zone_id, str):
		raise UnknownTimezone(zone_id)

	try:
		return pytz.timezone(zone_id)
	except pytz.UnknownTimeZoneError:
		raise UnknownTimezone(zone_id) from None


def is_valid_zone(zone_id: str) -> bool:
	try:
		get_zone(zone_id)
	except UnknownTimezone:
		return False
	return True


def parse_civil_time(value: Union[time, str]) -> time:
	"""
	Convierte "HH:MM" (00:00-23:59) a datetime.time.

	Raises:
		InvalidCivilTime: formato no parseable u hora/minuto fuera de rango
	"""
	if isinstance(value, time):
		return value.replace(second=0, microsecond=0, tzinfo=None)

	if not isinstance(value, str):
		raise InvalidCivilTime(f"Cannot convert {type(value).__name__} to civil time")

	match = _CIVIL_TIME_RE.match(value.strip())
	if not match:
		raise InvalidCivilTime(f"Invalid civil time {value!r}, expected HH:MM")

	hour, minute = int(match.group(1)), int(match.group(2))
	if hour > 23 or minute > 59:
		raise InvalidCivilTime(f"Civil time {value!r} out of range 00:00-23:59")

	return time(hour, minute)


def parse_civil_date(value: Union[date, str]) -> date:
	"""Convierte "YYYY-MM-DD" (o un date) a datetime.date."""
	if isinstance(value, datetime):
		raise ValidationError(f"Expected a civil date, got an instant: {value.isoformat()}")
	if isinstance(value, date):
		return value

	if not isinstance(value, str) or not _CIVIL_DATE_RE.match(value.strip()):
		raise ValidationError(f"Invalid civil date {value!r}, expected YYYY-MM-DD")

	try:
		return date.fromisoformat(value.strip())
	except ValueError:
		raise ValidationError(f"Invalid civil date {value!r}") from None


def parse_instant(value: Union[datetime, str]) -> datetime:
	"""
	Convierte un instante ISO-8601 (o datetime) a datetime UTC aware.

	Un timestamp sin offset se interpreta como UTC.
	"""
	if isinstance(value, str):
		text = value.strip()
		if text.endswith("Z"):
			text = text[:-1] + "+00:00"
		try:
			value = datetime.fromisoformat(text)
		except ValueError:
			raise ValidationError(f"Invalid ISO-8601 instant {value!r}") from None

	if not isinstance(value, datetime):
		raise ValidationError(f"Cannot convert {type(value).__name__} to instant")

	if value.tzinfo is None:
		return pytz.utc.localize(value)
	return value.astimezone(pytz.utc)


def to_instant(civil_date: date, civil_time: time, zone_id: str) -> datetime:
	"""
	Convierte fecha + hora civil en zone_id a un instante UTC.

	Args:
		civil_date: fecha civil
		civil_time: hora civil
		zone_id: identificador IANA

	Returns:
		datetime aware en UTC

	Raises:
		UnknownTimezone: zona inexistente
		AmbiguousOrInvalidCivilTime: la hora cae en el salto de DST
	"""
	tz = get_zone(zone_id)
	naive = datetime.combine(civil_date, civil_time.replace(tzinfo=None))

	try:
		local = tz.localize(naive, is_dst=None)
	except pytz.NonExistentTimeError:
		raise AmbiguousOrInvalidCivilTime(civil_date, civil_time, zone_id) from None
	except pytz.AmbiguousTimeError:
		local = _first_occurrence(naive, tz)

	return local.astimezone(pytz.utc)


def to_civil(instant: datetime, zone_id: str) -> CivilDateTime:
	"""Proyecta un instante a fecha y hora civil en zone_id."""
	local = _as_utc(instant).astimezone(get_zone(zone_id))
	return CivilDateTime(local.date(), local.time().replace(tzinfo=None))


def zone_offset_at(instant: datetime, zone_id: str) -> int:
	"""Offset de zone_id respecto a UTC en el instante dado, en minutos."""
	offset = _as_utc(instant).astimezone(get_zone(zone_id)).utcoffset()
	return int(offset.total_seconds() // 60)


def civil_today(now: datetime, zone_id: str) -> date:
	return to_civil(now, zone_id).date


def start_of_day(civil_date: date, zone_id: str) -> datetime:
	"""
	Primer instante representable de civil_date en zone_id.

	Si la medianoche no existe (zonas que saltan a las 00:00) se usa el
	instante de la transición.
	"""
	tz = get_zone(zone_id)
	return _localize_lenient(datetime.combine(civil_date, time(0, 0)), tz).astimezone(pytz.utc)


def end_of_day(civil_date: date, zone_id: str) -> datetime:
	"""Último instante de civil_date en zone_id (intervalo cerrado)."""
	return start_of_day(civil_date + timedelta(days=1), zone_id) - timedelta(microseconds=1)


def shift_civil_days(instant: datetime, days: int, zone_id: str) -> datetime:
	"""
	Avanza un instante N días de calendario manteniendo la hora civil.

	Un día de calendario que cruza un cambio de DST dura 23 o 25 horas;
	si la hora civil resultante cae en un salto se avanza a la transición.
	"""
	tz = get_zone(zone_id)
	local = _as_utc(instant).astimezone(tz)
	naive = local.replace(tzinfo=None) + timedelta(days=days)
	return _localize_lenient(naive, tz).astimezone(pytz.utc)


def _first_occurrence(naive: datetime, tz: pytz.tzinfo.BaseTzInfo) -> datetime:
	# Hora repetida: la ocurrencia con el instante UTC más temprano
	candidates = [tz.localize(naive, is_dst=True), tz.localize(naive, is_dst=False)]
	return min(candidates, key=lambda dt: dt.astimezone(pytz.utc))


def _localize_lenient(naive: datetime, tz: pytz.tzinfo.BaseTzInfo) -> datetime:
	try:
		return tz.localize(naive, is_dst=None)
	except pytz.AmbiguousTimeError:
		return _first_occurrence(naive, tz)
	except pytz.NonExistentTimeError:
		# Con el offset previo a la transición el instante cae justo después del salto
		return tz.normalize(tz.localize(naive, is_dst=False))


def _as_utc(instant: datetime) -> datetime:
	if instant.tzinfo is None:
		return pytz.utc.localize(instant)
	return instant.astimezone(pytz.utc)

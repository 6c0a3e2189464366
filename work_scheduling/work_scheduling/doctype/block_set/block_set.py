# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Block Set

Excepciones sobre la plantilla semanal, agrupadas por dueño:
- la empresa (aplica a todos sus trabajadores)
- un trabajador concreto (aplica solo a él)

Tipos de entrada:
- Blocked Date: un día civil completo
- Blocked Range: intervalo cerrado [start, end] de instantes o de fechas
- Booked Range: reserva existente (o su buffer); no cierra el día, solo
  ocupa tiempo dentro de la ventana de trabajo
"""

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from work_scheduling.work_scheduling.scheduling.exceptions import InvalidRange, ValidationError
from work_scheduling.work_scheduling.scheduling.timezone import (
	end_of_day,
	parse_civil_date,
	parse_instant,
	start_of_day,
)


COMPANY_OWNER = "company"
BOOKING_KINDS = ("booking", "booking-buffer")

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

RangeBound = Union[datetime, date]


def _parse_bound(value: Any) -> RangeBound:
	"""Fecha sola "YYYY-MM-DD" -> date; cualquier otro valor -> instante UTC."""
	if isinstance(value, datetime):
		return parse_instant(value)
	if isinstance(value, date):
		return value
	if isinstance(value, str) and _DATE_ONLY_RE.match(value.strip()):
		return parse_civil_date(value)
	return parse_instant(value)


def _format_bound(value: RangeBound) -> str:
	if isinstance(value, datetime):
		return value.isoformat().replace("+00:00", "Z")
	return value.isoformat()


@dataclass(frozen=True)
class BlockedDate:
	date: date
	reason: Optional[str] = None
	is_holiday: bool = False

	@classmethod
	def from_dict(cls, data: Mapping[str, Any]) -> "BlockedDate":
		if not data.get("date"):
			raise ValidationError("Blocked date requires 'date'")
		return cls(
			date=parse_civil_date(str(data["date"])[:10]),
			reason=data.get("reason") or None,
			is_holiday=bool(data.get("isHoliday", data.get("is_holiday", False))),
		)

	def matches(self, civil_date: date, window: Optional[Dict[str, datetime]], zone_id: str) -> bool:
		return self.date == civil_date

	def to_dict(self) -> Dict[str, Any]:
		result: Dict[str, Any] = {"date": self.date.isoformat()}
		if self.reason:
			result["reason"] = self.reason
		if self.is_holiday:
			result["isHoliday"] = True
		return result


@dataclass(frozen=True)
class BlockedRange:
	"""
	Intervalo bloqueado cerrado en ambos extremos.

	Los extremos de fecha sola se expanden al inicio / fin del día civil
	en la zona del profesional al momento de evaluar.
	"""

	start: RangeBound
	end: RangeBound
	reason: Optional[str] = None
	is_holiday: bool = False

	def __post_init__(self) -> None:
		self._validate_order()

	@property
	def is_mixed(self) -> bool:
		"""Un extremo es instante y el otro fecha sola."""
		return isinstance(self.start, datetime) != isinstance(self.end, datetime)

	def _validate_order(self) -> None:
		# Con extremos mixtos el orden depende de la zona; se valida en bounds()
		if self.is_mixed:
			return

		if self.start > self.end:
			self._raise_out_of_order()

	def _raise_out_of_order(self) -> None:
		raise InvalidRange(
			f"Blocked range ends before it starts: {_format_bound(self.start)} > {_format_bound(self.end)}"
		)

	@classmethod
	def from_dict(cls, data: Mapping[str, Any]) -> "BlockedRange":
		start = data.get("startDate", data.get("start"))
		end = data.get("endDate", data.get("end"))
		if not start or not end:
			raise ValidationError("Blocked range requires 'startDate' and 'endDate'")
		return cls(
			start=_parse_bound(start),
			end=_parse_bound(end),
			reason=data.get("reason") or None,
			is_holiday=bool(data.get("isHoliday", data.get("is_holiday", False))),
		)

	def bounds(self, zone_id: str) -> Tuple[datetime, datetime]:
		"""
		Extremos como instantes UTC, expandiendo las fechas solas en zone_id.

		Raises:
			InvalidRange: si con extremos mixtos el rango queda invertido en zone_id
		"""
		start = self.start if isinstance(self.start, datetime) else start_of_day(self.start, zone_id)
		end = self.end if isinstance(self.end, datetime) else end_of_day(self.end, zone_id)
		if start > end:
			self._raise_out_of_order()
		return start, end

	def matches(self, civil_date: date, window: Optional[Dict[str, datetime]], zone_id: str) -> bool:
		"""
		Bloquea si [start, end] toca la ventana de trabajo del día.

		Ambos intervalos son cerrados: un rango que termina exactamente en el
		inicio de la ventana también bloquea.
		"""
		if window is None:
			return False
		start, end = self.bounds(zone_id)
		return start <= window["end"] and end >= window["start"]

	def to_dict(self) -> Dict[str, Any]:
		result: Dict[str, Any] = {
			"startDate": _format_bound(self.start),
			"endDate": _format_bound(self.end),
		}
		if self.reason:
			result["reason"] = self.reason
		if self.is_holiday:
			result["isHoliday"] = True
		return result


@dataclass(frozen=True)
class BookedRange:
	start: datetime
	end: datetime
	kind: str = "booking"
	booking_id: Optional[str] = None

	def __post_init__(self) -> None:
		if self.kind not in BOOKING_KINDS:
			raise ValidationError(f"Unsupported booking kind: {self.kind}")
		if self.start >= self.end:
			raise InvalidRange(
				f"Booked range must end after it starts: {_format_bound(self.start)} >= {_format_bound(self.end)}"
			)

	@classmethod
	def from_dict(cls, data: Mapping[str, Any]) -> "BookedRange":
		start = data.get("startDate", data.get("start"))
		end = data.get("endDate", data.get("end"))
		if not start or not end:
			raise ValidationError("Booked range requires 'startDate' and 'endDate'")
		kind = "booking-buffer" if data.get("reason") == "booking-buffer" else data.get("kind", "booking")
		return cls(
			start=parse_instant(start),
			end=parse_instant(end),
			kind=kind,
			booking_id=data.get("bookingId", data.get("booking_id")),
		)

	def as_interval(self) -> Dict[str, datetime]:
		return {"start": self.start, "end": self.end}

	def to_dict(self) -> Dict[str, Any]:
		result: Dict[str, Any] = {
			"startDate": _format_bound(self.start),
			"endDate": _format_bound(self.end),
			"reason": self.kind,
		}
		if self.booking_id:
			result["bookingId"] = self.booking_id
		return result


BlockEntry = Union[BlockedDate, BlockedRange]


@dataclass(frozen=True)
class BlockSet:
	"""
	Conjunto inmutable de bloqueos de un único dueño.

	Las acciones del dueño (bloquear un día, un rango) devuelven un
	BlockSet nuevo; quien calcula ventanas trabaja sobre la copia que
	tomó al empezar.
	"""

	owner: str
	dates: Tuple[BlockedDate, ...] = field(default_factory=tuple)
	ranges: Tuple[BlockedRange, ...] = field(default_factory=tuple)
	bookings: Tuple[BookedRange, ...] = field(default_factory=tuple)

	def __post_init__(self) -> None:
		if not self.owner or not isinstance(self.owner, str):
			raise ValidationError("Block set requires an owner")
		object.__setattr__(self, "dates", tuple(self.dates))
		object.__setattr__(self, "ranges", tuple(self.ranges))
		object.__setattr__(self, "bookings", tuple(self.bookings))

	@classmethod
	def company(
		cls,
		dates: Iterable[BlockedDate] = (),
		ranges: Iterable[BlockedRange] = (),
	) -> "BlockSet":
		return cls(owner=COMPANY_OWNER, dates=tuple(dates), ranges=tuple(ranges))

	@classmethod
	def personal(
		cls,
		worker_id: str,
		dates: Iterable[BlockedDate] = (),
		ranges: Iterable[BlockedRange] = (),
		bookings: Iterable[BookedRange] = (),
	) -> "BlockSet":
		if worker_id == COMPANY_OWNER:
			raise ValidationError(f"'{COMPANY_OWNER}' is reserved for company block sets")
		return cls(owner=worker_id, dates=tuple(dates), ranges=tuple(ranges), bookings=tuple(bookings))

	@classmethod
	def from_dict(cls, data: Optional[Mapping[str, Any]], owner: str) -> "BlockSet":
		"""
		Construye desde {blockedDates, blockedRanges, bookingBlockedRanges?}.
		"""
		data = data or {}
		dates: List[BlockedDate] = [BlockedDate.from_dict(item) for item in data.get("blockedDates") or []]
		ranges: List[BlockedRange] = [BlockedRange.from_dict(item) for item in data.get("blockedRanges") or []]
		bookings: List[BookedRange] = [
			BookedRange.from_dict(item) for item in data.get("bookingBlockedRanges") or []
		]
		return cls(owner=owner, dates=tuple(dates), ranges=tuple(ranges), bookings=tuple(bookings))

	@property
	def is_company(self) -> bool:
		return self.owner == COMPANY_OWNER

	def match(
		self,
		civil_date: date,
		window: Optional[Dict[str, datetime]],
		zone_id: str,
	) -> Optional[BlockEntry]:
		"""Primera entrada que bloquea civil_date, o None."""
		for blocked_date in self.dates:
			if blocked_date.matches(civil_date, window, zone_id):
				return blocked_date

		for blocked_range in self.ranges:
			if blocked_range.matches(civil_date, window, zone_id):
				return blocked_range

		return None

	def validate_for_zone(self, zone_id: str) -> None:
		"""Valida el orden de los rangos con extremos mixtos en zone_id."""
		for blocked_range in self.ranges:
			if blocked_range.is_mixed:
				blocked_range.bounds(zone_id)

	def busy_intervals(self, window: Dict[str, datetime]) -> List[Dict[str, datetime]]:
		"""Reservas que se solapan con la ventana, como intervalos."""
		return [
			booking.as_interval()
			for booking in self.bookings
			if booking.start < window["end"] and booking.end > window["start"]
		]

	def with_blocked_date(self, blocked_date: BlockedDate) -> "BlockSet":
		return replace(self, dates=self.dates + (blocked_date,))

	def with_blocked_range(self, blocked_range: BlockedRange) -> "BlockSet":
		return replace(self, ranges=self.ranges + (blocked_range,))

	def with_booking(self, booking: BookedRange) -> "BlockSet":
		return replace(self, bookings=self.bookings + (booking,))

	def to_dict(self) -> Dict[str, Any]:
		result: Dict[str, Any] = {
			"blockedDates": [item.to_dict() for item in self.dates],
			"blockedRanges": [item.to_dict() for item in self.ranges],
		}
		if self.bookings:
			result["bookingBlockedRanges"] = [item.to_dict() for item in self.bookings]
		return result

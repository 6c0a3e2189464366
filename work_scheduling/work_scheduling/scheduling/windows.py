"""
Window Calculator

Projects a Work Request onto a stream of resolved days and finds:
- the earliest feasible start (first_available_instant)
- the shortest start-to-finish window, execution plus buffer
  (shortest_throughput_window)

Time modes:
- hours: execution fits inside one free interval of one open day
- days: execution consumes N consecutive open working days
- mixed: preparation in hours on one day, execution in days from the
  next open day
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple, Union

import pytz

from work_scheduling.config import settings
from work_scheduling.work_scheduling.doctype.work_request.work_request import (
	Duration,
	TimeMode,
	WorkRequest,
)
from .availability import BLOCKED_BY_WEEKLY_CLOSED, ResolvedDay, interval_minutes
from .exceptions import AmbiguousOrInvalidCivilTime, InvalidWorkRequest
from .timezone import civil_today, get_zone, parse_instant, shift_civil_days, to_civil


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateDay:
	"""
	Vista de un día para el scan: un recurso (ResolvedDay) o un equipo
	(intersección calculada por overlap.py).
	"""

	date: date
	is_open: bool
	window: Optional[Dict[str, datetime]] = None
	free_intervals: Tuple[Dict[str, datetime], ...] = ()
	whole_day_available: bool = False
	# Día no laborable de la plantilla: ni cuenta ni rompe una racha de días
	is_non_working: bool = False
	resources: Tuple[str, ...] = ()
	overlap_percentage: Optional[float] = None
	# Otros subconjuntos del equipo que califican, en orden de ranking
	alternatives: Tuple["CandidateDay", ...] = ()

	def options(self) -> Tuple["CandidateDay", ...]:
		return (self,) + self.alternatives

	@classmethod
	def from_resolved(cls, resolved: ResolvedDay) -> "CandidateDay":
		return cls(
			date=resolved.date,
			is_open=resolved.is_open,
			window=resolved.window,
			free_intervals=resolved.free_intervals,
			whole_day_available=resolved.is_fully_free,
			is_non_working=resolved.blocked_by == BLOCKED_BY_WEEKLY_CLOSED,
		)


@dataclass(frozen=True)
class BookingWindow:
	first_available_instant: datetime
	first_available_window: Dict[str, datetime]
	shortest_throughput_window: Dict[str, datetime]
	professional_zone: str
	time_mode: TimeMode
	preparation_window: Optional[Dict[str, datetime]] = None

	@property
	def first_available_date(self) -> date:
		"""Fecha civil del primer instante disponible, en la zona del profesional."""
		return to_civil(self.first_available_instant, self.professional_zone).date

	@property
	def throughput_minutes(self) -> float:
		return interval_minutes(self.shortest_throughput_window)

	def to_dict(self) -> Dict[str, Any]:
		result: Dict[str, Any] = {
			"mode": self.time_mode.value,
			"firstAvailableInstant": _format_instant(self.first_available_instant),
			"firstAvailableDate": self.first_available_date.isoformat(),
			"firstAvailableWindow": _format_interval(self.first_available_window),
			"shortestThroughputWindow": _format_interval(self.shortest_throughput_window),
		}
		if self.preparation_window:
			result["preparationWindow"] = _format_interval(self.preparation_window)
		return result


@dataclass(frozen=True)
class TeamBookingWindow(BookingWindow):
	resources: Tuple[str, ...] = field(default_factory=tuple)
	overlap_percentage: float = 0

	def to_dict(self) -> Dict[str, Any]:
		result = super().to_dict()
		result["resources"] = list(self.resources)
		result["overlapPercentage"] = round(self.overlap_percentage, 2)
		return result


@dataclass(frozen=True)
class Unsatisfiable:
	"""
	Resultado negativo válido: no hay ventana dentro del horizonte.

	No es un error; bool(Unsatisfiable) es False para que el caller
	pueda distinguirlo con un simple `if`.
	"""

	reason: str
	horizon_days: int
	searched_from: date
	searched_until: date

	def __bool__(self) -> bool:
		return False

	def to_dict(self) -> Dict[str, Any]:
		return {
			"reason": self.reason,
			"horizonDays": self.horizon_days,
			"searchedFrom": self.searched_from.isoformat(),
			"searchedUntil": self.searched_until.isoformat(),
		}


WindowResult = Union[BookingWindow, Unsatisfiable]
DayProvider = Callable[[date], CandidateDay]


def validate_search_horizon(search_horizon_days: Optional[int]) -> int:
	"""Horizonte de búsqueda en días; None usa el default de configuración."""
	if search_horizon_days is None:
		return settings.search_horizon_days

	if isinstance(search_horizon_days, bool) or not isinstance(search_horizon_days, int):
		raise InvalidWorkRequest(f"Search horizon must be an integer number of days, got {search_horizon_days!r}")
	if not 1 <= search_horizon_days <= settings.max_horizon_days:
		raise InvalidWorkRequest(
			f"Search horizon must be between 1 and {settings.max_horizon_days} days, got {search_horizon_days}"
		)
	return search_horizon_days


def earliest_window(
	work_request: WorkRequest,
	resolver: Callable[[date], ResolvedDay],
	professional_zone: str,
	now: Optional[Union[datetime, str]] = None,
	search_horizon_days: Optional[int] = None,
) -> WindowResult:
	"""
	Primera ventana factible para un único recurso.

	Args:
		work_request: duraciones y modo
		resolver: fecha civil -> ResolvedDay (p.ej. ResourceCalendar.resolve)
		professional_zone: zona IANA del profesional
		now: instante de referencia (default: ahora en UTC)
		search_horizon_days: días a escanear (default: configuración, 180)

	Returns:
		BookingWindow o Unsatisfiable
	"""
	return find_window(
		work_request,
		lambda target_date: CandidateDay.from_resolved(resolver(target_date)),
		professional_zone,
		now=now,
		search_horizon_days=search_horizon_days,
	)


def find_window(
	work_request: WorkRequest,
	day_provider: DayProvider,
	professional_zone: str,
	now: Optional[Union[datetime, str]] = None,
	search_horizon_days: Optional[int] = None,
	window_class: type = BookingWindow,
) -> WindowResult:
	"""
	Scan hacia adelante compartido por recursos individuales y equipos.

	Algoritmo:
		1. Fechas candidatas: desde la fecha civil de `now` en la zona del
		   profesional, durante search_horizon_days días
		2. hours/days: preparation (si existe) adelanta el inicio permitido
		3. Buscar según time_mode (hours, days o mixed)
		4. Sumar el buffer al final de la ejecución, sin consultar disponibilidad
	"""
	horizon = validate_search_horizon(search_horizon_days)
	get_zone(professional_zone)
	now = parse_instant(now) if now is not None else datetime.now(pytz.utc)

	first_date = civil_today(now, professional_zone)
	scan = _DayScan(day_provider, first_date, horizon)

	not_before = now
	if work_request.time_mode != TimeMode.MIXED and work_request.preparation:
		not_before = _advance(now, work_request.preparation, professional_zone)

	if work_request.time_mode == TimeMode.HOURS:
		found = _find_hours_window(scan, work_request.execution, not_before)
	elif work_request.time_mode == TimeMode.DAYS:
		found = _find_days_window(scan, work_request.execution, not_before)
	else:
		found = _find_mixed_window(scan, work_request, now)

	if found is None:
		unsatisfiable = Unsatisfiable(
			reason=f"No feasible {work_request.time_mode.value} window within {horizon} days",
			horizon_days=horizon,
			searched_from=first_date,
			searched_until=first_date + timedelta(days=horizon - 1),
		)
		logger.debug("Unsatisfiable work request %s: %s", work_request.to_dict(), unsatisfiable.reason)
		return unsatisfiable

	start, execution_end, preparation_window, first_day = found

	completion = execution_end
	if work_request.buffer:
		completion = _advance(execution_end, work_request.buffer, professional_zone)

	kwargs: Dict[str, Any] = {}
	if issubclass(window_class, TeamBookingWindow):
		kwargs["resources"] = first_day.resources
		kwargs["overlap_percentage"] = first_day.overlap_percentage or 0

	window = window_class(
		first_available_instant=start,
		first_available_window={"start": start, "end": execution_end},
		shortest_throughput_window={"start": start, "end": completion},
		professional_zone=professional_zone,
		time_mode=work_request.time_mode,
		preparation_window=preparation_window,
		**kwargs,
	)
	logger.debug(
		"Window found for %s: %s -> %s",
		work_request.time_mode.value,
		_format_instant(start),
		_format_instant(completion),
	)
	return window


class _DayScan:
	"""
	Días del horizonte resueltos a demanda, una sola vez por pasada.

	Un día cuya plantilla cae en un salto de DST no aborta el scan: se
	trata como cerrado (rompe rachas) y se registra un warning.
	"""

	def __init__(self, day_provider: DayProvider, first_date: date, horizon: int):
		self._day_provider = day_provider
		self.first_date = first_date
		self.horizon = horizon
		self._days: Dict[int, CandidateDay] = {}

	def day(self, index: int) -> CandidateDay:
		if index not in self._days:
			target_date = self.first_date + timedelta(days=index)
			try:
				self._days[index] = self._day_provider(target_date)
			except AmbiguousOrInvalidCivilTime as error:
				logger.warning("Skipping %s: %s", target_date.isoformat(), error)
				self._days[index] = CandidateDay(date=target_date, is_open=False)
		return self._days[index]


def _fit_in_day(
	day: CandidateDay,
	length: timedelta,
	not_before: datetime,
) -> Optional[Tuple[Dict[str, datetime], CandidateDay]]:
	"""
	Primer hueco del día donde cabe `length` sin partirse.

	El inicio es max(inicio del intervalo libre, not_before). En un día de
	equipo se prueban los subconjuntos que califican en orden de ranking
	y gana el primero donde cabe.

	Returns:
		(intervalo, opción del día que lo contiene) o None
	"""
	if not day.is_open:
		return None

	for option in day.options():
		for interval in option.free_intervals:
			start = max(interval["start"], not_before)
			if interval["end"] - start >= length:
				return {"start": start, "end": start + length}, option

	return None


def _find_hours_window(scan: _DayScan, execution: Duration, not_before: datetime):
	length = execution.to_timedelta()

	for index in range(scan.horizon):
		fitted = _fit_in_day(scan.day(index), length, not_before)
		if fitted:
			interval, option = fitted
			return interval["start"], interval["end"], None, option

	return None


def _counts_as_full_day(day: CandidateDay, not_before: datetime) -> bool:
	return (
		day.is_open
		and day.whole_day_available
		and day.window is not None
		and day.window["start"] >= not_before
	)


def _find_run(
	scan: _DayScan,
	start_index: int,
	day_count: int,
	not_before: datetime,
	anchored: bool = False,
) -> Optional[Tuple[int, int]]:
	"""
	Busca day_count días laborables consecutivos disponibles.

	Los días no laborables de la plantilla (fin de semana) se saltan; un
	día bloqueado o con reservas rompe la racha y reinicia la cuenta.
	Con anchored=True la racha debe empezar en start_index.

	Returns:
		(índice del primer día, índice del último día) o None
	"""
	run_start = None
	run_length = 0

	for index in range(start_index, scan.horizon):
		day = scan.day(index)

		if _counts_as_full_day(day, not_before):
			if run_length == 0:
				run_start = index
			run_length += 1
			if run_length == day_count:
				return run_start, index
		elif day.is_non_working:
			continue
		elif anchored:
			return None
		else:
			run_start = None
			run_length = 0

	return None


def _find_days_window(scan: _DayScan, execution: Duration, not_before: datetime):
	run = _find_run(scan, 0, execution.whole_days(), not_before)
	if run is None:
		return None

	first_day = scan.day(run[0])
	last_day = scan.day(run[1])
	return first_day.window["start"], last_day.window["end"], None, first_day


def _find_mixed_window(scan: _DayScan, work_request: WorkRequest, now: datetime):
	if not work_request.preparation:
		return _find_days_window(scan, work_request.execution, now)

	preparation_length = work_request.preparation.to_timedelta()
	day_count = work_request.execution.whole_days()

	for index in range(scan.horizon):
		fitted = _fit_in_day(scan.day(index), preparation_length, now)
		if not fitted:
			continue
		preparation, preparation_day = fitted

		next_open = _next_open_index(scan, index + 1)
		if next_open is None:
			return None

		run = _find_run(scan, next_open, day_count, preparation["end"], anchored=True)
		if run is None:
			continue

		last_day = scan.day(run[1])
		return preparation["start"], last_day.window["end"], preparation, preparation_day

	return None


def _next_open_index(scan: _DayScan, start_index: int) -> Optional[int]:
	for index in range(start_index, scan.horizon):
		if scan.day(index).is_open:
			return index
	return None


def _advance(instant: datetime, duration: Duration, zone_id: str) -> datetime:
	"""Suma una duración en su unidad nativa: horas exactas o días de calendario."""
	if duration.unit == "days":
		return shift_civil_days(instant, duration.whole_days(), zone_id)
	return instant + duration.to_timedelta()


def _format_instant(instant: datetime) -> str:
	return instant.astimezone(pytz.utc).isoformat().replace("+00:00", "Z")


def _format_interval(interval: Dict[str, datetime]) -> Dict[str, str]:
	return {"start": _format_instant(interval["start"]), "end": _format_instant(interval["end"])}

"""
Availability Resolver

Resolves, for a single civil date, whether a worker is open and during
which working window, considering:
- Weekly Schedule (company template)
- Company Block Set (closures, holidays; never overridable by a worker)
- Personal Block Set (worker time off)
- Booked Ranges (existing bookings consume free time inside the window)
- Timezones

Resolution is a pure function recomputed on every query; nothing derived
here is cached across schedule mutations.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from work_scheduling.work_scheduling.doctype.block_set.block_set import BlockSet, BlockEntry
from work_scheduling.work_scheduling.doctype.weekly_schedule.weekly_schedule import (
	DaySchedule,
	WeeklySchedule,
)
from .exceptions import ValidationError
from .timezone import get_zone, parse_civil_date, to_instant


BLOCKED_BY_WEEKLY_CLOSED = "weekly-closed"
BLOCKED_BY_COMPANY = "company"
BLOCKED_BY_PERSONAL = "personal"


@dataclass(frozen=True)
class ResolvedDay:
	date: date
	is_open: bool
	blocked_by: Optional[str] = None
	window: Optional[Dict[str, datetime]] = None
	free_intervals: Tuple[Dict[str, datetime], ...] = ()
	block_reason: Optional[str] = None
	is_holiday: bool = False

	@property
	def window_minutes(self) -> float:
		if not self.window:
			return 0
		return interval_minutes(self.window)

	@property
	def free_minutes(self) -> float:
		return sum(interval_minutes(interval) for interval in self.free_intervals)

	@property
	def is_fully_free(self) -> bool:
		"""Abierto y sin reservas dentro de la ventana."""
		return self.is_open and self.free_minutes >= self.window_minutes

	def to_dict(self) -> Dict[str, Any]:
		result: Dict[str, Any] = {
			"date": self.date.isoformat(),
			"isOpen": self.is_open,
		}
		if self.blocked_by:
			result["blockedBy"] = self.blocked_by
		if self.block_reason:
			result["reason"] = self.block_reason
		if self.is_holiday:
			result["isHoliday"] = True
		if self.window:
			result["window"] = _interval_to_dict(self.window)
			result["freeIntervals"] = [_interval_to_dict(interval) for interval in self.free_intervals]
		return result


# ===== BLOCKING LAYERS =====

@dataclass(frozen=True)
class DayContext:
	"""Datos de un día que los layers pueden consultar."""

	date: date
	zone_id: str
	day_schedule: DaySchedule
	window: Optional[Dict[str, datetime]]
	block_sets: Mapping[str, BlockSet] = field(default_factory=dict)


@dataclass(frozen=True)
class BlockMatch:
	blocked_by: str
	entry: Optional[BlockEntry] = None


class WeeklyClosedLayer:
	"""El día de la semana está cerrado en la plantilla."""

	blocked_by = BLOCKED_BY_WEEKLY_CLOSED

	def match(self, context: DayContext) -> Optional[BlockMatch]:
		if not context.day_schedule.available:
			return BlockMatch(self.blocked_by)
		return None


class BlockSetLayer:
	"""Un Block Set del contexto (company, personal, ...) bloquea el día."""

	def __init__(self, blocked_by: str):
		self.blocked_by = blocked_by

	def match(self, context: DayContext) -> Optional[BlockMatch]:
		block_set = context.block_sets.get(self.blocked_by)
		if block_set is None:
			return None

		entry = block_set.match(context.date, context.window, context.zone_id)
		if entry is not None:
			return BlockMatch(self.blocked_by, entry)
		return None

	def __repr__(self) -> str:
		return f"BlockSetLayer({self.blocked_by!r})"


# El primer layer que coincide gana: la empresa siempre antes que el trabajador
DEFAULT_LAYERS = (
	WeeklyClosedLayer(),
	BlockSetLayer(BLOCKED_BY_COMPANY),
	BlockSetLayer(BLOCKED_BY_PERSONAL),
)


def resolve_day(
	target_date: Union[date, str],
	weekly_schedule: WeeklySchedule,
	company_blocks: BlockSet,
	personal_blocks: BlockSet,
	professional_zone: str,
	layers: Optional[Sequence[Any]] = None,
) -> ResolvedDay:
	"""
	Resuelve si un día está abierto y su ventana de trabajo.

	Args:
		target_date: fecha civil en la zona del profesional
		weekly_schedule: plantilla semanal de la empresa
		company_blocks: bloqueos de la empresa
		personal_blocks: bloqueos del trabajador
		professional_zone: identificador IANA del profesional
		layers: layers de bloqueo en orden de precedencia (default: DEFAULT_LAYERS)

	Returns:
		ResolvedDay

	Algoritmo:
		1. Obtener el DaySchedule del weekday de la fecha
		2. Si está abierto, convertir start/end civiles a instantes UTC
		3. Recorrer los layers; el primero que coincide bloquea el día
		4. Si ninguno bloquea, restar reservas de la ventana (free_intervals)

	Raises:
		UnknownTimezone: zona inexistente
		AmbiguousOrInvalidCivilTime: start/end cae en un salto de DST
	"""
	target_date = parse_civil_date(target_date)
	get_zone(professional_zone)

	day_schedule = weekly_schedule.for_date(target_date)

	window = None
	if day_schedule.available:
		window = {
			"start": to_instant(target_date, day_schedule.start_time, professional_zone),
			"end": to_instant(target_date, day_schedule.end_time, professional_zone),
		}

	context = DayContext(
		date=target_date,
		zone_id=professional_zone,
		day_schedule=day_schedule,
		window=window,
		block_sets={
			BLOCKED_BY_COMPANY: company_blocks,
			BLOCKED_BY_PERSONAL: personal_blocks,
		},
	)

	for layer in (DEFAULT_LAYERS if layers is None else layers):
		block = layer.match(context)
		if block is None:
			continue

		return ResolvedDay(
			date=target_date,
			is_open=False,
			blocked_by=block.blocked_by,
			block_reason=getattr(block.entry, "reason", None),
			is_holiday=bool(getattr(block.entry, "is_holiday", False)),
		)

	if window is None:
		# Un layer custom sin WeeklyClosedLayer no puede abrir un día cerrado
		return ResolvedDay(date=target_date, is_open=False, blocked_by=BLOCKED_BY_WEEKLY_CLOSED)

	busy = company_blocks.busy_intervals(window) + personal_blocks.busy_intervals(window)
	free_intervals = subtract_intervals([dict(window)], busy)

	return ResolvedDay(
		date=target_date,
		is_open=True,
		window=window,
		free_intervals=tuple(free_intervals),
	)


def resolve_range(
	from_date: Union[date, str],
	horizon_days: int,
	weekly_schedule: WeeklySchedule,
	company_blocks: BlockSet,
	personal_blocks: BlockSet,
	professional_zone: str,
	layers: Optional[Sequence[Any]] = None,
) -> Iterator[ResolvedDay]:
	"""
	Genera un ResolvedDay por cada fecha de [from_date, from_date + horizon_days).
	"""
	current_date = parse_civil_date(from_date)

	for _ in range(horizon_days):
		yield resolve_day(
			current_date, weekly_schedule, company_blocks, personal_blocks, professional_zone, layers
		)
		current_date += timedelta(days=1)


@dataclass(frozen=True)
class ResourceCalendar:
	"""
	Snapshot inmutable del calendario de un recurso (trabajador).

	resolve() es el resolver que consumen windows.py y overlap.py.
	"""

	resource_id: str
	weekly_schedule: WeeklySchedule
	company_blocks: BlockSet
	personal_blocks: BlockSet
	professional_zone: str
	layers: Optional[Tuple[Any, ...]] = None

	def __post_init__(self) -> None:
		get_zone(self.professional_zone)

		if not self.company_blocks.is_company:
			raise ValidationError(
				f"{self.resource_id}: company blocks must be owned by the company, not {self.company_blocks.owner!r}"
			)
		if self.personal_blocks.owner != self.resource_id:
			raise ValidationError(
				f"{self.resource_id}: personal blocks belong to {self.personal_blocks.owner!r}"
			)

		self.company_blocks.validate_for_zone(self.professional_zone)
		self.personal_blocks.validate_for_zone(self.professional_zone)

	@classmethod
	def for_worker(
		cls,
		resource_id: str,
		weekly_schedule: WeeklySchedule,
		professional_zone: str,
		company_blocks: Optional[BlockSet] = None,
		personal_blocks: Optional[BlockSet] = None,
	) -> "ResourceCalendar":
		return cls(
			resource_id=resource_id,
			weekly_schedule=weekly_schedule,
			company_blocks=company_blocks or BlockSet.company(),
			personal_blocks=personal_blocks or BlockSet.personal(resource_id),
			professional_zone=professional_zone,
		)

	def resolve(self, target_date: Union[date, str]) -> ResolvedDay:
		return resolve_day(
			target_date,
			self.weekly_schedule,
			self.company_blocks,
			self.personal_blocks,
			self.professional_zone,
			self.layers,
		)

	def resolve_range(self, from_date: Union[date, str], horizon_days: int) -> Iterator[ResolvedDay]:
		return resolve_range(
			from_date,
			horizon_days,
			self.weekly_schedule,
			self.company_blocks,
			self.personal_blocks,
			self.professional_zone,
			self.layers,
		)


# ===== INTERVAL MATH =====

def interval_minutes(interval: Dict[str, datetime]) -> float:
	return (interval["end"] - interval["start"]).total_seconds() / 60


def subtract_intervals(
	intervals: List[Dict[str, datetime]],
	blocks: List[Dict[str, datetime]],
) -> List[Dict[str, datetime]]:
	"""Resta todos los bloques de todos los intervalos, merge y orden."""
	for block in blocks:
		new_intervals = []
		for interval in intervals:
			new_intervals.extend(_interval_subtract(interval, block))
		intervals = new_intervals

	return _merge_intervals(intervals)


def intersect_intervals(
	first: Sequence[Dict[str, datetime]],
	second: Sequence[Dict[str, datetime]],
) -> List[Dict[str, datetime]]:
	"""
	Intersección de dos listas de intervalos ordenados y sin solape.

	Solo conserva intersecciones de duración positiva.
	"""
	result = []
	i = j = 0

	while i < len(first) and j < len(second):
		start = max(first[i]["start"], second[j]["start"])
		end = min(first[i]["end"], second[j]["end"])
		if start < end:
			result.append({"start": start, "end": end})

		# Avanzar el que termina antes
		if first[i]["end"] <= second[j]["end"]:
			i += 1
		else:
			j += 1

	return result


def _merge_intervals(intervals: List[Dict[str, datetime]]) -> List[Dict[str, datetime]]:
	"""
	Une intervalos adyacentes o overlapping.

	Args:
		intervals: lista de intervalos {"start": datetime, "end": datetime}

	Returns:
		list: intervalos merged
	"""
	if not intervals:
		return []

	# Ordenar por start time
	intervals = sorted(intervals, key=lambda x: x["start"])

	merged = [dict(intervals[0])]

	for current in intervals[1:]:
		last_merged = merged[-1]

		# Si current se solapa o es adyacente a last_merged, merge
		if current["start"] <= last_merged["end"]:
			if current["end"] > last_merged["end"]:
				last_merged["end"] = current["end"]
		else:
			merged.append(dict(current))

	return merged


def _interval_subtract(
	interval: Dict[str, datetime],
	block: Dict[str, datetime]
) -> List[Dict[str, datetime]]:
	"""
	Resta un bloqueo de un intervalo.

	Args:
		interval: {"start": datetime, "end": datetime} - intervalo original
		block: {"start": datetime, "end": datetime} - bloqueo a restar

	Returns:
		list: lista de intervalos resultantes (puede ser 0, 1 o 2 intervalos)
	"""
	# Sin overlap
	if block["end"] <= interval["start"] or block["start"] >= interval["end"]:
		return [interval]

	# Block cubre todo
	if block["start"] <= interval["start"] and block["end"] >= interval["end"]:
		return []

	# Block cubre parte inicial
	if block["start"] <= interval["start"]:
		return [{"start": block["end"], "end": interval["end"]}]

	# Block cubre parte final
	if block["end"] >= interval["end"]:
		return [{"start": interval["start"], "end": block["start"]}]

	# Block está en medio (split en dos)
	return [
		{"start": interval["start"], "end": block["start"]},
		{"start": block["end"], "end": interval["end"]}
	]


def _interval_to_dict(interval: Dict[str, datetime]) -> Dict[str, str]:
	return {
		"start": interval["start"].isoformat().replace("+00:00", "Z"),
		"end": interval["end"].isoformat().replace("+00:00", "Z"),
	}

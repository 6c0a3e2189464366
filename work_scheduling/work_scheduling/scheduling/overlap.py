"""
Overlap Engine

Multi-resource availability: decides, per candidate date, whether enough
workers of a Team are simultaneously free, considering:
- min_resource_count (how many workers must coincide)
- min_overlap_percentage (shared free minutes over the narrowest
  working window of the chosen workers)
- existing bookings of each worker

The shared free time of the chosen workers replaces the single-worker
free time in the window scan of windows.py.
"""

import logging
from concurrent.futures import Executor
from dataclasses import replace
from datetime import date, datetime
from functools import partial
from itertools import combinations
from typing import Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple, Union

from work_scheduling.work_scheduling.doctype.work_request.work_request import Team, WorkRequest
from .availability import BLOCKED_BY_WEEKLY_CLOSED, ResolvedDay, interval_minutes, intersect_intervals
from .exceptions import InvalidWorkRequest
from .windows import CandidateDay, TeamBookingWindow, WindowResult, find_window


logger = logging.getLogger(__name__)

Resolver = Callable[[date], ResolvedDay]


class SubsetOverlap(NamedTuple):
	resources: Tuple[str, ...]
	intervals: List[Dict[str, datetime]]
	overlap_minutes: float
	narrowest_window_minutes: float
	percentage: float


def resolve_team_day(
	target_date: date,
	team: Team,
	resolvers: Mapping[str, Resolver],
	executor: Optional[Executor] = None,
) -> Dict[str, ResolvedDay]:
	"""
	Resuelve el día para cada recurso del equipo.

	Con executor se resuelve un recurso por tarea y se espera a todas
	antes de evaluar el solape; el orden entre recursos no importa.
	"""
	if executor is None:
		return {resource: resolvers[resource](target_date) for resource in team.resources}

	futures = {}
	for resource in team.resources:
		futures[resource] = executor.submit(resolvers[resource], target_date)

	return {resource: future.result() for resource, future in futures.items()}


def rank_subsets(
	resolved: Mapping[str, ResolvedDay],
	team: Team,
) -> List[SubsetOverlap]:
	"""
	Evalúa los subconjuntos de min_resource_count recursos abiertos.

	Returns:
		list: de mayor a menor minutos solapados; en empate, orden del equipo
	"""
	open_resources = [resource for resource in team.resources if resolved[resource].is_open]
	subsets = []

	for subset in combinations(open_resources, team.min_resource_count):
		days = [resolved[resource] for resource in subset]

		intervals = list(days[0].free_intervals)
		for day in days[1:]:
			intervals = intersect_intervals(intervals, day.free_intervals)

		overlap_minutes = sum(interval_minutes(interval) for interval in intervals)
		narrowest = min(day.window_minutes for day in days)
		percentage = (overlap_minutes / narrowest * 100) if narrowest > 0 else 0.0

		subsets.append(SubsetOverlap(subset, intervals, overlap_minutes, narrowest, percentage))

	# sort estable: conserva el orden del equipo entre empates
	subsets.sort(key=lambda item: item.overlap_minutes, reverse=True)
	return subsets


def evaluate_team_day(
	target_date: date,
	team: Team,
	resolvers: Mapping[str, Resolver],
	executor: Optional[Executor] = None,
) -> CandidateDay:
	"""
	Convierte los ResolvedDay del equipo en un CandidateDay.

	Algoritmo:
		1. Resolver el día para cada recurso
		2. Si hay menos de min_resource_count abiertos, el día no califica
		3. Rankear subconjuntos por minutos solapados
		4. Los que tienen porcentaje >= min_overlap_percentage (y solape > 0)
		   califican; el primero define la ventana del equipo y el resto
		   queda en `alternatives` para cuando el trabajo no cabe en él
	"""
	resolved = resolve_team_day(target_date, team, resolvers, executor)
	is_non_working = all(day.blocked_by == BLOCKED_BY_WEEKLY_CLOSED for day in resolved.values())

	open_count = sum(1 for day in resolved.values() if day.is_open)
	if open_count < team.min_resource_count:
		return CandidateDay(date=target_date, is_open=False, is_non_working=is_non_working)

	subsets = rank_subsets(resolved, team)

	qualifying = [
		CandidateDay(
			date=target_date,
			is_open=True,
			window={"start": subset.intervals[0]["start"], "end": subset.intervals[-1]["end"]},
			free_intervals=tuple(subset.intervals),
			whole_day_available=True,
			resources=subset.resources,
			overlap_percentage=subset.percentage,
		)
		for subset in subsets
		if subset.overlap_minutes > 0 and subset.percentage >= team.min_overlap_percentage
	]
	if qualifying:
		return replace(qualifying[0], alternatives=tuple(qualifying[1:]))

	best = subsets[0].percentage if subsets else 0.0
	logger.debug(
		"%s: team overlap %.1f%% below required %.1f%%",
		target_date.isoformat(),
		best,
		team.min_overlap_percentage,
	)
	return CandidateDay(date=target_date, is_open=False, overlap_percentage=best)


def find_team_window(
	work_request: WorkRequest,
	team: Team,
	resolvers: Mapping[str, Resolver],
	professional_zone: str,
	now: Optional[Union[datetime, str]] = None,
	search_horizon_days: Optional[int] = None,
	executor: Optional[Executor] = None,
) -> WindowResult:
	"""
	Primera ventana factible para un trabajo multi-recurso.

	Args:
		work_request: duraciones y modo
		team: recursos, min_resource_count y min_overlap_percentage
		resolvers: resource id -> resolver (p.ej. ResourceCalendar.resolve)
		professional_zone: zona IANA usada para el scan y las fechas civiles
		now: instante de referencia (default: ahora en UTC)
		search_horizon_days: días a escanear
		executor: concurrent.futures.Executor para resolver recursos en paralelo

	Returns:
		TeamBookingWindow o Unsatisfiable
	"""
	missing = [resource for resource in team.resources if resource not in resolvers]
	if missing:
		raise InvalidWorkRequest(f"No resolver for team resource(s): {', '.join(map(str, missing))}")

	return find_window(
		work_request,
		partial(evaluate_team_day, team=team, resolvers=resolvers, executor=executor),
		professional_zone,
		now=now,
		search_horizon_days=search_horizon_days,
		window_class=TeamBookingWindow,
	)

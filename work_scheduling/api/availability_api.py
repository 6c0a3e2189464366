"""
Availability API

Dict-in / dict-out functions consumed by the booking service and the
calendar UI. Payload field names follow the JSON contract (camelCase);
all instants are returned as ISO-8601 UTC strings and localized only
through the dual-zone labels.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from work_scheduling.work_scheduling.doctype.block_set.block_set import BlockSet, BookedRange
from work_scheduling.work_scheduling.doctype.weekly_schedule.weekly_schedule import (
	WeeklySchedule,
	default_weekly_schedule,
)
from work_scheduling.work_scheduling.doctype.work_request.work_request import Team, WorkRequest
from work_scheduling.work_scheduling.scheduling.availability import ResourceCalendar
from work_scheduling.work_scheduling.scheduling.exceptions import ValidationError
from work_scheduling.work_scheduling.scheduling.formatting import (
	format_date_only_professional_viewer,
	format_window_professional_viewer,
)
from work_scheduling.work_scheduling.scheduling.overlap import find_team_window
from work_scheduling.work_scheduling.scheduling.windows import BookingWindow, earliest_window

from .shared import (
	validate_date_string,
	validate_horizon_days,
	validate_payload,
	validate_zone_id,
)


logger = logging.getLogger(__name__)

DEFAULT_RESOURCE_ID = "worker"


def get_resolved_days(payload: Mapping[str, Any]) -> Dict[str, Any]:
	"""
	Resuelve un rango de fechas para un trabajador.

	Args:
		payload: {
			"weeklySchedule": {...},          # opcional, default L-V 09:00-17:00
			"companyBlocks": {"blockedDates": [...], "blockedRanges": [...]},
			"personalBlocks": {"blockedDates": [...], "blockedRanges": [...]},
			"bookings": [...],                # opcional
			"professionalZone": "Europe/Brussels",
			"from": "2026-01-19",
			"horizonDays": 14
		}

	Returns:
		dict: {
			"success": True,
			"days": [
				{"date": "2026-01-19", "isOpen": True, "window": {...}, "freeIntervals": [...]},
				{"date": "2026-01-24", "isOpen": False, "blockedBy": "weekly-closed"},
				...
			]
		}
	"""
	payload = validate_payload(payload)
	from_date = validate_date_string(payload.get("from"), "from")
	horizon_days = validate_horizon_days(payload.get("horizonDays"))

	calendar = _build_calendar(payload, payload.get("resourceId") or DEFAULT_RESOURCE_ID)

	return {
		"success": True,
		"days": [day.to_dict() for day in calendar.resolve_range(from_date, horizon_days)],
	}


def get_schedule_proposals(payload: Mapping[str, Any]) -> Dict[str, Any]:
	"""
	Propuestas de agenda para un trabajo de un solo recurso.

	Args:
		payload: el de get_resolved_days más
			"workRequest": {executionDuration, bufferDuration?, preparationDuration?, timeMode?},
			"now": instante ISO-8601 opcional,
			"viewerZone": zona IANA opcional (agrega labels)

	Returns:
		dict: {
			"success": True,
			"proposals": {
				"mode": "hours",
				"earliestBookableDate": "2026-01-19",
				"earliestProposal": {"start": ..., "end": ...},
				"shortestThroughputProposal": {"start": ..., "end": ...},
				...
			}
		}
		o {"success": True, "proposals": None, "unsatisfiable": {...}}
	"""
	payload = validate_payload(payload)
	work_request = _load_work_request(payload)
	horizon_days = validate_horizon_days(payload.get("horizonDays"))

	calendar = _build_calendar(payload, payload.get("resourceId") or DEFAULT_RESOURCE_ID)

	result = earliest_window(
		work_request,
		calendar.resolve,
		calendar.professional_zone,
		now=payload.get("now"),
		search_horizon_days=horizon_days,
	)
	return _proposals_response(result, payload.get("viewerZone"))


def get_team_proposals(payload: Mapping[str, Any]) -> Dict[str, Any]:
	"""
	Propuestas de agenda para un trabajo multi-recurso.

	Args:
		payload: el de get_schedule_proposals, con "team" en lugar de
			"personalBlocks":
			"team": {
				"resources": [
					{"id": "w-1", "personalBlocks": {...}, "bookings": [...]},
					...
				],
				"minResourceCount": 2,
				"minOverlapPercentage": 50
			}

	Returns:
		dict: igual que get_schedule_proposals, con "resources" y
		"overlapPercentage" en la propuesta
	"""
	payload = validate_payload(payload)
	work_request = _load_work_request(payload)
	horizon_days = validate_horizon_days(payload.get("horizonDays"))

	team_data = validate_payload(payload.get("team"), "team")
	members = team_data.get("resources") or []
	if not isinstance(members, list) or not members:
		raise ValidationError("team.resources must be a non-empty list")

	calendars: Dict[str, ResourceCalendar] = {}
	for member in members:
		member = validate_payload(member, "team resource")
		resource_id = member.get("id")
		if not resource_id:
			raise ValidationError("Every team resource requires an 'id'")
		calendars[resource_id] = _build_calendar(payload, resource_id, member)

	team = Team(
		resources=tuple(calendars),
		min_resource_count=team_data.get("minResourceCount", 1),
		min_overlap_percentage=team_data.get("minOverlapPercentage", 0),
	)
	if len(team.resources) != len(members):
		raise ValidationError("Team resource ids must be distinct")

	professional_zone = validate_zone_id(payload.get("professionalZone"))
	result = find_team_window(
		work_request,
		team,
		{resource_id: calendar.resolve for resource_id, calendar in calendars.items()},
		professional_zone,
		now=payload.get("now"),
		search_horizon_days=horizon_days,
	)
	return _proposals_response(result, payload.get("viewerZone"))


def _build_calendar(
	payload: Mapping[str, Any],
	resource_id: str,
	member: Optional[Mapping[str, Any]] = None,
) -> ResourceCalendar:
	"""Snapshot del calendario de un recurso a partir del payload."""
	source = member if member is not None else payload

	weekly_data = payload.get("weeklySchedule")
	weekly_schedule = WeeklySchedule.from_dict(weekly_data) if weekly_data else default_weekly_schedule()

	personal_blocks = BlockSet.from_dict(source.get("personalBlocks"), owner=resource_id)
	for booking in source.get("bookings") or []:
		personal_blocks = personal_blocks.with_booking(BookedRange.from_dict(booking))

	return ResourceCalendar(
		resource_id=resource_id,
		weekly_schedule=weekly_schedule,
		company_blocks=BlockSet.from_dict(payload.get("companyBlocks"), owner="company"),
		personal_blocks=personal_blocks,
		professional_zone=validate_zone_id(payload.get("professionalZone")),
	)


def _load_work_request(payload: Mapping[str, Any]) -> WorkRequest:
	work_request_data = validate_payload(payload.get("workRequest"), "workRequest")
	return WorkRequest.from_dict(work_request_data)


def _proposals_response(result: Any, viewer_zone: Optional[str]) -> Dict[str, Any]:
	if not result:
		logger.info("No schedule proposal: %s", result.reason)
		return {"success": True, "proposals": None, "unsatisfiable": result.to_dict()}

	window_data = result.to_dict()
	proposals: Dict[str, Any] = {
		"mode": window_data.pop("mode"),
		"earliestBookableDate": window_data.pop("firstAvailableDate"),
		"earliestProposal": window_data.pop("firstAvailableWindow"),
		"shortestThroughputProposal": window_data.pop("shortestThroughputWindow"),
	}
	proposals.update(window_data)

	if viewer_zone:
		proposals["labels"] = _build_labels(result, viewer_zone)

	return {"success": True, "proposals": proposals}


def _build_labels(window: BookingWindow, viewer_zone: str) -> Dict[str, Any]:
	labels: Dict[str, Any] = {}

	earliest_date = format_date_only_professional_viewer(
		window.first_available_instant, window.professional_zone, viewer_zone
	)
	if earliest_date:
		labels["earliestBookableDate"] = earliest_date.to_dict()

	for key, interval in (
		("earliestProposal", window.first_available_window),
		("shortestThroughputProposal", window.shortest_throughput_window),
	):
		label = format_window_professional_viewer(interval, window.professional_zone, viewer_zone)
		if label:
			labels[key] = label.to_dict()

	return labels

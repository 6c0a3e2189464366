"""
Dual Zone Formatter

Presentation-only labels for instants and windows, rendered both in the
professional's zone and in the viewer's zone. Never used during
resolution; unknown zones fall back to the configured default (UTC)
instead of failing.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Mapping, NamedTuple, Optional, Union

from work_scheduling.config import settings
from .exceptions import UnknownTimezone, ValidationError
from .timezone import get_zone, parse_instant, to_civil


logger = logging.getLogger(__name__)

MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

InstantInput = Union[datetime, str, None]


class DualZoneLabel(NamedTuple):
	professional_label: str
	viewer_label: str
	professional_zone: str
	viewer_zone: str

	def to_dict(self) -> Dict[str, str]:
		return {
			"professionalLabel": self.professional_label,
			"viewerLabel": self.viewer_label,
			"professionalZone": self.professional_zone,
			"viewerZone": self.viewer_zone,
		}


def normalize_timezone(zone_id: Optional[str], fallback: Optional[str] = None) -> str:
	"""
	Nombre canónico de la zona, o fallback si no existe.

	Ej: "europe/brussels" -> "Europe/Brussels"; "Mars/Olympus" -> "UTC"
	"""
	fallback = fallback or settings.fallback_timezone
	if not zone_id:
		return fallback

	try:
		return get_zone(zone_id).zone
	except UnknownTimezone:
		logger.warning("Unknown timezone %r, falling back to %s", zone_id, fallback)
		return fallback


def format_professional_viewer_label(
	value: InstantInput,
	professional_zone: Optional[str] = None,
	viewer_zone: Optional[str] = None,
	include_time: bool = True,
) -> Optional[DualZoneLabel]:
	"""
	Formatea un instante en la zona del profesional y en la del visitante.

	Returns:
		DualZoneLabel, o None si value no es un instante válido
	"""
	instant = _parse_value(value)
	if instant is None:
		return None

	professional = normalize_timezone(professional_zone)
	viewer = normalize_timezone(viewer_zone)

	return DualZoneLabel(
		professional_label=_format_for_zone(instant, professional, include_time),
		viewer_label=_format_for_zone(instant, viewer, include_time),
		professional_zone=professional,
		viewer_zone=viewer,
	)


def format_window_professional_viewer(
	window: Optional[Mapping[str, InstantInput]],
	professional_zone: Optional[str] = None,
	viewer_zone: Optional[str] = None,
	include_time: bool = True,
) -> Optional[DualZoneLabel]:
	"""
	Formatea una ventana start -> end en ambas zonas.

	Si start y end producen el mismo texto se muestra una sola vez; si
	solo uno es válido se muestra ese. None si ninguno es válido.
	"""
	if not window:
		return None

	start = _parse_value(window.get("start"))
	end = _parse_value(window.get("end"))
	if start is None and end is None:
		return None

	professional = normalize_timezone(professional_zone)
	viewer = normalize_timezone(viewer_zone)

	def build_label(zone_id: str) -> str:
		start_label = _format_for_zone(start, zone_id, include_time) if start else None
		end_label = _format_for_zone(end, zone_id, include_time) if end else None

		if start_label and end_label:
			if start_label == end_label:
				return start_label
			return f"{start_label} → {end_label}"
		return start_label or end_label

	return DualZoneLabel(
		professional_label=build_label(professional),
		viewer_label=build_label(viewer),
		professional_zone=professional,
		viewer_zone=viewer,
	)


def format_date_only_professional_viewer(
	value: InstantInput,
	professional_zone: Optional[str] = None,
	viewer_zone: Optional[str] = None,
) -> Optional[DualZoneLabel]:
	return format_professional_viewer_label(value, professional_zone, viewer_zone, include_time=False)


def _parse_value(value: Any) -> Optional[datetime]:
	if value is None or value == "":
		return None
	if isinstance(value, date) and not isinstance(value, datetime):
		value = datetime(value.year, value.month, value.day)

	try:
		return parse_instant(value)
	except ValidationError:
		return None


def _format_for_zone(instant: datetime, zone_id: str, include_time: bool) -> str:
	"""Formato medio en-US: "Mar 10, 2025, 9:00 AM" / "Mar 10, 2025"."""
	civil = to_civil(instant, zone_id)
	label = f"{MONTH_ABBREVIATIONS[civil.date.month - 1]} {civil.date.day}, {civil.date.year}"

	if include_time:
		hour = civil.time.hour % 12 or 12
		meridiem = "AM" if civil.time.hour < 12 else "PM"
		label += f", {hour}:{civil.time.minute:02d} {meridiem}"

	return label

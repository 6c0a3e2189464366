"""
Scheduling Errors

Error kinds raised by the availability and booking-window engine.
All of them are validation failures surfaced at construction or
conversion time; "no window found" is not an error and is returned
as an Unsatisfiable value instead (see windows.py).
"""


class SchedulingError(Exception):
	"""Base para errores del motor de agendamiento."""
	pass


class ValidationError(SchedulingError, ValueError):
	"""Entrada inválida detectada al construir o convertir datos."""
	pass


class InvalidCivilTime(ValidationError):
	"""Hora civil no parseable (HH:MM) o fuera de rango."""
	pass


class InvalidRange(ValidationError):
	"""Rango bloqueado o reservado con end antes de start."""
	pass


class UnknownTimezone(ValidationError):
	"""Identificador de zona que no existe en la base IANA."""

	def __init__(self, zone_id):
		self.zone_id = zone_id
		super().__init__(f"Unknown timezone: {zone_id!r}")


class AmbiguousOrInvalidCivilTime(ValidationError):
	"""Hora civil que no existe en la zona (salto de DST)."""

	def __init__(self, civil_date, civil_time, zone_id):
		self.civil_date = civil_date
		self.civil_time = civil_time
		self.zone_id = zone_id
		super().__init__(
			f"{civil_date.isoformat()} {civil_time.strftime('%H:%M')} does not exist in {zone_id}"
		)


class MalformedWeeklySchedule(ValidationError):
	"""Horario semanal con días faltantes, duplicados o start >= end."""
	pass


class InvalidWorkRequest(ValidationError):
	"""Duración, modo, equipo u horizonte de búsqueda inválidos."""
	pass

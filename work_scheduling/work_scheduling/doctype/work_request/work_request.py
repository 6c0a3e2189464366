# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Work Request

Describe una unidad de trabajo (subproyecto) a agendar:
- execution: duración de la ejecución
- buffer: holgura posterior del profesional (opcional)
- preparation: preparación / intake previo (opcional)
- time_mode: hours | days | mixed

Team agrupa los recursos que deben coincidir en un trabajo
multi-recurso.
"""

import math
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from work_scheduling.work_scheduling.scheduling.exceptions import InvalidWorkRequest


DURATION_UNITS = ("hours", "days")


class TimeMode(str, Enum):
	HOURS = "hours"
	DAYS = "days"
	MIXED = "mixed"


@dataclass(frozen=True)
class Duration:
	value: float
	unit: str = "hours"

	def __post_init__(self) -> None:
		self._validate_value()
		self._validate_unit()

	def _validate_value(self) -> None:
		if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
			raise InvalidWorkRequest(f"Duration value must be a number, got {self.value!r}")
		if not math.isfinite(self.value) or self.value <= 0:
			raise InvalidWorkRequest(f"Duration value must be greater than 0, got {self.value!r}")

	def _validate_unit(self) -> None:
		if self.unit not in DURATION_UNITS:
			raise InvalidWorkRequest(f"Duration unit must be one of {DURATION_UNITS}, got {self.unit!r}")

	@classmethod
	def from_dict(cls, data: Union["Duration", Mapping[str, Any]]) -> "Duration":
		if isinstance(data, Duration):
			return data
		if not isinstance(data, Mapping):
			raise InvalidWorkRequest("Duration must be an object {value, unit}")
		return cls(value=data.get("value"), unit=data.get("unit", "hours"))

	def to_minutes(self) -> float:
		if self.unit == "days":
			return self.value * 24 * 60
		return self.value * 60

	def to_timedelta(self) -> timedelta:
		return timedelta(minutes=self.to_minutes())

	def whole_days(self) -> int:
		"""Días completos que consume, redondeando hacia arriba."""
		if self.unit == "days":
			return math.ceil(self.value)
		return math.ceil(self.value / 24)

	def to_dict(self) -> Dict[str, Any]:
		return {"value": self.value, "unit": self.unit}


def _optional_duration(data: Any) -> Optional[Duration]:
	if data is None:
		return None
	if isinstance(data, Mapping) and data.get("value") in (None, "", 0):
		# El formulario guarda {value: 0} / {} cuando el campo opcional queda vacío
		return None
	return Duration.from_dict(data)


@dataclass(frozen=True)
class WorkRequest:
	execution: Duration
	time_mode: TimeMode = TimeMode.HOURS
	buffer: Optional[Duration] = None
	preparation: Optional[Duration] = None

	def __post_init__(self) -> None:
		if not isinstance(self.execution, Duration):
			raise InvalidWorkRequest("Work request requires an execution duration")

		try:
			object.__setattr__(self, "time_mode", TimeMode(self.time_mode))
		except ValueError:
			raise InvalidWorkRequest(
				f"Time mode must be one of {[mode.value for mode in TimeMode]}, got {self.time_mode!r}"
			) from None

	@classmethod
	def from_dict(cls, data: Mapping[str, Any]) -> "WorkRequest":
		"""
		Construye desde {executionDuration, bufferDuration?, preparationDuration?, timeMode?}.

		Sin timeMode se deduce de la unidad de executionDuration.
		"""
		if not isinstance(data, Mapping) or not data.get("executionDuration"):
			raise InvalidWorkRequest("Work request requires 'executionDuration'")

		execution = Duration.from_dict(data["executionDuration"])
		time_mode = data.get("timeMode") or execution.unit

		return cls(
			execution=execution,
			time_mode=time_mode,
			buffer=_optional_duration(data.get("bufferDuration")),
			preparation=_optional_duration(data.get("preparationDuration")),
		)

	def to_dict(self) -> Dict[str, Any]:
		result: Dict[str, Any] = {
			"executionDuration": self.execution.to_dict(),
			"timeMode": self.time_mode.value,
		}
		if self.buffer:
			result["bufferDuration"] = self.buffer.to_dict()
		if self.preparation:
			result["preparationDuration"] = self.preparation.to_dict()
		return result


@dataclass(frozen=True)
class Team:
	"""
	Team with validation.

	Validations:
	- at least one resource, no duplicates
	- 1 <= min_resource_count <= len(resources)
	- 0 <= min_overlap_percentage <= 100
	"""

	resources: Tuple[str, ...]
	min_resource_count: int = 1
	min_overlap_percentage: float = 0

	def __post_init__(self) -> None:
		object.__setattr__(self, "resources", tuple(self.resources))
		self._validate_resources()
		self._validate_min_resource_count()
		self._validate_min_overlap_percentage()

	def _validate_resources(self) -> None:
		if not self.resources:
			raise InvalidWorkRequest("Team requires at least one resource")
		if len(set(self.resources)) != len(self.resources):
			raise InvalidWorkRequest("Team resources must be distinct")

	def _validate_min_resource_count(self) -> None:
		count = self.min_resource_count
		if isinstance(count, bool) or not isinstance(count, int):
			raise InvalidWorkRequest(f"min_resource_count must be an integer, got {count!r}")
		if not 1 <= count <= len(self.resources):
			raise InvalidWorkRequest(
				f"min_resource_count must be between 1 and {len(self.resources)}, got {count}"
			)

	def _validate_min_overlap_percentage(self) -> None:
		percentage = self.min_overlap_percentage
		if isinstance(percentage, bool) or not isinstance(percentage, (int, float)):
			raise InvalidWorkRequest(f"min_overlap_percentage must be a number, got {percentage!r}")
		if not 0 <= percentage <= 100:
			raise InvalidWorkRequest(f"min_overlap_percentage must be between 0 and 100, got {percentage}")

	@classmethod
	def of(cls, resources: Iterable[str], min_resource_count: int = 1, min_overlap_percentage: float = 0) -> "Team":
		return cls(tuple(resources), min_resource_count, min_overlap_percentage)

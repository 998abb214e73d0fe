"""Employee directory models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from pydantic import field_validator

from attendance_importer.models._base import ImporterBaseModel


@dataclass(frozen=True, slots=True)
class DirectoryScope:
    """Key under which the ERP returns an employee directory."""

    tenant_id: int
    location: str


class EmployeeIdentity(ImporterBaseModel):
    """An employee as known to the ERP, linked to a device user id."""

    external_reference: str | None = None
    """Device-local user id; blank means the record is invalid."""
    code: str = ""
    """Canonical employee code."""
    name: str = ""
    """Display name."""
    joining_date: date
    """Events before this date are never imported for the employee."""
    duty_station: str = ""
    """Duty-station code."""

    @field_validator("external_reference", mode="before")
    @classmethod
    def _coerce_reference(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def is_valid(self) -> bool:
        """Whether the identity carries a usable external reference."""
        return bool(self.external_reference and self.external_reference.strip())

    @property
    def label(self) -> str:
        return f"{self.code}: {self.name}"

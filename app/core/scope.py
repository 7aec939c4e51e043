"""Per-request capability values.

A request's role is resolved once, in the dependency layer, into either a
``PatientScope`` or a ``DoctorScope``. Services receive the scope and use it
to restrict the rows they read or write instead of re-checking the role.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import ColumnElement, Table


@dataclass(frozen=True)
class PatientScope:
    """Caller is a patient; owns rows whose ``patient_id`` matches."""

    user_id: UUID
    patient_id: UUID

    role = "patient"

    def owns(self, table: Table) -> ColumnElement[bool]:
        """Filter clause restricting ``table`` to this patient's rows."""
        return table.c.patient_id == self.patient_id


@dataclass(frozen=True)
class DoctorScope:
    """Caller is a doctor; owns rows whose ``doctor_id`` matches."""

    user_id: UUID
    doctor_id: UUID

    role = "doctor"

    def owns(self, table: Table) -> ColumnElement[bool]:
        """Filter clause restricting ``table`` to this doctor's rows."""
        return table.c.doctor_id == self.doctor_id


Scope = PatientScope | DoctorScope

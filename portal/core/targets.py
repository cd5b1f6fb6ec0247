"""
The rateable target of a Rating or Complaint.

Application code passes around ``Target | None``; the nullable
``agent_id`` / ``employee_id`` column pair only exists at the persistence
edge, via ``target_from_columns`` and ``Target.as_columns``.
"""

from dataclasses import dataclass
from enum import Enum

from portal.core.errors import FieldError, ValidationError

# Ids are stored in 32-bit integer columns
MAX_ID = 2**31 - 1


class ProfileKind(str, Enum):
    AGENT = "agent"
    EMPLOYEE = "employee"

    @property
    def column(self) -> str:
        return f"{self.value}_id"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def staff_role(self) -> str:
        """Role a user account must have to be linked to a profile of this kind."""
        return "agent" if self is ProfileKind.AGENT else "frontline"


@dataclass(frozen=True)
class Target:
    kind: ProfileKind
    profile_id: int

    def as_columns(self) -> dict[str, int | None]:
        return {
            "agent_id": self.profile_id if self.kind is ProfileKind.AGENT else None,
            "employee_id": self.profile_id if self.kind is ProfileKind.EMPLOYEE else None,
        }

    def as_dict(self) -> dict:
        return {"kind": self.kind.value, "id": self.profile_id}


def for_agent(profile_id: int) -> Target:
    return Target(ProfileKind.AGENT, profile_id)


def for_employee(profile_id: int) -> Target:
    return Target(ProfileKind.EMPLOYEE, profile_id)


def target_from_columns(agent_id: int | None, employee_id: int | None) -> Target | None:
    """Build a Target from the nullable column pair; both set is rejected."""
    if agent_id is not None and employee_id is not None:
        raise ValidationError(
            [
                FieldError("agent_id", "Only one of agent_id or employee_id may be set"),
                FieldError("employee_id", "Only one of agent_id or employee_id may be set"),
            ]
        )
    if agent_id is not None:
        return for_agent(agent_id)
    if employee_id is not None:
        return for_employee(employee_id)
    return None


def require_target(agent_id: int | None, employee_id: int | None) -> Target:
    """Like ``target_from_columns`` but exactly one id must be present."""
    target = target_from_columns(agent_id, employee_id)
    if target is None:
        raise ValidationError(
            [FieldError("agent_id", "Either agent_id or employee_id is required")]
        )
    return target


def target_of(row) -> Target | None:
    """Read the target back from any row carrying agent_id/employee_id."""
    return target_from_columns(row.agent_id, row.employee_id)


def target_clause(model, target: Target):
    """SQL condition restricting ``model`` rows to ``target``."""
    return getattr(model, target.kind.column) == target.profile_id

"""Role hierarchy and capability table.

Every role maps to a fixed level and a fixed capability set, so each permission
decision is a plain lookup that can be checked exhaustively over the enums.
"""

from __future__ import annotations

from enum import Enum

from app.models.user import UserRole


class Capability(str, Enum):
    schedule_read = "schedule:read"
    schedule_manage = "schedule:manage"
    schedule_approve = "schedule:approve"
    occurrence_generate = "occurrence:generate"
    reference_read = "reference:read"
    reference_manage = "reference:manage"


# Teacher and coordinator sit at the same level.
ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.admin: 5,
    UserRole.manager: 4,
    UserRole.teacher: 3,
    UserRole.coordinator: 3,
    UserRole.student: 1,
}

ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.admin: frozenset(Capability),
    UserRole.manager: frozenset(
        {
            Capability.schedule_read,
            Capability.schedule_manage,
            Capability.schedule_approve,
            Capability.occurrence_generate,
            Capability.reference_read,
            Capability.reference_manage,
        }
    ),
    UserRole.coordinator: frozenset(
        {
            Capability.schedule_read,
            Capability.schedule_manage,
            Capability.occurrence_generate,
            Capability.reference_read,
        }
    ),
    UserRole.teacher: frozenset({Capability.schedule_read, Capability.reference_read}),
    UserRole.student: frozenset({Capability.reference_read}),
}


def get_role_level(role: UserRole) -> int:
    return ROLE_HIERARCHY[role]


def has_minimum_role(role: UserRole, required: UserRole) -> bool:
    return get_role_level(role) >= get_role_level(required)


def has_capability(role: UserRole, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES[role]

"""
Requirement Registry

Reporting requirement templates and their assignment to institutions.

Templates are keyed by requirement id. Assignments are keyed by the
composite (institution_id, requirement_id) and are the only records that
support a partial update after creation: the next due date.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .canonicalization import composite_key
from .context import CallContext
from .errors import AlreadyAssigned, AlreadyExists, InvalidArgument, NotFound, NotVerified
from .institutions import InstitutionRegistry
from .journal import Journal
from .registry import Registry, mutation
from .storage import KeyValueStore
from .validation import (
    validate_height,
    validate_identifier,
    validate_positive_int,
    validate_text,
)

REQUIREMENTS = "requirements"
ASSIGNMENTS = "assignments"


class Frequency(str, Enum):
    """Filing frequency labels."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi-annual"
    ANNUAL = "annual"
    AD_HOC = "ad-hoc"


@dataclass
class Requirement:
    requirement_id: str
    title: str
    description: str
    frequency: Frequency
    deadline_days: int
    active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requirement_id": self.requirement_id,
            "title": self.title,
            "description": self.description,
            "frequency": self.frequency.value,
            "deadline_days": self.deadline_days,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Requirement":
        return cls(
            requirement_id=data["requirement_id"],
            title=data["title"],
            description=data["description"],
            frequency=Frequency(data["frequency"]),
            deadline_days=data["deadline_days"],
            active=data.get("active", True),
        )


@dataclass
class Assignment:
    """A requirement bound to one institution with a concrete next due date."""
    institution_id: str
    requirement_id: str
    assigned_date: int
    next_due_date: int
    active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "institution_id": self.institution_id,
            "requirement_id": self.requirement_id,
            "assigned_date": self.assigned_date,
            "next_due_date": self.next_due_date,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assignment":
        return cls(
            institution_id=data["institution_id"],
            requirement_id=data["requirement_id"],
            assigned_date=data["assigned_date"],
            next_due_date=data["next_due_date"],
            active=data.get("active", True),
        )


def parse_frequency(value: Any) -> Frequency:
    if isinstance(value, Frequency):
        return value
    try:
        return Frequency(value)
    except ValueError:
        raise InvalidArgument(
            "frequency",
            f"unknown frequency '{value}'",
            valid=[f.value for f in Frequency],
        )


class RequirementRegistry(Registry):
    """Requirement templates plus per-institution assignments."""

    name = "requirements"

    def __init__(
        self,
        store: KeyValueStore,
        institutions: InstitutionRegistry,
        journal: Optional[Journal] = None
    ):
        super().__init__(store, journal)
        self._institutions = institutions

    @mutation("add_requirement")
    def add_requirement(
        self,
        ctx: CallContext,
        requirement_id: str,
        title: str,
        description: str,
        frequency: Any,
        deadline_days: int
    ) -> str:
        """Admin-only. Create an active requirement template."""
        self.admin.require(ctx)
        requirement = Requirement(
            requirement_id=validate_identifier(requirement_id, "requirement_id"),
            title=validate_text(title, "title"),
            description=validate_text(description, "description"),
            frequency=parse_frequency(frequency),
            deadline_days=validate_positive_int(deadline_days, "deadline_days"),
        )

        if self._store.exists(REQUIREMENTS, requirement.requirement_id):
            raise AlreadyExists(f"requirement {requirement.requirement_id} already exists")

        record = requirement.to_dict()
        self._store.put(REQUIREMENTS, requirement.requirement_id, record)
        self._record(ctx, "add_requirement", requirement.requirement_id, record)
        return requirement.requirement_id

    @mutation("assign_requirement")
    def assign_requirement(
        self,
        ctx: CallContext,
        institution_id: str,
        requirement_id: str,
        next_due_date: int
    ) -> bool:
        """
        Admin-only. Bind a requirement to a verified institution.

        Raises:
            NotFound: institution or requirement template absent
            NotVerified: institution exists but is unverified
            AlreadyAssigned: the pair is already assigned
        """
        self.admin.require(ctx)
        validate_identifier(institution_id, "institution_id")
        validate_identifier(requirement_id, "requirement_id")
        next_due_date = validate_height(next_due_date, "next_due_date")

        # is_verified raises NotFound for unknown institutions
        verified = self._institutions.is_verified(institution_id)
        self._require_requirement(requirement_id)
        if not verified:
            raise NotVerified(f"institution {institution_id} is not verified")

        key = composite_key(institution_id, requirement_id)
        if self._store.exists(ASSIGNMENTS, key):
            raise AlreadyAssigned(
                f"requirement {requirement_id} already assigned to {institution_id}"
            )

        assignment = Assignment(
            institution_id=institution_id,
            requirement_id=requirement_id,
            assigned_date=ctx.block_height,
            next_due_date=next_due_date,
        )
        record = assignment.to_dict()
        self._store.put(ASSIGNMENTS, key, record)
        self._record(ctx, "assign_requirement", key, record)
        return True

    @mutation("update_due_date")
    def update_due_date(
        self,
        ctx: CallContext,
        institution_id: str,
        requirement_id: str,
        new_due_date: int
    ) -> bool:
        """Admin-only. Overwrite an assignment's next due date in place."""
        self.admin.require(ctx)
        new_due_date = validate_height(new_due_date, "new_due_date")

        assignment = self.get_institution_requirement(institution_id, requirement_id)
        if assignment is None:
            raise NotFound(
                f"requirement {requirement_id} is not assigned to {institution_id}",
                institution_id=institution_id,
                requirement_id=requirement_id,
            )

        assignment.next_due_date = new_due_date
        key = composite_key(institution_id, requirement_id)
        record = assignment.to_dict()
        self._store.put(ASSIGNMENTS, key, record)
        self._record(ctx, "update_due_date", key, record)
        return True

    def get_requirement(self, requirement_id: str) -> Optional[Requirement]:
        data = self._store.get(REQUIREMENTS, requirement_id)
        return Requirement.from_dict(data) if data else None

    def get_institution_requirement(
        self,
        institution_id: str,
        requirement_id: str
    ) -> Optional[Assignment]:
        data = self._store.get(ASSIGNMENTS, composite_key(institution_id, requirement_id))
        return Assignment.from_dict(data) if data else None

    def requirement_exists(self, requirement_id: str) -> bool:
        return self._store.exists(REQUIREMENTS, requirement_id)

    def is_assigned(self, institution_id: str, requirement_id: str) -> bool:
        return self._store.exists(ASSIGNMENTS, composite_key(institution_id, requirement_id))

    def _require_requirement(self, requirement_id: str) -> Requirement:
        requirement = self.get_requirement(requirement_id)
        if requirement is None:
            raise NotFound(f"requirement {requirement_id} not found", requirement_id=requirement_id)
        return requirement

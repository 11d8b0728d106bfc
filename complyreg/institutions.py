"""
Institution Registry

Onboards regulated institutions and records their verification. Every other
registry consults this one to decide whether an institution id is real and
whether it has been verified.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .config import RegistryPolicy, RepeatPolicy
from .context import CallContext
from .errors import AlreadyExists, AlreadyVerified, NotFound
from .journal import Journal
from .registry import Registry, mutation
from .storage import KeyValueStore
from .validation import validate_identifier, validate_text

INSTITUTIONS = "institutions"


@dataclass
class Institution:
    institution_id: str
    name: str
    address: str
    license_number: str
    verified: bool = False
    verification_date: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "institution_id": self.institution_id,
            "name": self.name,
            "address": self.address,
            "license_number": self.license_number,
            "verified": self.verified,
            "verification_date": self.verification_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Institution":
        return cls(
            institution_id=data["institution_id"],
            name=data["name"],
            address=data["address"],
            license_number=data["license_number"],
            verified=data.get("verified", False),
            verification_date=data.get("verification_date"),
        )


class InstitutionRegistry(Registry):
    """
    Registry of institutions keyed by institution id.

    Records are never deleted. The only mutation after registration is
    verify(), which flips `verified` and stamps `verification_date` once.
    """

    name = "institutions"

    def __init__(
        self,
        store: KeyValueStore,
        journal: Optional[Journal] = None,
        policy: Optional[RegistryPolicy] = None
    ):
        super().__init__(store, journal)
        self.policy = policy or RegistryPolicy()

    @mutation("register")
    def register(
        self,
        ctx: CallContext,
        institution_id: str,
        name: str,
        address: str,
        license_number: str
    ) -> str:
        """Admin-only. Store a new, unverified institution."""
        self.admin.require(ctx)
        institution_id = validate_identifier(institution_id, "institution_id")
        institution = Institution(
            institution_id=institution_id,
            name=validate_text(name, "name"),
            address=validate_text(address, "address"),
            license_number=validate_text(license_number, "license_number"),
        )

        if self._store.exists(INSTITUTIONS, institution_id):
            raise AlreadyExists(f"institution {institution_id} already registered")

        record = institution.to_dict()
        self._store.put(INSTITUTIONS, institution_id, record)
        self._record(ctx, "register", institution_id, record)
        return institution_id

    @mutation("verify")
    def verify(self, ctx: CallContext, institution_id: str) -> bool:
        """
        Admin-only. Mark an institution verified at the current height.

        A repeat call fails with AlreadyVerified under the strict policy and
        returns True without touching the record under the idempotent one.
        """
        self.admin.require(ctx)
        institution = self._require(institution_id)

        if institution.verified:
            if self.policy.reverify == RepeatPolicy.IDEMPOTENT:
                return True
            raise AlreadyVerified(
                f"institution {institution_id} already verified",
                verification_date=institution.verification_date,
            )

        institution.verified = True
        institution.verification_date = ctx.block_height
        record = institution.to_dict()
        self._store.put(INSTITUTIONS, institution_id, record)
        self._record(ctx, "verify", institution_id, record)
        return True

    def is_verified(self, institution_id: str) -> bool:
        """Raises NotFound for unknown ids rather than returning False."""
        return self._require(institution_id).verified

    def get(self, institution_id: str) -> Optional[Institution]:
        data = self._store.get(INSTITUTIONS, institution_id)
        return Institution.from_dict(data) if data else None

    def exists(self, institution_id: str) -> bool:
        return self._store.exists(INSTITUTIONS, institution_id)

    def _require(self, institution_id: str) -> Institution:
        institution = self.get(institution_id)
        if institution is None:
            raise NotFound(f"institution {institution_id} not found", institution_id=institution_id)
        return institution

"""
Verification Registry (submission verification)

Independent timeliness determinations for reports. `is_timely` is computed
once from the two dates supplied at creation and stored; nothing later
re-derives it, whatever the block height does afterwards.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .context import CallContext
from .errors import AlreadyExists, InvalidArgument, NotFound
from .institutions import InstitutionRegistry
from .journal import Journal
from .registry import Registry, mutation
from .reports import ReportRegistry
from .requirements import RequirementRegistry
from .storage import KeyValueStore
from .validation import validate_height, validate_identifier

VERIFICATIONS = "verifications"


@dataclass(frozen=True)
class Verification:
    verification_id: str
    institution_id: str
    requirement_id: str
    report_id: str
    submission_date: int
    due_date: int
    is_timely: bool
    verification_date: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verification_id": self.verification_id,
            "institution_id": self.institution_id,
            "requirement_id": self.requirement_id,
            "report_id": self.report_id,
            "submission_date": self.submission_date,
            "due_date": self.due_date,
            "is_timely": self.is_timely,
            "verification_date": self.verification_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Verification":
        return cls(**{k: data[k] for k in (
            "verification_id", "institution_id", "requirement_id", "report_id",
            "submission_date", "due_date", "is_timely", "verification_date",
        )})


class VerificationRegistry(Registry):
    """Verifications keyed by verification id. Records are immutable."""

    name = "verifications"

    def __init__(
        self,
        store: KeyValueStore,
        institutions: InstitutionRegistry,
        requirements: RequirementRegistry,
        reports: ReportRegistry,
        journal: Optional[Journal] = None
    ):
        super().__init__(store, journal)
        self._institutions = institutions
        self._requirements = requirements
        self._reports = reports

    @mutation("verify_submission")
    def verify_submission(
        self,
        ctx: CallContext,
        verification_id: str,
        institution_id: str,
        requirement_id: str,
        report_id: str,
        submission_date: int,
        due_date: int
    ) -> str:
        """
        Admin-only. Certify whether a report was produced by its due date.

        is_timely = submission_date <= due_date
        """
        self.admin.require(ctx)
        verification_id = validate_identifier(verification_id, "verification_id")
        validate_identifier(institution_id, "institution_id")
        validate_identifier(requirement_id, "requirement_id")
        validate_identifier(report_id, "report_id")
        submission_date = validate_height(submission_date, "submission_date")
        due_date = validate_height(due_date, "due_date")

        if self._store.exists(VERIFICATIONS, verification_id):
            raise AlreadyExists(f"verification {verification_id} already exists")
        if not self._institutions.exists(institution_id):
            raise NotFound(f"institution {institution_id} not found", institution_id=institution_id)
        if not self._requirements.requirement_exists(requirement_id):
            raise NotFound(f"requirement {requirement_id} not found", requirement_id=requirement_id)
        report = self._reports.get_report(report_id)
        if report is None:
            raise NotFound(f"report {report_id} not found", report_id=report_id)
        if (report.institution_id, report.requirement_id) != (institution_id, requirement_id):
            raise InvalidArgument(
                "report_id",
                f"report {report_id} belongs to {report.institution_id}/{report.requirement_id}",
            )

        verification = Verification(
            verification_id=verification_id,
            institution_id=institution_id,
            requirement_id=requirement_id,
            report_id=report_id,
            submission_date=submission_date,
            due_date=due_date,
            is_timely=submission_date <= due_date,
            verification_date=ctx.block_height,
        )
        record = verification.to_dict()
        self._store.put(VERIFICATIONS, verification_id, record)
        self._record(ctx, "verify_submission", verification_id, record)
        return verification_id

    def get_verification(self, verification_id: str) -> Optional[Verification]:
        data = self._store.get(VERIFICATIONS, verification_id)
        return Verification.from_dict(data) if data else None

    def is_submission_timely(self, verification_id: str) -> bool:
        """Stored timeliness. Raises NotFound for unknown ids."""
        verification = self.get_verification(verification_id)
        if verification is None:
            raise NotFound(f"verification {verification_id} not found", verification_id=verification_id)
        return verification.is_timely

"""
Report Registry (report generation)

Aggregates one or more submissions of a single institution/requirement pair
into a report artifact, then finalizes it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from .config import RegistryPolicy, RepeatPolicy
from .context import CallContext
from .errors import AlreadyExists, InvalidArgument, NotFound
from .hashing import coerce_digest
from .institutions import InstitutionRegistry
from .journal import Journal
from .registry import Registry, mutation
from .requirements import RequirementRegistry
from .status import REPORT_TRANSITIONS, ReportStatus, advance
from .storage import KeyValueStore
from .submissions import SubmissionRegistry
from .validation import validate_identifier, validate_identifier_list, validate_text

REPORTS = "reports"
REPORT_METADATA = "report_metadata"


@dataclass
class Report:
    report_id: str
    institution_id: str
    requirement_id: str
    report_hash: bytes
    generation_date: int
    submission_ids: List[str] = field(default_factory=list)
    status: ReportStatus = ReportStatus.GENERATED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "institution_id": self.institution_id,
            "requirement_id": self.requirement_id,
            "submission_ids": list(self.submission_ids),
            "report_hash": self.report_hash.hex(),
            "generation_date": self.generation_date,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Report":
        return cls(
            report_id=data["report_id"],
            institution_id=data["institution_id"],
            requirement_id=data["requirement_id"],
            submission_ids=list(data["submission_ids"]),
            report_hash=bytes.fromhex(data["report_hash"]),
            generation_date=data["generation_date"],
            status=ReportStatus(data["status"]),
        )


@dataclass
class ReportMetadata:
    report_location: str
    report_format: str
    generator: str
    notes: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_location": self.report_location,
            "report_format": self.report_format,
            "generator": self.generator,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportMetadata":
        return cls(
            report_location=data["report_location"],
            report_format=data["report_format"],
            generator=data["generator"],
            notes=data["notes"],
        )


class ReportRegistry(Registry):
    """Reports keyed by report id."""

    name = "reports"

    def __init__(
        self,
        store: KeyValueStore,
        institutions: InstitutionRegistry,
        requirements: RequirementRegistry,
        submissions: SubmissionRegistry,
        journal: Optional[Journal] = None,
        policy: Optional[RegistryPolicy] = None
    ):
        super().__init__(store, journal)
        self._institutions = institutions
        self._requirements = requirements
        self._submissions = submissions
        self.policy = policy or RegistryPolicy()

    @mutation("generate_report")
    def generate_report(
        self,
        ctx: CallContext,
        report_id: str,
        institution_id: str,
        requirement_id: str,
        submission_ids: Sequence[str],
        report_hash: Union[bytes, str],
        report_location: str,
        report_format: str,
        notes: str
    ) -> str:
        """
        Assemble submissions into a generated report.

        Open to any caller; the caller is stored as the generator. Every
        listed submission must exist and belong to the report's
        institution/requirement pair.

        Raises:
            InvalidArgument: empty or duplicated submission list, a
                submission from another pair, or a malformed report_hash
            AlreadyExists: report id taken
            NotFound: institution, requirement or a submission absent
        """
        report_id = validate_identifier(report_id, "report_id")
        validate_identifier(institution_id, "institution_id")
        validate_identifier(requirement_id, "requirement_id")
        ids = validate_identifier_list(submission_ids, "submission_ids")
        digest = coerce_digest(report_hash, "report_hash")
        metadata = ReportMetadata(
            report_location=validate_text(report_location, "report_location"),
            report_format=validate_text(report_format, "report_format"),
            generator=ctx.caller,
            notes=validate_text(notes, "notes"),
        )

        if self._store.exists(REPORTS, report_id):
            raise AlreadyExists(f"report {report_id} already exists")
        if not self._institutions.exists(institution_id):
            raise NotFound(f"institution {institution_id} not found", institution_id=institution_id)
        if not self._requirements.requirement_exists(requirement_id):
            raise NotFound(f"requirement {requirement_id} not found", requirement_id=requirement_id)

        for submission_id in ids:
            submission = self._submissions.get_submission(submission_id)
            if submission is None:
                raise NotFound(f"submission {submission_id} not found", submission_id=submission_id)
            if (submission.institution_id, submission.requirement_id) != (institution_id, requirement_id):
                raise InvalidArgument(
                    "submission_ids",
                    f"submission {submission_id} belongs to "
                    f"{submission.institution_id}/{submission.requirement_id}",
                    submission_id=submission_id,
                )

        report = Report(
            report_id=report_id,
            institution_id=institution_id,
            requirement_id=requirement_id,
            submission_ids=ids,
            report_hash=digest,
            generation_date=ctx.block_height,
        )
        record = report.to_dict()
        self._store.put(REPORTS, report_id, record)
        self._store.put(REPORT_METADATA, report_id, metadata.to_dict())
        self._record(ctx, "generate_report", report_id, {
            "report": record,
            "metadata": metadata.to_dict(),
        })
        return report_id

    @mutation("finalize_report")
    def finalize_report(self, ctx: CallContext, report_id: str) -> bool:
        """
        Admin-only. Move a generated report to finalized.

        Finalizing an already finalized report fails with InvalidTransition
        under the strict policy and returns True unchanged under the
        idempotent one.
        """
        self.admin.require(ctx)
        report = self.get_report(report_id)
        if report is None:
            raise NotFound(f"report {report_id} not found", report_id=report_id)

        if (report.status == ReportStatus.FINALIZED
                and self.policy.refinalize == RepeatPolicy.IDEMPOTENT):
            return True

        report.status = advance(report.status, ReportStatus.FINALIZED, REPORT_TRANSITIONS)
        record = report.to_dict()
        self._store.put(REPORTS, report_id, record)
        self._record(ctx, "finalize_report", report_id, record)
        return True

    def get_report(self, report_id: str) -> Optional[Report]:
        data = self._store.get(REPORTS, report_id)
        return Report.from_dict(data) if data else None

    def get_report_metadata(self, report_id: str) -> Optional[ReportMetadata]:
        data = self._store.get(REPORT_METADATA, report_id)
        return ReportMetadata.from_dict(data) if data else None

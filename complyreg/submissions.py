"""
Submission Registry (data collection)

Raw data submissions against an assigned institution/requirement pair.

Each submission is stored as two co-located sub-records: the core record
(ids, digest, date, status) read on every validation, and the descriptive
metadata (location, format, submitter, notes) which is written once and
rarely read.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .context import CallContext
from .errors import AlreadyExists, NotFound
from .hashing import coerce_digest
from .institutions import InstitutionRegistry
from .journal import Journal
from .registry import Registry, mutation
from .requirements import RequirementRegistry
from .status import SUBMISSION_TRANSITIONS, SubmissionStatus, advance, parse_status
from .storage import KeyValueStore
from .validation import validate_identifier, validate_text

SUBMISSIONS = "submissions"
SUBMISSION_METADATA = "submission_metadata"


@dataclass
class Submission:
    submission_id: str
    institution_id: str
    requirement_id: str
    data_hash: bytes
    submission_date: int
    status: SubmissionStatus = SubmissionStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "institution_id": self.institution_id,
            "requirement_id": self.requirement_id,
            "data_hash": self.data_hash.hex(),
            "submission_date": self.submission_date,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Submission":
        return cls(
            submission_id=data["submission_id"],
            institution_id=data["institution_id"],
            requirement_id=data["requirement_id"],
            data_hash=bytes.fromhex(data["data_hash"]),
            submission_date=data["submission_date"],
            status=SubmissionStatus(data["status"]),
        )


@dataclass
class SubmissionMetadata:
    data_location: str
    data_format: str
    submitter: str
    notes: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data_location": self.data_location,
            "data_format": self.data_format,
            "submitter": self.submitter,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubmissionMetadata":
        return cls(
            data_location=data["data_location"],
            data_format=data["data_format"],
            submitter=data["submitter"],
            notes=data["notes"],
        )


class SubmissionRegistry(Registry):
    """Submissions keyed by submission id."""

    name = "submissions"

    def __init__(
        self,
        store: KeyValueStore,
        institutions: InstitutionRegistry,
        requirements: RequirementRegistry,
        journal: Optional[Journal] = None
    ):
        super().__init__(store, journal)
        self._institutions = institutions
        self._requirements = requirements

    @mutation("submit_data")
    def submit_data(
        self,
        ctx: CallContext,
        submission_id: str,
        institution_id: str,
        requirement_id: str,
        data_hash: Union[bytes, str],
        data_location: str,
        data_format: str,
        notes: str
    ) -> str:
        """
        Record a pending submission from the calling principal.

        Open to any caller; the caller is stored as the submitter.

        Raises:
            InvalidArgument: data_hash is not exactly 32 bytes
            AlreadyExists: submission id taken
            NotFound: institution absent, or requirement not assigned to it
        """
        submission_id = validate_identifier(submission_id, "submission_id")
        validate_identifier(institution_id, "institution_id")
        validate_identifier(requirement_id, "requirement_id")
        digest = coerce_digest(data_hash, "data_hash")
        metadata = SubmissionMetadata(
            data_location=validate_text(data_location, "data_location"),
            data_format=validate_text(data_format, "data_format"),
            submitter=ctx.caller,
            notes=validate_text(notes, "notes"),
        )

        if self._store.exists(SUBMISSIONS, submission_id):
            raise AlreadyExists(f"submission {submission_id} already exists")
        if not self._institutions.exists(institution_id):
            raise NotFound(f"institution {institution_id} not found", institution_id=institution_id)
        if not self._requirements.is_assigned(institution_id, requirement_id):
            raise NotFound(
                f"requirement {requirement_id} is not assigned to {institution_id}",
                institution_id=institution_id,
                requirement_id=requirement_id,
            )

        submission = Submission(
            submission_id=submission_id,
            institution_id=institution_id,
            requirement_id=requirement_id,
            data_hash=digest,
            submission_date=ctx.block_height,
        )
        record = submission.to_dict()
        self._store.put(SUBMISSIONS, submission_id, record)
        self._store.put(SUBMISSION_METADATA, submission_id, metadata.to_dict())
        self._record(ctx, "submit_data", submission_id, {
            "submission": record,
            "metadata": metadata.to_dict(),
        })
        return submission_id

    @mutation("validate_submission")
    def validate_submission(
        self,
        ctx: CallContext,
        submission_id: str,
        status: Union[str, SubmissionStatus]
    ) -> bool:
        """Admin-only. Move a pending submission to approved or rejected, once."""
        self.admin.require(ctx)
        submission = self.get_submission(submission_id)
        if submission is None:
            raise NotFound(f"submission {submission_id} not found", submission_id=submission_id)

        target = parse_status(status, SubmissionStatus)
        submission.status = advance(submission.status, target, SUBMISSION_TRANSITIONS)
        record = submission.to_dict()
        self._store.put(SUBMISSIONS, submission_id, record)
        self._record(ctx, "validate_submission", submission_id, record)
        return True

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        data = self._store.get(SUBMISSIONS, submission_id)
        return Submission.from_dict(data) if data else None

    def get_submission_metadata(self, submission_id: str) -> Optional[SubmissionMetadata]:
        data = self._store.get(SUBMISSION_METADATA, submission_id)
        return SubmissionMetadata.from_dict(data) if data else None

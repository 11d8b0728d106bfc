"""
complyreg: Compliance Data Registry

Version: 1.0.0
License: Apache 2.0

Regulated institutions submit periodic data against assigned reporting
requirements; submissions are assembled into reports; reports are
independently verified for timeliness against deadlines.

Five registries share identifiers but never write each other's records:

    InstitutionRegistry   onboarding and verification
    RequirementRegistry   requirement templates and assignments
    SubmissionRegistry    data submissions and their review status
    ReportRegistry        reports aggregating submissions
    VerificationRegistry  timeliness determinations for reports

Every mutation takes a CallContext (caller, block height), runs as one
all-or-nothing transaction on the shared store, and either returns a value
or raises a RegistryError naming its FailureCode.

Usage:
    from complyreg import ComplianceLedger, InMemoryStore, ManualHeightOracle

    height = ManualHeightOracle(100)
    ledger = ComplianceLedger(InMemoryStore(), admin="ST1ADMIN", height=height)

    ctx = ledger.context("ST1ADMIN")
    ledger.institutions.register(ctx, "inst-001", "Example Bank",
                                 "123 Finance St", "LIC-12345")
    ledger.institutions.verify(ctx, "inst-001")
    ledger.institutions.is_verified("inst-001")   # True
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Errors
from .errors import (
    FailureCode,
    RegistryError,
    Unauthorized,
    NotFound,
    AlreadyExists,
    AlreadyVerified,
    NotVerified,
    AlreadyAssigned,
    InvalidTransition,
    InvalidArgument,
)

# Host collaborators
from .context import CallContext, HeightOracle, ManualHeightOracle
from .storage import KeyValueStore, InMemoryStore, SqliteStore
from .config import RegistryPolicy, RepeatPolicy

# Canonicalization and hashing
from .canonicalization import canonicalize, canonicalize_str, composite_key
from .hashing import sha256_hash, content_digest, payload_hash, chain_entry_hash

# State machines
from .status import (
    SubmissionStatus,
    ReportStatus,
    SUBMISSION_TRANSITIONS,
    REPORT_TRANSITIONS,
)

# Registries
from .admin import AdminRole
from .institutions import Institution, InstitutionRegistry
from .requirements import Frequency, Requirement, Assignment, RequirementRegistry
from .submissions import Submission, SubmissionMetadata, SubmissionRegistry
from .reports import Report, ReportMetadata, ReportRegistry
from .verifications import Verification, VerificationRegistry

# Signing
from .signing import PrincipalKey, request_payload, verify_ed25519

# Journal and ledger
from .journal import Journal, JournalEntry, ChainVerification, verify_chain
from .nonces import NonceStore
from .ledger import ComplianceLedger, StoredHeightOracle


__all__ = [
    "__version__",

    # Errors
    "FailureCode",
    "RegistryError",
    "Unauthorized",
    "NotFound",
    "AlreadyExists",
    "AlreadyVerified",
    "NotVerified",
    "AlreadyAssigned",
    "InvalidTransition",
    "InvalidArgument",

    # Host collaborators
    "CallContext",
    "HeightOracle",
    "ManualHeightOracle",
    "KeyValueStore",
    "InMemoryStore",
    "SqliteStore",
    "RegistryPolicy",
    "RepeatPolicy",

    # Canonicalization and hashing
    "canonicalize",
    "canonicalize_str",
    "composite_key",
    "sha256_hash",
    "content_digest",
    "payload_hash",
    "chain_entry_hash",

    # State machines
    "SubmissionStatus",
    "ReportStatus",
    "SUBMISSION_TRANSITIONS",
    "REPORT_TRANSITIONS",

    # Registries
    "AdminRole",
    "Institution",
    "InstitutionRegistry",
    "Frequency",
    "Requirement",
    "Assignment",
    "RequirementRegistry",
    "Submission",
    "SubmissionMetadata",
    "SubmissionRegistry",
    "Report",
    "ReportMetadata",
    "ReportRegistry",
    "Verification",
    "VerificationRegistry",

    # Signing
    "PrincipalKey",
    "request_payload",
    "verify_ed25519",

    # Journal and ledger
    "Journal",
    "JournalEntry",
    "ChainVerification",
    "verify_chain",
    "NonceStore",
    "ComplianceLedger",
    "StoredHeightOracle",
]

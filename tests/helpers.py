"""Shared builders for the registry test suites."""

from complyreg import (
    ComplianceLedger,
    InMemoryStore,
    ManualHeightOracle,
    content_digest,
)

ADMIN = "ST1ADMIN"
SUBMITTER = "ST2SUBMITTER"
OUTSIDER = "ST3OUTSIDER"

INSTITUTION = "inst-001"
REQUIREMENT = "req-001"


def make_ledger(height=100, policy=None, store=None):
    """Ledger on a fresh in-memory store. Returns (ledger, height oracle)."""
    oracle = ManualHeightOracle(height)
    ledger = ComplianceLedger(store or InMemoryStore(), admin=ADMIN, height=oracle, policy=policy)
    return ledger, oracle


def seed_institution(ledger, institution_id=INSTITUTION, verified=True):
    ctx = ledger.context(ADMIN)
    ledger.institutions.register(ctx, institution_id, "Example Bank", "123 Finance St", "LIC-12345")
    if verified:
        ledger.institutions.verify(ctx, institution_id)


def seed_assignment(ledger, institution_id=INSTITUTION, requirement_id=REQUIREMENT, due=150):
    """Registered, verified institution with one assigned requirement."""
    seed_institution(ledger, institution_id)
    ctx = ledger.context(ADMIN)
    if not ledger.requirements.requirement_exists(requirement_id):
        ledger.requirements.add_requirement(
            ctx, requirement_id, "Quarterly Report", "Financial statement", "quarterly", 30
        )
    ledger.requirements.assign_requirement(ctx, institution_id, requirement_id, due)


def submit(ledger, submission_id, institution_id=INSTITUTION, requirement_id=REQUIREMENT, caller=SUBMITTER):
    return ledger.submissions.submit_data(
        ledger.context(caller), submission_id, institution_id, requirement_id,
        content_digest(submission_id), f"ipfs://{submission_id}", "json", "quarterly data"
    )


def generate(ledger, report_id, submission_ids, institution_id=INSTITUTION, requirement_id=REQUIREMENT):
    return ledger.reports.generate_report(
        ledger.context(SUBMITTER), report_id, institution_id, requirement_id,
        submission_ids, content_digest(report_id), f"ipfs://{report_id}", "pdf", "quarterly report"
    )

import json
import logging
import time
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from complyreg import config
from complyreg.config import CachedTrustStore, validate_config
from complyreg.errors import FailureCode, RegistryError
from complyreg.ledger import ComplianceLedger
from complyreg.logging_config import audit_log, configure_logging, set_request_id
from complyreg.signing import request_payload, verify_ed25519

from .models import (
    AddRequirementRequest,
    AssignRequirementRequest,
    GenerateReportRequest,
    RegisterInstitutionRequest,
    SubmitDataRequest,
    TransferAdminRequest,
    UpdateDueDateRequest,
    ValidateSubmissionRequest,
    VerifySubmissionRequest,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Compliance Data Registry")

STATUS_BY_CODE = {
    FailureCode.UNAUTHORIZED: 403,
    FailureCode.NOT_FOUND: 404,
    FailureCode.INVALID_ARGUMENT: 422,
    FailureCode.ALREADY_EXISTS: 409,
    FailureCode.ALREADY_VERIFIED: 409,
    FailureCode.NOT_VERIFIED: 409,
    FailureCode.ALREADY_ASSIGNED: 409,
    FailureCode.INVALID_TRANSITION: 409,
}

MAX_NONCE_LENGTH = 128

LEDGER: Optional[ComplianceLedger] = None
TRUST: Optional[CachedTrustStore] = None


@app.on_event("startup")
def _startup():
    global LEDGER, TRUST
    level = "DEBUG" if config.is_debug() else config.LOG_LEVEL
    configure_logging(level, json_format=config.LOG_JSON, env=config.ENV)

    checks = validate_config()
    failed = sorted(name for name, ok in checks.items() if not ok)
    if failed:
        if config.is_production():
            raise RuntimeError(f"Invalid configuration: {', '.join(failed)}")
        logger.warning("Configuration checks failed: %s", ", ".join(failed))

    LEDGER = ComplianceLedger.from_config()
    TRUST = CachedTrustStore(config.TRUST_STORE_PATH)
    logger.info("Compliance registry started (env=%s)", config.ENV)


@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = set_request_id(request.headers.get("X-Request-ID"))
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    return JSONResponse(
        status_code=STATUS_BY_CODE.get(exc.code, 409),
        content={"detail": exc.code.value, "error": exc.to_dict()},
    )


def ledger() -> ComplianceLedger:
    if LEDGER is None:
        raise HTTPException(503, "NOT_READY")
    return LEDGER


async def authenticated_caller(
    request: Request,
    x_caller: Optional[str] = Header(None),
    x_signature: Optional[str] = Header(None),
    x_nonce: Optional[str] = Header(None),
    x_issued_at: Optional[str] = Header(None),
) -> str:
    """
    Resolve the calling principal from its Ed25519 request signature.

    A signed request is accepted once: it must be issued within
    REQUEST_MAX_AGE_SECONDS of now and carry a nonce not already used.
    """
    if not (x_caller and x_signature and x_nonce and x_issued_at):
        raise HTTPException(401, "MISSING_SIGNATURE")
    if TRUST is None:
        raise HTTPException(503, "NOT_READY")
    if len(x_nonce) > MAX_NONCE_LENGTH:
        raise HTTPException(401, "MALFORMED_NONCE")
    try:
        issued_at = int(x_issued_at)
    except ValueError:
        raise HTTPException(401, "MALFORMED_ISSUED_AT")

    now = int(time.time())
    max_age = config.REQUEST_MAX_AGE_SECONDS
    if abs(now - issued_at) > max_age:
        audit_log.security_event("stale_request", "low", caller=x_caller, issued_at=issued_at)
        raise HTTPException(401, "STALE_REQUEST")

    pub = TRUST.public_key(x_caller)
    if not pub:
        audit_log.security_event("unknown_principal", "medium", caller=x_caller)
        raise HTTPException(401, "UNKNOWN_PRINCIPAL")

    raw = await request.body()
    try:
        body = json.loads(raw) if raw else None
    except ValueError:
        raise HTTPException(422, "MALFORMED_BODY")

    payload = request_payload(x_caller, request.method, request.url.path, body, x_nonce, issued_at)
    if not verify_ed25519(x_signature, payload, pub):
        audit_log.security_event(
            "invalid_signature", "high",
            caller=x_caller, method=request.method, path=request.url.path,
        )
        raise HTTPException(401, "INVALID_SIGNATURE")

    # Only signed nonces are recorded, so forgeries cannot burn them
    if not ledger().nonces.insert(x_nonce, issued_at + max_age, now):
        audit_log.security_event(
            "replay", "high",
            caller=x_caller, method=request.method, path=request.url.path,
        )
        raise HTTPException(401, "REPLAY")
    return x_caller


def found(record: Optional[Any]) -> Dict[str, Any]:
    if record is None:
        raise HTTPException(404, "ABSENT")
    return record.to_dict()


# ------------------------------------------------------------
# Institutions
# ------------------------------------------------------------

@app.post("/institutions")
def register_institution(req: RegisterInstitutionRequest, caller: str = Depends(authenticated_caller)):
    lg = ledger()
    institution_id = lg.call(
        caller, lg.institutions.register,
        req.institution_id, req.name, req.address, req.license_number
    )
    return {"institution_id": institution_id}


@app.post("/institutions/{institution_id}/verify")
def verify_institution(institution_id: str, caller: str = Depends(authenticated_caller)):
    lg = ledger()
    return {"verified": lg.call(caller, lg.institutions.verify, institution_id)}


@app.get("/institutions/{institution_id}")
def get_institution(institution_id: str):
    return found(ledger().institutions.get(institution_id))


@app.get("/institutions/{institution_id}/verified")
def institution_verified(institution_id: str):
    return {"verified": ledger().institutions.is_verified(institution_id)}


# ------------------------------------------------------------
# Requirements and assignments
# ------------------------------------------------------------

@app.post("/requirements")
def add_requirement(req: AddRequirementRequest, caller: str = Depends(authenticated_caller)):
    lg = ledger()
    requirement_id = lg.call(
        caller, lg.requirements.add_requirement, req.requirement_id, req.title, req.description,
        req.frequency, req.deadline_days
    )
    return {"requirement_id": requirement_id}


@app.get("/requirements/{requirement_id}")
def get_requirement(requirement_id: str):
    return found(ledger().requirements.get_requirement(requirement_id))


@app.post("/assignments")
def assign_requirement(req: AssignRequirementRequest, caller: str = Depends(authenticated_caller)):
    lg = ledger()
    ok = lg.call(
        caller, lg.requirements.assign_requirement,
        req.institution_id, req.requirement_id, req.next_due_date
    )
    return {"assigned": ok}


@app.put("/assignments/{institution_id}/{requirement_id}/due_date")
def update_due_date(
    institution_id: str,
    requirement_id: str,
    req: UpdateDueDateRequest,
    caller: str = Depends(authenticated_caller),
):
    lg = ledger()
    ok = lg.call(
        caller, lg.requirements.update_due_date, institution_id, requirement_id, req.new_due_date
    )
    return {"updated": ok}


@app.get("/assignments/{institution_id}/{requirement_id}")
def get_assignment(institution_id: str, requirement_id: str):
    return found(ledger().requirements.get_institution_requirement(institution_id, requirement_id))


# ------------------------------------------------------------
# Submissions
# ------------------------------------------------------------

@app.post("/submissions")
def submit_data(req: SubmitDataRequest, caller: str = Depends(authenticated_caller)):
    lg = ledger()
    submission_id = lg.call(
        caller, lg.submissions.submit_data, req.submission_id, req.institution_id, req.requirement_id,
        req.data_hash, req.data_location, req.data_format, req.notes
    )
    return {"submission_id": submission_id}


@app.post("/submissions/{submission_id}/status")
def validate_submission(
    submission_id: str,
    req: ValidateSubmissionRequest,
    caller: str = Depends(authenticated_caller),
):
    lg = ledger()
    return {"updated": lg.call(caller, lg.submissions.validate_submission, submission_id, req.status)}


@app.get("/submissions/{submission_id}")
def get_submission(submission_id: str):
    return found(ledger().submissions.get_submission(submission_id))


@app.get("/submissions/{submission_id}/metadata")
def get_submission_metadata(submission_id: str):
    return found(ledger().submissions.get_submission_metadata(submission_id))


# ------------------------------------------------------------
# Reports
# ------------------------------------------------------------

@app.post("/reports")
def generate_report(req: GenerateReportRequest, caller: str = Depends(authenticated_caller)):
    lg = ledger()
    report_id = lg.call(
        caller, lg.reports.generate_report, req.report_id, req.institution_id, req.requirement_id,
        req.submission_ids, req.report_hash, req.report_location, req.report_format, req.notes
    )
    return {"report_id": report_id}


@app.post("/reports/{report_id}/finalize")
def finalize_report(report_id: str, caller: str = Depends(authenticated_caller)):
    lg = ledger()
    return {"finalized": lg.call(caller, lg.reports.finalize_report, report_id)}


@app.get("/reports/{report_id}")
def get_report(report_id: str):
    return found(ledger().reports.get_report(report_id))


@app.get("/reports/{report_id}/metadata")
def get_report_metadata(report_id: str):
    return found(ledger().reports.get_report_metadata(report_id))


# ------------------------------------------------------------
# Verifications
# ------------------------------------------------------------

@app.post("/verifications")
def verify_submission(req: VerifySubmissionRequest, caller: str = Depends(authenticated_caller)):
    lg = ledger()
    verification_id = lg.call(
        caller, lg.verifications.verify_submission, req.verification_id,
        req.institution_id, req.requirement_id, req.report_id, req.submission_date, req.due_date
    )
    return {"verification_id": verification_id}


@app.get("/verifications/{verification_id}")
def get_verification(verification_id: str):
    return found(ledger().verifications.get_verification(verification_id))


@app.get("/verifications/{verification_id}/timely")
def verification_timely(verification_id: str):
    return {"timely": ledger().verifications.is_submission_timely(verification_id)}


# ------------------------------------------------------------
# Administration
# ------------------------------------------------------------

def registry_by_name(name: str):
    registry = ledger().registries().get(name)
    if registry is None:
        raise HTTPException(404, "UNKNOWN_REGISTRY")
    return registry


@app.get("/admin/{registry}")
def get_admin(registry: str):
    return {"registry": registry, "admin": registry_by_name(registry).get_admin()}


@app.post("/admin/{registry}/transfer")
def transfer_admin(registry: str, req: TransferAdminRequest, caller: str = Depends(authenticated_caller)):
    target = registry_by_name(registry)
    return {"transferred": ledger().call(caller, target.transfer_admin, req.new_admin)}


@app.get("/journal")
def journal():
    lg = ledger()
    return {
        "entries": [e.to_dict() for e in lg.journal.entries()],
        "verification": lg.journal.verify().to_dict(),
    }


@app.get("/health")
def health():
    lg = ledger()
    return {
        "status": "ok",
        "block_height": lg.height.current(),
        "active_nonces": lg.nonces.active(),
        "config": validate_config(),
    }

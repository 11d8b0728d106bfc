
from pydantic import BaseModel, StrictInt
from typing import List

class RegisterInstitutionRequest(BaseModel):
    institution_id: str
    name: str
    address: str
    license_number: str

class AddRequirementRequest(BaseModel):
    requirement_id: str
    title: str
    description: str
    frequency: str
    deadline_days: StrictInt

class AssignRequirementRequest(BaseModel):
    institution_id: str
    requirement_id: str
    next_due_date: StrictInt

class UpdateDueDateRequest(BaseModel):
    new_due_date: StrictInt

class SubmitDataRequest(BaseModel):
    submission_id: str
    institution_id: str
    requirement_id: str
    data_hash: str  # hex, 32 bytes
    data_location: str
    data_format: str
    notes: str = ""

class ValidateSubmissionRequest(BaseModel):
    status: str

class GenerateReportRequest(BaseModel):
    report_id: str
    institution_id: str
    requirement_id: str
    submission_ids: List[str]
    report_hash: str  # hex, 32 bytes
    report_location: str
    report_format: str
    notes: str = ""

class VerifySubmissionRequest(BaseModel):
    verification_id: str
    institution_id: str
    requirement_id: str
    report_id: str
    submission_date: StrictInt
    due_date: StrictInt

class TransferAdminRequest(BaseModel):
    new_admin: str

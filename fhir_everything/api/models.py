"""Pydantic models for API responses."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class IssueSeverity(str, Enum):
    """OperationOutcome.issue.severity values used by the API."""
    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"


class Coding(BaseModel):
    system: Optional[str] = None
    code: str


class IssueDetails(BaseModel):
    text: str
    coding: Optional[List[Coding]] = None


class OperationOutcomeIssue(BaseModel):
    """Single OperationOutcome issue."""
    severity: IssueSeverity = IssueSeverity.ERROR
    code: str
    details: IssueDetails


class OperationOutcome(BaseModel):
    """FHIR OperationOutcome returned for failed requests."""
    resourceType: str = Field(default="OperationOutcome")
    issue: List[OperationOutcomeIssue]

    @classmethod
    def single(cls, code: str, text: str) -> "OperationOutcome":
        """OperationOutcome with one error issue."""
        return cls(issue=[OperationOutcomeIssue(code=code, details=IssueDetails(text=text))])


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    service: str = "fhir-everything"
    traversal: Optional[str] = None
    resource_count: Optional[int] = None

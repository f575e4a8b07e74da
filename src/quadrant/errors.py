"""Service error taxonomy shared by services and the API layer."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine readable error codes."""

    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"
    ROLE_NOT_FOUND = "ROLE_NOT_FOUND"
    ROLE_PROFILE_NOT_FOUND = "ROLE_PROFILE_NOT_FOUND"
    RISK_CASE_NOT_FOUND = "RISK_CASE_NOT_FOUND"
    RISK_CASES_NOT_AVAILABLE = "RISK_CASES_NOT_AVAILABLE"
    PILOT_NOT_FOUND = "PILOT_NOT_FOUND"
    PILOT_RUN_NOT_FOUND = "PILOT_RUN_NOT_FOUND"
    PILOT_STEP_NOT_FOUND = "PILOT_STEP_NOT_FOUND"
    QUEST_NOT_FOUND = "QUEST_NOT_FOUND"
    QUEST_ASSIGNMENT_NOT_FOUND = "QUEST_ASSIGNMENT_NOT_FOUND"
    QUEST_STEP_NOT_FOUND = "QUEST_STEP_NOT_FOUND"
    CYCLE_NOT_FOUND = "CYCLE_NOT_FOUND"
    SKILL_ASSESSMENT_NOT_FOUND = "SKILL_ASSESSMENT_NOT_FOUND"
    SCENARIO_NOT_FOUND = "SCENARIO_NOT_FOUND"
    TEAM_NOT_FOUND = "TEAM_NOT_FOUND"
    TALENT_DECISION_NOT_FOUND = "TALENT_DECISION_NOT_FOUND"
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"
    REPORT_NOT_FOUND = "REPORT_NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    ACCESS_DENIED = "ACCESS_DENIED"
    CANNOT_REMOVE_LAST_OWNER = "CANNOT_REMOVE_LAST_OWNER"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.ACCESS_DENIED: 403,
    ErrorCode.AUTH_REQUIRED: 401,
    ErrorCode.CANNOT_REMOVE_LAST_OWNER: 409,
    ErrorCode.INSUFFICIENT_DATA: 422,
    ErrorCode.RISK_CASES_NOT_AVAILABLE: 503,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INTERNAL_ERROR: 500,
}


class ServiceError(Exception):
    """Raised by services with a machine readable code."""

    def __init__(
        self,
        code: ErrorCode,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message or code.value
        self.details = details
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        """HTTP status the API layer should answer with."""
        if self.code.value.endswith("_NOT_FOUND"):
            return 404
        return _STATUS_BY_CODE.get(self.code, 500)

    def to_dict(self) -> dict[str, Any]:
        """Error envelope body."""
        error: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"ok": False, "error": error}

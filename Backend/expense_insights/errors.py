from typing import Any, Dict


class ExpenseInsightsError(Exception):
    """Base class for analytics errors."""


class NotFoundError(ExpenseInsightsError):
    """The subject entity of a request does not exist."""


class ClaimNotFound(NotFoundError):
    def __init__(self, claim_id: str):
        super().__init__("Claim not found")
        self.claim_id = claim_id


class DepartmentNotFound(NotFoundError):
    def __init__(self, department: str):
        super().__init__(f"Department not found: {department}")
        self.department = department


class RecordAccessError(ExpenseInsightsError):
    """A query against the record store failed."""


def ok(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}


def fail(message: str) -> Dict[str, Any]:
    return {"success": False, "error": message}

"""Domain errors raised by the custody ledger.

CRUD functions raise these; ``main.py`` maps them to HTTP responses. None of
them is raised after a partial write: validation and authorization failures
happen before the first insert, and persistence failures are raised only after
the session has been rolled back.
"""


class LedgerError(Exception):
    status_code = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """A field is missing or invalid."""
    status_code = 400


class AuthorizationError(LedgerError):
    """A tool or user is outside the caller's tenant, or the caller lacks the role."""
    status_code = 403


class ConflictError(LedgerError):
    """A concurrent writer changed a tool's custody first. Safe to retry."""
    status_code = 409
    retryable = True


class PersistenceError(LedgerError):
    """The store failed mid-batch; nothing was written. Safe to retry."""
    status_code = 503
    retryable = True


class OpenIssuesWarning(LedgerError):
    """The selected tools have open inspection reports and the caller has not acknowledged them.

    Not a failure: the same request with ``acknowledge_issues`` set goes through.
    """
    status_code = 200

    def __init__(self, issues: list):
        super().__init__(f"{len(issues)} open issue(s) must be acknowledged before transfer")
        self.issues = issues

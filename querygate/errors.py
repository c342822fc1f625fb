"""
Error taxonomy for QueryGate.

Every error raised by the pipeline carries a category and an HTTP status
so callers (API, CLI) can classify it without string matching. Nothing in
the core retries: each category is fail-fast.
"""


class QueryGateError(Exception):
    """Base exception for all pipeline errors."""
    category = "internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "category": self.category}


class ClientInputError(QueryGateError):
    """Malformed phrase or missing connection target. No database contact."""
    category = "client_input"
    status_code = 400


class ConnectivityError(QueryGateError):
    """Database unreachable, bad credentials or pool construction failure."""
    category = "connectivity"
    status_code = 503


class GuardRejectionError(QueryGateError):
    """Generated SQL failed a safety check."""
    category = "guard_rejection"
    status_code = 400


class GeneratorContractError(GuardRejectionError):
    """Generator response was malformed or incomplete. Fails closed like a guard rejection."""
    category = "generator_contract"


class GeneratorUnavailableError(QueryGateError):
    """The external generator could not be reached or returned a transport error."""
    category = "generator_unavailable"
    status_code = 502


class ExecutionError(QueryGateError):
    """Runtime database error while running a validated statement."""
    category = "execution"
    status_code = 500


class StatementTimeoutError(ExecutionError):
    """Statement exceeded the declared per-statement timeout."""
    category = "timeout"
    status_code = 504

"""
Error taxonomy.

Every failure ends up as a dismissable message in the UI; nothing here is
meant to crash the app.
"""
from __future__ import annotations

NOT_CONFIGURED_MESSAGE = "Data backend is not configured yet."


class PatientOpsError(Exception):
    """Base class: `message` is what the user sees in the toast."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotConfiguredError(PatientOpsError):
    def __init__(self, message: str = NOT_CONFIGURED_MESSAGE) -> None:
        super().__init__(message)


class FormValidationError(PatientOpsError):
    """Required field missing; raised before any network call."""


class BackendError(PatientOpsError):
    """The backend call failed; message is the backend's own, verbatim."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(PatientOpsError):
    """The backend answered, but the rows don't have the expected shape."""


class RowCountError(PatientOpsError):
    """An update-by-id touched zero or several rows: integrity problem, not a transient one."""

    def __init__(self, table: str, record_id: str, affected: int) -> None:
        if affected == 0:
            message = f"No record was updated in {table} (id {record_id} not found)."
        else:
            message = f"Multiple records updated in {table} for id {record_id} ({affected} rows)."
        super().__init__(message)
        self.table = table
        self.record_id = record_id
        self.affected = affected

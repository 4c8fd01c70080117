# clinic_print/core/errors.py
from __future__ import annotations

from typing import Any, Optional


class PrintPipelineError(Exception):
    """Base for every failure raised by the print/export pipeline.

    `msg` is the short, user-facing message; `code` is a stable machine tag
    the API layer echoes into the error envelope.
    """

    code = "print_error"
    status_code = 500

    def __init__(self, msg: str, *, details: Any = None):
        super().__init__(msg)
        self.msg = msg
        self.details = details


class ContextFetchError(PrintPipelineError):
    code = "context_fetch_failed"
    status_code = 502


class PrintFailure(PrintPipelineError):
    code = "print_failed"
    status_code = 500


class TargetNotFoundError(PrintFailure):
    code = "target_not_found"
    status_code = 404


class PopupBlockedError(PrintFailure):
    code = "popup_blocked"
    status_code = 503


class ExportFailure(PrintPipelineError):
    code = "export_failed"
    status_code = 500


class ExportTargetNotFoundError(ExportFailure):
    code = "target_not_found"
    status_code = 404


class EmptyExportError(ExportFailure):
    code = "no_data"
    status_code = 422


class TargetBusyError(PrintPipelineError):
    code = "target_busy"
    status_code = 409

    def __init__(self, target: str, msg: Optional[str] = None):
        super().__init__(msg or f"'{target}' is already being printed or exported",
                         details={"target": target})
        self.target = target


class PrintActionError(PrintPipelineError):
    """Raised at the action boundary; wraps whatever failed underneath."""

    code = "action_failed"

    def __init__(self, msg: str, *, cause: Optional[BaseException] = None):
        super().__init__(msg)
        self.cause = cause
        if isinstance(cause, PrintPipelineError):
            self.code = cause.code
            self.status_code = cause.status_code

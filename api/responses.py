"""
Handler outcomes: redirects after success and HTTP errors for failed guards.
"""

from typing import Any, Mapping, Optional

from fastapi import HTTPException, status
from fastapi.responses import RedirectResponse
from starlette.datastructures import UploadFile

from catalog.validation import GuardFailure, GuardResult
from utilities.logger import RequestLogger

GUARD_STATUS_CODES = {
    GuardFailure.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    GuardFailure.MISMATCH: status.HTTP_400_BAD_REQUEST,
    GuardFailure.FORBIDDEN: status.HTTP_403_FORBIDDEN,
}


def enforce(guard: GuardResult, log: Optional[RequestLogger] = None) -> None:
    """
    Stop the request if a guard failed.

    Raises:
        HTTPException: 404 for missing entities, 400 for mismatched
            resources, 403 for denied authorization
    """
    if guard:
        return

    status_code = GUARD_STATUS_CODES[guard.failure]
    if log is not None:
        log.log_denied(guard.reason, status_code)
    raise HTTPException(status_code=status_code, detail=guard.reason)


def redirect(url: str) -> RedirectResponse:
    """Redirect to the canonical view of a resource after a mutation."""
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


def uploaded_file(form: Mapping[str, Any], field: str) -> Optional[UploadFile]:
    """The file part of a form, or None when the field is absent or plain text."""
    value = form.get(field)
    if isinstance(value, UploadFile):
        return value
    return None


def parse_id(value: Any) -> Optional[int]:
    """Parse a numeric identifier submitted in a form."""
    if value is None or isinstance(value, UploadFile):
        return None
    text = str(value).strip()
    if not text.isdigit():
        return None
    return int(text)

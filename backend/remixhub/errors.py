"""
RemixHub Registry - Error Taxonomy

Service-level exceptions and their mapping onto HTTP responses.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException


class RegistryError(Exception):
    """Base class for errors raised by registry services."""

    status_code = 500
    code = "registry_error"

    def to_detail(self) -> Dict[str, Any]:
        return {"success": False, "error": str(self), "code": self.code}


class ValidationError(RegistryError):
    """Malformed or missing required input. No work is performed."""

    status_code = 400
    code = "validation_error"


class NotFound(RegistryError):
    status_code = 404
    code = "not_found"


class UpstreamUnavailable(RegistryError):
    """Pinning service, ledger gateway, chain RPC or Story API failed."""

    status_code = 502
    code = "upstream_unavailable"

    def __init__(self, message: str, service: Optional[str] = None):
        super().__init__(message)
        self.service = service

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        if self.service:
            detail["service"] = self.service
        return detail


class StoreUnavailable(UpstreamUnavailable):
    """The registration cache could not be read or written."""

    status_code = 503
    code = "store_unavailable"

    def __init__(self, message: str):
        super().__init__(message, service="registration_cache")


class ParentNotAnchored(RegistryError):
    """
    A remix parent has no usable on-chain identifier after the retry budget.

    A timing/state problem rather than a malformed request; the caller may
    retry later.
    """

    status_code = 409
    code = "parent_not_anchored"
    reason = "unresolved"

    def __init__(self, message: str, parent_cid: str, attempts: int):
        super().__init__(message)
        self.parent_cid = parent_cid
        self.attempts = attempts

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail.update({
            "reason": self.reason,
            "parentCid": self.parent_cid,
            "attempts": self.attempts,
        })
        return detail


class ParentNeverPublished(ParentNotAnchored):
    """No registration row for the parent ever appeared."""

    reason = "never_published"


class ParentNotConfirmed(ParentNotAnchored):
    """A row exists for the parent but its ipId has not landed yet."""

    reason = "not_confirmed"


class PartialPersistenceFailure(RegistryError):
    """
    Ledger write succeeded, cache write failed.

    Never sent to the client as an error: flows convert it into a warning
    on their result envelope.
    """

    code = "partial_persistence_failure"

    def __init__(self, message: str, cid: str, stage: str):
        super().__init__(message)
        self.cid = cid
        self.stage = stage

    def to_warning(self) -> Dict[str, Any]:
        return {"code": self.code, "stage": self.stage, "cid": self.cid, "message": str(self)}


def http_error(exc: RegistryError) -> HTTPException:
    """Translate a service error into the HTTPException a router raises."""
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())

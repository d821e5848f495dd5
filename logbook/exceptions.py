"""
Exception classes for user-facing logbook errors.

Only user-initiated mutations raise these. Ingestion and lifecycle
transitions driven by the tracker log and return None instead.
"""

from typing import Optional


class LogbookError(Exception):
    """Base exception for all reportable logbook errors."""

    status_code = 500
    default_detail = 'An unexpected error occurred.'
    error_code = 'INTERNAL_ERROR'

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {'error': self.detail, 'code': self.error_code}


class FlightNotFound(LogbookError):
    """Referenced flight does not exist."""
    status_code = 404
    default_detail = 'Flight not found'
    error_code = 'FLIGHT_NOT_FOUND'


class NotAuthorized(LogbookError):
    """Requester does not own the flight and is not an administrator."""
    status_code = 403
    default_detail = 'Not authorized'
    error_code = 'NOT_AUTHORIZED'


class InvalidFlightTransition(LogbookError):
    """Flight status does not allow the requested operation."""
    status_code = 409
    default_detail = 'Flight status does not allow this operation'
    error_code = 'INVALID_TRANSITION'


class FlightCompletionError(LogbookError):
    """Finalize transaction failed and was rolled back."""
    status_code = 500
    default_detail = 'Could not complete flight'
    error_code = 'COMPLETION_FAILED'


class ShareTokenError(LogbookError):
    """No unique share token could be stored."""
    status_code = 503
    default_detail = 'Could not create share link, try again'
    error_code = 'SHARE_TOKEN_FAILED'

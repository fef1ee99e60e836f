"""
Error kinds raised by the catalogue, session store and eligibility engine
"""
from typing import Optional


class WelfareEngineError(Exception):
    """Base class for all engine errors"""

    code = "engine_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(WelfareEngineError):
    """Unknown session or scheme id"""

    code = "not_found"
    status_code = 404


class ValidationError(WelfareEngineError):
    """Malformed scheme write or attribute value"""

    code = "validation_error"
    status_code = 422


class InvalidTransition(WelfareEngineError):
    """Disallowed scheme status change"""

    code = "invalid_transition"
    status_code = 409


class VersionConflict(WelfareEngineError):
    """Concurrent write lost the version race; retry with a fresh read"""

    code = "version_conflict"
    status_code = 412

    def __init__(self, message: str, current_version: Optional[int] = None):
        super().__init__(message)
        self.current_version = current_version


class CatalogueUnavailable(WelfareEngineError):
    """Catalogue could not be read in bounded time"""

    code = "catalogue_unavailable"
    status_code = 503


class CriterionError(WelfareEngineError):
    """A single criterion of a scheme cannot be evaluated as declared"""

    code = "criterion_error"
    status_code = 500

    def __init__(self, message: str, criterion: Optional[str] = None):
        super().__init__(message)
        self.criterion = criterion

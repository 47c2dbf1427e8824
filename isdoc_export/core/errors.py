from typing import List, Optional


class PreconditionError(ValueError):
    """Transaction or user profile required for the export is missing."""


class FeatureDisabled(PreconditionError):
    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "ISDOC support is not enabled. Please enable it in settings.")


class StructuralViolation(Exception):
    """Rendered document failed validation."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid ISDOC document")

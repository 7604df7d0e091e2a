"""Error taxonomy for the export pipeline.

Every error carries the HTTP status the service boundary reports it with:

- ValidationError (400): malformed requests and unusable uploads
- AuthorizationError (401/404): missing identity, record not owned
- QuotaExceededError (429): the quota gate refused the request
- GenerationError (500): unknown archetype, writer fault, clipboard fault
"""


class SlideTheoryError(Exception):
    """Base class for all pipeline errors."""
    status = 500


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationError(SlideTheoryError):
    status = 400


class MissingFieldError(ValidationError):
    """A required request field is absent or empty."""

    def __init__(self, fields):
        if isinstance(fields, str):
            fields = [fields]
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class UnsupportedFormatError(ValidationError):
    """Uploaded file extension has no parser."""

    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"Unsupported file type: {extension or '(none)'}")


class EmptyFileError(ValidationError):
    """Uploaded tabular file contains no rows at all."""


class MalformedFileError(ValidationError):
    """Uploaded file could not be read as its declared format."""


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

class AuthorizationError(SlideTheoryError):
    status = 401


class UnauthenticatedError(AuthorizationError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class SlideNotFoundError(AuthorizationError):
    """Raised for missing records and for records owned by someone else."""
    status = 404

    def __init__(self, message: str = "Slide not found"):
        super().__init__(message)


class QuotaExceededError(SlideTheoryError):
    status = 429

    def __init__(self, message: str = "Daily generation limit reached"):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class GenerationError(SlideTheoryError):
    status = 500


class UnknownArchetypeError(GenerationError):
    def __init__(self, archetype_id):
        self.archetype_id = archetype_id
        super().__init__(f"Unknown archetype: {archetype_id!r}")


class ExportGenerationError(GenerationError):
    """The document writer failed; ``cause`` holds the original exception."""

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ClipboardExportError(GenerationError):
    """Capturing the surface or writing the clipboard failed."""

    def __init__(self, message: str = "Failed to copy slide to clipboard",
                 cause: BaseException | None = None):
        self.cause = cause
        super().__init__(message)

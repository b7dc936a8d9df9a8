"""Error taxonomy for Second Brain.

Every error carries an HTTP status and a message that is safe to show to
a client. Internal detail (driver errors, stack traces) stays in the log
and on ``__cause__``.
"""

from typing import Optional


class SecondBrainError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(SecondBrainError):
    """Item, tag or owner absent."""

    status_code = 404
    default_message = "Not found"


class Forbidden(SecondBrainError):
    """Caller does not own the addressed item."""

    status_code = 403
    default_message = "Forbidden"


class InvalidInput(SecondBrainError):
    """Malformed request data. Rejected before any side effect."""

    status_code = 400
    default_message = "Invalid input"


class InvalidSource(InvalidInput):
    """Link does not match a supported source identifier format."""

    default_message = "Invalid YouTube link."


class InvalidQuery(InvalidInput):
    """Search query missing or empty."""

    default_message = "Missing or invalid query parameter 'q'"


class SourceNotFound(SecondBrainError):
    """External metadata lookup found nothing for the source id."""

    status_code = 404
    default_message = "YouTube video not found."


class SourceLookupFailed(SecondBrainError):
    """External metadata provider was unreachable or returned an error."""

    status_code = 502
    default_message = "Metadata provider unavailable"


class EmbeddingUnavailable(SecondBrainError):
    """Embedding model could not be loaded or inference failed."""

    status_code = 503
    default_message = "Embedding service unavailable"


class StoreUnavailable(SecondBrainError):
    """Document store or vector index unreachable."""

    status_code = 503
    default_message = "Storage unavailable"


class StaleTag(SecondBrainError):
    """A resolved tag was swept before the item referencing it was written.

    Raised by the document store on a foreign-key violation in item_tags;
    the ingestion coordinator re-resolves the titles once and retries.
    """

    status_code = 409
    default_message = "Tags changed while saving. Please retry."


class TagConflict(SecondBrainError):
    """A tag with the same title was created concurrently.

    Raised by the document store on a unique-title violation; the tag
    registry recovers from it by re-reading the winning record.
    """

    status_code = 409
    default_message = "Tag already exists"

    def __init__(self, title: str):
        self.title = title
        super().__init__(f"Tag already exists: {title!r}")

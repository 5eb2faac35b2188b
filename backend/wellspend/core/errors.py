"""
Ingestion error taxonomy

Failures before the Upload row exists are ValidationError (400) or
InfrastructureError (500). Anything raised after that point ends up in the
upload's error_log and is answered with 206.
"""
from typing import Optional


class IngestError(Exception):
    """Base class for every ingestion failure"""

    stage = "ingest"

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class ValidationError(IngestError):
    """Request rejected before anything was persisted"""

    stage = "validation"


class ParseError(IngestError):
    """File content could not be decoded or parsed into rows"""

    stage = "parse"


class PersistenceError(IngestError):
    """Bulk write of data records failed"""

    stage = "persist"


class AggregationError(IngestError):
    """Metric upsert failed; never surfaced to the caller"""

    stage = "aggregate"


class InfrastructureError(IngestError):
    """Blob store or database unavailable while accepting the upload"""

    stage = "ingest"


class InvalidTransition(IngestError):
    """Upload status change not allowed by the upload state machine"""

    stage = "finalize"

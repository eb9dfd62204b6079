"""Error taxonomy for cloudbox."""
from typing import Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import UnitOutcome


class CloudboxError(Exception):
    """Base class for cloudbox errors."""


class TransportError(CloudboxError):
    """Network or backend failure on any call."""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        path: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.method = method
        self.path = path
        self.status_code = status_code


class ValidationError(CloudboxError):
    """Rejected user input, raised before anything is dispatched."""


class PartialBatchFailure(CloudboxError):
    """One or more transfer units of a batch failed."""

    def __init__(self, failed: Sequence["UnitOutcome"], total: int):
        self.failed = list(failed)
        self.total = total
        names = ", ".join(o.name for o in self.failed)
        super().__init__(f"{len(self.failed)}/{total} uploads failed: {names}")

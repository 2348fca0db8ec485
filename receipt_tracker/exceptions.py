"""Error taxonomy for the receipt pipeline."""


class ReceiptTrackerError(RuntimeError):
    """Base class for receipt pipeline errors."""


class InvalidExtractionError(ReceiptTrackerError):
    """The extraction payload signals its own invalidity or cannot be parsed."""


class RemoteUnavailableError(ReceiptTrackerError):
    """The remote receipt store could not be reached or failed mid-operation."""


class ReceiptNotFoundError(ReceiptTrackerError):
    """The receipt is absent from both the remote store and the local cache."""

    def __init__(self, receipt_id: str) -> None:
        super().__init__(f"Receipt {receipt_id} not found")
        self.receipt_id = receipt_id


class StorageError(ReceiptTrackerError):
    """The local cache could not be read or written.

    Raised internally by the cache codec and always caught at the cache
    boundary; callers see a degraded ``CacheRead`` instead.
    """

"""
Retrying Record Source

DESIGN DECISION: The engine performs no retries. A failed fetch is
reported to the caller and the last published list stays in place.
Retry policy belongs to the persistence side, so it lives here as an
optional wrapper around any RecordSource.
"""

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from household_tracker.models.finance import (
    ActualRecord,
    EventKind,
    RecurringTemplate,
)
from household_tracker.services.storage.interface import RecordSource


class RetryingRecordSource(RecordSource):
    """
    Wraps a RecordSource and retries failed fetches with exponential backoff.

    Only IOError-family failures (StorageError, ConnectionError, TimeoutError)
    are retried. After the last attempt the original exception is re-raised.
    """

    def __init__(
        self,
        source: RecordSource,
        attempts: int = 3,
        max_wait_seconds: float = 10.0,
    ):
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self._source = source
        self._retry = retry(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=1, min=0, max=max_wait_seconds),
            retry=retry_if_exception_type(IOError),
            reraise=True,
        )

    async def fetch_actual_records(
        self,
        user_id: str,
        kind: EventKind,
    ) -> list[ActualRecord]:
        return await self._retry(self._source.fetch_actual_records)(user_id, kind)

    async def fetch_recurring_templates(
        self,
        user_id: str,
        kind: EventKind,
    ) -> list[RecurringTemplate]:
        return await self._retry(self._source.fetch_recurring_templates)(user_id, kind)

"""
Recording batch export: submission and completion polling
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any, Protocol

from gcrecordings.exceptions import BatchSubmissionError, BatchTimeoutError, GcrecError
from gcrecordings.genesys_client import GenesysAPIError
from gcrecordings.models import (
    EXPORT_FORMAT,
    BatchJobHandle,
    BatchResultItem,
    RecordingDescriptor,
)

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL_SECONDS = 10.0


class BatchAPI(Protocol):
    def create_batch_request(self, body: dict[str, Any]) -> dict[str, Any]: ...

    def get_batch_request(self, batch_id: str) -> dict[str, Any]: ...


class BatchExporter:
    """Submit one batch export job and wait for every item to be finalized"""

    def __init__(self, api: BatchAPI) -> None:
        self.api = api
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def build_request(descriptors: Sequence[RecordingDescriptor]) -> dict[str, Any]:
        return {
            "batchDownloadRequestList": [
                {"conversationId": d.conversation_id, "recordingId": d.recording_id}
                for d in descriptors
            ],
            "formatId": EXPORT_FORMAT,
        }

    def submit(self, descriptors: Sequence[RecordingDescriptor]) -> BatchJobHandle:
        """
        Submit all descriptors as a single export job

        Raises:
            BatchSubmissionError: If the platform rejects the request
        """
        if not descriptors:
            raise BatchSubmissionError("Cannot submit an empty batch")

        try:
            response = self.api.create_batch_request(self.build_request(descriptors))
        except (GcrecError, GenesysAPIError) as e:
            details = getattr(e, "details", "")
            raise BatchSubmissionError(
                f"Batch request rejected: {e}", details=str(details or "")
            ) from e

        batch_id = response.get("id") if isinstance(response, dict) else None
        if not batch_id:
            raise BatchSubmissionError(
                "Batch request response did not contain a job id", details=str(response)
            )

        for d in descriptors:
            self.logger.info(f"Added to batch: {d.conversation_id}_{d.recording_id}")
        return BatchJobHandle(batch_id=str(batch_id), expected_count=len(descriptors))

    def check(self, handle: BatchJobHandle) -> list[BatchResultItem] | None:
        """Single status query; returns results when complete, None while pending"""
        status = self.api.get_batch_request(handle.batch_id)
        results = [BatchResultItem.from_api(r) for r in status.get("results") or []]
        expected = status.get("expectedResultCount")
        completed = sum(1 for r in results if r.is_finalized)

        self.logger.info(f"Batch {handle.batch_id} status: {completed}/{expected}")
        if expected is not None and completed == int(expected):
            return results
        return None

    def poll(
        self,
        handle: BatchJobHandle,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> list[BatchResultItem]:
        """
        Poll until all expected results are finalized

        Any query error, malformed status bodies included, counts as a
        pending attempt. Waits interval_seconds between attempts.

        Raises:
            BatchTimeoutError: If max_attempts attempts pass without completion
        """
        for attempt in range(1, max_attempts + 1):
            try:
                results = self.check(handle)
            except Exception as e:
                self.logger.error(
                    f"Failed to check batch status (attempt {attempt}/{max_attempts}): {e}"
                )
                results = None

            if results is not None:
                self.logger.info(f"Batch {handle.batch_id} processed after {attempt} attempt(s)")
                return results

            if attempt < max_attempts:
                time.sleep(interval_seconds)

        raise BatchTimeoutError(
            f"Batch {handle.batch_id} did not complete after {max_attempts} attempts",
            details=f"Polled every {interval_seconds:g}s for {handle.expected_count} recordings",
        )

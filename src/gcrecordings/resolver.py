"""
Recording metadata discovery: conversations in a queue -> available recordings
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from gcrecordings.exceptions import ResourceNotFoundError
from gcrecordings.genesys_client import CONVERSATION_PAGE_SIZE
from gcrecordings.models import RecordingDescriptor


class MetadataAPI(Protocol):
    def query_conversations(
        self, queue_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]: ...

    def get_recording_metadata(self, conversation_id: str) -> list[dict[str, Any]]: ...


class RecordingResolver:
    """Find AVAILABLE recordings for voice conversations of one queue"""

    def __init__(self, api: MetadataAPI) -> None:
        self.api = api
        self.logger = logging.getLogger(__name__)
        # Conversation IDs seen by the last find_conversations call
        self.conversation_ids: list[str] = []

    def find_conversations(self, queue_id: str, start_date: str, end_date: str) -> list[str]:
        """
        Conversation IDs for the queue in [start_date, end_date] (UTC, inclusive)

        A failed query is logged and reported as no conversations.
        """
        try:
            conversations = self.api.query_conversations(queue_id, start_date, end_date)
        except Exception as e:
            self.logger.error(f"Conversation query failed for queue {queue_id}: {e}")
            self.conversation_ids = []
            return []

        conversation_ids = [
            str(c["conversationId"])
            for c in conversations
            if isinstance(c, dict) and c.get("conversationId")
        ]
        if len(conversations) >= CONVERSATION_PAGE_SIZE:
            self.logger.warning(
                f"Conversation query returned {len(conversations)} results, the maximum for a "
                "single page. Older conversations in this range are not included; "
                "narrow the date range to retrieve them."
            )
        self.logger.info(f"Found {len(conversation_ids)} conversations")
        self.conversation_ids = conversation_ids
        return conversation_ids

    def recordings_for(self, conversation_id: str) -> list[RecordingDescriptor]:
        """AVAILABLE recordings of one conversation; lookup errors yield an empty list"""
        try:
            metadata = self.api.get_recording_metadata(conversation_id)
        except ResourceNotFoundError:
            self.logger.debug(f"No recordings for conversation {conversation_id}")
            return []
        except Exception as e:
            self.logger.error(f"Failed to fetch recording metadata for {conversation_id}: {e}")
            return []

        if not isinstance(metadata, list):
            self.logger.error(
                f"Unexpected recording metadata for {conversation_id}: {type(metadata).__name__}"
            )
            return []

        available: list[RecordingDescriptor] = []
        for entry in metadata:
            if not isinstance(entry, dict):
                self.logger.warning(f"Skipping malformed metadata entry of {conversation_id}")
                continue
            descriptor = RecordingDescriptor(
                conversation_id=conversation_id,
                recording_id=str(entry.get("id") or ""),
                file_state=entry.get("fileState"),
            )
            if not descriptor.recording_id:
                continue
            if descriptor.is_available:
                available.append(descriptor)
            else:
                self.logger.warning(
                    f"Skipping recording {descriptor.recording_id} of conversation "
                    f"{conversation_id}: state {descriptor.file_state or 'N/A'}"
                )
        return available

    def resolve(self, queue_id: str, start_date: str, end_date: str) -> list[RecordingDescriptor]:
        """
        Resolve downloadable recordings for a queue and date range

        Args:
            queue_id: Routing queue ID
            start_date: First day (YYYY-MM-DD, UTC)
            end_date: Last day (YYYY-MM-DD, UTC), inclusive

        Returns:
            Descriptors with fileState AVAILABLE; empty when nothing matches
        """
        descriptors: list[RecordingDescriptor] = []
        for conversation_id in self.find_conversations(queue_id, start_date, end_date):
            descriptors.extend(self.recordings_for(conversation_id))
        return descriptors

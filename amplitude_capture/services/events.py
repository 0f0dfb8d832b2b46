"""Batch Event Upload API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

from amplitude_capture.models.events import BatchEventsSuccessSummary, Event

if TYPE_CHECKING:  # pragma: no cover
    from amplitude_capture.client import AmplitudeClient

BATCH_EVENT_UPLOAD_ENDPOINT = "/batch"


class EventsService:
    """Access to event related endpoints."""

    def __init__(self, client: "AmplitudeClient"):
        self.client = client

    async def send(
        self,
        events: Sequence[Event],
        *,
        timeout: Optional[float] = None,
    ) -> BatchEventsSuccessSummary:
        """Send a batch of events via the Batch Event Upload API.

        Recommended for large batches sent from scheduled jobs rather than a
        realtime stream; Amplitude may delay ingestion under load.
        """
        if not events:
            raise ValueError("no events to send")

        body = self.client.new_request_body()
        body["events"] = [event.to_payload() for event in events]
        request = self.client.build_request("POST", BATCH_EVENT_UPLOAD_ENDPOINT, body)

        return await self.client.send(request, BatchEventsSuccessSummary, timeout=timeout)

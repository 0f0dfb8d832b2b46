from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Event(BaseModel):
    """Base analytic structure for capturing user activity.

    Field names match the Amplitude HTTP API exactly; unset fields are left
    out of the payload instead of being sent as null.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = None
    device_id: Optional[str] = None
    event_type: str
    time: Optional[int] = None  # epoch millis
    event_properties: Optional[Dict[str, Any]] = None
    user_properties: Optional[Dict[str, Any]] = None
    groups: Optional[Dict[str, Any]] = None
    group_properties: Optional[Dict[str, Any]] = None
    app_version: Optional[str] = None
    platform: Optional[str] = None
    os_name: Optional[str] = None
    os_version: Optional[str] = None
    device_brand: Optional[str] = None
    device_manufacturer: Optional[str] = None
    device_model: Optional[str] = None
    carrier: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    dma: Optional[str] = None
    language: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = None
    revenue: Optional[float] = None
    product_id: Optional[str] = Field(default=None, alias="productId")
    revenue_type: Optional[str] = Field(default=None, alias="revenueType")
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    ip: Optional[str] = None
    idfa: Optional[str] = None
    idfv: Optional[str] = None
    adid: Optional[str] = None
    android_id: Optional[str] = None
    event_id: Optional[int] = None
    session_id: Optional[int] = None
    insert_id: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON-ready dict sent to the API."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def set_latency(self, latency_ms: int) -> None:
        self._properties()["latency"] = latency_ms

    def set_environment(self, environment: str) -> None:
        if environment:
            self._properties()["environment"] = environment

    def set_app_version(self, version: str) -> None:
        self.app_version = version or None

    def _properties(self) -> Dict[str, Any]:
        if self.event_properties is None:
            self.event_properties = {}
        return self.event_properties


class BatchEventsSuccessSummary(BaseModel):
    """Response body for every successful batch upload."""

    model_config = ConfigDict(frozen=True)

    code: int = 0
    events_ingested: int = 0
    payload_size_bytes: int = 0
    server_upload_time: int = 0  # epoch millis

    @property
    def upload_time(self) -> datetime:
        return _EPOCH + timedelta(milliseconds=self.server_upload_time)

    def __str__(self) -> str:
        return (
            f"{self.events_ingested} events ingested "
            f"({self.payload_size_bytes} bytes) at {_format_upload_time(self.upload_time)}"
        )


def _format_upload_time(ts: datetime) -> str:
    """Render as ``2014-04-01 19:42:58.123 +0000 UTC``; zero millis are left out."""
    text = ts.strftime("%Y-%m-%d %H:%M:%S")
    millis = ts.microsecond // 1000
    if millis:
        text += f".{millis:03d}".rstrip("0")
    return text + " +0000 UTC"

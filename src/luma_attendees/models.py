"""Data models for captured attendees, discovered events and capture results.

Attendee records are pydantic models so they serialize straight into the export
schema (camelCase column names, absent social links omitted). The transient
pipeline values are plain dataclasses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .utils import rewrite_pagination_limit


class AttendeeRecord(BaseModel):
    """One normalized guest of an event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = "Anonymous"
    profile_link: str
    event_name: str
    event_link: str

    # Always present, defaulted when the payload has no value
    timezone: str = "Unknown"
    username: str = ""
    bio_short: str = ""
    avatar_url: str = ""
    last_online_at: str = ""

    # Present only when the payload carried the handle
    twitter: str | None = None
    instagram: str | None = None
    linkedin: str | None = None
    youtube: str | None = None
    tiktok: str | None = None
    website: str | None = None

    num_tickets_registered: int = Field(default=0)

    def to_export_dict(self) -> dict[str, Any]:
        """Serialize with export column names, dropping absent optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def export_columns(cls) -> list[str]:
        """Column names in schema order."""
        return [info.alias or name for name, info in cls.model_fields.items()]


@dataclass(frozen=True)
class EventLink:
    """An event discovered on a calendar page."""

    url: str
    title: str


@dataclass
class CapturedEndpoint:
    """The intercepted guest-list API request."""

    url: str

    def with_pagination_limit(self, limit: int, param: str = "pagination_limit") -> str:
        """Return the captured URL asking for ``limit`` entries in one page."""
        return rewrite_pagination_limit(self.url, limit, param=param)


@dataclass
class FetchResponse:
    """Result of a direct fetch issued from the page context."""

    ok: bool
    status: int = 0
    body: str = ""
    error: str | None = None
    truncated: bool = False


class CaptureOutcome(str, Enum):
    """Terminal outcome of one attendee capture."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CaptureState(str, Enum):
    """States of the attendee capture state machine."""

    IDLE = "idle"
    NAVIGATED = "navigated"
    OBSERVER_ARMED = "observer_armed"
    POPUP_OPENED = "popup_opened"
    ENDPOINT_CAPTURED = "endpoint_captured"
    TOTAL_PARSED = "total_parsed"
    REQUEST_ISSUED = "request_issued"
    NORMALIZED = "normalized"
    DONE = "done"
    FAILED = "failed"


@dataclass
class CaptureResult:
    """Result of capturing one event's guest list.

    A failed capture and a successful capture of an event with no guests both
    carry an empty ``records`` list; ``outcome`` tells them apart.
    """

    event_url: str
    event_name: str = ""
    records: list[AttendeeRecord] = field(default_factory=list)
    outcome: CaptureOutcome = CaptureOutcome.SUCCEEDED
    states: list[CaptureState] = field(default_factory=lambda: [CaptureState.IDLE])
    error: str | None = None
    total: int | None = None
    endpoint_url: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == CaptureOutcome.SUCCEEDED

    @property
    def state(self) -> CaptureState:
        """The most recent state reached."""
        return self.states[-1]

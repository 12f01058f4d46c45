"""Pydantic models for schedule data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class RawEvent(BaseModel):
    """One record of the array literal embedded in the portal's calendar script.

    The portal emits naive local timestamps such as "2026-10-19T09:00:00";
    the extractor attaches the portal time zone afterwards.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str = Field(default="", alias="Title")  # HTML fragment, see normalize_title()
    start: datetime = Field(alias="StartDate")
    end: datetime = Field(alias="EndDate")

    @field_validator("title", mode="before")
    @classmethod
    def _blank_non_text_title(cls, value: object) -> str:
        # null or numeric titles go through normalize_title() as unparsable
        return value if isinstance(value, str) else ""


class Event(BaseModel):
    """A single scheduled class, normalized from a RawEvent.

    Immutable, equality is structural. Timestamps are timezone-aware so two
    events compare by instant regardless of the offset they were built with.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""  # "Algebra"
    location: str = ""  # "Room 3"
    time_label: str = ""  # "09:00-10:30", as displayed by the portal
    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_order(self) -> "Event":
        if self.start > self.end:
            raise ValueError(f"event ends before it starts: {self.start} > {self.end}")
        return self


class LoginResult(BaseModel):
    """Outcome of a successful portal login."""

    ok: bool = True
    message: str = ""


class ChangeSummary(BaseModel):
    """Produced by compare_events() when two windows are not equal."""

    previous: list[Event]
    current: list[Event]
    previous_hours: float
    current_hours: float


class ChangeReport(BaseModel):
    """Input of the report renderer, built only when a change was detected."""

    previous_window: list[Event]
    current_window: list[Event]
    day_range: int = Field(ge=1)


class Report(BaseModel):
    """A rendered notification document."""

    subject: str
    html: str

"""
Base schemas and shared field types.

Wire payloads use camelCase (``startTime``); Python code uses snake_case.
Both spellings are accepted on input.
"""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..core.constants import END_OF_DAY
from ..utils.time_utils import is_valid_time


def _check_time(value: str) -> str:
    if not is_valid_time(value):
        raise ValueError(f"Invalid time {value!r}: expected HH:MM or 24:00")
    return value


def _check_start_time(value: str) -> str:
    _check_time(value)
    if value == END_OF_DAY:
        raise ValueError("24:00 is only valid as an end time")
    return value


# HH:MM; "24:00" allowed for end times only
StartTimeStr = Annotated[str, AfterValidator(_check_start_time)]
EndTimeStr = Annotated[str, AfterValidator(_check_time)]


class StandardizedModel(BaseModel):
    """Base model for records read back from storage."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        validate_assignment=True,
    )

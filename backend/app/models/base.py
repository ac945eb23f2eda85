"""
Shared model configuration.

API payloads use camelCase wire names (``scheduledDate``, ``scheduledStartTime``
...), clock times travel as "HH:MM" strings.
"""

from datetime import time
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from app.utils.datetime_utils import format_clock

ClockTime = Annotated[time, PlainSerializer(format_clock, return_type=str, when_used="json")]


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases; snake_case accepted on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

"""Segmented identifiers used to name typed entities, e.g. 'hue:color_temperature'.

`UID` owns parsing, validation, equality and rendering; subclasses only state
how many segments they need and give names to individual segments.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Tuple

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema


class UID:
    SEPARATOR = ":"
    SEGMENT_PATTERN = re.compile(r"[A-Za-z0-9_-]*")

    minimal_number_of_segments: int = 2
    maximal_number_of_segments: Optional[int] = None

    __slots__ = ("_segments",)

    def __init__(self, *segments: str):
        """Create an identifier from one pre-formed string or from its segments.

        UID("binding:id") and UID("binding", "id") are equivalent.
        Raises ValueError when the segment count or characters are invalid.
        """
        if not segments:
            raise ValueError(f"{type(self).__name__} requires at least one argument")
        if len(segments) == 1:
            if not isinstance(segments[0], str):
                raise ValueError(f"{type(self).__name__} must be created from a string")
            parts = tuple(segments[0].split(self.SEPARATOR))
        else:
            parts = tuple(segments)
        self._validate_number_of_segments(parts)
        self._validate_segments(parts)
        self._segments: Tuple[str, ...] = parts

    def _validate_number_of_segments(self, parts: Tuple[str, ...]) -> None:
        minimum = self.minimal_number_of_segments
        maximum = self.maximal_number_of_segments
        if len(parts) < minimum:
            raise ValueError(
                f"{type(self).__name__} must have at least {minimum} segments, got {len(parts)}"
            )
        if maximum is not None and len(parts) > maximum:
            raise ValueError(
                f"{type(self).__name__} must have at most {maximum} segments, got {len(parts)}"
            )

    def _validate_segments(self, parts: Tuple[str, ...]) -> None:
        for segment in parts:
            if not isinstance(segment, str) or not self.SEGMENT_PATTERN.fullmatch(segment):
                raise ValueError(
                    f"ID segment '{segment}' contains invalid characters. Each segment "
                    f"of the ID must match the pattern {self.SEGMENT_PATTERN.pattern}."
                )

    @property
    def segments(self) -> Tuple[str, ...]:
        return self._segments

    def get_segment(self, index: int) -> str:
        return self._segments[index]

    @property
    def binding_id(self) -> str:
        return self._segments[0]

    @property
    def as_string(self) -> str:
        return self.SEPARATOR.join(self._segments)

    def __str__(self) -> str:
        return self.as_string

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.as_string!r})"

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._segments == other._segments  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._segments))

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        # accept instances as-is, parse strings, always dump as the string form
        def validate(value: Any) -> "UID":
            if isinstance(value, cls):
                return value
            if isinstance(value, str):
                return cls(value)
            raise ValueError(f"{cls.__name__} expects a string")

        return core_schema.no_info_plain_validator_function(
            validate,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )


class ChannelTypeUID(UID):
    """Identifier of a channel type: '<binding id>:<channel type id>'."""

    minimal_number_of_segments = 2
    maximal_number_of_segments = 2

    __slots__ = ()

    @property
    def id(self) -> str:
        """The channel type id within its binding."""
        return self.get_segment(1)

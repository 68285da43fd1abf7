"""Errors raised while encoding and decoding Protobuf data."""

from __future__ import annotations


class DecodeError(ValueError):
    """The input does not hold a valid Protobuf message.

    The description is a best-effort root cause. ``stack`` holds
    ``(message, field)`` pairs naming where in the nesting decoding failed,
    outermost first.
    """

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self.description = description
        self.stack: list[tuple[str, str]] = []

    def push(self, message: str, field: str) -> None:
        """Record the message type and field in which decoding failed."""
        self.stack.append((message, field))

    def __str__(self) -> str:
        location = "".join(f"{message}.{field}: " for message, field in self.stack)
        return f"failed to decode Protobuf message: {location}{self.description}"

    def __repr__(self) -> str:
        return f"DecodeError(description={self.description!r}, stack={self.stack!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DecodeError):
            return NotImplemented
        return self.description == other.description and self.stack == other.stack

    def __hash__(self) -> int:
        return hash((self.description, tuple(self.stack)))


class EncodeError(ValueError):
    """A message did not fit into the capacity given for encoding it."""

    def __init__(self, required: int, remaining: int) -> None:
        super().__init__(required, remaining)
        self.required = required
        self.remaining = remaining

    @property
    def required_capacity(self) -> int:
        """The capacity needed to encode the message."""
        return self.required

    def __str__(self) -> str:
        return (
            "failed to encode Protobuf message; insufficient buffer capacity "
            f"(required: {self.required}, remaining: {self.remaining})"
        )

    def __repr__(self) -> str:
        return f"EncodeError(required={self.required}, remaining={self.remaining})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EncodeError):
            return NotImplemented
        return (self.required, self.remaining) == (other.required, other.remaining)

    def __hash__(self) -> int:
        return hash((self.required, self.remaining))
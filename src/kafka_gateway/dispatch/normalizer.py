"""
Publish request validation and expansion.

Turns the three publish request shapes into a sequence of
``MessageDescriptor`` values:

    SingleRequest      -> one descriptor
    FixedCountRequest  -> keys/values "{prefix}-1" .. "{prefix}-n"
    RangeRequest       -> keys/values "{prefix}-start" .. "{prefix}-end"

Validation returns a list of ``FieldViolation`` so every problem in a request
is reported at once. Field names in violations are the request parameter
names the HTTP layer accepts (``messagePrefix``, ``startIndex`` ...).

Nothing here touches the network or the log.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from core.errors.exceptions import ValidationError

TOPIC_MAX_LENGTH = 100
KEY_MAX_LENGTH = 50
PREFIX_MAX_LENGTH = 100


@dataclass(frozen=True)
class MessageDescriptor:
    topic: str
    key: str
    value: str


@dataclass(frozen=True)
class SingleRequest:
    topic: str
    key: str
    message: str


@dataclass(frozen=True)
class FixedCountRequest:
    topic: str
    key_prefix: str
    value_prefix: str
    count: int


@dataclass(frozen=True)
class RangeRequest:
    topic: str
    key_prefix: str
    value_prefix: str
    start_index: int
    end_index: int


@dataclass(frozen=True)
class FieldViolation:
    field: str
    message: str


@dataclass
class NormalizedRequest:
    """Descriptors to dispatch and how many there will be.

    ``descriptors`` may be a lazy iterator; ``total`` is known up front.
    """

    descriptors: Iterable[MessageDescriptor]
    total: int


def _is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def _check_text(
    violations: list[FieldViolation],
    field: str,
    label: str,
    value: str | None,
    max_length: int | None,
) -> None:
    if _is_blank(value):
        violations.append(FieldViolation(field, f"{label} cannot be blank"))
    elif max_length is not None and len(value) > max_length:
        violations.append(
            FieldViolation(field, f"{label} must be between 1 and {max_length} characters")
        )


def _check_prefixed(
    violations: list[FieldViolation],
    topic: str,
    key_prefix: str,
    value_prefix: str,
) -> None:
    _check_text(violations, "topic", "Topic", topic, TOPIC_MAX_LENGTH)
    _check_text(violations, "key", "Key", key_prefix, KEY_MAX_LENGTH)
    _check_text(violations, "messagePrefix", "Message prefix", value_prefix, PREFIX_MAX_LENGTH)


def validate_single(request: SingleRequest) -> list[FieldViolation]:
    violations: list[FieldViolation] = []
    _check_text(violations, "topic", "Topic", request.topic, TOPIC_MAX_LENGTH)
    _check_text(violations, "key", "Key", request.key, KEY_MAX_LENGTH)
    _check_text(violations, "message", "Message", request.message, None)
    return violations


def validate_fixed_count(request: FixedCountRequest) -> list[FieldViolation]:
    violations: list[FieldViolation] = []
    _check_prefixed(violations, request.topic, request.key_prefix, request.value_prefix)
    if request.count <= 0:
        violations.append(
            FieldViolation("numberOfMessages", "Number of messages must be greater than 0")
        )
    return violations


def validate_range(request: RangeRequest) -> list[FieldViolation]:
    violations: list[FieldViolation] = []
    _check_prefixed(violations, request.topic, request.key_prefix, request.value_prefix)
    if request.start_index < 1:
        violations.append(FieldViolation("startIndex", "Start index must be at least 1"))
    if request.end_index < 1:
        violations.append(FieldViolation("endIndex", "End index must be at least 1"))
    if request.start_index > request.end_index:
        violations.append(
            FieldViolation("startIndex", "Start index must be less than or equal to end index")
        )
    return violations


def _expand(topic: str, key_prefix: str, value_prefix: str, start: int, end: int) -> Iterator[MessageDescriptor]:
    for i in range(start, end + 1):
        yield MessageDescriptor(topic, f"{key_prefix}-{i}", f"{value_prefix}-{i}")


def normalize(request: SingleRequest | FixedCountRequest | RangeRequest) -> NormalizedRequest:
    """Validate a publish request and expand it into descriptors.

    Raises:
        ValidationError: the request has one or more field violations.
        TypeError: ``request`` is not one of the publish request types.
    """
    if isinstance(request, SingleRequest):
        violations = validate_single(request)
        if violations:
            raise ValidationError(violations)
        descriptor = MessageDescriptor(request.topic, request.key, request.message)
        return NormalizedRequest(descriptors=[descriptor], total=1)

    if isinstance(request, FixedCountRequest):
        violations = validate_fixed_count(request)
        if violations:
            raise ValidationError(violations)
        return NormalizedRequest(
            descriptors=_expand(request.topic, request.key_prefix, request.value_prefix, 1, request.count),
            total=request.count,
        )

    if isinstance(request, RangeRequest):
        violations = validate_range(request)
        if violations:
            raise ValidationError(violations)
        return NormalizedRequest(
            descriptors=_expand(
                request.topic,
                request.key_prefix,
                request.value_prefix,
                request.start_index,
                request.end_index,
            ),
            total=request.end_index - request.start_index + 1,
        )

    raise TypeError(f"Unsupported publish request type: {type(request).__name__}")


__all__ = [
    "MessageDescriptor",
    "SingleRequest",
    "FixedCountRequest",
    "RangeRequest",
    "FieldViolation",
    "NormalizedRequest",
    "validate_single",
    "validate_fixed_count",
    "validate_range",
    "normalize",
]

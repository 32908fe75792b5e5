"""Publish request normalization and dispatch."""

from kafka_gateway.dispatch.coordinator import (
    DeliveryMode,
    DispatchCoordinator,
    DispatchReport,
    DispatchStatus,
    MessageSender,
)
from kafka_gateway.dispatch.normalizer import (
    FieldViolation,
    FixedCountRequest,
    MessageDescriptor,
    NormalizedRequest,
    RangeRequest,
    SingleRequest,
    normalize,
    validate_fixed_count,
    validate_range,
    validate_single,
)

__all__ = [
    "DeliveryMode",
    "DispatchCoordinator",
    "DispatchReport",
    "DispatchStatus",
    "MessageSender",
    "FieldViolation",
    "FixedCountRequest",
    "MessageDescriptor",
    "NormalizedRequest",
    "RangeRequest",
    "SingleRequest",
    "normalize",
    "validate_fixed_count",
    "validate_range",
    "validate_single",
]

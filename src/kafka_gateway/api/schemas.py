"""Request body schemas for the publish endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from kafka_gateway.dispatch.normalizer import FieldViolation, RangeRequest


class CustomMessageBody(BaseModel):
    """JSON body of ``POST /publish/custom``.

    Only types are checked here. Blank fields, length bounds and index
    ordering are reported by ``validate_range`` so that every violation is
    returned together.

    Example:
        >>> body = CustomMessageBody.model_validate(
        ...     {"topic": "t", "key": "k", "messagePrefix": "m", "startIndex": 3, "endIndex": 5}
        ... )
        >>> body.to_request().end_index
        5
    """

    model_config = ConfigDict(populate_by_name=True)

    topic: str | None = Field(default=None, description="Kafka topic name")
    key: str | None = Field(default=None, description="Message key prefix")
    message_prefix: str | None = Field(
        default=None, alias="messagePrefix", description="Message content prefix"
    )
    # Absent indexes default to 0 so they are reported as below the minimum
    start_index: int = Field(default=0, alias="startIndex", description="First index, inclusive")
    end_index: int = Field(default=0, alias="endIndex", description="Last index, inclusive")

    def to_request(self) -> RangeRequest:
        return RangeRequest(
            topic=self.topic,
            key_prefix=self.key,
            value_prefix=self.message_prefix,
            start_index=self.start_index,
            end_index=self.end_index,
        )


def violations_from_pydantic(errors: list[dict]) -> list[FieldViolation]:
    """Map pydantic error dicts to ``FieldViolation`` using the JSON field names."""
    violations = []
    for error in errors:
        loc = error.get("loc") or ("body",)
        violations.append(FieldViolation(str(loc[0]), error.get("msg", "Invalid value")))
    return violations


__all__ = ["CustomMessageBody", "violations_from_pydantic"]

"""
Publish endpoints.

    POST {prefix}/publish/batch   topic, key, messagePrefix, numberOfMessages
    POST {prefix}/publish/single  topic, key, message
    POST {prefix}/publish/custom  JSON {topic, key, messagePrefix, startIndex, endIndex}

Batch and single read their parameters from the query string, falling back
to a form-encoded body.
"""

import asyncio
import logging
import re
import time

import pydantic
from aiohttp import web

from core.errors.exceptions import ValidationError
from core.logging import log_exception
from kafka_gateway.api.keys import COORDINATOR_KEY
from kafka_gateway.api.schemas import CustomMessageBody, violations_from_pydantic
from kafka_gateway.common.metrics import record_dispatch
from kafka_gateway.dispatch.coordinator import DeliveryMode, DispatchReport
from kafka_gateway.dispatch.normalizer import (
    FieldViolation,
    FixedCountRequest,
    SingleRequest,
    normalize,
)

logger = logging.getLogger(__name__)

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


class MissingParameterError(ValueError):
    pass


async def _read_params(request: web.Request) -> dict[str, str]:
    params = dict(request.query)
    if request.content_type in _FORM_CONTENT_TYPES and request.can_read_body:
        form = await request.post()
        for name, value in form.items():
            if isinstance(value, str):
                params.setdefault(name, value)
    return params


def _require(params: dict[str, str], name: str) -> str:
    if name not in params:
        raise MissingParameterError(f"Required parameter '{name}' is not present")
    return params[name]


def _require_int(params: dict[str, str], name: str) -> int:
    raw = _require(params, name)
    if not _INTEGER_PATTERN.fullmatch(raw):
        raise MissingParameterError(f"Parameter '{name}' must be an integer, got '{raw}'")
    return int(raw)


def _report_response(report: DispatchReport, include_counts: bool) -> web.Response:
    status = 200 if report.succeeded else 500
    return web.json_response(report.to_dict(include_counts=include_counts), status=status)


async def publish_batch(request: web.Request) -> web.Response:
    params = await _read_params(request)
    try:
        topic = _require(params, "topic")
        key = _require(params, "key")
        message_prefix = _require(params, "messagePrefix")
        count = _require_int(params, "numberOfMessages")
    except MissingParameterError as e:
        return web.Response(status=400, text=str(e))

    logger.info(
        f"Attempting to publish batch messages - Topic: {topic}, Number of Messages: {count}",
        extra={"topic": topic, "number_of_messages": count},
    )

    try:
        normalized = normalize(FixedCountRequest(topic, key, message_prefix, count))
    except ValidationError as e:
        logger.warning(
            f"Invalid batch request: {e}",
            extra={"violations": e.to_dict(), "number_of_messages": count},
        )
        return web.Response(status=400, text=str(e))

    start_time = time.perf_counter()
    report = await request.app[COORDINATOR_KEY].dispatch(normalized.descriptors, normalized.total)
    record_dispatch("batch", report.status.value, time.perf_counter() - start_time)

    if report.succeeded:
        logger.info(
            f"Batch message publishing completed - Success: {report.success_count}, "
            f"Failure: {report.failure_count}",
            extra={"success_count": report.success_count, "failure_count": report.failure_count},
        )
    return _report_response(report, include_counts=True)


async def publish_single(request: web.Request) -> web.Response:
    params = await _read_params(request)
    try:
        topic = _require(params, "topic")
        key = _require(params, "key")
        message = _require(params, "message")
    except MissingParameterError as e:
        return web.Response(status=400, text=str(e))

    logger.info(
        f"Attempting to publish single message - Topic: {topic}, Key: {key}",
        extra={"topic": topic, "key": key},
    )

    try:
        normalize(SingleRequest(topic, key, message))
    except ValidationError as e:
        return web.Response(status=400, text=str(e))

    coordinator = request.app[COORDINATOR_KEY]
    start_time = time.perf_counter()
    try:
        future = await coordinator.sender.send_async(topic, key, message)
        if coordinator.delivery_mode == DeliveryMode.CONFIRMED:
            await asyncio.wait_for(future, timeout=coordinator.batch_timeout_seconds)
    except Exception as e:
        record_dispatch("single", "Failed", time.perf_counter() - start_time)
        log_exception(logger, e, f"Failed to send single message to topic: {topic}", topic=topic, key=key)
        return web.Response(status=500, text=f"Failed to send message: {e}")

    record_dispatch("single", "Completed", time.perf_counter() - start_time)
    logger.info(
        f"Successfully published single message to topic: {topic}",
        extra={"topic": topic, "key": key},
    )
    return web.Response(text="Message sent to Kafka")


def _invalid_response(violations: list[FieldViolation]) -> web.Response:
    return web.json_response(
        {
            "status": "Invalid",
            "errors": [{"field": v.field, "message": v.message} for v in violations],
        },
        status=400,
    )


async def publish_custom(request: web.Request) -> web.Response:
    try:
        payload = await request.json()
    except ValueError:
        # JSONDecodeError or UnicodeDecodeError
        return _invalid_response([FieldViolation("body", "Malformed JSON request body")])

    if not isinstance(payload, dict):
        return _invalid_response([FieldViolation("body", "Request body must be a JSON object")])

    try:
        body = CustomMessageBody.model_validate(payload)
    except pydantic.ValidationError as e:
        return _invalid_response(violations_from_pydantic(e.errors()))

    logger.info(
        f"Attempting to publish custom messages - Topic: {body.topic}, "
        f"Start Index: {body.start_index}, End Index: {body.end_index}",
        extra={"topic": body.topic, "start_index": body.start_index, "end_index": body.end_index},
    )

    try:
        normalized = normalize(body.to_request())
    except ValidationError as e:
        logger.warning("Invalid custom request", extra={"violations": e.to_dict()})
        return _invalid_response(e.violations)

    start_time = time.perf_counter()
    report = await request.app[COORDINATOR_KEY].dispatch(normalized.descriptors, normalized.total)
    record_dispatch("custom", report.status.value, time.perf_counter() - start_time)

    if report.succeeded:
        logger.info(
            f"Custom message publishing completed - Success: {report.success_count}, "
            f"Failure: {report.failure_count}",
            extra={"success_count": report.success_count, "failure_count": report.failure_count},
        )
    return _report_response(report, include_counts=False)


def setup_routes(app: web.Application, path_prefix: str) -> None:
    prefix = path_prefix.rstrip("/")
    app.router.add_post(f"{prefix}/publish/batch", publish_batch)
    app.router.add_post(f"{prefix}/publish/single", publish_single)
    app.router.add_post(f"{prefix}/publish/custom", publish_custom)


__all__ = ["setup_routes", "publish_batch", "publish_single", "publish_custom"]

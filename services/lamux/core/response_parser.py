"""
Lamux Response Parsing Module
"""

import base64
import binascii
import json
from typing import List, Tuple

from pydantic import ValidationError

from ..models.aws_v2 import LambdaProxyResponse
from ..models.result import UpstreamResponse
from .exceptions import BadUpstreamResponseError

# Recomputed or owned by the HTTP server, never copied from the function.
_DROPPED_HEADERS = {
    "connection",
    "content-length",
    "keep-alive",
    "transfer-encoding",
    "upgrade",
}


def parse_lambda_response(payload: bytes) -> UpstreamResponse:
    """
    Parse the invocation payload and convert it to an HTTP response.

    Args:
        payload: raw payload returned by Lambda Invoke

    Returns:
        UpstreamResponse with headers in envelope order:
        `headers`, then `multiValueHeaders`, then `cookies` as Set-Cookie.
        A JSON value without `statusCode` is passed through as a 200
        application/json body, as function URLs do.

    Raises:
        BadUpstreamResponseError: payload is not a usable response
    """
    try:
        response_data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadUpstreamResponseError(str(e)) from e

    if not isinstance(response_data, dict) or "statusCode" not in response_data:
        return UpstreamResponse(
            status_code=200,
            headers=[("content-type", "application/json")],
            body=payload,
        )

    try:
        envelope = LambdaProxyResponse.model_validate(response_data)
    except ValidationError as e:
        raise BadUpstreamResponseError(
            f"invalid response object ({e.error_count()} errors)"
        ) from e

    if not 100 <= envelope.statusCode <= 599:
        raise BadUpstreamResponseError(f"invalid status code {envelope.statusCode}")

    body = (envelope.body or "").encode("utf-8")
    if envelope.isBase64Encoded:
        try:
            body = base64.b64decode(body, validate=True)
        except binascii.Error as e:
            raise BadUpstreamResponseError(f"invalid base64 body: {e}") from e

    headers: List[Tuple[str, str]] = []
    for name, value in envelope.headers.items():
        headers.append((name, value))
    for name, values in envelope.multiValueHeaders.items():
        headers.extend((name, value) for value in values)
    headers.extend(("set-cookie", cookie) for cookie in envelope.cookies)

    kept = [(name, value) for name, value in headers if name.lower() not in _DROPPED_HEADERS]
    return UpstreamResponse(status_code=envelope.statusCode, headers=kept, body=body)

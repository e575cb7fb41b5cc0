import base64
import json
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List
from urllib.parse import parse_qsl

from services.lamux.core.exceptions import RequestEncodingError
from services.lamux.models.aws_v2 import (
    APIGatewayV2HTTPEvent,
    RequestContext,
    RequestContextHTTP,
)
from services.lamux.models.context import InputContext


class EventBuilder(ABC):
    @abstractmethod
    def build(self, context: InputContext) -> Dict[str, Any]:
        """
        Build an event dictionary from an InputContext.
        """
        pass

    def encode(self, context: InputContext) -> bytes:
        """
        Build the event and serialize it as the invocation payload.

        Raises:
            RequestEncodingError: the request cannot be represented as an event
        """
        try:
            return json.dumps(self.build(context)).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise RequestEncodingError(e) from e


def _join_values(pairs: List[tuple]) -> Dict[str, str]:
    """Merge repeated keys into one comma-separated value, keeping arrival order."""
    merged: Dict[str, List[str]] = {}
    for key, value in pairs:
        merged.setdefault(key, []).append(value)
    return {key: ",".join(values) for key, values in merged.items()}


class V2HttpEventBuilder(EventBuilder):
    """Lambda function URL (payload format 2.0) compatible event builder."""

    def build(self, context: InputContext) -> Dict[str, Any]:
        """
        Build a function URL compatible event object from context.
        """
        header_pairs = [(name.lower(), value) for name, value in context.headers]

        # Cookies travel in their own array, not in headers.
        cookies: List[str] = []
        for name, value in header_pairs:
            if name == "cookie":
                cookies.extend(c.strip() for c in value.split(";") if c.strip())
        headers = _join_values([(n, v) for n, v in header_pairs if n != "cookie"])

        query_params = _join_values(
            parse_qsl(context.raw_query_string, keep_blank_values=True)
        )

        # Check if content-encoded (gzip etc.).
        is_base64 = bool(headers.get("content-encoding"))
        body = context.body
        if not body:
            body_content = None
        elif is_base64:
            body_content = base64.b64encode(body).decode("ascii")
        else:
            try:
                body_content = body.decode("utf-8")
            except UnicodeDecodeError:
                body_content = base64.b64encode(body).decode("ascii")
                is_base64 = True

        now = time.time()
        domain_prefix = context.host.split(".", 1)[0]

        event_model = APIGatewayV2HTTPEvent(
            rawPath=context.path,
            rawQueryString=context.raw_query_string,
            cookies=cookies or None,
            headers=headers,
            queryStringParameters=query_params or None,
            requestContext=RequestContext(
                apiId=domain_prefix,
                domainName=context.host,
                domainPrefix=domain_prefix,
                http=RequestContextHTTP(
                    method=context.method,
                    path=context.path,
                    protocol=context.protocol,
                    sourceIp=context.source_ip,
                    userAgent=headers.get("user-agent", ""),
                ),
                requestId=context.request_id or str(uuid.uuid4()),
                time=datetime.fromtimestamp(now, tz=timezone.utc).strftime(
                    "%d/%b/%Y:%H:%M:%S +0000"
                ),
                timeEpoch=int(now * 1000),
            ),
            body=body_content,
            isBase64Encoded=is_base64,
        )

        return event_model.model_dump(exclude_none=True)

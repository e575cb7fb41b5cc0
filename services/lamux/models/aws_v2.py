# services/lamux/models/aws_v2.py

"""
Pydantic models for the Lambda function URL / API Gateway HTTP API
payload format 2.0.

Reference: https://docs.aws.amazon.com/lambda/latest/dg/urls-invocation.html#urls-payloads

This module provides Pydantic models to build request events and to
validate the response objects returned by the invoked function.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class RequestContextHTTP(BaseModel):
    """HTTP description inside the request context."""

    method: str
    path: str
    protocol: str = "HTTP/1.1"
    sourceIp: str = ""
    userAgent: str = ""


class RequestContext(BaseModel):
    """Request Context object (payload format 2.0)."""

    accountId: str = "anonymous"
    apiId: str = ""
    domainName: str = ""
    domainPrefix: str = ""
    http: RequestContextHTTP
    requestId: str
    routeKey: str = "$default"
    stage: str = "$default"
    time: str
    timeEpoch: int


class APIGatewayV2HTTPEvent(BaseModel):
    """
    Lambda function URL (payload format 2.0) Event Structure

    Defines the structure of the event object received by Lambda functions.
    Use model_dump(exclude_none=True) to convert to a dict.
    """

    version: str = "2.0"
    routeKey: str = "$default"
    rawPath: str
    rawQueryString: str = ""
    cookies: Optional[List[str]] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    queryStringParameters: Optional[Dict[str, str]] = None
    requestContext: RequestContext
    body: Optional[str] = None
    isBase64Encoded: bool = False


class LambdaProxyResponse(BaseModel):
    """
    Response object returned by a function behind a function URL.

    `multiValueHeaders` is accepted for handlers written against the
    REST API (payload format 1.0) response shape.
    """

    statusCode: int = 200
    headers: Dict[str, str] = Field(default_factory=dict)
    multiValueHeaders: Dict[str, List[str]] = Field(default_factory=dict)
    cookies: List[str] = Field(default_factory=list)
    body: Optional[str] = None
    isBase64Encoded: bool = False

    @field_validator("headers", "multiValueHeaders", "cookies", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any, info: ValidationInfo) -> Any:
        # Go handlers marshal unset maps and slices as null.
        if value is None:
            return [] if info.field_name == "cookies" else {}
        return value

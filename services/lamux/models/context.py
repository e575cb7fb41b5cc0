"""
Input context models.

Encapsulates all data required to build an invocation payload.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class InputContext(BaseModel):
    """
    Rich context representing an incoming request.

    This model decouples the event builder from FastAPI's Request object.
    Headers keep their arrival order and repeated names.
    """

    method: str
    path: str
    raw_query_string: str = ""
    headers: List[Tuple[str, str]] = Field(default_factory=list)
    body: bytes = b""
    host: str = ""
    source_ip: str = ""
    protocol: str = "HTTP/1.1"
    request_id: Optional[str] = None

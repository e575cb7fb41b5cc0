"""
Where: services/lamux/core/host_resolver.py
What: Derive the Lambda function name and alias from the request host.
Why: Keep host-based routing a pure function at the proxy boundary.
"""

import re
from typing import Mapping

from ..config import FUNCTION_NAME_PATTERN, WILDCARD_FUNCTION_NAME
from ..models.target import RoutedTarget
from .exceptions import (
    InvalidAliasError,
    InvalidDomainSuffixError,
    InvalidFunctionNameError,
    InvalidHostFormatError,
)

# Aliases exclude "-" so they split unambiguously from function names.
ALIAS_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")

FORWARDED_HOST_HEADER = "x-forwarded-host"


def strip_port(host: str) -> str:
    """
    Drop a trailing `:port`.

    `[::1]:8080` becomes `::1`; a bare host or an unbracketed IPv6
    address is returned unchanged.
    """
    if host.startswith("["):
        end = host.find("]:")
        if end != -1:
            return host[1:end]
        return host
    if host.count(":") == 1:
        return host.split(":", 1)[0]
    return host


def effective_host(headers: Mapping[str, str], host: str) -> str:
    """Prefer a non-empty X-Forwarded-Host over the request's own host."""
    forwarded = headers.get(FORWARDED_HOST_HEADER) or ""
    return strip_port(forwarded or host or "")


def resolve_target(host: str, domain_suffix: str, function_name: str) -> RoutedTarget:
    """
    Resolve `(function_name, alias)` for a port-less host.

    Fixed mode (`function_name` is a literal):
    - `{alias}.{domain_suffix}`

    Wildcard mode (`function_name == "*"`):
    - `{alias}-{function}.{domain_suffix}`, split on the first hyphen, so
      `foo-bar-baz.example.net` is alias `foo`, function `bar-baz`.
    """
    if not host.endswith(domain_suffix):
        raise InvalidDomainSuffixError(domain_suffix)

    target = host.removesuffix("." + domain_suffix)

    if function_name != WILDCARD_FUNCTION_NAME:
        if not ALIAS_PATTERN.fullmatch(target):
            raise InvalidAliasError(ALIAS_PATTERN.pattern)
        return RoutedTarget(function_name=function_name, alias=target)

    parts = target.split("-", 1)
    if len(parts) != 2:
        raise InvalidHostFormatError(domain_suffix)
    alias, name = parts
    if not ALIAS_PATTERN.fullmatch(alias):
        raise InvalidAliasError(ALIAS_PATTERN.pattern)
    if not FUNCTION_NAME_PATTERN.fullmatch(name):
        raise InvalidFunctionNameError(FUNCTION_NAME_PATTERN.pattern)
    return RoutedTarget(function_name=name, alias=alias)

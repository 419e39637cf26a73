"""Request parsing and the JSON response envelope shared by all controllers.

Every response body has the shape::

    {"success": true, "data": ..., "message": "..."}
    {"success": false, "error": "...", "error_code": "...", "message": "..."}
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from flask import Request, jsonify

from ..core.exceptions import ValidationError
from .datetime_utils import format_date, parse_optional_date

_IP_HEADERS = (
    "Client-Ip",
    "X-Forwarded-For",
    "X-Forwarded",
    "X-Forwarded-For-Ip",
    "Forwarded-For",
    "Forwarded",
)


def json_response(success: bool, payload: Any = None, *, message: Optional[str] = None, error_code: Optional[str] = None, status: int = 200):
    body: dict[str, Any] = {"success": bool(success)}
    if success and payload is not None:
        body["data"] = payload
    if not success:
        body["error"] = payload
        if error_code:
            body["error_code"] = error_code
    if message:
        body["message"] = message

    response = jsonify(body)
    response.status_code = status
    return response


def success(data: Any = None, message: Optional[str] = None, status: int = 200):
    return json_response(True, data, message=message, status=status)


def error(message: str, error_code: Optional[str] = None, status: int = 400):
    return json_response(False, message, error_code=error_code, status=status)


def read_json_body(request: Request, *, required: bool = True) -> dict:
    """Decode the JSON request body.

    With ``required=False`` an empty or undecodable body yields ``{}``.
    """
    data = request.get_json(silent=True)
    if data is None:
        if required:
            raise ValidationError("Invalid JSON input.", "INVALID_JSON")
        return {}
    if not isinstance(data, dict):
        if required:
            raise ValidationError("Invalid JSON input.", "INVALID_JSON")
        return {}
    return data


@dataclass(frozen=True)
class Pagination:
    limit: int
    offset: int

    def describe(self, total: int) -> dict:
        return {
            "total": int(total),
            "limit": self.limit,
            "offset": self.offset,
            "has_more": (self.offset + self.limit) < int(total),
        }


def _to_int(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def get_pagination_params(args: Mapping[str, Any], default_limit: int = 50, max_limit: int = 100) -> Pagination:
    """Clamp ``limit`` to ``[1, max_limit]`` and ``offset`` to ``>= 0``."""
    limit = _to_int(args.get("limit"), default_limit)
    offset = _to_int(args.get("offset"), 0)
    return Pagination(limit=max(1, min(limit, max_limit)), offset=max(0, offset))


@dataclass(frozen=True)
class DateRange:
    start_date: Optional[date]
    end_date: Optional[date]

    def describe(self) -> dict:
        return {"start_date": format_date(self.start_date), "end_date": format_date(self.end_date)}


def get_date_range(args: Mapping[str, Any]) -> DateRange:
    return DateRange(
        start_date=parse_optional_date(args.get("start_date"), "start_date"),
        end_date=parse_optional_date(args.get("end_date"), "end_date"),
    )


def optional_int_arg(args: Mapping[str, Any], name: str, *, error_code: str, label: str) -> Optional[int]:
    raw = args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label}.", error_code)


def _is_public_ip(value: str) -> bool:
    try:
        ip = ipaddress.ip_address(value)
    except ValueError:
        return False
    return not (ip.is_private or ip.is_reserved or ip.is_loopback or ip.is_link_local or ip.is_unspecified)


def get_client_ip(request: Request) -> str:
    """First public address found in proxy headers, else the socket peer."""
    for header in _IP_HEADERS:
        raw = request.headers.get(header)
        if not raw:
            continue
        for candidate in raw.split(","):
            candidate = candidate.strip()
            if _is_public_ip(candidate):
                return candidate
    return request.remote_addr or "0.0.0.0"

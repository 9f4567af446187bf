"""Nginx access log parser."""

import re
from datetime import datetime
from typing import Optional, Sequence
from urllib.parse import urlsplit

from pydantic import Field, ValidationError as PydanticValidationError

from logcanon.exceptions import DeserializationError
from logcanon.models import CoreRecord
from logcanon.timestamp import NginxTime
from logcanon.validation import constrained
from .base import LogParser, add_host_indicator

# log_format combined
COMBINED_PATTERN = re.compile(
    r'^(?P<remote_address>\S+) - (?P<remote_user>\S+) \[(?P<time>[^\]]+)\] '
    r'"(?P<request>[^"]*)" (?P<status>\d{3}) (?P<body_bytes_sent>\d+|-)'
    r'(?: "(?P<http_referer>[^"]*)" "(?P<http_user_agent>[^"]*)")?\s*$'
)


@constrained(remote_address="required", status="required")
class NginxAccess(CoreRecord):
    """One line of an nginx access log in the combined format."""

    remote_address: Optional[str] = Field(default=None, alias="remoteAddr", title="RemoteAddr")
    remote_user: Optional[str] = Field(default=None, alias="remoteUser")
    time: Optional[NginxTime] = None
    method: Optional[str] = None
    path: Optional[str] = None
    protocol: Optional[str] = None
    request: Optional[str] = None
    status: Optional[int] = Field(default=None, ge=100, le=599)
    body_bytes_sent: Optional[int] = Field(default=None, alias="bodyBytesSent")
    http_referer: Optional[str] = Field(default=None, alias="httpReferer")
    http_user_agent: Optional[str] = Field(default=None, alias="httpUserAgent")


class NginxAccessParser(LogParser):
    """Parser for nginx access logs."""

    LOG_TYPE = "Nginx.Access"
    RECORD_TYPE = NginxAccess
    DESCRIPTION = (
        "Access logs for nginx servers in the combined format. "
        "Reference: http://nginx.org/en/docs/http/ngx_http_log_module.html#log_format"
    )

    def decode(self, raw: str) -> Sequence[CoreRecord]:
        match = COMBINED_PATTERN.match(raw)
        if match is None:
            raise DeserializationError("line does not match the nginx combined log format")

        fields = {key: value for key, value in match.groupdict().items() if value not in (None, "-")}
        parts = fields.get("request", "").split()
        if len(parts) == 3:
            fields["method"], fields["path"], fields["protocol"] = parts

        try:
            return [NginxAccess.model_validate(fields)]
        except PydanticValidationError as e:
            raise DeserializationError(str(e)) from e

    def event_time(self, record: NginxAccess) -> Optional[datetime]:
        return record.time

    def extract_indicators(self, record: NginxAccess) -> None:
        add_host_indicator(record.indicators, record.remote_address)
        if record.http_referer:
            try:
                referer_host = urlsplit(record.http_referer).hostname
            except ValueError:
                return
            add_host_indicator(record.indicators, referer_host)

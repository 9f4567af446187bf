"""Fluentd syslog parsers (RFC3164 and RFC5424)."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from logcanon.models import CoreRecord
from logcanon.timestamp import FluentdTime
from logcanon.validation import constrained
from .base import LogParser, add_host_indicator


@constrained(priority="required")
class RFC3164(CoreRecord):
    """Fluentd syslog record for the RFC3164 (BSD syslog) format."""

    priority: Optional[int] = Field(
        default=None, alias="pri", ge=0, le=255,
        description="Facility * 8 + Severity. Lower values are more important.",
    )
    hostname: Optional[str] = Field(
        default=None, alias="host",
        description="Machine that originally sent the syslog message.",
    )
    ident: Optional[str] = Field(
        default=None, description="Device or application that originated the message.",
    )
    proc_id: Optional[str] = Field(default=None, alias="pid", title="ProcID")
    message: Optional[str] = Field(default=None)
    timestamp: Optional[FluentdTime] = Field(default=None, alias="time")
    tag: Optional[str] = Field(default=None)


@constrained(priority="required")
class RFC5424(CoreRecord):
    """Fluentd syslog record for the RFC5424 format."""

    priority: Optional[int] = Field(
        default=None, alias="pri", ge=0, le=255,
        description="Facility * 8 + Severity. Lower values are more important.",
    )
    hostname: Optional[str] = Field(
        default=None, alias="host",
        description="Machine that originally sent the syslog message.",
    )
    ident: Optional[str] = Field(
        default=None, description="Device or application that originated the message.",
    )
    proc_id: Optional[str] = Field(default=None, alias="pid", title="ProcID")
    msg_id: Optional[str] = Field(
        default=None, alias="msgid", title="MsgID",
        description="Type of message, e.g. 'TCPIN' for incoming firewall traffic.",
    )
    extra_data: Optional[str] = Field(
        default=None, alias="extradata", description="Structured data as a string.",
    )
    message: Optional[str] = Field(default=None)
    timestamp: Optional[FluentdTime] = Field(default=None, alias="time")
    tag: Optional[str] = Field(default=None)


class _FluentdSyslogParser(LogParser):

    def event_time(self, record: CoreRecord) -> Optional[datetime]:
        return record.timestamp

    def extract_indicators(self, record: CoreRecord) -> None:
        # Hostname should be a FQDN but may be an IP address (RFC3164 6.2.4)
        add_host_indicator(record.indicators, record.hostname)


class RFC3164Parser(_FluentdSyslogParser):
    """Parser for fluentd syslog logs in the RFC3164 format."""

    LOG_TYPE = "Fluentd.Syslog3164"
    RECORD_TYPE = RFC3164
    DESCRIPTION = (
        "Fluentd syslog parser for the RFC3164 format (ie. BSD-syslog messages). "
        "Reference: https://docs.fluentd.org/parser/syslog#rfc3164-log"
    )


class RFC5424Parser(_FluentdSyslogParser):
    """Parser for fluentd syslog logs in the RFC5424 format."""

    LOG_TYPE = "Fluentd.Syslog5424"
    RECORD_TYPE = RFC5424
    DESCRIPTION = (
        "Fluentd syslog parser for the RFC5424 format. "
        "Reference: https://docs.fluentd.org/parser/syslog#rfc5424-log"
    )

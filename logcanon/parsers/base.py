"""Base parser interface."""

import ipaddress
import re
from abc import ABC
from datetime import datetime
from typing import Any, ClassVar, List, Optional, Sequence, Type

import structlog
from pydantic import ValidationError as PydanticValidationError

from logcanon.exceptions import DeserializationError, InvalidTimestamp
from logcanon.models import CoreRecord, IndicatorClass, Indicators
from logcanon.validation import ValidationErrors, get_validator

logger = structlog.get_logger(__name__)

INSTANCE_ID_PATTERN = re.compile(r"i-[0-9a-f]{8}(?:[0-9a-f]{9})?")


def add_host_indicator(indicators: Indicators, value: Optional[str]) -> None:
    """Add a host as an IP address if it parses as one, otherwise as a domain name.

    Every parser classifies hosts this way so indicator classes compare
    across log types.
    """
    if value is None:
        return
    value = str(value).strip()
    if not value:
        return
    try:
        ipaddress.ip_address(value)
    except ValueError:
        indicators.add(IndicatorClass.DOMAIN_NAME, value)
    else:
        indicators.add(IndicatorClass.IP_ADDRESS, value)


def extract_json_indicators(indicators: Indicators, value: Any) -> None:
    """Walk free-form JSON (request parameters and the like) for ARNs and instance ids."""
    if isinstance(value, dict):
        for key, item in value.items():
            if isinstance(item, str) and key.lower().endswith("instanceid"):
                if INSTANCE_ID_PATTERN.fullmatch(item):
                    indicators.add(IndicatorClass.AWS_INSTANCE_ID, item)
                continue
            extract_json_indicators(indicators, item)
    elif isinstance(value, list):
        for item in value:
            extract_json_indicators(indicators, item)
    elif isinstance(value, str) and value.startswith("arn:"):
        indicators.add(IndicatorClass.AWS_ARN, value)


class LogParser(ABC):
    """Parses one raw log format into canonical events.

    Parsers hold no state between calls. ``parse`` never raises for bad
    input: records that fail to deserialize, carry a malformed timestamp or
    fail validation are logged and dropped.

    Subclasses set ``LOG_TYPE`` and ``RECORD_TYPE`` and usually override
    :meth:`event_time` and :meth:`extract_indicators`. Formats that are not a
    single JSON object per line override :meth:`decode` as well.
    """

    LOG_TYPE: ClassVar[str]
    RECORD_TYPE: ClassVar[Type[CoreRecord]]
    DESCRIPTION: ClassVar[str] = ""

    def new(self) -> "LogParser":
        """Return a fresh, independent parser of the same type."""
        return type(self)()

    def log_type(self) -> str:
        return self.LOG_TYPE

    def parse(self, raw: str) -> List[CoreRecord]:
        """Parse one raw input into zero or more canonical events."""
        try:
            records = self.decode(raw)
        except DeserializationError as e:
            logger.debug("failed_to_parse_log", log_type=self.LOG_TYPE, error=str(e))
            return []

        validator = get_validator()
        for record in records:
            try:
                record.finalize(self.LOG_TYPE, self.event_time(record))
                self.extract_indicators(record)
                validator.struct(record)
            except (InvalidTimestamp, ValidationErrors) as e:
                logger.debug("failed_to_validate_log", log_type=self.LOG_TYPE, error=str(e))
                return []

        return list(records)

    def decode(self, raw: str) -> Sequence[CoreRecord]:
        """Deserialize ``raw`` into format records.

        Raises:
            DeserializationError: If ``raw`` does not match the record schema
        """
        try:
            return [self.RECORD_TYPE.model_validate_json(raw)]
        except PydanticValidationError as e:
            raise DeserializationError(str(e)) from e

    def event_time(self, record: CoreRecord) -> Optional[datetime]:
        """Time the event happened; None falls back to ingestion time."""
        return None

    def extract_indicators(self, record: CoreRecord) -> None:
        """Route record fields into ``record.indicators``."""
        pass

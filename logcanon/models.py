"""Canonical event model shared by every log parser."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from logcanon.exceptions import RecordFinalizedError
from logcanon.timestamp import format_timestamp, to_utc
from logcanon.validation import constrained


class IndicatorClass(str, Enum):
    """Classes of values extracted for correlation across log types."""
    IP_ADDRESS = "ip_address"
    DOMAIN_NAME = "domain_name"
    MD5_HASH = "md5_hash"
    SHA1_HASH = "sha1_hash"
    SHA256_HASH = "sha256_hash"
    AWS_ARN = "aws_arn"
    AWS_ACCOUNT_ID = "aws_account_id"
    AWS_INSTANCE_ID = "aws_instance_id"
    AWS_TAG = "aws_tag"

    @property
    def event_key(self) -> str:
        """Key used for this class in a rendered canonical event."""
        if self.value.endswith(("s", "sh")):
            return f"p_any_{self.value}es"
        return f"p_any_{self.value}s"


class Indicators(BaseModel):
    """Duplicate-free sets of indicator values, keyed by class.

    Sets only grow. Adding a value that is already present, or a blank
    value, does nothing.
    """

    sets: Dict[IndicatorClass, Set[str]] = Field(default_factory=dict)

    def add(self, indicator_class: IndicatorClass, value: Optional[str]) -> None:
        if value is None:
            return
        value = str(value).strip()
        if not value:
            return
        self.sets.setdefault(IndicatorClass(indicator_class), set()).add(value)

    def extend(self, indicator_class: IndicatorClass, values: Iterable[Optional[str]]) -> None:
        for value in values:
            self.add(indicator_class, value)

    def get(self, indicator_class: IndicatorClass) -> FrozenSet[str]:
        return frozenset(self.sets.get(IndicatorClass(indicator_class), ()))

    def classes(self) -> List[IndicatorClass]:
        return [cls for cls in IndicatorClass if self.sets.get(cls)]

    def to_dict(self) -> Dict[str, List[str]]:
        """Sorted values for every non-empty class, keyed by event key."""
        return {cls.event_key: sorted(self.sets[cls]) for cls in self.classes()}

    def __contains__(self, value: object) -> bool:
        return any(value in members for members in self.sets.values())

    def __len__(self) -> int:
        return sum(len(members) for members in self.sets.values())


_CORE_FIELDS = frozenset({"log_type", "event_time", "parse_time", "row_id"})
# keys raw input may not populate
_RESERVED_KEYS = _CORE_FIELDS | {"indicators", "p_log_type", "p_event_time", "p_parse_time", "p_row_id"}


@constrained(log_type="required", event_time="required")
class CoreRecord(BaseModel):
    """Envelope carried by every canonical event.

    Format records subclass this and add their own fields. A parser fills in
    the format fields, calls :meth:`finalize` once, adds indicators and then
    validates the record.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    log_type: Optional[str] = Field(default=None, alias="p_log_type", title="LogType")
    event_time: Optional[datetime] = Field(default=None, alias="p_event_time", title="EventTime")
    parse_time: Optional[datetime] = Field(default=None, alias="p_parse_time", title="ParseTime")
    row_id: Optional[str] = Field(default=None, alias="p_row_id", title="RowID")
    indicators: Indicators = Field(default_factory=Indicators, exclude=True)

    _finalized: bool = PrivateAttr(default=False)

    @model_validator(mode="before")
    @classmethod
    def drop_reserved_keys(cls, data: Any) -> Any:
        """Core fields are set by finalize, never by raw input."""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if key not in _RESERVED_KEYS}
        return data

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _CORE_FIELDS and self._finalized:
            raise RecordFinalizedError(f"{name} is immutable once the record is finalized")
        super().__setattr__(name, value)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def finalize(self, log_type: str, event_time: Optional[datetime]) -> "CoreRecord":
        """Set the core fields. May be called only once per record.

        A missing event time falls back to the time the record was parsed.
        """
        if self._finalized:
            raise RecordFinalizedError(f"record already finalized as {self.log_type}")

        parse_time = datetime.now(timezone.utc)
        self.log_type = log_type
        self.parse_time = parse_time
        self.event_time = to_utc(event_time) if event_time is not None else parse_time
        self.row_id = uuid.uuid4().hex
        self.indicators = Indicators()
        self._finalized = True
        return self

    def to_event(self) -> Dict[str, Any]:
        """Render the canonical event as a JSON-ready dict."""
        event = self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude=set(_CORE_FIELDS),
        )
        event["p_log_type"] = self.log_type
        event["p_row_id"] = self.row_id
        if self.event_time is not None:
            event["p_event_time"] = format_timestamp(self.event_time)
        if self.parse_time is not None:
            event["p_parse_time"] = format_timestamp(self.parse_time)
        event.update(self.indicators.to_dict())
        return event

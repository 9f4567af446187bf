"""Log parsers for the supported formats."""

from functools import lru_cache

from .base import LogParser, add_host_indicator, extract_json_indicators
from .registry import ParserFactory, ParserRegistry
from .fluentd import RFC3164Parser, RFC5424Parser
from .cloudtrail import CloudTrailParser
from .guardduty import GuardDutyParser
from .nginx import NginxAccessParser

BUILTIN_PARSERS = (
    RFC3164Parser,
    RFC5424Parser,
    CloudTrailParser,
    GuardDutyParser,
    NginxAccessParser,
)


@lru_cache(maxsize=None)
def default_registry() -> ParserRegistry:
    """Registry of every built-in parser, frozen after registration."""
    registry = ParserRegistry()
    for parser_class in BUILTIN_PARSERS:
        registry.register_parser(parser_class)
    return registry.freeze()


def get_parser(log_type: str) -> LogParser:
    """Fresh parser for ``log_type`` from the default registry."""
    return default_registry().get_parser(log_type)


__all__ = [
    "LogParser",
    "ParserFactory",
    "ParserRegistry",
    "add_host_indicator",
    "extract_json_indicators",
    "default_registry",
    "get_parser",
    "BUILTIN_PARSERS",
    "RFC3164Parser",
    "RFC5424Parser",
    "CloudTrailParser",
    "GuardDutyParser",
    "NginxAccessParser",
]

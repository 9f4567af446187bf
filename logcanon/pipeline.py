"""Ingestion pipeline: route raw lines to their parser and collect events."""

import concurrent.futures
import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import structlog

from logcanon.config import LogcanonConfig
from logcanon.exceptions import ConfigurationError
from logcanon.models import CoreRecord
from logcanon.parsers import ParserRegistry, default_registry

logger = structlog.get_logger(__name__)


@dataclass
class ParseReport:
    """Outcome of parsing one input."""
    log_type: str
    events: List[CoreRecord] = field(default_factory=list)
    lines_read: int = 0
    lines_dropped: int = 0

    @property
    def events_emitted(self) -> int:
        return len(self.events)


class IngestionPipeline:
    """Parses raw lines of one log type, concurrently.

    Each worker thread owns its own parser built with ``new()``, so no parser
    state is shared between threads.
    """

    def __init__(self, registry: Optional[ParserRegistry] = None, max_workers: int = 4):
        self.registry = registry if registry is not None else default_registry()
        self.max_workers = max_workers

    @classmethod
    def from_config(
        cls, config: LogcanonConfig, registry: Optional[ParserRegistry] = None
    ) -> "IngestionPipeline":
        """Pipeline limited to the log types enabled in ``config``."""
        registry = registry if registry is not None else default_registry()

        if config.log_types is not None:
            for log_type in config.log_types:
                if log_type not in registry:
                    raise ConfigurationError(f"Unknown log type in configuration: {log_type}")

            enabled = ParserRegistry()
            for log_type in registry.log_types():
                if config.allows(log_type):
                    enabled.register(log_type, registry.resolve(log_type))
            registry = enabled.freeze()

        return cls(registry=registry, max_workers=config.max_workers)

    def parse_lines(self, log_type: str, lines: Iterable[str]) -> ParseReport:
        """Parse every non-blank line; events keep the order of their lines.

        Raises:
            ParserNotFoundError: If no parser handles ``log_type``
        """
        prototype = self.registry.resolve(log_type)()
        local = threading.local()

        def parse_line(line: str) -> List[CoreRecord]:
            parser = getattr(local, "parser", None)
            if parser is None:
                parser = local.parser = prototype.new()
            return parser.parse(line)

        raw_lines = [line.rstrip("\r\n") for line in lines if line.strip()]
        report = ParseReport(log_type=log_type, lines_read=len(raw_lines))

        logger.info("parsing_started", log_type=log_type, total_lines=len(raw_lines))

        if self.max_workers <= 1:
            results = [parse_line(line) for line in raw_lines]
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(parse_line, raw_lines))

        for events in results:
            if events:
                report.events.extend(events)
            else:
                report.lines_dropped += 1

        logger.info(
            "parsing_completed",
            log_type=log_type,
            total_lines=report.lines_read,
            events=report.events_emitted,
            dropped=report.lines_dropped,
        )
        return report

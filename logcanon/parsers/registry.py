"""Log type to parser dispatch."""

from typing import Callable, Dict, List, Type

import structlog

from logcanon.exceptions import DuplicateLogTypeError, ParserNotFoundError, RegistryFrozenError
from logcanon.parsers.base import LogParser

logger = structlog.get_logger(__name__)

ParserFactory = Callable[[], LogParser]


class ParserRegistry:
    """Maps log types to parser factories.

    Every format is registered once at startup; after :meth:`freeze` the
    registry is read-only and lookups need no locking.
    """

    def __init__(self):
        self._factories: Dict[str, ParserFactory] = {}
        self._frozen = False

    def register(self, log_type: str, factory: ParserFactory) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"cannot register {log_type!r}: registry is frozen")
        if log_type in self._factories:
            raise DuplicateLogTypeError(f"log type {log_type!r} is already registered")
        self._factories[log_type] = factory
        logger.debug("parser_registered", log_type=log_type)

    def register_parser(self, parser_class: Type[LogParser]) -> Type[LogParser]:
        """Register a parser class under its own ``LOG_TYPE``."""
        self.register(parser_class.LOG_TYPE, parser_class)
        return parser_class

    def resolve(self, log_type: str) -> ParserFactory:
        try:
            return self._factories[log_type]
        except KeyError:
            raise ParserNotFoundError(log_type) from None

    def get_parser(self, log_type: str) -> LogParser:
        """Resolve ``log_type`` and build a fresh parser."""
        return self.resolve(log_type)()

    def log_types(self) -> List[str]:
        return sorted(self._factories)

    def freeze(self) -> "ParserRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, log_type: object) -> bool:
        return log_type in self._factories

    def __len__(self) -> int:
        return len(self._factories)

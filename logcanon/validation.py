"""Declarative field validation.

Rules are named predicates kept in a :class:`RuleRegistry`. Which rules apply
to which field lives in an explicit :class:`ConstraintTable` keyed by model
type and field name, declared next to each model with :func:`constrained`::

    @constrained(priority="required", hostname="ip")
    class SyslogRecord(CoreRecord):
        ...

:class:`Validator` walks a record depth first and collects one
:class:`FieldError` per failing field. For each field the ``required`` check
runs first; if it fails nothing else is checked. Otherwise the remaining
rules run in declaration order and only the first failure is reported.
Rules other than ``required`` are skipped when the value is None.
"""

import ipaddress
import re
from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel

from logcanon.exceptions import LogcanonError, RegistryFrozenError, UndefinedRuleError

REQUIRED = "required"


@dataclass(frozen=True)
class FieldLevel:
    """Value under test, the rule parameter and the model holding the field."""
    value: Any
    param: Optional[str] = None
    parent: Optional[BaseModel] = None


Predicate = Callable[[FieldLevel], bool]
RuleSpec = Union[str, Iterable[str]]


@dataclass(frozen=True)
class Rule:
    """One entry of a field's rule list, e.g. ``len=12``."""
    name: str
    param: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "Rule":
        name, sep, param = text.strip().partition("=")
        return cls(name=name.strip(), param=param if sep else None)

    def __str__(self) -> str:
        return self.name if self.param is None else f"{self.name}={self.param}"


def parse_rules(declaration: RuleSpec) -> Tuple[Rule, ...]:
    """Parse ``"required,len=12"`` or ``["required", "len=12"]``."""
    parts = declaration.split(",") if isinstance(declaration, str) else list(declaration)
    return tuple(Rule.parse(part) for part in parts if part.strip())


@dataclass(frozen=True)
class FieldError:
    """A single failed rule, addressed by its dotted field path."""
    namespace: str
    field: str
    rule: str
    param: Optional[str] = None
    value: Any = dataclass_field(default=None, compare=False)

    def __str__(self) -> str:
        return (
            f"Key: '{self.namespace}' "
            f"Error:Field validation for '{self.field}' failed on the '{self.rule}' tag"
        )


class ValidationErrors(LogcanonError, ValueError):
    """All field errors found in one record."""

    def __init__(self, errors: Iterable[FieldError]):
        self.errors = list(errors)
        super().__init__("\n".join(str(error) for error in self.errors))

    def __iter__(self):
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)


class RuleRegistry:
    """Named rule predicates. Read-only once frozen."""

    def __init__(self):
        self._rules: Dict[str, Predicate] = {}
        self._frozen = False

    def register(self, name: str, predicate: Predicate) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"cannot register rule {name!r}: registry is frozen")
        if not name or "=" in name or "," in name:
            raise ValueError(f"invalid rule name: {name!r}")
        if name in self._rules:
            raise ValueError(f"rule {name!r} is already registered")
        self._rules[name] = predicate

    def rule(self, name: str) -> Callable[[Predicate], Predicate]:
        """Decorator form of :meth:`register`."""
        def decorator(predicate: Predicate) -> Predicate:
            self.register(name, predicate)
            return predicate
        return decorator

    def get(self, name: str) -> Predicate:
        try:
            return self._rules[name]
        except KeyError:
            raise UndefinedRuleError(f"undefined validation rule: {name!r}") from None

    def names(self) -> List[str]:
        return sorted(self._rules)

    def freeze(self) -> "RuleRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: object) -> bool:
        return name in self._rules


class ConstraintTable:
    """Explicit ``(model type, field) -> rules`` table."""

    def __init__(self, rules: RuleRegistry):
        self._rules = rules
        self._table: Dict[type, Dict[str, Tuple[Rule, ...]]] = {}

    def declare(self, model: Type[BaseModel], fields: Mapping[str, RuleSpec]) -> None:
        declared = self._table.setdefault(model, {})
        for name, declaration in fields.items():
            if name not in model.model_fields:
                raise ValueError(f"{model.__name__} has no field {name!r}")
            rules = parse_rules(declaration)
            for rule in rules:
                if rule.name not in self._rules:
                    raise UndefinedRuleError(
                        f"undefined validation rule {rule.name!r} on {model.__name__}.{name}"
                    )
            declared[name] = rules

    def constrain(self, **fields: RuleSpec) -> Callable[[Type[BaseModel]], Type[BaseModel]]:
        """Class decorator declaring the rules of ``fields`` for the model."""
        def decorator(model: Type[BaseModel]) -> Type[BaseModel]:
            self.declare(model, fields)
            return model
        return decorator

    def rules_for(self, model: type) -> Dict[str, Tuple[Rule, ...]]:
        """Rules of every field, including those declared on base classes."""
        merged: Dict[str, Tuple[Rule, ...]] = {}
        for klass in reversed(model.__mro__):
            merged.update(self._table.get(klass, {}))
        return merged

    def __contains__(self, model: object) -> bool:
        return model in self._table


def display_name(name: str, title: Optional[str] = None) -> str:
    """Name used for a field in error paths: its title, else PascalCase."""
    if title:
        return title
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


class Validator:
    """Evaluates a constraint table against records."""

    def __init__(self, rules: RuleRegistry, constraints: ConstraintTable):
        self.rules = rules
        self.constraints = constraints

    def validate(self, record: BaseModel) -> List[FieldError]:
        """Return every field error in ``record``; empty when valid."""
        errors: List[FieldError] = []
        self._walk(record, type(record).__name__, errors)
        return errors

    def struct(self, record: BaseModel) -> None:
        """Raise :class:`ValidationErrors` if ``record`` has any field error."""
        errors = self.validate(record)
        if errors:
            raise ValidationErrors(errors)

    def _walk(self, model: BaseModel, namespace: str, errors: List[FieldError]) -> None:
        model_type = type(model)
        constraints = self.constraints.rules_for(model_type)

        for name, info in model_type.model_fields.items():
            value = getattr(model, name)
            field_name = display_name(name, info.title)
            path = f"{namespace}.{field_name}"

            error = self._check(constraints.get(name, ()), model, value, path, field_name)
            if error is not None:
                errors.append(error)
                continue

            if isinstance(value, BaseModel):
                self._walk(value, path, errors)
            elif isinstance(value, (list, tuple)):
                for index, item in enumerate(value):
                    if isinstance(item, BaseModel):
                        self._walk(item, f"{path}[{index}]", errors)

    def _check(
        self,
        rules: Tuple[Rule, ...],
        parent: BaseModel,
        value: Any,
        path: str,
        field_name: str,
    ) -> Optional[FieldError]:
        if not rules:
            return None

        if any(rule.name == REQUIRED for rule in rules) and not has_value(value):
            return FieldError(path, field_name, REQUIRED, value=value)

        if value is None:
            return None

        for rule in rules:
            if rule.name == REQUIRED:
                continue
            predicate = self.rules.get(rule.name)
            if not predicate(FieldLevel(value=value, param=rule.param, parent=parent)):
                return FieldError(path, field_name, rule.name, rule.param, value)

        return None


# Built-in rules

def has_value(value: Any) -> bool:
    """True unless the value is None or an empty string or collection."""
    if value is None:
        return False
    if isinstance(value, (str, bytes, list, tuple, set, frozenset, dict)):
        return len(value) > 0
    return True


def _text(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    return str(value)


def _size(value: Any) -> float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    return len(value)


NUMERIC_PATTERN = re.compile(r"[-+]?[0-9]+(?:\.[0-9]+)?")
UUID4_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}"
)
ARN_PATTERN = re.compile(r"arn:[^:\s]+:[^:\s]+:[^:\s]*:[^:\s]*:\S+")
KMS_KEY_ARN_PATTERN = re.compile(
    r"arn:aws:kms:[a-z0-9-]+:\d{12}:key/"
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)


def _len(field: FieldLevel) -> bool:
    return _size(field.value) == float(field.param)


def _min(field: FieldLevel) -> bool:
    return _size(field.value) >= float(field.param)


def _max(field: FieldLevel) -> bool:
    return _size(field.value) <= float(field.param)


def _numeric(field: FieldLevel) -> bool:
    if isinstance(field.value, bool):
        return False
    if isinstance(field.value, (int, float)):
        return True
    return bool(NUMERIC_PATTERN.fullmatch(_text(field.value)))


def _oneof(field: FieldLevel) -> bool:
    return _text(field.value) in (field.param or "").split()


def _uuid4(field: FieldLevel) -> bool:
    return bool(UUID4_PATTERN.fullmatch(_text(field.value)))


def _ip(field: FieldLevel) -> bool:
    try:
        ipaddress.ip_address(_text(field.value))
    except ValueError:
        return False
    return True


def _arn(field: FieldLevel) -> bool:
    return bool(ARN_PATTERN.fullmatch(_text(field.value)))


def integration_label(field: FieldLevel) -> bool:
    """A label may contain anything except nothing but whitespace."""
    return _text(field.value).strip() != ""


def kms_key_arn(field: FieldLevel) -> bool:
    """arn:aws:kms:<region>:<account id>:key/<uuid>"""
    return bool(KMS_KEY_ARN_PATTERN.fullmatch(_text(field.value)))


def default_rules() -> RuleRegistry:
    """A registry holding every built-in and custom rule."""
    rules = RuleRegistry()
    rules.register(REQUIRED, lambda field: has_value(field.value))
    rules.register("len", _len)
    rules.register("min", _min)
    rules.register("max", _max)
    rules.register("numeric", _numeric)
    rules.register("oneof", _oneof)
    rules.register("uuid4", _uuid4)
    rules.register("ip", _ip)
    rules.register("arn", _arn)
    rules.register("integrationLabel", integration_label)
    rules.register("kmsKeyArn", kms_key_arn)
    return rules


RULES = default_rules()
CONSTRAINTS = ConstraintTable(RULES)
constrained = CONSTRAINTS.constrain


@lru_cache(maxsize=None)
def get_validator() -> Validator:
    """Process-wide validator over :data:`CONSTRAINTS`. Freezes :data:`RULES`."""
    return Validator(RULES.freeze(), CONSTRAINTS)

from dataclasses import dataclass, fields, replace
from typing import Iterable, List, Mapping, Optional, Union

from core.errors import ConfigurationError
from core.models import Fact


@dataclass(frozen=True)
class ValueRange:
    min: Optional[float] = None
    max: Optional[float] = None

    def contains(self, value) -> bool:
        if value is None:
            return False
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True

    @classmethod
    def from_mapping(cls, data: Mapping) -> 'ValueRange':
        return cls(min=data.get('min'), max=data.get('max'))


@dataclass(frozen=True)
class FilterCriteria:
    """
    Predicates for selecting facts. Every criterion that is set must hold;
    unset criteria (None / False / empty string) are ignored.
    """
    concept: Optional[str] = None
    value_range: Optional[ValueRange] = None
    period: Optional[str] = None
    has_value: bool = False
    has_dimensions: bool = False

    _ALIASES = {
        'concept': 'concept',
        'valueRange': 'value_range',
        'value_range': 'value_range',
        'period': 'period',
        'hasValue': 'has_value',
        'has_value': 'has_value',
        'hasDimensions': 'has_dimensions',
        'has_dimensions': 'has_dimensions',
    }

    @classmethod
    def from_mapping(cls, data: Optional[Mapping]) -> 'FilterCriteria':
        """Build criteria from a dispatcher-style mapping such as {'valueRange': {'min': 1}}."""
        if not data:
            return cls()
        kwargs = {}
        for key, value in data.items():
            name = cls._ALIASES.get(key)
            if name is None:
                raise ConfigurationError(f"Unknown filter criterion: {key}")
            if name == 'value_range' and isinstance(value, Mapping):
                value = ValueRange.from_mapping(value)
            kwargs[name] = value
        return cls(**kwargs)

    def merge(self, overrides: Optional['FilterCriteria']) -> 'FilterCriteria':
        """Return a copy with every criterion set in ``overrides`` taking precedence."""
        if overrides is None:
            return self
        changes = {
            f.name: getattr(overrides, f.name)
            for f in fields(overrides)
            if getattr(overrides, f.name) not in (None, False, '')
        }
        return replace(self, **changes)

    def accepts(self, fact: Fact) -> bool:
        if self.concept and self.concept.lower() not in (fact.concept or '').lower():
            return False
        if self.has_value and fact.value is None:
            return False
        if self.value_range is not None and not self.value_range.contains(fact.value):
            return False
        if self.period and self.period not in fact.period_end:
            return False
        if self.has_dimensions and not fact.dimensions:
            return False
        return True


def filter_facts(
    facts: Iterable[Fact],
    criteria: Union[FilterCriteria, Mapping, None] = None,
) -> List[Fact]:
    """Return the facts satisfying all criteria, leaving the input untouched."""
    if criteria is None:
        criteria = FilterCriteria()
    elif not isinstance(criteria, FilterCriteria):
        criteria = FilterCriteria.from_mapping(criteria)
    return [fact for fact in facts if criteria.accepts(fact)]

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Union

from core.dimensions import extract_geography, extract_segment, extract_product

Number = Union[int, float]


@dataclass
class Period:
    instant: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    # DART statements carry a business year and report code instead of dates
    year: Optional[str] = None
    report_type: Optional[str] = None

    @property
    def is_instant(self) -> bool:
        return bool(self.instant)

    @property
    def end(self) -> str:
        """Effective period end used for matching: endDate, then instant."""
        return self.end_date or self.instant or ''

    def to_dict(self) -> Dict[str, str]:
        keys = {
            'instant': self.instant,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'year': self.year,
            'reportType': self.report_type,
        }
        return {k: v for k, v in keys.items() if v is not None}


@dataclass
class Context:
    id: str
    entity: str = ''
    period: Period = field(default_factory=Period)
    dimensions: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'entity': self.entity,
            'period': self.period.to_dict(),
            'dimensions': dict(self.dimensions),
        }


@dataclass
class Unit:
    id: str
    measures: List[str] = field(default_factory=list)  # e.g. ['iso4217:JPY']
    divide: bool = False
    numerator: List[str] = field(default_factory=list)
    denominator: List[str] = field(default_factory=list)

    @property
    def measure(self) -> str:
        if self.divide:
            return f"{''.join(self.numerator)}/{''.join(self.denominator)}"
        return ''.join(self.measures)


@dataclass
class Fact:
    """One reported value from a filing, normalized across iXBRL and DART JSON."""
    concept: str
    namespace: str = 'unknown'
    value: Optional[Number] = None
    raw_value: Optional[str] = None
    account_name: Optional[str] = None
    account_id: Optional[str] = None
    context_ref: Optional[str] = None
    unit_ref: Optional[str] = None
    unit: Optional[str] = None
    decimals: Optional[str] = None
    scale: int = 0
    format: Optional[str] = None
    period: Optional[Period] = None
    dimensions: Dict[str, str] = field(default_factory=dict)
    fact_type: str = 'numeric'
    # DART line items report three terms side by side
    current_term: Optional[Number] = None
    previous_term: Optional[Number] = None
    before_previous_term: Optional[Number] = None
    currency: Optional[str] = None
    ord: Optional[str] = None
    statement_type: Optional[str] = None
    source: Optional[str] = None

    @property
    def has_value(self) -> bool:
        return self.value is not None

    @property
    def has_dimensions(self) -> bool:
        return bool(self.dimensions)

    @property
    def period_end(self) -> str:
        return self.period.end if self.period else ''

    @property
    def period_type(self) -> str:
        return 'instant' if self.period and self.period.is_instant else 'duration'

    @property
    def geography(self) -> Optional[str]:
        return extract_geography(self.dimensions)

    @property
    def segment(self) -> Optional[str]:
        return extract_segment(self.dimensions)

    @property
    def product(self) -> Optional[str]:
        return extract_product(self.dimensions)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'namespace': self.namespace,
            'concept': self.concept,
            'value': self.value,
            'rawValue': self.raw_value,
            'period': self.period.to_dict() if self.period else None,
            'dimensions': dict(self.dimensions),
        }
        if self.source == 'DART':
            data.update({
                'accountName': self.account_name,
                'accountId': self.account_id,
                'currency': self.currency,
                'currentTerm': self.current_term,
                'previousTerm': self.previous_term,
                'beforePreviousTerm': self.before_previous_term,
                'ord': self.ord,
                'statementType': self.statement_type,
            })
        else:
            data.update({
                'contextRef': self.context_ref,
                'unitRef': self.unit_ref,
                'unit': self.unit,
                'decimals': self.decimals,
                'scale': self.scale,
                'format': self.format,
            })
        if self.fact_type != 'numeric':
            data['type'] = self.fact_type
        return data


@dataclass
class ParseResult:
    facts: List[Fact] = field(default_factory=list)
    contexts: Dict[str, Context] = field(default_factory=dict)
    units: Dict[str, Unit] = field(default_factory=dict)
    source: str = ''

    @property
    def total_facts(self) -> int:
        return len(self.facts)

    @property
    def numeric_facts(self) -> int:
        return sum(1 for fact in self.facts if fact.value is not None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'facts': [fact.to_dict() for fact in self.facts],
            'contexts': {k: v.to_dict() for k, v in self.contexts.items()},
            'units': {k: v.measure for k, v in self.units.items()},
            'total_facts': self.total_facts,
            'numeric_facts': self.numeric_facts,
            'source': self.source,
        }


@dataclass
class PeriodRef:
    """A period a filing source knows how to fetch: one EDINET filing or one DART business year."""
    period: Optional[str] = None
    document_id: Optional[str] = None
    submit_date: Optional[str] = None
    business_year: Optional[str] = None
    report_code: Optional[str] = None
    info: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PeriodRecord:
    period: str
    country: str
    facts: List[Fact] = field(default_factory=list)
    document_id: Optional[str] = None
    submit_date: Optional[str] = None
    business_year: Optional[str] = None
    report_code: Optional[str] = None

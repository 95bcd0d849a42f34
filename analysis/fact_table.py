"""
Fact table builder.

Given a company and a target amount, finds every fact of one filing whose
value lies within ``target ± tolerance`` and returns the facts as table rows
with deviation, classification and dimension details, plus a summary.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from analysis.sources import FilingSource, get_filing_source
from core.concepts import classify_fact
from core.errors import ConfigurationError
from core.filters import FilterCriteria, ValueRange, filter_facts
from core.formatting import format_currency, format_percent
from core.logging import get_logger
from core.models import Fact, Number

logger = get_logger(__name__)

# |deviation| below this many currency units counts as an exact match
EXACT_MATCH_THRESHOLD = 1000
DEFAULT_TOLERANCE = 50_000_000
SORT_ORDERS = ('deviation', 'value', 'concept')
NO_FACTS_MESSAGE = 'No facts found in the specified value range'


@dataclass
class TableOptions:
    max_rows: int = 25
    show_dimensions: bool = True
    sort_by: str = 'deviation'
    filters: FilterCriteria = field(default_factory=FilterCriteria)

    def __post_init__(self):
        if self.sort_by not in SORT_ORDERS:
            raise ConfigurationError(f"Unknown sortBy {self.sort_by!r}, expected one of {', '.join(SORT_ORDERS)}")
        if self.max_rows < 0:
            raise ConfigurationError(f"maxRows must not be negative, got {self.max_rows}")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> 'TableOptions':
        data = data or {}
        return cls(
            max_rows=int(data.get('maxRows', data.get('max_rows', cls.max_rows))),
            show_dimensions=bool(data.get('showDimensions', data.get('show_dimensions', cls.show_dimensions))),
            sort_by=data.get('sortBy', data.get('sort_by', cls.sort_by)),
            filters=FilterCriteria.from_mapping(data.get('filters')),
        )


@dataclass
class EnrichedFact:
    """One fact table row."""
    row_number: int
    fact: Fact
    deviation: Number
    exact_match: bool
    deviation_percent: str
    business_classification: str

    @property
    def concept(self) -> str:
        return self.fact.concept

    @property
    def value(self) -> Number:
        return self.fact.value

    def to_dict(self, symbol: str, show_dimensions: bool = True) -> Dict[str, Any]:
        fact = self.fact
        period = fact.period
        dimensions = dict(fact.dimensions)
        row = {
            'rowNumber': self.row_number,
            'concept': fact.concept,
            'accountName': fact.account_name,
            'namespace': fact.namespace or 'unknown',
            'value': fact.value,
            'valueFormatted': format_currency(fact.value, symbol),
            'exactMatch': self.exact_match,
            'deviationFromTarget': self.deviation,
            'deviationFormatted': f"{'+' if self.deviation >= 0 else ''}{format_currency(self.deviation, symbol)}",
            'deviationPercent': self.deviation_percent,
            'periodType': fact.period_type,
            'periodStart': period.start_date if period else None,
            'periodEnd': (period.end_date or period.instant) if period else None,
            'dimensions': dimensions,
            'dimensionCount': len(dimensions),
            'geography': fact.geography,
            'segment': fact.segment,
            'product': fact.product,
            'hasGeographicDimension': fact.geography is not None,
            'hasSegmentDimension': fact.segment is not None,
            'hasProductDimension': fact.product is not None,
            'businessClassification': self.business_classification,
            'contextRef': fact.context_ref,
            'unitRef': fact.unit_ref or fact.unit,
            'decimals': fact.decimals,
            'scale': fact.scale,
        }
        if not show_dimensions:
            del row['dimensions']
        return row


def enrich_facts(facts: List[Fact], target_value: Number, taxonomy: Optional[str] = None) -> List[EnrichedFact]:
    rows = []
    for index, fact in enumerate(facts, start=1):
        deviation = fact.value - target_value
        rows.append(EnrichedFact(
            row_number=index,
            fact=fact,
            deviation=deviation,
            exact_match=abs(deviation) < EXACT_MATCH_THRESHOLD,
            deviation_percent=format_percent(deviation * 100 / target_value) if target_value != 0 else 'N/A',
            business_classification=classify_fact(fact.concept, taxonomy),
        ))
    return rows


def sort_rows(rows: List[EnrichedFact], sort_by: str) -> List[EnrichedFact]:
    if sort_by == 'deviation':
        return sorted(rows, key=lambda r: abs(r.deviation))
    if sort_by == 'value':
        return sorted(rows, key=lambda r: r.value, reverse=True)
    if sort_by == 'concept':
        return sorted(rows, key=lambda r: r.concept)
    raise ConfigurationError(f"Unknown sortBy {sort_by!r}, expected one of {', '.join(SORT_ORDERS)}")


def _breakdown(rows: List[EnrichedFact], label_of, symbol: str) -> Dict[str, Dict[str, Any]]:
    groups: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        label = label_of(row.fact)
        if label is None:
            continue
        entry = groups.setdefault(label, {'count': 0, 'totalValue': 0})
        entry['count'] += 1
        entry['totalValue'] += row.value

    for entry in groups.values():
        entry['avgValue'] = entry['totalValue'] / entry['count']
        entry['totalValueFormatted'] = format_currency(entry['totalValue'], symbol)
        entry['avgValueFormatted'] = format_currency(entry['avgValue'], symbol)
    return groups


def summarize_rows(rows: List[EnrichedFact], symbol: str, show_dimensions: bool = True) -> Dict[str, Any]:
    """Summary over every matching row, before truncation to maxRows."""
    if not rows:
        return {'totalFacts': 0, 'exactMatches': 0, 'message': 'No facts found'}

    values = [row.value for row in rows]
    average = sum(values) / len(values)
    concepts = list(dict.fromkeys(row.concept for row in rows))

    business_types: Dict[str, int] = {}
    for row in rows:
        business_types[row.business_classification] = business_types.get(row.business_classification, 0) + 1

    closest = min(rows, key=lambda r: abs(r.deviation))
    return {
        'totalFacts': len(rows),
        'exactMatches': sum(1 for row in rows if row.exact_match),
        'conceptTypes': concepts,
        'uniqueConcepts': len(concepts),
        'factsWithGeography': sum(1 for row in rows if row.fact.geography is not None),
        'factsWithSegments': sum(1 for row in rows if row.fact.segment is not None),
        'factsWithProducts': sum(1 for row in rows if row.fact.product is not None),
        'factsWithDimensions': sum(1 for row in rows if row.fact.has_dimensions),
        'valueRange': {
            'min': min(values),
            'max': max(values),
            'minFormatted': format_currency(min(values), symbol),
            'maxFormatted': format_currency(max(values), symbol),
            'average': average,
            'averageFormatted': format_currency(average, symbol),
        },
        'businessTypes': business_types,
        'periodTypes': list(dict.fromkeys(row.fact.period_type for row in rows)),
        'geographicBreakdown': _breakdown(rows, lambda f: f.geography, symbol),
        'segmentBreakdown': _breakdown(rows, lambda f: f.segment, symbol),
        'closestMatch': closest.to_dict(symbol, show_dimensions),
    }


def build_fact_table(
    country: str,
    company_id: str,
    target_value: Number,
    tolerance: Number = DEFAULT_TOLERANCE,
    document_id: Optional[str] = None,
    options: Optional[TableOptions] = None,
    source: Optional[FilingSource] = None,
) -> Dict[str, Any]:
    """
    Build a fact table around ``target_value`` for one filing.

    Args:
        country: 'JP' (EDINET) or 'KR' (DART).
        company_id: EDINET code or DART corp code.
        target_value: Amount to look for, in currency units.
        tolerance: Half-width of the search range.
        document_id: EDINET document id (latest filing when omitted) or, for
            Korea, "businessYear:reportCode".
        options: Table options; a plain mapping with camelCase keys is accepted.
        source: Filing source to read from; chosen from ``country`` when omitted.

    Raises:
        ConfigurationError: unsupported country or malformed Korean document id.
        UpstreamFetchError: the filing could not be retrieved.
    """
    if options is None or isinstance(options, Mapping):
        options = TableOptions.from_mapping(options)
    if source is None:
        source = get_filing_source(country)
    symbol = source.currency_symbol

    ref, filing_info = source.resolve_document(company_id, document_id)
    facts = source.fetch_period_facts(company_id, ref)

    low, high = target_value - tolerance, target_value + tolerance
    search_range = {
        'min': low,
        'max': high,
        'minFormatted': format_currency(low, symbol),
        'maxFormatted': format_currency(high, symbol),
    }
    criteria = FilterCriteria(value_range=ValueRange(low, high), has_value=True).merge(options.filters)
    matching = filter_facts(facts, criteria)
    logger.info("%d of %d facts within %s..%s", len(matching), len(facts), low, high)

    result = {
        'country': source.country,
        'company': company_id,
        'filing_info': filing_info,
        'targetValue': target_value,
        'tolerance': tolerance,
        'searchRange': search_range,
    }
    if not matching:
        result.update({
            'table': [],
            'summary': {'totalFacts': 0, 'message': NO_FACTS_MESSAGE},
            'totalFactsFound': 0,
            'totalFactsReturned': 0,
            'source': source.table_label,
            'taxonomy': source.taxonomy,
        })
        return result

    rows = sort_rows(enrich_facts(matching, target_value, source.classification_taxonomy), options.sort_by)
    limited = rows[:options.max_rows]
    result.update({
        'table': [row.to_dict(symbol, options.show_dimensions) for row in limited],
        'summary': summarize_rows(rows, symbol, options.show_dimensions),
        'totalFactsFound': len(rows),
        'totalFactsReturned': len(limited),
        'source': source.table_label,
        'taxonomy': source.taxonomy,
    })
    return result

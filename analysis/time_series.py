"""
Time-series analysis of one concept across several reporting periods.

For each period a filing source yields, the facts matching the concept and
value range are collected and flattened into one table. Growth rates,
geographic/segment mix and the overall trend are derived from that table.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from analysis.sources import FilingSource, get_filing_source
from core.errors import ConfigurationError, NoDataError, UpstreamFetchError, XBRLParseError
from core.filters import FilterCriteria, ValueRange, filter_facts
from core.formatting import format_currency, format_percent, to_fixed
from core.logging import get_logger
from core.models import PeriodRecord
from core.pacing import PacingPolicy

logger = get_logger(__name__)

MAX_SAFE_INTEGER = 2 ** 53 - 1
# percent change that still counts as a stable trend
TREND_THRESHOLD = 5
TOTAL = 'Total'


@dataclass
class TimeSeriesOptions:
    concept: str = 'Revenue'
    periods: int = 4
    include_geography: bool = True
    include_segments: bool = True
    show_growth_rates: bool = True
    min_value: float = 0
    max_value: float = MAX_SAFE_INTEGER

    def __post_init__(self):
        if not self.concept:
            raise ConfigurationError('concept is required for time-series analysis')
        if self.periods < 1:
            raise ConfigurationError(f"periods must be at least 1, got {self.periods}")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> 'TimeSeriesOptions':
        data = data or {}

        def pick(camel, snake, default):
            return data.get(camel, data.get(snake, default))

        return cls(
            concept=pick('concept', 'concept', cls.concept),
            periods=int(pick('periods', 'periods', cls.periods)),
            include_geography=bool(pick('includeGeography', 'include_geography', cls.include_geography)),
            include_segments=bool(pick('includeSegments', 'include_segments', cls.include_segments)),
            show_growth_rates=bool(pick('showGrowthRates', 'show_growth_rates', cls.show_growth_rates)),
            min_value=pick('minValue', 'min_value', cls.min_value),
            max_value=pick('maxValue', 'max_value', cls.max_value),
        )

    def criteria(self) -> FilterCriteria:
        return FilterCriteria(
            concept=self.concept,
            value_range=ValueRange(self.min_value, self.max_value),
            has_value=True,
        )


def collect_periods(
    source: FilingSource,
    company_id: str,
    options: TimeSeriesOptions,
    pacing: PacingPolicy,
) -> List[PeriodRecord]:
    """
    Fetch periods one at a time until ``options.periods`` of them have data.

    A period that fails to download or parse is logged and skipped. Every
    fetch attempt is followed by the pacing delay.
    """
    criteria = options.criteria()
    records: List[PeriodRecord] = []

    refs = source.list_recent_periods(company_id, source.candidate_count(options.periods))
    if not refs:
        raise NoDataError(f"No filings found for company {company_id}")

    for ref in refs:
        if len(records) >= options.periods:
            break
        try:
            facts = source.fetch_period_facts(company_id, ref)
        except (UpstreamFetchError, XBRLParseError) as e:
            logger.warning("Skipping period %s of %s: %s", ref.period, company_id, e)
            continue
        finally:
            pacing.pace()

        matching = filter_facts(facts, criteria)
        if not matching:
            logger.debug("No %s facts in period %s of %s", options.concept, ref.period, company_id)
            continue

        records.append(PeriodRecord(
            period=ref.period or '',
            country=source.country,
            facts=matching,
            document_id=ref.document_id,
            submit_date=ref.submit_date,
            business_year=ref.business_year,
            report_code=ref.report_code,
        ))

    return records


def build_time_series_table(records: List[PeriodRecord], symbol: str) -> List[Dict[str, Any]]:
    table = []
    for record in records:
        for fact in record.facts:
            period = fact.period
            table.append({
                'period': record.period,
                'document_id': record.document_id or record.business_year,
                'country': record.country,
                'concept': fact.concept,
                'accountName': fact.account_name,
                'value': fact.value,
                'valueFormatted': format_currency(fact.value, symbol),
                'geography': fact.geography or TOTAL,
                'segment': fact.segment or TOTAL,
                'periodType': fact.period_type,
                'periodStart': period.start_date if period else None,
                'periodEnd': (period.end_date or period.instant) if period else None,
                'dimensions': dict(fact.dimensions),
                'dimensionCount': len(fact.dimensions),
            })

    # period desc, then value desc within a period
    table.sort(key=lambda row: row['value'], reverse=True)
    table.sort(key=lambda row: row['period'], reverse=True)
    return table


def _sums_by(rows: List[Dict[str, Any]], key: str) -> Dict[str, Any]:
    sums: Dict[str, Any] = {}
    for row in rows:
        sums[row[key]] = sums.get(row[key], 0) + row['value']
    return sums


def _rows_for(table: List[Dict[str, Any]], period: str) -> List[Dict[str, Any]]:
    return [row for row in table if row['period'] == period]


def calculate_growth_rates(table: List[Dict[str, Any]], periods: List[str], symbol: str) -> Optional[Dict[str, Any]]:
    """
    Period-over-period growth per geography.

    ``periods`` is newest first; each period is compared with the next
    older one. Geographies whose prior-period sum is 0 or negative are skipped.
    """
    if len(periods) < 2:
        return None

    rates = []
    for current_period, prior_period in zip(periods, periods[1:]):
        current = _sums_by(_rows_for(table, current_period), 'geography')
        prior = _sums_by(_rows_for(table, prior_period), 'geography')

        for geography in dict.fromkeys(list(current) + list(prior)):
            current_value = current.get(geography, 0)
            prior_value = prior.get(geography, 0)
            if prior_value <= 0:
                continue

            growth = (current_value - prior_value) * 100 / prior_value
            change = current_value - prior_value
            rates.append({
                'from': prior_period,
                'to': current_period,
                'geography': geography,
                'priorValue': prior_value,
                'currentValue': current_value,
                'priorValueFormatted': format_currency(prior_value, symbol),
                'currentValueFormatted': format_currency(current_value, symbol),
                'absoluteChange': change,
                'absoluteChangeFormatted': format_currency(change, symbol),
                'growthRate': float(to_fixed(growth, 2)),
                'growthFormatted': f"{'+' if growth >= 0 else ''}{to_fixed(growth, 1)}%",
            })

    rates.sort(key=lambda r: abs(r['growthRate']), reverse=True)
    if rates:
        average = format_percent(sum(r['growthRate'] for r in rates) / len(rates))
    else:
        average = 'N/A'
    return {
        'rates': rates,
        'summary': {
            'totalComparisons': len(rates),
            'averageGrowthRate': average,
            'highestGrowth': rates[0] if rates else None,
            'lowestGrowth': rates[-1] if rates else None,
        },
    }


def _mix(rows: List[Dict[str, Any]], key: str, total, symbol: str) -> Dict[str, Dict[str, Any]]:
    mix = {}
    for label, value in _sums_by(rows, key).items():
        if total <= 0:
            percentage, formatted = 'N/A', 'N/A'
        else:
            percentage = value * 100 / total
            formatted = f"{to_fixed(percentage, 1)}%"
        mix[label] = {
            'value': value,
            'valueFormatted': format_currency(value, symbol),
            'percentage': percentage,
            'percentageFormatted': formatted,
        }
    return mix


def analyze_mix(table: List[Dict[str, Any]], options: TimeSeriesOptions, symbol: str) -> Dict[str, Dict[str, Any]]:
    """Per-period totals with each geography's and segment's share."""
    mix_by_period = {}
    for period in sorted({row['period'] for row in table}):
        rows = _rows_for(table, period)
        total = sum(row['value'] for row in rows)
        entry = {'total': total, 'totalFormatted': format_currency(total, symbol)}
        if options.include_geography:
            entry['geographic'] = _mix(rows, 'geography', total, symbol)
        if options.include_segments:
            entry['segment'] = _mix(rows, 'segment', total, symbol)
        mix_by_period[period] = entry
    return mix_by_period


def calculate_trends(table: List[Dict[str, Any]], symbol: str) -> Dict[str, Any]:
    """Overall direction from the earliest to the latest period total."""
    periods = sorted({row['period'] for row in table})
    if len(periods) < 2:
        return {
            'direction': 'insufficient_data',
            'message': 'Need at least 2 periods to calculate trends',
        }

    totals = [(period, sum(row['value'] for row in _rows_for(table, period))) for period in periods]
    first_period, first_total = totals[0]
    last_period, last_total = totals[-1]
    change = last_total - first_total
    change_percent = change * 100 / first_total if first_total > 0 else 0

    if change_percent > TREND_THRESHOLD:
        direction = 'increasing'
    elif change_percent < -TREND_THRESHOLD:
        direction = 'decreasing'
    else:
        direction = 'stable'

    return {
        'direction': direction,
        'overallChange': change,
        'overallChangeFormatted': format_currency(change, symbol),
        'overallChangePercent': format_percent(change_percent),
        'periodTotals': [
            {'period': period, 'total': total, 'totalFormatted': format_currency(total, symbol)}
            for period, total in reversed(totals)
        ],
        'firstPeriod': {
            'period': first_period,
            'value': first_total,
            'valueFormatted': format_currency(first_total, symbol),
        },
        'lastPeriod': {
            'period': last_period,
            'value': last_total,
            'valueFormatted': format_currency(last_total, symbol),
        },
    }


def time_series_analysis(
    country: str,
    company_id: str,
    options: Optional[TimeSeriesOptions] = None,
    source: Optional[FilingSource] = None,
    pacing: Optional[PacingPolicy] = None,
) -> Dict[str, Any]:
    """
    Track one concept across the company's most recent periods.

    Args:
        country: 'JP' (EDINET filings) or 'KR' (DART annual statements).
        company_id: EDINET code or DART corp code.
        options: Analysis options; a plain mapping with camelCase keys is accepted.
        source: Filing source to read from; chosen from ``country`` when omitted.
        pacing: Delay policy between period fetches.

    Raises:
        ConfigurationError: unsupported country or invalid options.
        NoDataError: no period produced a matching fact.
    """
    if options is None or isinstance(options, Mapping):
        options = TimeSeriesOptions.from_mapping(options)
    if source is None:
        source = get_filing_source(country)
    if pacing is None:
        pacing = PacingPolicy()
    symbol = source.currency_symbol

    records = collect_periods(source, company_id, options, pacing)
    if not records:
        raise NoDataError(f"No valid period data found for concept: {options.concept} (company {company_id})")

    records.sort(key=lambda r: r.period, reverse=True)
    periods = list(dict.fromkeys(record.period for record in records))
    table = build_time_series_table(records, symbol)

    growth = None
    if options.show_growth_rates and len(periods) >= 2:
        growth = calculate_growth_rates(table, periods, symbol)

    mix = None
    if options.include_geography or options.include_segments:
        mix = analyze_mix(table, options, symbol)

    logger.info("Analyzed %s for %s over %d periods", options.concept, company_id, len(records))
    return {
        'country': source.country,
        'company': company_id,
        'concept': options.concept,
        'periods': sorted(periods),
        'periodsAnalyzed': len(records),
        'timeSeries': table,
        'growthAnalysis': growth,
        'mixAnalysis': mix,
        'trends': calculate_trends(table, symbol),
        'summary': {
            'totalPeriods': len(records),
            'totalDataPoints': len(table),
            'dateRange': {'from': periods[-1], 'to': periods[0]},
            'uniqueGeographies': list(dict.fromkeys(row['geography'] for row in table)),
            'uniqueSegments': list(dict.fromkeys(row['segment'] for row in table)),
        },
        'source': source.time_series_label,
        'taxonomy': source.taxonomy,
    }

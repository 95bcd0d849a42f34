"""
Filing sources: where a company's facts come from, per country.

The fact table builder and the time-series analyzer only talk to a
FilingSource. EdinetSource serves Japanese filings (one period per EDINET
submission), DartSource serves Korean statements (one period per business
year and report code).
"""
import datetime as dt
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from clients.dart import ANNUAL_REPORT, REPORT_CODES, DartClient
from clients.edinet import EdinetClient
from core.config import Settings
from core.errors import ConfigurationError, NoDataError
from core.formatting import JPY_SYMBOL, KRW_SYMBOL
from core.logging import get_logger
from core.models import Fact, PeriodRef

logger = get_logger(__name__)

UNSUPPORTED_COUNTRY = 'Unsupported country. Use JP for Japan or KR for Korea'


class FilingSource(ABC):
    country: str = ''
    currency_symbol: str = ''
    # label passed to the concept classifier
    classification_taxonomy: str = ''
    # label reported in results
    taxonomy: str = ''
    table_label: str = ''
    time_series_label: str = ''

    @abstractmethod
    def list_recent_periods(self, company_id: str, count: int) -> List[PeriodRef]:
        """Periods to try, most recent first."""

    @abstractmethod
    def fetch_period_facts(self, company_id: str, ref: PeriodRef) -> List[Fact]:
        """Facts reported for one period."""

    @abstractmethod
    def resolve_document(self, company_id: str, document_id: Optional[str]) -> Tuple[PeriodRef, Dict[str, Any]]:
        """Turn a caller-supplied document id into a period reference plus filing info."""

    def candidate_count(self, periods: int) -> int:
        """How many periods to list when ``periods`` of them must yield data."""
        return periods


class EdinetSource(FilingSource):
    country = 'JP'
    currency_symbol = JPY_SYMBOL
    classification_taxonomy = 'J-GAAP'
    taxonomy = 'J-GAAP'
    table_label = 'EDINET J-GAAP Analysis'
    time_series_label = 'EDINET J-GAAP Time-Series Analysis'

    def __init__(self, client: EdinetClient):
        self.client = client

    def candidate_count(self, periods: int) -> int:
        # some filings carry no XBRL or no matching fact
        return periods * 2

    def list_recent_periods(self, company_id: str, count: int) -> List[PeriodRef]:
        filings = self.client.get_company_filings(company_id, limit=count)['filings']
        return [self._to_ref(filing) for filing in filings]

    def fetch_period_facts(self, company_id: str, ref: PeriodRef) -> List[Fact]:
        return self.client.get_filing_facts(ref.document_id).facts

    def resolve_document(self, company_id, document_id):
        if document_id:
            return PeriodRef(document_id=document_id), {'document_id': document_id}

        refs = self.list_recent_periods(company_id, 1)
        if not refs:
            raise NoDataError(f"No filings found for company {company_id}")
        ref = refs[0]
        filing_info = dict(ref.info)
        filing_info['document_id'] = ref.document_id
        return ref, filing_info

    def _to_ref(self, filing: Dict[str, Any]) -> PeriodRef:
        submit_date = filing.get('submit_date') or ''
        return PeriodRef(
            period=filing.get('period_end') or submit_date[:10],
            document_id=filing.get('document_id'),
            submit_date=filing.get('submit_date'),
            info=filing,
        )


class DartSource(FilingSource):
    country = 'KR'
    currency_symbol = KRW_SYMBOL
    classification_taxonomy = 'K-GAAP'
    taxonomy = 'K-GAAP/IFRS'
    table_label = 'DART K-GAAP Analysis'
    time_series_label = 'DART K-GAAP Time-Series Analysis'

    def __init__(self, client: DartClient, report_code: str = ANNUAL_REPORT, today: Optional[dt.date] = None):
        self.client = client
        self.report_code = report_code
        self.today = today

    def list_recent_periods(self, company_id: str, count: int) -> List[PeriodRef]:
        """Business years ending last year, newest first."""
        current_year = (self.today or dt.date.today()).year
        refs = []
        for offset in range(1, count + 1):
            year = str(current_year - offset)
            refs.append(PeriodRef(
                period=f"{year}-12-31",
                business_year=year,
                report_code=self.report_code,
            ))
        return refs

    def fetch_period_facts(self, company_id: str, ref: PeriodRef) -> List[Fact]:
        return self.client.get_statement_facts(company_id, ref.business_year, ref.report_code).facts

    def resolve_document(self, company_id, document_id):
        business_year, report_code = parse_document_id(document_id)
        ref = PeriodRef(
            period=f"{business_year}-12-31",
            business_year=business_year,
            report_code=report_code,
        )
        return ref, {'business_year': business_year, 'report_code': report_code}


def parse_document_id(document_id: Optional[str]) -> Tuple[str, str]:
    """
    Split a Korean document id of the form "businessYear:reportCode".

    The report code defaults to the annual report when left out.

    >>> parse_document_id("2023:11012")
    ('2023', '11012')
    >>> parse_document_id("2023")
    ('2023', '11011')
    """
    if not document_id or not str(document_id).strip():
        raise ConfigurationError('business_year and report_code are required for Korean filings')

    business_year, _, report_code = str(document_id).strip().partition(':')
    business_year = business_year.strip()
    report_code = report_code.strip() or ANNUAL_REPORT
    if len(business_year) != 4 or not business_year.isdigit():
        raise ConfigurationError(f"Invalid business year in document id {document_id!r}, expected YYYY:reportCode")
    if report_code not in REPORT_CODES:
        raise ConfigurationError(
            f"Unknown report code {report_code!r}, expected one of {', '.join(sorted(REPORT_CODES))}"
        )
    return business_year, report_code


def get_filing_source(country: str, settings: Optional[Settings] = None) -> FilingSource:
    """Pick the filing source for a country code ('JP' or 'KR')."""
    code = (country or '').strip().upper()
    if code == 'JP':
        settings = settings or Settings.from_env()
        return EdinetSource(EdinetClient(settings=settings))
    if code == 'KR':
        settings = settings or Settings.from_env()
        return DartSource(DartClient(settings=settings))
    raise ConfigurationError(UNSUPPORTED_COUNTRY)

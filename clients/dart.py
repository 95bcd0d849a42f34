"""
HTTP client for the OpenDART API (Korea FSS).

OpenDART answers every call with HTTP 200 and reports failures through the
``status`` field of the JSON body; anything but "000" becomes a DartAPIError.
"""
import datetime as dt
from typing import Any, Dict, Iterable, List, Mapping, Optional

import requests

from core.config import Settings
from core.errors import ConfigurationError, DartAPIError
from core.logging import get_logger
from core.models import ParseResult
from processor import parse_structured

logger = get_logger(__name__)

DART_API_BASE = 'https://opendart.fss.or.kr/api'
DART_VIEWER_URL = 'https://dart.fss.or.kr/dsaf001/main.do?rcpNo={rcept_no}'
API_KEY_MESSAGE = 'DART API key is required or invalid. Please set DART_API_KEY environment variable.'

ANNUAL_REPORT = '11011'
REPORT_CODES = {
    '11011': 'Annual',
    '11012': 'Q2',
    '11013': 'Q1',
    '11014': 'Q3',
}
# OpenDART status codes
STATUS_OK = '000'
STATUS_NO_DATA = '013'
API_KEY_STATUSES = {'010', '011', '012', '020', '901'}

SEARCH_WINDOW_DAYS = 90
FILINGS_WINDOW_DAYS = 365


def _yyyymmdd(value: Optional[str], default: dt.date) -> str:
    if not value:
        return default.strftime('%Y%m%d')
    return str(value).replace('-', '')


def filing_ref(item: Mapping[str, Any]) -> Dict[str, Any]:
    """Normalize one list.json entry into a filing reference."""
    rcept_no = item.get('rcept_no')
    return {
        'corp_code': item.get('corp_code'),
        'corp_name': item.get('corp_name'),
        'stock_code': item.get('stock_code'),
        'report_name': item.get('report_nm'),
        'receipt_number': rcept_no,
        'filer_name': item.get('flr_nm'),
        'report_date': item.get('rcept_dt'),
        'remarks': item.get('rm'),
        'urls': {
            'viewer': DART_VIEWER_URL.format(rcept_no=rcept_no),
            'document': f"{DART_API_BASE}/document.xml?rcept_no={rcept_no}",
        },
    }


def filter_filings(filings: Iterable[Mapping[str, Any]], filters: Optional[Mapping[str, Any]] = None) -> List[Dict]:
    """
    Narrow a list of DART filing references.

    Recognized filters: ``startDate`` / ``endDate`` (inclusive, YYYY-MM-DD or
    YYYYMMDD, compared with the receipt date) and ``reportType`` (substring
    of the report name).
    """
    filters = filters or {}
    start = (filters.get('startDate') or '').replace('-', '')
    end = (filters.get('endDate') or '').replace('-', '')
    report_type = filters.get('reportType')

    selected = []
    for filing in filings:
        report_date = filing.get('report_date') or ''
        if start and report_date < start:
            continue
        if end and report_date > end:
            continue
        if report_type and report_type not in (filing.get('report_name') or ''):
            continue
        selected.append(dict(filing))
    return selected


class DartClient:
    """Thin wrapper over `requests.Session` for the OpenDART JSON endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or Settings.from_env()
        self.api_key = api_key if api_key is not None else self._settings.dart_api_key
        self._session = session or requests.Session()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def search_companies(self, query: str, limit: int = 10) -> Dict[str, Any]:
        """Find companies by name among recent disclosures, one entry per corp_code."""
        today = dt.date.today()
        data = self._request_json(
            'list.json',
            corp_name=query,
            bgn_de=_yyyymmdd(None, today - dt.timedelta(days=SEARCH_WINDOW_DAYS)),
            end_de=_yyyymmdd(None, today),
            page_count=100,
        )

        needle = query.lower()
        companies = []
        seen = set()
        for item in data.get('list') or []:
            corp_code = item.get('corp_code')
            if corp_code in seen or needle not in (item.get('corp_name') or '').lower():
                continue
            seen.add(corp_code)
            companies.append({
                'name': item.get('corp_name'),
                'corp_code': corp_code,
                'stock_code': item.get('stock_code') or None,
                'recent_filing': {
                    'report_name': item.get('report_nm'),
                    'receipt_number': item.get('rcept_no'),
                    'report_date': item.get('rcept_dt'),
                    'remarks': item.get('rm'),
                },
            })
            if len(companies) >= limit:
                break

        return {
            'query': query,
            'companies': companies,
            'total_found': len(companies),
            'country': 'KR',
            'source': 'DART Open API',
        }

    def get_company(self, corp_code: str) -> Dict[str, Any]:
        data = self._request_json('company.json', corp_code=corp_code)
        return {
            'corp_code': corp_code,
            'name': data.get('corp_name'),
            'name_eng': data.get('corp_name_eng'),
            'stock_code': data.get('stock_code'),
            'ceo_name': data.get('ceo_nm'),
            'corporation_class': data.get('corp_cls'),
            'corporation_number': data.get('jurir_no'),
            'business_registration_number': data.get('bizr_no'),
            'address': data.get('adres'),
            'homepage': data.get('hm_url'),
            'phone': data.get('phn_no'),
            'establishment_date': data.get('est_dt'),
            'accounting_month': data.get('acc_mt'),
            'country': 'KR',
            'source': 'DART Open API',
        }

    def get_company_filings(
        self,
        corp_code: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        report_type: Optional[str] = None,
        limit: int = 100,
    ) -> Dict[str, Any]:
        """
        List a company's disclosures.

        Args:
            report_type: OpenDART ``pblntf_ty`` (A: periodic reports, B: major
                events, ...); all types when omitted.
        """
        today = dt.date.today()
        start = _yyyymmdd(start_date, today - dt.timedelta(days=FILINGS_WINDOW_DAYS))
        end = _yyyymmdd(end_date, today)
        data = self._request_json(
            'list.json',
            corp_code=corp_code,
            bgn_de=start,
            end_de=end,
            pblntf_ty=report_type or None,
            page_count=min(max(limit, 1), 100),
        )

        filings = [filing_ref(item) for item in data.get('list') or []][:limit]
        return {
            'corp_code': corp_code,
            'filings': filings,
            'total_found': len(filings),
            'date_range': {'start': start_date or start, 'end': end_date or end},
            'source': 'DART Open API',
        }

    def get_financial_statements(
        self,
        corp_code: str,
        business_year: str,
        report_code: str = ANNUAL_REPORT,
        fs_div: str = 'CFS',
    ) -> Dict[str, Any]:
        """
        Full financial statements (fnlttSinglAcntAll) for one business year.

        Args:
            report_code: 11011 annual, 11012 half-year, 11013 Q1, 11014 Q3.
            fs_div: CFS for consolidated, OFS for separate statements.
        """
        report_code = report_code or ANNUAL_REPORT
        if report_code not in REPORT_CODES:
            raise ConfigurationError(f"Unknown DART report code: {report_code}")

        data = self._request_json(
            'fnlttSinglAcntAll.json',
            corp_code=corp_code,
            bsns_year=str(business_year),
            reprt_code=report_code,
            fs_div=fs_div,
        )
        return {
            'corp_code': corp_code,
            'business_year': str(business_year),
            'report_code': report_code,
            'report_type': REPORT_CODES[report_code],
            'statements': data.get('list') or [],
            'source': 'DART Open API',
            'note': 'Financial statement items with account names, values, and classifications',
        }

    def get_statement_facts(
        self,
        corp_code: str,
        business_year: str,
        report_code: str = ANNUAL_REPORT,
        fs_div: str = 'CFS',
    ) -> ParseResult:
        """Financial statements parsed into facts."""
        statements = self.get_financial_statements(corp_code, business_year, report_code, fs_div)
        result = parse_structured({'list': statements['statements']})
        logger.info(
            "Parsed %d facts from DART %s %s/%s",
            result.total_facts, corp_code, business_year, statements['report_code'],
        )
        return result

    def get_major_shareholders(self, corp_code: str) -> Dict[str, Any]:
        data = self._request_json('majorstock.json', corp_code=corp_code)
        return {
            'corp_code': corp_code,
            'shareholders': [
                {
                    'report_date': item.get('rcept_dt'),
                    'shareholder_name': item.get('repror'),
                    'shares_owned': item.get('stkqy'),
                    'shares_changed': item.get('stkqy_irds'),
                    'ownership_percent': item.get('stkrt'),
                    'change_reason': item.get('report_resn'),
                }
                for item in data.get('list') or []
            ],
            'source': 'DART Open API',
        }

    def get_executive_info(self, corp_code: str, business_year: Optional[str] = None,
                           report_code: str = ANNUAL_REPORT) -> Dict[str, Any]:
        year = business_year or str(dt.date.today().year - 1)
        data = self._request_json('exctvSttus.json', corp_code=corp_code, bsns_year=year, reprt_code=report_code)
        return {
            'corp_code': corp_code,
            'business_year': year,
            'executives': [
                {
                    'name': item.get('nm'),
                    'gender': item.get('sexdstn'),
                    'position': item.get('ofcps'),
                    'birth_year_month': item.get('birth_ym'),
                    'registered': item.get('rgist_exctv_at'),
                    'responsibilities': item.get('chrg_job'),
                    'career': item.get('main_career'),
                }
                for item in data.get('list') or []
            ],
            'source': 'DART Open API',
        }

    def get_dividend_info(self, corp_code: str, business_year: str,
                          report_code: str = ANNUAL_REPORT) -> Dict[str, Any]:
        data = self._request_json('alotMatter.json', corp_code=corp_code, bsns_year=str(business_year),
                                  reprt_code=report_code)
        return {
            'corp_code': corp_code,
            'business_year': str(business_year),
            'dividends': data.get('list') or [],
            'source': 'DART Open API',
        }

    # ------------------------------------------------------------------ #
    # Request helpers
    # ------------------------------------------------------------------ #
    def _request_json(self, path: str, **params) -> Dict[str, Any]:
        url = f"{DART_API_BASE}/{path}"
        payload = {'crtfc_key': self.api_key}
        payload.update({k: v for k, v in params.items() if v is not None})

        logger.debug("Requesting %s %s", url, params)
        try:
            response = self._session.get(url, params=payload, timeout=self._settings.request_timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise DartAPIError(f"DART request failed: {e}") from e
        except ValueError as e:
            raise DartAPIError(f"DART returned invalid JSON for {path}: {e}") from e

        status = data.get('status') if isinstance(data, dict) else None
        if status == STATUS_OK:
            return data
        if status == STATUS_NO_DATA:
            # "no data" is an empty result, not a failure
            return {'status': status, 'message': data.get('message'), 'list': []}
        if status in API_KEY_STATUSES:
            raise DartAPIError(f"{API_KEY_MESSAGE} ({status}: {data.get('message')})", status=status)
        message = data.get('message') if isinstance(data, dict) else data
        raise DartAPIError(f"DART API error {status}: {message}", status=status)

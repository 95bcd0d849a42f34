"""
HTTP client for the EDINET v2 disclosure API (Japan FSA).

EDINET has no per-company endpoint: filings are listed one submission date
at a time, so company lookups scan the daily document lists newest first.
"""
import datetime as dt
from typing import Any, Dict, Iterable, List, Optional

import requests

from core.config import Settings
from core.errors import ConfigurationError, EdinetAPIError, NoDataError
from core.logging import get_logger
from core.models import ParseResult
from core.pacing import PacingPolicy
from folder_processor import XBRLFolderProcessor

logger = get_logger(__name__)

EDINET_API_BASE = 'https://api.edinet-fsa.go.jp/api/v2'
EDINET_VIEWER_URL = 'https://disclosure.edinet-fsa.go.jp/EKW0EZ0001.html?docID={doc_id}'
API_KEY_MESSAGE = 'EDINET API key is required. Please set EDINET_API_KEY environment variable.'

# documents.json?type=2 returns the document list with metadata
DOCUMENT_LIST_TYPE = '2'
DOCUMENT_TYPES = {'1': 'submission', '2': 'pdf', '3': 'attachments', '4': 'xbrl'}
DEFAULT_SCAN_DAYS = 365


def iterate_dates_desc(start: dt.date, end: dt.date) -> Iterable[dt.date]:
    current = end
    while current >= start:
        yield current
        current -= dt.timedelta(days=1)


def _parse_date(value, default: dt.date) -> dt.date:
    if not value:
        return default
    if isinstance(value, dt.date):
        return value
    for fmt in ('%Y-%m-%d', '%Y%m%d', '%Y/%m/%d'):
        try:
            return dt.datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    raise ConfigurationError(f"Invalid date format: {value}")


def filing_ref(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize one documents.json result into a filing reference."""
    doc_id = doc.get('docID')
    return {
        'document_id': doc_id,
        'edinet_code': doc.get('edinetCode'),
        'sec_code': doc.get('secCode'),
        'jcn': doc.get('JCN'),
        'filer_name': doc.get('filerName'),
        'document_type': doc.get('docTypeCode'),
        'document_description': doc.get('docDescription'),
        'period_start': doc.get('periodStart'),
        'period_end': doc.get('periodEnd'),
        'submit_date': doc.get('submitDateTime'),
        'xbrl_flag': doc.get('xbrlFlag') == '1',
        'pdf_flag': doc.get('pdfFlag') == '1',
        'urls': {
            'document': f"{EDINET_API_BASE}/documents/{doc_id}",
            'viewer': EDINET_VIEWER_URL.format(doc_id=doc_id),
        },
    }


class EdinetClient:
    """
    Thin wrapper over `requests.Session` for the EDINET endpoints.

    Every request carries the Subscription-Key and a fixed timeout; there
    are no retries. Failures surface as EdinetAPIError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        settings: Optional[Settings] = None,
        pacing: Optional[PacingPolicy] = None,
    ):
        self._settings = settings or Settings.from_env()
        self.api_key = api_key if api_key is not None else self._settings.edinet_api_key
        self._session = session or requests.Session()
        self._pacing = pacing or PacingPolicy(self._settings.date_scan_delay)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def search_companies(self, query: str, limit: int = 10, date: Optional[str] = None) -> Dict[str, Any]:
        """Find filers whose name contains ``query`` among one day's submissions."""
        search_date = _parse_date(date, dt.date.today()).isoformat()
        results = self._document_list(search_date)
        if not results:
            return {
                'query': query,
                'companies': [],
                'total_found': 0,
                'country': 'JP',
                'source': 'EDINET API',
                'note': 'No results found for the specified date',
            }

        needle = query.lower()
        companies = []
        for doc in results:
            if needle not in (doc.get('filerName') or '').lower():
                continue
            companies.append({
                'name': doc.get('filerName'),
                'edinet_code': doc.get('edinetCode'),
                'sec_code': doc.get('secCode') or None,
                'jcn': doc.get('JCN') or None,
                'recent_filing': {
                    'document_id': doc.get('docID'),
                    'document_type': doc.get('docTypeCode'),
                    'document_description': doc.get('docDescription'),
                    'period_start': doc.get('periodStart'),
                    'period_end': doc.get('periodEnd'),
                    'submit_date': doc.get('submitDateTime'),
                },
            })
            if len(companies) >= limit:
                break

        return {
            'query': query,
            'companies': companies,
            'total_found': len(companies),
            'country': 'JP',
            'source': 'EDINET API',
            'date_searched': search_date,
        }

    def get_company_filings(
        self,
        edinet_code: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 100,
    ) -> Dict[str, Any]:
        """
        Collect a company's filings, most recent first.

        Dates are scanned from ``end_date`` backwards and the scan stops as
        soon as ``limit`` filings are found. A date whose list cannot be
        fetched is skipped; a rejected API key aborts the scan.
        """
        end = _parse_date(end_date, dt.date.today())
        start = _parse_date(start_date, end - dt.timedelta(days=DEFAULT_SCAN_DAYS))

        filings: List[Dict[str, Any]] = []
        for current in iterate_dates_desc(start, end):
            try:
                results = self._document_list(current.isoformat())
            except EdinetAPIError as e:
                if e.status == '401':
                    raise
                logger.warning("Skipping EDINET document list for %s: %s", current, e)
                results = []
            finally:
                self._pacing.pace()

            day = [filing_ref(doc) for doc in results if doc.get('edinetCode') == edinet_code]
            # a day's list is in submission order; newest first within the day too
            day.sort(key=lambda f: f['submit_date'] or '', reverse=True)
            filings.extend(day)
            if len(filings) >= limit:
                break

        logger.debug("Found %d filings for %s", len(filings), edinet_code)
        return {
            'edinet_code': edinet_code,
            'filings': filings[:limit],
            'total_found': len(filings),
            'date_range': {'start': start.isoformat(), 'end': end.isoformat()},
            'source': 'EDINET API',
        }

    def get_company(self, edinet_code: str) -> Dict[str, Any]:
        """Company details taken from its latest filing within the past year."""
        filings = self.get_company_filings(edinet_code, limit=1)['filings']
        if not filings:
            raise NoDataError(f"No filings found for EDINET code: {edinet_code}")

        latest = filings[0]
        return {
            'edinet_code': edinet_code,
            'name': latest['filer_name'],
            'sec_code': latest['sec_code'],
            'jcn': latest['jcn'],
            'latest_filing': {
                'document_id': latest['document_id'],
                'submit_date': latest['submit_date'],
                'document_type': latest['document_type'],
            },
            'country': 'JP',
            'source': 'EDINET API',
        }

    def get_documents_by_date(self, date: str) -> Dict[str, Any]:
        """All documents submitted on one day."""
        day = _parse_date(date, dt.date.today()).isoformat()
        data = self._request_json('documents.json', {'date': day, 'type': DOCUMENT_LIST_TYPE})
        results = data.get('results') or []
        count = ((data.get('metadata') or {}).get('resultset') or {}).get('count') or len(results)

        documents = []
        for doc in results:
            ref = filing_ref(doc)
            documents.append({k: ref[k] for k in (
                'document_id', 'edinet_code', 'sec_code', 'filer_name', 'document_type',
                'document_description', 'period_start', 'period_end', 'submit_date', 'xbrl_flag',
            )})

        return {
            'date': date,
            'documents': documents,
            'total_count': count,
            'source': 'EDINET API',
        }

    def get_filing_document(self, doc_id: str, doc_type: str = '1') -> Dict[str, Any]:
        """Download a filing. Type 1 is the submission ZIP, 2 the PDF, 3 attachments, 4 XBRL."""
        doc_type = str(doc_type)
        if doc_type not in DOCUMENT_TYPES:
            raise ConfigurationError(f"Unknown EDINET document type: {doc_type}")

        response = self._request(
            f"documents/{doc_id}",
            {'type': doc_type},
            timeout=self._settings.document_timeout,
        )
        content_type = response.headers.get('content-type', '')
        if 'application/json' in content_type:
            # EDINET answers errors with a JSON body and HTTP 200
            self._check_payload(response.json())

        return {
            'document_id': doc_id,
            'type': DOCUMENT_TYPES[doc_type],
            'data': response.content,
            'content_type': content_type,
        }

    def get_filing_facts(self, doc_id: str, include_non_numeric: bool = False) -> ParseResult:
        """Download a submission and parse the facts of its inline XBRL documents."""
        document = self.get_filing_document(doc_id, '1')
        processor = XBRLFolderProcessor(include_non_numeric=include_non_numeric)
        result = processor.process_archive(document['data'])
        logger.info("Parsed %d facts from EDINET document %s", result.total_facts, doc_id)
        return result

    # ------------------------------------------------------------------ #
    # Request helpers
    # ------------------------------------------------------------------ #
    def _document_list(self, date: str) -> List[Dict[str, Any]]:
        data = self._request_json('documents.json', {'date': date, 'type': DOCUMENT_LIST_TYPE})
        return data.get('results') or []

    def _request_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        response = self._request(path, params)
        try:
            data = response.json()
        except ValueError as e:
            raise EdinetAPIError(f"EDINET returned invalid JSON for {path}: {e}") from e
        self._check_payload(data)
        return data

    def _check_payload(self, data: Dict[str, Any]) -> None:
        if not isinstance(data, dict):
            raise EdinetAPIError(f"Unexpected EDINET response: {data!r}")
        status = data.get('StatusCode') or (data.get('metadata') or {}).get('status')
        if status is None or str(status) == '200':
            return
        status = str(status)
        if status == '401':
            raise EdinetAPIError(API_KEY_MESSAGE, status=status)
        message = data.get('message') or (data.get('metadata') or {}).get('message') or 'unknown error'
        raise EdinetAPIError(f"EDINET API error {status}: {message}", status=status)

    def _request(self, path: str, params: Dict[str, Any], timeout: Optional[float] = None) -> requests.Response:
        url = f"{EDINET_API_BASE}/{path}"
        query = {'Subscription-Key': self.api_key}
        query.update({k: v for k, v in params.items() if v is not None})

        logger.debug("Requesting %s %s", url, {k: v for k, v in params.items()})
        try:
            response = self._session.get(url, params=query, timeout=timeout or self._settings.request_timeout)
        except requests.RequestException as e:
            raise EdinetAPIError(f"EDINET request failed: {e}") from e

        if response.status_code == 401:
            raise EdinetAPIError(API_KEY_MESSAGE, status='401')
        if response.status_code >= 400:
            raise EdinetAPIError(
                f"EDINET request failed with HTTP {response.status_code}",
                status=str(response.status_code),
            )
        return response

import datetime as dt

import pytest

from analysis.sources import DartSource, EdinetSource, get_filing_source, parse_document_id
from core.config import Settings
from core.errors import ConfigurationError, NoDataError


@pytest.mark.parametrize('document_id, expected', [
    ('2023:11011', ('2023', '11011')),
    ('2022:11014', ('2022', '11014')),
    ('2023', ('2023', '11011')),
    (' 2023 : 11012 ', ('2023', '11012')),
])
def test_parse_document_id(document_id, expected):
    assert parse_document_id(document_id) == expected


@pytest.mark.parametrize('document_id', [None, '', '   ', 'FY23:11011', '2023:1101', '2023:abc'])
def test_parse_document_id_rejects(document_id):
    with pytest.raises(ConfigurationError):
        parse_document_id(document_id)


def test_missing_korean_document_id_message():
    with pytest.raises(ConfigurationError, match='business_year and report_code are required'):
        parse_document_id(None)


def test_dart_periods_start_last_year():
    source = DartSource(client=None, report_code='11012', today=dt.date(2025, 1, 15))
    refs = source.list_recent_periods('00126380', 3)

    assert [ref.period for ref in refs] == ['2024-12-31', '2023-12-31', '2022-12-31']
    assert {ref.report_code for ref in refs} == {'11012'}
    assert source.candidate_count(3) == 3


def test_edinet_source_without_filings():
    class Client:
        def get_company_filings(self, edinet_code, limit=100):
            return {'filings': []}

    with pytest.raises(NoDataError):
        EdinetSource(Client()).resolve_document('E00001', None)


def test_edinet_source_with_document_id_skips_listing():
    ref, info = EdinetSource(client=None).resolve_document('E00001', 'S100ABCD')
    assert ref.document_id == 'S100ABCD'
    assert info == {'document_id': 'S100ABCD'}


@pytest.mark.parametrize('country, cls', [('JP', EdinetSource), ('jp', EdinetSource), ('KR', DartSource)])
def test_get_filing_source(country, cls):
    source = get_filing_source(country, Settings(edinet_api_key='k', dart_api_key='k'))
    assert isinstance(source, cls)
    assert source.client.api_key == 'k'


@pytest.mark.parametrize('country', ['US', '', None])
def test_unsupported_country(country):
    with pytest.raises(ConfigurationError, match='Use JP for Japan or KR for Korea'):
        get_filing_source(country)

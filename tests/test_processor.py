import json

import pandas as pd
import pytest

from core.errors import XBRLParseError
from inline_processor import iXBRLProcessor, parse_documents, parse_markup
from processor import (
    DARTStatementProcessor,
    build_summary,
    export_to_csv,
    export_to_json,
    parse_fact_value,
    parse_structured,
)


@pytest.mark.parametrize('text, expected', [
    ('1,234,000', 1234000),
    ('△500', -500),
    ('▲1,000', -1000),
    ('－300', -300),
    ('-42', -42),
    (' 1 234 ', 1234),
    ('1,000　', 1000),
    ('12.5', 12.5),
    ('+7', 7),
    ('0', 0),
])
def test_parse_fact_value(text, expected):
    value = parse_fact_value(text)
    assert value == expected
    assert type(value) is type(expected)


@pytest.mark.parametrize('text', ['', '   ', None, 123, 'abc', '－', '1.2.3', 'N/A'])
def test_parse_fact_value_returns_none_for_non_numbers(text):
    assert parse_fact_value(text) is None


@pytest.mark.parametrize('number', [0, 7, 999, 1000, 1234567, 10 ** 15])
def test_parse_fact_value_recovers_formatted_integers(number):
    assert parse_fact_value(f"{number:,}") == number
    assert parse_fact_value(f"△{number}") == -number
    assert parse_fact_value(f"-{number}") == -number


class TestParseMarkup:
    def test_numeric_facts(self, sample_ixbrl):
        result = parse_markup(sample_ixbrl)

        assert result.source == 'iXBRL Parser'
        assert result.total_facts == 4
        assert result.numeric_facts == 4
        assert [f.concept for f in result.facts] == ['NetSales', 'OperatingIncome', 'NetSales', 'NoPrefixItem']

    def test_scale_applied_once(self, sample_ixbrl):
        net_sales = parse_markup(sample_ixbrl).facts[0]

        assert net_sales.namespace == 'jppfs_cor'
        assert net_sales.value == 1_000_000_000
        assert net_sales.raw_value == '1,000'
        assert net_sales.scale == 6
        assert net_sales.decimals == '-6'
        assert net_sales.unit == 'iso4217:JPY'
        assert net_sales.unit_ref == 'JPY'
        assert net_sales.format == 'ixt:num-dot-decimal'
        assert net_sales.period.start_date == '2023-04-01'
        assert net_sales.period.end_date == '2024-03-31'
        assert net_sales.dimensions == {}

    def test_sign_attribute_negates(self, sample_ixbrl):
        operating = parse_markup(sample_ixbrl).facts[1]
        assert operating.value == -25_000_000

    def test_dimensions_from_context(self, sample_ixbrl):
        japan = parse_markup(sample_ixbrl).facts[2]

        assert japan.value == 980000
        assert japan.dimensions == {'jpcrp_cor:GeographicAreasAxis': 'jpcrp_cor:JapanMember'}
        assert japan.geography == 'Japan'
        assert japan.has_dimensions

    def test_unprefixed_name_has_unknown_namespace(self, sample_ixbrl):
        item = parse_markup(sample_ixbrl).facts[3]

        assert item.namespace == 'unknown'
        assert item.value == 1020000
        assert item.period.instant == '2024-03-31'
        assert item.period_type == 'instant'

    def test_contexts_and_units(self, sample_ixbrl):
        result = parse_markup(sample_ixbrl)

        assert set(result.contexts) == {'CurrentYearDuration', 'CurrentYearInstant', 'CurrentYearDuration_JapanMember'}
        assert result.contexts['CurrentYearInstant'].entity == 'E00001-000'
        assert result.units['JPY'].measure == 'iso4217:JPY'
        assert result.units['JPYPerShares'].divide
        assert result.units['JPYPerShares'].measure == 'iso4217:JPY/xbrli:shares'

    def test_non_numeric_inclusion(self, sample_ixbrl):
        result = parse_markup(sample_ixbrl, include_non_numeric=True)

        assert result.total_facts == 6
        assert result.numeric_facts == 4

        goodwill = next(f for f in result.facts if f.concept == 'Goodwill')
        assert goodwill.value is None
        assert goodwill.raw_value == '－'

        cover = next(f for f in result.facts if f.concept == 'CompanyNameCoverPage')
        assert cover.fact_type == 'text'
        assert cover.value is None
        assert cover.raw_value == 'テスト株式会社'
        assert cover.to_dict()['type'] == 'text'

    def test_zero_and_comma_decimal_formats(self, ixbrl_document):
        markup = ixbrl_document(
            '<ix:nonFraction name="jppfs_cor:Goodwill" contextRef="CurrentYearInstant" '
            'unitRef="JPY" format="ixt:fixed-zero">－</ix:nonFraction>'
            '<ix:nonFraction name="jppfs_cor:EPS" contextRef="CurrentYearDuration" '
            'unitRef="JPYPerShares" format="ixt:num-comma-decimal">1.234,5</ix:nonFraction>'
        )
        goodwill, eps = parse_markup(markup).facts

        assert goodwill.value == 0
        assert eps.value == 1234.5
        assert eps.unit == 'iso4217:JPY/xbrli:shares'

    def test_invalid_scale_is_ignored(self, ixbrl_document):
        markup = ixbrl_document(
            '<ix:nonFraction name="jppfs_cor:NetSales" contextRef="CurrentYearDuration" '
            'unitRef="JPY" scale="millions">100</ix:nonFraction>'
        )
        fact = parse_markup(markup).facts[0]
        assert fact.value == 100
        assert fact.scale == 0

    def test_unknown_context_leaves_period_empty(self, ixbrl_document):
        markup = ixbrl_document(
            '<ix:nonFraction name="jppfs_cor:NetSales" contextRef="Missing" unitRef="USD">5</ix:nonFraction>'
        )
        fact = parse_markup(markup).facts[0]
        assert fact.period is None
        assert fact.unit is None
        assert fact.dimensions == {}
        assert fact.period_end == ''

    @pytest.mark.parametrize('content', ['', '   ', b'', b'not markup at all'])
    def test_unusable_document_raises(self, content):
        with pytest.raises(XBRLParseError):
            parse_markup(content)

    def test_documents_share_header_contexts(self, header_and_body_documents):
        result = parse_documents(header_and_body_documents)

        assert result.total_facts == 4
        assert result.facts[2].geography == 'Japan'
        assert result.facts[0].period.end_date == '2024-03-31'

    def test_processor_to_dict(self, sample_ixbrl):
        processor = iXBRLProcessor()
        processor.load_ixbrl(sample_ixbrl)
        data = processor.to_dict()

        assert data['total_facts'] == 4
        assert data['units'] == {'JPY': 'iso4217:JPY', 'JPYPerShares': 'iso4217:JPY/xbrli:shares'}
        assert data['facts'][0]['contextRef'] == 'CurrentYearDuration'
        assert data['contexts']['CurrentYearInstant']['period'] == {'instant': '2024-03-31'}


class TestParseStructured:
    def test_line_items(self, dart_payload):
        result = parse_structured(dart_payload)

        assert result.source == 'XBRL-JSON Parser (DART)'
        assert result.total_facts == 3
        assert result.contexts == {}
        assert result.units == {}

        revenue = result.facts[0]
        assert revenue.namespace == 'k-gaap'
        assert revenue.concept == 'ifrs-full_Revenue'
        assert revenue.account_name == '매출액'
        assert revenue.value == 258_935_494_000_000
        assert revenue.current_term == 258_935_494_000_000
        assert revenue.previous_term == 302_231_360_000_000
        assert revenue.before_previous_term == 279_604_799_000_000
        assert revenue.currency == 'KRW'
        assert revenue.statement_type == 'IS'
        assert revenue.period.year == '2023'
        assert revenue.period.report_type == '11011'

    def test_placeholder_account_id_uses_account_name(self, dart_payload):
        other = parse_structured(dart_payload).facts[2]

        assert other.concept == '기타영업외손익'
        assert other.value == -1_234_000_000
        assert other.previous_term is None
        assert other.currency == 'KRW'

    def test_falls_back_to_previous_term_then_zero(self):
        result = parse_structured({'list': [
            {'account_id': 'Revenue', 'frmtrm_amount': '900,000'},
            {'account_id': 'Assets'},
            {'thstrm_amount': '1'},
        ]})

        assert [f.value for f in result.facts] == [900000, 0]
        assert result.facts[0].current_term is None

    def test_single_revenue_line_item(self):
        result = parse_structured({'list': [{
            'account_nm': '매출액', 'account_id': 'Revenue',
            'thstrm_amount': '1,000,000', 'frmtrm_amount': '900,000',
            'bsns_year': '2023', 'reprt_code': '11011',
        }]})

        fact, = result.facts
        assert fact.value == 1000000
        assert fact.account_name == '매출액'
        assert fact.to_dict()['accountName'] == '매출액'

    def test_missing_list_yields_no_facts(self):
        assert parse_structured({'status': '013'}).total_facts == 0

    @pytest.mark.parametrize('payload', [None, [], 'text'])
    def test_non_object_payload_raises(self, payload):
        with pytest.raises(XBRLParseError):
            parse_structured(payload)

    def test_processor_instance(self, dart_payload):
        processor = DARTStatementProcessor()
        processor.load_statements(dart_payload)
        assert len(processor.facts) == 3


def test_build_summary(sample_ixbrl):
    summary = build_summary(parse_markup(sample_ixbrl).facts)

    assert summary['totalFacts'] == 4
    assert summary['numericFacts'] == 4
    assert summary['textFacts'] == 0
    assert summary['byType']['Revenue'] == {'count': 2, 'totalValue': 1_000_980_000}
    assert summary['byType']['Operating Income']['count'] == 1
    assert summary['byNamespace'] == {'jppfs_cor': 3, 'unknown': 1}
    assert summary['dimensions']['geography'] == [{'dimension': 'Japan', 'facts': 1, 'totalValue': 980000}]
    assert summary['dimensions']['segments'] == []


def test_export_to_json(tmp_path, sample_ixbrl):
    path = tmp_path / 'facts.json'
    export_to_json(parse_markup(sample_ixbrl).to_dict(), path)

    data = json.loads(path.read_text(encoding='utf-8'))
    assert data['total_facts'] == 4
    assert data['facts'][0]['concept'] == 'NetSales'


def test_export_to_csv(tmp_path, sample_ixbrl):
    processor = iXBRLProcessor()
    processor.load_ixbrl(sample_ixbrl)
    path = tmp_path / 'facts.csv'
    processor.export_to_csv(path)

    df = pd.read_csv(path)
    assert len(df) == 4
    assert list(df['concept']) == ['NetSales', 'OperatingIncome', 'NetSales', 'NoPrefixItem']
    assert df.loc[0, 'classification'] == 'Revenue'
    assert json.loads(df.loc[2, 'dimensions']) == {'jpcrp_cor:GeographicAreasAxis': 'jpcrp_cor:JapanMember'}


def test_export_rows_with_nested_values(tmp_path):
    path = tmp_path / 'rows.csv'
    export_to_csv([{'concept': 'Revenue', 'dimensions': {'a': 'b'}, 'value': 1}], path)

    df = pd.read_csv(path)
    assert df.loc[0, 'dimensions'] == '{"a": "b"}'
    assert df.loc[0, 'value'] == 1

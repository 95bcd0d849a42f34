import json

import pandas as pd
import pytest

import cli
from analysis.sources import FilingSource
from core.models import PeriodRef


def run(capsys, *argv):
    code = cli.main(list(argv))
    return code, json.loads(capsys.readouterr().out)


@pytest.fixture
def ixbrl_file(tmp_path, sample_ixbrl):
    path = tmp_path / 'report_ixbrl.htm'
    path.write_text(sample_ixbrl, encoding='utf-8')
    return path


def test_parse_markup(capsys, ixbrl_file):
    code, output = run(capsys, 'parse', str(ixbrl_file))

    assert code == 0
    assert output['total_facts'] == 4
    assert output['source'] == 'iXBRL Parser'


def test_parse_summary(capsys, ixbrl_file):
    code, output = run(capsys, 'parse', str(ixbrl_file), '--summary', '--include-non-numeric')

    assert code == 0
    assert output['totalFacts'] == 6
    assert output['numericFacts'] == 4
    assert output['dimensions']['geography'][0]['dimension'] == 'Japan'


def test_parse_with_filter(capsys, ixbrl_file):
    code, output = run(capsys, 'parse', str(ixbrl_file), '--filter', '{"concept": "NetSales"}')

    assert code == 0
    assert output['total_facts'] == 2
    assert {fact['value'] for fact in output['facts']} == {1_000_000_000, 980_000}


def test_parse_dart_json_and_export(capsys, tmp_path, dart_payload):
    payload = tmp_path / 'statements.json'
    payload.write_text(json.dumps(dart_payload, ensure_ascii=False), encoding='utf-8')
    csv_path = tmp_path / 'facts.csv'
    json_path = tmp_path / 'facts.json'

    code, output = run(capsys, 'parse', str(payload), '--export-csv', str(csv_path), '--export-json', str(json_path))

    assert code == 0
    assert output['source'] == 'XBRL-JSON Parser (DART)'
    frame = pd.read_csv(csv_path)
    assert list(frame['accountName']) == ['매출액', '매출원가', '기타영업외손익']
    assert json.loads(json_path.read_text(encoding='utf-8'))['total_facts'] == 3


def test_missing_input_reports_error(capsys, tmp_path):
    code, output = run(capsys, 'parse', str(tmp_path / 'missing.htm'))

    assert code == 1
    assert 'does not exist' in output['error']


def test_invalid_json_input(capsys, tmp_path):
    path = tmp_path / 'broken.json'
    path.write_text('{"list": [', encoding='utf-8')
    code, output = run(capsys, 'parse', str(path))

    assert code == 1
    assert output['error'].startswith('Failed to parse XBRL JSON')


def test_unknown_filter_key_is_rejected(ixbrl_file):
    with pytest.raises(SystemExit):
        cli.main(['parse', str(ixbrl_file), '--filter', '{"unit": "JPY"}'])


class StaticSource(FilingSource):
    country = 'JP'
    currency_symbol = '¥'
    taxonomy = 'J-GAAP'
    classification_taxonomy = 'J-GAAP'
    table_label = 'EDINET J-GAAP Analysis'
    time_series_label = 'EDINET J-GAAP Time-Series Analysis'

    def __init__(self, facts):
        self.facts = facts

    def list_recent_periods(self, company_id, count):
        return [PeriodRef(period='2024-03-31', document_id='S100TEST')][:count]

    def fetch_period_facts(self, company_id, ref):
        return self.facts

    def resolve_document(self, company_id, document_id):
        return PeriodRef(document_id='S100TEST'), {'document_id': 'S100TEST'}


@pytest.fixture
def static_source(monkeypatch, fact_factory):
    source = StaticSource([
        fact_factory('NetSales', 1_000_000),
        fact_factory('OperatingIncome', 1_030_000),
        fact_factory('NetAssets', 9_000_000),
    ])
    monkeypatch.setattr(cli, 'get_filing_source', lambda country, settings=None: source)
    return source


def test_fact_table_command(capsys, tmp_path, static_source):
    csv_path = tmp_path / 'table.csv'
    code, output = run(capsys, 'fact-table', 'JP', 'E00001', '1,000,000', '--tolerance', '50000',
                       '--sort-by', 'value', '--export-csv', str(csv_path))

    assert code == 0
    assert [row['concept'] for row in output['table']] == ['OperatingIncome', 'NetSales']
    assert output['totalFactsFound'] == 2
    assert list(pd.read_csv(csv_path)['concept']) == ['OperatingIncome', 'NetSales']


def test_time_series_command(capsys, static_source, monkeypatch):
    monkeypatch.setenv('ASIA_FILINGS_FILING_DELAY', '0')
    code, output = run(capsys, 'time-series', 'JP', 'E00001', '--concept', 'NetSales', '--periods', '1')

    assert code == 0
    assert output['periods'] == ['2024-03-31']
    assert output['trends']['direction'] == 'insufficient_data'
    assert output['growthAnalysis'] is None


def test_filter_filings_command(capsys):
    filings = {'filings': [
        {'report_name': '사업보고서 (2023.12)', 'report_date': '20240312'},
        {'report_name': '주요사항보고서', 'report_date': '20240401'},
    ]}
    code, output = run(capsys, 'filter-filings', json.dumps(filings, ensure_ascii=False),
                       '--report-type', '사업보고서')

    assert code == 0
    assert output['total_found'] == 1
    assert output['filings'][0]['report_date'] == '20240312'


def test_command_is_required():
    with pytest.raises(SystemExit):
        cli.main([])

# cli.py
import argparse
import json
import sys
from pathlib import Path

from analysis.fact_table import DEFAULT_TOLERANCE, TableOptions, build_fact_table
from analysis.sources import get_filing_source
from analysis.time_series import TimeSeriesOptions, time_series_analysis
from clients.dart import ANNUAL_REPORT, DartClient, filter_filings
from clients.edinet import EdinetClient
from core.config import Settings
from core.errors import FilingsError, XBRLParseError
from core.filters import FilterCriteria
from core.logging import configure_logging, get_logger
from core.pacing import PacingPolicy
from folder_processor import XBRLFolderProcessor
from inline_processor import parse_markup
from processor import build_summary, export_to_csv, export_to_json, parse_fact_value, parse_structured

logger = get_logger(__name__)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _load_json_arg(value: str):
    """Accept inline JSON or @path/to/file.json."""
    if value.startswith('@'):
        try:
            value = Path(value[1:]).read_text(encoding='utf-8')
        except OSError as e:
            raise argparse.ArgumentTypeError(f"Cannot read {value[1:]}: {e}")
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"Invalid JSON: {e}")


def parse_input(path: Path, include_non_numeric: bool = False):
    """Parse a filing from disk: an iXBRL file, an EDINET ZIP or folder, or a DART JSON payload."""
    if not path.exists():
        raise XBRLParseError(f"Path {path} does not exist")

    if path.is_dir():
        return XBRLFolderProcessor(include_non_numeric).process_folder(path)
    suffix = path.suffix.lower()
    if suffix == '.zip':
        return XBRLFolderProcessor(include_non_numeric).process_archive(path.read_bytes())
    if suffix == '.json':
        try:
            payload = json.loads(path.read_text(encoding='utf-8'))
        except json.JSONDecodeError as e:
            raise XBRLParseError(f"Failed to parse XBRL JSON: {e}") from e
        return parse_structured(payload)
    return parse_markup(path.read_bytes(), include_non_numeric=include_non_numeric)


def cmd_parse(args, settings):
    result = parse_input(Path(args.input), include_non_numeric=args.include_non_numeric)
    if args.export_json:
        export_to_json(result.to_dict(), Path(args.export_json))
        logger.info("Exported to JSON: %s", args.export_json)
    if args.export_csv:
        export_to_csv([fact.to_dict() for fact in result.facts], Path(args.export_csv))
        logger.info("Exported to CSV: %s", args.export_csv)

    if args.summary:
        return dict(build_summary(result.facts), source=result.source)
    if args.filter:
        facts = [fact.to_dict() for fact in result.facts if args.filter.accepts(fact)]
        return {'facts': facts, 'total_facts': len(facts), 'source': result.source}
    return result.to_dict()


def cmd_fact_table(args, settings):
    options = TableOptions(
        max_rows=args.max_rows,
        show_dimensions=not args.hide_dimensions,
        sort_by=args.sort_by,
        filters=args.filter or FilterCriteria(),
    )
    result = build_fact_table(
        country=args.country,
        company_id=args.company,
        target_value=args.target,
        tolerance=args.tolerance,
        document_id=args.document_id,
        options=options,
        source=get_filing_source(args.country, settings),
    )
    if args.export_json:
        export_to_json(result, Path(args.export_json))
    if args.export_csv:
        export_to_csv(result['table'], Path(args.export_csv))
    return result


def cmd_time_series(args, settings):
    options = TimeSeriesOptions(
        concept=args.concept,
        periods=args.periods,
        include_geography=not args.no_geography,
        include_segments=not args.no_segments,
        show_growth_rates=not args.no_growth,
        min_value=args.min_value,
        max_value=args.max_value,
    )
    result = time_series_analysis(
        args.country,
        args.company,
        options=options,
        source=get_filing_source(args.country, settings),
        pacing=PacingPolicy(settings.filing_delay),
    )
    if args.export_json:
        export_to_json(result, Path(args.export_json))
    if args.export_csv:
        export_to_csv(result['timeSeries'], Path(args.export_csv))
    return result


def cmd_jp_search(args, settings):
    return EdinetClient(settings=settings).search_companies(args.query, limit=args.limit, date=args.date)


def cmd_jp_company(args, settings):
    return EdinetClient(settings=settings).get_company(args.edinet_code)


def cmd_jp_filings(args, settings):
    return EdinetClient(settings=settings).get_company_filings(
        args.edinet_code, start_date=args.start_date, end_date=args.end_date, limit=args.limit,
    )


def cmd_jp_documents(args, settings):
    return EdinetClient(settings=settings).get_documents_by_date(args.date)


def cmd_jp_document(args, settings):
    document = EdinetClient(settings=settings).get_filing_document(args.doc_id, args.type)
    data = document.pop('data')
    if args.output:
        Path(args.output).write_bytes(data)
        document['saved_to'] = args.output
    document['size'] = len(data)
    return document


def cmd_jp_facts(args, settings):
    result = EdinetClient(settings=settings).get_filing_facts(args.doc_id, args.include_non_numeric)
    if args.summary:
        return dict(build_summary(result.facts), source=result.source)
    return result.to_dict()


def cmd_kr_search(args, settings):
    return DartClient(settings=settings).search_companies(args.query, limit=args.limit)


def cmd_kr_company(args, settings):
    return DartClient(settings=settings).get_company(args.corp_code)


def cmd_kr_filings(args, settings):
    return DartClient(settings=settings).get_company_filings(
        args.corp_code, start_date=args.start_date, end_date=args.end_date,
        report_type=args.report_type, limit=args.limit,
    )


def cmd_kr_statements(args, settings):
    client = DartClient(settings=settings)
    if args.facts:
        result = client.get_statement_facts(args.corp_code, args.year, args.report_code, args.fs_div)
        return result.to_dict()
    return client.get_financial_statements(args.corp_code, args.year, args.report_code, args.fs_div)


def cmd_kr_shareholders(args, settings):
    return DartClient(settings=settings).get_major_shareholders(args.corp_code)


def cmd_kr_executives(args, settings):
    return DartClient(settings=settings).get_executive_info(args.corp_code, args.year)


def cmd_kr_dividends(args, settings):
    return DartClient(settings=settings).get_dividend_info(args.corp_code, args.year)


def cmd_filter_filings(args, settings):
    filings = args.filings
    if isinstance(filings, dict):
        filings = filings.get('filings', [])
    filtered = filter_filings(filings, {
        'startDate': args.start_date,
        'endDate': args.end_date,
        'reportType': args.report_type,
    })
    return {'filings': filtered, 'total_found': len(filtered)}


def _filter_arg(value: str) -> FilterCriteria:
    data = _load_json_arg(value)
    if not isinstance(data, dict):
        raise argparse.ArgumentTypeError('Filter criteria must be a JSON object')
    return FilterCriteria.from_mapping(data)


def _number(value: str):
    number = parse_fact_value(value)
    if number is None:
        raise argparse.ArgumentTypeError(f"Not a number: {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='EDINET/DART filing fact processor')
    parser.add_argument('--log-level', help='Logging level (default from ASIA_FILINGS_LOG_LEVEL)')
    parser.add_argument('--env-file', help='Path to a .env file with API keys')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('parse', help='Parse an iXBRL file, EDINET ZIP/folder or DART JSON payload')
    p.add_argument('input', type=str, help='Path to the filing')
    p.add_argument('--include-non-numeric', action='store_true', help='Keep ix:nonNumeric facts')
    p.add_argument('--summary', action='store_true', help='Print summary statistics instead of facts')
    p.add_argument('--filter', type=_filter_arg, help='Fact filter criteria as JSON (or @file)')
    p.add_argument('--export-json', type=str, help='Export to JSON file')
    p.add_argument('--export-csv', type=str, help='Export facts to CSV file')
    p.set_defaults(func=cmd_parse)

    p = sub.add_parser('fact-table', help='Find facts around a target value')
    p.add_argument('country', choices=['JP', 'KR'])
    p.add_argument('company', help='EDINET code or DART corp code')
    p.add_argument('target', type=_number, help='Target value in currency units')
    p.add_argument('--tolerance', type=_number, default=DEFAULT_TOLERANCE)
    p.add_argument('--document-id', help='EDINET docID, or YYYY:reportCode for Korea')
    p.add_argument('--max-rows', type=int, default=25)
    p.add_argument('--sort-by', choices=['deviation', 'value', 'concept'], default='deviation')
    p.add_argument('--hide-dimensions', action='store_true')
    p.add_argument('--filter', type=_filter_arg, help='Extra fact filter criteria as JSON (or @file)')
    p.add_argument('--export-json', type=str, help='Export result to JSON file')
    p.add_argument('--export-csv', type=str, help='Export table rows to CSV file')
    p.set_defaults(func=cmd_fact_table)

    p = sub.add_parser('time-series', help='Track a concept across periods')
    p.add_argument('country', choices=['JP', 'KR'])
    p.add_argument('company', help='EDINET code or DART corp code')
    p.add_argument('--concept', default='Revenue')
    p.add_argument('--periods', type=int, default=4)
    p.add_argument('--min-value', type=float, default=0)
    p.add_argument('--max-value', type=float, default=TimeSeriesOptions.max_value)
    p.add_argument('--no-geography', action='store_true')
    p.add_argument('--no-segments', action='store_true')
    p.add_argument('--no-growth', action='store_true')
    p.add_argument('--export-json', type=str, help='Export result to JSON file')
    p.add_argument('--export-csv', type=str, help='Export time-series rows to CSV file')
    p.set_defaults(func=cmd_time_series)

    p = sub.add_parser('jp-search', help='Search EDINET filers by name')
    p.add_argument('query')
    p.add_argument('--limit', type=int, default=10)
    p.add_argument('--date', help='Submission date to search (YYYY-MM-DD, default today)')
    p.set_defaults(func=cmd_jp_search)

    p = sub.add_parser('jp-company', help='EDINET filer details from its latest filing')
    p.add_argument('edinet_code')
    p.set_defaults(func=cmd_jp_company)

    p = sub.add_parser('jp-filings', help='List filings of an EDINET filer')
    p.add_argument('edinet_code')
    p.add_argument('--start-date')
    p.add_argument('--end-date')
    p.add_argument('--limit', type=int, default=100)
    p.set_defaults(func=cmd_jp_filings)

    p = sub.add_parser('jp-documents', help='List EDINET documents submitted on a date')
    p.add_argument('date')
    p.set_defaults(func=cmd_jp_documents)

    p = sub.add_parser('jp-document', help='Download an EDINET document')
    p.add_argument('doc_id')
    p.add_argument('--type', default='1', choices=['1', '2', '3', '4'])
    p.add_argument('--output', help='Where to save the downloaded file')
    p.set_defaults(func=cmd_jp_document)

    p = sub.add_parser('jp-facts', help='Download an EDINET submission and parse its facts')
    p.add_argument('doc_id')
    p.add_argument('--include-non-numeric', action='store_true')
    p.add_argument('--summary', action='store_true')
    p.set_defaults(func=cmd_jp_facts)

    p = sub.add_parser('kr-search', help='Search DART companies by name')
    p.add_argument('query')
    p.add_argument('--limit', type=int, default=10)
    p.set_defaults(func=cmd_kr_search)

    p = sub.add_parser('kr-company', help='DART company overview')
    p.add_argument('corp_code')
    p.set_defaults(func=cmd_kr_company)

    p = sub.add_parser('kr-filings', help='List DART disclosures of a company')
    p.add_argument('corp_code')
    p.add_argument('--start-date')
    p.add_argument('--end-date')
    p.add_argument('--report-type', help='pblntf_ty, e.g. A for periodic reports')
    p.add_argument('--limit', type=int, default=100)
    p.set_defaults(func=cmd_kr_filings)

    p = sub.add_parser('kr-statements', help='DART financial statements for a business year')
    p.add_argument('corp_code')
    p.add_argument('year')
    p.add_argument('--report-code', default=ANNUAL_REPORT)
    p.add_argument('--fs-div', default='CFS', choices=['CFS', 'OFS'])
    p.add_argument('--facts', action='store_true', help='Return parsed facts instead of raw line items')
    p.set_defaults(func=cmd_kr_statements)

    p = sub.add_parser('kr-shareholders', help='DART major shareholders')
    p.add_argument('corp_code')
    p.set_defaults(func=cmd_kr_shareholders)

    p = sub.add_parser('kr-executives', help='DART executives')
    p.add_argument('corp_code')
    p.add_argument('--year')
    p.set_defaults(func=cmd_kr_executives)

    p = sub.add_parser('kr-dividends', help='DART dividend information')
    p.add_argument('corp_code')
    p.add_argument('year')
    p.set_defaults(func=cmd_kr_dividends)

    p = sub.add_parser('filter-filings', help='Filter a DART filing list')
    p.add_argument('filings', type=_load_json_arg, help='Filing list or kr-filings result as JSON (or @file)')
    p.add_argument('--start-date')
    p.add_argument('--end-date')
    p.add_argument('--report-type')
    p.set_defaults(func=cmd_filter_filings)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env(args.env_file)
        configure_logging(args.log_level or settings.log_level)
        result = args.func(args, settings)
    except (FilingsError, OSError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        _print_json({'error': str(e)})
        return 1

    _print_json(result)
    return 0


if __name__ == '__main__':
    sys.exit(main())

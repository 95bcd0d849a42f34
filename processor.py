# processor.py
from core.models import Context, Unit, Fact, Period, ParseResult
from core.concepts import classify_fact
from core.dimensions import summarize_dimensions
from core.errors import XBRLParseError
from core.logging import get_logger
from typing import Dict, List, Optional, Any, Iterable, Mapping
from pathlib import Path
from lxml import etree
import pandas as pd
import json
import re

logger = get_logger(__name__)

# Negative markers used in Japanese and Korean statements
_NEGATIVE_GLYPHS = ('△', '▲', '－')
_SEPARATORS = re.compile(r'[,\s　]')
_NEGATIVE_MARKS = re.compile(r'[△▲－-]')
_INTEGER = re.compile(r'^\+?\d+$')
_NUMBER = re.compile(r'^\+?(?:\d+\.?\d*|\.\d+)(?:[eE]\+?\d+)?$')


def parse_fact_value(text: Any):
    """Parse an amount as printed in EDINET/DART filings.

    Thousands separators and whitespace (including the full-width space) are
    dropped, and the negative markers △, ▲, － and - flip the sign.

    Returns:
        int for integral amounts, float otherwise, None if the text is not a number.

    Examples:
        >>> parse_fact_value("1,234,000")
        1234000
        >>> parse_fact_value("△500")
        -500
        >>> parse_fact_value("n/a") is None
        True
    """
    if not text or not isinstance(text, str):
        return None

    cleaned = _SEPARATORS.sub('', text.strip())
    negative = any(glyph in cleaned for glyph in _NEGATIVE_GLYPHS) or cleaned.startswith('-')
    cleaned = _NEGATIVE_MARKS.sub('', cleaned)

    if not _NUMBER.match(cleaned):
        return None
    number = int(cleaned) if _INTEGER.match(cleaned) else float(cleaned)
    return -number if negative else number


def _local_name(tag: str) -> str:
    """Local part of a Clark-notation or prefixed tag: '{ns}context' / 'xbrli:context' -> 'context'."""
    return tag.rsplit('}', 1)[-1].rsplit(':', 1)[-1]


def _jsonable(value):
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return value


def export_to_json(data: Any, output_path: Path) -> None:
    """Write a result object as UTF-8 JSON."""
    with Path(output_path).open('w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False, default=str)


def export_to_csv(rows: Iterable[Mapping[str, Any]], output_path: Path) -> None:
    """Write table rows to CSV; nested mappings are stored as JSON text."""
    records = [{k: _jsonable(v) for k, v in row.items()} for row in rows]
    df = pd.DataFrame(records)
    df.to_csv(Path(output_path), index=False, encoding='utf-8')


def build_summary(facts: Iterable[Fact]) -> Dict[str, Any]:
    """Summary statistics for a parsed filing: counts, classification and dimension breakdown."""
    facts = list(facts)
    numeric = [f for f in facts if f.value is not None]

    by_type: Dict[str, Dict[str, Any]] = {}
    by_namespace: Dict[str, int] = {}
    for fact in facts:
        entry = by_type.setdefault(classify_fact(fact.concept), {'count': 0, 'totalValue': 0})
        entry['count'] += 1
        if fact.value is not None:
            entry['totalValue'] += fact.value
        by_namespace[fact.namespace] = by_namespace.get(fact.namespace, 0) + 1

    return {
        'totalFacts': len(facts),
        'numericFacts': len(numeric),
        'textFacts': len(facts) - len(numeric),
        'byType': by_type,
        'byNamespace': by_namespace,
        'dimensions': summarize_dimensions(facts),
    }


class XBRLProcessor:
    """Holds the contexts, units and facts of one filing and knows how to export them."""

    source = 'XBRL Processor'

    def __init__(self):
        self.contexts: Dict[str, Context] = {}
        self.units: Dict[str, Unit] = {}
        self.facts: List[Fact] = []

    def _parse_document(self, content) -> etree._Element:
        """Parse markup leniently; only a document with no usable root is an error."""
        if isinstance(content, str):
            content = content.encode('utf-8')
        if not content or not content.strip():
            raise XBRLParseError("Failed to parse iXBRL: document is empty")

        parser = etree.XMLParser(recover=True, huge_tree=True, resolve_entities=False)
        try:
            root = etree.fromstring(content, parser=parser)
        except etree.XMLSyntaxError as e:
            raise XBRLParseError(f"Failed to parse iXBRL: {e}") from e
        if root is None:
            raise XBRLParseError("Failed to parse iXBRL: no root element found")
        return root

    def _iter_local(self, root: etree._Element, *names: str):
        """Yield descendants whose local tag name is one of ``names`` (case-insensitive)."""
        wanted = {name.lower() for name in names}
        for elem in root.iter():
            if isinstance(elem.tag, str) and _local_name(elem.tag).lower() in wanted:
                yield elem

    def _first_text(self, elem: etree._Element, name: str) -> Optional[str]:
        for child in self._iter_local(elem, name):
            text = ''.join(child.itertext()).strip()
            return text or None
        return None

    def _parse_contexts(self, root: etree._Element) -> None:
        """Parse context elements, keyed by their id."""
        for context in self._iter_local(root, 'context'):
            context_id = context.get('id')
            if not context_id:
                logger.debug("Skipping context without id")
                continue
            self.contexts[context_id] = Context(
                id=context_id,
                entity=self._extract_entity(context),
                period=self._extract_period(context),
                dimensions=self._extract_dimensions(context),
            )
        logger.debug("Found %d contexts", len(self.contexts))

    def _extract_entity(self, context: etree._Element) -> str:
        return self._first_text(context, 'identifier') or ''

    def _extract_period(self, context: etree._Element) -> Period:
        return Period(
            instant=self._first_text(context, 'instant'),
            start_date=self._first_text(context, 'startDate'),
            end_date=self._first_text(context, 'endDate'),
        )

    def _extract_dimensions(self, context: etree._Element) -> Dict[str, str]:
        dimensions = {}
        for member in self._iter_local(context, 'explicitMember'):
            axis = member.get('dimension')
            if axis:
                dimensions[axis] = (member.text or '').strip()
        return dimensions

    def _parse_units(self, root: etree._Element) -> None:
        for unit in self._iter_local(root, 'unit'):
            self._process_unit_element(unit)
        logger.debug("Found %d units", len(self.units))

    def _process_unit_element(self, unit: etree._Element) -> None:
        unit_id = unit.get('id')
        if not unit_id:
            return

        numerator, denominator, measures = [], [], []
        for part_name, bucket in (('unitNumerator', numerator), ('unitDenominator', denominator)):
            for part in self._iter_local(unit, part_name):
                bucket.extend((m.text or '').strip() for m in self._iter_local(part, 'measure'))
        if not numerator:
            measures = [(m.text or '').strip() for m in self._iter_local(unit, 'measure')]

        self.units[unit_id] = Unit(
            id=unit_id,
            measures=measures or numerator,
            divide=bool(numerator),
            numerator=numerator,
            denominator=denominator,
        )

    def result(self) -> ParseResult:
        return ParseResult(
            facts=list(self.facts),
            contexts=dict(self.contexts),
            units=dict(self.units),
            source=self.source,
        )

    def export_to_csv(self, output_path: Path) -> None:
        """Export facts to CSV format, one row per fact."""
        rows = []
        for fact in self.facts:
            period = fact.period or Period()
            rows.append({
                'namespace': fact.namespace,
                'concept': fact.concept,
                'account_name': fact.account_name,
                'value': fact.value,
                'raw_value': fact.raw_value,
                'unit': fact.unit or fact.currency or '',
                'context_id': fact.context_ref,
                'period_start': period.start_date,
                'period_end': period.end_date,
                'instant': period.instant,
                'year': period.year,
                'dimensions': fact.dimensions,
                'classification': classify_fact(fact.concept),
            })
        export_to_csv(rows, output_path)


class DARTStatementProcessor(XBRLProcessor):
    """Turns DART ``fnlttSinglAcntAll`` line items into facts."""

    source = 'XBRL-JSON Parser (DART)'
    NAMESPACE = 'k-gaap'
    # DART's placeholder for line items without a standard account code
    UNUSED_ACCOUNT_ID = '-표준계정코드 미사용-'

    def load_statements(self, payload: Mapping[str, Any]) -> None:
        if not isinstance(payload, Mapping):
            raise XBRLParseError(f"Failed to parse XBRL JSON: expected an object, got {type(payload).__name__}")

        items = payload.get('list')
        if not isinstance(items, list):
            logger.debug("DART payload has no line item list")
            return

        for item in items:
            fact = self._process_line_item(item)
            if fact is not None:
                self.facts.append(fact)

    def _process_line_item(self, item: Mapping[str, Any]) -> Optional[Fact]:
        if not isinstance(item, Mapping):
            logger.warning("Skipping DART line item that is not an object: %r", item)
            return None

        account_id = item.get('account_id')
        account_name = item.get('account_nm')
        concept = account_id if account_id and account_id != self.UNUSED_ACCOUNT_ID else account_name
        if not concept:
            logger.warning("Skipping DART line item without account id or name")
            return None

        raw = item.get('thstrm_amount') or item.get('frmtrm_amount')
        return Fact(
            namespace=self.NAMESPACE,
            concept=concept,
            account_name=account_name,
            account_id=account_id,
            value=parse_fact_value(raw or '0'),
            raw_value=raw,
            currency=item.get('currency') or 'KRW',
            period=Period(year=item.get('bsns_year'), report_type=item.get('reprt_code')),
            current_term=parse_fact_value(item.get('thstrm_amount')),
            previous_term=parse_fact_value(item.get('frmtrm_amount')),
            before_previous_term=parse_fact_value(item.get('bfefrmtrm_amount')),
            ord=item.get('ord'),
            statement_type=item.get('sj_div'),
            source='DART',
        )


def parse_structured(payload: Mapping[str, Any]) -> ParseResult:
    """Parse a DART JSON statement payload (``{"list": [...]}``) into facts."""
    processor = DARTStatementProcessor()
    processor.load_statements(payload)
    return processor.result()

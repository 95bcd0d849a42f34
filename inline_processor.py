from processor import XBRLProcessor, parse_fact_value, _local_name
from core.models import Fact, ParseResult
from core.logging import get_logger
from typing import Iterable, List, Optional, Union
from lxml import etree

logger = get_logger(__name__)

Markup = Union[str, bytes]

# ixt transformation names (local part) that denote a zero shown as a dash
_ZERO_FORMATS = {'zerodash', 'fixed-zero', 'fixedzero'}
_COMMA_DECIMAL_FORMATS = {'numcommadecimal', 'num-comma-decimal', 'numdotcomma'}


class iXBRLProcessor(XBRLProcessor):
    """Inline XBRL (iXBRL) processor for EDINET filings."""

    source = 'iXBRL Parser'

    def __init__(self, include_non_numeric: bool = False):
        super().__init__()
        self.include_non_numeric = include_non_numeric

    def load_ixbrl(self, content: Markup) -> None:
        """Load and parse a single Inline XBRL document."""
        self.load_documents([content])

    def load_documents(self, documents: Iterable[Markup]) -> None:
        """Parse the iXBRL documents of one filing.

        Contexts and units are read from every document before any fact is
        resolved, since EDINET keeps them in the header file only.
        """
        roots = [self._parse_document(content) for content in documents]
        for root in roots:
            self._parse_contexts(root)
            self._parse_units(root)
        for root in roots:
            self._parse_ixbrl_facts(root)

        logger.debug(
            "Parsing complete: %d contexts, %d units, %d facts",
            len(self.contexts), len(self.units), len(self.facts),
        )

    def _parse_ixbrl_facts(self, root: etree._Element) -> List[Fact]:
        """Extract facts from ix:nonFraction and, when enabled, ix:nonNumeric elements."""
        facts = []
        for elem in self._iter_local(root, 'nonFraction'):
            fact = self._process_ixbrl_fact(elem)
            if fact is not None:
                facts.append(fact)

        if self.include_non_numeric:
            for elem in self._iter_local(root, 'nonNumeric'):
                fact = self._process_text_fact(elem)
                if fact is not None:
                    facts.append(fact)

        logger.debug("Found %d facts", len(facts))
        self.facts.extend(facts)
        return facts

    def _split_name(self, elem: etree._Element):
        name = elem.get('name')
        if not name:
            logger.debug("Skipping %s without a name attribute", _local_name(elem.tag))
            return None, None
        namespace, sep, concept = name.partition(':')
        if not sep:
            return 'unknown', name
        return namespace, concept

    def _process_ixbrl_fact(self, elem: etree._Element) -> Optional[Fact]:
        """Process a single ix:nonFraction element."""
        namespace, concept = self._split_name(elem)
        if concept is None:
            return None

        context_ref = elem.get('contextRef')
        unit_ref = elem.get('unitRef')
        format = elem.get('format')
        scale = self._parse_scale(elem.get('scale'), concept)

        text = ''.join(elem.itertext())
        value = parse_fact_value(self._apply_transform(text, format))

        if value is not None:
            value = self._apply_scaling(value, scale)
            if elem.get('sign') == '-':
                value = -value

        if value is None and not self.include_non_numeric:
            return None

        context = self.contexts.get(context_ref) if context_ref else None
        unit = self.units.get(unit_ref) if unit_ref else None
        return Fact(
            namespace=namespace,
            concept=concept,
            value=value,
            raw_value=text,
            context_ref=context_ref,
            unit_ref=unit_ref,
            unit=unit.measure if unit else None,
            decimals=elem.get('decimals'),
            scale=scale,
            format=format,
            period=context.period if context else None,
            dimensions=dict(context.dimensions) if context else {},
        )

    def _process_text_fact(self, elem: etree._Element) -> Optional[Fact]:
        namespace, concept = self._split_name(elem)
        if concept is None:
            return None
        context_ref = elem.get('contextRef')
        context = self.contexts.get(context_ref) if context_ref else None
        return Fact(
            namespace=namespace,
            concept=concept,
            value=None,
            raw_value=''.join(elem.itertext()),
            context_ref=context_ref,
            period=context.period if context else None,
            dimensions=dict(context.dimensions) if context else {},
            fact_type='text',
        )

    def _parse_scale(self, scale: Optional[str], concept: str) -> int:
        if scale is None or not scale.strip():
            return 0
        try:
            return int(scale)
        except ValueError:
            logger.warning("Ignoring invalid scale %r on %s", scale, concept)
            return 0

    def _apply_scaling(self, value, scale: int):
        """Apply the power-of-ten scale attribute once."""
        if not scale:
            return value
        return value * 10 ** scale

    def _apply_transform(self, value: str, format: Optional[str]) -> str:
        """Normalize text according to the ixt format before number parsing."""
        if not value or not format:
            return value

        transform = _local_name(format).lower()
        if transform in _ZERO_FORMATS:
            return '0'
        if transform in _COMMA_DECIMAL_FORMATS:
            # 1.234,56 -> 1,234.56
            return value.replace('.', '\0').replace(',', '.').replace('\0', ',')
        return value


def parse_markup(content: Markup, include_non_numeric: bool = False) -> ParseResult:
    """Parse one iXBRL document into facts, contexts and units."""
    processor = iXBRLProcessor(include_non_numeric=include_non_numeric)
    processor.load_ixbrl(content)
    return processor.result()


def parse_documents(documents: Iterable[Markup], include_non_numeric: bool = False) -> ParseResult:
    """Parse several iXBRL documents that belong to the same filing."""
    processor = iXBRLProcessor(include_non_numeric=include_non_numeric)
    processor.load_documents(documents)
    return processor.result()

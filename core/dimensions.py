"""
Dimension extraction for XBRL contexts.

A fact's dimensions map an axis identifier to a member label. Each extractor
walks the axes in insertion order and returns the cleaned member of the first
axis whose name contains one of its keywords. The keyword tables cover
IFRS/ESEF names, J-GAAP and K-GAAP terms.
"""
import re
from collections import OrderedDict
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

GEOGRAPHY_KEYWORDS: Tuple[str, ...] = (
    # IFRS/ESEF
    'GeographicalAreasMember',
    'CountriesMember',
    'RegionsMember',
    'StatementGeographicalAxis',
    # J-GAAP
    'GeographicArea',
    '地域',
    'Region',
    # K-GAAP
    '지역',
    'Area',
)

SEGMENT_KEYWORDS: Tuple[str, ...] = (
    'SegmentsMember',
    'BusinessSegmentsMember',
    'OperatingSegmentsMember',
    'StatementBusinessSegmentsAxis',
    'Segment',
    'セグメント',
    'BusinessSegment',
    '사업부문',
    '부문',
)

PRODUCT_KEYWORDS: Tuple[str, ...] = (
    'ProductsAndServicesMember',
    'ProductMember',
    'SubsegmentsAxis',
    'Product',
    '製品',
    '商品',
    '제품',
    '상품',
)

_MEMBER_SUFFIX = re.compile(r'Member$')
_CAPITAL = re.compile(r'([A-Z])')


def clean_dimension_value(value):
    """Turn 'jpcrp_cor:NorthAmericaMember' into 'North America'."""
    if not value or not isinstance(value, str):
        return value
    value = value.split(':')[-1]
    value = _MEMBER_SUFFIX.sub('', value)
    value = _CAPITAL.sub(r' \1', value)
    return value.strip()


def _extract(dimensions: Optional[Mapping[str, str]], keywords: Iterable[str]) -> Optional[str]:
    if not dimensions:
        return None
    for key in dimensions:
        if key is not None and any(keyword in key for keyword in keywords):
            return clean_dimension_value(dimensions[key])
    return None


def extract_geography(dimensions: Optional[Mapping[str, str]]) -> Optional[str]:
    return _extract(dimensions, GEOGRAPHY_KEYWORDS)


def extract_segment(dimensions: Optional[Mapping[str, str]]) -> Optional[str]:
    return _extract(dimensions, SEGMENT_KEYWORDS)


def extract_product(dimensions: Optional[Mapping[str, str]]) -> Optional[str]:
    return _extract(dimensions, PRODUCT_KEYWORDS)


def has_geography(dimensions) -> bool:
    return extract_geography(dimensions) is not None


def has_segment(dimensions) -> bool:
    return extract_segment(dimensions) is not None


def has_product(dimensions) -> bool:
    return extract_product(dimensions) is not None


def _breakdown(facts, extractor) -> List[Dict]:
    groups: 'OrderedDict[str, List]' = OrderedDict()
    for fact in facts:
        label = extractor(fact.dimensions)
        if label is not None:
            groups.setdefault(label, []).append(fact)
    return [
        {
            'dimension': label,
            'facts': len(members),
            'totalValue': sum(f.value or 0 for f in members),
        }
        for label, members in groups.items()
    ]


def summarize_dimensions(facts) -> Dict[str, List[Dict]]:
    """Group facts by geography, segment and product label."""
    facts = list(facts)
    return {
        'geography': _breakdown(facts, extract_geography),
        'segments': _breakdown(facts, extract_segment),
        'products': _breakdown(facts, extract_product),
    }

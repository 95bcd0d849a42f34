import pytest

from core.models import Fact, Period

IXBRL_HEADER = """<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml"
      xmlns:ix="http://www.xbrl.org/2013/inlineXBRL"
      xmlns:ixt="http://www.xbrl.org/inlineXBRL/transformation/2020-02-12"
      xmlns:xbrli="http://www.xbrl.org/2003/instance"
      xmlns:xbrldi="http://xbrl.org/2006/xbrldi"
      xmlns:iso4217="http://www.xbrl.org/2003/iso4217"
      xmlns:jppfs_cor="http://disclosure.edinet-fsa.go.jp/taxonomy/jppfs/2023-12-01/jppfs_cor"
      xmlns:jpcrp_cor="http://disclosure.edinet-fsa.go.jp/taxonomy/jpcrp/2023-12-01/jpcrp_cor">
<head><title>有価証券報告書</title></head>
<body>
<div style="display:none">
<ix:header>
<ix:resources>
  <xbrli:context id="CurrentYearDuration">
    <xbrli:entity>
      <xbrli:identifier scheme="http://disclosure.edinet-fsa.go.jp">E00001-000</xbrli:identifier>
    </xbrli:entity>
    <xbrli:period>
      <xbrli:startDate>2023-04-01</xbrli:startDate>
      <xbrli:endDate>2024-03-31</xbrli:endDate>
    </xbrli:period>
  </xbrli:context>
  <xbrli:context id="CurrentYearInstant">
    <xbrli:entity>
      <xbrli:identifier scheme="http://disclosure.edinet-fsa.go.jp">E00001-000</xbrli:identifier>
    </xbrli:entity>
    <xbrli:period>
      <xbrli:instant>2024-03-31</xbrli:instant>
    </xbrli:period>
  </xbrli:context>
  <xbrli:context id="CurrentYearDuration_JapanMember">
    <xbrli:entity>
      <xbrli:identifier scheme="http://disclosure.edinet-fsa.go.jp">E00001-000</xbrli:identifier>
      <xbrli:segment>
        <xbrldi:explicitMember dimension="jpcrp_cor:GeographicAreasAxis">jpcrp_cor:JapanMember</xbrldi:explicitMember>
      </xbrli:segment>
    </xbrli:entity>
    <xbrli:period>
      <xbrli:startDate>2023-04-01</xbrli:startDate>
      <xbrli:endDate>2024-03-31</xbrli:endDate>
    </xbrli:period>
  </xbrli:context>
  <xbrli:unit id="JPY">
    <xbrli:measure>iso4217:JPY</xbrli:measure>
  </xbrli:unit>
  <xbrli:unit id="JPYPerShares">
    <xbrli:divide>
      <xbrli:unitNumerator><xbrli:measure>iso4217:JPY</xbrli:measure></xbrli:unitNumerator>
      <xbrli:unitDenominator><xbrli:measure>xbrli:shares</xbrli:measure></xbrli:unitDenominator>
    </xbrli:divide>
  </xbrli:unit>
</ix:resources>
</ix:header>
</div>
"""

IXBRL_BODY = """
<table>
  <tr><td>売上高</td><td><ix:nonFraction name="jppfs_cor:NetSales" contextRef="CurrentYearDuration" unitRef="JPY" decimals="-6" scale="6" format="ixt:num-dot-decimal">1,000</ix:nonFraction></td></tr>
  <tr><td>営業損失</td><td><ix:nonFraction name="jppfs_cor:OperatingIncome" contextRef="CurrentYearDuration" unitRef="JPY" decimals="-6" scale="6" sign="-">25</ix:nonFraction></td></tr>
  <tr><td>日本</td><td><ix:nonFraction name="jppfs_cor:NetSales" contextRef="CurrentYearDuration_JapanMember" unitRef="JPY" decimals="0">980,000</ix:nonFraction></td></tr>
  <tr><td>その他</td><td><ix:nonFraction name="NoPrefixItem" contextRef="CurrentYearInstant" unitRef="JPY" decimals="0">1,020,000</ix:nonFraction></td></tr>
  <tr><td>のれん</td><td><ix:nonFraction name="jppfs_cor:Goodwill" contextRef="CurrentYearInstant" unitRef="JPY" decimals="0">－</ix:nonFraction></td></tr>
  <tr><td>名前なし</td><td><ix:nonFraction contextRef="CurrentYearDuration" unitRef="JPY" decimals="0">500</ix:nonFraction></td></tr>
</table>
<p><ix:nonNumeric name="jpcrp_cor:CompanyNameCoverPage" contextRef="CurrentYearDuration">テスト株式会社</ix:nonNumeric></p>
"""

IXBRL_FOOTER = """
</body>
</html>
"""


@pytest.fixture
def sample_ixbrl():
    """A single EDINET-style iXBRL document with header and facts."""
    return IXBRL_HEADER + IXBRL_BODY + IXBRL_FOOTER


@pytest.fixture
def header_and_body_documents():
    """The same filing split the way EDINET splits it: contexts in one file, facts in another."""
    header = IXBRL_HEADER + IXBRL_FOOTER
    body = IXBRL_HEADER.split('<div style="display:none">')[0] + IXBRL_BODY + IXBRL_FOOTER
    return header, body


@pytest.fixture
def dart_payload():
    return {
        'status': '000',
        'list': [
            {
                'rcept_no': '20240312000736',
                'bsns_year': '2023',
                'corp_code': '00126380',
                'sj_div': 'IS',
                'sj_nm': '손익계산서',
                'account_id': 'ifrs-full_Revenue',
                'account_nm': '매출액',
                'thstrm_amount': '258,935,494,000,000',
                'frmtrm_amount': '302,231,360,000,000',
                'bfefrmtrm_amount': '279,604,799,000,000',
                'ord': '1',
                'currency': 'KRW',
                'reprt_code': '11011',
            },
            {
                'bsns_year': '2023',
                'sj_div': 'IS',
                'account_id': 'ifrs-full_CostOfSales',
                'account_nm': '매출원가',
                'thstrm_amount': '180,388,580,000,000',
                'frmtrm_amount': '190,041,770,000,000',
                'ord': '2',
                'currency': 'KRW',
                'reprt_code': '11011',
            },
            {
                'bsns_year': '2023',
                'sj_div': 'IS',
                'account_id': '-표준계정코드 미사용-',
                'account_nm': '기타영업외손익',
                'thstrm_amount': '△1,234,000,000',
                'ord': '3',
                'reprt_code': '11011',
            },
        ],
    }


def make_fact(concept, value, end='2024-03-31', dimensions=None, instant=False, **kwargs):
    period = Period(instant=end) if instant else Period(start_date='2023-04-01', end_date=end)
    return Fact(concept=concept, value=value, period=period, dimensions=dimensions or {}, **kwargs)


@pytest.fixture
def fact_factory():
    return make_fact


@pytest.fixture
def ixbrl_document():
    """Wrap inline XBRL markup in a document that declares the sample contexts and units."""
    def wrap(markup):
        return IXBRL_HEADER + markup + IXBRL_FOOTER
    return wrap

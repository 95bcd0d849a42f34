"""
Business classification of accounting concepts.

Concept names are matched case-insensitively against an ordered rule table.
The first rule whose keyword groups all match (and whose exclusions do not)
decides the category. Expense rules sit ahead of the revenue rule because
names such as "CostOfSalesRevenue" or "매출원가" contain revenue vocabulary.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

REVENUE = 'Revenue'
CURRENT_ASSETS = 'Current Assets'
NON_CURRENT_ASSETS = 'Non-current Assets'
TOTAL_ASSETS = 'Total Assets'
ASSETS = 'Assets'
CURRENT_LIABILITIES = 'Current Liabilities'
NON_CURRENT_LIABILITIES = 'Non-current Liabilities'
TOTAL_LIABILITIES = 'Total Liabilities'
LIABILITIES = 'Liabilities'
EQUITY = 'Equity'
OPERATING_INCOME = 'Operating Income'
GROSS_PROFIT = 'Gross Profit'
NET_INCOME = 'Net Income/Profit'
OPERATING_EXPENSES = 'Operating Expenses'
COST_OF_SALES = 'Cost of Sales'
EXPENSES = 'Expenses'
CASH_FLOW_OPERATING = 'Cash Flow - Operating'
CASH_FLOW_INVESTING = 'Cash Flow - Investing'
CASH_FLOW_FINANCING = 'Cash Flow - Financing'
CASH_EQUIVALENTS = 'Cash & Equivalents'
INVENTORY = 'Inventory'
RECEIVABLES = 'Receivables'
PAYABLES = 'Payables'
DEPRECIATION = 'Depreciation/Amortization'
OTHER = 'Other'

DEPRECIATION_KEYWORDS = ('depreciation', 'amortization', 'amortisation', '減価償却', '감가상각', '상각비')
EXPENSE_KEYWORDS = ('cost', 'expense', '비용', '원가', '판매비', '費用', '経費', '販売費', '原価')
OPERATING_EXPENSE_KEYWORDS = (
    'operating', 'sellinggeneral', 'administrative', '판매비', '영업비용', '販売費', '一般管理費',
)
COST_OF_SALES_KEYWORDS = (
    'costofsales', 'cost of sales', 'costofrevenue', 'costofgoods', '매출원가', '売上原価',
)
RECEIVABLE_KEYWORDS = ('receivable', '매출채권', '미수금', '売掛金', '受取手形')
PAYABLE_KEYWORDS = ('payable', '매입채무', '미지급', '買掛金', '支払手形', '未払')
INVENTORY_KEYWORDS = ('inventor', '재고자산', '棚卸資産')
REVENUE_KEYWORDS = ('revenue', 'sales', '매출', '수익', '売上', '収益')
PROFIT_KEYWORDS = ('profit', '이익', '손익', '利益', '損益')
CASH_KEYWORDS = ('cash', '현금', '現金', 'キャッシュ')
OPERATING_ACTIVITY_KEYWORDS = ('operating', '영업활동', '営業活動')
INVESTING_ACTIVITY_KEYWORDS = ('investing', '투자활동', '投資活動')
FINANCING_ACTIVITY_KEYWORDS = ('financing', '재무활동', '財務活動')
ASSET_KEYWORDS = ('asset', '자산', '資産')
LIABILITY_KEYWORDS = ('liabilit', '부채', '負債')
EQUITY_KEYWORDS = ('equity', 'netassets', '자본', '純資産', '株主資本')
CURRENT_KEYWORDS = ('current', '유동', '流動')
NON_CURRENT_KEYWORDS = ('noncurrent', 'non-current', '비유동', '非流動', '固定')
TOTAL_KEYWORDS = ('total', '총계', '합계', '合計')
INCOME_KEYWORDS = ('income', 'profit', '이익', '利益', '損益')
OPERATING_INCOME_KEYWORDS = ('operating', '영업', '営業')
GROSS_KEYWORDS = ('gross', '매출총', '売上総')

NET_ASSETS_KEYWORDS = ('netassets', '純資産')


@dataclass(frozen=True)
class ConceptRule:
    category: str
    # every group must contribute at least one keyword
    groups: Tuple[Tuple[str, ...], ...]
    exclude: Tuple[str, ...] = ()

    def matches(self, concept_lower: str) -> bool:
        if any(keyword in concept_lower for keyword in self.exclude):
            return False
        return all(any(keyword in concept_lower for keyword in group) for group in self.groups)


CONCEPT_RULES: Tuple[ConceptRule, ...] = (
    ConceptRule(DEPRECIATION, (DEPRECIATION_KEYWORDS,)),

    ConceptRule(OPERATING_EXPENSES, (EXPENSE_KEYWORDS, OPERATING_EXPENSE_KEYWORDS)),
    ConceptRule(COST_OF_SALES, (EXPENSE_KEYWORDS, COST_OF_SALES_KEYWORDS)),
    ConceptRule(EXPENSES, (EXPENSE_KEYWORDS,)),

    ConceptRule(RECEIVABLES, (RECEIVABLE_KEYWORDS,)),
    ConceptRule(PAYABLES, (PAYABLE_KEYWORDS,)),
    ConceptRule(INVENTORY, (INVENTORY_KEYWORDS,)),

    ConceptRule(REVENUE, (REVENUE_KEYWORDS,), exclude=PROFIT_KEYWORDS),

    ConceptRule(CASH_FLOW_OPERATING, (CASH_KEYWORDS, OPERATING_ACTIVITY_KEYWORDS)),
    ConceptRule(CASH_FLOW_INVESTING, (CASH_KEYWORDS, INVESTING_ACTIVITY_KEYWORDS)),
    ConceptRule(CASH_FLOW_FINANCING, (CASH_KEYWORDS, FINANCING_ACTIVITY_KEYWORDS)),
    ConceptRule(CASH_EQUIVALENTS, (CASH_KEYWORDS,)),

    ConceptRule(CURRENT_ASSETS, (ASSET_KEYWORDS, CURRENT_KEYWORDS),
                exclude=NON_CURRENT_KEYWORDS + NET_ASSETS_KEYWORDS),
    ConceptRule(NON_CURRENT_ASSETS, (ASSET_KEYWORDS, NON_CURRENT_KEYWORDS), exclude=NET_ASSETS_KEYWORDS),
    ConceptRule(TOTAL_ASSETS, (ASSET_KEYWORDS, TOTAL_KEYWORDS), exclude=NET_ASSETS_KEYWORDS),
    ConceptRule(ASSETS, (ASSET_KEYWORDS,), exclude=NET_ASSETS_KEYWORDS),

    ConceptRule(CURRENT_LIABILITIES, (LIABILITY_KEYWORDS, CURRENT_KEYWORDS), exclude=NON_CURRENT_KEYWORDS),
    ConceptRule(NON_CURRENT_LIABILITIES, (LIABILITY_KEYWORDS, NON_CURRENT_KEYWORDS)),
    ConceptRule(TOTAL_LIABILITIES, (LIABILITY_KEYWORDS, TOTAL_KEYWORDS)),
    ConceptRule(LIABILITIES, (LIABILITY_KEYWORDS,)),

    ConceptRule(EQUITY, (EQUITY_KEYWORDS,)),

    ConceptRule(OPERATING_INCOME, (INCOME_KEYWORDS, OPERATING_INCOME_KEYWORDS)),
    ConceptRule(GROSS_PROFIT, (INCOME_KEYWORDS, GROSS_KEYWORDS)),
    ConceptRule(NET_INCOME, (INCOME_KEYWORDS,)),
)


def classify_fact(concept: Optional[str], taxonomy: Optional[str] = None) -> str:
    """
    Classify an accounting concept into a business category.

    Args:
        concept: Local element name or account label, e.g. 'NetSales' or '매출액'.
        taxonomy: Taxonomy label ('J-GAAP', 'K-GAAP', ...). Accepted for callers
            that know it; the keyword tables already cover every supported taxonomy.

    Returns:
        One of the category constants of this module, 'Other' when nothing matches.
    """
    if not concept:
        return OTHER
    concept_lower = concept.lower()
    for rule in CONCEPT_RULES:
        if rule.matches(concept_lower):
            return rule.category
    return OTHER

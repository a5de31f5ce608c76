"""
Ledger 모듈

데이터 모델, 균형 계산, 계정 상태 검증, Builder API
"""

from beanledger.ledger.model import (
    Account,
    Amount,
    Balance,
    Close,
    Commodity,
    CostSpec,
    Custom,
    Directive,
    Document,
    Event,
    IncompleteAmount,
    Include,
    Ledger,
    MetaCurrency,
    MetaTag,
    Note,
    Open,
    Option,
    Pad,
    Plugin,
    Posting,
    Price,
    PriceSpec,
    Query,
    Transaction,
)
from beanledger.ledger.balance import posting_weight, solve_transaction
from beanledger.ledger.account_state import AccountStateTable
from beanledger.ledger.builder import (
    BalanceBuilder,
    CloseBuilder,
    CommodityBuilder,
    CustomBuilder,
    DocumentBuilder,
    EventBuilder,
    LedgerBuilder,
    NoteBuilder,
    OpenBuilder,
    PadBuilder,
    PostingBuilder,
    PriceBuilder,
    QueryBuilder,
    TransactionBuilder,
)

__all__ = [
    # Model
    "Account",
    "Amount",
    "Balance",
    "Close",
    "Commodity",
    "CostSpec",
    "Custom",
    "Directive",
    "Document",
    "Event",
    "IncompleteAmount",
    "Include",
    "Ledger",
    "MetaCurrency",
    "MetaTag",
    "Note",
    "Open",
    "Option",
    "Pad",
    "Plugin",
    "Posting",
    "Price",
    "PriceSpec",
    "Query",
    "Transaction",
    # Balance / State
    "posting_weight",
    "solve_transaction",
    "AccountStateTable",
    # Builder
    "BalanceBuilder",
    "CloseBuilder",
    "CommodityBuilder",
    "CustomBuilder",
    "DocumentBuilder",
    "EventBuilder",
    "LedgerBuilder",
    "NoteBuilder",
    "OpenBuilder",
    "PadBuilder",
    "PostingBuilder",
    "PriceBuilder",
    "QueryBuilder",
    "TransactionBuilder",
]

"""
beanledger - 복식부기 평문 원장 라이브러리

텍스트 → Lexer → Parser(+ 의미 검증) → Ledger → Renderer → 텍스트
Builder API 로 렉서/파서 없이 같은 데이터 모델을 조립할 수 있다.

사용법:
    from beanledger import parse_text, render

    ledger, errors = parse_text(text)
    print(render(ledger))
"""

from beanledger.config import LedgerConfig, load_config
from beanledger.errors import (
    LedgerError,
    LexError,
    ParseError,
    RenderError,
    SemanticError,
    SourceSpan,
    ValidationError,
)
from beanledger.ledger import (
    Account,
    Amount,
    Ledger,
    Posting,
    Transaction,
    LedgerBuilder,
    PostingBuilder,
    TransactionBuilder,
)
from beanledger.render import render
from beanledger.syntax import parse, parse_text, tokenize

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    "tokenize",
    "parse",
    "parse_text",
    "render",
    # Config
    "LedgerConfig",
    "load_config",
    # Model
    "Account",
    "Amount",
    "Ledger",
    "Posting",
    "Transaction",
    # Builder
    "LedgerBuilder",
    "PostingBuilder",
    "TransactionBuilder",
    # Errors
    "LedgerError",
    "LexError",
    "ParseError",
    "RenderError",
    "SemanticError",
    "SourceSpan",
    "ValidationError",
]

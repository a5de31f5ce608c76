"""
Syntax 모듈

- lexer: 텍스트 → 토큰
- parser: 토큰 → Ledger + 오류 목록
"""

from beanledger.syntax.tokens import Token
from beanledger.syntax.lexer import tokenize
from beanledger.syntax.parser import parse, parse_text

__all__ = [
    "Token",
    "tokenize",
    "parse",
    "parse_text",
]

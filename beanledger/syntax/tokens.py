"""
토큰 정의

렉서가 생성하고 파서가 소비하는 위치 정보 포함 토큰
"""

from dataclasses import dataclass
from typing import Any

from beanledger.errors import SourceSpan
from beanledger.types import TokenKind


@dataclass(frozen=True)
class Token:
    """토큰 (불변)

    text 는 원문 그대로, value 는 해석된 값
    (STRING: 이스케이프 해제된 내용, TAG/LINK: 접두어 제외 이름, META_KEY: 키 이름, BOOL: bool)
    """

    kind: TokenKind
    text: str
    span: SourceSpan
    value: Any = None

    def is_punct(self, *symbols: str) -> bool:
        """특정 구두점 여부"""
        return self.kind == TokenKind.PUNCTUATION and self.text in symbols

    def is_keyword(self, *words: str) -> bool:
        """특정 키워드 여부"""
        return self.kind == TokenKind.KEYWORD and self.text in words

    def __str__(self) -> str:
        if self.kind in (TokenKind.EOL, TokenKind.INDENT, TokenKind.DEDENT, TokenKind.EOF):
            return self.kind.value
        return f"{self.kind.value} {self.text!r}"

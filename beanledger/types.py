"""
타입 정의 모듈

원장 문법과 데이터 모델에서 사용하는 Enum 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class TokenKind(str, Enum):
    """토큰 종류"""

    DATE = "DATE"
    STRING = "STRING"
    ACCOUNT = "ACCOUNT"
    CURRENCY = "CURRENCY"
    NUMBER = "NUMBER"
    FLAG = "FLAG"
    TAG = "TAG"
    LINK = "LINK"
    KEYWORD = "KEYWORD"
    META_KEY = "META_KEY"  # 메타데이터 키 (뒤따르는 ':' 포함하지 않음)
    BOOL = "BOOL"
    PUNCTUATION = "PUNCTUATION"
    COMMENT = "COMMENT"
    EOL = "EOL"
    INDENT = "INDENT"
    DEDENT = "DEDENT"
    EOF = "EOF"
    ERROR = "ERROR"  # 어휘 오류가 난 줄 (value: LexError)


class Flag(str, Enum):
    """거래/포스팅 플래그

    '*' 와 'txn' 은 모두 완료(OKAY)를 의미.
    """

    OKAY = "*"  # 완료
    WARNING = "!"  # 미완료 (확인 필요)
    PADDING = "P"
    SUMMARIZE = "S"
    TRANSFER = "T"
    CONVERSIONS = "C"
    UNREALIZED = "U"
    RETURNS = "R"
    MERGING = "M"
    FORECASTED = "#"

    @classmethod
    def from_text(cls, text: str) -> "Flag":
        """플래그 문자열 → Flag 변환

        Raises:
            ValueError: 알 수 없는 플래그
        """
        if text == "txn":
            return cls.OKAY
        return cls(text)


class Booking(str, Enum):
    """Open 지시어의 로트 매칭 방식"""

    STRICT = "STRICT"
    NONE = "NONE"
    AVERAGE = "AVERAGE"
    FIFO = "FIFO"
    LIFO = "LIFO"


class AccountType(str, Enum):
    """계정 유형 (복식부기 5대 계정)"""

    ASSETS = "assets"
    LIABILITIES = "liabilities"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSES = "expenses"


class DirectiveKind(str, Enum):
    """지시어 종류"""

    OPEN = "open"
    CLOSE = "close"
    BALANCE = "balance"
    PAD = "pad"
    NOTE = "note"
    EVENT = "event"
    PRICE = "price"
    DOCUMENT = "document"
    CUSTOM = "custom"
    QUERY = "query"
    COMMODITY = "commodity"
    TRANSACTION = "transaction"


class LexErrorKind(str, Enum):
    """어휘 분석 오류 유형"""

    UNTERMINATED_STRING = "UNTERMINATED_STRING"
    INVALID_NUMBER = "INVALID_NUMBER"
    ILLEGAL_CHARACTER = "ILLEGAL_CHARACTER"


class ParseErrorKind(str, Enum):
    """구문 분석 오류 유형"""

    UNEXPECTED_TOKEN = "UNEXPECTED_TOKEN"
    MALFORMED_DATE = "MALFORMED_DATE"
    MALFORMED_NUMBER = "MALFORMED_NUMBER"
    INVALID_ACCOUNT = "INVALID_ACCOUNT"
    INVALID_VALUE = "INVALID_VALUE"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    TAG_STACK = "TAG_STACK"


class SemanticErrorKind(str, Enum):
    """의미 검증 오류 유형"""

    UNBALANCED = "UNBALANCED"  # 거래 불균형
    ACCOUNT_STATE = "ACCOUNT_STATE"  # 중복 open, 미개설/폐쇄 계정 참조
    BALANCE_MISMATCH = "BALANCE_MISMATCH"  # balance 단언 불일치

"""
오류 분류 체계

LexError / ParseError / ValidationError / SemanticError 는 모두 LedgerError 를 상속.
파서는 오류를 내부에서만 raise 하고 리스트로 수집하여 반환 (첫 오류에서 중단하지 않음).
Builder 는 실패한 호출에서 ValidationError 를 즉시 raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable

from beanledger.types import (
    LexErrorKind,
    ParseErrorKind,
    SemanticErrorKind,
)


@dataclass(frozen=True)
class SourceSpan:
    """소스 위치 (불변)

    line, column 은 1부터 시작 (column 은 문자 단위).
    offset 은 입력을 UTF-8 로 인코딩했을 때 0부터 시작하는 바이트 오프셋, length 는 문자 수.
    """

    line: int
    column: int
    offset: int
    length: int = 0

    def __str__(self) -> str:
        return f"line {self.line} column {self.column}"


class LedgerError(Exception):
    """원장 처리 오류 기본 클래스

    Args:
        kind: 오류 유형 (Enum)
        message: 사람이 읽을 수 있는 메시지
        span: 오류 위치 (없으면 None)
    """

    def __init__(
        self,
        kind: Enum,
        message: str,
        span: SourceSpan | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.span = span

    def __str__(self) -> str:
        if self.span is None:
            return f"{self.kind.value}: {self.message}"
        return f"{self.kind.value}: {self.message} at {self.span}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value!r}, {self.message!r}, {self.span!r})"

    @property
    def sort_key(self) -> tuple[int, int]:
        """위치 순 정렬 키 (위치 없는 오류는 맨 뒤)"""
        if self.span is None:
            return (1, 0)
        return (0, self.span.offset)


class LexError(LedgerError):
    """어휘 분석 오류 (잘못된 문자, 닫히지 않은 문자열, 잘못된 숫자)"""

    def __init__(self, kind: LexErrorKind, message: str, span: SourceSpan) -> None:
        super().__init__(kind, message, span)


class ParseError(LedgerError):
    """구문 분석 오류 (예상치 못한 토큰, 잘못된 날짜/숫자)"""

    def __init__(
        self,
        kind: ParseErrorKind,
        message: str,
        span: SourceSpan | None = None,
    ) -> None:
        super().__init__(kind, message, span)


class ValidationErrorKind(str, Enum):
    """필수 필드 누락 / 형식 위반"""

    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"
    STAGE_ORDER = "STAGE_ORDER"


class ValidationError(LedgerError, ValueError):
    """필수 필드 누락 또는 필드 형식 위반

    Builder finalize 시점과 파서의 지시어 완료 시점 모두에서 사용.
    field 에 문제가 된 필드(단계) 이름을 담음.
    """

    def __init__(
        self,
        field: str,
        message: str,
        span: SourceSpan | None = None,
        kind: ValidationErrorKind = ValidationErrorKind.MISSING_FIELD,
    ) -> None:
        super().__init__(kind, message, span)
        self.field = field

    @classmethod
    def missing(
        cls,
        field: str,
        entity: str,
        span: SourceSpan | None = None,
    ) -> "ValidationError":
        """필수 필드 누락 오류 생성"""
        return cls(field, f"{entity}: required field '{field}' is missing", span)

    @classmethod
    def invalid(
        cls,
        field: str,
        message: str,
        span: SourceSpan | None = None,
    ) -> "ValidationError":
        """필드 형식 위반 오류 생성"""
        return cls(field, message, span, kind=ValidationErrorKind.INVALID_FIELD)


class SemanticError(LedgerError):
    """의미 검증 오류 (불균형 거래, 계정 상태 위반, balance 단언 불일치)

    Args:
        residual: 통화별 잔차 (균형을 맞추기 위해 필요한 금액)
        account: 관련 계정 이름
    """

    def __init__(
        self,
        kind: SemanticErrorKind,
        message: str,
        span: SourceSpan | None = None,
        residual: dict[str, Decimal] | None = None,
        account: str | None = None,
    ) -> None:
        super().__init__(kind, message, span)
        self.residual = dict(residual or {})
        self.account = account


class RenderErrorKind(str, Enum):
    """렌더링 오류 유형"""

    UNSUPPORTED_DIRECTIVE = "UNSUPPORTED_DIRECTIVE"
    INVALID_VALUE = "INVALID_VALUE"


class RenderError(LedgerError):
    """렌더링 불가 (생산 측 결함을 의미하는 치명적 오류)"""

    def __init__(self, kind: RenderErrorKind, message: str) -> None:
        super().__init__(kind, message)


def sort_errors(errors: Iterable[LedgerError]) -> list[LedgerError]:
    """오류를 소스 위치 순으로 정렬 (안정 정렬)"""
    return sorted(errors, key=lambda e: e.sort_key)

"""
원장 데이터 모델

모든 엔티티는 불변(frozen) dataclass.
지시어(Directive)는 클래스 계층이 아닌 닫힌 Union 으로 표현하며,
각 타입은 kind 클래스 속성으로 자신의 DirectiveKind 를 노출한다.

생성 후 수정하지 않음 (정정은 새 지시어로 표현).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Iterator, Mapping

from beanledger.constants import Grammar
from beanledger.errors import ValidationError
from beanledger.types import AccountType, Booking, DirectiveKind, Flag


CURRENCY_PATTERN = re.compile(r"^(?:[A-Z][A-Z0-9'._-]{0,22}[A-Z0-9]|[A-Z])$")
META_KEY_PATTERN = re.compile(r"^[a-z][a-zA-Z0-9_-]*$")
TAG_PATTERN = re.compile(r"^[A-Za-z0-9_/.-]+$")


# ---------------------------------------------------------------------------
# 값 변환 헬퍼
# ---------------------------------------------------------------------------

def to_decimal(value: Any, field_name: str = "number") -> Decimal:
    """정확한 십진수로 변환

    float 는 정밀도 손실이 있으므로 거부한다.

    Raises:
        ValidationError: 변환 불가 값
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError.invalid(
            field_name, f"{field_name} must be an exact decimal, got {type(value).__name__}"
        )
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, str)):
        try:
            number = Decimal(str(value).replace(",", ""))
        except InvalidOperation as e:
            raise ValidationError.invalid(
                field_name, f"{field_name} is not a valid decimal: {value!r}"
            ) from e
    else:
        raise ValidationError.invalid(
            field_name, f"{field_name} must be a decimal, got {type(value).__name__}"
        )
    if not number.is_finite():
        raise ValidationError.invalid(field_name, f"{field_name} must be finite: {value!r}")
    return number


def check_currency(currency: Any, field_name: str = "currency") -> str:
    """통화 코드 형식 검증"""
    if not isinstance(currency, str) or not CURRENCY_PATTERN.match(currency):
        raise ValidationError.invalid(field_name, f"invalid currency code: {currency!r}")
    return currency


def check_date(value: Any, field_name: str = "date") -> date:
    """달력 날짜 검증 (datetime 은 거부)"""
    if isinstance(value, datetime) or not isinstance(value, date):
        raise ValidationError.invalid(field_name, f"{field_name} must be a calendar date: {value!r}")
    return value


def format_number(number: Decimal) -> str:
    """Decimal → 고정소수점 문자열 (지수 표기 없이, 자릿수 보존)"""
    return format(number, "f")


# ---------------------------------------------------------------------------
# 계정 / 금액
# ---------------------------------------------------------------------------

def _is_valid_segment(segment: str) -> bool:
    if not segment or not segment[0].isupper():
        return False
    return all(ch.isalnum() or ch == "-" for ch in segment)


@dataclass(frozen=True, order=True)
class Account:
    """계정

    콜론으로 구분된 계층 경로. 각 세그먼트는 대문자로 시작해야 함.
    예: Assets:US:BofA:Checking
    """

    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise ValidationError.invalid("account", f"account must be a string: {self.name!r}")
        parts = self.name.split(":")
        if len(parts) < 2:
            raise ValidationError.invalid(
                "account", f"account needs at least two segments: {self.name!r}"
            )
        for segment in parts:
            if not _is_valid_segment(segment):
                raise ValidationError.invalid(
                    "account",
                    f"account segment {segment!r} must start with an uppercase letter: {self.name!r}",
                )

    def __str__(self) -> str:
        return self.name

    @property
    def parts(self) -> tuple[str, ...]:
        """세그먼트 목록"""
        return tuple(self.name.split(":"))

    @property
    def root(self) -> str:
        """루트 세그먼트 (Assets, Liabilities 등)"""
        return self.parts[0]

    @property
    def leaf(self) -> str:
        """마지막 세그먼트"""
        return self.parts[-1]

    @property
    def parent(self) -> Account | None:
        """상위 계정 (루트 바로 아래면 None)"""
        parts = self.parts
        if len(parts) <= 2:
            return None
        return Account(":".join(parts[:-1]))

    def is_descendant_of(self, other: Account) -> bool:
        """자기 자신 또는 하위 계정 여부"""
        return self.name == other.name or self.name.startswith(other.name + ":")

    def account_type(self, root_names: Mapping[str, str] | None = None) -> AccountType | None:
        """루트 이름으로 계정 유형 판별

        Args:
            root_names: 유형 키("assets" 등) → 루트 이름 매핑 (None 이면 기본값)

        Returns:
            AccountType, 알 수 없는 루트면 None
        """
        names = root_names or Grammar.ROOT_NAMES
        for key, root in names.items():
            if root == self.root:
                return AccountType(key)
        return None


@dataclass(frozen=True)
class Amount:
    """금액 (정확한 십진수 + 통화)"""

    number: Decimal
    currency: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "number", to_decimal(self.number))
        check_currency(self.currency)

    @classmethod
    def of(cls, number: Decimal | int | str, currency: str) -> Amount:
        """문자열/정수에서 생성하는 헬퍼"""
        return cls(to_decimal(number), currency)

    def __neg__(self) -> Amount:
        return Amount(-self.number, self.currency)

    def __str__(self) -> str:
        return f"{format_number(self.number)} {self.currency}"


@dataclass(frozen=True)
class IncompleteAmount:
    """숫자나 통화 중 하나만 적힌 포스팅 금액

    - 통화만 있음 (Expenses:Food  USD): 균형 계산이 그 통화의 잔차로 숫자를 채움
    - 숫자만 있음 (Assets:Cash  -5.00): 균형 계산이 다른 포스팅에서 통화를 추론
    """

    number: Decimal | None = None
    currency: str | None = None

    def __post_init__(self) -> None:
        if (self.number is None) == (self.currency is None):
            raise ValidationError.invalid(
                "units", "IncompleteAmount needs exactly one of number and currency"
            )
        if self.number is not None:
            object.__setattr__(self, "number", to_decimal(self.number, "units"))
        else:
            check_currency(self.currency, "units")

    def complete(self, other: Decimal | str) -> Amount:
        """빠진 쪽을 채운 Amount"""
        if self.number is None:
            return Amount(to_decimal(other, "units"), self.currency)
        return Amount(self.number, other)

    def __str__(self) -> str:
        if self.number is None:
            return self.currency
        return format_number(self.number)


class MetaCurrency(str):
    """메타데이터 값으로 쓰인 통화 (따옴표 없이 렌더링)"""

    __slots__ = ()


class MetaTag(str):
    """메타데이터 값으로 쓰인 태그 ('#' 제외 이름)"""

    __slots__ = ()


# 메타데이터 스칼라 값
MetaValue = str | Decimal | bool | date | Account | Amount


def check_meta(meta: Mapping[str, Any] | None) -> dict[str, Any]:
    """메타데이터 키/값 검증 후 순서 보존 dict 로 복사"""
    result: dict[str, Any] = {}
    for key, value in (meta or {}).items():
        if not isinstance(key, str) or not META_KEY_PATTERN.match(key):
            raise ValidationError.invalid("meta", f"invalid metadata key: {key!r}")
        if isinstance(value, float):
            raise ValidationError.invalid("meta", f"metadata value for {key!r} must not be a float")
        if not isinstance(value, (str, Decimal, bool, int, date, Account, Amount)):
            raise ValidationError.invalid(
                "meta", f"unsupported metadata value for {key!r}: {type(value).__name__}"
            )
        if isinstance(value, int) and not isinstance(value, bool):
            value = Decimal(value)
        result[key] = value
    return result


def _check_names(values: Any, field_name: str) -> frozenset[str]:
    names = frozenset(values or ())
    for name in names:
        if not isinstance(name, str) or not TAG_PATTERN.match(name):
            raise ValidationError.invalid(field_name, f"invalid {field_name[:-1]} name: {name!r}")
    return names


def _freeze_common(directive: Any) -> None:
    """공통 필드 검증 및 불변 컨테이너로 변환"""
    check_date(directive.date)
    object.__setattr__(directive, "meta", check_meta(directive.meta))
    object.__setattr__(directive, "tags", _check_names(directive.tags, "tags"))
    object.__setattr__(directive, "links", _check_names(directive.links, "links"))
    object.__setattr__(directive, "comments", tuple(directive.comments))


def _check_account(value: Any, field_name: str = "account") -> Account:
    if not isinstance(value, Account):
        raise ValidationError.invalid(field_name, f"{field_name} must be an Account: {value!r}")
    return value


def _check_amount(value: Any, field_name: str = "amount") -> Amount:
    if not isinstance(value, Amount):
        raise ValidationError.invalid(field_name, f"{field_name} must be an Amount: {value!r}")
    return value


# ---------------------------------------------------------------------------
# 포스팅
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CostSpec:
    """취득 원가

    {per CUR} 는 단위당 원가, {{total CUR}} 는 총 원가,
    {per # total CUR} 는 둘 다 지정한 복합 원가.
    """

    number_per: Decimal | None = None
    number_total: Decimal | None = None
    currency: str | None = None
    date: date | None = None
    label: str | None = None
    merge: bool = False  # {*} 평균 원가 병합

    def __post_init__(self) -> None:
        if self.number_per is not None:
            object.__setattr__(self, "number_per", to_decimal(self.number_per, "cost"))
        if self.number_total is not None:
            object.__setattr__(self, "number_total", to_decimal(self.number_total, "cost"))
        if self.currency is not None:
            check_currency(self.currency, "cost")
        elif not self.is_empty:
            raise ValidationError.missing("currency", "cost")
        if self.date is not None:
            check_date(self.date, "cost")

    @property
    def is_empty(self) -> bool:
        """금액 정보가 없는 원가 ({} 또는 {*})"""
        return self.number_per is None and self.number_total is None


@dataclass(frozen=True)
class PriceSpec:
    """가격 주석 (@ 단위 가격 / @@ 총 가격)"""

    amount: Amount
    is_total: bool = False

    def __post_init__(self) -> None:
        _check_amount(self.amount, "price")


@dataclass(frozen=True)
class Posting:
    """포스팅 (거래의 한 다리)

    units 가 None 이면 금액 생략(elision) - 균형 계산으로 채워짐.
    IncompleteAmount 도 생략으로 취급하되 적힌 쪽(숫자 또는 통화)은 유지된다.
    """

    account: Account
    units: Amount | IncompleteAmount | None = None
    cost: CostSpec | None = None
    price: PriceSpec | None = None
    flag: Flag | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_account(self.account)
        if self.units is not None and not isinstance(self.units, IncompleteAmount):
            _check_amount(self.units, "units")
        object.__setattr__(self, "meta", check_meta(self.meta))

    @property
    def is_elided(self) -> bool:
        """금액 생략 여부 (IncompleteAmount 포함)"""
        return not isinstance(self.units, Amount)

    @property
    def currency(self) -> str | None:
        """적힌 통화 (완전한 금액 또는 통화만 적힌 금액)"""
        if self.units is None:
            return None
        return self.units.currency


# ---------------------------------------------------------------------------
# 지시어
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Open:
    """계정 개설"""

    kind: ClassVar[DirectiveKind] = DirectiveKind.OPEN

    date: date
    account: Account
    currencies: tuple[str, ...] = ()
    booking: Booking | None = None
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)
        _check_account(self.account)
        object.__setattr__(
            self, "currencies", tuple(check_currency(c, "currencies") for c in self.currencies)
        )


@dataclass(frozen=True)
class Close:
    """계정 폐쇄"""

    kind: ClassVar[DirectiveKind] = DirectiveKind.CLOSE

    date: date
    account: Account
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)
        _check_account(self.account)


@dataclass(frozen=True)
class Balance:
    """잔액 단언 (해당 날짜 시작 시점의 잔액)"""

    kind: ClassVar[DirectiveKind] = DirectiveKind.BALANCE

    date: date
    account: Account
    amount: Amount
    tolerance: Decimal | None = None
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)
        _check_account(self.account)
        _check_amount(self.amount)
        if self.tolerance is not None:
            object.__setattr__(self, "tolerance", to_decimal(self.tolerance, "tolerance"))


@dataclass(frozen=True)
class Pad:
    """패딩 (다음 balance 단언을 맞추도록 source_account 에서 채움)"""

    kind: ClassVar[DirectiveKind] = DirectiveKind.PAD

    date: date
    account: Account
    source_account: Account
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)
        _check_account(self.account)
        _check_account(self.source_account, "source_account")


@dataclass(frozen=True)
class Note:
    """계정 메모"""

    kind: ClassVar[DirectiveKind] = DirectiveKind.NOTE

    date: date
    account: Account
    comment: str
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)
        _check_account(self.account)


@dataclass(frozen=True)
class Event:
    """이벤트 (위치, 고용주 등 시간에 따라 변하는 값)"""

    kind: ClassVar[DirectiveKind] = DirectiveKind.EVENT

    date: date
    name: str
    description: str
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)


@dataclass(frozen=True)
class Price:
    """시세 (1 currency = amount)"""

    kind: ClassVar[DirectiveKind] = DirectiveKind.PRICE

    date: date
    currency: str
    amount: Amount
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)
        check_currency(self.currency)
        _check_amount(self.amount)


@dataclass(frozen=True)
class Document:
    """계정 관련 문서 경로"""

    kind: ClassVar[DirectiveKind] = DirectiveKind.DOCUMENT

    date: date
    account: Account
    path: str
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)
        _check_account(self.account)


@dataclass(frozen=True)
class Custom:
    """사용자 정의 지시어 (값 목록은 메타데이터와 같은 스칼라)"""

    kind: ClassVar[DirectiveKind] = DirectiveKind.CUSTOM

    date: date
    name: str
    values: tuple[Any, ...] = ()
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)
        values = check_meta({f"v{i}": v for i, v in enumerate(self.values)})
        object.__setattr__(self, "values", tuple(values.values()))


@dataclass(frozen=True)
class Query:
    """이름 붙은 쿼리"""

    kind: ClassVar[DirectiveKind] = DirectiveKind.QUERY

    date: date
    name: str
    query_string: str
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)


@dataclass(frozen=True)
class Commodity:
    """통화/상품 선언"""

    kind: ClassVar[DirectiveKind] = DirectiveKind.COMMODITY

    date: date
    currency: str
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)
        check_currency(self.currency)


@dataclass(frozen=True)
class Transaction:
    """거래

    포스팅 순서는 렌더링에만 의미가 있고 균형 계산에는 무관.
    """

    kind: ClassVar[DirectiveKind] = DirectiveKind.TRANSACTION

    date: date
    narration: str
    flag: Flag = Flag.OKAY
    payee: str | None = None
    postings: tuple[Posting, ...] = ()
    meta: dict[str, Any] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    links: frozenset[str] = frozenset()
    comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _freeze_common(self)
        if not isinstance(self.flag, Flag):
            raise ValidationError.invalid("flag", f"invalid transaction flag: {self.flag!r}")
        postings = tuple(self.postings)
        for posting in postings:
            if not isinstance(posting, Posting):
                raise ValidationError.invalid("postings", f"not a Posting: {posting!r}")
        object.__setattr__(self, "postings", postings)

    @property
    def elided_postings(self) -> list[Posting]:
        """금액이 생략된 포스팅 목록"""
        return [p for p in self.postings if p.is_elided]


Directive = (
    Open | Close | Balance | Pad | Note | Event | Price
    | Document | Custom | Query | Commodity | Transaction
)

DIRECTIVE_TYPES: dict[DirectiveKind, type] = {
    DirectiveKind.OPEN: Open,
    DirectiveKind.CLOSE: Close,
    DirectiveKind.BALANCE: Balance,
    DirectiveKind.PAD: Pad,
    DirectiveKind.NOTE: Note,
    DirectiveKind.EVENT: Event,
    DirectiveKind.PRICE: Price,
    DirectiveKind.DOCUMENT: Document,
    DirectiveKind.CUSTOM: Custom,
    DirectiveKind.QUERY: Query,
    DirectiveKind.COMMODITY: Commodity,
    DirectiveKind.TRANSACTION: Transaction,
}


def is_directive(value: Any) -> bool:
    """지시어 타입 여부"""
    return type(value) in DIRECTIVE_TYPES.values()


# ---------------------------------------------------------------------------
# 날짜 없는 최상위 항목
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Option:
    """option "name" "value" """

    name: str
    value: str


@dataclass(frozen=True)
class Include:
    """include "path" (파싱만 하고 따라가지 않음)"""

    filename: str


@dataclass(frozen=True)
class Plugin:
    """plugin "module" ["config"] (파싱만 하고 실행하지 않음)"""

    module: str
    config: str | None = None


# ---------------------------------------------------------------------------
# 원장
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Ledger:
    """원장

    지시어는 입력 순서 그대로 보관 (재정렬하지 않음).
    원장은 지시어를 소유하며 하나의 단위로 폐기됨.
    """

    directives: tuple[Directive, ...] = ()
    options: tuple[Option, ...] = ()
    includes: tuple[Include, ...] = ()
    plugins: tuple[Plugin, ...] = ()
    trailing_comments: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        directives = tuple(self.directives)
        for directive in directives:
            if not is_directive(directive):
                raise ValidationError.invalid("directives", f"not a directive: {directive!r}")
        object.__setattr__(self, "directives", directives)
        object.__setattr__(self, "options", tuple(self.options))
        object.__setattr__(self, "includes", tuple(self.includes))
        object.__setattr__(self, "plugins", tuple(self.plugins))
        object.__setattr__(self, "trailing_comments", tuple(self.trailing_comments))

    def __iter__(self) -> Iterator[Directive]:
        return iter(self.directives)

    def __len__(self) -> int:
        return len(self.directives)

    def of_kind(self, kind: DirectiveKind) -> list[Directive]:
        """특정 종류의 지시어만 추출"""
        return [d for d in self.directives if d.kind == kind]

    @property
    def transactions(self) -> list[Transaction]:
        """거래 지시어 목록"""
        return [d for d in self.directives if isinstance(d, Transaction)]

    def option_map(self) -> dict[str, str]:
        """옵션 이름 → 값 (같은 이름은 마지막 값)"""
        return {opt.name: opt.value for opt in self.options}

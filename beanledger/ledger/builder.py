"""
Builder API

렉서/파서를 거치지 않고 데이터 모델을 조립하는 단계형 Builder.
필수 단계는 BuilderStageMachine 이 선언 순서대로만 진행시킨다.
- 선행 단계를 건너뛴 setter 호출 → ValidationError (STAGE_ORDER)
- 필수 단계가 남은 상태에서 finalize() → ValidationError (누락 단계 이름)
- 실패한 호출은 그 호출만 거부하고 기존 Builder 상태는 유지

사용 예시:
```python
txn = (
    TransactionBuilder()
    .set_date(date(2020, 1, 1))
    .set_narration("Lunch")
    .posting("Assets:Cash", "-10.00", "USD")
    .posting("Expenses:Food")
)
errors = txn.validate()
transaction = txn.finalize()
```
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, ClassVar, Mapping

from beanledger.config.loader import LedgerConfig, ToleranceConfig
from beanledger.domain.state_machines import BuilderStageMachine, StateMachineError
from beanledger.errors import SemanticError, ValidationError, ValidationErrorKind
from beanledger.ledger.balance import solve_transaction
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
    check_currency,
    check_date,
    check_meta,
    is_directive,
    to_decimal,
)
from beanledger.types import Booking, Flag

logger = logging.getLogger(__name__)


class _StagedBuilder:
    """단계 추적 공통 기반

    하위 클래스는 ENTITY 와 STAGES(필수 단계, 순서대로)를 선언한다.
    """

    ENTITY: ClassVar[str] = "Entity"
    STAGES: ClassVar[tuple[str, ...]] = ()

    def __init__(self, config: LedgerConfig | None = None) -> None:
        self._config = config or LedgerConfig.default()
        self._stages = BuilderStageMachine(self.ENTITY, self.STAGES)
        self._values: dict[str, Any] = {}

    @property
    def completed_stages(self) -> tuple[str, ...]:
        """완료된 필수 단계"""
        return self._stages.completed

    @property
    def missing_stage(self) -> str | None:
        """다음에 필요한 필수 단계 (모두 완료 시 None)"""
        return self._stages.next_stage

    def _set(self, stage: str, value: Any) -> Any:
        """검증이 끝난 값을 단계와 함께 기록"""
        try:
            self._stages.complete(stage)
        except StateMachineError as e:
            raise ValidationError(
                self._stages.next_stage or stage,
                f"{self.ENTITY}: '{stage}' cannot be set before '{self._stages.next_stage}'",
                kind=ValidationErrorKind.STAGE_ORDER,
            ) from e
        self._values[stage] = value
        return self

    def _require_complete(self) -> None:
        missing = self._stages.next_stage
        if missing is not None:
            raise ValidationError.missing(missing, self.ENTITY)

    def _account(self, value: Account | str, field_name: str = "account") -> Account:
        account = value if isinstance(value, Account) else Account(value)
        if account.account_type(self._config.root_names) is None:
            roots = ", ".join(self._config.root_names.values())
            raise ValidationError.invalid(
                field_name,
                f"{self.ENTITY}: invalid root account {account.root!r} (expected one of: {roots})",
            )
        return account

    @staticmethod
    def _amount(
        number: Amount | Decimal | int | str,
        currency: str | None,
        field_name: str = "amount",
    ) -> Amount:
        if isinstance(number, Amount):
            return number
        if currency is None:
            raise ValidationError.missing("currency", field_name)
        return Amount(to_decimal(number, field_name), check_currency(currency, field_name))


class DirectiveBuilder(_StagedBuilder):
    """지시어 Builder 기반 (date 가 항상 첫 단계)

    meta / tag / link / comment 는 순서 제약이 없는 선택 단계.
    """

    def __init__(self, config: LedgerConfig | None = None) -> None:
        super().__init__(config)
        self._meta: dict[str, Any] = {}
        self._tags: set[str] = set()
        self._links: set[str] = set()
        self._comments: list[str] = []

    def set_date(self, value: date) -> Any:
        return self._set("date", check_date(value))

    def meta(self, key: str, value: Any) -> Any:
        """메타데이터 추가 (키 중복 불가)"""
        if key in self._meta:
            raise ValidationError.invalid("meta", f"{self.ENTITY}: duplicate metadata key '{key}'")
        self._meta.update(_check_single_line_meta({key: value}, "meta"))
        return self

    def tag(self, *names: str) -> Any:
        self._tags.update(names)
        return self

    def link(self, *names: str) -> Any:
        self._links.update(names)
        return self

    def comment(self, text: str) -> Any:
        """지시어 위에 렌더링될 한 줄 주석 (';' 로 시작하지 않으면 붙여줌)"""
        text = _check_text(text, "comments")
        self._comments.append(text if text.startswith(";") else f"; {text}")
        return self

    def finalize(self) -> Directive:
        """필수 단계 확인 후 불변 지시어 생성

        Raises:
            ValidationError: 누락된 필수 단계 또는 형식 위반
        """
        self._require_complete()
        directive = self._build()
        logger.debug(f"{self.ENTITY} 생성: {directive.date}")
        return directive

    def _build(self) -> Directive:
        raise NotImplementedError

    def _common(self) -> dict[str, Any]:
        return {
            "date": self._values["date"],
            "meta": dict(self._meta),
            "tags": frozenset(self._tags),
            "links": frozenset(self._links),
            "comments": tuple(self._comments),
        }


class OpenBuilder(DirectiveBuilder):
    ENTITY = "Open"
    STAGES = ("date", "account")

    def __init__(self, config: LedgerConfig | None = None) -> None:
        super().__init__(config)
        self._currencies: list[str] = []
        self._booking: Booking | None = None

    def set_account(self, account: Account | str) -> OpenBuilder:
        return self._set("account", self._account(account))

    def currency(self, *currencies: str) -> OpenBuilder:
        """허용 통화 제약 추가"""
        for currency in currencies:
            check_currency(currency, "currencies")
        self._currencies.extend(currencies)
        return self

    def booking(self, method: Booking | str) -> OpenBuilder:
        try:
            self._booking = Booking(method.upper() if isinstance(method, str) else method)
        except ValueError as e:
            raise ValidationError.invalid("booking", f"unknown booking method: {method!r}") from e
        return self

    def _build(self) -> Open:
        return Open(
            account=self._values["account"],
            currencies=tuple(self._currencies),
            booking=self._booking,
            **self._common(),
        )


class CloseBuilder(DirectiveBuilder):
    ENTITY = "Close"
    STAGES = ("date", "account")

    def set_account(self, account: Account | str) -> CloseBuilder:
        return self._set("account", self._account(account))

    def _build(self) -> Close:
        return Close(account=self._values["account"], **self._common())


class BalanceBuilder(DirectiveBuilder):
    ENTITY = "Balance"
    STAGES = ("date", "account", "amount")

    def __init__(self, config: LedgerConfig | None = None) -> None:
        super().__init__(config)
        self._tolerance: Decimal | None = None

    def set_account(self, account: Account | str) -> BalanceBuilder:
        return self._set("account", self._account(account))

    def set_amount(
        self,
        number: Amount | Decimal | int | str,
        currency: str | None = None,
    ) -> BalanceBuilder:
        return self._set("amount", self._amount(number, currency))

    def tolerance(self, value: Decimal | int | str) -> BalanceBuilder:
        self._tolerance = to_decimal(value, "tolerance")
        return self

    def _build(self) -> Balance:
        return Balance(
            account=self._values["account"],
            amount=self._values["amount"],
            tolerance=self._tolerance,
            **self._common(),
        )


class PadBuilder(DirectiveBuilder):
    ENTITY = "Pad"
    STAGES = ("date", "account", "source_account")

    def set_account(self, account: Account | str) -> PadBuilder:
        return self._set("account", self._account(account))

    def set_source_account(self, account: Account | str) -> PadBuilder:
        return self._set("source_account", self._account(account, "source_account"))

    def _build(self) -> Pad:
        return Pad(
            account=self._values["account"],
            source_account=self._values["source_account"],
            **self._common(),
        )


class NoteBuilder(DirectiveBuilder):
    ENTITY = "Note"
    STAGES = ("date", "account", "comment")

    def set_account(self, account: Account | str) -> NoteBuilder:
        return self._set("account", self._account(account))

    def set_comment(self, text: str) -> NoteBuilder:
        return self._set("comment", _check_text(text, "comment"))

    def _build(self) -> Note:
        return Note(account=self._values["account"], comment=self._values["comment"], **self._common())


class EventBuilder(DirectiveBuilder):
    ENTITY = "Event"
    STAGES = ("date", "name", "description")

    def set_name(self, name: str) -> EventBuilder:
        return self._set("name", _check_text(name, "name"))

    def set_description(self, description: str) -> EventBuilder:
        return self._set("description", _check_text(description, "description"))

    def _build(self) -> Event:
        return Event(
            name=self._values["name"],
            description=self._values["description"],
            **self._common(),
        )


class PriceBuilder(DirectiveBuilder):
    ENTITY = "Price"
    STAGES = ("date", "currency", "amount")

    def set_currency(self, currency: str) -> PriceBuilder:
        return self._set("currency", check_currency(currency))

    def set_amount(
        self,
        number: Amount | Decimal | int | str,
        currency: str | None = None,
    ) -> PriceBuilder:
        return self._set("amount", self._amount(number, currency))

    def _build(self) -> Price:
        return Price(currency=self._values["currency"], amount=self._values["amount"], **self._common())


class DocumentBuilder(DirectiveBuilder):
    ENTITY = "Document"
    STAGES = ("date", "account", "path")

    def set_account(self, account: Account | str) -> DocumentBuilder:
        return self._set("account", self._account(account))

    def set_path(self, path: str) -> DocumentBuilder:
        return self._set("path", _check_text(path, "path"))

    def _build(self) -> Document:
        return Document(account=self._values["account"], path=self._values["path"], **self._common())


class CustomBuilder(DirectiveBuilder):
    ENTITY = "Custom"
    STAGES = ("date", "name")

    def __init__(self, config: LedgerConfig | None = None) -> None:
        super().__init__(config)
        self._custom_values: list[Any] = []

    def set_name(self, name: str) -> CustomBuilder:
        return self._set("name", _check_text(name, "name"))

    def value(self, *values: Any) -> CustomBuilder:
        # custom 헤더의 #tag 는 지시어 태그로 읽히므로 값으로 쓸 수 없음
        if any(isinstance(v, MetaTag) for v in values):
            raise ValidationError.invalid("values", "Custom: tag values are not supported")
        checked = _check_single_line_meta({f"v{i}": v for i, v in enumerate(values)}, "values")
        self._custom_values.extend(checked.values())
        return self

    def _build(self) -> Custom:
        return Custom(name=self._values["name"], values=tuple(self._custom_values), **self._common())


class QueryBuilder(DirectiveBuilder):
    ENTITY = "Query"
    STAGES = ("date", "name", "query_string")

    def set_name(self, name: str) -> QueryBuilder:
        return self._set("name", _check_text(name, "name"))

    def set_query_string(self, query_string: str) -> QueryBuilder:
        return self._set("query_string", _check_text(query_string, "query_string"))

    def _build(self) -> Query:
        return Query(
            name=self._values["name"],
            query_string=self._values["query_string"],
            **self._common(),
        )


class CommodityBuilder(DirectiveBuilder):
    ENTITY = "Commodity"
    STAGES = ("date", "currency")

    def set_currency(self, currency: str) -> CommodityBuilder:
        return self._set("currency", check_currency(currency))

    def _build(self) -> Commodity:
        return Commodity(currency=self._values["currency"], **self._common())


class PostingBuilder(_StagedBuilder):
    """포스팅 Builder (account 만 필수, 금액 생략 가능)"""

    ENTITY = "Posting"
    STAGES = ("account",)

    def __init__(self, config: LedgerConfig | None = None) -> None:
        super().__init__(config)
        self._units: Amount | IncompleteAmount | None = None
        self._cost: CostSpec | None = None
        self._price: PriceSpec | None = None
        self._flag: Flag | None = None
        self._meta: dict[str, Any] = {}

    def set_account(self, account: Account | str) -> PostingBuilder:
        return self._set("account", self._account(account))

    def units(self, number: Amount | Decimal | int | str, currency: str | None = None) -> PostingBuilder:
        self._units = self._amount(number, currency, "units")
        return self

    def incomplete_units(
        self,
        number: Decimal | int | str | None = None,
        currency: str | None = None,
    ) -> PostingBuilder:
        """숫자나 통화 중 하나만 적힌 금액 (나머지는 균형 계산이 채움)"""
        self._units = IncompleteAmount(number=number, currency=currency)
        return self

    def cost(
        self,
        number_per: Decimal | int | str | None = None,
        currency: str | None = None,
        number_total: Decimal | int | str | None = None,
        cost_date: date | None = None,
        label: str | None = None,
    ) -> PostingBuilder:
        """취득 원가 ({per CUR}, {{total CUR}}, {per # total CUR})

        Raises:
            ValidationError: 원가 숫자가 있는데 통화가 없음, 또는 여러 줄 label
        """
        if (number_per is not None or number_total is not None) and currency is None:
            raise ValidationError.missing("currency", "Posting cost")
        self._cost = CostSpec(
            number_per=number_per,
            number_total=number_total,
            currency=currency,
            date=cost_date,
            label=None if label is None else _check_text(label, "cost"),
        )
        return self

    def price(
        self,
        number: Amount | Decimal | int | str,
        currency: str | None = None,
        is_total: bool = False,
    ) -> PostingBuilder:
        self._price = PriceSpec(self._amount(number, currency, "price"), is_total=is_total)
        return self

    def flag(self, flag: Flag | str) -> PostingBuilder:
        self._flag = _to_flag(flag)
        return self

    def meta(self, key: str, value: Any) -> PostingBuilder:
        if key in self._meta:
            raise ValidationError.invalid("meta", f"Posting: duplicate metadata key '{key}'")
        self._meta.update(_check_single_line_meta({key: value}, "meta"))
        return self

    def finalize(self) -> Posting:
        """
        Raises:
            ValidationError: account 누락
        """
        self._require_complete()
        return Posting(
            account=self._values["account"],
            units=self._units,
            cost=self._cost,
            price=self._price,
            flag=self._flag,
            meta=dict(self._meta),
        )


class TransactionBuilder(DirectiveBuilder):
    """거래 Builder

    포스팅은 단계 순서와 무관하게 언제든 추가할 수 있다.
    균형 검증은 finalize() 가 아니라 validate() 에서 수행 (포스팅이 모두 모이기 전일 수 있으므로).
    """

    ENTITY = "Transaction"
    STAGES = ("date", "narration")

    def __init__(self, config: LedgerConfig | None = None) -> None:
        super().__init__(config)
        self._flag = Flag.OKAY
        self._payee: str | None = None
        self._postings: list[Posting] = []

    def set_narration(self, narration: str) -> TransactionBuilder:
        return self._set("narration", _check_text(narration, "narration"))

    def flag(self, flag: Flag | str) -> TransactionBuilder:
        self._flag = _to_flag(flag)
        return self

    def payee(self, payee: str | None) -> TransactionBuilder:
        self._payee = None if payee is None else _check_text(payee, "payee")
        return self

    def add_posting(self, posting: Posting | PostingBuilder) -> TransactionBuilder:
        if isinstance(posting, PostingBuilder):
            posting = posting.finalize()
        if not isinstance(posting, Posting):
            raise ValidationError.invalid("postings", f"not a Posting: {posting!r}")
        self._postings.append(posting)
        return self

    def posting(
        self,
        account: Account | str,
        number: Decimal | int | str | None = None,
        currency: str | None = None,
        meta: Mapping[str, Any] | None = None,
    ) -> TransactionBuilder:
        """단순 포스팅 추가 (number 생략 시 금액 생략 포스팅)"""
        builder = PostingBuilder(self._config).set_account(account)
        if number is not None:
            builder.units(number, currency)
        for key, value in (meta or {}).items():
            builder.meta(key, value)
        return self.add_posting(builder)

    def finalize(self) -> Transaction:
        """
        Raises:
            ValidationError: 누락 단계 또는 금액 생략 포스팅이 둘 이상
        """
        self._require_complete()
        elided = [p for p in self._postings if p.is_elided]
        if len(elided) > 1:
            raise ValidationError.invalid(
                "postings",
                f"Transaction: {len(elided)} postings without an amount (at most one allowed)",
            )
        return super().finalize()

    def validate(self, tolerance: ToleranceConfig | None = None) -> list[SemanticError]:
        """균형 검증 (오류를 데이터로 반환)

        Raises:
            ValidationError: 아직 finalize 할 수 없는 상태
        """
        transaction = self.finalize()
        _, errors = solve_transaction(transaction, tolerance or self._config.tolerance)
        return errors

    def _build(self) -> Transaction:
        return Transaction(
            narration=self._values["narration"],
            flag=self._flag,
            payee=self._payee,
            postings=tuple(self._postings),
            **self._common(),
        )


class LedgerBuilder:
    """원장 Builder (필수 단계 없음)"""

    def __init__(self) -> None:
        self._directives: list[Directive] = []
        self._options: list[Option] = []
        self._includes: list[Include] = []
        self._plugins: list[Plugin] = []

    def add(self, directive: Directive | DirectiveBuilder) -> LedgerBuilder:
        """지시어 추가 (Builder 를 넘기면 finalize 후 추가)"""
        if isinstance(directive, DirectiveBuilder):
            directive = directive.finalize()
        if not is_directive(directive):
            raise ValidationError.invalid("directives", f"not a directive: {directive!r}")
        self._directives.append(directive)
        return self

    def option(self, name: str, value: str) -> LedgerBuilder:
        self._options.append(Option(_check_text(name, "name"), _check_text(value, "value")))
        return self

    def include(self, filename: str) -> LedgerBuilder:
        self._includes.append(Include(_check_text(filename, "filename")))
        return self

    def plugin(self, module: str, config: str | None = None) -> LedgerBuilder:
        if config is not None:
            config = _check_text(config, "config")
        self._plugins.append(Plugin(_check_text(module, "module"), config))
        return self

    def finalize(self) -> Ledger:
        return Ledger(
            directives=tuple(self._directives),
            options=tuple(self._options),
            includes=tuple(self._includes),
            plugins=tuple(self._plugins),
        )


def _check_text(value: Any, field_name: str) -> str:
    # 문자열 리터럴은 한 줄만 허용
    if not isinstance(value, str):
        raise ValidationError.invalid(field_name, f"{field_name} must be a string: {value!r}")
    if "\n" in value or "\r" in value:
        raise ValidationError.invalid(field_name, f"{field_name} must be a single line")
    return value


def _check_single_line_meta(meta: Mapping[str, Any], field_name: str) -> dict[str, Any]:
    checked = check_meta(meta)
    for value in checked.values():
        if isinstance(value, str):
            _check_text(value, field_name)
    return checked


def _to_flag(flag: Flag | str) -> Flag:
    if isinstance(flag, Flag):
        return flag
    try:
        return Flag.from_text(flag)
    except ValueError as e:
        raise ValidationError.invalid("flag", f"unknown flag: {flag!r}") from e

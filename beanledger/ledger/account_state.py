"""
계정 상태 테이블

파싱 1회 동안만 유지되는 계정 상태 (전역 상태 없음).
파일 순서대로 지시어를 적용하며 다음을 검증:
- 중복 open, 미개설 계정 참조, open 날짜 이전 참조, close 이후 참조
- open 의 통화 제약 위반
- balance 단언 (pad 로 채운 금액 포함)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from beanledger.config.loader import ToleranceConfig
from beanledger.errors import SemanticError, SourceSpan
from beanledger.ledger.balance import format_residual
from beanledger.ledger.model import (
    Account,
    Amount,
    Balance,
    Close,
    Open,
    Pad,
    Transaction,
    format_number,
)
from beanledger.types import SemanticErrorKind

logger = logging.getLogger(__name__)


@dataclass
class AccountState:
    """계정 하나의 수명 상태"""

    account: Account
    opened: Open
    closed: Close | None = None

    @property
    def currencies(self) -> tuple[str, ...]:
        """허용 통화 (빈 튜플이면 제약 없음)"""
        return self.opened.currencies


@dataclass
class PendingPad:
    """다음 balance 단언을 기다리는 pad"""

    pad: Pad
    span: SourceSpan | None = None
    padded_currencies: set[str] = field(default_factory=set)


class AccountStateTable:
    """파싱 호출 범위의 계정 상태 테이블

    Args:
        tolerance: balance 단언 허용 오차 정책
    """

    def __init__(self, tolerance: ToleranceConfig | None = None) -> None:
        self._tolerance = tolerance or ToleranceConfig()
        self._states: dict[str, AccountState] = {}
        # 계정별 (날짜, 금액) 기록 - balance 단언 계산용
        self._entries: dict[str, list[tuple[date, Amount]]] = {}
        self._pending_pads: dict[str, PendingPad] = {}

    def __contains__(self, account: Account | str) -> bool:
        return str(account) in self._states

    def get(self, account: Account | str) -> AccountState | None:
        """계정 상태 조회"""
        return self._states.get(str(account))

    @property
    def open_accounts(self) -> list[str]:
        """현재 열려 있는 계정 이름 (close 되지 않은)"""
        return [name for name, state in self._states.items() if state.closed is None]

    # ------------------------------------------------------------------
    # 지시어 적용
    # ------------------------------------------------------------------

    def open(self, directive: Open, span: SourceSpan | None = None) -> list[SemanticError]:
        """open 적용 (중복 open 검증)"""
        name = str(directive.account)
        existing = self._states.get(name)
        if existing is not None:
            return [self._error(
                f"Duplicate open directive for {name} (already opened on {existing.opened.date})",
                span,
                name,
            )]

        self._states[name] = AccountState(account=directive.account, opened=directive)
        logger.debug(f"계정 개설: {name} ({directive.date})")
        return []

    def close(self, directive: Close, span: SourceSpan | None = None) -> list[SemanticError]:
        """close 적용 (미개설/중복 close 검증)"""
        name = str(directive.account)
        state = self._states.get(name)
        if state is None:
            return [self._error(f"Closing an account that is not open: {name}", span, name)]
        if state.closed is not None:
            return [self._error(
                f"Duplicate close directive for {name} (already closed on {state.closed.date})",
                span,
                name,
            )]
        if directive.date < state.opened.date:
            return [self._error(
                f"Account {name} closed on {directive.date} before its open date {state.opened.date}",
                span,
                name,
            )]

        state.closed = directive
        logger.debug(f"계정 폐쇄: {name} ({directive.date})")
        return []

    def check_reference(
        self,
        account: Account,
        on: date,
        span: SourceSpan | None = None,
        currency: str | None = None,
    ) -> list[SemanticError]:
        """계정 참조 유효성 검증

        Args:
            account: 참조 계정
            on: 참조하는 지시어의 날짜
            span: 오류 위치
            currency: 포스팅 통화 (open 통화 제약 검증용)
        """
        name = str(account)
        state = self._states.get(name)
        if state is None:
            return [self._error(f"Invalid reference to unknown account {name}", span, name)]
        if on < state.opened.date:
            return [self._error(
                f"Account {name} referenced on {on} before its open date {state.opened.date}",
                span,
                name,
            )]
        if state.closed is not None and on > state.closed.date:
            return [self._error(
                f"Account {name} referenced on {on} after it was closed on {state.closed.date}",
                span,
                name,
            )]
        if currency is not None and state.currencies and currency not in state.currencies:
            allowed = ", ".join(state.currencies)
            return [self._error(
                f"Currency {currency} is not allowed in account {name} (allowed: {allowed})",
                span,
                name,
            )]
        return []

    def apply_transaction(
        self,
        transaction: Transaction,
        span: SourceSpan | None = None,
    ) -> list[SemanticError]:
        """거래의 포스팅 계정 검증 후 잔액 기록에 반영"""
        errors: list[SemanticError] = []
        for posting in transaction.postings:
            errors.extend(
                self.check_reference(posting.account, transaction.date, span, posting.currency)
            )
            if not posting.is_elided:
                self._record(posting.account, transaction.date, posting.units)
        return errors

    def apply_pad(self, directive: Pad, span: SourceSpan | None = None) -> list[SemanticError]:
        """pad 등록 (다음 balance 단언에서 차액을 채움)"""
        errors = self.check_reference(directive.account, directive.date, span)
        errors.extend(self.check_reference(directive.source_account, directive.date, span))
        if not errors:
            self._pending_pads[str(directive.account)] = PendingPad(pad=directive, span=span)
        return errors

    def check_balance(
        self,
        directive: Balance,
        span: SourceSpan | None = None,
    ) -> list[SemanticError]:
        """balance 단언 검증

        해당 날짜 이전(당일 제외)까지의 계정 및 하위 계정 잔액을 비교한다.
        대기 중인 pad 가 있으면 차액을 pad 날짜로 채운 뒤 비교.
        """
        name = str(directive.account)
        errors = self.check_reference(directive.account, directive.date, span)
        if errors:
            return errors

        expected = directive.amount
        actual = self.balance_of(directive.account, expected.currency, before=directive.date)

        # pad 는 통화마다 한 번씩만 채움 (새 pad 가 오면 교체)
        pending = self._pending_pads.get(name)
        if pending is not None and pending.pad.date < directive.date:
            difference = expected.number - actual
            if difference != 0 and expected.currency not in pending.padded_currencies:
                pad = pending.pad
                self._record(pad.account, pad.date, Amount(difference, expected.currency))
                self._record(pad.source_account, pad.date, Amount(-difference, expected.currency))
                pending.padded_currencies.add(expected.currency)
                logger.debug(
                    f"pad 적용: {pad.account} ← {format_number(difference)} {expected.currency}"
                )
                actual = expected.number

        tolerance = self._balance_tolerance(directive)
        difference = expected.number - actual
        if abs(difference) > tolerance:
            residual = {expected.currency: difference}
            return [SemanticError(
                SemanticErrorKind.BALANCE_MISMATCH,
                f"Balance failed for {name}: expected {expected}, "
                f"accumulated {format_number(actual)} {expected.currency} "
                f"(difference {format_residual(residual)})",
                span,
                residual=residual,
                account=name,
            )]
        return []

    # ------------------------------------------------------------------
    # 잔액 계산
    # ------------------------------------------------------------------

    def balance_of(self, account: Account, currency: str, before: date | None = None) -> Decimal:
        """계정 및 하위 계정의 통화별 잔액

        Args:
            account: 대상 계정
            currency: 통화
            before: 이 날짜 이전 기록만 합산 (None 이면 전체)
        """
        total = Decimal(0)
        for name, entries in self._entries.items():
            if not Account(name).is_descendant_of(account):
                continue
            for entry_date, amount in entries:
                if amount.currency != currency:
                    continue
                if before is not None and entry_date >= before:
                    continue
                total += amount.number
        return total

    def _record(self, account: Account, on: date, amount: Amount) -> None:
        self._entries.setdefault(str(account), []).append((on, amount))

    def _balance_tolerance(self, directive: Balance) -> Decimal:
        if directive.tolerance is not None:
            return directive.tolerance
        currency = directive.amount.currency
        if currency in self._tolerance.per_currency:
            return self._tolerance.per_currency[currency]
        if not self._tolerance.infer_from_precision:
            return self._tolerance.default
        exponent = directive.amount.number.as_tuple().exponent
        if not isinstance(exponent, int) or exponent >= 0:
            return Decimal(0)
        return self._tolerance.multiplier * Decimal(1).scaleb(exponent)

    @staticmethod
    def _error(message: str, span: SourceSpan | None, account: str) -> SemanticError:
        return SemanticError(SemanticErrorKind.ACCOUNT_STATE, message, span, account=account)

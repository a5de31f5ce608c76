"""
거래 균형 계산

포스팅 가중치(weight) 합계가 통화별로 0 이 되어야 한다 (허용 오차 이내).
- 원가가 있으면 원가 통화로 환산
- 원가가 없고 가격 주석이 있으면 가격 통화로 환산
- 둘 다 없으면 단위 그대로

금액이 생략된 포스팅이 정확히 하나면 잔차로 채운다.
(통화만 적힌 포스팅은 그 통화의 잔차만, 숫자만 적힌 포스팅은 통화를 추론)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from beanledger.config.loader import ToleranceConfig
from beanledger.errors import SemanticError, SourceSpan
from beanledger.ledger.model import Amount, IncompleteAmount, Posting, Transaction, format_number
from beanledger.types import SemanticErrorKind

logger = logging.getLogger(__name__)


def _sign(number: Decimal) -> int:
    return -1 if number < 0 else 1


def posting_weight(posting: Posting) -> Amount | None:
    """포스팅의 균형 계산용 가중치

    Returns:
        가중치 Amount (금액 생략 포스팅은 None)

    예:
        10 HOOL {500.00 USD}      → 5000.00 USD
        10 HOOL {{5000.00 USD}}   → 5000.00 USD
        -400.00 USD @ 1.09 CAD    → -436.0000 CAD
    """
    units = posting.units
    if not isinstance(units, Amount):
        return None

    cost = posting.cost
    if cost is not None and not cost.is_empty and cost.currency is not None:
        number = Decimal(0)
        if cost.number_per is not None:
            number += units.number * cost.number_per
        if cost.number_total is not None:
            number += _sign(units.number) * cost.number_total
        return Amount(number, cost.currency)

    price = posting.price
    if price is not None:
        if price.is_total:
            return Amount(_sign(units.number) * price.amount.number, price.amount.currency)
        return Amount(units.number * price.amount.number, price.amount.currency)

    return units


def compute_sums(postings: tuple[Posting, ...] | list[Posting]) -> dict[str, Decimal]:
    """금액이 있는 포스팅의 통화별 가중치 합계 (첫 등장 순서 유지)"""
    sums: dict[str, Decimal] = {}
    for posting in postings:
        weight = posting_weight(posting)
        if weight is None:
            continue
        sums[weight.currency] = sums.get(weight.currency, Decimal(0)) + weight.number
    return sums


def _exponent_tolerance(number: Decimal, multiplier: Decimal) -> Decimal:
    exponent = number.as_tuple().exponent
    if not isinstance(exponent, int) or exponent >= 0:
        return multiplier
    return multiplier * Decimal(1).scaleb(exponent)


def infer_tolerances(
    postings: tuple[Posting, ...] | list[Posting],
    config: ToleranceConfig,
) -> dict[str, Decimal]:
    """통화별 허용 오차

    per_currency 지정값 > 자릿수 추론값 > default 순으로 결정.
    추론 시 같은 통화로 쓰인 숫자 중 가장 정밀도가 낮은 숫자를 기준으로 한다.
    """
    inferred: dict[str, Decimal] = {}

    def observe(number: Decimal, currency: str) -> None:
        tolerance = _exponent_tolerance(number, config.multiplier)
        if currency not in inferred or tolerance > inferred[currency]:
            inferred[currency] = tolerance

    if config.infer_from_precision:
        for posting in postings:
            if isinstance(posting.units, Amount):
                observe(posting.units.number, posting.units.currency)
            cost = posting.cost
            if cost is not None and cost.currency is not None:
                for number in (cost.number_per, cost.number_total):
                    if number is not None:
                        observe(number, cost.currency)
            if posting.price is not None:
                observe(posting.price.amount.number, posting.price.amount.currency)

    currencies = set(inferred) | {
        w.currency for w in (posting_weight(p) for p in postings) if w is not None
    }
    tolerances: dict[str, Decimal] = {}
    for currency in currencies:
        if currency in config.per_currency:
            tolerances[currency] = config.per_currency[currency]
        elif currency in inferred:
            tolerances[currency] = inferred[currency]
        else:
            tolerances[currency] = config.default
    return tolerances


def residual_of(
    postings: tuple[Posting, ...] | list[Posting],
    config: ToleranceConfig,
) -> dict[str, Decimal]:
    """허용 오차를 넘는 잔차 (균형을 맞추는 데 필요한 금액 = 합계의 부호 반전)"""
    sums = compute_sums(postings)
    tolerances = infer_tolerances(postings, config)
    return {
        currency: -total
        for currency, total in sums.items()
        if abs(total) > tolerances.get(currency, config.default)
    }


def format_residual(residual: dict[str, Decimal]) -> str:
    """잔차 표시 문자열 (통화 정렬)"""
    return ", ".join(
        f"{format_number(number)} {currency}" for currency, number in sorted(residual.items())
    )


def fill_elided(
    posting: Posting,
    sums: dict[str, Decimal],
) -> list[Posting] | None:
    """생략 포스팅 하나를 잔차로 채운 포스팅 목록

    Args:
        posting: 금액이 생략된 포스팅 (units 가 None 또는 IncompleteAmount)
        sums: 나머지 포스팅의 통화별 가중치 합계

    Returns:
        채운 포스팅 목록 (채울 것이 없으면 원래 포스팅 하나),
        숫자만 적힌 포스팅의 통화를 정할 수 없으면 None
    """
    needed = {currency: -total for currency, total in sums.items() if total != 0}
    units = posting.units

    if units is None:
        if not needed:
            return [posting]
        return [replace(posting, units=Amount(number, currency)) for currency, number in needed.items()]

    if not isinstance(units, IncompleteAmount):
        return [posting]

    if units.number is None:
        # 통화만 적힌 포스팅: 그 통화의 잔차만 채움
        if units.currency not in needed:
            return [posting]
        return [replace(posting, units=units.complete(needed[units.currency]))]

    # 숫자만 적힌 포스팅: 잔차 (없으면 합계) 의 통화가 하나일 때만 추론
    candidates = list(needed) or list(sums)
    if len(candidates) != 1 or posting.cost is not None or posting.price is not None:
        return None
    return [replace(posting, units=units.complete(candidates[0]))]


def solve_transaction(
    transaction: Transaction,
    config: ToleranceConfig | None = None,
    span: SourceSpan | None = None,
) -> tuple[Transaction, list[SemanticError]]:
    """생략 금액 채우기 + 균형 검증

    Args:
        transaction: 대상 거래
        config: 허용 오차 정책 (None 이면 기본값)
        span: 오류 위치

    Returns:
        (금액을 채운 거래, SemanticError 목록)
        - 생략 포스팅이 정확히 하나: 잔차로 채운 뒤 남은 잔차 검증
          (완전 생략은 잔차의 통화마다 포스팅 하나씩, 통화만 적힌 경우는 그 통화만)
        - 숫자만 적힌 포스팅의 통화를 정할 수 없으면 UNBALANCED 오류
        - 그 외: 잔차가 있으면 UNBALANCED 오류
    """
    config = config or ToleranceConfig()
    postings = transaction.postings
    elided = [i for i, p in enumerate(postings) if p.is_elided]

    if len(elided) == 1:
        index = elided[0]
        template = postings[index]
        sums = compute_sums(postings)
        filled = fill_elided(template, sums)
        if filled is None:
            error = SemanticError(
                SemanticErrorKind.UNBALANCED,
                f"Cannot infer the currency of posting {template.account} "
                f"(candidates: {', '.join(sorted(sums)) or 'none'})",
                span,
                residual={currency: -total for currency, total in sums.items() if total != 0},
                account=str(template.account),
            )
            return transaction, [error]

        if filled != [template]:
            postings = postings[:index] + tuple(filled) + postings[index + 1:]
            transaction = replace(transaction, postings=postings)
            logger.debug(
                f"{transaction.date} 생략 금액 계산: {template.account} ← "
                f"{', '.join(str(p.units) for p in filled)}"
            )

    residual = residual_of(postings, config)
    if not residual:
        return transaction, []

    error = SemanticError(
        SemanticErrorKind.UNBALANCED,
        f"Transaction does not balance: residual ({format_residual(residual)})",
        span,
        residual=residual,
    )
    return transaction, [error]

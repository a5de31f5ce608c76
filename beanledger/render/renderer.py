"""
렌더러

Ledger → 정규화된 원장 텍스트 (동일 Ledger 는 항상 바이트 단위로 동일한 출력).
- option / plugin / include 를 먼저, 이후 지시어를 Ledger 순서대로 빈 줄로 구분
- 지시어 앞 주석은 지시어 바로 위에 출력
- 포스팅 금액은 거래 내에서 소수점 기준 정렬, 통화는 숫자 뒤 공백 하나
- 태그/링크는 정렬하여 헤더 줄 끝에 출력
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable

from beanledger.config.loader import LedgerConfig
from beanledger.errors import RenderError, RenderErrorKind
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
    Ledger,
    MetaCurrency,
    MetaTag,
    Note,
    Open,
    Pad,
    Posting,
    Price,
    Query,
    Transaction,
    format_number,
    is_directive,
)
from beanledger.types import DirectiveKind

logger = logging.getLogger(__name__)


# 계정과 금액 사이 최소 공백
AMOUNT_GAP = 2


class LedgerRenderer:
    """원장 렌더러

    Args:
        config: 원장 설정 (render 섹션 사용, None 이면 기본값)
    """

    def __init__(self, config: LedgerConfig | None = None) -> None:
        self._config = config or LedgerConfig.default()
        self._indent = " " * self._config.render.indent

        self._handlers: dict[DirectiveKind, Callable[[Any], list[str]]] = {
            DirectiveKind.OPEN: self._render_open,
            DirectiveKind.CLOSE: self._render_close,
            DirectiveKind.BALANCE: self._render_balance,
            DirectiveKind.PAD: self._render_pad,
            DirectiveKind.NOTE: self._render_note,
            DirectiveKind.EVENT: self._render_event,
            DirectiveKind.PRICE: self._render_price,
            DirectiveKind.DOCUMENT: self._render_document,
            DirectiveKind.CUSTOM: self._render_custom,
            DirectiveKind.QUERY: self._render_query,
            DirectiveKind.COMMODITY: self._render_commodity,
            DirectiveKind.TRANSACTION: self._render_transaction,
        }

    def render(self, ledger: Ledger) -> str:
        """Ledger 전체 렌더링

        Raises:
            RenderError: 렌더링할 수 없는 지시어/값 (생산 측 결함)
        """
        blocks: list[str] = []

        header = [f"option {quote(o.name)} {quote(o.value)}" for o in ledger.options]
        for plugin in ledger.plugins:
            line = f"plugin {quote(plugin.module)}"
            if plugin.config is not None:
                line += f" {quote(plugin.config)}"
            header.append(line)
        header.extend(f"include {quote(i.filename)}" for i in ledger.includes)
        if header:
            blocks.append("\n".join(header))

        for directive in ledger.directives:
            blocks.append(self.render_directive(directive))

        if ledger.trailing_comments:
            blocks.append("\n".join(_comment_line(c) for c in ledger.trailing_comments))

        logger.debug(f"렌더링 완료: {len(ledger.directives)}개 지시어")
        if not blocks:
            return ""
        return "\n\n".join(blocks) + "\n"

    def render_directive(self, directive: Directive) -> str:
        """지시어 하나 (앞 주석 포함, 끝 줄바꿈 없음)"""
        handler = self._handlers.get(getattr(directive, "kind", None))
        if handler is None or not is_directive(directive):
            raise RenderError(
                RenderErrorKind.UNSUPPORTED_DIRECTIVE,
                f"Cannot render {type(directive).__name__}: not a ledger directive",
            )

        lines = [_comment_line(c) for c in directive.comments]
        lines.extend(handler(directive))
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # 지시어별
    # ------------------------------------------------------------------

    def _render_open(self, d: Open) -> list[str]:
        parts = [str(d.account)]
        if d.currencies:
            parts.append(",".join(d.currencies))
        if d.booking is not None:
            parts.append(quote(d.booking.value))
        return self._with_meta(d, "open", parts)

    def _render_close(self, d: Close) -> list[str]:
        return self._with_meta(d, "close", [str(d.account)])

    def _render_balance(self, d: Balance) -> list[str]:
        number = format_number(d.amount.number)
        if d.tolerance is not None:
            number += f" ~ {format_number(d.tolerance)}"
        return self._with_meta(d, "balance", [str(d.account), number, d.amount.currency])

    def _render_pad(self, d: Pad) -> list[str]:
        return self._with_meta(d, "pad", [str(d.account), str(d.source_account)])

    def _render_note(self, d: Note) -> list[str]:
        return self._with_meta(d, "note", [str(d.account), quote(d.comment)])

    def _render_event(self, d: Event) -> list[str]:
        return self._with_meta(d, "event", [quote(d.name), quote(d.description)])

    def _render_price(self, d: Price) -> list[str]:
        return self._with_meta(d, "price", [d.currency, str(d.amount)])

    def _render_document(self, d: Document) -> list[str]:
        return self._with_meta(d, "document", [str(d.account), quote(d.path)])

    def _render_custom(self, d: Custom) -> list[str]:
        return self._with_meta(d, "custom", [quote(d.name), *(render_value(v) for v in d.values)])

    def _render_query(self, d: Query) -> list[str]:
        return self._with_meta(d, "query", [quote(d.name), quote(d.query_string)])

    def _render_commodity(self, d: Commodity) -> list[str]:
        return self._with_meta(d, "commodity", [d.currency])

    def _render_transaction(self, d: Transaction) -> list[str]:
        parts = []
        if d.payee is not None:
            parts.append(quote(d.payee))
        parts.append(quote(d.narration))
        lines = self._with_meta(d, d.flag.value, parts)
        lines.extend(self._render_postings(d.postings))
        return lines

    # ------------------------------------------------------------------
    # 포스팅
    # ------------------------------------------------------------------

    def _render_postings(self, postings: tuple[Posting, ...]) -> list[str]:
        prefixes = []
        for posting in postings:
            prefix = self._indent
            if posting.flag is not None:
                prefix += f"{posting.flag.value} "
            prefixes.append(prefix + str(posting.account))

        numbers = [
            _split_number(format_number(p.units.number))
            if p.units is not None and p.units.number is not None
            else None
            for p in postings
        ]
        integer_width = max((len(n[0]) for n in numbers if n is not None), default=0)
        amount_column = max((len(p) for p in prefixes), default=0) + AMOUNT_GAP
        if self._config.render.amount_column is not None:
            amount_column = max(amount_column, self._config.render.amount_column)

        lines: list[str] = []
        for posting, prefix, number in zip(postings, prefixes, numbers):
            line = prefix
            currency = posting.currency
            if number is not None:
                integer, fraction = number
                line = prefix.ljust(amount_column) + integer.rjust(integer_width) + fraction
                if currency is not None:
                    line += f" {currency}"
            elif currency is not None:
                # 통화만 적힌 금액
                line = prefix.ljust(amount_column) + currency
            if posting.cost is not None:
                line += f" {render_cost(posting.cost)}"
            if posting.price is not None:
                operator = "@@" if posting.price.is_total else "@"
                line += f" {operator} {posting.price.amount}"
            lines.append(line)
            lines.extend(self._meta_lines(posting.meta, depth=2))
        return lines

    # ------------------------------------------------------------------
    # 공통
    # ------------------------------------------------------------------

    def _with_meta(self, d: Any, keyword: str, parts: list[str]) -> list[str]:
        header = " ".join([d.date.isoformat(), keyword, *parts])
        header += _tags_links(d.tags, d.links)
        return [header, *self._meta_lines(d.meta, depth=1)]

    def _meta_lines(self, meta: dict[str, Any], depth: int) -> list[str]:
        prefix = self._indent * depth
        return [f"{prefix}{key}: {render_value(value)}" for key, value in meta.items()]


def quote(text: str) -> str:
    """문자열 리터럴 (한 줄만 가능, \\ 와 \" 이스케이프)"""
    if "\n" in text or "\r" in text:
        raise RenderError(RenderErrorKind.INVALID_VALUE, f"String literal spans lines: {text!r}")
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def render_value(value: Any) -> str:
    """메타데이터/custom 값 렌더링"""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, MetaCurrency):
        return str(value)
    if isinstance(value, MetaTag):
        return f"#{value}"
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, Decimal):
        return format_number(value)
    if isinstance(value, (Amount, Account)):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    raise RenderError(
        RenderErrorKind.INVALID_VALUE,
        f"Cannot render value of type {type(value).__name__}: {value!r}",
    )


def render_cost(cost: CostSpec) -> str:
    """원가 렌더링 ({per CUR, date, "label"}, {{total CUR}}, {per # total CUR})"""
    components: list[str] = []
    compound = cost.number_per is not None and cost.number_total is not None
    total_only = cost.number_total is not None and cost.number_per is None

    if compound:
        components.append(
            f"{format_number(cost.number_per)} # {format_number(cost.number_total)} {cost.currency}"
        )
    elif cost.number_per is not None or total_only:
        number = cost.number_per if cost.number_per is not None else cost.number_total
        components.append(f"{format_number(number)} {cost.currency}")
    elif cost.currency is not None:
        components.append(cost.currency)

    if cost.date is not None:
        components.append(cost.date.isoformat())
    if cost.label is not None:
        components.append(quote(cost.label))
    if cost.merge:
        components.append("*")

    body = ", ".join(components)
    if total_only:
        return f"{{{{{body}}}}}"
    return f"{{{body}}}"


def _split_number(text: str) -> tuple[str, str]:
    integer, dot, fraction = text.partition(".")
    return integer, dot + fraction


def _tags_links(tags: frozenset[str], links: frozenset[str]) -> str:
    parts = [f"#{t}" for t in sorted(tags)] + [f"^{link}" for link in sorted(links)]
    return "".join(f" {p}" for p in parts)


def _comment_line(comment: str) -> str:
    # 파싱된 주석은 ';' 또는 org-mode '*' 로 시작
    return comment if comment.startswith((";", "*")) else f"; {comment}"


def render(ledger: Ledger, config: LedgerConfig | None = None) -> str:
    """Ledger → 텍스트

    Args:
        ledger: 렌더링할 원장
        config: 원장 설정 (None 이면 기본값)

    Returns:
        정규화된 원장 텍스트 (비어 있으면 빈 문자열)

    Raises:
        RenderError: 렌더링할 수 없는 지시어/값
    """
    return LedgerRenderer(config).render(ledger)

"""
파서 (구문 분석 + 의미 검증)

토큰 목록 → (Ledger, 오류 목록).
- 최상위 줄은 "날짜 키워드 ..." 또는 날짜 없는 option/include/plugin/pushtag/poptag
- 들여쓴 줄은 직전 지시어의 본문 (포스팅, 메타데이터, 태그/링크)
- 오류가 나면 다음 최상위 지시어 경계에서 재동기화하고 계속 진행
- 균형 계산과 계정 상태 검증은 호출마다 새로 만든 AccountStateTable 로 수행

사용 예시:
```python
from beanledger.syntax.parser import parse_text

ledger, errors = parse_text(text)
for error in errors:
    print(error)
```
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import date
from decimal import Decimal, DivisionByZero, InvalidOperation
from typing import Any, Callable

from beanledger.config.loader import LedgerConfig
from beanledger.errors import (
    LedgerError,
    ParseError,
    SourceSpan,
    ValidationError,
    sort_errors,
)
from beanledger.ledger.account_state import AccountStateTable
from beanledger.ledger.balance import solve_transaction
from beanledger.ledger.model import (
    META_KEY_PATTERN,
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
    MetaCurrency,
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
)
from beanledger.syntax.lexer import tokenize
from beanledger.syntax.tokens import Token
from beanledger.types import Booking, Flag, ParseErrorKind, TokenKind

logger = logging.getLogger(__name__)


DATE_PARTS_RE = re.compile(r"^(\d{4})[-/](\d{2})[-/](\d{2})$")

# 헤더 줄을 끝내는 토큰
_LINE_END = (TokenKind.EOL, TokenKind.EOF, TokenKind.COMMENT)


class _SkipEntry(Exception):
    """어휘 오류가 난 줄을 만난 항목 버리기 신호 (오류는 렉서가 이미 보고)"""


class _Header:
    """지시어 헤더 공통 정보"""

    def __init__(self, kind_name: str, on: date, span: SourceSpan) -> None:
        self.kind_name = kind_name
        self.date = on
        self.span = span
        self.tags: set[str] = set()
        self.links: set[str] = set()


class _Body:
    """지시어 본문 파싱 결과"""

    def __init__(self) -> None:
        self.meta: dict[str, Any] = {}
        self.postings: list[dict[str, Any]] = []
        self.tags: set[str] = set()
        self.links: set[str] = set()


class Parser:
    """원장 파서

    Args:
        tokens: 렉서가 생성한 토큰 (EOF 로 끝나야 함)
        config: 원장 설정 (None 이면 기본값)
    """

    def __init__(self, tokens: list[Token], config: LedgerConfig | None = None) -> None:
        if not tokens or tokens[-1].kind != TokenKind.EOF:
            end = tokens[-1].span if tokens else SourceSpan(1, 1, 0)
            tokens = list(tokens) + [Token(TokenKind.EOF, "", end)]
        self._tokens = tokens
        self._pos = 0
        self._depth = 0

        self._config = config or LedgerConfig.default()
        self._root_names = dict(self._config.root_names)
        self._state = AccountStateTable(self._config.tolerance)

        self._errors: list[LedgerError] = []
        self._directives: list[Directive] = []
        self._options: list[Option] = []
        self._includes: list[Include] = []
        self._plugins: list[Plugin] = []
        self._pushed_tags: dict[str, int] = {}
        self._pending_comments: list[str] = []

        self._dated_handlers: dict[str, Callable[[_Header], Directive]] = {
            "open": self._parse_open,
            "close": self._parse_close,
            "balance": self._parse_balance,
            "pad": self._parse_pad,
            "note": self._parse_note,
            "event": self._parse_event,
            "price": self._parse_price,
            "document": self._parse_document,
            "custom": self._parse_custom,
            "query": self._parse_query,
            "commodity": self._parse_commodity,
        }
        self._undated_handlers: dict[str, Callable[[Token], None]] = {
            "option": self._parse_option,
            "include": self._parse_include,
            "plugin": self._parse_plugin,
            "pushtag": self._parse_pushtag,
            "poptag": self._parse_poptag,
        }

    # ------------------------------------------------------------------
    # 진입점
    # ------------------------------------------------------------------

    def parse(self) -> tuple[Ledger, list[LedgerError]]:
        """전체 토큰 파싱

        Returns:
            (부분 Ledger 포함 결과, 위치 순 오류 목록)
        """
        while not self._at(TokenKind.EOF):
            token = self._peek()

            if token.kind in (TokenKind.EOL, TokenKind.DEDENT):
                self._advance()
                continue
            if token.kind == TokenKind.COMMENT:
                if token.span.column == 1:
                    self._pending_comments.append(token.value)
                self._advance()
                continue
            if token.kind == TokenKind.ERROR:
                self._synchronize()
                continue
            if token.kind == TokenKind.INDENT:
                if self._peek(1).kind != TokenKind.ERROR:
                    self._errors.append(ParseError(
                        ParseErrorKind.UNEXPECTED_TOKEN,
                        "Unexpected indented line outside of a directive",
                        token.span,
                    ))
                self._synchronize()
                continue

            start = self._pos
            try:
                self._parse_entry()
            except _SkipEntry:
                logger.debug(f"어휘 오류 줄을 포함한 항목 건너뜀: line {self._peek().span.line}")
                self._synchronize(start)
            except LedgerError as e:
                # 모델 검증 오류는 위치가 없으므로 항목 시작 위치를 부착
                if e.span is None:
                    e.span = self._tokens[start].span
                self._errors.append(e)
                logger.debug(f"파싱 오류 후 재동기화: {e}")
                self._synchronize(start)

        self._check_tag_stack()

        ledger = Ledger(
            directives=tuple(self._directives),
            options=tuple(self._options),
            includes=tuple(self._includes),
            plugins=tuple(self._plugins),
            trailing_comments=tuple(self._pending_comments),
        )
        errors = sort_errors(self._errors)
        logger.info(f"파싱 완료: {len(ledger.directives)}개 지시어, {len(errors)}개 오류")
        return ledger, errors

    def _parse_entry(self) -> None:
        token = self._peek()
        if token.kind == TokenKind.DATE:
            self._parse_dated()
            return
        if token.kind == TokenKind.KEYWORD and token.text in self._undated_handlers:
            self._advance()
            self._undated_handlers[token.text](token)
            return
        raise self._unexpected(token, "a date or a directive keyword")

    # ------------------------------------------------------------------
    # 날짜 지시어
    # ------------------------------------------------------------------

    def _parse_dated(self) -> None:
        date_token = self._advance()
        on = self._parse_date(date_token)
        token = self._peek()

        if self._is_txn_flag(token):
            self._advance()
            header = _Header("transaction", on, date_token.span)
            directive = self._parse_transaction(header, self._flag_of(token))
        elif token.kind == TokenKind.KEYWORD and token.text in self._dated_handlers:
            self._advance()
            header = _Header(token.text, on, date_token.span)
            directive = self._dated_handlers[token.text](header)
        elif token.kind in _LINE_END:
            raise ValidationError.missing("keyword", "directive", date_token.span)
        else:
            raise self._unexpected(token, "a directive keyword or transaction flag")

        self._accept(directive, header.span)

    def _accept(self, directive: Directive, span: SourceSpan) -> None:
        """지시어 확정: 주석 부착, 의미 검증, 원장에 추가"""
        if self._pending_comments:
            directive = _with_comments(directive, tuple(self._pending_comments))
            self._pending_comments.clear()

        if isinstance(directive, Transaction):
            directive, errors = solve_transaction(directive, self._config.tolerance, span)
            self._errors.extend(errors)
            self._errors.extend(self._state.apply_transaction(directive, span))
        elif isinstance(directive, Open):
            self._errors.extend(self._state.open(directive, span))
        elif isinstance(directive, Close):
            self._errors.extend(self._state.close(directive, span))
        elif isinstance(directive, Balance):
            self._errors.extend(self._state.check_balance(directive, span))
        elif isinstance(directive, Pad):
            self._errors.extend(self._state.apply_pad(directive, span))
        elif isinstance(directive, (Note, Document)):
            self._errors.extend(self._state.check_reference(directive.account, directive.date, span))

        self._directives.append(directive)

    def _parse_open(self, header: _Header) -> Open:
        account = self._expect_account("account", header)
        currencies: list[str] = []
        if self._at(TokenKind.CURRENCY):
            currencies.append(self._advance().text)
            while self._peek().is_punct(","):
                self._advance()
                currencies.append(self._expect(TokenKind.CURRENCY, "a currency").text)

        booking = None
        if self._at(TokenKind.STRING):
            token = self._advance()
            try:
                booking = Booking(token.value.upper())
            except ValueError as e:
                raise ParseError(
                    ParseErrorKind.INVALID_VALUE,
                    f"Unknown booking method {token.text}",
                    token.span,
                ) from e

        body = self._finish(header)
        return Open(
            date=header.date,
            account=account,
            currencies=tuple(currencies),
            booking=booking,
            **self._common(header, body),
        )

    def _parse_close(self, header: _Header) -> Close:
        account = self._expect_account("account", header)
        body = self._finish(header)
        return Close(date=header.date, account=account, **self._common(header, body))

    def _parse_balance(self, header: _Header) -> Balance:
        account = self._expect_account("account", header)
        self._require_field("amount", header)
        number = self._parse_expression()
        tolerance = None
        if self._peek().is_punct("~"):
            self._advance()
            tolerance = self._parse_expression()
        self._require_field("amount", header)
        currency = self._expect(TokenKind.CURRENCY, "a currency").text

        body = self._finish(header)
        return Balance(
            date=header.date,
            account=account,
            amount=Amount(number, currency),
            tolerance=tolerance,
            **self._common(header, body),
        )

    def _parse_pad(self, header: _Header) -> Pad:
        account = self._expect_account("account", header)
        source = self._expect_account("source_account", header)
        body = self._finish(header)
        return Pad(
            date=header.date,
            account=account,
            source_account=source,
            **self._common(header, body),
        )

    def _parse_note(self, header: _Header) -> Note:
        account = self._expect_account("account", header)
        comment = self._expect_string("comment", header)
        body = self._finish(header)
        return Note(date=header.date, account=account, comment=comment, **self._common(header, body))

    def _parse_event(self, header: _Header) -> Event:
        name = self._expect_string("name", header)
        description = self._expect_string("description", header)
        body = self._finish(header)
        return Event(
            date=header.date,
            name=name,
            description=description,
            **self._common(header, body),
        )

    def _parse_price(self, header: _Header) -> Price:
        self._require_field("currency", header)
        currency = self._expect(TokenKind.CURRENCY, "a currency").text
        self._require_field("amount", header)
        amount = self._parse_amount("amount", header)
        body = self._finish(header)
        return Price(date=header.date, currency=currency, amount=amount, **self._common(header, body))

    def _parse_document(self, header: _Header) -> Document:
        account = self._expect_account("account", header)
        path = self._expect_string("path", header)
        body = self._finish(header)
        return Document(date=header.date, account=account, path=path, **self._common(header, body))

    def _parse_custom(self, header: _Header) -> Custom:
        name = self._expect_string("name", header)
        values: list[Any] = []
        while self._peek().kind not in _LINE_END and self._peek().kind not in (
            TokenKind.TAG,
            TokenKind.LINK,
        ):
            values.append(self._parse_value())
        body = self._finish(header)
        return Custom(date=header.date, name=name, values=tuple(values), **self._common(header, body))

    def _parse_query(self, header: _Header) -> Query:
        name = self._expect_string("name", header)
        query_string = self._expect_string("query_string", header)
        body = self._finish(header)
        return Query(
            date=header.date,
            name=name,
            query_string=query_string,
            **self._common(header, body),
        )

    def _parse_commodity(self, header: _Header) -> Commodity:
        self._require_field("currency", header)
        currency = self._expect(TokenKind.CURRENCY, "a currency").text
        body = self._finish(header)
        return Commodity(date=header.date, currency=currency, **self._common(header, body))

    # ------------------------------------------------------------------
    # 거래
    # ------------------------------------------------------------------

    def _parse_transaction(self, header: _Header, flag: Flag) -> Transaction:
        strings: list[str] = []
        while self._at(TokenKind.STRING):
            token = self._advance()
            if len(strings) == 2:
                raise self._unexpected(token, "at most payee and narration strings")
            strings.append(token.value)

        if not strings:
            self._require_field("narration", header)
            raise self._unexpected(self._peek(), "a narration string")
        payee = strings[0] if len(strings) == 2 else None
        narration = strings[-1]

        body = self._finish(header, allow_postings=True)

        postings = [
            Posting(
                account=p["account"],
                units=p["units"],
                cost=p["cost"],
                price=p["price"],
                flag=p["flag"],
                meta=p["meta"],
            )
            for p in body.postings
        ]
        common = self._common(header, body)
        common["tags"] = common["tags"] | set(self._pushed_tags)
        return Transaction(
            date=header.date,
            narration=narration,
            flag=flag,
            payee=payee,
            postings=tuple(postings),
            **common,
        )

    def _parse_posting(self) -> dict[str, Any]:
        start = self._peek()
        flag = None
        if start.kind == TokenKind.FLAG or (
            start.kind == TokenKind.CURRENCY and self._peek(1).kind == TokenKind.ACCOUNT
        ):
            flag = self._flag_of(self._advance())

        account = self._account_from(self._expect(TokenKind.ACCOUNT, "an account"))

        # 숫자나 통화 중 하나만 적힌 금액은 IncompleteAmount (균형 계산이 나머지를 채움)
        units: Amount | IncompleteAmount | None = None
        if self._at_number():
            number = self._parse_expression()
            if self._at(TokenKind.CURRENCY):
                units = Amount(number, self._advance().text)
            else:
                units = IncompleteAmount(number=number)
        elif self._at(TokenKind.CURRENCY):
            units = IncompleteAmount(currency=self._advance().text)

        cost = None
        if self._peek().is_punct("{", "{{"):
            cost = self._parse_cost()

        price = None
        if self._peek().is_punct("@", "@@"):
            is_total = self._advance().text == "@@"
            price = PriceSpec(self._parse_amount("price"), is_total=is_total)

        self._end_line()
        return {
            "account": account,
            "units": units,
            "cost": cost,
            "price": price,
            "flag": flag,
            "meta": {},
            "span": start.span,
        }

    def _parse_cost(self) -> CostSpec:
        opener = self._advance()
        is_total = opener.text == "{{"
        closer = "}}" if is_total else "}"

        number_per: Decimal | None = None
        number_total: Decimal | None = None
        currency: str | None = None
        cost_date: date | None = None
        label: str | None = None
        merge = False

        while not self._peek().is_punct(closer):
            token = self._peek()
            if token.is_punct("*"):
                self._advance()
                merge = True
            elif token.kind == TokenKind.DATE:
                cost_date = self._parse_date(self._advance())
            elif token.kind == TokenKind.STRING:
                label = self._advance().value
            elif self._at_number() or self._is_hash(token):
                if self._at_number():
                    number_per = self._parse_expression()
                if self._is_hash(self._peek()):
                    self._advance()
                    number_total = self._parse_expression()
                currency = self._expect(TokenKind.CURRENCY, "a cost currency").text
            elif token.kind == TokenKind.CURRENCY:
                currency = self._advance().text
            else:
                raise self._unexpected(token, f"a cost component or '{closer}'")

            if self._peek().is_punct(","):
                self._advance()
            elif not self._peek().is_punct(closer):
                raise self._unexpected(self._peek(), f"',' or '{closer}'")
        self._advance()

        if is_total:
            if number_total is not None:
                raise ParseError(
                    ParseErrorKind.UNEXPECTED_TOKEN,
                    "Per-unit cost may not be specified using total cost syntax",
                    opener.span,
                )
            number_per, number_total = None, number_per

        return CostSpec(
            number_per=number_per,
            number_total=number_total,
            currency=currency,
            date=cost_date,
            label=label,
            merge=merge,
        )

    # ------------------------------------------------------------------
    # 날짜 없는 최상위 항목
    # ------------------------------------------------------------------

    def _parse_option(self, keyword: Token) -> None:
        header = _Header("option", date.min, keyword.span)
        name = self._expect_string("name", header)
        value = self._expect_string("value", header)
        self._end_line()

        # option "name_assets" "Actifs" → 이후 계정 루트 이름 변경
        if name.startswith("name_") and name[5:] in self._root_names:
            self._root_names[name[5:]] = value
        self._options.append(Option(name=name, value=value))

    def _parse_include(self, keyword: Token) -> None:
        header = _Header("include", date.min, keyword.span)
        filename = self._expect_string("filename", header)
        self._end_line()
        self._includes.append(Include(filename=filename))

    def _parse_plugin(self, keyword: Token) -> None:
        header = _Header("plugin", date.min, keyword.span)
        module = self._expect_string("module", header)
        config = self._advance().value if self._at(TokenKind.STRING) else None
        self._end_line()
        self._plugins.append(Plugin(module=module, config=config))

    def _parse_pushtag(self, keyword: Token) -> None:
        tag = self._expect(TokenKind.TAG, "a tag").value
        self._end_line()
        self._pushed_tags[tag] = self._pushed_tags.get(tag, 0) + 1

    def _parse_poptag(self, keyword: Token) -> None:
        token = self._expect(TokenKind.TAG, "a tag")
        count = self._pushed_tags.get(token.value)
        if count is None:
            raise ParseError(
                ParseErrorKind.TAG_STACK,
                f"Attempting to pop absent tag: '{token.value}'",
                token.span,
            )
        self._end_line()
        if count <= 1:
            del self._pushed_tags[token.value]
        else:
            self._pushed_tags[token.value] = count - 1

    def _check_tag_stack(self) -> None:
        if not self._pushed_tags:
            return
        pushed = ", ".join(f"'{tag}'" for tag in sorted(self._pushed_tags))
        self._errors.append(ParseError(
            ParseErrorKind.TAG_STACK,
            f"Unbalanced pushed tag(s): {pushed}",
            self._peek().span,
        ))

    # ------------------------------------------------------------------
    # 헤더 끝 / 본문
    # ------------------------------------------------------------------

    def _finish(self, header: _Header, allow_postings: bool = False) -> _Body:
        """헤더의 태그/링크와 줄 끝을 처리하고 본문 파싱"""
        self._parse_tags_links(header.tags, header.links)
        self._end_line()
        return self._parse_body(allow_postings)

    def _parse_body(self, allow_postings: bool) -> _Body:
        body = _Body()
        if not self._at(TokenKind.INDENT):
            return body

        self._advance()
        self._depth = 1
        while self._depth > 0 and not self._at(TokenKind.EOF):
            token = self._peek()

            if token.kind == TokenKind.INDENT:
                self._depth += 1
                self._advance()
            elif token.kind == TokenKind.DEDENT:
                self._depth -= 1
                self._advance()
            elif token.kind == TokenKind.EOL:
                self._advance()
            elif token.kind == TokenKind.COMMENT:
                if token.span.column == 1:
                    self._pending_comments.append(token.value)
                self._advance()
            elif token.kind == TokenKind.META_KEY:
                # 포스팅보다 깊게 들여쓴 메타데이터는 직전 포스팅에 속함
                if self._depth >= 2 and body.postings:
                    target = body.postings[-1]["meta"]
                else:
                    target = body.meta
                self._parse_meta_line(target)
            elif token.kind in (TokenKind.TAG, TokenKind.LINK):
                self._parse_tags_links(body.tags, body.links)
                self._end_line()
            elif allow_postings and token.kind in (
                TokenKind.ACCOUNT,
                TokenKind.FLAG,
                TokenKind.CURRENCY,
            ):
                body.postings.append(self._parse_posting())
            elif token.kind == TokenKind.ERROR:
                raise _SkipEntry()
            else:
                expected = "a posting or metadata" if allow_postings else "metadata"
                raise self._unexpected(token, expected)

        self._depth = 0
        return body

    def _parse_meta_line(self, target: dict[str, Any]) -> None:
        key_token = self._advance()
        key = key_token.value
        if not META_KEY_PATTERN.match(key):
            raise ParseError(
                ParseErrorKind.INVALID_VALUE,
                f"Invalid metadata key '{key}'",
                key_token.span,
            )
        if key in target:
            raise ParseError(
                ParseErrorKind.DUPLICATE_KEY,
                f"Duplicate metadata key '{key}'",
                key_token.span,
            )
        if self._peek().kind in _LINE_END:
            raise ParseError(
                ParseErrorKind.INVALID_VALUE,
                f"Metadata key '{key}' has no value",
                key_token.span,
            )
        target[key] = self._parse_value()
        self._end_line()

    def _parse_tags_links(self, tags: set[str], links: set[str]) -> None:
        while True:
            token = self._peek()
            if token.kind == TokenKind.TAG:
                tags.add(self._advance().value)
            elif token.kind == TokenKind.LINK:
                links.add(self._advance().value)
            else:
                return

    def _end_line(self) -> None:
        """줄 끝 확인 (줄 끝 주석 허용)"""
        if self._at(TokenKind.COMMENT):
            self._advance()
        token = self._peek()
        if token.kind == TokenKind.EOL:
            self._advance()
        elif token.kind != TokenKind.EOF:
            raise self._unexpected(token, "end of line")

    def _common(self, header: _Header, body: _Body) -> dict[str, Any]:
        return {
            "meta": body.meta,
            "tags": header.tags | body.tags,
            "links": header.links | body.links,
        }

    # ------------------------------------------------------------------
    # 값
    # ------------------------------------------------------------------

    def _parse_value(self) -> Any:
        """메타데이터/custom 값 하나"""
        token = self._peek()
        if token.kind == TokenKind.STRING:
            return self._advance().value
        if token.kind == TokenKind.DATE:
            return self._parse_date(self._advance())
        if token.kind == TokenKind.ACCOUNT:
            return self._account_from(self._advance())
        if token.kind == TokenKind.CURRENCY:
            return MetaCurrency(self._advance().text)
        if token.kind == TokenKind.TAG:
            return MetaTag(self._advance().value)
        if token.kind == TokenKind.BOOL:
            return self._advance().value
        if self._at_number():
            number = self._parse_expression()
            if self._at(TokenKind.CURRENCY):
                return Amount(number, self._advance().text)
            return number
        raise self._unexpected(token, "a value")

    def _parse_amount(self, field: str, header: _Header | None = None) -> Amount:
        if header is not None:
            self._require_field(field, header)
        number = self._parse_expression()
        currency = self._expect(TokenKind.CURRENCY, "a currency").text
        return Amount(number, currency)

    def _parse_expression(self) -> Decimal:
        """산술 표현식 (+ - * / 괄호 단항부호)"""
        value = self._parse_term()
        while self._peek().is_punct("+", "-"):
            operator = self._advance().text
            right = self._parse_term()
            value = value + right if operator == "+" else value - right
        return value

    def _parse_term(self) -> Decimal:
        value = self._parse_unary()
        while self._peek().is_punct("*", "/"):
            operator = self._advance()
            right = self._parse_unary()
            if operator.text == "*":
                value = value * right
                continue
            try:
                value = value / right
            except (DivisionByZero, InvalidOperation) as e:
                raise ParseError(
                    ParseErrorKind.MALFORMED_NUMBER,
                    "Division by zero in numeric expression",
                    operator.span,
                ) from e
        return value

    def _parse_unary(self) -> Decimal:
        token = self._peek()
        if token.is_punct("-"):
            self._advance()
            return -self._parse_unary()
        if token.is_punct("+"):
            self._advance()
            return self._parse_unary()
        if token.is_punct("("):
            self._advance()
            value = self._parse_expression()
            self._expect_punct(")")
            return value
        if token.kind == TokenKind.NUMBER:
            self._advance()
            try:
                return Decimal(token.value)
            except InvalidOperation as e:
                raise ParseError(
                    ParseErrorKind.MALFORMED_NUMBER,
                    f"Malformed number {token.text!r}",
                    token.span,
                ) from e
        raise self._unexpected(token, "a number")

    def _parse_date(self, token: Token) -> date:
        """날짜 토큰 → date (달력상 유효하지 않으면 토큰 위치로 ParseError)"""
        match = DATE_PARTS_RE.match(token.text)
        if match is None:
            raise ParseError(ParseErrorKind.MALFORMED_DATE, f"Malformed date {token.text!r}", token.span)
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError as e:
            raise ParseError(
                ParseErrorKind.MALFORMED_DATE,
                f"Invalid date {token.text!r}: {e}",
                token.span,
            ) from e

    def _account_from(self, token: Token) -> Account:
        try:
            account = Account(token.text)
        except ValidationError as e:
            raise ParseError(ParseErrorKind.INVALID_ACCOUNT, e.message, token.span) from e
        if account.account_type(self._root_names) is None:
            roots = ", ".join(self._root_names.values())
            raise ParseError(
                ParseErrorKind.INVALID_ACCOUNT,
                f"Invalid root account {account.root!r} in {token.text!r} (expected one of: {roots})",
                token.span,
            )
        return account

    def _flag_of(self, token: Token) -> Flag:
        try:
            return Flag.from_text(token.text)
        except ValueError as e:
            raise ParseError(
                ParseErrorKind.INVALID_VALUE,
                f"Unknown flag {token.text!r}",
                token.span,
            ) from e

    # ------------------------------------------------------------------
    # 토큰 탐색
    # ------------------------------------------------------------------

    def _peek(self, ahead: int = 0) -> Token:
        index = min(self._pos + ahead, len(self._tokens) - 1)
        return self._tokens[index]

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        if token.kind != TokenKind.EOF:
            self._pos += 1
        return token

    def _at(self, kind: TokenKind) -> bool:
        return self._peek().kind == kind

    def _at_number(self) -> bool:
        token = self._peek()
        return token.kind == TokenKind.NUMBER or token.is_punct("-", "+", "(")

    @staticmethod
    def _is_hash(token: Token) -> bool:
        return token.kind == TokenKind.FLAG and token.text == "#"

    def _is_txn_flag(self, token: Token) -> bool:
        if token.kind == TokenKind.FLAG or token.is_keyword("txn"):
            return True
        # 한 글자 플래그 (P, S, T ...) 는 통화 토큰으로 렉싱됨
        if token.kind == TokenKind.CURRENCY and len(token.text) == 1:
            try:
                Flag(token.text)
            except ValueError:
                return False
            return True
        return False

    def _expect(self, kind: TokenKind, what: str) -> Token:
        token = self._peek()
        if token.kind != kind:
            raise self._unexpected(token, what)
        return self._advance()

    def _expect_punct(self, symbol: str) -> Token:
        token = self._peek()
        if not token.is_punct(symbol):
            raise self._unexpected(token, f"'{symbol}'")
        return self._advance()

    def _require_field(self, field: str, header: _Header) -> None:
        """필수 필드 자리에 줄 끝이 오면 ValidationError"""
        if self._peek().kind in _LINE_END:
            raise ValidationError.missing(field, header.kind_name, header.span)

    def _expect_account(self, field: str, header: _Header) -> Account:
        self._require_field(field, header)
        return self._account_from(self._expect(TokenKind.ACCOUNT, "an account"))

    def _expect_string(self, field: str, header: _Header) -> str:
        self._require_field(field, header)
        return self._expect(TokenKind.STRING, f"a quoted {field}").value

    @staticmethod
    def _unexpected(token: Token, expected: str) -> ParseError:
        found = "end of line" if token.kind == TokenKind.EOL else str(token)
        return ParseError(
            ParseErrorKind.UNEXPECTED_TOKEN,
            f"Expected {expected}, found {found}",
            token.span,
        )

    def _synchronize(self, start: int | None = None) -> None:
        """현재 줄과 그 본문을 건너뛰고 다음 최상위 지시어로 이동

        Args:
            start: 실패한 항목의 시작 위치 (본문까지 이미 소비했으면 건너뛰지 않음)
        """
        if (
            start is not None
            and self._pos > start
            and self._depth == 0
            and self._tokens[self._pos - 1].kind in (TokenKind.EOL, TokenKind.DEDENT)
        ):
            return
        while not self._at(TokenKind.EOF) and not self._at(TokenKind.EOL):
            token = self._advance()
            if token.kind == TokenKind.INDENT:
                self._depth += 1
            elif token.kind == TokenKind.DEDENT:
                self._depth -= 1
        if self._at(TokenKind.EOL):
            self._advance()

        while not self._at(TokenKind.EOF):
            token = self._peek()
            if token.kind == TokenKind.INDENT:
                self._depth += 1
            elif token.kind == TokenKind.DEDENT:
                self._depth -= 1
            elif self._depth <= 0:
                break
            self._advance()
        self._depth = 0


def _with_comments(directive: Directive, comments: tuple[str, ...]) -> Directive:
    return replace(directive, comments=comments)


def parse(
    tokens: list[Token],
    config: LedgerConfig | None = None,
) -> tuple[Ledger, list[LedgerError]]:
    """토큰 → (Ledger, 오류 목록)

    Args:
        tokens: tokenize() 결과 토큰
        config: 원장 설정 (None 이면 기본값)

    Returns:
        (부분 Ledger, 위치 순 ParseError/ValidationError/SemanticError 목록)
    """
    return Parser(tokens, config).parse()


def parse_text(
    text: str,
    config: LedgerConfig | None = None,
) -> tuple[Ledger, list[LedgerError]]:
    """텍스트 → (Ledger, 오류 목록) - 렉서와 파서 오류를 위치 순으로 병합

    Args:
        text: 원장 텍스트
        config: 원장 설정

    Returns:
        (부분 Ledger, 위치 순 오류 목록)
    """
    tokens, lex_errors = tokenize(text)
    ledger, parse_errors = parse(tokens, config)
    return ledger, sort_errors([*lex_errors, *parse_errors])

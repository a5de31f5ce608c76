"""
beanledger/render/renderer.py 테스트

지시어별 출력 형식, 포스팅 정렬, 이스케이프, 렌더링 불가 값
"""

from datetime import date
from decimal import Decimal

import pytest

from beanledger.config.loader import LedgerConfig, RenderConfig
from beanledger.errors import RenderError, RenderErrorKind
from beanledger.ledger.model import (
    Account,
    Amount,
    Balance,
    Close,
    Commodity,
    CostSpec,
    Custom,
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
from beanledger.render.renderer import LedgerRenderer, quote, render, render_cost, render_value
from beanledger.types import Booking, Flag


D = date(2020, 1, 1)
CASH = Account("Assets:Cash")
FOOD = Account("Expenses:Food")


def usd(number: str) -> Amount:
    return Amount(Decimal(number), "USD")


@pytest.fixture
def renderer() -> LedgerRenderer:
    """기본 설정 렌더러"""
    return LedgerRenderer()


class TestDirectives:
    """지시어별 출력 테스트"""

    def test_open(self, renderer: LedgerRenderer) -> None:
        """통화 목록과 booking"""
        directive = Open(date=D, account=CASH, currencies=("USD", "EUR"), booking=Booking.FIFO)
        assert renderer.render_directive(directive) == '2020-01-01 open Assets:Cash USD,EUR "FIFO"'

    def test_simple_directives(self, renderer: LedgerRenderer) -> None:
        """헤더 한 줄짜리 지시어"""
        cases = [
            (Close(date=D, account=CASH), "2020-01-01 close Assets:Cash"),
            (
                Pad(date=D, account=CASH, source_account=Account("Equity:Opening")),
                "2020-01-01 pad Assets:Cash Equity:Opening",
            ),
            (Note(date=D, account=CASH, comment="hi"), '2020-01-01 note Assets:Cash "hi"'),
            (Event(date=D, name="location", description="Seoul"), '2020-01-01 event "location" "Seoul"'),
            (Price(date=D, currency="HOOL", amount=usd("5.10")), "2020-01-01 price HOOL 5.10 USD"),
            (Document(date=D, account=CASH, path="a.pdf"), '2020-01-01 document Assets:Cash "a.pdf"'),
            (Query(date=D, name="q", query_string="SELECT 1"), '2020-01-01 query "q" "SELECT 1"'),
            (Commodity(date=D, currency="HOOL"), "2020-01-01 commodity HOOL"),
        ]
        for directive, expected in cases:
            assert renderer.render_directive(directive) == expected

    def test_balance(self, renderer: LedgerRenderer) -> None:
        """balance 와 ~ 오차"""
        plain = Balance(date=D, account=CASH, amount=usd("100.00"))
        loose = Balance(date=D, account=CASH, amount=usd("0.00"), tolerance=Decimal("0.01"))

        assert renderer.render_directive(plain) == "2020-01-01 balance Assets:Cash 100.00 USD"
        assert renderer.render_directive(loose) == "2020-01-01 balance Assets:Cash 0.00 ~ 0.01 USD"

    def test_custom(self, renderer: LedgerRenderer) -> None:
        """custom 값 종류별 출력"""
        directive = Custom(
            date=D,
            name="budget",
            values=(FOOD, "monthly", usd("200.00"), True, D, Decimal("3")),
        )
        assert renderer.render_directive(directive) == (
            '2020-01-01 custom "budget" Expenses:Food "monthly" 200.00 USD TRUE 2020-01-01 3'
        )

    def test_tags_links_and_meta(self, renderer: LedgerRenderer) -> None:
        """태그/링크는 정렬, 메타데이터는 한 단계 들여쓰기"""
        directive = Close(
            date=D,
            account=CASH,
            tags=frozenset({"b", "a"}),
            links=frozenset({"z"}),
            meta={"note": "x", "currency": MetaCurrency("EUR")},
        )
        assert renderer.render_directive(directive) == (
            '2020-01-01 close Assets:Cash #a #b ^z\n  note: "x"\n  currency: EUR'
        )

    def test_comments_before_directive(self, renderer: LedgerRenderer) -> None:
        """앞 주석은 지시어 바로 위"""
        directive = Close(date=D, account=CASH, comments=("; first", "second"))
        assert renderer.render_directive(directive) == "; first\n; second\n2020-01-01 close Assets:Cash"


class TestPostings:
    """거래/포스팅 렌더링 테스트"""

    def test_alignment(self, renderer: LedgerRenderer) -> None:
        """소수점 기준 정렬"""
        txn = Transaction(
            date=D,
            narration="Lunch",
            payee="Store",
            tags=frozenset({"food"}),
            postings=(Posting(CASH, usd("-10.00")), Posting(FOOD, usd("10.00"))),
        )
        assert renderer.render_directive(txn) == (
            '2020-01-01 * "Store" "Lunch" #food\n'
            "  Assets:Cash    -10.00 USD\n"
            "  Expenses:Food   10.00 USD"
        )

    def test_decimal_point_alignment(self, renderer: LedgerRenderer) -> None:
        """자릿수가 달라도 소수점 위치 일치"""
        txn = Transaction(
            date=D,
            narration="x",
            postings=(Posting(CASH, usd("1.5")), Posting(FOOD, usd("-1.5")), Posting(CASH, usd("100"))),
        )
        lines = renderer.render_directive(txn).splitlines()[1:]
        assert lines[0].index(".") == lines[1].index(".")
        assert lines[2].endswith("100 USD")
        assert lines[2].index("100") == lines[0].index("1.5") - 2

    def test_flags_elision_and_posting_meta(self, renderer: LedgerRenderer) -> None:
        """포스팅 플래그, 금액 생략, 포스팅 메타데이터"""
        txn = Transaction(
            date=D,
            narration="x",
            flag=Flag.WARNING,
            postings=(
                Posting(CASH, usd("-5"), flag=Flag.WARNING, meta={"receipt": True}),
                Posting(FOOD),
            ),
        )
        assert renderer.render_directive(txn) == (
            '2020-01-01 ! "x"\n'
            "  ! Assets:Cash  -5 USD\n"
            "    receipt: TRUE\n"
            "  Expenses:Food"
        )

    def test_incomplete_amounts(self, renderer: LedgerRenderer) -> None:
        """숫자만 또는 통화만 적힌 금액"""
        txn = Transaction(
            date=D,
            narration="x",
            postings=(
                Posting(CASH, IncompleteAmount(number=Decimal("-5"))),
                Posting(FOOD, IncompleteAmount(currency="USD")),
            ),
        )
        assert renderer.render_directive(txn) == (
            '2020-01-01 * "x"\n'
            "  Assets:Cash    -5\n"
            "  Expenses:Food  USD"
        )

    def test_cost_and_price(self, renderer: LedgerRenderer) -> None:
        """원가와 가격 주석"""
        txn = Transaction(
            date=D,
            narration="x",
            postings=(
                Posting(
                    Account("Assets:Broker"),
                    Amount(Decimal("10"), "HOOL"),
                    cost=CostSpec(number_per=Decimal("5.00"), currency="USD"),
                    price=PriceSpec(usd("5.10")),
                ),
                Posting(CASH, usd("-400.00"), price=PriceSpec(Amount(Decimal("436.00"), "CAD"), is_total=True)),
            ),
        )
        lines = renderer.render_directive(txn).splitlines()
        assert lines[1] == "  Assets:Broker    10 HOOL {5.00 USD} @ 5.10 USD"
        assert lines[2] == "  Assets:Cash    -400.00 USD @@ 436.00 CAD"

    def test_configured_amount_column(self) -> None:
        """설정된 최소 금액 열과 들여쓰기"""
        config = LedgerConfig(render=RenderConfig(indent=4, amount_column=20))
        txn = Transaction(date=D, narration="x", postings=(Posting(CASH, usd("1.00")), Posting(FOOD)))

        lines = LedgerRenderer(config).render_directive(txn).splitlines()

        assert lines[1] == "    Assets:Cash" + " " * 5 + "1.00 USD"
        assert lines[2] == "    Expenses:Food"


class TestCost:
    """원가 표기 테스트"""

    def test_forms(self) -> None:
        """단위/총/복합/빈 원가"""
        assert render_cost(
            CostSpec(number_per=Decimal("500.00"), currency="USD", date=D, label="lot1")
        ) == '{500.00 USD, 2020-01-01, "lot1"}'
        assert render_cost(CostSpec(number_total=Decimal("5000.00"), currency="USD")) == "{{5000.00 USD}}"
        assert render_cost(
            CostSpec(number_per=Decimal("100.00"), number_total=Decimal("9.95"), currency="USD")
        ) == "{100.00 # 9.95 USD}"
        assert render_cost(CostSpec()) == "{}"
        assert render_cost(CostSpec(merge=True)) == "{*}"
        assert render_cost(CostSpec(currency="USD")) == "{USD}"


class TestValues:
    """값 렌더링 테스트"""

    def test_quote_escapes(self) -> None:
        """역슬래시와 큰따옴표 이스케이프"""
        assert quote('a "b" \\ c') == '"a \\"b\\" \\\\ c"'

    def test_quote_rejects_newline(self) -> None:
        """여러 줄 문자열은 렌더링 불가"""
        with pytest.raises(RenderError) as exc_info:
            quote("two\nlines")
        assert exc_info.value.kind == RenderErrorKind.INVALID_VALUE

    def test_render_value(self) -> None:
        """값 종류별 출력"""
        assert render_value(False) == "FALSE"
        assert render_value(MetaCurrency("USD")) == "USD"
        assert render_value(MetaTag("trip")) == "#trip"
        assert render_value("x") == '"x"'
        assert render_value(Decimal("1E+2")) == "100"
        assert render_value(usd("1.50")) == "1.50 USD"
        assert render_value(CASH) == "Assets:Cash"
        assert render_value(D) == "2020-01-01"

    def test_unknown_value(self) -> None:
        """지원하지 않는 값 타입"""
        with pytest.raises(RenderError) as exc_info:
            render_value([1, 2])
        assert exc_info.value.kind == RenderErrorKind.INVALID_VALUE


class TestLedger:
    """원장 전체 렌더링 테스트"""

    def test_header_block_and_separation(self) -> None:
        """option/plugin/include 후 지시어를 빈 줄로 구분"""
        ledger = Ledger(
            directives=(Open(date=D, account=CASH), Close(date=date(2020, 2, 1), account=CASH)),
            options=(Option("title", "Book"),),
            includes=(Include("other.beancount"),),
            plugins=(Plugin("mod", "cfg"),),
            trailing_comments=("; end",),
        )

        assert render(ledger) == (
            'option "title" "Book"\n'
            'plugin "mod" "cfg"\n'
            'include "other.beancount"\n'
            "\n"
            "2020-01-01 open Assets:Cash\n"
            "\n"
            "2020-02-01 close Assets:Cash\n"
            "\n"
            "; end\n"
        )

    def test_empty_ledger(self) -> None:
        """빈 원장은 빈 문자열"""
        assert render(Ledger()) == ""

    def test_deterministic(self) -> None:
        """같은 Ledger 는 같은 출력"""
        ledger = Ledger(directives=(
            Close(date=D, account=CASH, tags=frozenset({"c", "a", "b"}), meta={"k": "v"}),
        ))
        assert render(ledger) == render(ledger)
        assert "#a #b #c" in render(ledger)

    def test_unsupported_directive(self, renderer: LedgerRenderer) -> None:
        """지시어가 아닌 객체"""
        with pytest.raises(RenderError) as exc_info:
            renderer.render_directive(object())
        assert exc_info.value.kind == RenderErrorKind.UNSUPPORTED_DIRECTIVE

    def test_multiline_string_fails(self) -> None:
        """여러 줄 note 는 RenderError"""
        ledger = Ledger(directives=(Note(date=D, account=CASH, comment="a\nb"),))
        with pytest.raises(RenderError):
            render(ledger)

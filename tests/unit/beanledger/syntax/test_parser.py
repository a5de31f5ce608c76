"""
beanledger/syntax/parser.py 테스트

지시어별 파싱, 본문(포스팅/메타데이터), 오류 수집과 재동기화, 의미 검증
"""

from datetime import date
from decimal import Decimal

import pytest

from beanledger.config.loader import LedgerConfig, ToleranceConfig
from beanledger.errors import ParseError, SemanticError, SourceSpan, ValidationError
from beanledger.ledger.model import (
    Account,
    Amount,
    Balance,
    Custom,
    IncompleteAmount,
    MetaCurrency,
    MetaTag,
    Open,
    Option,
    Plugin,
    Transaction,
)
from beanledger.syntax.lexer import tokenize
from beanledger.syntax.parser import Parser, parse, parse_text
from beanledger.types import Booking, Flag, LexErrorKind, ParseErrorKind, SemanticErrorKind


OPENS = """2020-01-01 open Assets:Cash
2020-01-01 open Assets:Bank
2020-01-01 open Expenses:Food
2020-01-01 open Equity:Opening
"""


class TestDirectives:
    """지시어별 파싱 테스트"""

    def test_parse_tokens(self) -> None:
        """토큰 목록에서 직접 파싱"""
        tokens, _ = tokenize("2020-01-01 open Assets:Cash\n")

        ledger, errors = parse(tokens)

        assert errors == []
        assert ledger.directives == (Open(date=date(2020, 1, 1), account=Account("Assets:Cash")),)

    def test_open_with_currencies_and_booking(self) -> None:
        """통화 목록과 booking"""
        ledger, errors = parse_text('2020-01-01 open Assets:Broker USD,HOOL "FIFO"\n')

        assert errors == []
        directive = ledger.directives[0]
        assert directive.currencies == ("USD", "HOOL")
        assert directive.booking == Booking.FIFO

    def test_unknown_booking(self) -> None:
        """알 수 없는 booking 문자열"""
        _, errors = parse_text('2020-01-01 open Assets:Cash "RANDOM"\n')
        assert [e.kind for e in errors] == [ParseErrorKind.INVALID_VALUE]

    def test_balance_with_tolerance(self) -> None:
        """balance ~ 오차"""
        ledger, _ = parse_text(OPENS + "2020-01-02 balance Assets:Cash  0.00 ~ 0.01 USD\n")

        balance = ledger.directives[-1]
        assert isinstance(balance, Balance)
        assert balance.amount == Amount(Decimal("0.00"), "USD")
        assert balance.tolerance == Decimal("0.01")

    def test_other_directives(self) -> None:
        """나머지 지시어"""
        text = OPENS + (
            "2020-01-02 pad Assets:Cash Equity:Opening\n"
            '2020-01-02 note Assets:Cash "checked"\n'
            '2020-01-02 event "location" "Seoul"\n'
            "2020-01-02 price HOOL 5.10 USD\n"
            '2020-01-02 document Assets:Cash "a.pdf"\n'
            '2020-01-02 query "cash" "SELECT 1"\n'
            "2020-01-02 commodity HOOL\n"
            "2020-01-03 close Assets:Bank\n"
        )

        ledger, errors = parse_text(text)

        assert errors == []
        assert [d.kind.value for d in ledger.directives[4:]] == [
            "pad", "note", "event", "price", "document", "query", "commodity", "close",
        ]
        price = ledger.directives[7]
        assert price.currency == "HOOL"
        assert price.amount == Amount(Decimal("5.10"), "USD")

    def test_custom_values(self) -> None:
        """custom 값 목록"""
        ledger, errors = parse_text(
            OPENS + '2020-01-02 custom "budget" Expenses:Food "monthly" 200.00 USD TRUE 2020-02-01\n'
        )

        assert errors == []
        custom = ledger.directives[-1]
        assert isinstance(custom, Custom)
        assert custom.values == (
            Account("Expenses:Food"),
            "monthly",
            Amount(Decimal("200.00"), "USD"),
            True,
            date(2020, 2, 1),
        )

    def test_undated_entries(self) -> None:
        """option / include / plugin"""
        text = (
            'option "title" "Personal"\n'
            'include "other.beancount"\n'
            'plugin "beancount.plugins.auto"\n'
            'plugin "mod" "cfg"\n'
        )

        ledger, errors = parse_text(text)

        assert errors == []
        assert ledger.options == (Option("title", "Personal"),)
        assert ledger.includes[0].filename == "other.beancount"
        assert ledger.plugins == (Plugin("beancount.plugins.auto"), Plugin("mod", "cfg"))

    def test_option_renames_root(self) -> None:
        """option name_assets 로 루트 이름 변경"""
        text = 'option "name_assets" "Actifs"\n2020-01-01 open Actifs:Cash\n2020-01-01 open Assets:Cash\n'

        ledger, errors = parse_text(text)

        assert [d.account for d in ledger.directives] == [Account("Actifs:Cash")]
        assert [e.kind for e in errors] == [ParseErrorKind.INVALID_ACCOUNT]

    def test_root_names_from_config(self) -> None:
        """설정의 루트 이름"""
        config = LedgerConfig(root_names={**LedgerConfig.default().root_names, "assets": "Actifs"})

        _, errors = parse_text("2020-01-01 open Actifs:Cash\n", config)

        assert errors == []


class TestTransactions:
    """거래 파싱 테스트"""

    def test_full_transaction(self) -> None:
        """payee, 태그, 링크, 메타데이터, 포스팅 메타데이터"""
        text = OPENS + (
            '2020-01-02 * "Store" "Lunch" #food ^receipt-1\n'
            '  category: "meals"\n'
            "  Assets:Cash  -10.00 USD\n"
            "    receipt: TRUE\n"
            "  Expenses:Food\n"
        )

        ledger, errors = parse_text(text)

        assert errors == []
        txn = ledger.directives[-1]
        assert isinstance(txn, Transaction)
        assert txn.flag == Flag.OKAY
        assert txn.payee == "Store"
        assert txn.narration == "Lunch"
        assert txn.tags == frozenset({"food"})
        assert txn.links == frozenset({"receipt-1"})
        assert txn.meta == {"category": "meals"}
        assert txn.postings[0].meta == {"receipt": True}
        assert txn.postings[1].units == Amount(Decimal("10.00"), "USD")

    def test_flags(self) -> None:
        """txn 키워드와 한 글자 플래그"""
        text = OPENS + (
            '2020-01-02 txn "a"\n  Assets:Cash  1 USD\n  Assets:Bank\n'
            '2020-01-02 ! "b"\n  ! Assets:Cash  1 USD\n  Assets:Bank\n'
            '2020-01-02 P "c"\n  Assets:Cash  1 USD\n  Assets:Bank\n'
        )

        ledger, errors = parse_text(text)

        assert errors == []
        flags = [t.flag for t in ledger.transactions]
        assert flags == [Flag.OKAY, Flag.WARNING, Flag.PADDING]
        assert ledger.transactions[1].postings[0].flag == Flag.WARNING

    def test_narration_only(self) -> None:
        """문자열 하나면 narration"""
        ledger, _ = parse_text(OPENS + '2020-01-02 * "Lunch"\n  Assets:Cash  1 USD\n  Assets:Bank\n')

        txn = ledger.transactions[0]
        assert txn.payee is None
        assert txn.narration == "Lunch"

    def test_cost_and_price(self) -> None:
        """원가와 가격 주석"""
        text = OPENS + (
            '2020-01-02 * "Buy"\n'
            '  Assets:Bank  10 HOOL {500.00 USD, 2020-01-01, "lot1"}\n'
            "  Assets:Cash  -5000.00 USD\n"
            '2020-01-03 * "Convert"\n'
            "  Assets:Cash  -400.00 USD @ 1.09 CAD\n"
            "  Assets:Bank  436.00 CAD\n"
        )

        ledger, errors = parse_text(text)

        assert errors == []
        buy, convert = ledger.transactions
        cost = buy.postings[0].cost
        assert cost.number_per == Decimal("500.00")
        assert cost.currency == "USD"
        assert cost.date == date(2020, 1, 1)
        assert cost.label == "lot1"
        assert convert.postings[0].price.amount == Amount(Decimal("1.09"), "CAD")
        assert convert.postings[0].price.is_total is False

    def test_total_and_compound_cost(self) -> None:
        """{{총 원가}} 와 {단위 # 총}"""
        text = OPENS + (
            '2020-01-02 * "Buy"\n'
            "  Assets:Bank  10 HOOL {{5000.00 USD}}\n"
            "  Assets:Bank  1 HOOL {100.00 # 9.95 USD}\n"
            "  Assets:Cash\n"
        )

        ledger, errors = parse_text(text)

        assert errors == []
        total, compound, cash = ledger.transactions[0].postings
        assert total.cost.number_per is None
        assert total.cost.number_total == Decimal("5000.00")
        assert compound.cost.number_per == Decimal("100.00")
        assert compound.cost.number_total == Decimal("9.95")
        assert cash.units == Amount(Decimal("-5109.95"), "USD")

    def test_numeric_expressions(self) -> None:
        """사칙연산과 괄호"""
        text = OPENS + (
            '2020-01-02 * "Split"\n'
            "  Assets:Cash  (10 + 5) * 2 USD\n"
            "  Assets:Bank  -30 / 2 - 15 USD\n"
        )

        ledger, errors = parse_text(text)

        assert errors == []
        cash, bank = ledger.transactions[0].postings
        assert cash.units.number == Decimal("30")
        assert bank.units.number == Decimal("-30")

    def test_division_by_zero(self) -> None:
        """0 으로 나누기"""
        _, errors = parse_text(OPENS + '2020-01-02 * "x"\n  Assets:Cash  1 / 0 USD\n  Assets:Bank\n')
        assert [e.kind for e in errors] == [ParseErrorKind.MALFORMED_NUMBER]

    def test_metadata_values(self) -> None:
        """메타데이터 값 종류"""
        text = OPENS + (
            "2020-01-02 close Assets:Bank\n"
            '  text: "x"\n'
            "  number: 12.5\n"
            "  amount: 3 USD\n"
            "  day: 2020-01-05\n"
            "  account: Assets:Cash\n"
            "  currency: EUR\n"
            "  tag: #trip\n"
            "  flag: FALSE\n"
        )

        ledger, errors = parse_text(text)

        assert errors == []
        meta = ledger.directives[-1].meta
        assert meta == {
            "text": "x",
            "number": Decimal("12.5"),
            "amount": Amount(Decimal("3"), "USD"),
            "day": date(2020, 1, 5),
            "account": Account("Assets:Cash"),
            "currency": "EUR",
            "tag": "trip",
            "flag": False,
        }
        assert isinstance(meta["currency"], MetaCurrency)
        assert isinstance(meta["tag"], MetaTag)

    def test_tag_continuation_line(self) -> None:
        """본문의 태그/링크 줄"""
        text = OPENS + '2020-01-02 * "x"\n  #trip ^link\n  Assets:Cash  1 USD\n  Assets:Bank\n'

        ledger, errors = parse_text(text)

        assert errors == []
        assert ledger.transactions[0].tags == frozenset({"trip"})
        assert ledger.transactions[0].links == frozenset({"link"})

    def test_pushtag_poptag(self) -> None:
        """pushtag 된 태그는 거래에 추가"""
        text = OPENS + (
            "pushtag #trip\n"
            '2020-01-02 * "Taxi"\n  Assets:Cash  -5 USD\n  Expenses:Food\n'
            "poptag #trip\n"
            '2020-01-03 * "Home"\n  Assets:Cash  -5 USD\n  Expenses:Food\n'
        )

        ledger, errors = parse_text(text)

        assert errors == []
        assert [t.tags for t in ledger.transactions] == [frozenset({"trip"}), frozenset()]


class TestIncompleteAmounts:
    """숫자나 통화만 적힌 포스팅 금액"""

    def test_currency_only_posting(self) -> None:
        """통화만 적힌 포스팅은 그 통화의 잔차로 채움"""
        text = OPENS + '2020-01-02 * "x"\n  Assets:Cash  -5.00 USD\n  Expenses:Food  USD\n'

        ledger, errors = parse_text(text)

        assert errors == []
        food = ledger.transactions[0].postings[1]
        assert food.units == Amount(Decimal("5.00"), "USD")

    def test_currency_only_restricts_fill(self) -> None:
        """통화만 적힌 포스팅은 다른 통화의 잔차를 채우지 않음"""
        text = OPENS + (
            '2020-01-02 * "x"\n'
            "  Assets:Cash  -5.00 USD\n"
            "  Assets:Bank  -3.00 EUR\n"
            "  Expenses:Food  USD\n"
        )

        ledger, errors = parse_text(text)

        assert [e.kind for e in errors] == [SemanticErrorKind.UNBALANCED]
        assert errors[0].residual == {"EUR": Decimal("3.00")}
        postings = ledger.transactions[0].postings
        assert len(postings) == 3
        assert postings[2].units == Amount(Decimal("5.00"), "USD")

    def test_number_only_posting(self) -> None:
        """숫자만 적힌 포스팅은 다른 포스팅에서 통화를 추론"""
        text = OPENS + '2020-01-02 * "x"\n  Assets:Cash  -5.00\n  Expenses:Food  5.00 USD\n'

        ledger, errors = parse_text(text)

        assert errors == []
        cash = ledger.transactions[0].postings[0]
        assert cash.units == Amount(Decimal("-5.00"), "USD")

    def test_number_only_still_checks_balance(self) -> None:
        """통화를 추론한 뒤에도 균형 검증"""
        text = OPENS + '2020-01-02 * "x"\n  Assets:Cash  -4.00\n  Expenses:Food  5.00 USD\n'

        _, errors = parse_text(text)

        assert [e.kind for e in errors] == [SemanticErrorKind.UNBALANCED]
        assert errors[0].residual == {"USD": Decimal("-1.00")}

    def test_number_only_ambiguous_currency(self) -> None:
        """통화 후보가 여럿이면 UNBALANCED"""
        text = OPENS + (
            '2020-01-02 * "x"\n'
            "  Assets:Cash  -5.00\n"
            "  Expenses:Food  5.00 USD\n"
            "  Assets:Bank  2.00 EUR\n"
        )

        ledger, errors = parse_text(text)

        assert [e.kind for e in errors] == [SemanticErrorKind.UNBALANCED]
        assert "Assets:Cash" in errors[0].message
        assert ledger.transactions[0].postings[0].units == IncompleteAmount(number=Decimal("-5.00"))

    def test_currency_only_without_residual(self) -> None:
        """채울 잔차가 없으면 통화만 적힌 채로 유지"""
        text = OPENS + (
            '2020-01-02 * "x"\n'
            "  Assets:Cash  -5.00 USD\n"
            "  Expenses:Food  5.00 USD\n"
            "  Assets:Bank  EUR\n"
        )

        ledger, errors = parse_text(text)

        assert errors == []
        bank = ledger.transactions[0].postings[2]
        assert bank.units == IncompleteAmount(currency="EUR")
        assert bank.is_elided


class TestErrors:
    """오류 수집 테스트"""

    def test_malformed_date_span(self) -> None:
        """잘못된 날짜는 날짜 토큰 위치"""
        ledger, errors = parse_text(OPENS + "2020-13-01 open Assets:Other\n")

        assert len(ledger) == 4
        assert len(errors) == 1
        assert isinstance(errors[0], ParseError)
        assert errors[0].kind == ParseErrorKind.MALFORMED_DATE
        assert (errors[0].span.line, errors[0].span.column) == (5, 1)
        assert errors[0].span.length == 10

    def test_missing_required_field(self) -> None:
        """필수 필드 누락은 ValidationError"""
        _, errors = parse_text("2020-01-01 open\n2020-01-01 balance Assets:Cash\n")

        assert all(isinstance(e, ValidationError) for e in errors)
        assert [e.field for e in errors] == ["account", "amount"]
        assert [e.span.line for e in errors] == [1, 2]

    def test_missing_narration(self) -> None:
        """거래 narration 누락"""
        _, errors = parse_text('2020-01-01 *\n  Assets:Cash  1 USD\n')
        assert [e.field for e in errors] == ["narration"]

    def test_resynchronize(self) -> None:
        """오류 후 다음 최상위 지시어에서 계속"""
        text = OPENS + (
            "2020-01-02 bogus Assets:Cash\n"
            '  key: "x"\n'
            "2020-01-03 close Assets:Bank\n"
        )

        ledger, errors = parse_text(text)

        assert [e.kind for e in errors] == [ParseErrorKind.UNEXPECTED_TOKEN]
        assert [d.kind.value for d in ledger.directives][-1] == "close"
        assert len(ledger) == 5

    def test_bad_posting_drops_transaction(self) -> None:
        """포스팅 오류는 거래 전체를 버리고 계속"""
        text = OPENS + (
            '2020-01-02 * "x"\n  Assets:Cash  1 USD USD\n  Assets:Bank\n'
            "2020-01-03 close Assets:Bank\n"
        )

        ledger, errors = parse_text(text)

        assert len(errors) == 1
        assert ledger.transactions == []
        assert ledger.directives[-1].kind.value == "close"

    def test_invalid_root_account(self) -> None:
        """알 수 없는 루트"""
        _, errors = parse_text("2020-01-01 open Foo:Bar\n")

        assert [e.kind for e in errors] == [ParseErrorKind.INVALID_ACCOUNT]
        assert errors[0].span.column == 17

    def test_duplicate_meta_key(self) -> None:
        """메타데이터 키 중복"""
        _, errors = parse_text('2020-01-01 open Assets:Cash\n  a: "1"\n  a: "2"\n')
        assert [e.kind for e in errors] == [ParseErrorKind.DUPLICATE_KEY]

    def test_unexpected_indent(self) -> None:
        """지시어 없는 들여쓴 줄"""
        _, errors = parse_text('  key: "x"\n2020-01-01 open Assets:Cash\n')
        assert [e.kind for e in errors] == [ParseErrorKind.UNEXPECTED_TOKEN]

    def test_tag_stack_errors(self) -> None:
        """poptag 불일치와 EOF 의 남은 태그"""
        _, errors = parse_text("poptag #missing\npushtag #open\n")

        assert [e.kind for e in errors] == [ParseErrorKind.TAG_STACK, ParseErrorKind.TAG_STACK]
        assert "missing" in errors[0].message
        assert "open" in errors[1].message

    def test_lex_and_parse_errors_ordered(self) -> None:
        """렉서/파서 오류를 위치 순으로 병합"""
        text = "2020-13-01 open Assets:Cash\n2020-01-01 open Assets:Bank $\n"

        _, errors = parse_text(text)

        assert [e.span.line for e in errors] == sorted(e.span.line for e in errors)
        assert errors[0].kind == ParseErrorKind.MALFORMED_DATE

    def test_lex_error_in_posting_drops_transaction(self) -> None:
        """어휘 오류가 난 포스팅 줄은 거래 전체를 버림 (잘린 포스팅으로 균형을 채우지 않음)"""
        text = OPENS + (
            '2020-01-02 * "x"\n'
            "  Assets:Cash  1.2.3 USD\n"
            "  Expenses:Food  5.00 USD\n"
            "2020-01-03 close Assets:Bank\n"
        )

        ledger, errors = parse_text(text)

        assert ledger.transactions == []
        assert [e.kind for e in errors] == [LexErrorKind.INVALID_NUMBER]
        assert errors[0].span.line == 6
        assert ledger.directives[-1].kind.value == "close"

    def test_lex_error_in_header_drops_directive(self) -> None:
        """어휘 오류가 난 헤더 줄은 본문까지 버리고 다음 지시어에서 계속"""
        text = '2020-01-01 open Assets:Cash $\n  note: "x"\n2020-01-02 open Assets:Bank\n'

        ledger, errors = parse_text(text)

        assert [e.kind for e in errors] == [LexErrorKind.ILLEGAL_CHARACTER]
        assert [str(d.account) for d in ledger.directives] == ["Assets:Bank"]

    def test_lex_error_in_metadata_line(self) -> None:
        """본문 메타데이터 줄의 어휘 오류: 추가 파서 오류 없음"""
        text = '2020-01-01 open Assets:Cash\n  note: "open\n2020-01-02 open Assets:Bank\n'

        ledger, errors = parse_text(text)

        assert [e.kind for e in errors] == [LexErrorKind.UNTERMINATED_STRING]
        assert [str(d.account) for d in ledger.directives] == ["Assets:Bank"]

    def test_short_date_component(self) -> None:
        """자릿수가 틀린 날짜는 날짜 전체 범위의 MALFORMED_DATE"""
        ledger, errors = parse_text("2020-1-01 open Assets:Cash\n2020-01-02 open Assets:Bank\n")

        assert [e.kind for e in errors] == [ParseErrorKind.MALFORMED_DATE]
        assert errors[0].span.column == 1
        assert errors[0].span.length == 9
        assert len(ledger) == 1

    def test_invalid_meta_key_has_position(self) -> None:
        """메타데이터 키 형식 위반도 위치 정보 포함"""
        _, errors = parse_text('2020-01-01 open Assets:Cash\n  éa: "x"\n')

        assert [e.kind for e in errors] == [ParseErrorKind.INVALID_VALUE]
        assert errors[0].span is not None
        assert (errors[0].span.line, errors[0].span.column) == (2, 3)

    def test_model_error_gets_entry_position(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """위치 없이 올라온 모델 검증 오류에는 항목 시작 위치를 부착"""

        def failing_close(self: Parser, header: object) -> None:
            raise ValidationError.invalid("account", "invalid close")

        monkeypatch.setattr(Parser, "_parse_close", failing_close)

        _, errors = parse_text(OPENS + "2020-01-02 close Assets:Bank\n")

        assert [e.field for e in errors] == ["account"]
        assert errors[0].span == SourceSpan(line=5, column=1, offset=len(OPENS), length=10)


class TestSemanticChecks:
    """의미 검증 테스트"""

    def test_unbalanced(self) -> None:
        """불균형 거래는 남기고 오류 보고"""
        text = OPENS + '2020-01-02 * "x"\n  Assets:Cash  -10.00 USD\n  Expenses:Food  5.00 USD\n'

        ledger, errors = parse_text(text)

        assert len(ledger.transactions) == 1
        assert [e.kind for e in errors] == [SemanticErrorKind.UNBALANCED]
        assert errors[0].residual == {"USD": Decimal("5.00")}
        assert errors[0].span.line == 5

    def test_tolerance_from_config(self) -> None:
        """설정한 고정 오차"""
        config = LedgerConfig(
            tolerance=ToleranceConfig(default=Decimal("0.1"), infer_from_precision=False)
        )
        text = OPENS + '2020-01-02 * "x"\n  Assets:Cash  -10.00 USD\n  Expenses:Food  9.95 USD\n'

        _, errors = parse_text(text, config)

        assert errors == []

    def test_unopened_account(self) -> None:
        """open 없는 계정 참조"""
        text = OPENS + '2020-01-02 * "x"\n  Liabilities:CreditCard  -10.00 USD\n  Expenses:Food\n'

        _, errors = parse_text(text)

        assert len(errors) == 1
        assert isinstance(errors[0], SemanticError)
        assert errors[0].kind == SemanticErrorKind.ACCOUNT_STATE
        assert errors[0].account == "Liabilities:CreditCard"

    def test_duplicate_open(self) -> None:
        """중복 open 도 지시어는 유지"""
        ledger, errors = parse_text(OPENS + "2020-01-05 open Assets:Cash\n")

        assert len(ledger) == 5
        assert [e.kind for e in errors] == [SemanticErrorKind.ACCOUNT_STATE]

    def test_after_close(self) -> None:
        """close 이후 참조"""
        text = OPENS + (
            "2020-02-01 close Assets:Cash\n"
            '2020-03-01 * "Late"\n  Assets:Cash  -1 USD\n  Expenses:Food\n'
        )

        _, errors = parse_text(text)

        assert [e.kind for e in errors] == [SemanticErrorKind.ACCOUNT_STATE]
        assert "closed" in errors[0].message

    def test_balance_and_pad(self) -> None:
        """pad 로 채운 뒤 balance 단언 통과, 이후 불일치 검출"""
        text = OPENS + (
            "2020-01-01 pad Assets:Cash Equity:Opening\n"
            "2020-01-02 balance Assets:Cash  100.00 USD\n"
            '2020-01-03 * "Lunch"\n  Assets:Cash  -10.00 USD\n  Expenses:Food\n'
            "2020-01-04 balance Assets:Cash  95.00 USD\n"
        )

        _, errors = parse_text(text)

        assert [e.kind for e in errors] == [SemanticErrorKind.BALANCE_MISMATCH]
        assert errors[0].residual == {"USD": Decimal("5.00")}

    def test_comments_attached(self) -> None:
        """1열 주석은 다음 지시어에, 마지막 주석은 trailing 으로"""
        text = "; Opening\n; accounts\n2020-01-01 open Assets:Cash ; inline\n; the end\n"

        ledger, errors = parse_text(text)

        assert errors == []
        assert ledger.directives[0].comments == ("; Opening", "; accounts")
        assert ledger.trailing_comments == ("; the end",)

"""
렉서 (어휘 분석기)

텍스트 버퍼 → 위치 정보 포함 토큰 목록.
들여쓰기는 스택으로 추적하여 INDENT / DEDENT 토큰을 생성한다.
- 빈 줄과 주석만 있는 줄은 들여쓰기 스택에 영향 없음
- 오류가 나면 그 줄의 토큰을 버리고 ERROR 토큰 하나로 대체한 뒤 다음 줄부터 계속 (모든 오류 수집)
- 줄 구분은 '\n' 만 사용, offset 은 UTF-8 바이트 기준
"""

from __future__ import annotations

import logging
import re

from beanledger.constants import Defaults, Grammar
from beanledger.errors import LexError, SourceSpan
from beanledger.syntax.tokens import Token
from beanledger.types import LexErrorKind, TokenKind

logger = logging.getLogger(__name__)


# 날짜 모양 (자릿수가 틀린 날짜도 DATE 로 렉싱하고 파서가 MALFORMED_DATE 보고)
DATE_RE = re.compile(r"\d{4}[-/]\d{1,2}[-/]\d{1,2}(?![\w])")
NUMBER_RUN_RE = re.compile(r"[0-9][0-9,.]*")
NUMBER_RE = re.compile(r"^(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d*)?$")
UPPER_WORD_RE = re.compile(r"[\w'.:-]+")
LOWER_WORD_RE = re.compile(r"[\w-]+")
TAG_NAME_RE = re.compile(r"[A-Za-z0-9_/.-]+")
CURRENCY_RE = re.compile(r"^(?:[A-Z][A-Z0-9'._-]{0,22}[A-Z0-9]|[A-Z])$")

# 단일 문자 구두점 (다중 문자 '{{', '}}', '@@' 는 별도 처리)
PUNCTUATION_CHARS = set("{}@,~()+-/:*")
FLAG_CHARS = set("!&?%")


class _LineAbort(Exception):
    """현재 줄 건너뛰기 신호 (내부용)"""


class Lexer:
    """줄 단위 렉서

    Args:
        text: 입력 텍스트
        tab_width: 탭 확장 폭 (들여쓰기 계산용)
    """

    def __init__(self, text: str, tab_width: int = Defaults.TAB_WIDTH) -> None:
        self._text = text
        self._tab_width = tab_width
        self._tokens: list[Token] = []
        self._errors: list[LexError] = []
        self._indents: list[int] = [0]

        # 현재 줄 상태
        self._line_no = 0
        self._line = ""
        self._line_offset = 0
        self._line_start_index = 0  # 현재 줄 첫 토큰의 self._tokens 인덱스

    def tokenize(self) -> tuple[list[Token], list[LexError]]:
        """전체 텍스트 토큰화

        Returns:
            (토큰 목록, LexError 목록)
        """
        offset = 0
        for line_no, raw_line in enumerate(self._text.split("\n"), start=1):
            self._line_no = line_no
            self._line = raw_line[:-1] if raw_line.endswith("\r") else raw_line
            self._line_offset = offset
            offset += len(raw_line.encode("utf-8")) + 1
            self._lex_line()

        end = self._span(len(self._line), 0)
        while len(self._indents) > 1:
            self._indents.pop()
            self._tokens.append(Token(TokenKind.DEDENT, "", end))
        self._tokens.append(Token(TokenKind.EOF, "", end))

        logger.debug(f"토큰화 완료: {len(self._tokens)}개 토큰, {len(self._errors)}개 오류")
        return self._tokens, self._errors

    # ------------------------------------------------------------------
    # 줄 처리
    # ------------------------------------------------------------------

    def _lex_line(self) -> None:
        line = self._line
        stripped = line.lstrip(" \t")
        if not stripped:
            return

        start = len(line) - len(stripped)
        width = len(line[:start].expandtabs(self._tab_width))

        # 주석 줄 / org-mode 제목 줄: 들여쓰기 스택 변경 없음
        if stripped.startswith(";") or (start == 0 and stripped.startswith("*")):
            self._emit(TokenKind.COMMENT, start, len(stripped), value=stripped)
            self._emit(TokenKind.EOL, len(line), 0)
            return

        self._track_indent(width, start)
        self._line_start_index = len(self._tokens)

        try:
            self._scan(start)
        except _LineAbort:
            # 들여쓰기 토큰만 남기고 ERROR 로 대체 (파서는 이 줄이 속한 항목을 버림)
            del self._tokens[self._line_start_index:]
            self._emit(TokenKind.ERROR, start, len(line) - start, value=self._errors[-1])
        self._emit(TokenKind.EOL, len(line), 0)

    def _track_indent(self, width: int, start: int) -> None:
        if width > self._indents[-1]:
            self._indents.append(width)
            self._emit(TokenKind.INDENT, 0, start)
            return

        while width < self._indents[-1]:
            self._indents.pop()
            self._emit(TokenKind.DEDENT, 0, start)
        if width > self._indents[-1]:
            # 이전 단계와 어긋난 들여쓰기: 새 단계로 취급
            self._indents.append(width)
            self._emit(TokenKind.INDENT, 0, start)

    def _scan(self, index: int) -> None:
        line = self._line
        while index < len(line):
            ch = line[index]

            if ch in " \t":
                index += 1
            elif ch == ";":
                self._emit(TokenKind.COMMENT, index, len(line) - index, value=line[index:])
                return
            elif ch == '"':
                index = self._scan_string(index)
            elif ch.isdigit():
                index = self._scan_number_or_date(index)
            elif ch.isupper():
                index = self._scan_upper_word(index)
            elif ch.isalpha():
                index = self._scan_lower_word(index)
            elif ch == "#":
                index = self._scan_prefixed(index, TokenKind.TAG, allow_flag=True)
            elif ch == "^":
                index = self._scan_prefixed(index, TokenKind.LINK, allow_flag=False)
            elif ch in FLAG_CHARS:
                self._emit(TokenKind.FLAG, index, 1, value=ch)
                index += 1
            elif ch == "*" and self._star_is_flag():
                self._emit(TokenKind.FLAG, index, 1, value=ch)
                index += 1
            elif line.startswith(("{{", "}}", "@@"), index):
                self._emit(TokenKind.PUNCTUATION, index, 2)
                index += 2
            elif ch in PUNCTUATION_CHARS:
                self._emit(TokenKind.PUNCTUATION, index, 1)
                index += 1
            else:
                self._fail(LexErrorKind.ILLEGAL_CHARACTER, f"Illegal character {ch!r}", index, 1)

    def _star_is_flag(self) -> bool:
        """'*' 가 플래그인지 (날짜 직후 또는 들여쓴 줄의 첫 토큰)"""
        line_tokens = self._tokens[self._line_start_index:]
        significant = [t for t in line_tokens if t.kind not in (TokenKind.INDENT, TokenKind.DEDENT)]
        if not significant:
            return True
        return len(significant) == 1 and significant[0].kind == TokenKind.DATE

    # ------------------------------------------------------------------
    # 개별 토큰
    # ------------------------------------------------------------------

    def _scan_string(self, index: int) -> int:
        line = self._line
        chars: list[str] = []
        pos = index + 1
        while pos < len(line):
            ch = line[pos]
            if ch == "\\" and pos + 1 < len(line):
                escaped = line[pos + 1]
                if escaped in Grammar.STRING_ESCAPES:
                    chars.append(Grammar.STRING_ESCAPES[escaped])
                else:
                    chars.append(ch + escaped)
                pos += 2
                continue
            if ch == '"':
                self._emit(TokenKind.STRING, index, pos + 1 - index, value="".join(chars))
                return pos + 1
            chars.append(ch)
            pos += 1

        self._fail(
            LexErrorKind.UNTERMINATED_STRING,
            "Unterminated string literal",
            index,
            len(line) - index,
        )
        return len(line)

    def _scan_number_or_date(self, index: int) -> int:
        line = self._line
        date_match = DATE_RE.match(line, index)
        if date_match:
            self._emit(TokenKind.DATE, index, date_match.end() - index)
            return date_match.end()

        run = NUMBER_RUN_RE.match(line, index).group()
        # 끝의 쉼표는 구분자 (예: {100 USD, 2020-01-01} 의 숫자 뒤 쉼표)
        literal = run.rstrip(",")
        end = index + len(literal)

        trailing = LOWER_WORD_RE.match(line, end)
        if trailing and trailing.group()[0].isalpha():
            bad = line[index:trailing.end()]
            self._fail(LexErrorKind.INVALID_NUMBER, f"Invalid numeric literal {bad!r}", index, len(bad))

        if not NUMBER_RE.match(literal):
            self._fail(
                LexErrorKind.INVALID_NUMBER,
                f"Invalid numeric literal {literal!r}",
                index,
                len(literal),
            )

        self._emit(TokenKind.NUMBER, index, len(literal), value=literal.replace(",", ""))
        return end

    def _scan_upper_word(self, index: int) -> int:
        word = UPPER_WORD_RE.match(self._line, index).group()

        if ":" in word:
            self._emit(TokenKind.ACCOUNT, index, len(word), value=word)
        elif word in Grammar.BOOL_LITERALS:
            self._emit(TokenKind.BOOL, index, len(word), value=Grammar.BOOL_LITERALS[word])
        elif CURRENCY_RE.match(word):
            self._emit(TokenKind.CURRENCY, index, len(word), value=word)
        else:
            self._fail(
                LexErrorKind.ILLEGAL_CHARACTER,
                f"Invalid token {word!r} (not an account or currency)",
                index,
                len(word),
            )
        return index + len(word)

    def _scan_lower_word(self, index: int) -> int:
        line = self._line
        word = LOWER_WORD_RE.match(line, index).group()
        end = index + len(word)

        if end < len(line) and line[end] == ":" and word[0].islower():
            # 메타데이터 키 (콜론까지 소비)
            self._emit(TokenKind.META_KEY, index, len(word) + 1, value=word)
            return end + 1
        if word in Grammar.BOOL_LITERALS:
            self._emit(TokenKind.BOOL, index, len(word), value=Grammar.BOOL_LITERALS[word])
        else:
            self._emit(TokenKind.KEYWORD, index, len(word), value=word)
        return end

    def _scan_prefixed(self, index: int, kind: TokenKind, allow_flag: bool) -> int:
        match = TAG_NAME_RE.match(self._line, index + 1)
        if match:
            name = match.group()
            self._emit(kind, index, len(name) + 1, value=name)
            return match.end()
        if allow_flag:
            self._emit(TokenKind.FLAG, index, 1, value=self._line[index])
            return index + 1
        self._fail(LexErrorKind.ILLEGAL_CHARACTER, f"Empty {kind.value.lower()} name", index, 1)
        return index + 1

    # ------------------------------------------------------------------
    # 공통
    # ------------------------------------------------------------------

    def _span(self, column_index: int, length: int) -> SourceSpan:
        prefix = self._line[:column_index]
        byte_index = column_index if prefix.isascii() else len(prefix.encode("utf-8"))
        return SourceSpan(
            line=self._line_no,
            column=column_index + 1,
            offset=self._line_offset + byte_index,
            length=length,
        )

    def _emit(self, kind: TokenKind, column_index: int, length: int, value: object = None) -> None:
        text = self._line[column_index:column_index + length]
        self._tokens.append(Token(kind, text, self._span(column_index, length), value))

    def _fail(self, kind: LexErrorKind, message: str, column_index: int, length: int) -> None:
        error = LexError(kind, message, self._span(column_index, length))
        self._errors.append(error)
        logger.debug(f"어휘 오류: {error}")
        raise _LineAbort()


def tokenize(
    text: str,
    tab_width: int = Defaults.TAB_WIDTH,
) -> tuple[list[Token], list[LexError]]:
    """텍스트 → (토큰 목록, LexError 목록)

    Args:
        text: 원장 텍스트
        tab_width: 탭 확장 폭

    Returns:
        (토큰 목록, LexError 목록) - 토큰은 항상 EOF 로 끝남
    """
    return Lexer(text, tab_width=tab_width).tokenize()

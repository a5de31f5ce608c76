"""
설정 로더

beanledger.yaml 로드 및 파서/렌더러 설정 생성
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

import yaml

from beanledger.constants import Defaults, Grammar, Paths


@dataclass(frozen=True)
class ToleranceConfig:
    """균형 허용 오차 정책

    infer_from_precision 이 True 이면 통화별로 거래에 쓰인 가장 작은 자릿수에서
    오차를 추론 (multiplier * 10^exponent). False 이면 default 고정값 사용.
    per_currency 에 지정된 통화는 항상 해당 값을 사용.
    """

    default: Decimal = Defaults.TOLERANCE
    infer_from_precision: bool = Defaults.INFER_TOLERANCE
    multiplier: Decimal = Defaults.TOLERANCE_MULTIPLIER
    per_currency: Mapping[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class RenderConfig:
    """렌더링 설정"""

    indent: int = Defaults.INDENT
    # 포스팅 금액이 시작하는 최소 열 (None 이면 거래 내 가장 긴 계정 기준)
    amount_column: int | None = None


@dataclass(frozen=True)
class LedgerConfig:
    """원장 처리 설정 (불변)"""

    tolerance: ToleranceConfig = field(default_factory=ToleranceConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    root_names: Mapping[str, str] = field(default_factory=lambda: dict(Grammar.ROOT_NAMES))

    @classmethod
    def default(cls) -> "LedgerConfig":
        """파일 없이 기본 설정 생성"""
        return cls()


class ConfigLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


def _to_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, float):
        # YAML 의 0.005 는 float 로 읽히므로 문자열 경유로 변환
        value = repr(value)
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ConfigLoadError(f"'{name}' 값이 숫자가 아닙니다: {value!r}") from e


def _parse_tolerance(data: Mapping[str, Any]) -> ToleranceConfig:
    per_currency_raw = data.get("per_currency") or {}
    if not isinstance(per_currency_raw, Mapping):
        raise ConfigLoadError("tolerance.per_currency 는 매핑이어야 합니다")

    per_currency = {
        str(currency): _to_decimal(value, f"tolerance.per_currency.{currency}")
        for currency, value in per_currency_raw.items()
    }
    return ToleranceConfig(
        default=_to_decimal(data.get("default", Defaults.TOLERANCE), "tolerance.default"),
        infer_from_precision=bool(data.get("infer_from_precision", Defaults.INFER_TOLERANCE)),
        multiplier=_to_decimal(
            data.get("multiplier", Defaults.TOLERANCE_MULTIPLIER), "tolerance.multiplier"
        ),
        per_currency=per_currency,
    )


def _parse_render(data: Mapping[str, Any]) -> RenderConfig:
    indent = data.get("indent", Defaults.INDENT)
    if not isinstance(indent, int) or isinstance(indent, bool) or indent < 1:
        raise ConfigLoadError(f"render.indent 는 1 이상의 정수여야 합니다: {indent!r}")

    amount_column = data.get("amount_column")
    if amount_column is not None and (
        not isinstance(amount_column, int) or amount_column < 1
    ):
        raise ConfigLoadError(
            f"render.amount_column 은 양의 정수여야 합니다: {amount_column!r}"
        )
    return RenderConfig(indent=indent, amount_column=amount_column)


def _parse_root_names(data: Mapping[str, Any]) -> dict[str, str]:
    root_names = dict(Grammar.ROOT_NAMES)
    for key, value in (data.get("root_names") or {}).items():
        if key not in root_names:
            valid_keys = list(Grammar.ROOT_NAMES)
            raise ConfigLoadError(
                f"알 수 없는 루트 계정 유형입니다: '{key}'. 유효한 값: {valid_keys}"
            )
        if not isinstance(value, str) or not value[:1].isupper():
            raise ConfigLoadError(f"루트 계정 이름은 대문자로 시작해야 합니다: {value!r}")
        root_names[key] = value
    return root_names


def parse_config(data: Mapping[str, Any] | None) -> LedgerConfig:
    """YAML 에서 읽은 매핑 → LedgerConfig

    Args:
        data: 설정 매핑 (None 이면 기본값)

    Returns:
        LedgerConfig 인스턴스

    Raises:
        ConfigLoadError: 형식이 잘못된 경우
    """
    if data is None:
        return LedgerConfig.default()
    if not isinstance(data, Mapping):
        raise ConfigLoadError("설정 파일의 최상위는 매핑이어야 합니다")

    return LedgerConfig(
        tolerance=_parse_tolerance(data.get("tolerance") or {}),
        render=_parse_render(data.get("render") or {}),
        root_names=_parse_root_names(data.get("accounts") or {}),
    )


def load_config(path: Path | None = None) -> LedgerConfig:
    """beanledger.yaml 파일 로드

    Args:
        path: 설정 파일 경로 (None이면 기본 경로 사용)

    Returns:
        LedgerConfig 인스턴스

    Raises:
        ConfigLoadError: 파일이 없거나 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.CONFIG_FILE

    if not path.exists():
        raise ConfigLoadError(f"설정 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"설정 파일 파싱 실패: {e}") from e

    return parse_config(data)

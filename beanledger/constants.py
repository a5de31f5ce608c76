"""
하드코딩 상수 - 문법으로 고정된 값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from decimal import Decimal
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: beanledger/constants.py → 프로젝트/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    # 균형 허용 오차
    TOLERANCE: Decimal = Decimal("0.005")
    TOLERANCE_MULTIPLIER: Decimal = Decimal("0.5")  # 추론 오차 = 0.5 * 마지막 자리
    INFER_TOLERANCE: bool = True

    # 렌더링
    INDENT: int = 2
    TAB_WIDTH: int = 4


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    CONFIG_FILE: Path = CONFIG_DIR / "beanledger.yaml"


class Grammar:
    """원장 문법 상수"""

    # 계정 루트 기본 이름 (option "name_assets" 등으로 변경 가능)
    ROOT_NAMES: dict[str, str] = {
        "assets": "Assets",
        "liabilities": "Liabilities",
        "equity": "Equity",
        "income": "Income",
        "expenses": "Expenses",
    }

    # 문자열 이스케이프 (렌더링 시 역변환)
    STRING_ESCAPES: dict[str, str] = {
        '"': '"',
        "\\": "\\",
    }

    BOOL_LITERALS: dict[str, bool] = {
        "TRUE": True,
        "True": True,
        "true": True,
        "FALSE": False,
        "False": False,
        "false": False,
    }

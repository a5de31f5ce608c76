"""
pytest 공통 fixture 정의

임시 디렉토리, 설정 파일, 샘플 원장 텍스트
"""

import tempfile
from pathlib import Path

import pytest


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_config_file(temp_dir: Path) -> Path:
    """테스트용 beanledger.yaml 파일 생성"""
    config_content = """# 테스트용 beanledger.yaml
tolerance:
  default: 0.01
  infer_from_precision: false
  multiplier: "0.5"
  per_currency:
    JPY: 1

render:
  indent: 4
  amount_column: 40

accounts:
  root_names:
    assets: Actifs
"""
    config_path = temp_dir / "beanledger.yaml"
    config_path.write_text(config_content, encoding="utf-8")
    return config_path


@pytest.fixture
def temp_config_file_invalid_root(temp_dir: Path) -> Path:
    """알 수 없는 루트 계정 유형이 있는 설정 파일"""
    config_content = """accounts:
  root_names:
    savings: Savings
"""
    config_path = temp_dir / "beanledger_invalid.yaml"
    config_path.write_text(config_content, encoding="utf-8")
    return config_path


@pytest.fixture
def sample_ledger_text() -> str:
    """오류 없는 샘플 원장"""
    return """option "title" "Personal"

; Accounts
2020-01-01 open Assets:Cash USD
2020-01-01 open Assets:Broker
2020-01-01 open Expenses:Food
2020-01-01 open Equity:Opening

2020-01-01 pad Assets:Cash Equity:Opening

2020-01-02 balance Assets:Cash  100.00 USD

2020-01-03 * "Store" "Lunch" #food ^receipt-1
  category: "meals"
  Assets:Cash  -10.00 USD
    receipt: TRUE
  Expenses:Food

2020-01-04 * "Buy stock"
  Assets:Broker  10 HOOL {5.00 USD}
  Assets:Cash  -50.00 USD

2020-01-05 balance Assets:Cash  40.00 USD
2020-01-05 price HOOL 5.10 USD
2020-01-06 note Assets:Cash "Checked the wallet"
2020-01-07 event "location" "Seoul"
2020-01-08 commodity HOOL
2020-01-09 document Assets:Cash "receipts/2020-01.pdf"
2020-01-10 query "cash" "SELECT account WHERE account ~ 'Cash'"
2020-01-11 custom "budget" Expenses:Food "monthly" 200.00 USD
2020-12-31 close Assets:Broker
"""

"""설정 로딩"""

from beanledger.config.loader import (
    ConfigLoadError,
    LedgerConfig,
    RenderConfig,
    ToleranceConfig,
    load_config,
    parse_config,
)

__all__ = [
    "ConfigLoadError",
    "LedgerConfig",
    "RenderConfig",
    "ToleranceConfig",
    "load_config",
    "parse_config",
]

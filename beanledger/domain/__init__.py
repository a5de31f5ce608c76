"""
Domain 모듈

Builder 단계 순서를 관리하는 상태 머신
"""

from beanledger.domain.state_machines import (
    BuilderStageMachine,
    StateMachine,
    StateMachineError,
)

__all__ = [
    "BuilderStageMachine",
    "StateMachine",
    "StateMachineError",
]

"""
State Machines

Builder 의 필수 단계(stage) 순서를 상태 전이로 관리.
예: BalanceBuilder 는 NEW → date → account → amount 순서로만 진행 가능.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class StateMachineError(Exception):
    """상태 전이 오류"""
    pass


class StateMachine:
    """상태 머신 기본 클래스

    Args:
        initial_state: 초기 상태
        transitions: 허용된 전이 정의 {from_state: [to_states]}
        name: 머신 이름 (로깅용)
    """

    def __init__(
        self,
        initial_state: str | Enum,
        transitions: dict[str, list[str]],
        name: str = "StateMachine",
    ):
        self._state = initial_state.value if isinstance(initial_state, Enum) else initial_state
        self._transitions = transitions
        self._name = name

    @property
    def state(self) -> str:
        """현재 상태"""
        return self._state

    def can_transition(self, to_state: str | Enum) -> bool:
        """전이 가능 여부 확인

        Args:
            to_state: 목표 상태

        Returns:
            전이 가능 여부
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state
        allowed = self._transitions.get(self._state, [])
        return target in allowed

    def transition(self, to_state: str | Enum) -> str:
        """상태 전이

        Args:
            to_state: 목표 상태

        Returns:
            새 상태

        Raises:
            StateMachineError: 허용되지 않은 전이
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state

        if not self.can_transition(target):
            allowed = self._transitions.get(self._state, [])
            raise StateMachineError(
                f"{self._name}: Cannot transition from {self._state} to {target}. "
                f"Allowed: {allowed}"
            )

        old_state = self._state
        self._state = target

        logger.debug(
            f"{self._name}: {old_state} → {target}",
        )

        return target


class BuilderStageMachine(StateMachine):
    """Builder 필수 단계 상태 머신

    필수 단계를 선언 순서대로만 완료할 수 있다.
    이미 완료한 단계를 다시 설정하는 것은 허용 (값 덮어쓰기, 전이 없음).

    Args:
        entity: 생성 대상 이름 (오류 메시지용)
        stages: 필수 단계 이름 (순서대로)
    """

    INITIAL_STATE = "NEW"

    def __init__(self, entity: str, stages: tuple[str, ...]):
        transitions: dict[str, list[str]] = {}
        previous = self.INITIAL_STATE
        for stage in stages:
            transitions[previous] = [stage]
            previous = stage

        super().__init__(
            initial_state=self.INITIAL_STATE,
            transitions=transitions,
            name=f"{entity}Builder",
        )
        self._entity = entity
        self._stages = stages

    @property
    def entity(self) -> str:
        """생성 대상 이름"""
        return self._entity

    @property
    def completed(self) -> tuple[str, ...]:
        """완료된 단계"""
        if self._state == self.INITIAL_STATE:
            return ()
        return self._stages[: self._stages.index(self._state) + 1]

    @property
    def next_stage(self) -> str | None:
        """다음에 완료해야 할 단계 (모두 완료 시 None)"""
        done = len(self.completed)
        if done >= len(self._stages):
            return None
        return self._stages[done]

    @property
    def is_complete(self) -> bool:
        """필수 단계 모두 완료 여부"""
        return self.next_stage is None

    def complete(self, stage: str) -> None:
        """단계 완료 처리

        Raises:
            StateMachineError: 선행 단계를 건너뛴 경우
        """
        if stage in self.completed:
            return
        if stage not in self._stages:
            # 선택 단계는 순서 제약 없음
            return
        self.transition(stage)

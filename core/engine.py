"""다단계 스캔 검증 엔진

검사는 아래 순서대로 실행되며 첫 번째 실패에서 멈춥니다.
어떤 거부 문구가 나오는지가 이 순서에 달려 있으므로 순서를 바꾸지 않습니다.

    1. 모델 선택 / 작업자 지정
    2. 이전 공정 완료 여부 (공정 2 이상)
    3. 측정값
    4. 보조 필드
    5. 코드 규칙
    6. 현재 공정 중복
"""

from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Sequence

from core.models import ScanAttempt, ScanRecord, StageConfig
from core.outcome import Accepted, Outcome, Rejected, RejectionKind
from core.rules import check_code_rules, check_fields, check_measurement


@dataclass(frozen=True)
class EvaluationContext:
    """검사 함수들이 공유하는 읽기 전용 입력"""
    attempt: ScanAttempt
    stage: StageConfig
    employee_id: Optional[str]
    ledger: Mapping[str, int]
    history: Sequence[ScanRecord]
    stages: Sequence[StageConfig] = ()

    def progress(self) -> int:
        return self.ledger.get(self.attempt.code, 0) or 0

    def stage_name(self, stage_id: int) -> str:
        for stage in self.stages:
            if stage.id == stage_id:
                return stage.display_name
        return f"공정 {stage_id}"


Validator = Callable[[EvaluationContext], Optional[Rejected]]


def check_model_selected(ctx: EvaluationContext) -> Optional[Rejected]:
    if not (ctx.attempt.model_name or "").strip():
        return Rejected(RejectionKind.NO_MODEL, "모델이 선택되지 않았습니다. (상단에서 모델을 선택하세요)")
    return None


def check_employee_bound(ctx: EvaluationContext) -> Optional[Rejected]:
    if not (ctx.employee_id or "").strip():
        return Rejected(RejectionKind.NO_EMPLOYEE, "이 공정의 작업자가 지정되지 않았습니다.")
    return None


def check_sequence(ctx: EvaluationContext) -> Optional[Rejected]:
    target = ctx.attempt.stage
    if target <= 1:
        return None
    required = target - 1
    if ctx.progress() < required:
        return Rejected(RejectionKind.SEQUENCE_VIOLATION,
                        f"공정 순서 오류: 이 코드는 '{ctx.stage_name(required)}'을(를) 완료하지 않았습니다.",
                        stage_id=required)
    return None


def check_stage_measurement(ctx: EvaluationContext) -> Optional[Rejected]:
    return check_measurement(ctx.stage, ctx.attempt.measurement)


def check_stage_fields(ctx: EvaluationContext) -> Optional[Rejected]:
    return check_fields(ctx.stage, ctx.attempt.aux_values)


def check_stage_code_rules(ctx: EvaluationContext) -> Optional[Rejected]:
    return check_code_rules(ctx.stage, ctx.attempt.code)


def check_duplicate(ctx: EvaluationContext) -> Optional[Rejected]:
    if ctx.progress() >= ctx.attempt.stage:
        return Rejected(RejectionKind.DUPLICATE, "이미 이 공정에서 정상 처리된 코드입니다.")
    return None


DEFAULT_VALIDATORS: List[Validator] = [
    check_model_selected,
    check_employee_bound,
    check_sequence,
    check_stage_measurement,
    check_stage_fields,
    check_stage_code_rules,
    check_duplicate,
]


class ValidationEngine:
    """검사 함수 목록을 순서대로 실행해 판정 결과를 만듭니다. 입력은 변경하지 않습니다."""

    def __init__(self, validators: Optional[Sequence[Validator]] = None):
        self.validators: List[Validator] = list(validators if validators is not None else DEFAULT_VALIDATORS)

    def evaluate(self, attempt: ScanAttempt, stage: StageConfig, employee_id: Optional[str],
                 ledger: Mapping[str, int], history: Sequence[ScanRecord],
                 stages: Sequence[StageConfig] = ()) -> Outcome:
        ctx = EvaluationContext(attempt=attempt, stage=stage, employee_id=employee_id,
                                ledger=ledger, history=history, stages=stages)
        for validator in self.validators:
            rejection = validator(ctx)
            if rejection is not None:
                return rejection

        measurement = (attempt.measurement or "").strip() if stage.measurement.enabled else None
        return Accepted(measurement=measurement, aux_values=tuple(attempt.aux_values))


_default_engine = ValidationEngine()


def evaluate(attempt: ScanAttempt, stage: StageConfig, employee_id: Optional[str],
             ledger: Mapping[str, int], history: Sequence[ScanRecord],
             stages: Sequence[StageConfig] = ()) -> Outcome:
    """기본 검사 순서로 스캔 한 건을 판정합니다."""
    return _default_engine.evaluate(attempt, stage, employee_id, ledger, history, stages)

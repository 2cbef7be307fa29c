"""스캔 세션 관리 모듈

진행 대장(ProgressLedger)과 스캔 이력(ScanHistory)은 세션이 소유하며
apply()에서만 변경됩니다. 검증 엔진은 이 둘을 읽기만 합니다.
"""

import datetime
from collections.abc import Mapping
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from core.engine import ValidationEngine
from core.models import (DEFAULT_STAGES, FIELD_SLOT_COUNT, ScanAttempt, ScanRecord, ScanStatus,
                         StageConfig, StationState)
from core.outcome import Accepted, Outcome
from utils.exceptions import SessionError


class ProgressLedger(Mapping):
    """제품 코드별로 정상 완료한 가장 높은 공정 번호를 기록합니다."""

    def __init__(self, progress: Optional[Dict[str, int]] = None):
        self._progress: Dict[str, int] = dict(progress or {})

    def __getitem__(self, code: str) -> int:
        return self._progress[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._progress)

    def __len__(self) -> int:
        return len(self._progress)

    def advance(self, code: str, stage_id: int) -> int:
        """완료 공정을 갱신합니다. 이미 더 높은 공정을 완료했다면 그대로 둡니다."""
        current = self._progress.get(code, 0)
        self._progress[code] = max(current, stage_id)
        return self._progress[code]

    def clear(self):
        self._progress.clear()

    def to_dict(self) -> Dict[str, int]:
        return dict(self._progress)


class ScanHistory:
    """스캔 이력. 생성 순서로 보관하고 화면에는 최신순으로 보여줍니다."""

    def __init__(self, records: Optional[Sequence[ScanRecord]] = None):
        self._records: List[ScanRecord] = sorted(records or [], key=lambda r: r.seq)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ScanRecord]:
        return iter(self._records)

    def __getitem__(self, index):
        return self._records[index]

    def next_sequence(self) -> int:
        return len(self._records) + 1

    def append(self, record: ScanRecord):
        self._records.append(record)

    def newest_first(self) -> List[ScanRecord]:
        return list(reversed(self._records))

    def clear(self):
        self._records.clear()


class ScanSession:
    """공정 설정, 현재 공정/작업자 선택 상태, 진행 대장, 이력을 묶어 관리합니다."""

    def __init__(self, stages: Optional[Sequence[StageConfig]] = None,
                 state: Optional[StationState] = None,
                 ledger: Optional[ProgressLedger] = None,
                 history: Optional[ScanHistory] = None,
                 engine: Optional[ValidationEngine] = None):
        self.stages: List[StageConfig] = sorted(stages if stages is not None else DEFAULT_STAGES,
                                                key=lambda s: s.id)
        if not self.stages:
            raise SessionError("공정 설정이 비어 있습니다.")
        self.state = state or StationState(active_stage=self.stages[0].id)
        self.ledger = ledger if ledger is not None else ProgressLedger()
        self.history = history if history is not None else ScanHistory()
        self.engine = engine or ValidationEngine()
        if self.find_stage(self.state.active_stage) is None:
            self.state.active_stage = self.stages[0].id

    # ------------------------------------------------------------------
    # 공정 / 작업자 / 모델 선택
    # ------------------------------------------------------------------
    def find_stage(self, stage_id: int) -> Optional[StageConfig]:
        return next((s for s in self.stages if s.id == stage_id), None)

    @property
    def active_stage(self) -> StageConfig:
        return self.find_stage(self.state.active_stage) or self.stages[0]

    @property
    def active_employee(self) -> Optional[str]:
        return self.state.employee_for(self.state.active_stage)

    def select_stage(self, stage_id: int) -> StageConfig:
        """현재 공정을 바꿉니다. 진행 대장과 이력은 그대로 유지됩니다."""
        stage = self.find_stage(stage_id)
        if stage is None:
            raise SessionError(f"존재하지 않는 공정입니다: {stage_id}")
        self.state.active_stage = stage.id
        return stage

    def bind_employee(self, employee_id: str) -> bool:
        employee_id = (employee_id or "").strip()
        if not employee_id:
            return False
        self.state.bindings[self.state.active_stage] = employee_id
        return True

    def select_model(self, model_name: str):
        self.state.model_name = (model_name or "").strip()

    def set_available_models(self, models: Sequence[str]):
        cleaned = []
        for model in models:
            name = (model or "").strip()
            if name and name not in cleaned:
                cleaned.append(name)
        self.state.available_models = cleaned

    def replace_stages(self, stages: Sequence[StageConfig]):
        """공정 설정을 교체합니다. 데이터(진행 대장/이력)와 작업자 지정은 유지됩니다."""
        if not stages:
            raise SessionError("공정 설정이 비어 있습니다.")
        self.stages = sorted(stages, key=lambda s: s.id)
        if self.find_stage(self.state.active_stage) is None:
            self.state.active_stage = self.stages[0].id

    # ------------------------------------------------------------------
    # 스캔 처리
    # ------------------------------------------------------------------
    def build_attempt(self, code: str, measurement: str = "",
                      aux_values: Optional[Sequence[str]] = None) -> ScanAttempt:
        values = tuple(aux_values) if aux_values is not None else ("",) * FIELD_SLOT_COUNT
        return ScanAttempt(
            code=code.strip(),
            stage=self.state.active_stage,
            employee_id=self.active_employee or "",
            model_name=self.state.model_name,
            measurement=measurement or "",
            aux_values=values,
        )

    def evaluate(self, attempt: ScanAttempt) -> Outcome:
        stage = self.find_stage(attempt.stage) or self.active_stage
        employee_id = self.state.employee_for(attempt.stage)
        return self.engine.evaluate(attempt, stage, employee_id, self.ledger, self.history, self.stages)

    def apply(self, attempt: ScanAttempt, outcome: Outcome,
              now: Optional[datetime.datetime] = None) -> ScanRecord:
        """판정 결과를 이력과 진행 대장에 한 번에 반영합니다.

        거부된 스캔도 순번을 하나 사용합니다. 진행 대장은 정상 판정일 때만 바뀝니다.
        """
        timestamp = (now or datetime.datetime.now()).isoformat()
        common = dict(
            seq=self.history.next_sequence(),
            code=attempt.code,
            stage=attempt.stage,
            employee_id=attempt.employee_id,
            timestamp=timestamp,
            model_name=attempt.model_name,
        )

        if isinstance(outcome, Accepted):
            record = ScanRecord(status=ScanStatus.VALID, note="정상 처리",
                                measurement=outcome.measurement, aux_values=outcome.aux_values, **common)
            self.ledger.advance(attempt.code, attempt.stage)
        elif outcome.status == ScanStatus.DEFECT:
            stage = self.find_stage(attempt.stage)
            measurement = attempt.measurement.strip() if stage and stage.measurement.enabled else None
            record = ScanRecord(status=ScanStatus.DEFECT, note=outcome.reason,
                                measurement=measurement, aux_values=attempt.aux_values, **common)
        else:
            record = ScanRecord(status=ScanStatus.ERROR, note=outcome.reason, **common)

        self.history.append(record)
        return record

    def scan(self, code: str, measurement: str = "", aux_values: Optional[Sequence[str]] = None,
             now: Optional[datetime.datetime] = None) -> Optional[Tuple[Outcome, ScanRecord]]:
        """스캔 한 건을 판정하고 반영합니다. 빈 코드는 무시하고 None을 반환합니다."""
        if not (code or "").strip():
            return None
        attempt = self.build_attempt(code, measurement, aux_values)
        outcome = self.evaluate(attempt)
        record = self.apply(attempt, outcome, now=now)
        return outcome, record

    def reset(self):
        """진행 대장과 이력만 비웁니다. 공정 설정과 작업자 지정은 유지됩니다."""
        self.ledger.clear()
        self.history.clear()

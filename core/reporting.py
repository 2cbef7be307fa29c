"""보고서/통계 계산 모듈

이력과 공정 설정만으로 집계합니다. 각 이력 행의 동적 열(측정값/보조 필드)은
현재 선택된 공정이 아니라 그 이력이 기록된 공정(record.stage)의 설정으로 해석합니다.
"""

import datetime
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from core.models import ScanRecord, ScanStatus, StageConfig, StatusLabels

BASE_COLUMNS = ["순번", "시간", "공정", "제품 코드", "모델명"]
END_COLUMNS = ["작업자", "상태", "비고"]


@dataclass
class StageStats:
    valid: int = 0
    defect: int = 0
    error: int = 0

    @property
    def total(self) -> int:
        return self.valid + self.defect + self.error


@dataclass
class InventoryRow:
    model: str
    input_count: int
    output_count: int

    @property
    def remaining(self) -> int:
        return self.input_count - self.output_count


def stage_stats(history: Iterable[ScanRecord], stage_id: int) -> StageStats:
    stats = StageStats()
    for record in history:
        if record.stage != stage_id:
            continue
        if record.status == ScanStatus.VALID:
            stats.valid += 1
        elif record.status == ScanStatus.DEFECT:
            stats.defect += 1
        else:
            stats.error += 1
    return stats


def pending_count(ledger: Mapping[str, int], stage_id: int) -> int:
    """이전 공정까지 마치고 이 공정을 기다리는 제품 수"""
    if stage_id <= 1:
        return 0
    return sum(1 for progress in ledger.values() if progress == stage_id - 1)


def dynamic_headers(stages: Sequence[StageConfig]) -> List[str]:
    """공정 순서대로 측정값 라벨과 활성 필드 라벨을 중복 없이 모읍니다."""
    headers: List[str] = []
    for stage in sorted(stages, key=lambda s: s.id):
        if stage.measurement.enabled:
            label = stage.measurement.label.strip()
            if label and label not in headers:
                headers.append(label)
        for _, slot in stage.active_fields():
            label = slot.label.strip()
            if label not in headers:
                headers.append(label)
    return headers


def format_timestamp(timestamp: str) -> str:
    try:
        return datetime.datetime.fromisoformat(timestamp).strftime('%Y-%m-%d %H:%M:%S')
    except (TypeError, ValueError):
        return timestamp or ""


def _dynamic_value(record: ScanRecord, stage: Optional[StageConfig], header: str) -> str:
    if stage is None:
        return ""
    if stage.measurement.enabled and stage.measurement.label.strip() == header:
        return record.measurement or ""
    for idx, slot in enumerate(stage.fields):
        if slot.label.strip() == header:
            if record.aux_values and idx < len(record.aux_values):
                return record.aux_values[idx] or ""
            return ""
    return ""


def detail_columns(stages: Sequence[StageConfig]) -> List[str]:
    return BASE_COLUMNS + dynamic_headers(stages) + END_COLUMNS


def detail_rows(history: Iterable[ScanRecord], stages: Sequence[StageConfig]) -> List[Dict[str, object]]:
    """내보내기용 상세 행 목록 (최신순)"""
    stage_map = {stage.id: stage for stage in stages}
    headers = dynamic_headers(stages)
    ordered = sorted(history, key=lambda r: (r.timestamp, r.seq), reverse=True)

    rows = []
    for index, record in enumerate(ordered):
        stage = stage_map.get(record.stage)
        labels = stage.status_labels if stage else StatusLabels()
        row: Dict[str, object] = {
            "순번": index + 1,
            "시간": format_timestamp(record.timestamp),
            "공정": stage.display_name if stage else f"공정 {record.stage}",
            "제품 코드": record.code,
            "모델명": record.model_name,
        }
        for header in headers:
            row[header] = _dynamic_value(record, stage, header)
        row["작업자"] = record.employee_id
        row["상태"] = labels.label_for(record.status)
        row["비고"] = record.note
        rows.append(row)
    return rows


def inventory_summary(history: Iterable[ScanRecord], stages: Sequence[StageConfig]) -> List[InventoryRow]:
    """모델별로 첫 공정 입고 수량과 마지막 공정 출고 수량을 집계합니다."""
    if not stages:
        return []
    ordered_ids = sorted(stage.id for stage in stages)
    first_id, last_id = ordered_ids[0], ordered_ids[-1]

    inputs: Dict[str, set] = {}
    outputs: Dict[str, set] = {}
    for record in history:
        if record.status != ScanStatus.VALID:
            continue
        model = (record.model_name or "N/A").strip().upper() or "N/A"
        inputs.setdefault(model, set())
        outputs.setdefault(model, set())
        if record.stage == first_id:
            inputs[model].add(record.code)
        if record.stage == last_id and last_id != first_id:
            outputs[model].add(record.code)

    return [InventoryRow(model=model, input_count=len(inputs[model]), output_count=len(outputs[model]))
            for model in sorted(inputs)]

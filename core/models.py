"""데이터 모델 정의 모듈"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Optional, Any, Tuple

from utils.exceptions import ConfigurationError

# 공정마다 보조 입력 필드는 항상 8칸입니다.
FIELD_SLOT_COUNT = 8


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def fit_to_slots(values: Optional[List[Any]], filler: Any = "") -> List[Any]:
    """목록을 정확히 8칸으로 맞춥니다. (부족하면 채우고 넘치면 자름)"""
    items = list(values or [])[:FIELD_SLOT_COUNT]
    items.extend([filler] * (FIELD_SLOT_COUNT - len(items)))
    return items


class ScanStatus(str, Enum):
    """스캔 이력 한 건의 판정 상태"""
    VALID = "valid"
    DEFECT = "defect"
    ERROR = "error"


@dataclass(frozen=True)
class FieldSlot:
    """보조 입력 필드 한 칸의 설정입니다. 라벨이 비어 있으면 비활성 칸입니다."""
    label: str = ""
    default: str = ""
    whitelist: str = ""
    min: str = ""
    max: str = ""

    @property
    def is_active(self) -> bool:
        return bool(self.label.strip())

    def whitelist_tokens(self) -> List[str]:
        """허용 목록을 공백 기준으로 나누어 대문자로 반환합니다."""
        return [token.upper() for token in self.whitelist.split()]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldSlot":
        return cls(
            label=_as_text(data.get('label')),
            default=_as_text(data.get('default')),
            whitelist=_as_text(data.get('whitelist')),
            min=_as_text(data.get('min')),
            max=_as_text(data.get('max')),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            'label': self.label, 'default': self.default, 'whitelist': self.whitelist,
            'min': self.min, 'max': self.max
        }


@dataclass(frozen=True)
class MeasurementSpec:
    """공정의 측정값 입력 설정"""
    enabled: bool = False
    label: str = ""
    standard: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeasurementSpec":
        return cls(
            enabled=bool(data.get('enabled', False)),
            label=_as_text(data.get('label')),
            standard=_as_text(data.get('standard')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'enabled': self.enabled, 'label': self.label, 'standard': self.standard}


@dataclass(frozen=True)
class StatusLabels:
    """화면/보고서에 표시할 상태 문구 (판정 로직에는 영향 없음)"""
    valid: str = "OK/수리완료"
    defect: str = "NG/반품"
    error: str = "시스템 오류"

    def label_for(self, status: ScanStatus) -> str:
        if status == ScanStatus.VALID:
            return self.valid
        if status == ScanStatus.DEFECT:
            return self.defect
        return self.error

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "StatusLabels":
        if not data:
            return cls()
        defaults = cls()
        return cls(
            valid=_as_text(data.get('valid')) or defaults.valid,
            defect=_as_text(data.get('defect')) or defaults.defect,
            error=_as_text(data.get('error')) or defaults.error,
        )

    def to_dict(self) -> Dict[str, str]:
        return {'valid': self.valid, 'defect': self.defect, 'error': self.error}


@dataclass(frozen=True)
class CodeRule:
    """제품 코드 자체에 거는 추가 규칙 (포함/미포함/시작 문자열/길이)"""
    RULE_TYPES = ('contains', 'not_contains', 'starts_with', 'length_eq')

    rule_id: str = ""
    name: str = ""
    rule_type: str = "contains"
    value: str = ""
    is_active: bool = True
    error_message: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CodeRule":
        rule_type = _as_text(data.get('rule_type', data.get('type', 'contains')))
        if rule_type not in cls.RULE_TYPES:
            raise ConfigurationError(f"알 수 없는 코드 규칙 유형입니다: {rule_type}")
        return cls(
            rule_id=_as_text(data.get('rule_id', data.get('id'))),
            name=_as_text(data.get('name')),
            rule_type=rule_type,
            value=_as_text(data.get('value')),
            is_active=bool(data.get('is_active', data.get('isActive', True))),
            error_message=_as_text(data.get('error_message', data.get('errorMessage'))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rule_id': self.rule_id, 'name': self.name, 'rule_type': self.rule_type,
            'value': self.value, 'is_active': self.is_active, 'error_message': self.error_message
        }


def _empty_slots() -> Tuple[FieldSlot, ...]:
    return tuple(FieldSlot() for _ in range(FIELD_SLOT_COUNT))


@dataclass(frozen=True)
class StageConfig:
    """공정 하나의 검증 규칙입니다. 스캔 중에는 읽기 전용입니다."""
    id: int
    name: str = ""
    measurement: MeasurementSpec = field(default_factory=MeasurementSpec)
    fields: Tuple[FieldSlot, ...] = field(default_factory=_empty_slots)
    status_labels: StatusLabels = field(default_factory=StatusLabels)
    code_rules: Tuple[CodeRule, ...] = ()

    def __post_init__(self):
        if not isinstance(self.id, int) or self.id < 1:
            raise ConfigurationError(f"공정 ID는 1 이상의 정수여야 합니다: {self.id!r}")
        object.__setattr__(self, 'fields', tuple(self.fields))
        object.__setattr__(self, 'code_rules', tuple(self.code_rules))
        if len(self.fields) != FIELD_SLOT_COUNT:
            raise ConfigurationError(
                f"공정 {self.id}의 보조 필드는 {FIELD_SLOT_COUNT}칸이어야 합니다. (현재 {len(self.fields)}칸)")

    @property
    def display_name(self) -> str:
        return self.name or f"공정 {self.id}"

    def active_fields(self) -> List[Tuple[int, FieldSlot]]:
        """활성화된 필드를 (칸 번호, 설정) 목록으로 반환합니다."""
        return [(idx, slot) for idx, slot in enumerate(self.fields) if slot.is_active]

    def default_values(self) -> Tuple[str, ...]:
        return tuple(slot.default for slot in self.fields)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StageConfig":
        """저장된 설정을 읽어 8칸 구조로 정규화합니다.

        'fields' 슬롯 목록 형식과, 칸별 배열을 따로 가진 이전 형식
        (additionalFieldLabels/Defaults/ValidationLists/Mins/Maxs)을 모두 받습니다.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"공정 설정 형식이 올바르지 않습니다: {data!r}")
        try:
            stage_id = int(data['id'])
        except (KeyError, TypeError, ValueError):
            raise ConfigurationError(f"공정 ID가 올바르지 않습니다: {data.get('id')!r}")

        if isinstance(data.get('fields'), list):
            slots = tuple(
                FieldSlot.from_dict(raw if isinstance(raw, dict) else {})
                for raw in fit_to_slots(data['fields'], filler={})
            )
        else:
            labels = fit_to_slots(data.get('additionalFieldLabels'))
            defaults = fit_to_slots(data.get('additionalFieldDefaults'))
            whitelists = fit_to_slots(data.get('additionalFieldValidationLists'))
            mins = fit_to_slots(data.get('additionalFieldMins'))
            maxs = fit_to_slots(data.get('additionalFieldMaxs'))
            slots = tuple(
                FieldSlot(label=_as_text(labels[i]), default=_as_text(defaults[i]),
                          whitelist=_as_text(whitelists[i]), min=_as_text(mins[i]), max=_as_text(maxs[i]))
                for i in range(FIELD_SLOT_COUNT)
            )

        if isinstance(data.get('measurement'), dict):
            measurement = MeasurementSpec.from_dict(data['measurement'])
        else:
            measurement = MeasurementSpec(
                enabled=bool(data.get('enableMeasurement', False)),
                label=_as_text(data.get('measurementLabel')),
                standard=_as_text(data.get('measurementStandard')),
            )

        raw_rules = data.get('code_rules', data.get('validationRules')) or []
        return cls(
            id=stage_id,
            name=_as_text(data.get('name')),
            measurement=measurement,
            fields=slots,
            status_labels=StatusLabels.from_dict(data.get('status_labels', data.get('statusLabels'))),
            code_rules=tuple(CodeRule.from_dict(rule) for rule in raw_rules),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'measurement': self.measurement.to_dict(),
            'fields': [slot.to_dict() for slot in self.fields],
            'status_labels': self.status_labels.to_dict(),
            'code_rules': [rule.to_dict() for rule in self.code_rules],
        }


def _slots(*specs: Tuple[str, str]) -> Tuple[FieldSlot, ...]:
    padded = fit_to_slots(list(specs), filler=("", ""))
    return tuple(FieldSlot(label=label, default=default) for label, default in padded)


DEFAULT_STAGES: Tuple[StageConfig, ...] = (
    StageConfig(
        id=1,
        name="1. 불량 입고 (Input)",
        fields=_slots(("초기 불량/고객 신고", "")),
        status_labels=StatusLabels(valid="OK/수리완료", defect="NG/반품", error="시스템 오류"),
    ),
    StageConfig(
        id=2,
        name="2. 수리 후 출고 (Output)",
        measurement=MeasurementSpec(enabled=True, label="수리 결과", standard="OK"),
        fields=_slots(("불량 원인 1", ""), ("불량 원인 2", ""), ("불량 원인 3", ""), ("교체 부품", "")),
        status_labels=StatusLabels(valid="기준 통과", defect="재불량", error="공정 오류"),
    ),
)

DEFAULT_MODELS: Tuple[str, ...] = ("IPHONE 13", "IPHONE 14", "SAMSUNG S23")


@dataclass(frozen=True)
class ScanAttempt:
    """작업자가 입력한 스캔 한 건 (판정 전의 임시 입력)"""
    code: str
    stage: int
    employee_id: str = ""
    model_name: str = ""
    measurement: str = ""
    aux_values: Tuple[str, ...] = ("",) * FIELD_SLOT_COUNT

    def __post_init__(self):
        object.__setattr__(self, 'aux_values', tuple(_as_text(v) for v in fit_to_slots(self.aux_values)))


@dataclass(frozen=True)
class ScanRecord:
    """스캔 이력 한 건. 생성 후에는 변경하지 않습니다."""
    seq: int
    code: str
    stage: int
    employee_id: str
    timestamp: str
    status: ScanStatus
    note: str = ""
    model_name: str = ""
    measurement: Optional[str] = None
    aux_values: Optional[Tuple[str, ...]] = None
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'record_id': self.record_id,
            'seq': self.seq,
            'code': self.code,
            'stage': self.stage,
            'employee_id': self.employee_id,
            'timestamp': self.timestamp,
            'status': self.status.value,
            'note': self.note,
            'model_name': self.model_name,
            'measurement': self.measurement,
            'aux_values': list(self.aux_values) if self.aux_values is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanRecord":
        aux_values = data.get('aux_values')
        return cls(
            seq=int(data['seq']),
            code=_as_text(data.get('code')),
            stage=int(data['stage']),
            employee_id=_as_text(data.get('employee_id')),
            timestamp=_as_text(data.get('timestamp')),
            status=ScanStatus(data.get('status', ScanStatus.ERROR.value)),
            note=_as_text(data.get('note')),
            model_name=_as_text(data.get('model_name')),
            measurement=data.get('measurement'),
            aux_values=tuple(_as_text(v) for v in aux_values) if aux_values is not None else None,
            record_id=_as_text(data.get('record_id')) or str(uuid.uuid4()),
        )


@dataclass
class StationState:
    """현재 선택된 공정, 공정별 작업자, 선택된 모델을 관리합니다."""
    active_stage: int = 1
    bindings: Dict[int, str] = field(default_factory=dict)
    model_name: str = ""
    available_models: List[str] = field(default_factory=lambda: list(DEFAULT_MODELS))

    def employee_for(self, stage_id: int) -> Optional[str]:
        return self.bindings.get(stage_id) or None

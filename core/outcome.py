"""스캔 판정 결과 타입"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from core.models import ScanStatus


class RejectionKind(str, Enum):
    """거부 사유 구분. 테스트와 후속 로직은 이 값만 비교합니다."""
    NO_MODEL = "no_model"
    NO_EMPLOYEE = "no_employee"
    SEQUENCE_VIOLATION = "sequence_violation"
    MEASUREMENT_MISSING = "measurement_missing"
    MEASUREMENT_NOT_NUMERIC = "measurement_not_numeric"
    MEASUREMENT_OUT_OF_STANDARD = "measurement_out_of_standard"
    FIELD_MISSING = "field_missing"
    FIELD_NOT_WHITELISTED = "field_not_whitelisted"
    FIELD_NOT_NUMERIC = "field_not_numeric"
    FIELD_OUT_OF_RANGE = "field_out_of_range"
    CODE_RULE_VIOLATION = "code_rule_violation"
    DUPLICATE = "duplicate"


# 품질 판정(NG)에 해당하는 거부 사유. 나머지는 모두 공정/사용 오류입니다.
DEFECT_KINDS = frozenset({
    RejectionKind.MEASUREMENT_OUT_OF_STANDARD,
    RejectionKind.FIELD_OUT_OF_RANGE,
})


@dataclass(frozen=True)
class Accepted:
    """모든 검사를 통과한 스캔"""
    measurement: Optional[str]
    aux_values: Tuple[str, ...]

    is_accepted = True

    @property
    def status(self) -> ScanStatus:
        return ScanStatus.VALID


@dataclass(frozen=True)
class Rejected:
    """거부된 스캔. reason은 작업자에게 보여줄 문구입니다."""
    kind: RejectionKind
    reason: str
    field_index: Optional[int] = None
    stage_id: Optional[int] = None

    is_accepted = False

    @property
    def status(self) -> ScanStatus:
        return ScanStatus.DEFECT if self.kind in DEFECT_KINDS else ScanStatus.ERROR


Outcome = Union[Accepted, Rejected]

"""측정값/보조 필드/코드 규칙 검사 함수들

각 검사 함수는 통과하면 None, 실패하면 Rejected를 반환합니다.
입력값을 변경하지 않으며 예외를 던지지 않습니다.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from core.models import StageConfig, CodeRule
from core.outcome import Rejected, RejectionKind


# 앞부분의 십진수만 읽습니다. ("4.9mm" -> 4.9, "4_9" -> 4)
NUMBER_PREFIX = re.compile(r'[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


def parse_number(text: Optional[str]) -> Optional[Decimal]:
    """앞뒤 공백을 제거하고 첫 번째 ','를 '.'으로 바꾼 뒤 앞부분의 십진수를 읽습니다.

    단위가 붙은 값("12V")은 숫자 부분만 사용합니다. 숫자로 시작하지 않으면 None을 반환합니다.
    (NaN, Infinity도 숫자로 보지 않음)
    """
    if text is None:
        return None
    cleaned = str(text).strip().replace(',', '.', 1)
    match = NUMBER_PREFIX.match(cleaned)
    if not match:
        return None
    try:
        value = Decimal(match.group(0))
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def check_measurement(stage: StageConfig, value: Optional[str]) -> Optional[Rejected]:
    spec = stage.measurement
    if not spec.enabled:
        return None

    label = spec.label or "측정값"
    val = (value or "").strip()
    if not val:
        return Rejected(RejectionKind.MEASUREMENT_MISSING,
                        f"이 공정은 '{label}' 입력이 필요합니다.")

    standard = spec.standard.strip()
    if not standard:
        return None

    standard_number = parse_number(standard)
    if standard_number is not None:
        value_number = parse_number(val)
        if value_number is None:
            return Rejected(RejectionKind.MEASUREMENT_NOT_NUMERIC,
                            f"기준값이 숫자({standard})이므로 '{label}'에 숫자를 입력해주세요.")
        # 기준값과 같으면 불합격 (기준값 미만만 합격)
        if value_number >= standard_number:
            return Rejected(RejectionKind.MEASUREMENT_OUT_OF_STANDARD,
                            f"측정값이 기준을 초과했습니다.\n기준(최대): < {standard}\n실측: {val}")
        return None

    if val.upper() != standard.upper():
        return Rejected(RejectionKind.MEASUREMENT_OUT_OF_STANDARD,
                        f"측정 결과가 기준에 맞지 않습니다.\n기준: {standard}\n실측: {val}")
    return None


def check_fields(stage: StageConfig, values: Sequence[str]) -> Optional[Rejected]:
    """활성 필드를 칸 순서대로 검사합니다.

    빈 값은 첫 번째 활성 필드만 거부합니다. 이후 활성 필드는 비어 있어도 통과합니다.
    """
    active = stage.active_fields()
    if not active:
        return None
    first_idx = active[0][0]

    for idx, slot in active:
        field_value = (values[idx] or "").strip()
        if not field_value:
            if idx == first_idx:
                return Rejected(RejectionKind.FIELD_MISSING,
                                f"'{slot.label}' 정보가 입력되지 않았습니다.", field_index=idx)
            continue

        allowed = slot.whitelist_tokens()
        if allowed and field_value.upper() not in allowed:
            return Rejected(RejectionKind.FIELD_NOT_WHITELISTED,
                            f"'{field_value}' 값은 '{slot.label}'의 허용 목록에 없습니다.", field_index=idx)

        min_text = slot.min.strip()
        max_text = slot.max.strip()
        if min_text or max_text:
            number = parse_number(field_value)
            if number is None:
                return Rejected(RejectionKind.FIELD_NOT_NUMERIC,
                                f"'{slot.label}'에는 숫자를 입력해야 합니다.", field_index=idx)
            # 숫자로 읽을 수 없는 최소/최대 설정은 무시합니다.
            minimum = parse_number(min_text)
            if minimum is not None and number < minimum:
                return Rejected(RejectionKind.FIELD_OUT_OF_RANGE,
                                f"'{field_value}' 값이 '{slot.label}'의 최소값({min_text})보다 작습니다.",
                                field_index=idx)
            maximum = parse_number(max_text)
            if maximum is not None and number > maximum:
                return Rejected(RejectionKind.FIELD_OUT_OF_RANGE,
                                f"'{field_value}' 값이 '{slot.label}'의 최대값({max_text})보다 큽니다.",
                                field_index=idx)
    return None


def _rule_tokens(value: str):
    return [token.upper() for token in re.split(r'[\s,]+', value.strip()) if token]


def rule_passes(rule: CodeRule, code: str) -> bool:
    """코드 규칙 하나를 검사합니다. 해석할 수 없는 규칙은 통과로 봅니다."""
    code_upper = code.upper()
    if rule.rule_type == 'length_eq':
        try:
            expected = int(rule.value.strip())
        except ValueError:
            return True
        return len(code) == expected

    tokens = _rule_tokens(rule.value)
    if not tokens:
        return True
    if rule.rule_type == 'contains':
        return any(token in code_upper for token in tokens)
    if rule.rule_type == 'not_contains':
        return not any(token in code_upper for token in tokens)
    if rule.rule_type == 'starts_with':
        return any(code_upper.startswith(token) for token in tokens)
    return True


def check_code_rules(stage: StageConfig, code: str) -> Optional[Rejected]:
    for rule in stage.code_rules:
        if not rule.is_active:
            continue
        if not rule_passes(rule, code):
            reason = rule.error_message or f"코드 '{code}'가 규칙 '{rule.name or rule.rule_type}'에 맞지 않습니다."
            return Rejected(RejectionKind.CODE_RULE_VIOLATION, reason)
    return None

"""데이터 모델 테스트"""

import unittest
import sys
import os

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.models import (DEFAULT_STAGES, FIELD_SLOT_COUNT, CodeRule, FieldSlot, MeasurementSpec, ScanAttempt,
                         ScanRecord, ScanStatus, StageConfig, StationState, StatusLabels, fit_to_slots)
from utils.exceptions import ConfigurationError


class TestFieldSlot(unittest.TestCase):
    """FieldSlot 모델 테스트"""

    def test_active_requires_non_blank_label(self):
        self.assertFalse(FieldSlot().is_active)
        self.assertFalse(FieldSlot(label="   ").is_active)
        self.assertTrue(FieldSlot(label="불량 원인").is_active)

    def test_whitelist_tokens_are_uppercased(self):
        slot = FieldSlot(label="부품", whitelist="lcd  Battery\ncam")
        self.assertEqual(slot.whitelist_tokens(), ["LCD", "BATTERY", "CAM"])


class TestStageConfig(unittest.TestCase):
    """StageConfig 모델 테스트"""

    def test_default_has_eight_empty_slots(self):
        stage = StageConfig(id=3)
        self.assertEqual(len(stage.fields), FIELD_SLOT_COUNT)
        self.assertEqual(stage.active_fields(), [])
        self.assertEqual(stage.display_name, "공정 3")

    def test_wrong_slot_count_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            StageConfig(id=1, fields=(FieldSlot(label="A"),))

    def test_invalid_id_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            StageConfig(id=0)

    def test_from_dict_normalizes_flat_arrays(self):
        """이전 형식(칸별 배열)은 8칸으로 채워지거나 잘립니다"""
        stage = StageConfig.from_dict({
            'id': 2,
            'name': '출고',
            'enableMeasurement': True,
            'measurementLabel': '전압',
            'measurementStandard': '5.0',
            'additionalFieldLabels': ['원인', '', '부품'],
            'additionalFieldDefaults': ['LCD'],
            'additionalFieldValidationLists': ['LCD CAM'],
            'additionalFieldMins': [],
            'additionalFieldMaxs': ['1'] * 12,
            'statusLabels': {'valid': '통과'},
        })

        self.assertEqual(len(stage.fields), FIELD_SLOT_COUNT)
        self.assertEqual([idx for idx, _ in stage.active_fields()], [0, 2])
        self.assertEqual(stage.fields[0].default, 'LCD')
        self.assertEqual(stage.fields[0].whitelist, 'LCD CAM')
        self.assertEqual(stage.fields[7].max, '1')
        self.assertTrue(stage.measurement.enabled)
        self.assertEqual(stage.measurement.standard, '5.0')
        self.assertEqual(stage.status_labels.valid, '통과')
        self.assertEqual(stage.status_labels.defect, StatusLabels().defect)

    def test_to_dict_round_trip(self):
        for stage in DEFAULT_STAGES:
            self.assertEqual(StageConfig.from_dict(stage.to_dict()), stage)

    def test_from_dict_reads_code_rules(self):
        stage = StageConfig.from_dict({
            'id': 1,
            'validationRules': [{'id': 'r1', 'name': 'IMEI 길이', 'type': 'length_eq', 'value': '15',
                                 'isActive': True, 'errorMessage': 'IMEI는 15자리입니다'}],
        })
        self.assertEqual(len(stage.code_rules), 1)
        rule = stage.code_rules[0]
        self.assertEqual(rule.rule_type, 'length_eq')
        self.assertEqual(rule.error_message, 'IMEI는 15자리입니다')

    def test_unknown_rule_type_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            CodeRule.from_dict({'type': 'regex', 'value': '.*'})

    def test_missing_id_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            StageConfig.from_dict({'name': 'no id'})

    def test_default_values(self):
        stage = StageConfig(id=1, fields=tuple(FieldSlot(label=f"F{i}", default=str(i)) for i in range(8)))
        self.assertEqual(stage.default_values(), tuple(str(i) for i in range(8)))


class TestScanAttemptAndRecord(unittest.TestCase):
    """ScanAttempt / ScanRecord 테스트"""

    def test_attempt_aux_values_are_fit_to_eight(self):
        attempt = ScanAttempt(code="A1", stage=1, aux_values=("x", None))
        self.assertEqual(len(attempt.aux_values), FIELD_SLOT_COUNT)
        self.assertEqual(attempt.aux_values[:2], ("x", ""))

    def test_fit_to_slots_truncates(self):
        self.assertEqual(len(fit_to_slots(list(range(20)))), FIELD_SLOT_COUNT)

    def test_record_dict_round_trip(self):
        record = ScanRecord(seq=3, code="A1", stage=2, employee_id="E7", timestamp="2024-05-01T10:00:00",
                            status=ScanStatus.DEFECT, note="기준 초과", model_name="IPHONE 13",
                            measurement="5.1", aux_values=("LCD",) + ("",) * 7)
        restored = ScanRecord.from_dict(record.to_dict())
        self.assertEqual(restored, record)
        self.assertEqual(restored.status, ScanStatus.DEFECT)

    def test_record_without_optional_values(self):
        record = ScanRecord(seq=1, code="B1", stage=1, employee_id="", timestamp="2024-05-01T10:00:00",
                            status=ScanStatus.ERROR)
        data = record.to_dict()
        self.assertIsNone(data['measurement'])
        self.assertIsNone(data['aux_values'])
        self.assertIsNone(ScanRecord.from_dict(data).aux_values)


class TestStationState(unittest.TestCase):
    """StationState 테스트"""

    def test_employee_for_unbound_stage(self):
        state = StationState(bindings={1: "E1"})
        self.assertEqual(state.employee_for(1), "E1")
        self.assertIsNone(state.employee_for(2))

    def test_status_labels_lookup(self):
        labels = StatusLabels(valid="통과", defect="재불량", error="공정 오류")
        self.assertEqual(labels.label_for(ScanStatus.VALID), "통과")
        self.assertEqual(labels.label_for(ScanStatus.DEFECT), "재불량")
        self.assertEqual(labels.label_for(ScanStatus.ERROR), "공정 오류")

    def test_measurement_spec_defaults_disabled(self):
        self.assertFalse(MeasurementSpec().enabled)


if __name__ == '__main__':
    unittest.main()

"""통합 테스트 - 세션, 저장소, 내보내기, 로그 연동"""

import unittest
import tempfile
import json
import os
import shutil
import sys

import openpyxl

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.models import FieldSlot, MeasurementSpec, ScanStatus, StageConfig, StatusLabels
from core.outcome import RejectionKind
from core.reporting import pending_count, stage_stats
from utils.logger import EventLogger
from utils.spreadsheet import DETAIL_SHEET_TITLE, SUMMARY_SHEET_TITLE, export_workbook, load_whitelist
from utils.storage import StationStorage


def _fields(*slots):
    return tuple(slots) + (FieldSlot(),) * (8 - len(slots))


LINE_STAGES = [
    StageConfig(id=1, name="입고", fields=_fields(FieldSlot(label="불량 유형"))),
    StageConfig(id=2, name="검사", measurement=MeasurementSpec(enabled=True, label="전류", standard="0.5"),
                fields=_fields(FieldSlot(label="온도", min="10", max="40"))),
    StageConfig(id=3, name="출고", fields=_fields(FieldSlot(label="포장")),
                status_labels=StatusLabels(valid="출고 완료", defect="출고 보류", error="출고 오류")),
]


class TestIntegration(unittest.TestCase):
    """한 교대 근무 분량의 스캔을 처리하고 저장/복원/내보내기까지 확인"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.data_dir = os.path.join(self.temp_dir, "data")
        self.storage = StationStorage(self.data_dir)
        self.storage.save_stages(LINE_STAGES)
        self.logger = EventLogger(os.path.join(self.data_dir, "station_event_log.csv"))

    def tearDown(self):
        self.logger.stop_logger()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _scan(self, session, code, measurement="", first_field=""):
        outcome, record = session.scan(code, measurement=measurement, aux_values=[first_field] + [""] * 7)
        event = 'SCAN_ACCEPTED' if outcome.is_accepted else 'SCAN_REJECTED'
        self.logger.log_event(event, detail={'code': code, 'stage': record.stage,
                                             'kind': getattr(outcome, 'kind', None)},
                              worker=record.employee_id or 'System')
        self.storage.save_session(session)
        return outcome

    def test_full_line_flow(self):
        session = self.storage.load_session()
        self.assertEqual([s.id for s in session.stages], [1, 2, 3])
        session.select_model("GALAXY")

        session.bind_employee("W1")
        for code in ("P1", "P2", "P3"):
            self.assertTrue(self._scan(session, code, first_field="스크래치").is_accepted)

        session.select_stage(2)
        session.bind_employee("W2")
        self.assertTrue(self._scan(session, "P1", "0.42", "25").is_accepted)
        self.assertEqual(self._scan(session, "P2", "0.5", "25").kind, RejectionKind.MEASUREMENT_OUT_OF_STANDARD)
        self.assertEqual(self._scan(session, "P3", "0.1", "45").kind, RejectionKind.FIELD_OUT_OF_RANGE)
        self.assertEqual(self._scan(session, "P9", "0.1", "25").kind, RejectionKind.SEQUENCE_VIOLATION)

        session.select_stage(3)
        session.bind_employee("W3")
        self.assertTrue(self._scan(session, "P1", first_field="박스").is_accepted)
        self.assertEqual(self._scan(session, "P1", first_field="박스").kind, RejectionKind.DUPLICATE)

        # 재실행 후에도 같은 상태로 복원
        restored = StationStorage(self.data_dir).load_session()
        self.assertEqual(restored.state.active_stage, 3)
        self.assertEqual(restored.ledger.to_dict(), {"P1": 3, "P2": 1, "P3": 1})
        self.assertEqual(pending_count(restored.ledger, 2), 2)

        stats = stage_stats(restored.history, 2)
        self.assertEqual((stats.valid, stats.defect, stats.error), (1, 2, 1))
        statuses = [r.status for r in restored.history if r.stage == 3]
        self.assertEqual(statuses, [ScanStatus.VALID, ScanStatus.ERROR])

        path = os.path.join(self.temp_dir, "report.xlsx")
        export_workbook(path, restored.stages, restored.history)
        wb = openpyxl.load_workbook(path)
        detail = wb[DETAIL_SHEET_TITLE]
        header = [cell.value for cell in detail[1]]
        self.assertIn("전류", header)
        self.assertIn("온도", header)
        self.assertEqual(detail.max_row, 1 + len(restored.history))
        summary = wb[SUMMARY_SHEET_TITLE]
        self.assertEqual([cell.value for cell in summary[2]], [1, "GALAXY", 3, 1, 2])

        self.assertTrue(self.logger.flush())
        logs = self.logger.get_todays_logs()
        self.assertEqual(len(logs), len(restored.history))
        self.assertEqual(logs[-1]['detail']['kind'], RejectionKind.DUPLICATE.value)

    def test_whitelist_import_applies_to_stage(self):
        path = os.path.join(self.temp_dir, "types.xlsx")
        wb = openpyxl.Workbook()
        for value in ("스크래치", "찍힘"):
            wb.active.append([value])
        wb.save(path)

        session = self.storage.load_session()
        stage = session.find_stage(1)
        slots = list(stage.fields)
        slots[0] = FieldSlot(label=slots[0].label, whitelist=load_whitelist(path))
        updated = [StageConfig(id=s.id, name=s.name, measurement=s.measurement,
                               fields=tuple(slots) if s.id == 1 else s.fields,
                               status_labels=s.status_labels, code_rules=s.code_rules)
                   for s in session.stages]
        session.replace_stages(updated)
        self.storage.save_stages(updated)

        session.select_model("GALAXY")
        session.bind_employee("W1")
        self.assertTrue(self._scan(session, "P1", first_field="찍힘").is_accepted)
        self.assertEqual(self._scan(session, "P2", first_field="변색").kind, RejectionKind.FIELD_NOT_WHITELISTED)
        self.assertEqual(self.storage.load_stages()[0].fields[0].whitelist, "스크래치 찍힘")

    def test_reset_then_continue(self):
        session = self.storage.load_session()
        session.select_model("GALAXY")
        session.bind_employee("W1")
        self._scan(session, "P1", first_field="스크래치")

        session.reset()
        self.storage.reset_session_data()

        restored = self.storage.load_session()
        self.assertEqual(len(restored.history), 0)
        self.assertEqual(restored.state.employee_for(1), "W1")
        outcome = self._scan(restored, "P1", first_field="스크래치")
        self.assertTrue(outcome.is_accepted)
        self.assertEqual(restored.history[0].seq, 1)


class TestSystemHealth(unittest.TestCase):
    """시스템 건강성 검사"""

    def test_required_files_exist(self):
        """필수 파일들이 존재하는지 확인"""
        base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        required_files = [
            'Scan_station.py',
            'config.json',
            'pyproject.toml',
            'core/models.py',
            'core/outcome.py',
            'core/rules.py',
            'core/engine.py',
            'core/session.py',
            'core/reporting.py',
            'utils/config_manager.py',
            'utils/exceptions.py',
            'utils/file_handler.py',
            'utils/logger.py',
            'utils/sound.py',
            'utils/spreadsheet.py',
            'utils/storage.py',
            'ui/base_ui.py',
            'ui/components.py',
            'tests/run_tests.py'
        ]

        for file_path in required_files:
            full_path = os.path.join(base_dir, file_path)
            self.assertTrue(os.path.exists(full_path),
                            f"필수 파일 {file_path}이 존재하지 않습니다")

    def test_module_imports(self):
        """핵심 모듈들이 정상적으로 import되는지 확인"""
        try:
            from core.engine import ValidationEngine, evaluate
            from core.session import ScanSession, ProgressLedger, ScanHistory
            from core.reporting import detail_rows, inventory_summary
            from utils.storage import StationStorage
            from utils.spreadsheet import export_workbook, load_whitelist
            from utils.sound import SoundPlayer
            from utils.logger import EventLogger
            from utils.exceptions import ScanStationError
        except ImportError as e:
            self.fail(f"핵심 모듈 import 실패: {e}")

    def test_configuration_integrity(self):
        """설정 파일 무결성 확인"""
        base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        config_path = os.path.join(base_dir, 'config.json')

        self.assertTrue(os.path.exists(config_path), "config.json 파일이 없습니다")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except json.JSONDecodeError:
            self.fail("config.json 파일이 올바른 JSON 형식이 아닙니다")

        # 필수 설정 섹션들이 존재하는지 확인
        for section in ['app', 'station', 'sound', 'ui', 'export']:
            self.assertIn(section, config_data,
                          f"설정 파일에 {section} 섹션이 없습니다")


if __name__ == '__main__':
    unittest.main()

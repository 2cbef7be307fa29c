"""스테이션 데이터 저장소 테스트"""

import unittest
import tempfile
import json
import os
import shutil
import sys
from unittest.mock import patch

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.models import DEFAULT_MODELS, DEFAULT_STAGES, StageConfig
from core.session import ScanSession
from utils.exceptions import ConfigurationError, StorageError
from utils.storage import StationStorage


class TestStationStorage(unittest.TestCase):
    """StationStorage 클래스 테스트"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.data_dir = os.path.join(self.temp_dir, "data")
        self.storage = StationStorage(self.data_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _path(self, name):
        return os.path.join(self.data_dir, name)

    def test_first_load_uses_defaults_and_seeds_stages(self):
        session = self.storage.load_session()

        self.assertEqual(tuple(session.stages), DEFAULT_STAGES)
        self.assertEqual(session.state.available_models, list(DEFAULT_MODELS))
        self.assertEqual(len(session.history), 0)
        self.assertTrue(os.path.exists(self._path(StationStorage.STAGES_FILE)))

    def test_session_round_trip(self):
        session = self.storage.load_session()
        session.select_model("IPHONE 14")
        session.bind_employee("E1")
        session.scan("A1", aux_values=["액정"] + [""] * 7)
        session.scan("A1", aux_values=["액정"] + [""] * 7)
        session.select_stage(2)
        session.bind_employee("E2")
        self.storage.save_session(session)

        restored = StationStorage(self.data_dir).load_session()
        self.assertEqual(restored.state.active_stage, 2)
        self.assertEqual(restored.state.model_name, "IPHONE 14")
        self.assertEqual(restored.state.bindings, {1: "E1", 2: "E2"})
        self.assertEqual(restored.ledger.to_dict(), {"A1": 1})
        self.assertEqual(list(restored.history), list(session.history))
        self.assertEqual(restored.history.next_sequence(), 3)

    def test_reset_keeps_configuration_and_bindings(self):
        session = self.storage.load_session()
        session.select_model("IPHONE 13")
        session.bind_employee("E1")
        session.scan("A1", aux_values=["액정"] + [""] * 7)
        self.storage.save_session(session)
        with open(self._path(StationStorage.STAGES_FILE), 'rb') as f:
            stages_before = f.read()

        self.storage.reset_session_data()

        with open(self._path(StationStorage.STAGES_FILE), 'rb') as f:
            self.assertEqual(f.read(), stages_before)
        restored = self.storage.load_session()
        self.assertEqual(len(restored.history), 0)
        self.assertEqual(len(restored.ledger), 0)
        self.assertEqual(restored.state.bindings, {1: "E1"})
        self.assertEqual(restored.state.model_name, "IPHONE 13")

    def test_corrupt_files_fall_back_to_defaults(self):
        os.makedirs(self.data_dir)
        for name in (StationStorage.STAGES_FILE, StationStorage.HISTORY_FILE, StationStorage.PROGRESS_FILE):
            with open(self._path(name), 'w', encoding='utf-8') as f:
                f.write("{ broken")

        session = self.storage.load_session()
        self.assertEqual(tuple(session.stages), DEFAULT_STAGES)
        self.assertEqual(len(session.history), 0)
        self.assertEqual(len(session.ledger), 0)

    def test_damaged_history_entries_are_skipped(self):
        os.makedirs(self.data_dir)
        records = [
            {'seq': 1, 'code': 'A1', 'stage': 1, 'timestamp': '2024-05-01T09:00:00', 'status': 'valid'},
            {'code': 'no seq'},
            {'seq': 2, 'code': 'A2', 'stage': 1, 'timestamp': '2024-05-01T09:01:00', 'status': 'unknown'},
        ]
        with open(self._path(StationStorage.HISTORY_FILE), 'w', encoding='utf-8') as f:
            json.dump(records, f)

        history = self.storage.load_history()
        self.assertEqual([r.code for r in history], ['A1'])

    def test_malformed_stage_configuration_raises(self):
        os.makedirs(self.data_dir)
        with open(self._path(StationStorage.STAGES_FILE), 'w', encoding='utf-8') as f:
            json.dump([{'id': 'x'}], f)

        with self.assertRaises(ConfigurationError):
            self.storage.load_stages()

    def test_malformed_stages_keep_committed_history(self):
        session = self.storage.load_session()
        session.select_model("IPHONE 13")
        session.bind_employee("E1")
        session.scan("A1", aux_values=["액정"] + [""] * 7)
        self.storage.save_session(session)

        broken = [{'id': 1, 'validationRules': [{'type': 'regex'}]}]
        with open(self._path(StationStorage.STAGES_FILE), 'w', encoding='utf-8') as f:
            json.dump(broken, f)

        restored = StationStorage(self.data_dir)
        reloaded = restored.load_session()
        self.assertIsNotNone(restored.load_warning)
        self.assertEqual(tuple(reloaded.stages), DEFAULT_STAGES)
        self.assertEqual(len(reloaded.history), 1)
        self.assertEqual(reloaded.ledger.to_dict(), {"A1": 1})
        self.assertEqual(reloaded.state.bindings, {1: "E1"})

        # 다음 저장에서도 기존 이력이 남아 있어야 함
        reloaded.select_model("IPHONE 14")
        restored.save_session(reloaded)
        with open(self._path(StationStorage.HISTORY_FILE), encoding='utf-8') as f:
            self.assertEqual(len(json.load(f)), 1)
        with open(self._path(StationStorage.PROGRESS_FILE), encoding='utf-8') as f:
            self.assertEqual(json.load(f), {"A1": 1})
        with open(self._path(StationStorage.STAGES_FILE), encoding='utf-8') as f:
            self.assertEqual(json.load(f), broken)

    def test_valid_load_clears_warning(self):
        self.storage.load_session()
        self.assertIsNone(self.storage.load_warning)

    def test_null_bindings_and_models_are_skipped(self):
        os.makedirs(self.data_dir)
        with open(self._path(StationStorage.EMPLOYEES_FILE), 'w', encoding='utf-8') as f:
            json.dump({"1": None, "2": "E2", "3": "  "}, f)
        with open(self._path(StationStorage.MODELS_FILE), 'w', encoding='utf-8') as f:
            json.dump(["IPHONE 13", None], f)
        with open(self._path(StationStorage.STATE_FILE), 'w', encoding='utf-8') as f:
            json.dump({'active_stage': 1, 'model_name': None}, f)

        state = self.storage.load_station_state()
        self.assertEqual(state.bindings, {2: "E2"})
        self.assertEqual(state.available_models, ["IPHONE 13"])
        self.assertEqual(state.model_name, "")

    def test_stages_round_trip(self):
        stages = [StageConfig(id=1, name="A"), StageConfig(id=3, name="C")]
        self.storage.save_stages(stages)
        self.assertEqual(self.storage.load_stages(), stages)

    def test_write_failure_raises_storage_error(self):
        session = ScanSession()
        with patch('utils.storage.write_text_atomic', side_effect=OSError("disk full")):
            with self.assertRaises(StorageError):
                self.storage.save_session(session)

    def test_failed_write_keeps_previous_file(self):
        self.storage.save_models(["OLD"])
        with patch('os.replace', side_effect=OSError("locked")):
            with self.assertRaises(StorageError):
                self.storage.save_models(["NEW"])
        self.assertEqual(self.storage.load_models(), ["OLD"])
        leftovers = [name for name in os.listdir(self.data_dir) if name.startswith('.tmp_')]
        self.assertEqual(leftovers, [])

    def test_binding_keys_are_integers(self):
        self.storage.save_bindings({1: "E1", 2: "E2"})
        with open(self._path(StationStorage.EMPLOYEES_FILE), encoding='utf-8') as f:
            self.assertEqual(json.load(f), {"1": "E1", "2": "E2"})
        self.assertEqual(self.storage.load_bindings(), {1: "E1", 2: "E2"})


if __name__ == '__main__':
    unittest.main()

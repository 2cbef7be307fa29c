"""스테이션 데이터 저장/로드 모듈

관심사별로 JSON 파일을 하나씩 둡니다. 세션 초기화(reset)는 이력과 진행 대장만 지우며
공정 설정, 작업자 지정, 모델 목록은 건드리지 않습니다.
"""

import json
import os
from typing import Any, Dict, List, Optional, Sequence

from core.models import DEFAULT_MODELS, DEFAULT_STAGES, ScanRecord, StageConfig, StationState
from core.session import ProgressLedger, ScanHistory, ScanSession
from utils.exceptions import ConfigurationError, StorageError
from utils.file_handler import ensure_directory_exists, write_text_atomic


class StationStorage:
    """데이터 폴더 아래 JSON 파일들을 읽고 씁니다."""

    STAGES_FILE = 'stages.json'
    EMPLOYEES_FILE = 'employees.json'
    MODELS_FILE = 'models.json'
    STATE_FILE = 'station_state.json'
    HISTORY_FILE = 'history.json'
    PROGRESS_FILE = 'progress.json'

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.load_warning: Optional[str] = None

    def _path(self, filename: str) -> str:
        return os.path.join(self.data_dir, filename)

    def _read_json(self, filename: str, default: Any) -> Any:
        path = self._path(filename)
        if not os.path.exists(path):
            return default
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            print(f"데이터 파일 로드 오류 ({filename}): {e}")
            return default

    def _write_json(self, filename: str, data: Any):
        if not ensure_directory_exists(self.data_dir):
            raise StorageError(f"데이터 폴더를 만들 수 없습니다: {self.data_dir}")
        try:
            write_text_atomic(self._path(filename), json.dumps(data, ensure_ascii=False, indent=4))
        except (OSError, TypeError) as e:
            raise StorageError(f"데이터 파일 저장 오류 ({filename}): {e}") from e

    # 공정 설정 ---------------------------------------------------------
    def has_stages(self) -> bool:
        return os.path.exists(self._path(self.STAGES_FILE))

    def load_stages(self) -> List[StageConfig]:
        raw = self._read_json(self.STAGES_FILE, None)
        if not isinstance(raw, list) or not raw:
            return list(DEFAULT_STAGES)
        return [StageConfig.from_dict(item) for item in raw]

    def save_stages(self, stages: Sequence[StageConfig]):
        self._write_json(self.STAGES_FILE, [stage.to_dict() for stage in stages])

    # 작업자 / 모델 / 선택 상태 -----------------------------------------
    def load_bindings(self) -> Dict[int, str]:
        raw = self._read_json(self.EMPLOYEES_FILE, {})
        bindings: Dict[int, str] = {}
        if isinstance(raw, dict):
            for key, value in raw.items():
                if value is None or not str(value).strip():
                    continue
                try:
                    bindings[int(key)] = str(value)
                except ValueError:
                    continue
        return bindings

    def save_bindings(self, bindings: Dict[int, str]):
        self._write_json(self.EMPLOYEES_FILE, {str(k): v for k, v in bindings.items()})

    def load_models(self) -> List[str]:
        raw = self._read_json(self.MODELS_FILE, None)
        if not isinstance(raw, list):
            return list(DEFAULT_MODELS)
        return [str(model) for model in raw if model is not None]

    def save_models(self, models: Sequence[str]):
        self._write_json(self.MODELS_FILE, list(models))

    def has_station_state(self) -> bool:
        return os.path.exists(self._path(self.STATE_FILE))

    def load_station_state(self) -> StationState:
        raw = self._read_json(self.STATE_FILE, {})
        if not isinstance(raw, dict):
            raw = {}
        try:
            active_stage = int(raw.get('active_stage', 1))
        except (TypeError, ValueError):
            active_stage = 1
        return StationState(
            active_stage=active_stage,
            bindings=self.load_bindings(),
            model_name=str(raw.get('model_name') or ''),
            available_models=self.load_models(),
        )

    def save_station_state(self, state: StationState):
        self._write_json(self.STATE_FILE, {'active_stage': state.active_stage, 'model_name': state.model_name})
        self.save_bindings(state.bindings)
        self.save_models(state.available_models)

    # 이력 / 진행 대장 --------------------------------------------------
    def load_history(self) -> ScanHistory:
        raw = self._read_json(self.HISTORY_FILE, [])
        records = []
        for item in raw if isinstance(raw, list) else []:
            try:
                records.append(ScanRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                print(f"손상된 이력 항목을 건너뜁니다: {e}")
        return ScanHistory(records)

    def save_history(self, history: ScanHistory):
        self._write_json(self.HISTORY_FILE, [record.to_dict() for record in history])

    def load_progress(self) -> ProgressLedger:
        raw = self._read_json(self.PROGRESS_FILE, {})
        progress: Dict[str, int] = {}
        if isinstance(raw, dict):
            for code, stage_id in raw.items():
                try:
                    progress[str(code)] = int(stage_id)
                except (TypeError, ValueError):
                    continue
        return ProgressLedger(progress)

    def save_progress(self, ledger: ProgressLedger):
        self._write_json(self.PROGRESS_FILE, ledger.to_dict())

    # 세션 단위 ---------------------------------------------------------
    def load_session(self) -> ScanSession:
        """저장된 데이터로 세션을 복원합니다. 공정 설정 파일이 없으면 기본값으로 만들어 둡니다.

        공정 설정을 읽지 못하면 기본 공정으로 대신하고 그 사유를 load_warning 에 남깁니다.
        이력/진행 대장/선택 상태는 공정 설정과 상관없이 그대로 복원하며, 손상된 stages.json 은 덮어쓰지 않습니다.
        """
        self.load_warning = None
        try:
            stages = self.load_stages()
        except ConfigurationError as e:
            print(f"공정 설정 로드 오류, 기본 공정 사용: {e}")
            self.load_warning = f"저장된 공정 설정을 불러오지 못해 기본 공정으로 시작합니다.\n\n{e}"
            stages = list(DEFAULT_STAGES)
        else:
            if not self.has_stages():
                try:
                    self.save_stages(stages)
                except StorageError as e:
                    print(f"기본 공정 설정 저장 실패: {e}")
                    self.load_warning = str(e)

        return ScanSession(
            stages=stages,
            state=self.load_station_state(),
            ledger=self.load_progress(),
            history=self.load_history(),
        )

    def save_session(self, session: ScanSession):
        self.save_station_state(session.state)
        self.save_progress(session.ledger)
        self.save_history(session.history)

    def reset_session_data(self):
        """이력과 진행 대장 파일만 비웁니다."""
        self._write_json(self.HISTORY_FILE, [])
        self._write_json(self.PROGRESS_FILE, {})

"""설정 관리 모듈"""

import json
import os
from typing import Any, Dict, Optional


class ConfigManager:
    """애플리케이션 설정을 관리하는 클래스"""

    def __init__(self, config_file: str = "config.json", base_dir: Optional[str] = None):
        self.config_file = config_file
        # 기본 위치는 프로젝트 루트 (utils 폴더의 상위)
        self.base_dir = base_dir or os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.config = self._load_config()

    @property
    def config_path(self) -> str:
        return os.path.join(self.base_dir, self.config_file)

    def _load_config(self) -> Dict[str, Any]:
        """설정 파일을 로드합니다."""
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            return self._create_default_config()
        except (OSError, json.JSONDecodeError) as e:
            print(f"설정 파일 로드 오류: {e}")
            return self._create_default_config()

    def _create_default_config(self) -> Dict[str, Any]:
        """기본 설정을 생성합니다."""
        default_config = {
            "app": {
                "name": "Scan Station",
                "version": "v1.0.0",
                "description": "공정 스캔 검증 시스템"
            },
            "station": {
                "data_dir": "data",
                "export_dir": "exports",
                "log_file": "station_event_log.csv",
                "default_stage": 1
            },
            "sound": {
                "enabled": True,
                "volume": 0.5
            },
            "ui": {
                "window_title": "공정 스캔 스테이션",
                "window_geometry": "1400x800",
                "font": "Malgun Gothic",
                "scan_delay": 0.0
            },
            "export": {
                "file_prefix": "scan_process_data",
                "default_format": "xlsx"
            }
        }
        self.save_config(default_config)
        return default_config

    def get(self, key_path: str, default=None):
        """점 표기법으로 설정값을 가져옵니다. 예: 'station.data_dir'"""
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key_path: str, value):
        """점 표기법으로 설정값을 설정합니다."""
        keys = key_path.split('.')
        config = self.config

        for key in keys[:-1]:
            if key not in config or not isinstance(config[key], dict):
                config[key] = {}
            config = config[key]

        config[keys[-1]] = value

    def resolve_path(self, key_path: str, default: str) -> str:
        """설정된 경로가 상대 경로이면 기준 폴더 아래로 해석합니다."""
        path = self.get(key_path, default) or default
        return path if os.path.isabs(path) else os.path.join(self.base_dir, path)

    def save_config(self, config_data=None):
        """설정을 파일로 저장합니다."""
        try:
            data = config_data if config_data is not None else self.config
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=4)
        except (OSError, TypeError) as e:
            print(f"설정 파일 저장 오류: {e}")

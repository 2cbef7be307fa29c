"""커스텀 예외 클래스들

스캔 판정 결과(거부 사유)는 예외가 아니라 core.outcome.Rejected 값으로 표현됩니다.
여기의 예외는 설정/파일/저장소 같은 외부 협력자의 오류에만 사용합니다.
"""


class ScanStationError(Exception):
    """스캔 스테이션의 기본 예외 클래스"""
    pass


class ConfigurationError(ScanStationError):
    """공정 설정 관련 오류"""
    pass


class FileHandlingError(ScanStationError):
    """파일 내보내기/가져오기 관련 오류"""
    pass


class StorageError(ScanStationError):
    """데이터 저장/로드 관련 오류"""
    pass


class SessionError(ScanStationError):
    """세션 관리 관련 오류"""
    pass

"""
SDS011 Driver Custom Exceptions
"""


class SDS011Error(Exception):
    """SDS011 드라이버 기본 예외"""
    pass


class InvalidArgumentError(SDS011Error, ValueError):
    """잘못된 인자 (범위 초과, 알 수 없는 모드 이름)"""
    pass


class CommunicationError(SDS011Error):
    """통신 오류 (전송/수신 오류)"""
    pass


class ConnectionError(SDS011Error):
    """시리얼 포트 연결 오류"""
    pass


class ConnectionClosedError(CommunicationError):
    """이미 닫힌 연결에 대한 요청"""
    pass


class TimeoutError(CommunicationError):
    """쓰기 타임아웃"""
    pass


class FrameError(SDS011Error):
    """프레임 구조 오류 (길이, HEAD/TAIL 불일치)"""
    pass


class ChecksumError(FrameError):
    """체크섬 검증 실패"""
    pass


class ProtocolError(SDS011Error):
    """구조는 올바르지만 해석할 수 없는 프레임"""
    pass


class UnknownFrameTypeError(ProtocolError):
    """알 수 없는 프레임 타입 (offset 1)"""
    pass


class UnknownSettingError(ProtocolError):
    """알 수 없는 설정 ID (0xC5 응답의 offset 2)"""
    pass


class RetryExhaustedError(SDS011Error):
    """재시도 횟수 안에 센서 응답이 확인되지 않음"""
    pass

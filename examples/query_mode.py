"""
SDS011 Query Mode Example

Query 모드 사용 예제 (요청할 때만 측정값 전송)
"""

import sys
import time
import logging

# 로깅 설정
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

RESULT_TIMEOUT = 10.0


def example_query(port: str):
    """
    Query 모드 측정 예제

    센서를 깨우고, 측정 후 다시 절전 모드로 전환합니다.
    """
    from sds011 import SDS011

    print(f"\n{'='*50}")
    print("SDS011 Query Mode Example")
    print(f"Port: {port}")
    print(f"{'='*50}\n")

    with SDS011(port=port) as sensor:
        # ===== 센서 정보 =====
        print("[Sensor Info]")
        version = sensor.get_firmware_version().result(timeout=RESULT_TIMEOUT)
        print(f"  Firmware: {version}")

        # ===== 설정 =====
        sensor.set_sleep(False).result(timeout=RESULT_TIMEOUT)
        sensor.set_reporting_mode('query').result(timeout=RESULT_TIMEOUT)
        sensor.set_working_period(0).result(timeout=RESULT_TIMEOUT)

        # 팬이 안정될 때까지 대기
        print("  Warming up (30s)...")
        time.sleep(30)

        # ===== 측정 =====
        print("\n[Measurements]")
        for _ in range(5):
            measurement = sensor.query().result(timeout=RESULT_TIMEOUT)
            print(f"  PM2.5: {measurement.pm2_5:6.1f}  PM10: {measurement.pm10:6.1f}")
            time.sleep(2)

        sensor.set_sleep(True).result(timeout=RESULT_TIMEOUT)
        print("\n  Sensor is sleeping")

    print("\n[Done] Connection closed automatically")


def example_error_handling(port: str):
    """
    에러 처리 예제
    """
    from sds011 import (
        SDS011, SDS011Error, ConnectionError, RetryExhaustedError
    )

    try:
        with SDS011(port=port) as sensor:
            sensor.query().result(timeout=RESULT_TIMEOUT)

    except ConnectionError as e:
        print(f"Connection failed: {e}")
        print("Check if the serial port is correct and available")

    except RetryExhaustedError as e:
        print(f"No response: {e}")
        print("Sensor did not answer within the retry budget")

    except SDS011Error as e:
        print(f"SDS011 error: {e}")


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='SDS011 Query Mode Example')
    parser.add_argument(
        '--port', '-p',
        default='COM3' if sys.platform == 'win32' else '/dev/ttyUSB0',
        help='Serial port name'
    )
    parser.add_argument(
        '--example',
        choices=['query', 'error'],
        default='query',
        help='Example to run'
    )
    args = parser.parse_args()

    if args.example == 'query':
        example_query(args.port)
    else:
        example_error_handling(args.port)

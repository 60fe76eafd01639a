"""
SDS011 Active Mode Example

Active 모드 사용 예제 (센서가 주기적으로 측정값을 전송)
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


def print_measurement(measurement):
    print(f"PM2.5: {measurement.pm2_5:6.1f}  PM10: {measurement.pm10:6.1f}", end='\r')


def example_active(port: str, period: int):
    """
    연속 모니터링 예제

    측정값 이벤트를 구독하여 출력합니다.
    """
    from sds011 import SDS011

    print("\n[Active Mode Monitoring]")
    print("Press Ctrl+C to stop\n")

    with SDS011(port=port) as sensor:
        sensor.on_close(lambda reason: print(f"\nClosed: {reason}"))
        sensor.on_error(lambda error: logger.warning(f"Sensor error: {error}"))

        with sensor.on_measurement(print_measurement):
            sensor.set_sleep(False).result(timeout=RESULT_TIMEOUT)
            sensor.set_working_period(period).result(timeout=RESULT_TIMEOUT)
            sensor.set_reporting_mode('active').result(timeout=RESULT_TIMEOUT)

            try:
                while True:
                    time.sleep(1)

            except KeyboardInterrupt:
                print("\nMonitoring stopped")


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='SDS011 Active Mode Example')
    parser.add_argument(
        '--port', '-p',
        default='COM3' if sys.platform == 'win32' else '/dev/ttyUSB0',
        help='Serial port name'
    )
    parser.add_argument(
        '--period',
        type=int,
        default=0,
        help='Working period in minutes (0 = continuous)'
    )
    args = parser.parse_args()

    example_active(args.port, args.period)

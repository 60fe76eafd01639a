from sds011 import SDS011

# Context manager 사용 (권장)
with SDS011(port='/dev/ttyUSB0') as sensor:
    # 펌웨어 버전
    print(f"Firmware: {sensor.get_firmware_version().result()}")

    # Query 모드 측정
    sensor.set_reporting_mode('query').result()
    measurement = sensor.query().result()
    print(f"PM2.5: {measurement.pm2_5}, PM10: {measurement.pm10}")

    # 절전
    sensor.set_sleep(True).result()

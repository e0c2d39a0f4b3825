from __future__ import annotations

import argparse
import time

from imu_3dm_gx3.errors import ChecksumError
from imu_3dm_gx3.protocol import commands as cmd
from imu_3dm_gx3.protocol.codec import ensure_checksum, hexdump
from imu_3dm_gx3.sensors.serial_port import SerialTransport


def main() -> None:
    ap = argparse.ArgumentParser(description="stop streaming and print the device mode")
    ap.add_argument("--port", type=str, required=True)
    ap.add_argument("--baud", type=int, default=115200)
    args = ap.parse_args()

    t = SerialTransport(args.port, args.baud)
    t.open()
    try:
        t.write(cmd.STOP_CONTINUOUS)
        time.sleep(cmd.SETTLE_S)
        t.write(cmd.mode_command(cmd.MODE_QUERY))
        reply = t.read(cmd.MODE_REPLY_LENGTH)
        print(f"reply: {hexdump(reply)}")
        try:
            ensure_checksum(reply, "get mode")
        except ChecksumError as e:
            print(e)
            return
        mode = reply[cmd.MODE_REPLY_INDEX]
        try:
            print(f"mode: {cmd.DeviceMode(mode).name.lower()}")
        except ValueError:
            print(f"mode: unknown (0x{mode:02X})")
    finally:
        t.close()


if __name__ == "__main__":
    main()

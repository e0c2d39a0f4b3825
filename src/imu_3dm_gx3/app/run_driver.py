from __future__ import annotations

import argparse
import logging
import signal
from typing import List, Optional

from ..config import DriverConfig, load_config
from ..driver.context import DriverContext
from ..errors import DriverError, StartupError, TransportError
from ..sensors.imu_base import Publisher
from ..utils.logger import LogPublisher, SampleCsvWriter, TeePublisher, setup_logging

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="3DM-GX3-25 IMU serial driver")
    ap.add_argument("--config", type=str, default=None, help="YAML config file")
    ap.add_argument("--port", type=str, default=None, help="serial device, e.g. /dev/ttyACM0")
    ap.add_argument("--baud", type=int, default=None)
    ap.add_argument("--frame-id", type=str, default=None)
    ap.add_argument("--delay", type=float, default=None, help="seconds subtracted from every timestamp")
    ap.add_argument("--csv-out", type=str, default=None, help="write decoded samples to a CSV in this directory")
    ap.add_argument("--print-every", type=int, default=None)
    ap.add_argument("--log-level", type=str, default=None)
    ap.add_argument("--log-file", type=str, default=None)
    return ap


def apply_overrides(cfg: DriverConfig, args: argparse.Namespace) -> DriverConfig:
    if args.port is not None:
        cfg.port = args.port
    if args.baud is not None:
        cfg.baud = args.baud
    if args.frame_id is not None:
        cfg.frame_id = args.frame_id
    if args.delay is not None:
        cfg.delay = args.delay
    if args.csv_out is not None:
        cfg.logging.csv_out = args.csv_out
    if args.print_every is not None:
        cfg.logging.print_every = args.print_every
    if args.log_level is not None:
        cfg.logging.level = args.log_level
    if args.log_file is not None:
        cfg.logging.log_file = args.log_file
    return cfg


def main(argv: Optional[List[str]] = None) -> None:
    args = build_arg_parser().parse_args(argv)

    try:
        cfg = apply_overrides(load_config(args.config), args)
    except StartupError as e:
        setup_logging(args.log_level or "INFO")
        logger.error("startup failed: %s", e)
        raise SystemExit(1)
    setup_logging(cfg.logging.level, cfg.logging.log_file)

    csv_writer: Optional[SampleCsvWriter] = None
    publishers: List[Publisher] = [LogPublisher(print_every=cfg.logging.print_every)]
    if cfg.logging.csv_out:
        csv_writer = SampleCsvWriter(cfg.logging.csv_out, prefix=cfg.frame_id)
        publishers.append(csv_writer)

    try:
        ctx = DriverContext(cfg, TeePublisher(publishers))
    except StartupError as e:
        logger.error("startup failed: %s", e)
        raise SystemExit(1)

    def _on_signal(signum, _frame) -> None:
        logger.warning("received %s, stopping after the current frame", signal.Signals(signum).name)
        ctx.request_shutdown()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    code = 0
    try:
        ctx.run()
    except StartupError as e:
        logger.error("startup failed: %s", e)
        code = 1
    except TransportError as e:
        logger.error("stream aborted: %s", e)
        code = 2
    except DriverError as e:
        logger.error("driver error: %s", e)
        code = 3
    finally:
        if csv_writer is not None:
            csv_writer.close()
            logger.info("saved: %s", csv_writer.csv_path)
    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()

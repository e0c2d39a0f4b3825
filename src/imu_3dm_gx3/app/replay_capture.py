from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from ..driver.stream import StreamLoop, StreamStats
from ..errors import TransportError
from ..protocol.commands import CONTINUOUS_FRAME_LENGTH
from ..sensors.capture import CaptureTransport
from ..sensors.imu_base import Publisher
from ..utils.logger import LogPublisher, SampleCsvWriter, TeePublisher, setup_logging

logger = logging.getLogger(__name__)


def replay(transport: CaptureTransport, publisher: Publisher, *,
           t0: float = 0.0, frame_id: str = "imu", delay: float = 0.0) -> StreamStats:
    """Decode every whole frame left in the capture. A trailing partial frame is ignored."""
    transport.open()
    loop = StreamLoop(transport, publisher, t0, frame_id=frame_id, delay=delay, settle_s=0.0)
    try:
        while transport.remaining >= CONTINUOUS_FRAME_LENGTH:
            loop.step()
        if transport.remaining:
            logger.warning("ignoring %d trailing bytes", transport.remaining)
    finally:
        loop.stop_device()
    return loop.stats


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="decode a raw 3DM-GX3 continuous-mode capture")
    ap.add_argument("--capture", type=str, required=True, help="raw byte dump of the continuous stream")
    ap.add_argument("--skip-bytes", type=int, default=0, help="bytes to skip to reach the first frame boundary")
    ap.add_argument("--t0", type=float, default=0.0, help="wall-clock time of the timer reset")
    ap.add_argument("--frame-id", type=str, default="imu")
    ap.add_argument("--delay", type=float, default=0.0)
    ap.add_argument("--out-dir", type=str, default=None)
    ap.add_argument("--print-every", type=int, default=100)
    ap.add_argument("--log-level", type=str, default="INFO")
    args = ap.parse_args(argv)

    setup_logging(args.log_level)

    publishers: List[Publisher] = [LogPublisher(print_every=args.print_every)]
    writer: Optional[SampleCsvWriter] = None
    if args.out_dir is not None:
        writer = SampleCsvWriter(args.out_dir, prefix="replay")
        publishers.append(writer)

    try:
        stats = replay(
            CaptureTransport(args.capture, skip_bytes=args.skip_bytes),
            TeePublisher(publishers),
            t0=args.t0,
            frame_id=args.frame_id,
            delay=args.delay,
        )
    except TransportError as e:
        logger.error("replay failed: %s", e)
        raise SystemExit(1)
    finally:
        if writer is not None:
            writer.close()
            logger.info("saved: %s", writer.csv_path)

    logger.info("frames=%d published=%d dropped=%d", stats.frames_read, stats.frames_published, stats.frames_dropped)


if __name__ == "__main__":
    main()

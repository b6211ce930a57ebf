import argparse
import signal
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tf_pipeline.services.calib import load_camera_info
from tf_pipeline.services.storage import SessionStorage
from tf_pipeline.strategies.capture_usb import USBWebcamCapture

from .config import NodeConfig, load_config
from .logging_utils import add_file_handler, setup_logger
from .node import MarkerPoseNode
from .output import AnnotatedImageOutput, CsvOutput, MqttOutput, OutputSink
from .transform_store import InMemoryTransformStore
from .transforms import RigidTransform


@dataclass
class RunSummary:
    session_path: str
    frames_processed: int
    markers_published: int
    log_path: str
    avg_fps: float
    errors: int


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Publish marker poses in a reference frame")
    ap.add_argument("--config", required=True, help="Path to JSON/YAML config")

    ap.add_argument("--node-name")
    ap.add_argument("--device")
    ap.add_argument("--fps", type=int)
    ap.add_argument("--width", type=int)
    ap.add_argument("--height", type=int)
    ap.add_argument("--calib")
    ap.add_argument("--out")
    ap.add_argument("--duration", type=float)
    ap.add_argument("--max-frames", type=int)
    ap.add_argument("--dict")
    ap.add_argument("--marker-size", type=float)
    ap.add_argument("--reference-frame")
    ap.add_argument("--camera-frame")
    ap.add_argument("--marker-frame")
    ap.add_argument("--tf-prefix")
    ap.add_argument("--detection-mode")
    ap.add_argument("--min-marker-size", type=float)
    ap.add_argument("--save-annotated", action="store_true")
    ap.add_argument("--no-save-annotated", action="store_true")

    return ap


def _apply_args(cfg: NodeConfig, args: argparse.Namespace) -> NodeConfig:
    device = args.device
    if isinstance(device, str) and device.isdigit():
        device = int(device)

    save_annotated = None
    if args.save_annotated:
        save_annotated = True
    if args.no_save_annotated:
        save_annotated = False

    cfg.apply_overrides(
        node_name=args.node_name,
        device=device,
        fps=args.fps,
        width=args.width,
        height=args.height,
        calibration_path=args.calib,
        session_root=args.out,
        duration_sec=args.duration,
        max_frames=args.max_frames,
        aruco_dict=args.dict,
        marker_size=args.marker_size,
        reference_frame=args.reference_frame,
        camera_frame=args.camera_frame,
        marker_frame=args.marker_frame,
        tf_prefix=args.tf_prefix,
        detection_mode=args.detection_mode,
        min_marker_size=args.min_marker_size,
        save_annotated=save_annotated,
    )
    return cfg


class NodeRunner:
    """Feeds calibration and captured frames into a MarkerPoseNode until stopped."""

    def __init__(self, config: NodeConfig, capture=None, sinks: Optional[list[OutputSink]] = None, logger=None):
        self.config = config
        self.logger = logger or setup_logger(config.node_name)
        self.capture = capture
        self.sinks = sinks
        self.store = InMemoryTransformStore()
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def _build_sinks(self, storage: SessionStorage) -> list[OutputSink]:
        if self.sinks is not None:
            return self.sinks
        sinks: list[OutputSink] = []
        if self.config.csv_output:
            sinks.append(CsvOutput())
        if self.config.save_annotated:
            sinks.append(AnnotatedImageOutput(storage))
        mq = self.config.mqtt
        if mq is not None and mq.enabled:
            sinks.append(MqttOutput(mq.broker_ip, mq.broker_port, mq.topic_prefix, mq.client_id, mq.qos))
        return sinks

    def _publish_static_transforms(self) -> None:
        prefix = self.config.tf_prefix
        for st in self.config.static_transforms:
            tf = RigidTransform.from_rpy(*st.rpy, translation=st.translation)
            self.store.publish_static(prefix + st.parent, prefix + st.child, tf)
            self.logger.info("static transform %s -> %s: %s", st.parent, st.child, tf)

    def run(self) -> RunSummary:
        storage = SessionStorage(self.config.session_root, name=f"{self.config.node_name}_session")
        session_path = storage.begin()
        storage.write_manifest(self.config.as_dict())

        log_file = storage.log_file()
        file_handler = add_file_handler(self.logger, self.config.node_name, log_file)

        sinks = self._build_sinks(storage)
        node = MarkerPoseNode(self.config, store=self.store, sinks=sinks, logger=self.logger)
        self._publish_static_transforms()
        for out in sinks:
            out.open(Path(storage.session_dir))

        cap = self.capture or USBWebcamCapture(
            self.config.device,
            self.config.fps,
            self.config.width,
            self.config.height,
            frame_id=self.config.tf_prefix + self.config.camera_frame,
        )
        node.on_camera_info(load_camera_info(self.config.calibration_path, self.config.camera_frame))

        self.logger.info("session started: %s", session_path)
        t0 = time.time()
        frames = 0
        markers = 0
        errors = 0

        try:
            cap.start()
            while True:
                if self._stop_event.is_set():
                    break
                if self.config.duration_sec and (time.time() - t0) >= self.config.duration_sec:
                    break
                if self.config.max_frames and frames >= self.config.max_frames:
                    break

                msg = cap.next_image()
                if msg is None:
                    errors += 1
                    if not self.config.duration_sec:
                        # file sources end with a failed read
                        break
                    continue

                bundles = node.on_image(msg)
                markers += len(bundles)
                frames += 1
                self.logger.debug("frame=%d markers=%d", frames, len(bundles))
        finally:
            try:
                cap.stop()
            except Exception as e:
                self.logger.warning("capture stop failed: %s", e)
            for out in sinks:
                try:
                    out.close()
                except Exception as e:
                    self.logger.warning("output close failed: %s", e)
            self.logger.removeHandler(file_handler)
            file_handler.close()

        avg = frames / max(1e-6, (time.time() - t0))
        self.logger.info("summary frames=%d markers=%d avg_fps=%.2f errors=%d", frames, markers, avg, errors)
        return RunSummary(str(session_path), frames, markers, log_file, avg, errors)


def main() -> int:
    ap = _build_parser()
    args = ap.parse_args()

    cfg = load_config(args.config)
    cfg = _apply_args(cfg, args)

    runner = NodeRunner(cfg)

    def _handle_signal(_sig, _frame):
        runner.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    summary = runner.run()
    print(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())

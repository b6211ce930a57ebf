from __future__ import annotations

import logging
from typing import Optional, Sequence

from tf_pipeline.ip_types import CameraInfo, Image
from tf_pipeline.strategies.annotate import draw_markers
from tf_pipeline.strategies.detect_aruco import ArucoDetect
from tf_pipeline.strategies.localize_pnp import PnPLocalize

from .camera_model import CameraModelCache
from .composer import FrameNames, TransformComposer
from .config import NodeConfig, ReconfigureRequest
from .correction import correct, swapped_rpy
from .errors import CameraModelNotReady, ImageDecodeError
from .fanout import ResultFanout
from .image_codec import from_rgb8, to_rgb8
from .logging_utils import setup_logger
from .messages import FanoutBundle
from .output import OutputSink
from .resolver import FrameResolver
from .transform_store import InMemoryTransformStore, TransformStore
from .transforms import RigidTransform


class MarkerPoseNode:
    """
    Callback-driven marker pose publisher.

    `on_camera_info` populates the camera model once, `on_image` runs the
    per-frame pipeline (detect, correct, compose, fan out) and
    `on_reconfigure` updates detector settings. Callbacks are expected to be
    called from a single thread.
    """

    def __init__(
        self,
        config: NodeConfig,
        store: Optional[TransformStore] = None,
        sinks: Optional[Sequence[OutputSink]] = None,
        detector=None,
        localizer=None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.logger = logger or setup_logger(config.node_name)
        self.frames = FrameNames.from_config(
            config.camera_frame, config.reference_frame, config.marker_frame, config.tf_prefix
        )
        self.store = store if store is not None else InMemoryTransformStore()

        self.camera = CameraModelCache(config.image_is_rectified, self.logger.getChild("camera"))
        self.resolver = FrameResolver(
            self.store,
            timeout=config.transform_timeout,
            poll_interval=config.transform_poll_interval,
            logger=self.logger.getChild("resolver"),
        )
        self.composer = TransformComposer(self.frames, self.resolver, self.logger.getChild("composer"))
        self.fanout = ResultFanout(
            self.store,
            sinks or [],
            marker_size=config.marker_size,
            marker_lifetime=config.marker_lifetime,
            logger=self.logger.getChild("fanout"),
        )
        self.detector = detector or ArucoDetect(config.aruco_dict, config.detection_mode, config.min_marker_size)
        self.localizer = localizer

        self.logger.info(
            "marker node started with marker size of %.4f m and marker id to track: %d",
            config.marker_size, config.marker_id,
        )
        self.logger.info(
            "publishing marker poses with %s as parent and %s%s_<id> as child",
            self.frames.reference_frame, self.frames.prefix, self.frames.marker_frame,
        )
        self.logger.info(
            "detection mode: %s, marker size min: %.3f of image area",
            config.detection_mode.value, config.min_marker_size,
        )

    def on_camera_info(self, info: CameraInfo) -> None:
        if not self.camera.on_camera_info(info):
            return
        if self.localizer is None:
            model = self.camera.model
            self.localizer = PnPLocalize(model.camera_matrix, model.dist_coeffs, self.config.marker_size)

    def on_reconfigure(self, request: ReconfigureRequest) -> None:
        self.detector.set_detection_mode(request.detection_mode, request.min_image_size)
        self.logger.info(
            "reconfigured: detection mode %s, min image size %.3f",
            request.detection_mode.value, request.min_image_size,
        )
        if request.normalize_image:
            self.logger.warning("normalizeImageIllumination is unimplemented!")

    def on_image(self, msg: Image) -> list[FanoutBundle]:
        try:
            model = self.camera.require()
        except CameraModelNotReady:
            return []

        stamp = msg.header.stamp
        try:
            image = to_rgb8(msg)
        except ImageDecodeError as e:
            self.logger.error("image decode failed: %s", e)
            return []

        bundles: list[FanoutBundle] = []
        try:
            self._process_frame(msg, image, model, bundles)
        except Exception:
            self.logger.exception("frame at %.6f abandoned after %d marker(s)", stamp, len(bundles))
        return bundles

    def _process_frame(self, msg: Image, image, model, bundles: list[FanoutBundle]) -> None:
        stamp = msg.header.stamp
        dets = self.detector.detect(image)
        poses = self.localizer.estimate(dets) if dets else []

        for i, det in enumerate(dets):
            pose = poses[i] if i < len(poses) else None
            if pose is None:
                self.logger.warning("no pose for marker %d", det.marker_id)
                continue
            raw = RigidTransform.from_rvec_tvec(pose.rvec, pose.tvec)
            roll, pitch, yaw = swapped_rpy(raw)
            self.logger.debug("marker %d roll: %.4f pitch: %.4f yaw: %.4f", det.marker_id, roll, pitch, yaw)

            result = self.composer.build(det, correct(raw), self.camera.stereo_offset, stamp)
            bundles.append(self.fanout.emit(result))

        if self.fanout.wants_images:
            axis = self.config.marker_size if model.is_valid() and self.config.marker_size != -1 else -1.0
            annotated = draw_markers(image, dets, poses, model.camera_matrix, model.dist_coeffs, axis)
            self.fanout.emit_image(from_rgb8(annotated, msg.header))

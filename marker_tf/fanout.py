from __future__ import annotations

import logging
from typing import Optional, Sequence

from tf_pipeline.ip_types import Header, Image

from .composer import ComposedResult
from .messages import (
    FanoutBundle,
    PointStamped,
    PoseStamped,
    TransformStamped,
    Vector3Stamped,
    VisualizationMarker,
)
from .output import OutputSink
from .transform_store import TransformStore

LOGGER = logging.getLogger(__name__)

MARKER_COLOR = (1.0, 0.0, 0.0, 1.0)
MARKER_THICKNESS = 0.001


class ResultFanout:
    """
    Turns one composed transform into the five per-marker outputs.

    All outputs share a single Header instance, so stamp and reference frame
    are identical across them. The transform is also broadcast to the store,
    where later frames can look it up.
    """

    def __init__(
        self,
        store: TransformStore,
        sinks: Sequence[OutputSink] = (),
        marker_size: float = 0.05,
        marker_lifetime: float = 3.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.sinks = list(sinks)
        self.marker_size = marker_size
        self.marker_lifetime = marker_lifetime
        self.logger = logger or LOGGER

    @property
    def wants_images(self) -> bool:
        return any(s.wants_images for s in self.sinks)

    def build(self, result: ComposedResult) -> FanoutBundle:
        header = Header(stamp=result.stamp, frame_id=result.reference_frame)
        tf = result.transform
        translation = tuple(float(v) for v in tf.translation)
        cx, cy = result.center_pixel
        return FanoutBundle(
            marker_id=result.marker_id,
            transform=TransformStamped(header, result.marker_frame, tf),
            pose=PoseStamped(header, tf),
            position=Vector3Stamped(header, translation),
            pixel=PointStamped(header, (float(cx), float(cy), 0.0)),
            marker=VisualizationMarker(
                header=header,
                ns=result.marker_frame,
                id=result.marker_id,
                pose=tf,
                scale=(self.marker_size, self.marker_size, MARKER_THICKNESS),
                color=MARKER_COLOR,
                lifetime=self.marker_lifetime,
            ),
        )

    def emit(self, result: ComposedResult) -> FanoutBundle:
        bundle = self.build(result)
        self.store.publish(bundle.transform)
        for sink in self.sinks:
            try:
                sink.write_result(bundle)
            except Exception as e:
                self.logger.warning(
                    "Output %s failed for marker %d: %s",
                    type(sink).__name__, result.marker_id, e,
                )
        return bundle

    def emit_image(self, image: Image) -> None:
        for sink in self.sinks:
            if not sink.wants_images:
                continue
            try:
                sink.write_image(image)
            except Exception as e:
                self.logger.warning("Image output %s failed: %s", type(sink).__name__, e)

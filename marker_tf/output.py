from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import cv2

from tf_pipeline.ip_types import Image
from tf_pipeline.services.csv_writer import CsvWriter
from tf_pipeline.services.storage import SessionStorage

from .messages import FanoutBundle


class OutputSink(ABC):
    #: annotated images are only rendered when at least one sink wants them
    wants_images: bool = False

    @abstractmethod
    def open(self, session_dir: Optional[Path]) -> None: ...

    @abstractmethod
    def write_result(self, bundle: FanoutBundle) -> None: ...

    def write_image(self, image: Image) -> None:
        return None

    @abstractmethod
    def close(self) -> None: ...


class CsvOutput(OutputSink):
    def __init__(self, filename: str = "poses.csv"):
        self.filename = filename
        self.path: Optional[Path] = None
        self._writer: Optional[CsvWriter] = None

    def open(self, session_dir: Optional[Path]) -> None:
        if session_dir is None:
            raise ValueError("CsvOutput needs a session directory")
        self.path = Path(session_dir) / self.filename
        self._writer = CsvWriter(str(self.path))
        self._writer.open()

    def write_result(self, bundle: FanoutBundle) -> None:
        if self._writer is None:
            return
        tf = bundle.transform
        self._writer.append(
            tf.header.stamp,
            tf.header.frame_id,
            tf.child_frame_id,
            bundle.marker_id,
            tf.transform.translation,
            tf.transform.rotation,
            bundle.pixel.point[:2],
        )

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None


def _make_mqtt_client(client_id: str):
    import paho.mqtt.client as mqtt

    # paho-mqtt >= 2.0 requires an explicit callback API version
    if hasattr(mqtt, "CallbackAPIVersion"):
        return mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
    return mqtt.Client(client_id=client_id)


class MqttOutput(OutputSink):
    """Publishes every fan-out message as JSON on `<prefix>/<topic>`."""

    def __init__(
        self,
        broker_ip: str,
        broker_port: int = 1883,
        topic_prefix: str = "aruco",
        client_id: str = "",
        qos: int = 0,
        client: Any = None,
    ):
        self.broker_ip = broker_ip
        self.broker_port = broker_port
        self.topic_prefix = topic_prefix.rstrip("/")
        self.client_id = client_id
        self.qos = qos
        self.client = client

    def open(self, session_dir: Optional[Path]) -> None:
        if self.client is None:
            self.client = _make_mqtt_client(self.client_id)
        self.client.connect(self.broker_ip, self.broker_port, 60)
        self.client.loop_start()

    def write_result(self, bundle: FanoutBundle) -> None:
        if self.client is None:
            return
        for topic, msg in bundle.topics().items():
            payload = json.dumps(msg.as_dict())
            self.client.publish(f"{self.topic_prefix}/{topic}", payload, qos=self.qos)

    def close(self) -> None:
        if self.client is not None:
            self.client.loop_stop()
            self.client.disconnect()
            self.client = None


class AnnotatedImageOutput(OutputSink):
    wants_images = True

    def __init__(self, storage: SessionStorage):
        self.storage = storage
        self.count = 0

    def open(self, session_dir: Optional[Path]) -> None:
        return None

    def write_result(self, bundle: FanoutBundle) -> None:
        return None

    def write_image(self, image: Image) -> None:
        self.count += 1
        bgr = cv2.cvtColor(image.data, cv2.COLOR_RGB2BGR)
        self.storage.save_annotated(self.count, bgr)

    def close(self) -> None:
        return None


class NullOutput(OutputSink):
    def open(self, session_dir: Optional[Path]) -> None:
        return None

    def write_result(self, bundle: FanoutBundle) -> None:
        return None

    def close(self) -> None:
        return None

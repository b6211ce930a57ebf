from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Optional

from tf_pipeline.strategies.detect_aruco import DetectionMode

from .errors import ConfigurationError

LOGGER = logging.getLogger(__name__)


@dataclass
class MqttConfig:
    enabled: bool = False
    broker_ip: str = "127.0.0.1"
    broker_port: int = 1883
    topic_prefix: str = "aruco"
    client_id: str = ""
    qos: int = 0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class StaticTransformConfig:
    """Fixed parent->child transform published once into the transform store."""

    parent: str
    child: str
    translation: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    rpy: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ReconfigureRequest:
    """Runtime detector update."""

    detection_mode: DetectionMode = DetectionMode.FAST
    min_image_size: float = 0.02
    normalize_image: bool = False

    def __post_init__(self) -> None:
        try:
            self.detection_mode = DetectionMode.parse(self.detection_mode)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        self.min_image_size = float(self.min_image_size)
        self.normalize_image = bool(self.normalize_image)


@dataclass
class NodeConfig:
    node_name: str = "aruco_simple"
    marker_size: float = 0.05
    marker_id: int = 300
    reference_frame: str = ""
    camera_frame: str = ""
    marker_frame: str = ""
    tf_prefix: str = ""
    image_is_rectified: bool = True
    min_marker_size: float = 0.02
    detection_mode: DetectionMode = DetectionMode.FAST
    aruco_dict: str = "4x4_50"
    transform_timeout: float = 0.5
    transform_poll_interval: float = 0.01
    marker_lifetime: float = 3.0
    device: int | str = 0
    fps: int = 15
    width: int = 1920
    height: int = 1080
    calibration_path: str = "calib/camera.yml"
    session_root: str = "data/sessions"
    duration_sec: float = 0.0
    max_frames: Optional[int] = None
    save_annotated: bool = False
    csv_output: bool = True
    mqtt: Optional[MqttConfig] = None
    static_transforms: list[StaticTransformConfig] = field(default_factory=list)

    def __post_init__(self) -> None:
        try:
            self.detection_mode = DetectionMode.parse(self.detection_mode)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    def as_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["detection_mode"] = self.detection_mode.value
        return d

    def apply_overrides(self, **kwargs: Any) -> "NodeConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        self.__post_init__()
        return self


def _load_yaml(path: Path) -> dict[str, Any]:
    import yaml

    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("YAML config root must be a mapping")
    return data


def _vec(raw: Any, n: int, name: str) -> list[float]:
    if not isinstance(raw, (list, tuple)) or len(raw) != n:
        raise ConfigurationError(f"{name} must be a list of {n} numbers")
    return [float(v) for v in raw]


def _load_static_transforms(raw: Any) -> list[StaticTransformConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigurationError("static_transforms must be a list")
    out = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict) or not item.get("parent") or not item.get("child"):
            raise ConfigurationError(f"static_transforms[{i}] needs 'parent' and 'child'")
        out.append(
            StaticTransformConfig(
                parent=str(item["parent"]),
                child=str(item["child"]),
                translation=_vec(item.get("translation", [0.0, 0.0, 0.0]), 3, f"static_transforms[{i}].translation"),
                rpy=_vec(item.get("rpy", [0.0, 0.0, 0.0]), 3, f"static_transforms[{i}].rpy"),
            )
        )
    return out


def load_config(path: str | Path) -> NodeConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ConfigurationError("Config root must be a JSON/YAML object")

    if "corner_refinement" in raw:
        LOGGER.warning(
            "Corner refinement options have been removed, corner_refinement parameter is deprecated"
        )

    cfg = NodeConfig()
    cfg.node_name = str(raw.get("node_name", cfg.node_name))
    cfg.marker_size = float(raw.get("marker_size", cfg.marker_size))
    cfg.marker_id = int(raw.get("marker_id", cfg.marker_id))
    cfg.reference_frame = str(raw.get("reference_frame", cfg.reference_frame) or "")
    cfg.camera_frame = str(raw.get("camera_frame", cfg.camera_frame) or "")
    cfg.marker_frame = str(raw.get("marker_frame", cfg.marker_frame) or "")
    cfg.tf_prefix = str(raw.get("tf_prefix", cfg.tf_prefix) or "")
    cfg.image_is_rectified = bool(raw.get("image_is_rectified", cfg.image_is_rectified))
    cfg.min_marker_size = float(raw.get("min_marker_size", cfg.min_marker_size))
    try:
        cfg.detection_mode = DetectionMode.parse(raw.get("detection_mode", cfg.detection_mode))
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    cfg.aruco_dict = str(raw.get("aruco_dict", cfg.aruco_dict))
    cfg.transform_timeout = float(raw.get("transform_timeout", cfg.transform_timeout))
    cfg.transform_poll_interval = float(raw.get("transform_poll_interval", cfg.transform_poll_interval))
    cfg.marker_lifetime = float(raw.get("marker_lifetime", cfg.marker_lifetime))
    cfg.device = raw.get("device", cfg.device)
    cfg.fps = int(raw.get("fps", cfg.fps))
    cfg.width = int(raw.get("width", cfg.width))
    cfg.height = int(raw.get("height", cfg.height))
    cfg.calibration_path = str(raw.get("calibration_path", cfg.calibration_path))
    cfg.session_root = str(raw.get("session_root", cfg.session_root))
    cfg.duration_sec = float(raw.get("duration_sec", cfg.duration_sec))
    cfg.max_frames = raw.get("max_frames", cfg.max_frames)
    if cfg.max_frames is not None:
        cfg.max_frames = int(cfg.max_frames)
    cfg.save_annotated = bool(raw.get("save_annotated", cfg.save_annotated))
    cfg.csv_output = bool(raw.get("csv_output", cfg.csv_output))

    mqtt_raw = raw.get("mqtt")
    if mqtt_raw is not None and isinstance(mqtt_raw, dict):
        mq = MqttConfig()
        mq.enabled = bool(mqtt_raw.get("enabled", mq.enabled))
        mq.broker_ip = str(mqtt_raw.get("broker_ip", mq.broker_ip))
        mq.broker_port = int(mqtt_raw.get("broker_port", mq.broker_port))
        mq.topic_prefix = str(mqtt_raw.get("topic_prefix", mq.topic_prefix))
        mq.client_id = str(mqtt_raw.get("client_id", mq.client_id))
        mq.qos = int(mqtt_raw.get("qos", mq.qos))
        cfg.mqtt = mq

    cfg.static_transforms = _load_static_transforms(raw.get("static_transforms"))

    return cfg

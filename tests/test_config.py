import json
from pathlib import Path

import pytest

from marker_tf.config import MqttConfig, NodeConfig, load_config
from marker_tf.errors import ConfigurationError
from tf_pipeline.strategies.detect_aruco import DetectionMode


def test_load_config_json(tmp_path: Path):
    """JSON config should map onto NodeConfig fields."""
    cfg_path = tmp_path / "node.json"
    cfg_path.write_text(
        json.dumps(
            {
                "node_name": "aruco_left",
                "marker_size": 0.1,
                "marker_id": 3,
                "reference_frame": "world",
                "camera_frame": "camera_left",
                "marker_frame": "marker",
                "tf_prefix": "cell1/",
                "detection_mode": "DM_VIDEO_FAST",
                "device": 2,
                "max_frames": 10,
            }
        ),
        encoding="utf-8",
    )

    cfg = load_config(cfg_path)
    assert cfg.node_name == "aruco_left"
    assert cfg.marker_size == 0.1
    assert cfg.reference_frame == "world"
    assert cfg.tf_prefix == "cell1/"
    assert cfg.detection_mode is DetectionMode.VIDEO_FAST
    assert cfg.device == 2
    assert cfg.max_frames == 10
    assert cfg.mqtt is None

    cfg.apply_overrides(node_name="aruco_right", fps=10, detection_mode="legacy-normal")
    assert cfg.node_name == "aruco_right"
    assert cfg.fps == 10
    assert cfg.detection_mode is DetectionMode.NORMAL


def test_load_config_yaml_with_mqtt_and_static_transforms(tmp_path: Path):
    """YAML config with nested mqtt and static_transforms sections."""
    cfg_path = tmp_path / "node.yaml"
    cfg_path.write_text(
        "\n".join(
            [
                "camera_frame: camera",
                "marker_frame: marker",
                "reference_frame: base_link",
                "image_is_rectified: false",
                "mqtt:",
                "  enabled: true",
                "  broker_ip: 10.0.0.5",
                "  topic_prefix: cell1/aruco",
                "static_transforms:",
                "  - parent: base_link",
                "    child: camera",
                "    translation: [0.1, 0.0, 0.5]",
                "    rpy: [0.0, 1.57, 0.0]",
            ]
        ),
        encoding="utf-8",
    )

    cfg = load_config(cfg_path)
    assert cfg.image_is_rectified is False
    assert cfg.mqtt == MqttConfig(enabled=True, broker_ip="10.0.0.5", topic_prefix="cell1/aruco")
    assert len(cfg.static_transforms) == 1
    st = cfg.static_transforms[0]
    assert (st.parent, st.child) == ("base_link", "camera")
    assert st.translation == [0.1, 0.0, 0.5]
    assert st.rpy == [0.0, 1.57, 0.0]


def test_config_defaults():
    """Defaults match the node's documented parameter defaults."""
    cfg = NodeConfig()
    assert cfg.marker_size == 0.05
    assert cfg.marker_id == 300
    assert cfg.image_is_rectified is True
    assert cfg.min_marker_size == 0.02
    assert cfg.detection_mode is DetectionMode.FAST
    assert cfg.transform_timeout == 0.5
    assert cfg.marker_lifetime == 3.0
    assert cfg.as_dict()["detection_mode"] == "fast"


def test_unknown_detection_mode_is_a_configuration_error(tmp_path: Path):
    """Detection mode is a closed set; unknown names fail at load time."""
    cfg_path = tmp_path / "node.json"
    cfg_path.write_text(json.dumps({"detection_mode": "DM_TURBO"}), encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Unknown detection mode"):
        load_config(cfg_path)

    with pytest.raises(ConfigurationError):
        NodeConfig().apply_overrides(detection_mode="bogus")


def test_corner_refinement_is_deprecated(tmp_path: Path, caplog):
    """The old corner_refinement key is accepted with a deprecation warning."""
    cfg_path = tmp_path / "node.json"
    cfg_path.write_text(json.dumps({"corner_refinement": "LINES"}), encoding="utf-8")
    load_config(cfg_path)
    assert "corner_refinement parameter is deprecated" in caplog.text


@pytest.mark.parametrize(
    "body",
    [
        "[1, 2, 3]",
        json.dumps({"static_transforms": [{"parent": "world"}]}),
        json.dumps({"static_transforms": [{"parent": "a", "child": "b", "translation": [1, 2]}]}),
    ],
)
def test_invalid_config_raises(tmp_path: Path, body):
    cfg_path = tmp_path / "node.json"
    cfg_path.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(cfg_path)


def test_missing_config_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")

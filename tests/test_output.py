import csv
import json
from unittest.mock import MagicMock

import numpy as np
import pytest

from conftest import make_image
from marker_tf.composer import ComposedResult
from marker_tf.fanout import ResultFanout
from marker_tf.output import AnnotatedImageOutput, CsvOutput, MqttOutput, NullOutput
from marker_tf.transform_store import InMemoryTransformStore
from marker_tf.transforms import RigidTransform


@pytest.fixture
def bundle():
    result = ComposedResult(
        stamp=5.25,
        reference_frame="world",
        marker_frame="marker_3",
        transform=RigidTransform((0.1, 0.2, 0.3)),
        marker_id=3,
        center_pixel=(100.0, 80.0),
    )
    return ResultFanout(InMemoryTransformStore(), marker_size=0.1).build(result)


def test_csv_output_writes_one_row_per_marker(tmp_path, bundle):
    """CsvOutput appends one poses.csv row per bundle."""
    out = CsvOutput()
    out.open(tmp_path)
    out.write_result(bundle)
    out.close()

    with (tmp_path / "poses.csv").open(newline="") as fp:
        rows = list(csv.DictReader(fp))
    assert len(rows) == 1
    row = rows[0]
    assert row["stamp"] == "5.250000"
    assert row["frame_id"] == "world"
    assert row["child_frame_id"] == "marker_3"
    assert float(row["tz"]) == pytest.approx(0.3)
    assert float(row["qw"]) == pytest.approx(1.0)
    assert float(row["pixel_x"]) == pytest.approx(100.0)


def test_csv_output_requires_session_dir():
    with pytest.raises(ValueError):
        CsvOutput().open(None)


def test_mqtt_output_publishes_every_topic_as_json(bundle):
    """Each bundle topic is published as JSON under the topic prefix."""
    client = MagicMock()
    out = MqttOutput("10.0.0.5", 1884, topic_prefix="cell1/aruco/", qos=1, client=client)
    out.open(None)
    client.connect.assert_called_once_with("10.0.0.5", 1884, 60)
    client.loop_start.assert_called_once()

    out.write_result(bundle)

    topics = [c.args[0] for c in client.publish.call_args_list]
    assert topics == [
        "cell1/aruco/transform",
        "cell1/aruco/pose",
        "cell1/aruco/position",
        "cell1/aruco/pixel",
        "cell1/aruco/marker",
    ]
    payload = json.loads(client.publish.call_args_list[0].args[1])
    assert payload["child_frame_id"] == "marker_3"
    assert payload["header"] == {"stamp": 5.25, "frame_id": "world"}
    marker = json.loads(client.publish.call_args_list[-1].args[1])
    assert marker["type"] == "CUBE"
    assert marker["scale"]["z"] == 0.001
    assert all(c.kwargs["qos"] == 1 for c in client.publish.call_args_list)

    out.close()
    client.loop_stop.assert_called_once()
    client.disconnect.assert_called_once()


def test_mqtt_output_builds_paho_client(monkeypatch):
    """open() builds the client through the paho factory."""
    made = MagicMock()
    monkeypatch.setattr("marker_tf.output._make_mqtt_client", lambda client_id: made)
    out = MqttOutput("127.0.0.1", client_id="node1")
    out.open(None)
    assert out.client is made


def test_annotated_output_saves_bgr_images():
    """Annotated frames arrive as rgb8 and are saved as BGR."""
    storage = MagicMock()
    out = AnnotatedImageOutput(storage)
    assert out.wants_images

    img = make_image(encoding="rgb8")
    img.data[..., 0] = 200
    out.write_image(img)
    out.write_image(img)

    assert storage.save_annotated.call_count == 2
    idx, bgr = storage.save_annotated.call_args.args
    assert idx == 2
    assert (bgr[..., 2] == 200).all()
    assert not bgr[..., 0].any()


def test_null_output_accepts_everything(bundle):
    out = NullOutput()
    out.open(None)
    out.write_result(bundle)
    out.write_image(make_image())
    out.close()
    assert not out.wants_images
    assert np.isfinite(bundle.transform.transform.translation).all()

"""Conversion of incoming Image messages to RGB8 arrays."""

import cv2
import numpy as np

from tf_pipeline.ip_types import Header, Image

from .errors import ImageDecodeError

_CHANNELS = {
    "rgb8": 3,
    "bgr8": 3,
    "rgba8": 4,
    "bgra8": 4,
    "mono8": 1,
    "8uc1": 1,
}

_TO_RGB = {
    "bgr8": cv2.COLOR_BGR2RGB,
    "rgba8": cv2.COLOR_RGBA2RGB,
    "bgra8": cv2.COLOR_BGRA2RGB,
    "mono8": cv2.COLOR_GRAY2RGB,
    "8uc1": cv2.COLOR_GRAY2RGB,
}


def to_rgb8(msg: Image) -> np.ndarray:
    encoding = (msg.encoding or "").lower()
    if encoding not in _CHANNELS:
        raise ImageDecodeError(f"Unsupported image encoding: {msg.encoding!r}")
    if msg.width <= 0 or msg.height <= 0:
        raise ImageDecodeError(f"Invalid image size {msg.width}x{msg.height}")

    channels = _CHANNELS[encoding]
    row_bytes = msg.width * channels
    step = msg.step or row_bytes
    if step < row_bytes:
        raise ImageDecodeError(f"Row step {step} smaller than row size {row_bytes}")

    try:
        if isinstance(msg.data, np.ndarray):
            buf = np.ascontiguousarray(msg.data, dtype=np.uint8).reshape(-1)
        else:
            buf = np.frombuffer(bytes(msg.data), dtype=np.uint8)
    except (TypeError, ValueError) as e:
        raise ImageDecodeError(f"Unreadable image payload ({type(msg.data).__name__}): {e}") from e
    needed = step * (msg.height - 1) + row_bytes
    if buf.size < needed:
        raise ImageDecodeError(f"Image buffer has {buf.size} bytes, expected at least {needed}")

    if buf.size < step * msg.height:
        buf = np.concatenate([buf, np.zeros(step * msg.height - buf.size, dtype=np.uint8)])
    rows = buf[: step * msg.height].reshape(msg.height, step)[:, :row_bytes]
    img = rows.reshape(msg.height, msg.width, channels) if channels > 1 else rows.reshape(msg.height, msg.width)
    img = np.ascontiguousarray(img)

    if encoding == "rgb8":
        return img
    return cv2.cvtColor(img, _TO_RGB[encoding])


def from_rgb8(image: np.ndarray, header: Header) -> Image:
    h, w = image.shape[:2]
    return Image(header, h, w, "rgb8", image, step=w * 3)

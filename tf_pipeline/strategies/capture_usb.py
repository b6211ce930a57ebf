import re, time
import cv2
from ..ip_types import Header, Image

class USBWebcamCapture:
    """Reads BGR frames from a V4L2 device index or a video file/URL and wraps them as Image messages."""

    def __init__(self, device=0, requested_fps=15, w=1920, h=1080, frame_id="camera"):
        self.dev, self.fps, self.w, self.h = device, requested_fps, w, h
        self.frame_id = frame_id
        self.cap = None
        self.idx = 0

    def start(self):
        if isinstance(self.dev, int):
            self.cap = cv2.VideoCapture(self.dev, cv2.CAP_V4L2)
        else:
            match = re.match(r"^/dev/video(\d+)$", str(self.dev))
            if match:
                self.cap = cv2.VideoCapture(int(match.group(1)), cv2.CAP_V4L2)
            else:
                self.cap = cv2.VideoCapture(str(self.dev))
        self.cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*'MJPG'))
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH,  self.w)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.h)
        self.cap.set(cv2.CAP_PROP_FPS,          self.fps)
        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open camera: {self.dev}")

    def next_image(self) -> Image | None:
        ok, img = self.cap.read()
        if not ok: return None
        self.idx += 1
        h, w = img.shape[:2]
        header = Header(stamp=time.time(), frame_id=self.frame_id)
        return Image(header, h, w, "bgr8", img, step=img.strides[0])

    def stop(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None

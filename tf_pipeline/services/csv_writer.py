import csv
import numpy as np
import io

class CsvWriter:
    HEADER = [
        "stamp",
        "frame_id", "child_frame_id", "marker_id",
        "tx", "ty", "tz",
        "qx", "qy", "qz", "qw",
        "pixel_x", "pixel_y",
    ]

    def __init__(self, csv_path: str):
        self.csv_path = csv_path
        self._opened = False
        self._fh = None
        self._w = None

    def open(self):
        self._fh = open(self.csv_path, "w", newline="")
        self._w = csv.writer(self._fh)
        self._w.writerow(self.HEADER)
        self._opened = True

    @staticmethod
    def _vec(vec, n):
        if vec is None:
            return [float("nan")] * n
        a = np.array(vec, dtype=float).reshape(-1).tolist()
        if len(a) < n:
            a += [float("nan")] * (n - len(a))
        return a[:n]

    @classmethod
    def row(cls, stamp, frame_id, child_frame_id, marker_id, translation, quaternion, pixel):
        return [
            f"{stamp:.6f}",
            frame_id, child_frame_id, marker_id,
            *cls._vec(translation, 3),
            *cls._vec(quaternion, 4),
            *cls._vec(pixel, 2),
        ]

    def append(self, stamp, frame_id, child_frame_id, marker_id, translation, quaternion, pixel):
        self._w.writerow(self.row(stamp, frame_id, child_frame_id, marker_id, translation, quaternion, pixel))
        self._fh.flush()

    @classmethod
    def to_csv_line(cls, stamp, frame_id, child_frame_id, marker_id, translation, quaternion, pixel):
        buf = io.StringIO()
        w = csv.writer(buf)
        w.writerow(cls.row(stamp, frame_id, child_frame_id, marker_id, translation, quaternion, pixel))
        return buf.getvalue().strip()

    def close(self):
        if self._opened and self._fh:
            self._fh.close()
            self._opened = False
            self._fh = None
            self._w = None

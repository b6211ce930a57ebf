from pathlib import Path
import json, cv2

class SessionStorage:
    """Per-run directory: annotated/ images, logs/ and the config manifest."""

    def __init__(self, root: str, name: str = "session"):
        self.root = Path(root)
        self.name = name
        self.session_dir = None
        self.annotated_dir = None
        self.logs_dir = None
        self.last_path = None

    def begin(self) -> str:
        from time import strftime
        sid = f"{self.name}_{strftime('%Y%m%d_%H%M%S')}"
        self.session_dir = self.root / sid
        self.annotated_dir = self.session_dir / "annotated"
        self.logs_dir = self.session_dir / "logs"
        for d in (self.annotated_dir, self.logs_dir):
            d.mkdir(parents=True, exist_ok=True)
        return str(self.session_dir)

    def log_file(self, filename: str = "session.log") -> str:
        return str(self.logs_dir / filename)

    def save_annotated(self, idx: int, image_bgr):
        p = self.annotated_dir / f"f{idx:06d}_aruco.jpg"
        if not cv2.imwrite(str(p), image_bgr):
            raise IOError(f"Could not write {p}")
        self.last_path = str(p)
        return str(p)

    def write_manifest(self, meta: dict):
        with open(self.session_dir / "config.json", "w") as fp:
            json.dump(meta, fp, indent=2, default=str)

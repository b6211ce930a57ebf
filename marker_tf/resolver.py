from __future__ import annotations

import logging
import time
from typing import Optional

from .errors import TransformLookupError, TransformUnavailable
from .transform_store import TransformStore
from .transforms import RigidTransform

LOGGER = logging.getLogger(__name__)


class FrameResolver:
    """Bounded, blocking lookup of reference <- child transforms from a TransformStore."""

    def __init__(
        self,
        store: TransformStore,
        timeout: float = 0.5,
        poll_interval: float = 0.01,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.logger = logger or LOGGER

    def wait_for(self, reference_frame: str, child_frame: str) -> None:
        deadline = time.monotonic() + self.timeout
        while True:
            ok, err = self.store.can_transform(reference_frame, child_frame, None)
            if ok:
                return
            if time.monotonic() >= deadline:
                raise TransformUnavailable(
                    f"{child_frame} -> {reference_frame} not available after "
                    f"{self.timeout:.3f}s: {err}"
                )
            time.sleep(self.poll_interval)

    def lookup(self, reference_frame: str, child_frame: str, at_time: float) -> RigidTransform:
        """
        Wait for the transform, then fetch the most recent one.

        `at_time` is the frame stamp; the latest sample is used instead so that
        small skew between image and tree stamps does not fail the lookup.

        Raises:
            TransformUnavailable: nothing connected the frames within `timeout`.
            TransformLookupError: the store failed after the wait succeeded.
        """
        self.wait_for(reference_frame, child_frame)
        try:
            return self.store.lookup(reference_frame, child_frame, None)
        except TransformLookupError as exc:
            raise TransformLookupError(
                f"Error in lookup of {child_frame} in {reference_frame} "
                f"(stamp {at_time:.6f}): {exc}"
            ) from exc

    def resolve(self, reference_frame: str, child_frame: str, at_time: float) -> Optional[RigidTransform]:
        try:
            return self.lookup(reference_frame, child_frame, at_time)
        except TransformUnavailable as exc:
            self.logger.error("Unable to get pose from transform store: %s", exc)
        except TransformLookupError as exc:
            self.logger.error("%s", exc)
        return None

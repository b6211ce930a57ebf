"""Process-wide store of named, timestamped rigid transforms.

Frames form a tree: every published transform is an edge parent -> child.
Lookups walk the tree, inverting edges that are traversed child -> parent.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from bisect import bisect_right
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from tf_pipeline.ip_types import Header

from .errors import TransformLookupError
from .messages import TransformStamped
from .transforms import RigidTransform


class TransformStore(ABC):
    @abstractmethod
    def publish(self, transform: TransformStamped) -> None: ...

    @abstractmethod
    def can_transform(
        self, parent: str, child: str, time: Optional[float] = None
    ) -> Tuple[bool, str]: ...

    @abstractmethod
    def lookup(
        self, parent: str, child: str, time: Optional[float] = None
    ) -> RigidTransform: ...


@dataclass
class _Edge:
    static: bool = False
    stamps: List[float] = field(default_factory=list)
    transforms: List[RigidTransform] = field(default_factory=list)

    def insert(self, stamp: float, transform: RigidTransform, cache_time: float) -> None:
        idx = bisect_right(self.stamps, stamp)
        self.stamps.insert(idx, stamp)
        self.transforms.insert(idx, transform)
        horizon = self.stamps[-1] - cache_time
        drop = bisect_right(self.stamps, horizon) - 1
        if drop > 0:
            del self.stamps[:drop]
            del self.transforms[:drop]

    def sample(self, time: Optional[float]) -> RigidTransform:
        if self.static or time is None:
            return self.transforms[-1]
        idx = bisect_right(self.stamps, time)
        if idx == 0:
            raise TransformLookupError(
                f"Lookup would require extrapolation into the past: "
                f"requested {time:.6f}, oldest data at {self.stamps[0]:.6f}"
            )
        return self.transforms[idx - 1]


class InMemoryTransformStore(TransformStore):
    def __init__(self, cache_time: float = 10.0):
        self.cache_time = cache_time
        self._edges: Dict[Tuple[str, str], _Edge] = {}
        self._parent_of: Dict[str, str] = {}
        self._lock = threading.Lock()

    def publish(self, transform: TransformStamped) -> None:
        self._insert(transform, static=False)

    def publish_static(self, parent: str, child: str, transform: RigidTransform) -> None:
        self._insert(TransformStamped(Header(0.0, parent), child, transform), static=True)

    def _insert(self, msg: TransformStamped, static: bool) -> None:
        parent = msg.header.frame_id
        child = msg.child_frame_id
        if not parent or not child:
            raise ValueError("transform needs both a parent and a child frame id")
        if parent == child:
            raise ValueError(f"transform from frame '{parent}' to itself")
        with self._lock:
            old_parent = self._parent_of.get(child)
            if old_parent is not None and old_parent != parent:
                # a frame has exactly one parent; re-parenting replaces the edge
                self._edges.pop((old_parent, child), None)
            self._parent_of[child] = parent
            edge = self._edges.setdefault((parent, child), _Edge())
            edge.static = edge.static or static
            edge.insert(msg.header.stamp, msg.transform, self.cache_time)

    def frames(self) -> set[str]:
        with self._lock:
            return set(self._parent_of) | set(self._parent_of.values())

    def can_transform(
        self, parent: str, child: str, time: Optional[float] = None
    ) -> Tuple[bool, str]:
        try:
            self.lookup(parent, child, time)
        except TransformLookupError as exc:
            return False, str(exc)
        return True, ""

    def lookup(
        self, parent: str, child: str, time: Optional[float] = None
    ) -> RigidTransform:
        """Pose of `child` expressed in `parent`."""
        with self._lock:
            known = set(self._parent_of) | set(self._parent_of.values())
            for name in (parent, child):
                if name not in known:
                    raise TransformLookupError(f"Frame '{name}' does not exist in the transform tree")
            if parent == child:
                return RigidTransform.identity()
            path = self._path(parent, child)
            if path is None:
                raise TransformLookupError(
                    f"Could not find a connection between '{parent}' and '{child}' "
                    f"because they are not part of the same tree"
                )
            result = RigidTransform.identity()
            for a, b in zip(path, path[1:]):
                if (a, b) in self._edges:
                    step = self._edges[(a, b)].sample(time)
                else:
                    step = self._edges[(b, a)].sample(time).inverse()
                result = result * step
            return result

    def _path(self, start: str, goal: str) -> Optional[List[str]]:
        neighbours: Dict[str, List[str]] = {}
        for a, b in self._edges:
            neighbours.setdefault(a, []).append(b)
            neighbours.setdefault(b, []).append(a)
        came_from: Dict[str, Optional[str]] = {start: None}
        queue = deque([start])
        while queue:
            node = queue.popleft()
            if node == goal:
                path = [node]
                while came_from[path[-1]] is not None:
                    path.append(came_from[path[-1]])
                return path[::-1]
            for nxt in neighbours.get(node, []):
                if nxt not in came_from:
                    came_from[nxt] = node
                    queue.append(nxt)
        return None

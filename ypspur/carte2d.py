"""Trees of two-dimensional coordinate systems and transforms between them."""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field
from typing import Optional, Sequence

Pose = tuple[float, float, float]


@dataclass(eq=False)
class CoordinateSystem:
    """A frame placed at (x, y, theta) in its parent frame.

    A frame without a parent is a root; a root always sits at the origin.
    """

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0
    parent: Optional["CoordinateSystem"] = None
    children: list["CoordinateSystem"] = field(default_factory=list, repr=False)
    level: int = 0

    def __post_init__(self) -> None:
        if self.parent is None:
            self.x = 0.0
            self.y = 0.0
            self.theta = 0.0
            self.level = 0
        else:
            self.level = self.parent.level + 1

    def add_child(self, x: float, y: float, theta: float) -> "CoordinateSystem":
        """Create a frame at (x, y, theta) in this frame and return it."""
        child = CoordinateSystem(x, y, theta, parent=self)
        self.children.append(child)
        return child

    def set(self, x: float, y: float, theta: float) -> None:
        """Move this frame to (x, y, theta) in its parent frame."""
        self.x = x
        self.y = y
        self.theta = theta

    def delete(self) -> None:
        """Detach this frame and everything below it from the tree."""
        for child in list(self.children):
            child.delete()
        self.children.clear()
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None


def turn_base(x: float, y: float, theta: float) -> Pose:
    """Turn the parent's pose seen from a child into the child's pose seen from the parent."""
    xx = -x * math.cos(-theta) + y * math.sin(-theta)
    yy = -x * math.sin(-theta) - y * math.cos(-theta)
    return xx, yy, -theta


def inv_trans(cs: Optional[CoordinateSystem], x: float, y: float, theta: float) -> Pose:
    """Express a pose given in ``cs`` in the parent frame of ``cs``."""
    if cs is None:
        return x, y, theta
    c, s = math.cos(cs.theta), math.sin(cs.theta)
    return x * c - y * s + cs.x, x * s + y * c + cs.y, theta + cs.theta


def trans(cs: Optional[CoordinateSystem], x: float, y: float, theta: float) -> Pose:
    """Express a pose given in the parent frame of ``cs`` in ``cs`` itself."""
    if cs is None:
        return x, y, theta
    c, s = math.cos(-cs.theta), math.sin(-cs.theta)
    dx, dy = x - cs.x, y - cs.y
    return dx * c - dy * s, dx * s + dy * c, theta - cs.theta


def recursive_trans(
    target: Optional[CoordinateSystem],
    now: Optional[CoordinateSystem],
    x: float,
    y: float,
    theta: float,
) -> Pose:
    """Express a pose given in frame ``now`` in frame ``target``."""
    if target is None or now is None or target is now:
        return x, y, theta
    if target.level == now.level:
        pose = inv_trans(now, x, y, theta)
        pose = recursive_trans(target.parent, now.parent, *pose)
        return trans(target, *pose)
    if target.level > now.level:
        pose = recursive_trans(target.parent, now, x, y, theta)
        return trans(target, *pose)
    pose = inv_trans(now, x, y, theta)
    return recursive_trans(target, now.parent, *pose)


def trace_trans(target: CoordinateSystem, x: float, y: float, theta: float) -> Pose:
    """Express a pose given in the root frame in ``target``."""
    if target.parent is None:
        return x, y, theta
    pose = trace_trans(target.parent, x, y, theta)
    return trans(target, *pose)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Print a few sample transforms between frames of a small tree."""
    bs = CoordinateSystem()
    gl = bs.add_child(1, 1, 0)
    lc = gl.add_child(1, 1, 0)
    lc2 = gl.add_child(2, 2, 0)
    lc3 = bs.add_child(-3, -3, 0)
    lc4 = lc3.add_child(-3, -3, 0)

    for target, now in ((gl, bs), (lc, gl), (lc2, gl), (lc4, lc)):
        x, y, theta = recursive_trans(target, now, 2.0, 2.0, 2.0)
        sys.stdout.write(f"{x:f} {y:f} {theta:f}\n")
    return 0
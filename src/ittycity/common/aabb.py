from __future__ import annotations

from dataclasses import dataclass

from panda3d.core import LVector3d


@dataclass(frozen=True)
class AABB:
    minimum: LVector3d
    maximum: LVector3d

    @classmethod
    def from_center(cls, center: tuple[float, float, float], half: tuple[float, float, float]) -> "AABB":
        c = LVector3d(float(center[0]), float(center[1]), float(center[2]))
        h = LVector3d(abs(float(half[0])), abs(float(half[1])), abs(float(half[2])))
        return cls(minimum=c - h, maximum=c + h)

    def center(self) -> LVector3d:
        return (self.minimum + self.maximum) * 0.5

    def half_extents(self) -> LVector3d:
        return (self.maximum - self.minimum) * 0.5

    def contains(self, p: LVector3d) -> bool:
        return (
            self.minimum.x <= p.x <= self.maximum.x
            and self.minimum.y <= p.y <= self.maximum.y
            and self.minimum.z <= p.z <= self.maximum.z
        )

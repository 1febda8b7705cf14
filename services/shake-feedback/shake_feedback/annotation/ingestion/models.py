from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Tuple


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class StrokeColor(BaseModel):
    """RGBA color, every channel in 0-1."""
    model_config = ConfigDict(frozen=True)

    r: float = Field(ge=0.0, le=1.0)
    g: float = Field(ge=0.0, le=1.0)
    b: float = Field(ge=0.0, le=1.0)
    a: float = Field(default=1.0, ge=0.0, le=1.0)

    def with_alpha(self, alpha: float) -> "StrokeColor":
        return StrokeColor(r=self.r, g=self.g, b=self.b, a=alpha)

    def to_rgba255(self) -> Tuple[int, int, int, int]:
        return tuple(int(round(c * 255)) for c in (self.r, self.g, self.b, self.a))


RED = StrokeColor(r=1.0, g=0.0, b=0.0, a=1.0)


class AnnotationRecord(BaseModel):
    """
    Serializable form of one stroke. Plain points only, so it reloads
    without any geometry objects.
    """
    points: List[Point]
    color: StrokeColor
    width: float


class Stroke(BaseModel):
    model_config = ConfigDict(frozen=True)

    points: Tuple[Point, ...]
    color: StrokeColor = RED
    width: float = Field(default=4.0, gt=0.0)

    @field_validator("points")
    @classmethod
    def _non_empty(cls, points):
        if not points:
            raise ValueError("A finished stroke needs at least one point")
        return points

    def to_record(self) -> AnnotationRecord:
        return AnnotationRecord(points=list(self.points), color=self.color, width=self.width)

    @classmethod
    def from_record(cls, record: AnnotationRecord) -> "Stroke":
        return cls(points=tuple(record.points), color=record.color, width=record.width)

    def xy(self) -> List[Tuple[float, float]]:
        return [(p.x, p.y) for p in self.points]

from typing import List, Optional
from pydantic import BaseModel
from ..ingestion.models import AnnotationRecord, Point, Stroke, StrokeColor, RED


class StrokeStyle(BaseModel):
    color: StrokeColor = RED
    width: float = 4.0


class InProgressStroke:
    """The only mutable stroke. Promoted to a frozen Stroke on end()."""

    def __init__(self, style: StrokeStyle):
        self.points: List[Point] = []
        self.color = style.color
        self.width = style.width

    def xy(self):
        return [(p.x, p.y) for p in self.points]


class StrokeStore:
    """
    Ordered collection of finished strokes plus at most one in-progress
    stroke. Finished strokes are only appended, popped from the tail, or
    cleared all at once.
    """

    def __init__(self, style: Optional[StrokeStyle] = None):
        self.style = style or StrokeStyle()
        self._strokes: List[Stroke] = []
        self._current: Optional[InProgressStroke] = None

    @property
    def strokes(self) -> List[Stroke]:
        return list(self._strokes)

    @property
    def current(self) -> Optional[InProgressStroke]:
        return self._current

    def __len__(self) -> int:
        return len(self._strokes)

    def begin(self, point: Point) -> None:
        # A dangling in-progress stroke is dropped (last writer wins)
        self._current = InProgressStroke(self.style)
        self._current.points.append(point)

    def extend(self, point: Point) -> None:
        if self._current is None:
            return
        self._current.points.append(point)

    def end(self) -> Optional[Stroke]:
        current, self._current = self._current, None
        if current is None or not current.points:
            return None
        stroke = Stroke(points=tuple(current.points), color=current.color, width=current.width)
        self._strokes.append(stroke)
        return stroke

    def undo(self) -> Optional[Stroke]:
        if not self._strokes:
            return None
        return self._strokes.pop()

    def clear(self) -> None:
        self._strokes = []
        self._current = None

    def load(self, records: List[AnnotationRecord]) -> None:
        self._current = None
        # Records from an older session may be empty or corrupt
        self._strokes = [Stroke.from_record(r) for r in records if r.points and r.width > 0]

    def snapshot(self) -> List[AnnotationRecord]:
        return [s.to_record() for s in self._strokes]

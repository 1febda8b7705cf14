"""
Annotation session: one editing pass over one screenshot.

Lifecycle is CLOSED -> OPEN -> FINISHED. Drawing, tool changes, undo and
clear all happen while OPEN; finish() hands back the composited image and
the stroke records, after which the session is done for good.
"""
import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple
from PIL import Image
from pydantic import BaseModel, ConfigDict

from .ingestion.models import AnnotationRecord, Point, Stroke, StrokeColor, RED
from .stroke_engine.geometry import Rect, Size, aspect_fit_rect
from .stroke_engine.store import StrokeStore, StrokeStyle
from .stroke_engine.surface import DrawingSurface

logger = logging.getLogger("annotation_session")


class SessionState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    FINISHED = "finished"


class ToolKind(str, Enum):
    PEN = "pen"
    HIGHLIGHTER = "highlighter"


# kind -> (width, alpha); the hue is picked by the caller
TOOL_TABLE: Dict[ToolKind, Tuple[float, float]] = {
    ToolKind.PEN: (4.0, 1.0),
    ToolKind.HIGHLIGHTER: (20.0, 0.6),
}


class SessionStateError(RuntimeError):
    pass


class AnnotationResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    image: Image.Image
    records: List[AnnotationRecord]


class AnnotationSession:
    def __init__(self, container_size: Size):
        self.container_size = (int(container_size[0]), int(container_size[1]))
        self.state = SessionState.CLOSED
        self.tool = ToolKind.PEN
        self._image: Optional[Image.Image] = None
        self._surface: Optional[DrawingSurface] = None

    # --- Lifecycle ---

    def open(self, image: Image.Image, existing_records: Optional[List[AnnotationRecord]] = None) -> None:
        if self.state is not SessionState.CLOSED:
            raise SessionStateError(f"Cannot open a session that is {self.state.value}")

        width, alpha = TOOL_TABLE[ToolKind.PEN]
        store = StrokeStore(StrokeStyle(color=RED.with_alpha(alpha), width=width))
        store.load(existing_records or [])
        self._image = image
        self._surface = DrawingSurface(self.container_size, store)
        self.state = SessionState.OPEN
        self._surface.render()
        logger.info("Opened annotation session on %sx%s image (%d resumed strokes)",
                    image.width, image.height, len(store))

    def finish(self) -> AnnotationResult:
        self._require_open()
        # A stroke still under the pointer counts as drawn
        self._surface.pointer_up()
        image = self._surface.composite_onto_image(self._image)
        records = self._surface.store.snapshot()
        self.state = SessionState.FINISHED
        self._image = None
        logger.info("Finished annotation session with %d strokes", len(records))
        return AnnotationResult(image=image, records=records)

    def _require_open(self) -> None:
        if self.state is not SessionState.OPEN:
            raise SessionStateError(f"Session is {self.state.value}, expected open")

    # --- Editing ---

    @property
    def surface(self) -> DrawingSurface:
        self._require_open()
        return self._surface

    @property
    def strokes(self) -> List[Stroke]:
        return self.surface.store.strokes

    @property
    def display_rect(self) -> Rect:
        self._require_open()
        return aspect_fit_rect(self._image.size, self.container_size)

    def select_tool(self, kind: ToolKind, hue: StrokeColor = RED) -> None:
        """Only affects strokes started after the call."""
        self._require_open()
        width, alpha = TOOL_TABLE[kind]
        self.tool = kind
        self._surface.store.style = StrokeStyle(color=hue.with_alpha(alpha), width=width)

    def pointer_down(self, point: Point) -> Rect:
        return self.surface.pointer_down(point)

    def pointer_move(self, point: Point) -> Optional[Rect]:
        return self.surface.pointer_move(point)

    def pointer_up(self) -> Optional[Stroke]:
        return self.surface.pointer_up()

    def undo(self) -> Optional[Stroke]:
        removed = self.surface.store.undo()
        self._surface.render()
        return removed

    def clear_all(self, confirmed: bool) -> bool:
        """
        Drops every stroke, but only once the caller has confirmed it.
        Returns whether anything was cleared.
        """
        self._require_open()
        if not confirmed:
            logger.debug("clear_all ignored: not confirmed")
            return False
        self._surface.store.clear()
        self._surface.render()
        return True

    def render(self) -> Image.Image:
        return self.surface.render()

    def records(self) -> List[AnnotationRecord]:
        return self.surface.store.snapshot()

from typing import List, Optional, Sequence, Tuple
from PIL import Image, ImageDraw

from ..ingestion.models import Point, Stroke, StrokeColor
from .geometry import Rect, Size, aspect_fit_rect, as_xy, bounding_rect, container_to_image, display_scale
from .store import StrokeStore

TRANSPARENT = (0, 0, 0, 0)


def draw_polyline(target: Image.Image, xy: Sequence[Tuple[float, float]], color: StrokeColor, width: float) -> None:
    """
    Draws one stroke as a connected polyline with round caps and joins.
    The stroke goes onto its own layer first so translucent colors blend
    with what is underneath instead of replacing it.
    """
    if not xy:
        return
    rgba = color.to_rgba255()
    layer = Image.new("RGBA", target.size, TRANSPARENT)
    draw = ImageDraw.Draw(layer)
    radius = width / 2.0

    if len(xy) > 1:
        draw.line(list(xy), fill=rgba, width=max(1, int(round(width))), joint="curve")
    # Pillow has no line caps; round them off with discs at both ends
    for x, y in (xy[0], xy[-1]):
        draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=rgba)

    target.alpha_composite(layer)


class DrawingSurface:
    """
    Turns pointer input into StrokeStore calls and renders the strokes.
    Coordinates are in the surface (container) space.
    """

    def __init__(self, size: Size, store: Optional[StrokeStore] = None):
        self.size = (int(size[0]), int(size[1]))
        self.store = store if store is not None else StrokeStore()
        self._canvas = Image.new("RGBA", self.size, TRANSPARENT)

    # --- Pointer input ---

    def pointer_down(self, point: Point) -> Rect:
        self.store.begin(point)
        return bounding_rect([point], pad=self._pad(self.store.style.width))

    def pointer_move(self, point: Point) -> Optional[Rect]:
        """Returns the dirty rect around the new segment, or None if nothing is being drawn."""
        current = self.store.current
        if current is None:
            return None
        previous = current.points[-1]
        self.store.extend(point)
        return bounding_rect([previous, point], pad=self._pad(current.width))

    def pointer_up(self) -> Optional[Stroke]:
        return self.store.end()

    @staticmethod
    def _pad(width: float) -> float:
        return width / 2.0 + 1.0

    # --- Rendering ---

    def _layers(self) -> List[Tuple[List[Tuple[float, float]], StrokeColor, float]]:
        layers = [(s.xy(), s.color, s.width) for s in self.store.strokes]
        current = self.store.current
        if current is not None and current.points:
            layers.append((current.xy(), current.color, current.width))
        return layers

    def render(self, target: Optional[Image.Image] = None) -> Image.Image:
        """
        Full redraw: wipes `target` (the surface's own canvas by default),
        then draws finished strokes in order and the in-progress one last.
        """
        if target is None:
            target = self._canvas
        if target.mode != "RGBA":
            raise ValueError(f"Render target must be RGBA, got {target.mode}")

        target.paste(TRANSPARENT, (0, 0) + target.size)
        for xy, color, width in self._layers():
            draw_polyline(target, xy, color, width)
        return target

    def composite_onto_image(self, base_image: Image.Image) -> Image.Image:
        """
        New RGBA image the size of `base_image`: the base first, then every
        stroke mapped from surface space through the aspect-fit transform.
        """
        out = base_image.convert("RGBA")
        display = aspect_fit_rect(base_image.size, self.size)
        scale = display_scale(display, base_image.size)

        for xy, color, width in self._layers():
            points = [Point(x=x, y=y) for x, y in xy]
            mapped = as_xy(container_to_image(points, display, base_image.size))
            draw_polyline(out, mapped, color, width * scale)
        return out

from typing import Iterable, List, Tuple
from pydantic import BaseModel
import numpy as np

from ..ingestion.models import Point

Size = Tuple[float, float]


class Rect(BaseModel):
    x: float
    y: float
    width: float
    height: float

    @property
    def origin(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @property
    def size(self) -> Size:
        return (self.width, self.height)


def bounding_rect(points: Iterable[Point], pad: float = 0.0) -> Rect:
    """Bounding box of the points, grown by `pad` on every side."""
    pts = list(points)
    if not pts:
        return Rect(x=0, y=0, width=0, height=0)
    xs = [p.x for p in pts]
    ys = [p.y for p in pts]
    return Rect(
        x=min(xs) - pad,
        y=min(ys) - pad,
        width=(max(xs) - min(xs)) + 2 * pad,
        height=(max(ys) - min(ys)) + 2 * pad,
    )


def aspect_fit_rect(image_size: Size, container_size: Size) -> Rect:
    """
    Rect an image of `image_size` occupies when shown aspect-fit inside
    `container_size`: centered, letterboxed on one axis.
    """
    iw, ih = float(image_size[0]), float(image_size[1])
    cw, ch = float(container_size[0]), float(container_size[1])
    if iw <= 0 or ih <= 0 or cw <= 0 or ch <= 0:
        raise ValueError(f"Sizes must be positive: image={image_size} container={container_size}")

    scale = min(cw / iw, ch / ih)
    w = iw * scale
    h = ih * scale
    # Snap the fitted axis so the rect matches the container exactly
    if cw / iw <= ch / ih:
        w = cw
    if ch / ih <= cw / iw:
        h = ch
    return Rect(x=(cw - w) / 2.0, y=(ch - h) / 2.0, width=w, height=h)


def container_to_image(points: Iterable[Point], display: Rect, image_size: Size) -> np.ndarray:
    """
    Maps container-space points into image space:
    (p - R.origin) * imageSize / R.size. Returns an (N, 2) float array.
    """
    arr = np.array([[p.x, p.y] for p in points], dtype=np.float64).reshape(-1, 2)
    origin = np.array(display.origin, dtype=np.float64)
    image = np.array(image_size, dtype=np.float64)
    size = np.array(display.size, dtype=np.float64)
    if np.array_equal(image, size):
        return arr - origin
    # Multiply before dividing so the letterbox edges land on exact pixels
    return (arr - origin) * image / size


def image_to_container(points: Iterable[Point], display: Rect, image_size: Size) -> np.ndarray:
    """Inverse of container_to_image: p * R.size / imageSize + R.origin."""
    arr = np.array([[p.x, p.y] for p in points], dtype=np.float64).reshape(-1, 2)
    origin = np.array(display.origin, dtype=np.float64)
    image = np.array(image_size, dtype=np.float64)
    size = np.array(display.size, dtype=np.float64)
    if np.array_equal(image, size):
        return arr + origin
    return arr * size / image + origin


def map_point(point: Point, display: Rect, image_size: Size) -> Point:
    x, y = container_to_image([point], display, image_size)[0]
    return Point(x=float(x), y=float(y))


def display_scale(display: Rect, image_size: Size) -> float:
    """Uniform container-to-image scale factor (aspect-fit keeps both axes equal)."""
    return float(image_size[0]) / display.width


def as_xy(arr: np.ndarray) -> List[Tuple[float, float]]:
    return [(float(x), float(y)) for x, y in arr]

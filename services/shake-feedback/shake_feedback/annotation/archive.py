"""
On-disk store of annotation records, keyed by the screenshot they were
drawn on. Lets a later session over the same image pick up its strokes.

Records are kept in image pixels, so a session shown in a different
container still puts every stroke on the same part of the screenshot.
"""
import os
import json
import logging
from typing import List
from PIL import Image
from pydantic import TypeAdapter, ValidationError

from .ingestion.models import AnnotationRecord, Point
from .stroke_engine.geometry import Rect, Size, container_to_image, display_scale, image_to_container
from ..utils import image_digest

logger = logging.getLogger("annotation_archive")

_RECORDS = TypeAdapter(List[AnnotationRecord])


def dump_records(records: List[AnnotationRecord]) -> str:
    return _RECORDS.dump_json(records).decode("utf-8")


def parse_records(payload: str) -> List[AnnotationRecord]:
    return _RECORDS.validate_json(payload)


def records_to_image(records: List[AnnotationRecord], display: Rect, image_size: Size) -> List[AnnotationRecord]:
    scale = display_scale(display, image_size)
    out = []
    for record in records:
        mapped = container_to_image(record.points, display, image_size)
        out.append(AnnotationRecord(
            points=[Point(x=float(x), y=float(y)) for x, y in mapped],
            color=record.color,
            width=record.width * scale,
        ))
    return out


def records_to_container(records: List[AnnotationRecord], display: Rect, image_size: Size) -> List[AnnotationRecord]:
    scale = display_scale(display, image_size)
    out = []
    for record in records:
        mapped = image_to_container(record.points, display, image_size)
        out.append(AnnotationRecord(
            points=[Point(x=float(x), y=float(y)) for x, y in mapped],
            color=record.color,
            width=record.width / scale,
        ))
    return out


class AnnotationArchive:
    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(self.directory, exist_ok=True)

    def _path(self, image: Image.Image) -> str:
        return os.path.join(self.directory, f"{image_digest(image)}.json")

    def save(self, image: Image.Image, records: List[AnnotationRecord], display: Rect) -> str:
        """`records` are in container space, shown through `display`."""
        path = self._path(image)
        with open(path, "w") as f:
            f.write(dump_records(records_to_image(records, display, image.size)))
        logger.debug("Saved %d annotation records to %s", len(records), path)
        return path

    def load(self, image: Image.Image, display: Rect) -> List[AnnotationRecord]:
        """Records saved for this image mapped into `display`, or [] if none (or unreadable)."""
        path = self._path(image)
        if not os.path.exists(path):
            return []
        try:
            with open(path, "r") as f:
                stored = parse_records(f.read())
        except (OSError, ValidationError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable annotation archive %s: %s", path, e)
            return []
        return records_to_container(stored, display, image.size)

from typing import List, Literal, Optional
from fastapi import APIRouter, File, HTTPException, Request, Response, UploadFile
from pydantic import BaseModel

from .ingestion.models import AnnotationRecord, Point, StrokeColor, RED
from .session import AnnotationSession, SessionStateError, ToolKind
from .stroke_engine.geometry import Rect
from ..reporting.models import DeviceMetadata, FeedbackJob
from ..utils import image_to_png_bytes, read_image_from_bytes

router = APIRouter(prefix="/api/v1/feedback", tags=["feedback"])


class PointerEvent(BaseModel):
    kind: Literal["down", "move", "up"]
    x: float = 0.0
    y: float = 0.0


class PointerBatch(BaseModel):
    events: List[PointerEvent]


class ToolRequest(BaseModel):
    kind: ToolKind = ToolKind.PEN
    color: StrokeColor = RED


class ClearRequest(BaseModel):
    confirm: bool = False


class SendRequest(BaseModel):
    note: str = ""
    device: Optional[DeviceMetadata] = None


def _coordinator(request: Request):
    return request.app.state.coordinator


def _session(request: Request, session_id: str) -> AnnotationSession:
    try:
        session = _coordinator(request).session(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    return session


def _conflict(e: SessionStateError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


@router.post("/sessions")
async def open_session(request: Request, file: UploadFile = File(...),
                       container_width: int = 390, container_height: int = 844):
    """
    A shake happened: the uploaded screenshot becomes the base of a new
    annotation session. Strokes saved earlier for the same image come back.
    """
    contents = await file.read()
    try:
        screenshot = read_image_from_bytes(contents)
    except OSError:
        raise HTTPException(status_code=400, detail="Screenshot is not a readable image")
    if container_width <= 0 or container_height <= 0:
        raise HTTPException(status_code=400, detail="Container size must be positive")

    coordinator = _coordinator(request)
    session_id = coordinator.open_session(screenshot, (container_width, container_height))
    session = coordinator.session(session_id)
    return {
        "session_id": session_id,
        "image_width": screenshot.width,
        "image_height": screenshot.height,
        "display_rect": session.display_rect,
        "resumed_strokes": len(session.strokes),
    }


@router.post("/sessions/{session_id}/events")
def pointer_events(request: Request, session_id: str, batch: PointerBatch):
    session = _session(request, session_id)
    dirty: List[Optional[Rect]] = []
    try:
        for event in batch.events:
            point = Point(x=event.x, y=event.y)
            if event.kind == "down":
                dirty.append(session.pointer_down(point))
            elif event.kind == "move":
                dirty.append(session.pointer_move(point))
            else:
                session.pointer_up()
                dirty.append(None)
    except SessionStateError as e:
        raise _conflict(e)
    return {"dirty": dirty, "strokes": len(session.strokes)}


@router.post("/sessions/{session_id}/tool")
def select_tool(request: Request, session_id: str, tool: ToolRequest):
    session = _session(request, session_id)
    try:
        session.select_tool(tool.kind, tool.color)
    except SessionStateError as e:
        raise _conflict(e)
    return {"tool": session.tool}


@router.post("/sessions/{session_id}/undo")
def undo(request: Request, session_id: str):
    session = _session(request, session_id)
    try:
        removed = session.undo()
        return {"removed": removed is not None, "strokes": len(session.strokes)}
    except SessionStateError as e:
        raise _conflict(e)


@router.post("/sessions/{session_id}/clear")
def clear(request: Request, session_id: str, body: ClearRequest):
    session = _session(request, session_id)
    try:
        cleared = session.clear_all(confirmed=body.confirm)
        return {"cleared": cleared, "strokes": len(session.strokes)}
    except SessionStateError as e:
        raise _conflict(e)


@router.get("/sessions/{session_id}/render")
def render(request: Request, session_id: str):
    session = _session(request, session_id)
    try:
        overlay = session.render()
    except SessionStateError as e:
        raise _conflict(e)
    return Response(content=image_to_png_bytes(overlay), media_type="image/png")


@router.get("/sessions/{session_id}/records", response_model=List[AnnotationRecord])
def records(request: Request, session_id: str):
    session = _session(request, session_id)
    try:
        return session.records()
    except SessionStateError as e:
        raise _conflict(e)


@router.delete("/sessions/{session_id}")
def discard(request: Request, session_id: str):
    _session(request, session_id)
    _coordinator(request).discard(session_id)
    return {"discarded": session_id}


@router.post("/sessions/{session_id}/send")
def send(request: Request, session_id: str, body: SendRequest):
    _session(request, session_id)
    try:
        job_id = _coordinator(request).submit(session_id, note=body.note, metadata=body.device)
    except SessionStateError as e:
        raise _conflict(e)
    return {
        "request_id": job_id,
        "status": "processing",
        "result_url": f"/api/v1/feedback/result/{job_id}",
    }


@router.get("/result/{job_id}", response_model=FeedbackJob)
def get_result(request: Request, job_id: str):
    try:
        return _coordinator(request).result(job_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown request {job_id}")

import json
import logging
import time
from typing import Optional

import cv2
import numpy as np
from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, Response, StreamingResponse
from pydantic import BaseModel, Field, ValidationError
from starlette.concurrency import run_in_threadpool

from facemesh_demo.mesh_config import CONFIDENCE_RANGE, MAX_FACES_RANGE

log = logging.getLogger(__name__)

router = APIRouter()

STREAM_BOUNDARY = "frame"


class OptionsUpdate(BaseModel):
    selfie_mode: Optional[bool] = None
    max_num_faces: Optional[int] = Field(None, ge=MAX_FACES_RANGE[0], le=MAX_FACES_RANGE[1])
    min_detection_confidence: Optional[float] = Field(None, ge=CONFIDENCE_RANGE[0], le=CONFIDENCE_RANGE[1])
    min_tracking_confidence: Optional[float] = Field(None, ge=CONFIDENCE_RANGE[0], le=CONFIDENCE_RANGE[1])


def encode_jpeg(frame: np.ndarray, quality: int = 80) -> Optional[bytes]:
    ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    return buf.tobytes() if ok else None


def _frame_source(request_app, which: str):
    controller = request_app.state.controller
    if which == "input":
        return controller.input_frame
    if which == "output":
        return controller.output_frame
    raise HTTPException(status_code=404, detail=f"unknown stream {which!r}")


@router.get("/health")
async def get_health():
    # simple health endpoint (do not shadow frontend root "/")
    return HTMLResponse("<h1>Face Mesh Demo Running</h1>")


@router.get("/api/state")
async def get_state(request: Request):
    return request.app.state.controller.status()


@router.get("/api/options")
async def get_options(request: Request):
    return request.app.state.panel.options.as_dict()


@router.post("/api/options")
def post_options(update: OptionsUpdate, request: Request):
    options = request.app.state.panel.set_values(update.model_dump(exclude_none=True))
    return options.as_dict()


@router.get("/api/controls")
async def get_controls(request: Request):
    return request.app.state.panel.describe()


@router.post("/api/restart")
def post_restart(request: Request):
    controller = request.app.state.controller
    if not controller.mounted:
        raise HTTPException(status_code=409, detail="face mesh is not mounted")
    controller.restart()
    return controller.status()


@router.get("/snapshot/{which}.jpg")
def get_snapshot(which: str, request: Request):
    frame = _frame_source(request.app, which)()
    if frame is None:
        raise HTTPException(status_code=503, detail="no frame yet")
    data = encode_jpeg(frame, request.app.state.settings.jpeg_quality)
    if data is None:
        raise HTTPException(status_code=500, detail="jpeg encode failed")
    return Response(content=data, media_type="image/jpeg")


@router.get("/stream/{which}.mjpg")
def get_stream(which: str, request: Request):
    source = _frame_source(request.app, which)
    if source() is None:
        raise HTTPException(status_code=503, detail="no frame yet")
    controller = request.app.state.controller
    quality = request.app.state.settings.jpeg_quality
    interval = 1.0 / max(1, request.app.state.settings.capture_fps)

    def frames():
        while controller.mounted:
            frame = source()
            if frame is not None:
                data = encode_jpeg(frame, quality)
                if data is not None:
                    yield (b"--" + STREAM_BOUNDARY.encode() + b"\r\n"
                           b"Content-Type: image/jpeg\r\n\r\n" + data + b"\r\n")
            time.sleep(interval)

    return StreamingResponse(frames(), media_type=f"multipart/x-mixed-replace; boundary={STREAM_BOUNDARY}")


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    controller = websocket.app.state.controller
    panel = websocket.app.state.panel
    try:
        while True:
            message = await websocket.receive_text()
            # Expecting JSON messages with a type. Examples:
            # {"type": "options", "max_num_faces": 2}
            # {"type": "state"}
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                await websocket.send_text(json.dumps({"error": "invalid JSON"}))
                continue
            if not isinstance(payload, dict):
                await websocket.send_text(json.dumps({"error": "bad message format"}))
                continue

            if payload.get("type") == "state":
                await websocket.send_text(json.dumps({"type": "state", **controller.status()}))
                continue

            if payload.get("type") != "options":
                await websocket.send_text(json.dumps({"error": "bad message format"}))
                continue

            fields = {k: v for k, v in payload.items() if k != "type"}
            try:
                update = OptionsUpdate(**fields)
            except ValidationError as e:
                await websocket.send_text(json.dumps({"error": "invalid options",
                                                      "detail": json.loads(e.json())}))
                continue
            options = await run_in_threadpool(panel.set_values, update.model_dump(exclude_none=True))
            await websocket.send_text(json.dumps({"type": "options_ack", "options": options.as_dict()}))

    except WebSocketDisconnect:
        log.debug("websocket client disconnected")
        return

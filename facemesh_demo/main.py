from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from facemesh_demo.control_panel import ControlPanel, default_controls
from facemesh_demo.face_engine.controller import FaceMeshController
from facemesh_demo.face_engine.loader import load_mediapipe
from facemesh_demo.logger import configure_logging
from facemesh_demo.routes import router
from facemesh_demo.settings import Settings, load_settings


def build_controller(settings: Settings) -> FaceMeshController:
    library = load_mediapipe(camera_index=settings.camera_index, capture_fps=settings.capture_fps)
    return FaceMeshController(
        library,
        width=settings.capture_width,
        height=settings.capture_height,
        canvas_size=settings.canvas_size,
        load_timeout=settings.load_timeout_s,
    )


def create_app(controller: Optional[FaceMeshController] = None,
               settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctrl = controller or build_controller(settings)
        app.state.controller = ctrl
        app.state.panel = (
            ControlPanel(None, ctrl.options)
            .add(default_controls(ctrl.fps))
            .on(ctrl.update_options)
        )
        ctrl.mount()
        try:
            yield
        finally:
            ctrl.unmount()

    app = FastAPI(title="Face Mesh Demo", lifespan=lifespan)
    app.state.settings = settings

    # Include the router first so websocket scopes are handled by the router
    # before the StaticFiles mount. If StaticFiles sees a websocket scope it will assert
    # because it only handles HTTP scopes.
    app.include_router(router)

    # The page lives one level above the package in /frontend.
    frontend_dir = Path(__file__).resolve().parent.parent / "frontend"
    if frontend_dir.exists():
        app.mount("/", StaticFiles(directory=str(frontend_dir), html=True), name="frontend")
    return app


app = create_app()


def main():
    settings = load_settings()
    configure_logging(settings.log_level, event_log=settings.event_log)
    uvicorn.run("facemesh_demo.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    # Run with: python -m facemesh_demo.main
    main()

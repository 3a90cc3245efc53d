"""Desktop face mesh viewer.

Usage: python -m facemesh_demo.tools.webcam_facemesh [--camera 0] [--max-faces 2]
Opens the webcam input, the face mesh output and an OpenCV trackbar panel.
Press 'q' or ESC in any window to quit.
"""
import argparse
import logging

import cv2

from facemesh_demo.control_panel import ControlPanel, TrackbarPanelHost, default_controls
from facemesh_demo.face_engine.controller import FaceMeshController, LifecycleState
from facemesh_demo.face_engine.loader import load_mediapipe
from facemesh_demo.logger import configure_logging
from facemesh_demo.mesh_config import DEFAULT_OPTIONS, merge_options
from facemesh_demo.settings import load_settings

log = logging.getLogger(__name__)

INPUT_WINDOW = "Webcam Input"
OUTPUT_WINDOW = "MediaPipe Face Mesh"


def parse_args(argv=None):
    settings = load_settings()
    p = argparse.ArgumentParser(description="Live MediaPipe face mesh viewer")
    p.add_argument("--camera", type=int, default=settings.camera_index)
    p.add_argument("--size", type=int, default=settings.canvas_size, help="capture and canvas size")
    p.add_argument("--max-faces", type=int, default=DEFAULT_OPTIONS.max_num_faces)
    p.add_argument("--no-selfie", action="store_true", help="do not mirror the input")
    p.add_argument("--timeout", type=float, default=settings.load_timeout_s,
                   help="seconds to wait for mediapipe to load")
    p.add_argument("--log-level", default=settings.log_level)
    return p.parse_args(argv)


def run(args) -> int:
    options = merge_options(DEFAULT_OPTIONS, {
        "max_num_faces": args.max_faces,
        "selfie_mode": not args.no_selfie,
    })
    controller = FaceMeshController(
        load_mediapipe(camera_index=args.camera),
        options=options,
        width=args.size,
        height=args.size,
        canvas_size=args.size,
        load_timeout=args.timeout,
    )
    host = TrackbarPanelHost()
    ControlPanel(host, controller.options).add(default_controls(controller.fps)).on(controller.update_options)

    controller.mount()
    try:
        while True:
            frame = controller.input_frame()
            if frame is not None:
                cv2.imshow(INPUT_WINDOW, frame)
            output = controller.output_frame()
            if output is not None:
                cv2.imshow(OUTPUT_WINDOW, output)
            host.show()

            if controller.state is LifecycleState.FAILED:
                log.error("stopping: %s", controller.last_error)
                return 1

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q") or key == 27:
                return 0
    finally:
        controller.unmount()
        host.close()
        cv2.destroyAllWindows()


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.log_level)
    raise SystemExit(run(args))


if __name__ == "__main__":
    main()

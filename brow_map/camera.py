"""
camera.py
=========
Camera access: backend selection per platform, device probing, and a reader
thread that hands the UI loop the newest frame.

Frames are stored as captured. Mirroring is a display/export concern and is
applied by the caller from the overlay config.
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import List

import cv2

log = logging.getLogger(__name__)


def _backends() -> List[int]:
    if sys.platform.startswith("win"):
        return [cv2.CAP_MSMF, cv2.CAP_DSHOW, cv2.CAP_ANY]
    if sys.platform == "darwin":
        return [cv2.CAP_AVFOUNDATION, cv2.CAP_ANY]
    return [cv2.CAP_V4L2, cv2.CAP_ANY]


def open_camera(cam_index: int, width: int, height: int) -> cv2.VideoCapture:
    for be in _backends():
        cap = cv2.VideoCapture(cam_index, be)
        if cap.isOpened():
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
            cap.set(cv2.CAP_PROP_FPS, 30)
            try:
                cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
            except cv2.error:
                pass
            return cap
        cap.release()
    raise RuntimeError(f"Unable to open camera {cam_index}")


def list_cameras(probe: int) -> List[int]:
    found = []
    for i in range(probe):
        for be in _backends():
            tmp = cv2.VideoCapture(i, be)
            if tmp.isOpened():
                tmp.release()
                found.append(i)
                break
            tmp.release()
    return found


class FrameGrabber:
    """Keeps the newest camera frame for the UI thread.

    The reader thread overwrites a single slot, so the host never works through
    a backlog of stale frames. After `max_misses` failed reads in a row the
    thread gives up and sets `failed`, which the host treats as a lost camera.
    """

    def __init__(self, cap: cv2.VideoCapture, max_misses: int = 500):
        self.cap = cap
        self.max_misses = max_misses
        self.failed = False
        self._frame = None
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="brow_map-camera", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self, join_timeout: float = 0.5) -> None:
        self._stop.set()
        if self._thread.is_alive():
            self._thread.join(timeout=join_timeout)

    def read_latest(self):
        """Copy of the newest frame, or None before the first one arrives."""
        with self._lock:
            return None if self._frame is None else self._frame.copy()

    def _run(self) -> None:
        misses = 0
        while not self._stop.is_set():
            ok, frame = self.cap.read()
            if not ok:
                misses += 1
                if misses >= self.max_misses:
                    log.error("camera returned no frame %d times in a row, giving up", misses)
                    self.failed = True
                    return
                self._stop.wait(0.002)
                continue
            misses = 0
            with self._lock:
                self._frame = frame

from __future__ import annotations

import logging
import threading
from time import monotonic, sleep
from typing import Optional

import cv2
import numpy as np
from djitellopy import Tello

# --- CONFIG IMPORTS ---
from config.drone import (
    BATTERY_CRITICAL,
    BATTERY_WARNING,
    IDLE_SLEEP_S,
    TELEMETRY_POLL_S,
    VIDEO_STALL_TIMEOUT_S,
)

# --- LOCAL MODULES ---
from .command_generator import RCCommand, hold_command
from .debug_emitter import DebugRecord
from .sensor_snapshot import SensorSnapshot, Telemetry, parse_tof
from .session import FreeFlySession, IterationResult

logger = logging.getLogger(__name__)


class FreeFlyController:
    """
    Wires a FreeFlySession to a Tello drone (or a local camera in debug mode):
    background threads feed the sensor snapshot, the main loop runs one
    iteration per new frame and sends the resulting RC command.
    """

    def __init__(self, debug: bool = False, show_video: bool = True, takeoff: bool = False) -> None:
        self.debug = debug
        self.show_video = show_video
        self.takeoff = takeoff

        self.drone: Optional[Tello] = None
        self.frame_read = None
        self.camera: Optional[cv2.VideoCapture] = None

        self.snapshot = SensorSnapshot()
        self.session = FreeFlySession()
        self.exit_event = threading.Event()

        # Threading
        self.frame_thread: Optional[threading.Thread] = None
        self.telemetry_thread: Optional[threading.Thread] = None
        self._last_seq: int = 0
        self.last_result: Optional[IterationResult] = None

        if self.debug:
            self.camera = cv2.VideoCapture(0)
        else:
            self._connect_drone()

    def _connect_drone(self) -> None:
        """Initializes connection and video stream of the Tello drone."""
        try:
            self.drone = Tello()
            self.drone.connect()
            print(f"Battery: {self.drone.get_battery()}%")
            self.drone.streamon()
            self.frame_read = self.drone.get_frame_read()
        except Exception as e:
            logger.error("Error connecting to drone: %s", e)
            self.drone = None

    # --- Producers ---

    def _read_frame(self) -> Optional[np.ndarray]:
        """Latest decoded frame, or None when the source produced nothing usable."""
        if self.camera is not None:
            ret, frame = self.camera.read()
            return frame if ret else None
        if self.frame_read is not None:
            return self.frame_read.frame
        return None

    def _frame_pump(self) -> None:
        last = None
        while not self.exit_event.is_set():
            try:
                frame = self._read_frame()
            except Exception as e:
                logger.warning("Video read failed: %s", e)
                frame = None

            if self.camera is not None:
                # Failed webcam reads count as undecodable frames
                self.snapshot.put_frame(frame, monotonic())
                if frame is None:
                    sleep(IDLE_SLEEP_S)
            elif frame is not None and frame is not last:
                last = frame
                self.snapshot.put_frame(frame, monotonic())
            else:
                sleep(IDLE_SLEEP_S)

    def _poll_telemetry(self) -> Telemetry:
        drone = self.drone
        return Telemetry(
            tof=parse_tof(drone.get_distance_tof()),
            battery=drone.get_battery(),
            height=drone.get_height(),
            pitch=drone.get_pitch(),
            roll=drone.get_roll(),
            yaw=drone.get_yaw(),
        )

    def _telemetry_pump(self) -> None:
        while not self.exit_event.is_set():
            try:
                self.snapshot.put_telemetry(self._poll_telemetry(), monotonic())
            except Exception as e:
                logger.warning("Telemetry read failed: %s", e)
            self.exit_event.wait(TELEMETRY_POLL_S)

    def _start_threads(self) -> None:
        self.frame_thread = threading.Thread(target=self._frame_pump, daemon=True)
        self.frame_thread.start()
        if self.drone is not None:
            self.telemetry_thread = threading.Thread(target=self._telemetry_pump, daemon=True)
            self.telemetry_thread.start()

    # --- Mode control ---

    def enter(self) -> None:
        """Enters Free Fly mode."""
        self.exit_event.clear()
        now = monotonic()
        self.snapshot.mark_started(now)
        self.session.enter(now)
        if self.drone is not None and self.takeoff and not self.drone.is_flying:
            self.drone.takeoff()

    def exit(self) -> None:
        """Requests exit; observed at the next iteration boundary."""
        self.exit_event.set()

    # --- Outputs ---

    def _send(self, command: RCCommand) -> None:
        if self.drone is None:
            return
        try:
            self.drone.send_rc_control(*command.as_tuple())
        except Exception as e:
            logger.warning("RC send failed, command dropped: %s", e)

    def _check_battery(self) -> None:
        battery = self.snapshot.telemetry.battery
        if battery is None:
            return
        if battery <= BATTERY_CRITICAL:
            logger.error("Battery critical (%d%%), leaving Free Fly", battery)
            self.exit()
        elif battery <= BATTERY_WARNING:
            logger.debug("Battery low (%d%%)", battery)

    @staticmethod
    def _draw_status(frame: np.ndarray, record: DebugRecord) -> None:
        """Overlays the debug record on the frame."""
        tof = "--" if record.tof_cm is None else f"{record.tof_cm:.0f}cm"
        status_lines = [
            f"Mode: {record.mode.upper()}",
            f"Edges: {record.edge_density:.1f}  LapVar: {record.lap_var:.0f}",
            f"Div: {record.divergence:.2f}  Looming: {'YES' if record.looming else 'no'}",
            f"ToF: {tof}",
        ]
        y_pos = 30
        for text in status_lines:
            cv2.putText(frame, text, (10, y_pos), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2)
            y_pos += 25

    def _show(self, frame: Optional[np.ndarray], record: DebugRecord) -> None:
        if frame is None:
            return
        view = frame.copy()
        self._draw_status(view, record)
        cv2.imshow("Free Fly", view)
        if cv2.waitKey(1) == ord("q"):
            self.exit()

    # --- Loop ---

    def iterate(self) -> Optional[IterationResult]:
        """Runs one iteration if a new frame arrived or the video stalled."""
        now = monotonic()
        snap = self.snapshot.take(now)
        if snap.frame_seq == self._last_seq and snap.frame_age_s <= VIDEO_STALL_TIMEOUT_S:
            return None
        self._last_seq = snap.frame_seq

        result = self.session.step_snapshot(snap, now)
        self._send(result.command)
        self.last_result = result

        if self.show_video:
            self._show(snap.frame, result.record)
        return result

    def run(self) -> None:
        """Starts Free Fly and loops until exit; raises VideoStall after landing."""
        self._start_threads()
        self.enter()
        try:
            while not self.exit_event.is_set():
                if self.iterate() is None:
                    sleep(IDLE_SLEEP_S)
                    continue
                if self.session.stalled:
                    raise self.session.stall_error
                self._check_battery()
        finally:
            self._cleanup()

    def _cleanup(self) -> None:
        """Stops producers, hovers, lands and releases resources."""
        self.exit_event.set()
        self.session.exit()

        for thread in (self.frame_thread, self.telemetry_thread):
            if thread is not None and thread.is_alive():
                thread.join(timeout=2.0)

        if self.drone is not None:
            self._send(hold_command())
            try:
                if self.drone.is_flying:
                    self.drone.land()
                self.drone.streamoff()
            except Exception as e:
                logger.error("Error during drone shutdown: %s", e)

        if self.camera is not None:
            self.camera.release()
        if self.show_video:
            cv2.destroyAllWindows()


__all__ = ["FreeFlyController"]

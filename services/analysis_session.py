"""
Analysis session state.

Wraps the swing and handedness detectors for a host: refuses a second
run while one is in flight, turns failures into an error string, and
keeps the last successful result of each kind.
"""

import logging
import threading

from services.handedness import HandednessDetector
from services.swing_detector import SwingDetector

logger = logging.getLogger(__name__)

ERROR_NO_POSES = "No preprocessed poses available"
ERROR_IN_PROGRESS = "Analysis already in progress"


class AnalysisSession:
    """
    Run guard and result holder for one video.

    Attributes:
        is_analyzing: True while a run is in flight.
        error: Error message of the last run, None if it succeeded.
            A request refused because another run is in flight never
            changes it.
        swing_result: Last successful SwingDetectionResult.
        handedness_result: Last successful HandednessResult.
    """

    def __init__(self, session_id=None):
        self.session_id = session_id
        self.is_analyzing = False
        self.error = None
        self.swing_result = None
        self.handedness_result = None
        self._lock = threading.Lock()

    def _begin(self):
        with self._lock:
            if self.is_analyzing:
                return False
            self.is_analyzing = True
            return True

    def _end(self):
        with self._lock:
            self.is_analyzing = False

    def _run(self, poses, analysis):
        """
        Execute one guarded run.

        Returns:
            Tuple of (result, error); exactly one of them is None.
        """
        if not self._begin():
            return None, ERROR_IN_PROGRESS

        try:
            if not poses:
                self.error = ERROR_NO_POSES
                return None, self.error

            self.error = None
            return analysis(), None
        except Exception as e:
            logger.exception("Analysis failed for session %s", self.session_id)
            self.error = str(e) or "Analysis failed"
            return None, self.error
        finally:
            self._end()

    def run_swings(self, poses, fps, model="MoveNet", pose_index=0, config=None, tracker=None):
        """
        Detect swings and publish the result on success.

        Args:
            poses: Dict of frame index -> list of candidate poses.
            fps: Video frames per second.
            model: Keypoint topology.
            pose_index: Tracked person within each frame.
            config: SwingDetectionConfig, defaults to the standard preset.
            tracker: Optional orientation tracker.

        Returns:
            Tuple of (SwingDetectionResult or None, error message or None).
        """
        def analysis():
            detector = SwingDetector(config=config, tracker=tracker)
            result = detector.detect(poses, fps, model=model, pose_index=pose_index)
            self.swing_result = result
            return result

        return self._run(poses, analysis)

    def analyze_swings(self, *args, **kwargs):
        """Same as run_swings, returning only the result (None on failure)."""
        return self.run_swings(*args, **kwargs)[0]

    def run_handedness(self, poses, model="MoveNet", pose_index=0, config=None):
        """
        Detect the dominant hand and publish the result on success.

        Returns:
            Tuple of (HandednessResult or None, error message or None).
        """
        def analysis():
            detector = HandednessDetector(config=config)
            result = detector.detect(poses, model=model, pose_index=pose_index)
            self.handedness_result = result
            return result

        return self._run(poses, analysis)

    def analyze_handedness(self, *args, **kwargs):
        return self.run_handedness(*args, **kwargs)[0]

    def clear_results(self):
        """Drop published results and the error."""
        self.swing_result = None
        self.handedness_result = None
        self.error = None

    def to_dict(self, include_frames=False):
        return {
            "session_id": self.session_id,
            "is_analyzing": self.is_analyzing,
            "error": self.error,
            "swing_result": (
                self.swing_result.to_dict(include_frames=include_frames)
                if self.swing_result else None
            ),
            "handedness_result": (
                self.handedness_result.to_dict() if self.handedness_result else None
            ),
        }

    def __repr__(self):
        return (
            f"AnalysisSession(session_id={self.session_id}, "
            f"is_analyzing={self.is_analyzing}, error={self.error})"
        )

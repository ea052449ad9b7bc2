import argparse
import json
import logging
import os
import sys
from typing import Iterator, List, Optional

from .exercise_analysis.base_analyzer import ExerciseType
from .pose_detection.landmarks import DEFAULT_MIN_VISIBILITY, Frame, frame_from_landmarks
from .session import WorkoutResult, WorkoutSession

_ANALYZER_LOGGERS = ("SquatAnalyzer", "PushupAnalyzer", "PlankAnalyzer", "WorkoutSession")


def read_frames(path: str, min_visibility: float = DEFAULT_MIN_VISIBILITY) -> Iterator[Frame]:
    """
    Read recorded frames from a JSON-lines file.

    Each line: {"timestamp": ms, "landmarks": {"left_hip": [x, y, z, visibility], ...}}

    Raises:
        ValueError: on a malformed line
    """
    with open(path, "r") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
                yield frame_from_landmarks(record.get("landmarks", {}), float(record["timestamp"]), min_visibility)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                raise ValueError(f"{path}:{line_no}: invalid frame record ({e})") from e


def replay(exercise: str, frames: Iterator[Frame]) -> WorkoutResult:
    """Run recorded frames through a fresh workout session."""
    session = WorkoutSession(exercise)
    last_ts = None
    for frame in frames:
        if last_ts is None:
            session.start(frame.timestamp_ms)
        session.process_frame(frame)
        last_ts = frame.timestamp_ms
    if last_ts is None:
        raise ValueError("No frames to analyze")
    return session.finish(last_ts)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point: replay recorded pose frames and print the workout result."""
    parser = argparse.ArgumentParser(description="Calisthenics motion analysis - recorded frame replay")
    parser.add_argument(
        "--exercise",
        type=str,
        default=ExerciseType.SQUATS.value,
        choices=[e.value for e in ExerciseType],
        help="Exercise to analyze"
    )
    parser.add_argument('--input', type=str, required=True, help='Path to a JSON-lines file of recorded frames')
    parser.add_argument(
        "--min_visibility",
        type=float,
        default=DEFAULT_MIN_VISIBILITY,
        help="Drop landmarks at or below this visibility"
    )
    parser.add_argument("--verbose", action="store_true", help="Log phase transitions and discarded attempts")
    args = parser.parse_args(argv)

    if args.verbose:
        for name in _ANALYZER_LOGGERS:
            logging.getLogger(name).setLevel(logging.DEBUG)

    if not os.path.isfile(args.input):
        print(f"Frame file not found: {args.input}", file=sys.stderr)
        return 1

    try:
        result = replay(args.exercise, read_frames(args.input, args.min_visibility))
    except (OSError, ValueError) as e:
        print(f"Error analyzing frames: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

import pytest

from calisthenics_core.exercise_analysis.form_quality import FormQuality
from calisthenics_core.exercise_analysis.pose_utils import calculate_angle
from calisthenics_core.exercise_analysis.pushup_analyzer import PushupAnalyzer, PushupPhase
from calisthenics_core.pose_detection.landmarks import Joint

from conftest import FrameFeeder, pushup_points


def full_rep(feeder, bottom=95.0, alignment=180.0):
    for elbow in (120.0, bottom, 120.0, 170.0):
        feeder.feed(pushup_points(elbow, alignment))


class TestScenarios:
    def test_shallow_push_ups_never_count(self):
        analyzer = PushupAnalyzer()
        feeder = FrameFeeder(analyzer)
        feeder.feed(pushup_points(170.0), repeat=3)
        for _ in range(10):
            feeder.feed(pushup_points(135.0), repeat=5)
            feeder.feed(pushup_points(170.0), repeat=5)
        assert analyzer.rep_count == 0
        assert analyzer.rep_history == ()

    def test_holding_top_is_a_no_op(self):
        analyzer = PushupAnalyzer()
        feeder = FrameFeeder(analyzer)
        metrics = feeder.feed(pushup_points(170.0), repeat=200)
        assert metrics.phase.type == "up"
        assert metrics.rep_count == 0

    def test_smoothed_full_rep(self):
        analyzer = PushupAnalyzer()
        feeder = FrameFeeder(analyzer)
        feeder.feed(pushup_points(170.0), repeat=3)
        feeder.feed(pushup_points(80.0), repeat=12)
        feeder.feed(pushup_points(170.0), repeat=12)
        assert analyzer.rep_count == 1
        rep = analyzer.rep_history[0]
        assert rep.deepest_angle == pytest.approx(80.0, abs=2.0)
        assert 0.8 < rep.depth_percent <= 1.0


class TestStateMachine:
    def test_phase_sequence_and_rep_record(self, pushup_config_unsmoothed):
        analyzer = PushupAnalyzer(config=pushup_config_unsmoothed)
        feeder = FrameFeeder(analyzer, step_ms=100.0)
        phases = [feeder.feed(pushup_points(elbow)).phase.type for elbow in (170.0, 120.0, 95.0, 120.0, 170.0)]
        assert phases == ["up", "lowering", "bottom", "pushing", "up"]
        rep = analyzer.rep_history[0]
        assert rep.id == 1
        assert rep.deepest_angle == pytest.approx(95.0)
        assert rep.depth_percent == pytest.approx(85.0 / 110.0)
        assert rep.form_quality is FormQuality.GOOD
        assert rep.duration == pytest.approx(0.3)

    def test_lowering_abort_does_not_count(self, pushup_config_unsmoothed):
        analyzer = PushupAnalyzer(config=pushup_config_unsmoothed)
        feeder = FrameFeeder(analyzer)
        feeder.feed(pushup_points(170.0))
        assert feeder.feed(pushup_points(120.0)).phase.type == "lowering"
        metrics = feeder.feed(pushup_points(150.0))
        assert metrics.phase.type == "up"
        assert metrics.rep_count == 0

    def test_pushing_regression_returns_to_bottom(self, pushup_config_unsmoothed):
        analyzer = PushupAnalyzer(config=pushup_config_unsmoothed)
        feeder = FrameFeeder(analyzer)
        for elbow in (170.0, 120.0, 95.0, 120.0):
            feeder.feed(pushup_points(elbow))
        assert feeder.feed(pushup_points(99.0)).phase.type == "bottom"
        feeder.feed(pushup_points(90.0))
        feeder.feed(pushup_points(120.0))
        feeder.feed(pushup_points(170.0))
        assert analyzer.rep_count == 1
        assert analyzer.rep_history[0].deepest_angle == pytest.approx(90.0)

    def test_bottom_threshold_is_inclusive(self, pushup_config_unsmoothed):
        boundary = pushup_points(100.0)
        pushup_config_unsmoothed["phase_thresholds"]["bottom"] = calculate_angle(
            boundary[Joint.LEFT_SHOULDER], boundary[Joint.LEFT_ELBOW], boundary[Joint.LEFT_WRIST])
        analyzer = PushupAnalyzer(config=pushup_config_unsmoothed)
        feeder = FrameFeeder(analyzer)
        for elbow in (170.0, 120.0, 95.0, 120.0):
            feeder.feed(pushup_points(elbow))
        assert feeder.feed(boundary).phase.type == "bottom"

    def test_sagging_body_marks_rep_poor(self, pushup_config_unsmoothed):
        analyzer = PushupAnalyzer(config=pushup_config_unsmoothed)
        feeder = FrameFeeder(analyzer)
        feeder.feed(pushup_points(170.0))
        feeder.feed(pushup_points(120.0))
        feeder.feed(pushup_points(95.0, alignment=130.0))
        feeder.feed(pushup_points(120.0))
        feeder.feed(pushup_points(170.0))
        assert analyzer.rep_history[0].form_quality is FormQuality.POOR

    def test_rep_ids_are_contiguous(self, pushup_config_unsmoothed):
        analyzer = PushupAnalyzer(config=pushup_config_unsmoothed)
        feeder = FrameFeeder(analyzer)
        feeder.feed(pushup_points(170.0))
        for _ in range(4):
            full_rep(feeder)
        assert [rep.id for rep in analyzer.rep_history] == [1, 2, 3, 4]


class TestQuality:
    @pytest.mark.parametrize("alignment,expected", [
        (175.0, FormQuality.GOOD),
        (162.0, FormQuality.GOOD),
        (150.0, FormQuality.ACCEPTABLE),
        (130.0, FormQuality.POOR),
    ])
    def test_alignment_bands(self, pushup_config_unsmoothed, alignment, expected):
        analyzer = PushupAnalyzer(config=pushup_config_unsmoothed)
        feeder = FrameFeeder(analyzer)
        assert feeder.feed(pushup_points(170.0, alignment)).quality is expected

    def test_elbow_angle_does_not_affect_grade(self, pushup_config_unsmoothed):
        analyzer = PushupAnalyzer(config=pushup_config_unsmoothed)
        feeder = FrameFeeder(analyzer)
        assert feeder.feed(pushup_points(60.0)).quality is FormQuality.GOOD

    def test_unseen_ankles_count_as_straight(self):
        analyzer = PushupAnalyzer()
        feeder = FrameFeeder(analyzer)
        metrics = feeder.feed(pushup_points(170.0, alignment=120.0, with_ankles=False))
        assert metrics.body_detected
        assert metrics.quality is FormQuality.GOOD


class TestBodyLoss:
    def test_missing_arms_reports_not_detected(self, pushup_config_unsmoothed):
        analyzer = PushupAnalyzer(config=pushup_config_unsmoothed)
        feeder = FrameFeeder(analyzer)
        feeder.feed(pushup_points(170.0))
        feeder.feed(pushup_points(120.0))
        points = pushup_points(95.0)
        del points[Joint.LEFT_WRIST]
        del points[Joint.RIGHT_WRIST]
        metrics = feeder.feed(points)
        assert not metrics.body_detected
        assert metrics.phase.type == "notReady"
        assert metrics.quality is FormQuality.UNKNOWN
        assert metrics.depth_percent is None
        assert analyzer.phase is PushupPhase.NOT_READY

    def test_missing_hips_reports_not_detected(self):
        analyzer = PushupAnalyzer()
        feeder = FrameFeeder(analyzer)
        points = pushup_points(170.0)
        del points[Joint.LEFT_HIP]
        del points[Joint.RIGHT_HIP]
        assert not feeder.feed(points).body_detected


@pytest.mark.parametrize("elbow,expected", [(180.0, 0.0), (200.0, 0.0), (125.0, 0.5), (70.0, 1.0), (10.0, 1.0)])
def test_depth_percent_is_clamped(elbow, expected):
    assert PushupAnalyzer().depth_percent(elbow) == pytest.approx(expected)

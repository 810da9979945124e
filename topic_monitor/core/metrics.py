from __future__ import annotations

from dataclasses import dataclass, field

from topic_monitor.classifiers.markers import TeachingMarkers

GAUGES = ("clarity", "engagement", "pacing", "example_usage", "question_asking")
NEUTRAL_PRIOR = 70.0

PACING_BAND = (100.0, 160.0)
PACING_PEAK = 95.0
PACING_FLOOR = 60.0
WPM_PER_POINT = 3.0


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


def pacing_for_wpm(wpm: float) -> float:
    lo, hi = PACING_BAND
    if lo <= wpm <= hi:
        return PACING_PEAK
    distance = lo - wpm if wpm < lo else wpm - hi
    return max(PACING_FLOOR, PACING_PEAK - distance / WPM_PER_POINT)


@dataclass
class TeachingMetricsTracker:
    gauges: dict[str, float] = field(default_factory=lambda: {g: NEUTRAL_PRIOR for g in GAUGES})

    def nudge(self, gauge: str, delta: float) -> float:
        if gauge not in self.gauges:
            raise KeyError(f"unknown gauge: {gauge}")
        self.gauges[gauge] = clamp(self.gauges[gauge] + delta)
        return self.gauges[gauge]

    def set(self, gauge: str, value: float) -> float:
        if gauge not in self.gauges:
            raise KeyError(f"unknown gauge: {gauge}")
        self.gauges[gauge] = clamp(value)
        return self.gauges[gauge]

    def observe_segment(self, markers: TeachingMarkers, *, is_on_topic: bool) -> None:
        if markers.has_question:
            self.nudge("question_asking", 3)
            self.nudge("engagement", 2)
        if markers.has_example:
            self.nudge("example_usage", 4)
            self.nudge("clarity", 2)
        if markers.has_clarity_marker:
            self.nudge("clarity", 2)
        if not is_on_topic:
            self.nudge("clarity", -2)
            self.nudge("engagement", -2)

    def update_pacing(self, word_count: int, elapsed_seconds: float) -> float | None:
        if word_count <= 0 or elapsed_seconds <= 0:
            return None
        wpm = word_count / (elapsed_seconds / 60.0)
        return self.set("pacing", pacing_for_wpm(wpm))

    def snapshot(self) -> dict[str, float]:
        return {k: round(v, 2) for k, v in self.gauges.items()}

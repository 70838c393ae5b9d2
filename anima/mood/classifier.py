"""Keyword-based mood inference from assistant replies."""

from __future__ import annotations

from anima.mood.models import MoodInference, MoodState, MoodTrigger

POSITIVE_MARKERS: tuple[str, ...] = ("开心", "高兴", "太好了", "≧▽≦", "嘿嘿")
SAD_MARKERS: tuple[str, ...] = ("难过", "伤心", "呜呜", "•́︿•̀")
ANGRY_MARKERS: tuple[str, ...] = ("生气", "哼", "讨厌")
QUESTION_MARKERS: tuple[str, ...] = ("？", "什么", "为什么")


class KeywordMoodClassifier:
    """Marker-substring heuristic; the first matching group wins."""

    def __init__(
        self,
        rules: list[tuple[tuple[str, ...], MoodInference]] | None = None,
    ) -> None:
        self.rules = rules if rules is not None else default_rules()

    def classify(self, text: str) -> MoodInference | None:
        lowered = (text or "").lower()
        if not lowered:
            return None
        for markers, inference in self.rules:
            if any(marker in lowered for marker in markers):
                return inference
        return None


def default_rules() -> list[tuple[tuple[str, ...], MoodInference]]:
    return [
        (POSITIVE_MARKERS, MoodInference.from_trigger(MoodTrigger.RECEIVED_COMPLIMENT, 0.5)),
        (SAD_MARKERS, MoodInference.from_state(MoodState.SAD, 0.5)),
        (ANGRY_MARKERS, MoodInference.from_state(MoodState.ANGRY, 0.4)),
        (QUESTION_MARKERS, MoodInference.from_state(MoodState.CONFUSED, 0.3)),
    ]

import random

import pytest

from anima.mood import (
    MoodChangeEvent,
    MoodEngine,
    MoodEventChannel,
    MoodState,
    MoodTrigger,
    UnknownTriggerError,
)


class _Clock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def test_default_mood_is_calm_neutral() -> None:
    engine = MoodEngine("arona")
    snap = engine.snapshot()
    assert snap.state is MoodState.NEUTRAL
    assert snap.intensity == pytest.approx(0.5)
    assert snap.valence == 0.0
    assert engine.describe() == "情绪平静"
    info = engine.info()
    assert info["state"] == "neutral"
    assert info["displayName"] == "平静"
    assert info["isPositive"] is False
    assert info["isNegative"] is False


def test_values_stay_clamped_for_random_sequences() -> None:
    rng = random.Random(7)
    engine = MoodEngine("aris")
    triggers = list(MoodTrigger)
    states = list(MoodState)
    for _ in range(500):
        op = rng.randrange(3)
        if op == 0:
            engine.apply_trigger(rng.choice(triggers), rng.uniform(-5.0, 5.0))
        elif op == 1:
            engine.set_state(rng.choice(states), rng.uniform(-2.0, 3.0))
        else:
            engine.decay(rng.uniform(-10.0, 200.0))
        snap = engine.snapshot()
        assert 0.0 <= snap.intensity <= 1.0
        assert -1.0 <= snap.valence <= 1.0


def test_decay_with_zero_or_negative_elapsed_changes_nothing() -> None:
    engine = MoodEngine("arona")
    engine.apply_trigger(MoodTrigger.RECEIVED_FAVORITE_GIFT)
    before = engine.snapshot()
    assert engine.decay(0) is False
    assert engine.decay(-3) is False
    after = engine.snapshot()
    assert (after.state, after.intensity, after.valence) == (before.state, before.intensity, before.valence)


def test_attacks_make_angry_and_long_decay_returns_to_neutral() -> None:
    engine = MoodEngine("arona")
    events: list[MoodChangeEvent] = []
    engine.events.subscribe(events.append)

    for _ in range(5):
        engine.apply_trigger(MoodTrigger.ATTACKED)
        if engine.state is MoodState.ANGRY:
            break
    assert engine.state is MoodState.ANGRY
    assert engine.intensity >= 0.4
    assert engine.valence < 0
    assert engine.is_negative()

    assert engine.decay(1000.0) is True
    snap = engine.snapshot()
    assert snap.state is MoodState.NEUTRAL
    assert snap.valence == 0.0
    assert snap.intensity == pytest.approx(0.1)

    assert [(e.previous, e.current) for e in events] == [
        (MoodState.NEUTRAL, MoodState.ANGRY),
        (MoodState.ANGRY, MoodState.NEUTRAL),
    ]
    assert all(e.persona_id == "arona" for e in events)


def test_apply_trigger_uses_smoothing() -> None:
    engine = MoodEngine("arona")
    changed = engine.apply_trigger(MoodTrigger.GREETED)
    # valence 0 + 0.3 * 0.3; intensity lerps from 0.5 toward |valence|.
    assert engine.valence == pytest.approx(0.09)
    assert engine.intensity == pytest.approx(0.5 + (0.09 - 0.5) * 0.3)
    assert changed is False
    assert engine.state is MoodState.NEUTRAL


def test_set_state_derives_valence_and_clamps_intensity() -> None:
    engine = MoodEngine("arona")
    assert engine.set_state(MoodState.SAD, 0.5) is True
    assert engine.valence == pytest.approx(-0.3)
    engine.set_state(MoodState.HAPPY, 4.0)
    assert engine.intensity == 1.0
    assert engine.valence == pytest.approx(0.7)
    assert engine.set_state(MoodState.HAPPY, 0.6) is False


@pytest.mark.parametrize(
    ("intensity", "expected"),
    [(0.2, "轻微开心"), (0.5, "一般开心"), (0.7, "明显开心"), (0.95, "强烈开心")],
)
def test_describe_buckets_intensity(intensity: float, expected: str) -> None:
    engine = MoodEngine("arona")
    engine.set_state(MoodState.HAPPY, intensity)
    assert engine.describe() == expected


def test_unknown_trigger_id_is_a_noop() -> None:
    engine = MoodEngine("arona")
    before = engine.snapshot()
    assert engine.apply_trigger("definitely_not_a_trigger") is False
    assert engine.snapshot() == before


def test_trigger_and_state_lookup() -> None:
    assert MoodTrigger.find("ATTACKED") is MoodTrigger.ATTACKED
    assert MoodTrigger.find("nope") is None
    with pytest.raises(UnknownTriggerError):
        MoodTrigger.from_id("nope")
    assert MoodTrigger.RECEIVED_FAVORITE_GIFT.valence_delta == pytest.approx(0.8)
    assert MoodTrigger.RECEIVED_FAVORITE_GIFT.suggested_state is MoodState.EXCITED
    assert MoodState.from_id("Happy") is MoodState.HAPPY
    assert MoodState.from_id("bogus") is MoodState.NEUTRAL
    assert MoodState.ANGRY.is_negative()
    assert MoodState.SHY.is_positive()
    assert not MoodState.THINKING.is_positive()


def test_update_decays_by_clock_time() -> None:
    clock = _Clock()
    engine = MoodEngine("aris", clock=clock)
    engine.set_state(MoodState.EXCITED, 0.9)
    clock.now += 10.0
    engine.update()
    # 10s * 0.02 = 0.2 valence decay, half that on intensity.
    assert engine.intensity == pytest.approx(0.8)
    assert engine.valence == pytest.approx(0.81 - 0.2)
    assert engine.state is MoodState.EXCITED


def test_failing_listener_does_not_break_publish() -> None:
    channel = MoodEventChannel()
    seen: list[MoodChangeEvent] = []

    def boom(event: MoodChangeEvent) -> None:
        raise RuntimeError("listener bug")

    channel.subscribe(boom)
    channel.subscribe(seen.append)
    engine = MoodEngine("arona", events=channel)
    engine.set_state(MoodState.SHY, 0.6)
    assert len(seen) == 1
    assert seen[0].current is MoodState.SHY

    channel.unsubscribe(seen.append)
    channel.unsubscribe(boom)
    assert channel.listener_count == 0

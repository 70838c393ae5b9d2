import pytest

from anima.agent import ConversationalAgent
from anima.agent.context import ContextBuilder, render_perception
from anima.core.models import ChatResult
from anima.memory import MemoryStore
from anima.mood import MoodInference, MoodState
from anima.persona import Persona
from anima.persona.models import ExampleDialogue
from anima.providers import RequestThrottle


class _ScriptedCompletion:
    def __init__(self, *results: ChatResult) -> None:
        self.results = list(results)
        self.calls: list[dict] = []

    async def complete(self, messages, *, model=None, temperature=None) -> ChatResult:
        self.calls.append({"messages": messages, "model": model, "temperature": temperature})
        if not self.results:
            return ChatResult.ok("……")
        return self.results.pop(0)


class _FixedClassifier:
    def __init__(self, inference: MoodInference | None) -> None:
        self.inference = inference

    def classify(self, text: str) -> MoodInference | None:
        del text
        return self.inference


def _persona(**overrides) -> Persona:
    data = {
        "id": "hoshino",
        "name": "星野",
        "name_en": "Hoshino",
        "school": "阿拜多斯",
        "personality_traits": ["慵懒"],
        "example_dialogues": [
            ExampleDialogue(user="早上好", assistant="嗯……再睡五分钟"),
            ExampleDialogue(user="工作吧", assistant="大叔我好累啊"),
        ],
    }
    data.update(overrides)
    return Persona(**data)


def _agent(tmp_path, completion, *, throttle=None, classifier=None, persona=None, **kwargs):
    persona = persona or _persona()
    return ConversationalAgent(
        persona,
        completion=completion,
        throttle=throttle or RequestThrottle(max_concurrent=2, rate_limit_rpm=100),
        memory=MemoryStore(persona.key, tmp_path / "memory"),
        classifier=classifier or _FixedClassifier(None),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_successful_turn_updates_history_memory_and_usage(tmp_path) -> None:
    completion = _ScriptedCompletion(ChatResult.ok("嗯，早", prompt_tokens=30, completion_tokens=5))
    throttle = RequestThrottle(max_concurrent=2, rate_limit_rpm=100)
    agent = _agent(tmp_path, completion, throttle=throttle)

    result = await agent.chat("早上好")

    assert result.success is True
    assert agent.history() == [
        {"role": "user", "content": "早上好"},
        {"role": "assistant", "content": "嗯，早"},
    ]
    assert agent.memory.immediate_message_count == 2
    stats = throttle.stats()
    assert (stats.total_requests, stats.total_tokens, stats.in_flight) == (1, 35, 0)
    assert agent.state == "idle"


@pytest.mark.asyncio
async def test_failed_turn_leaves_history_and_memory_untouched(tmp_path) -> None:
    completion = _ScriptedCompletion(ChatResult.failure("upstream", "API error 500", status_code=500))
    agent = _agent(tmp_path, completion)

    result = await agent.chat("在吗")

    assert result.success is False
    assert result.error_kind == "upstream"
    assert agent.history_size == 0
    assert agent.memory.immediate_message_count == 0


@pytest.mark.asyncio
async def test_failed_first_turn_does_not_remember_mood_shift(tmp_path) -> None:
    completion = _ScriptedCompletion(ChatResult.failure("transport", "request failed: ConnectError"))
    agent = _agent(tmp_path, completion)
    agent.mood.set_state(MoodState.HAPPY, 0.9)
    agent.memory.clear_immediate()

    result = await agent.chat("你好")

    assert result.success is False
    assert agent.mood.state is MoodState.ANTICIPATING
    assert agent.memory.immediate.entry_count == 0


@pytest.mark.asyncio
async def test_successful_first_turn_remembers_mood_shift_before_dialogue(tmp_path) -> None:
    completion = _ScriptedCompletion(ChatResult.ok("嗯"))
    agent = _agent(tmp_path, completion)
    agent.mood.set_state(MoodState.HAPPY, 0.9)
    agent.memory.clear_immediate()

    await agent.chat("你好")

    entries = agent.memory.immediate.entries()
    assert [e.type for e in entries] == ["emotion", "dialogue", "dialogue"]
    assert entries[0].content == "情绪从开心变为期待"


@pytest.mark.asyncio
async def test_turn_perception_becomes_the_default(tmp_path) -> None:
    completion = _ScriptedCompletion()
    agent = _agent(tmp_path, completion)

    await agent.chat("外面怎么样", {"weather": "下雪"})
    await agent.chat("然后呢")

    assert agent.perception == {"weather": "下雪"}
    assert "- weather: 下雪" in completion.calls[1]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_throttled_turn_mutates_nothing(tmp_path) -> None:
    throttle = RequestThrottle(max_concurrent=1, rate_limit_rpm=1)
    async with throttle.admit():
        pass
    completion = _ScriptedCompletion()
    agent = _agent(tmp_path, completion, throttle=throttle)
    before = agent.mood.snapshot()

    result = await agent.chat("你好")

    assert result.success is False
    assert result.error_kind == "throttled"
    assert result.retryable is True
    assert completion.calls == []
    assert agent.history_size == 0
    after = agent.mood.snapshot()
    assert (after.state, after.intensity, after.valence) == (before.state, before.intensity, before.valence)


@pytest.mark.asyncio
async def test_few_shot_examples_only_on_first_turn(tmp_path) -> None:
    completion = _ScriptedCompletion(ChatResult.ok("一"), ChatResult.ok("二"))
    agent = _agent(tmp_path, completion)

    await agent.chat("第一句")
    await agent.chat("第二句")

    first = completion.calls[0]["messages"]
    second = completion.calls[1]["messages"]
    assert [m["role"] for m in first] == ["system", "user", "assistant", "user", "assistant", "user"]
    assert first[1]["content"] == "早上好"
    assert first[-1] == {"role": "user", "content": "第一句"}
    assert [m["content"] for m in second[1:]] == ["第一句", "一", "第二句"]


@pytest.mark.asyncio
async def test_system_prompt_carries_mood_perception_and_memory(tmp_path) -> None:
    completion = _ScriptedCompletion()
    agent = _agent(tmp_path, completion)
    agent.memory.record_event("老师带来了零食", importance=0.9)

    await agent.chat("你好", {"time": {"timeOfDay": "夜晚"}, "weather": "下雨"})

    system = completion.calls[0]["messages"][0]
    assert system["role"] == "system"
    content = system["content"]
    assert content.startswith("你是星野（Hoshino）。你来自阿拜多斯。")
    assert "【当前状态】\n- 情绪: " in content
    assert "【环境感知】\n- 时间: 夜晚\n- weather: 下雨" in content
    assert "老师带来了零食" in content


@pytest.mark.asyncio
async def test_persona_overrides_are_forwarded(tmp_path) -> None:
    completion = _ScriptedCompletion()
    persona = _persona(model_override="special-model", temperature_override=0.2)
    agent = _agent(tmp_path, completion, persona=persona)
    await agent.chat("hi")
    assert completion.calls[0]["model"] == "special-model"
    assert completion.calls[0]["temperature"] == 0.2


@pytest.mark.asyncio
async def test_history_is_trimmed_to_max_history(tmp_path) -> None:
    completion = _ScriptedCompletion(*(ChatResult.ok(f"r{i}") for i in range(3)))
    agent = _agent(tmp_path, completion, max_history=4)
    for i in range(3):
        await agent.chat(f"u{i}")
    assert [m["content"] for m in agent.history()] == ["u1", "r1", "u2", "r2"]


@pytest.mark.asyncio
async def test_reply_classification_drives_mood_and_is_remembered(tmp_path) -> None:
    completion = _ScriptedCompletion(ChatResult.ok("呜呜"))
    classifier = _FixedClassifier(MoodInference.from_state(MoodState.SAD, 0.9))
    agent = _agent(tmp_path, completion, classifier=classifier)

    await agent.chat("坏消息")

    assert agent.mood.state is MoodState.SAD
    emotions = [e for e in agent.memory.immediate.entries() if e.type == "emotion"]
    assert emotions[-1].content == "情绪从平静变为难过"
    assert emotions[-1].emotional_valence == pytest.approx(-0.6)


@pytest.mark.asyncio
async def test_end_session_saves_memory_and_resets_history(tmp_path) -> None:
    completion = _ScriptedCompletion(ChatResult.ok("再见"))
    agent = _agent(tmp_path, completion)
    await agent.chat("拜拜")
    agent.memory.record_event("约好明天一起巡逻", importance=0.8)

    assert agent.end_session() is True
    assert agent.history_size == 0
    assert agent.memory.immediate_message_count == 0
    assert agent.memory.search("巡逻")
    assert agent.memory.short_term.path.exists()


@pytest.mark.asyncio
async def test_clear_history_drops_conversation(tmp_path) -> None:
    agent = _agent(tmp_path, _ScriptedCompletion())
    await agent.chat("hello")
    agent.clear_history()
    assert agent.has_active_session is False
    assert agent.memory.immediate_message_count == 0


def test_render_perception_sections() -> None:
    assert render_perception(None) == ""
    assert render_perception({"nested": {"ignored": True}}) == ""
    rendered = render_perception(
        {
            "time": {"timeOfDay": "黄昏"},
            "player": {"position": "(1, 64, 2)", "heldItem": "面包"},
            "nearbyEntities": [{"type": "cat"}, {"type": "dog"}],
        }
    )
    assert rendered.splitlines() == [
        "【环境感知】",
        "- 时间: 黄昏",
        "- 玩家位置: (1, 64, 2)",
        "- 玩家手持: 面包",
        "- 附近实体: 2个",
    ]


def test_context_builder_omits_empty_sections() -> None:
    builder = ContextBuilder(_persona(system_prompt="你是星野。"))
    prompt = builder.build_system_prompt(mood_description="情绪平静")
    assert prompt == "你是星野。\n\n【当前状态】\n- 情绪: 情绪平静"

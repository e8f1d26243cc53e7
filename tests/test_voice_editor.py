import asyncio
import pytest
from deslop.models.schema import Query, Resolution
from deslop.services.annotator import Annotator, LLMAnnotator, RuleBasedAnnotator
from deslop.services.voice_editor import MSG_NO_FLAGS, VoiceEditorService, apply_resolutions, resolve
from deslop.utils.span_locator import locate_all


class StaticAnnotator:
    def __init__(self, queries):
        self.queries = queries

    async def annotate(self, text, native_language):
        return list(self.queries)


TEXT = "Certainly! The plan “works” well. It’s worth noting that costs rose."


class TestVoiceEditorService:
    """분석 → 위치 탐색 → 세그먼트 테스트"""

    def test_analyze_counts_and_message(self):
        queries = [
            Query(id="ann_0", text="Certainly!", proposed_rewrite=""),
            Query(id="ann_1", text='The plan "works" well.', proposed_rewrite="The plan works."),
            Query(id="ann_2", text="never in the text at all"),
        ]
        res = asyncio.run(VoiceEditorService(StaticAnnotator(queries)).analyze(TEXT, "Korean"))
        assert res.total == 3
        assert res.located_count == 2
        assert res.message == "Analysis complete. Matched 2 of 3 flags."
        assert [q.id for q in res.unlocated] == ["ann_2"]
        assert "".join(s.text for s in res.segments) == TEXT

    def test_no_flags(self):
        res = asyncio.run(VoiceEditorService(StaticAnnotator([])).analyze(TEXT))
        assert res.message == MSG_NO_FLAGS
        assert [s.kind for s in res.segments] == ["text"]

    def test_nothing_located(self):
        res = asyncio.run(VoiceEditorService(StaticAnnotator([Query(id="a", text="zzzz yyyy")])).analyze(TEXT))
        assert res.located_count == 0
        assert res.message.startswith("Matching failed!")


class TestResolve:
    """플래그 구간 처리(수락/직접수정/무시/삭제) 테스트"""

    def setup_method(self):
        queries = [
            Query(id="ann_0", text="Certainly! "),
            Query(id="ann_1", text="The plan “works” well.", proposed_rewrite="It works."),
            Query(id="ann_2", text="It's worth noting that costs rose."),
        ]
        self.analysis = asyncio.run(VoiceEditorService(StaticAnnotator(queries)).analyze(TEXT))

    def test_unresolved_keeps_text(self):
        revised, remaining = apply_resolutions(self.analysis.segments, {})
        assert revised == TEXT
        assert remaining == 3

    def test_mixed_actions(self):
        out = resolve(TEXT, self.analysis.segments, {
            "ann_0": Resolution(action="delete"),
            "ann_1": Resolution(action="accept"),
            "ann_2": Resolution(action="own", text="Costs rose."),
        })
        assert out.revised_text == " It works. Costs rose."
        assert out.remaining == 0
        ops = out.diff.ops
        assert "".join(op.token for op in ops if op.kind != "insert") == TEXT
        assert "".join(op.token for op in ops if op.kind != "delete") == out.revised_text

    def test_dismiss(self):
        out = resolve(TEXT, self.analysis.segments, {"ann_1": Resolution(action="dismiss")})
        assert out.revised_text == TEXT
        assert out.remaining == 2
        assert all(op.kind == "equal" for op in out.diff.ops)

    def test_own_requires_text(self):
        with pytest.raises(ValueError):
            resolve(TEXT, self.analysis.segments, {"ann_2": Resolution(action="own")})

    def test_segments_must_rebuild_base_text(self):
        with pytest.raises(ValueError):
            resolve(TEXT + " extra", self.analysis.segments, {})

    def test_repeated_quotes_without_ids_resolve_independently(self):
        text = "Certainly! A. Certainly! B."
        located = locate_all(text, [Query(text="Certainly!"), Query(text="Certainly!")])
        out = resolve(text, located.segments, {"ann_0": Resolution(action="delete")})
        assert out.revised_text == " A. Certainly! B."
        assert out.remaining == 1


class TestAnnotators:
    """Annotator 구현체 테스트"""

    def test_rule_based(self):
        text = "Certainly! It's worth noting that the plan works. In conclusion, ship it."
        queries = asyncio.run(RuleBasedAnnotator().annotate(text, "English"))
        assert [q.text for q in queries] == ["Certainly!", "It's worth noting that", "In conclusion,"]
        assert [q.id for q in queries] == ["ann_0", "ann_1", "ann_2"]
        assert isinstance(RuleBasedAnnotator(), Annotator)

    def test_llm_annotator_parses_payload(self, fake_llm):
        client = fake_llm(lambda system, user: '```json\n[{"type": "robotic", "text": "Certainly!"}, {"text": 3}]\n```')
        queries = asyncio.run(LLMAnnotator(client).annotate("Certainly! Yes.", "Korean"))
        assert [(q.id, q.text, q.kind) for q in queries] == [("ann_0", "Certainly!", "robotic")]
        assert "Target Native Language: Korean" in client.calls[0]["user"]
        assert "Certainly! Yes." in client.calls[0]["user"]

    def test_llm_annotator_garbage_is_zero_queries(self, fake_llm):
        client = fake_llm(lambda system, user: "I could not find anything.")
        assert asyncio.run(LLMAnnotator(client).annotate("text", "English")) == []

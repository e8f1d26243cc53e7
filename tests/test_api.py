import pytest
from fastapi.testclient import TestClient
from deslop.api.endpoints import get_annotator, get_cleaner, get_rewriter
from deslop.main import app
from deslop.services.annotator import RuleBasedAnnotator
from deslop.services.cleaner import CleanerService
from deslop.services.rewriter import RewriterService

client = TestClient(app)

class TestAPIEndpoints:
    """API 엔드포인트 테스트 클래스"""

    def teardown_method(self):
        app.dependency_overrides.clear()

    def test_root_endpoint(self):
        """루트 엔드포인트 테스트"""
        response = client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert "message" in body
        assert body["version"]

    def test_health_check(self):
        """헬스 체크 엔드포인트 테스트"""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_locate_missing_fields(self):
        """위치 탐색 - 필드 누락 테스트"""
        response = client.post("/api/v1/locate", json={})
        assert response.status_code == 422

    def test_locate(self):
        """위치 탐색 - 스마트 따옴표/중복 인용"""
        payload = {
            "base_text": "He said “hello” to her. He said “hello” to her.",
            "queries": [
                {"id": "ann_0", "text": 'He said "hello" to her.'},
                {"id": "ann_1", "text": 'He said "hello" to her.'},
                {"id": "ann_2", "text": "nowhere to be found"},
            ],
        }
        response = client.post("/api/v1/locate", json=payload)
        assert response.status_code == 200
        body = response.json()
        assert body["located_count"] == 2
        assert body["total"] == 3
        assert [s["offset"] for s in body["spans"]] == [0, 24]
        assert [q["id"] for q in body["unlocated"]] == ["ann_2"]
        assert "".join(s["text"] for s in body["segments"]) == payload["base_text"]

    def test_diff_json(self):
        """diff - JSON 응답"""
        response = client.post("/api/v1/diff", json={"original": "fast brown fox", "revised": "fast red fox"})
        assert response.status_code == 200
        body = response.json()
        assert [op["kind"] for op in body["ops"]] == ["equal", "equal", "insert", "delete", "equal", "equal"]
        assert body["approximate"] is False
        assert body["revised_spans"] == [{"start": 5, "end": 8, "text": "red"}]

    def test_diff_markdown(self):
        """diff - 마크다운 보고서"""
        response = client.post(
            "/api/v1/diff?format=markdown",
            json={"original": "fast brown fox", "revised": "fast red fox"},
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert "fast **red**~~brown~~ fox" in response.text

    def test_voice_analyze_with_rules(self):
        """보이스 분석 - 규칙 기반 annotator"""
        app.dependency_overrides[get_annotator] = lambda: RuleBasedAnnotator()
        response = client.post("/api/v1/voice/analyze", json={"text": "Certainly! The plan works."})
        assert response.status_code == 200
        body = response.json()
        assert body["located_count"] == 1
        assert body["segments"][0]["kind"] == "span"
        assert body["segments"][0]["text"] == "Certainly!"

    def test_voice_analyze_empty_text(self):
        """보이스 분석 - 빈 텍스트"""
        app.dependency_overrides[get_annotator] = lambda: RuleBasedAnnotator()
        response = client.post("/api/v1/voice/analyze", json={"text": ""})
        assert response.status_code == 422

    def test_voice_analyze_without_llm_config(self):
        """API 키가 없으면 503, 설정되어 있으면 200/500"""
        response = client.post("/api/v1/voice/analyze", json={"text": "Certainly! Yes."})
        assert response.status_code in [200, 500, 503]

    def test_voice_resolve(self):
        """보이스 - 구간 처리 후 diff"""
        app.dependency_overrides[get_annotator] = lambda: RuleBasedAnnotator()
        text = "Certainly! The plan works."
        analysis = client.post("/api/v1/voice/analyze", json={"text": text}).json()
        response = client.post("/api/v1/voice/resolve", json={
            "base_text": text,
            "segments": analysis["segments"],
            "resolutions": {"ann_0": {"action": "delete"}},
        })
        assert response.status_code == 200
        body = response.json()
        assert body["revised_text"] == " The plan works."
        assert body["remaining"] == 0

    def test_voice_resolve_own_without_text(self):
        """보이스 - 직접수정 텍스트 누락은 400"""
        app.dependency_overrides[get_annotator] = lambda: RuleBasedAnnotator()
        text = "Certainly! The plan works."
        analysis = client.post("/api/v1/voice/analyze", json={"text": text}).json()
        response = client.post("/api/v1/voice/resolve", json={
            "base_text": text,
            "segments": analysis["segments"],
            "resolutions": {"ann_0": {"action": "own"}},
        })
        assert response.status_code == 400

    def test_locate_then_resolve_without_ids(self):
        """위치 탐색 - id 없는 중복 인용도 span별로 처리"""
        text = "Certainly! A. Certainly! B."
        located = client.post("/api/v1/locate", json={
            "base_text": text,
            "queries": [{"text": "Certainly!"}, {"text": "Certainly!"}],
        }).json()
        assert [s["source_query"]["id"] for s in located["spans"]] == ["ann_0", "ann_1"]
        response = client.post("/api/v1/voice/resolve", json={
            "base_text": text,
            "segments": located["segments"],
            "resolutions": {"ann_0": {"action": "delete"}},
        })
        assert response.status_code == 200
        assert response.json()["revised_text"] == " A. Certainly! B."
        assert response.json()["remaining"] == 1

    def test_voice_resolve_mismatched_segments(self):
        """보이스 - 세그먼트가 원문과 다르면 400"""
        response = client.post("/api/v1/voice/resolve", json={
            "base_text": "Something else entirely.",
            "segments": [{"kind": "text", "start": 0, "end": 5, "text": "Hello"}],
            "resolutions": {},
        })
        assert response.status_code == 400

    def test_voice_rewrites(self, fake_llm):
        """보이스 - 재작성 제안"""
        llm = fake_llm(lambda system, user: '["Yes."]')
        app.dependency_overrides[get_rewriter] = lambda: RewriterService(llm)
        response = client.post("/api/v1/voice/rewrites", json={"queries": [{"id": "ann_0", "text": "Certainly!"}]})
        assert response.status_code == 200
        assert response.json()["queries"][0]["proposed_rewrite"] == "Yes."

    def test_phrase_help_bad_payload(self, fake_llm):
        """구절 도움말 - 모델 응답 파싱 실패는 500"""
        llm = fake_llm(lambda system, user: "no json here")
        app.dependency_overrides[get_rewriter] = lambda: RewriterService(llm)
        response = client.post("/api/v1/voice/phrase-help", json={"selection": "Proceed forthwith"})
        assert response.status_code == 500
        assert "error_id" in response.json()["detail"]

    def test_clean(self, fake_llm):
        """정리 패스"""
        llm = fake_llm(lambda system, user: user.replace("Certainly! ", ""))
        app.dependency_overrides[get_cleaner] = lambda: CleanerService(llm)
        response = client.post("/api/v1/clean", json={"text": "Certainly! Done.", "tier": "deep"})
        assert response.status_code == 200
        body = response.json()
        assert body["cleaned"] == "Done."
        assert body["citations_protected"] == 0

    @pytest.mark.parametrize("payload", [{}, {"text": "x", "tier": "extreme"}, {"text": "x", "mode": "poetry"}])
    def test_clean_invalid_request(self, payload, fake_llm):
        """정리 패스 - 잘못된 요청"""
        app.dependency_overrides[get_cleaner] = lambda: CleanerService(fake_llm(lambda system, user: user))
        response = client.post("/api/v1/clean", json=payload)
        assert response.status_code == 422

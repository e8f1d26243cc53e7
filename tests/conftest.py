import pytest


class FakeLLMClient:
    """LLMClient 대역. handler(system, user) -> str, 호출 기록 보관."""

    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    async def complete(self, system, user, temperature=0.1, max_tokens=1024):
        self.calls.append({"system": system, "user": user, "temperature": temperature})
        return self.handler(system, user)


@pytest.fixture
def fake_llm():
    def _make(handler):
        return FakeLLMClient(handler)
    return _make

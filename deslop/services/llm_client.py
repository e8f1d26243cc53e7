import asyncio
from typing import Dict, Literal, Optional

import google.generativeai as genai
import httpx
from openai import AsyncOpenAI

from deslop.config import settings
from deslop.utils.logger import logger

Provider = Literal["openai", "gemini"]


class LLMClient:
    """
    Chat-completion provider abstraction.
    - provider = "openai": OpenAI-compatible endpoint (settings.llm_base_url)
    - provider = "gemini": google-generativeai, REST fallback over httpx

    expose:
      - complete(system, user, temperature, max_tokens) -> str
    """

    def __init__(self, provider: Optional[Provider] = None):
        self.provider: Provider = provider or settings.llm_provider  # type: ignore[assignment]
        self.timeout = settings.llm_timeout_sec

        if self.provider == "gemini":
            if not settings.gemini_api_key:
                raise ValueError("GEMINI_API_KEY가 설정되어야 합니다.")
            genai.configure(api_key=settings.gemini_api_key)
            self.model_name = settings.gemini_model
            self.model = genai.GenerativeModel(self.model_name)
            self.api_key = settings.gemini_api_key
            self.client = None
        else:  # "openai"
            if not settings.llm_api_key:
                raise ValueError("LLM_API_KEY가 설정되어야 합니다.")
            self.client = AsyncOpenAI(
                api_key=settings.llm_api_key,
                base_url=settings.llm_base_url,
                timeout=self.timeout,
            )
            self.model_name = settings.llm_model
            self.model = None

    # ---------- openai ----------
    async def _openai_complete(self, system: str, user: str, temperature: float, max_tokens: int) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": user})
        resp = await self.client.chat.completions.create(
            model=self.model_name,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        msg = resp.choices[0].message
        # 일부 reasoning 모델은 content 대신 reasoning_content에 답을 둔다
        return (msg.content or getattr(msg, "reasoning_content", None) or "").strip()

    # ---------- gemini ----------
    def _gemini_prompt(self, system: str, user: str) -> str:
        return f"{system}\n\n{user}" if system else user

    async def _genai_generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        def _call():
            resp = self.model.generate_content(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    temperature=temperature, max_output_tokens=max_tokens,
                ),
            )
            return (resp.text or "").strip()
        return await asyncio.to_thread(_call)  # non-blocking

    def _rest_payload(self, prompt: str, temperature: float, max_tokens: int) -> Dict:
        return {"contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens}}

    async def _rest_generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        url = f"https://generativelanguage.googleapis.com/v1beta/models/{self.model_name}:generateContent"
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(url, headers=headers, json=self._rest_payload(prompt, temperature, max_tokens))
            r.raise_for_status()
            data = r.json()
            return data["candidates"][0]["content"]["parts"][0]["text"].strip()

    async def _gemini_complete(self, system: str, user: str, temperature: float, max_tokens: int) -> str:
        prompt = self._gemini_prompt(system, user)
        try:
            return await self._genai_generate(prompt, temperature, max_tokens)
        except Exception as e:
            logger.warning(f"[llm] gRPC failed; falling back to REST: {e}")
            return await self._rest_generate(prompt, temperature, max_tokens)

    async def complete(self, system: str, user: str, temperature: float = 0.1, max_tokens: int = 1024) -> str:
        logger.debug(f"[llm] start provider={self.provider} model={self.model_name} len={len(user)}")
        if self.provider == "gemini":
            out = await self._gemini_complete(system, user, temperature, max_tokens)
        else:
            out = await self._openai_complete(system, user, temperature, max_tokens)
        logger.debug(f"[llm] done  resp_len={len(out)}")
        return out

import asyncio
from typing import List, Optional

from deslop.config import settings
from deslop.models.schema import CleanRequest, CleanResponse
from deslop.packs.loader import load_pack
from deslop.services.llm_client import LLMClient
from deslop.services.payload_parser import extract_json_array
from deslop.utils import citations
from deslop.utils.diff import word_diff
from deslop.utils.logger import logger


class CleanerService:
    """[mode][tier] 프롬프트로 전체 텍스트 정리. 인용은 토큰으로 보호 후 복원."""

    def __init__(self, client: Optional[LLMClient] = None):
        self.client = client or LLMClient()
        self.pack = load_pack(settings.prompt_pack)
        self.temperature = settings.clean_temperature
        self.max_tokens = settings.clean_max_tokens

    async def extract_citations(self, text: str, styles: Optional[List[str]] = None) -> List[str]:
        hint = self.pack.citation_hint(styles if styles is not None else settings.citation_styles)
        if not hint:
            return []
        system = self.pack.render("citation_extract", hint=hint)
        raw = await self.client.complete(system, text, temperature=0, max_tokens=settings.citation_max_tokens)
        return citations.unique_citations(extract_json_array(raw))

    async def clean(self, req: CleanRequest) -> CleanResponse:
        text = req.text.strip()
        to_send, mapping = text, {}
        if req.protect_citations:
            found = await self.extract_citations(text)
            to_send, mapping = citations.protect(text, found)
            logger.info(f"[clean] citations protected={len(mapping)}")

        system = (req.custom_prompt or "").strip() or self.pack.cleaning_prompt(req.mode, req.tier)
        raw = await self.client.complete(system, to_send, temperature=self.temperature, max_tokens=self.max_tokens)
        cleaned = citations.restore(raw, mapping).strip()

        # 큰 입력의 LCS 테이블은 스레드로 오프로딩
        diff = await asyncio.to_thread(word_diff, text, cleaned, settings.diff_max_cells)
        logger.info(
            f"[clean] ok | mode={req.mode} tier={req.tier} in_len={len(text)} out_len={len(cleaned)} "
            f"approx_diff={diff.approximate}"
        )
        return CleanResponse(original=text, cleaned=cleaned, citations_protected=len(mapping), diff=diff)

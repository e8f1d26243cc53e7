from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from deslop.api.endpoints import router
from deslop.config import settings
from deslop.utils.logger import logger

DESCRIPTION = """
AI 문체(슬롭) 편집 도구 API.

- **/locate**: annotator가 돌려준 근사 인용을 원문 offset에 고정하고 텍스트/플래그 세그먼트로 분할
- **/diff**: 공백을 보존하는 단어 단위 LCS diff (json | markdown | plain)
- **/voice/\\***: 분석 → 플래그별 수락/직접수정/무시/삭제 → 수정본 diff, 재작성 제안, 구절 도움말
- **/clean**: [mode][tier] 프롬프트 정리 패스, 인용은 토큰으로 보호 후 복원
"""

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description=DESCRIPTION,
)

# 데스크톱 셸/로컬 UI에서 호출하므로 origin 제한 없음
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")

logger.info(
    f"app ready | provider={settings.llm_provider} annotator={settings.annotator_backend} "
    f"pack={settings.prompt_pack} diff_max_cells={settings.diff_max_cells}"
)

@app.get("/")
async def root():
    return {
        "message": f"{settings.api_title} running",
        "version": settings.api_version,
        "annotator": settings.annotator_backend,
    }

@app.get("/health")
async def health():
    return {"status": "ok"}

# deslop/api/endpoints.py
import asyncio
import uuid
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query as QueryParam
from fastapi.responses import PlainTextResponse

from deslop.config import settings
from deslop.models.schema import (
    AnalyzeRequest,
    AnalyzeResponse,
    CleanRequest,
    CleanResponse,
    DiffRequest,
    DiffResult,
    LocateRequest,
    LocateResult,
    PhraseHelpRequest,
    PhraseHelpResponse,
    ResolveRequest,
    ResolveResponse,
    RewriteRequest,
    RewriteResponse,
)
from deslop.services.annotator import Annotator, LLMAnnotator, RuleBasedAnnotator
from deslop.services.cleaner import CleanerService
from deslop.services.llm_client import LLMClient
from deslop.services.rewriter import RewriterService
from deslop.services.voice_editor import VoiceEditorService, resolve
from deslop.utils.diff import render_markdown, word_diff
from deslop.utils.logger import logger
from deslop.utils.span_locator import locate_all

router = APIRouter()


# --------------------------- 의존성 (지연 생성) ---------------------------

@lru_cache()
def _llm_client() -> LLMClient:
    return LLMClient()

def get_llm_client() -> LLMClient:
    try:
        return _llm_client()
    except ValueError as e:
        # API 키 미설정
        raise HTTPException(status_code=503, detail=str(e))

def get_annotator() -> Annotator:
    if settings.annotator_backend == "rules":
        return RuleBasedAnnotator()
    return LLMAnnotator(get_llm_client())

def get_voice_editor(annotator: Annotator = Depends(get_annotator)) -> VoiceEditorService:
    return VoiceEditorService(annotator)

def get_rewriter() -> RewriterService:
    return RewriterService(get_llm_client())

def get_cleaner() -> CleanerService:
    return CleanerService(get_llm_client())


# --------------------------- 공통 유틸 ---------------------------

def _server_error(op: str) -> HTTPException:
    err_id = str(uuid.uuid4())
    logger.exception(f"{op} failed | error_id={err_id}")
    return HTTPException(
        status_code=500,
        detail=f"{op} failed. error_id: {err_id}",
    )

def _diff_report(res: DiffResult) -> str:
    lines = ["# Diff Report"]
    ins = sum(1 for op in res.ops if op.kind == "insert" and not op.token.isspace())
    dels = sum(1 for op in res.ops if op.kind == "delete" and not op.token.isspace())
    lines.append(f"- **Inserted words:** {ins}  |  **Deleted words:** {dels}")
    if res.approximate:
        lines.append("- *Input too large for a full diff; changes are not shown.*")
    lines.append("\n---\n")
    lines.append(render_markdown(res.ops))
    return "\n".join(lines)


# --------------------------- core ---------------------------

@router.post("/locate", response_model=LocateResult)
async def locate_spans(request: LocateRequest):
    """기준 텍스트 + 근사 인용 목록 → 세그먼트 스트림과 매칭 개수."""
    try:
        res = locate_all(request.base_text, request.queries)
        logger.info(f"locate ok | queries={res.total} located={res.located_count}")
        return res
    except Exception:
        raise _server_error("locate")


@router.post("/diff")
async def diff_texts(
    request: DiffRequest,
    format: str = QueryParam("json", description="응답 형식: json|markdown|plain"),
):
    """
    단어 단위 diff.
    format:
      - json     → DiffResult
      - markdown → ~~삭제~~ / **삽입** 보고서(text/markdown)
      - plain    → 같은 보고서(text/plain)
    """
    try:
        res = await asyncio.to_thread(word_diff, request.original, request.revised, settings.diff_max_cells)
    except Exception:
        raise _server_error("diff")
    if format.lower() == "json":
        return res
    md = _diff_report(res)
    if format.lower() == "markdown":
        return PlainTextResponse(md, media_type="text/markdown; charset=utf-8")
    return PlainTextResponse(md, media_type="text/plain; charset=utf-8")


# --------------------------- voice editor ---------------------------

@router.post("/voice/analyze", response_model=AnalyzeResponse)
async def voice_analyze(request: AnalyzeRequest, editor: VoiceEditorService = Depends(get_voice_editor)):
    try:
        return await editor.analyze(request.text, request.native_language or settings.native_language)
    except Exception:
        raise _server_error("voice analyze")


@router.post("/voice/resolve", response_model=ResolveResponse)
async def voice_resolve(request: ResolveRequest):
    try:
        return await asyncio.to_thread(
            resolve, request.base_text, request.segments, request.resolutions)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        raise _server_error("voice resolve")


@router.post("/voice/rewrites", response_model=RewriteResponse)
async def voice_rewrites(request: RewriteRequest, rewriter: RewriterService = Depends(get_rewriter)):
    try:
        return RewriteResponse(queries=await rewriter.suggest_rewrites(request.queries, request.mode))
    except Exception:
        raise _server_error("voice rewrites")


@router.post("/voice/phrase-help", response_model=PhraseHelpResponse)
async def voice_phrase_help(request: PhraseHelpRequest, rewriter: RewriterService = Depends(get_rewriter)):
    try:
        return await rewriter.phrase_help(request.selection, request.context, request.native_language or "")
    except Exception:
        raise _server_error("phrase help")


# --------------------------- cleaning pass ---------------------------

@router.post("/clean", response_model=CleanResponse)
async def clean_text(request: CleanRequest, cleaner: CleanerService = Depends(get_cleaner)):
    try:
        return await cleaner.clean(request)
    except Exception:
        raise _server_error("clean")

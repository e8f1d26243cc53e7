# deslop/services/voice_editor.py
from typing import Dict, List

from deslop.config import settings
from deslop.models.schema import AnalyzeResponse, Resolution, ResolveResponse, Segment
from deslop.services.annotator import Annotator
from deslop.utils.diff import word_diff
from deslop.utils.logger import logger
from deslop.utils.span_locator import locate_all

MSG_NO_FLAGS = "No AI patterns found. Text sounds natural."

def status_message(located: int, total: int) -> str:
    if total == 0:
        return MSG_NO_FLAGS
    if located == 0:
        return (f"Matching failed! Found {total} patterns, but couldn't pin them to the text "
                "(the annotator returned different text than the source).")
    return f"Analysis complete. Matched {located} of {total} flags."

def _resolved_text(seg: Segment, res: Resolution) -> str:
    q = seg.span.source_query
    if res.action == "accept":
        return q.proposed_rewrite
    if res.action == "own":
        return res.text or ""
    if res.action == "delete":
        return ""
    return seg.text  # dismiss

def apply_resolutions(segments: List[Segment], resolutions: Dict[str, Resolution]):
    """
    세그먼트 스트림을 이어 붙여 수정본을 만든다.
    결정이 없는 span은 원문 그대로 두고 남은 개수로 센다.
    returns (revised_text, remaining)
    """
    parts: List[str] = []
    remaining = 0
    for seg in segments:
        if seg.kind == "text" or seg.span is None:
            parts.append(seg.text)
            continue
        res = resolutions.get(seg.span.source_query.id)
        if res is None:
            parts.append(seg.text)
            remaining += 1
        else:
            parts.append(_resolved_text(seg, res))
    return "".join(parts), remaining

def resolve(base_text: str, segments: List[Segment], resolutions: Dict[str, Resolution]) -> ResolveResponse:
    # 세그먼트는 base_text를 빈틈없이 나눈 것이어야 diff 기준이 맞다
    if "".join(seg.text for seg in segments) != base_text:
        raise ValueError("segments do not reconstruct base_text")
    for res in resolutions.values():
        if res.action == "own" and res.text is None:
            raise ValueError("resolution 'own' requires text")
    revised, remaining = apply_resolutions(segments, resolutions)
    diff = word_diff(base_text, revised, max_cells=settings.diff_max_cells)
    logger.info(f"[voice] resolve ok | resolved={len(resolutions)} remaining={remaining}")
    return ResolveResponse(revised_text=revised, remaining=remaining, diff=diff)


class VoiceEditorService:
    """Annotate → locate → segment stream with match counts."""

    def __init__(self, annotator: Annotator):
        self.annotator = annotator

    async def analyze(self, text: str, native_language: str = "") -> AnalyzeResponse:
        queries = await self.annotator.annotate(text, native_language or settings.native_language)
        result = locate_all(text, queries)
        for q in result.unlocated:
            logger.warning(f"[voice] could not locate annotation id={q.id} len={len(q.text)}")
        logger.info(
            f"[voice] analyze ok | flags={result.total} located={result.located_count} "
            f"placed={len(result.spans)} dropped={len(result.overlapping)}"
        )
        return AnalyzeResponse(
            base_text=text,
            segments=result.segments,
            unlocated=result.unlocated,
            located_count=result.located_count,
            total=result.total,
            message=status_message(result.located_count, result.total),
        )


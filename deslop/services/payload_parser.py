# deslop/services/payload_parser.py
"""
Boundary parsing for model output.

Anything that is not the expected shape becomes an empty result instead of
an error: a non-array payload is zero queries, an entry whose ``text`` is
not a non-empty string is dropped, and optional fields of the wrong type
fall back to their defaults.
"""
import json
import re
from typing import Any, List, Optional

from pydantic import BaseModel, ValidationError, field_validator

from deslop.models.schema import Query
from deslop.utils.logger import logger

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```$")
_ARRAY_OF_OBJECTS_RE = re.compile(r"\[\s*\{.*\}\s*\]", re.DOTALL)


class _AnnotationSchema(BaseModel):
    text: str
    type: str = "flagged"
    reason: str = ""
    translation: str = ""
    suggestion: str = ""

    @field_validator("text")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("empty text")
        return v

    @field_validator("type", "reason", "translation", "suggestion", mode="before")
    @classmethod
    def _str_or_default(cls, v: Any, info) -> str:
        if isinstance(v, str) and v:
            return v
        return "flagged" if info.field_name == "type" else ""


def strip_fences(raw: str) -> str:
    s = (raw or "").strip()
    s = _FENCE_OPEN_RE.sub("", s)
    return _FENCE_CLOSE_RE.sub("", s).strip()

def _loads(s: str) -> Optional[Any]:
    try:
        return json.loads(s)
    except (json.JSONDecodeError, TypeError):
        return None

def extract_json_array(raw: str) -> List[Any]:
    """첫 '[' ~ 마지막 ']' 구간 우선, 실패하면 펜스 제거 후 재시도, 마지막으로 정규식."""
    s = (raw or "").strip()
    start, end = s.find("["), s.rfind("]")
    candidate = s[start:end + 1] if (start != -1 and end > start) else strip_fences(s)
    data = _loads(candidate)
    if data is None:
        m = _ARRAY_OF_OBJECTS_RE.search(s)
        data = _loads(m.group(0)) if m else None
    if not isinstance(data, list):
        if data is None:
            logger.warning(f"[parse] JSON array parse failed | raw_len={len(s)}")
        return []
    return data

def parse_annotations(raw: Any) -> List[Query]:
    """Annotator 응답(문자열 또는 이미 파싱된 리스트) → Query 목록. id는 ann_<i>."""
    items = raw if isinstance(raw, list) else extract_json_array(raw if isinstance(raw, str) else "")
    queries: List[Query] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            parsed = _AnnotationSchema(**item)
        except ValidationError:
            continue
        queries.append(
            Query(
                id=f"ann_{len(queries)}",
                text=parsed.text,
                kind=parsed.type,
                rationale=parsed.reason,
                proposed_rewrite=parsed.suggestion,
                translation=parsed.translation,
            )
        )
    dropped = len(items) - len(queries)
    if dropped:
        logger.info(f"[parse] dropped malformed annotations={dropped} kept={len(queries)}")
    return queries

def parse_string_array(raw: str) -> List[str]:
    """모델이 돌려준 JSON 문자열 배열. 문자열이 아닌 항목은 버린다."""
    data = _loads(strip_fences(raw))
    if not isinstance(data, list):
        return []
    return [x for x in data if isinstance(x, str)]

def parse_json_object(raw: str) -> dict:
    data = _loads(strip_fences(raw))
    if not isinstance(data, dict):
        m = re.search(r"\{[\s\S]*\}", raw or "")
        data = _loads(m.group(0)) if m else None
    if not isinstance(data, dict):
        raise ValueError("LLM JSON parse failed")
    return data

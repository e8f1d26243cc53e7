# deslop/models/schema.py
from typing import List, Literal, Optional, Dict
from pydantic import BaseModel, ConfigDict, Field

from deslop.config import CleanMode, CleanTier, settings

# ==================== core ====================

class Query(BaseModel):
    """Annotator가 돌려준 플래그 한 건. 생성 후 변경 불가."""
    model_config = ConfigDict(frozen=True)

    id: str = ""
    text: str
    kind: str = "flagged"
    rationale: str = ""
    proposed_rewrite: str = ""
    translation: str = ""


class Match(BaseModel):
    offset: int = Field(ge=0)
    length: int = Field(gt=0)
    matched_text: str
    strategy: str


class LocatedSpan(BaseModel):
    offset: int = Field(ge=0)
    length: int = Field(gt=0)
    matched_text: str
    strategy: str
    source_query: Query

    @property
    def end(self) -> int:
        return self.offset + self.length


class Segment(BaseModel):
    kind: Literal["text", "span"]
    start: int
    end: int
    text: str
    span: Optional[LocatedSpan] = None


class LocateResult(BaseModel):
    segments: List[Segment]
    spans: List[LocatedSpan]                 # placed into the segment stream
    overlapping: List[LocatedSpan] = []      # located, but dropped by first-wins
    unlocated: List[Query] = []
    located_count: int
    total: int


class DiffOp(BaseModel):
    kind: Literal["equal", "insert", "delete"]
    token: str


class DiffSpan(BaseModel):
    start: int
    end: int
    text: str


class DiffResult(BaseModel):
    ops: List[DiffOp]
    revised_spans: List[DiffSpan] = []      # inserted regions, offsets into revised
    approximate: bool = False

# ==================== API ====================

class LocateRequest(BaseModel):
    base_text: str
    queries: List[Query]


class DiffRequest(BaseModel):
    original: str
    revised: str


class AnalyzeRequest(BaseModel):
    text: str = Field(min_length=1)
    native_language: Optional[str] = None


class AnalyzeResponse(BaseModel):
    base_text: str
    segments: List[Segment]
    unlocated: List[Query]
    located_count: int
    total: int
    message: str


ResolutionAction = Literal["accept", "own", "dismiss", "delete"]

class Resolution(BaseModel):
    action: ResolutionAction
    text: Optional[str] = None               # required for "own"


class ResolveRequest(BaseModel):
    base_text: str
    segments: List[Segment]
    resolutions: Dict[str, Resolution] = {}


class ResolveResponse(BaseModel):
    revised_text: str
    remaining: int
    diff: DiffResult


class RewriteRequest(BaseModel):
    queries: List[Query]
    mode: Literal["direct", "dual"] = "direct"


class RewriteResponse(BaseModel):
    queries: List[Query]


class PhraseHelpRequest(BaseModel):
    selection: str = Field(min_length=1)
    context: str = ""
    native_language: Optional[str] = None


class PhraseHelpResponse(BaseModel):
    translation: str
    rewrite: str


class CleanRequest(BaseModel):
    text: str = Field(min_length=1)
    mode: CleanMode = Field(default_factory=lambda: settings.default_mode)
    tier: CleanTier = Field(default_factory=lambda: settings.default_tier)
    custom_prompt: Optional[str] = None
    protect_citations: bool = False


class CleanResponse(BaseModel):
    original: str
    cleaned: str
    citations_protected: int
    diff: DiffResult

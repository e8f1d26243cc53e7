from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional
import yaml
from jinja2 import Template

class PromptPack:
    def __init__(self, root: Path):
        self.root = root

        # 기본 리소스: 시스템 프롬프트 / 인용 힌트
        self.data = yaml.safe_load((root / "pack.yaml").read_text(encoding="utf-8")) or {}
        self.cleaning: Dict[str, Dict[str, str]] = self.data.get("cleaning", {}) or {}
        self.voice: Dict[str, str] = self.data.get("voice", {}) or {}
        self.citation_hints: Dict[str, str] = self.data.get("citation_hints", {}) or {}

        # ── 유저 프롬프트 템플릿 (없으면 빈 문자열 → 호출부에서 기본값 사용)
        self.templates = {
            "annotate": self._read_prompt("annotate.j2"),
            "citation_extract": self._read_prompt("citation_extract.j2"),
            "phrase_help": self._read_prompt("phrase_help.j2"),
        }

    def _read_prompt(self, filename: str) -> str:
        p = self.root / "prompts" / filename
        return p.read_text(encoding="utf-8") if p.exists() else ""

    def cleaning_prompt(self, mode: str, tier: str) -> str:
        """[mode][tier] 조회, 없으면 text/clean."""
        by_mode = self.cleaning.get(mode) or {}
        return by_mode.get(tier) or (self.cleaning.get("text") or {}).get("clean", "")

    def voice_prompt(self, name: str) -> str:
        return self.voice.get(name, "")

    def citation_hint(self, styles: List[str]) -> Optional[str]:
        hints = [self.citation_hints[s] for s in styles or [] if s in self.citation_hints]
        return "; ".join(hints) if hints else None

    def render(self, name: str, **kw) -> str:
        return Template(self.templates.get(name, ""), trim_blocks=True, lstrip_blocks=True).render(**kw)

@lru_cache(maxsize=8)
def load_pack(name: str = "default") -> PromptPack:
    base = Path(__file__).resolve().parent
    path = base / name.lower()
    if not path.exists():
        raise FileNotFoundError(f"Prompt pack not found: {name} (expected at {path})")
    return PromptPack(path)

# deslop/config.py
from typing import List, Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

CleanMode = Literal["text", "code"]
CleanTier = Literal["lint", "clean", "deep"]

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # === API ===
    api_title: str = "Deslop API"
    api_version: str = "0.4.0"
    log_level: str = "INFO"

    # === LLM provider ===
    # "openai": any OpenAI-compatible chat-completions endpoint (base_url below)
    # "gemini": Google Generative AI, REST fallback on gRPC failure
    llm_provider: str = "openai"
    llm_api_key: Optional[str] = None
    llm_base_url: str = "https://api.z.ai/api/coding/paas/v4"
    llm_model: str = "GLM-4.5-Air"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-pro"
    llm_timeout_sec: int = 60

    # === Generation ===
    clean_temperature: float = 0.1
    clean_max_tokens: int = 2048
    annotate_temperature: float = 0.1
    annotate_max_tokens: int = 1024
    rewrite_temperature: float = 0.3
    rewrite_max_tokens: int = 1024
    citation_max_tokens: int = 1024

    # === Voice editor ===
    annotator_backend: str = "llm"          # llm | rules
    native_language: str = "English"

    # === Cleaning ===
    prompt_pack: str = "default"
    default_mode: CleanMode = "text"        # CleanRequest.mode 기본값
    default_tier: CleanTier = "clean"       # CleanRequest.tier 기본값
    citation_styles: List[str] = ["numeric", "author", "doi", "footnote"]

    # === Diff ===
    diff_max_cells: int = 200_000           # token-pair ceiling for the LCS table

settings = Settings()

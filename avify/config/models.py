import os
import re
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator
from avify.domain.models import CollisionPolicy

DEFAULT_EXTENSIONS = ["gif", "jpg", "jpeg", "png", "webp"]


def _default_threads() -> int:
    return os.cpu_count() or 1


class GeneralConfig(BaseModel):
    threads: int = Field(default_factory=_default_threads, gt=0)
    extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    pattern: Optional[str] = None  # Raw regex; replaces extensions when set
    remove_originals: bool = True
    on_collision: CollisionPolicy = CollisionPolicy.OVERWRITE
    discovery_report_every: int = Field(default=20, ge=1)
    log_path: Optional[str] = "/tmp/avify/avify.log"
    debug: bool = False

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        # Case is kept: matching is case-sensitive
        normalized = [ext.strip().lstrip(".") for ext in v]
        if not normalized or any(not ext for ext in normalized):
            raise ValueError("extensions must be a non-empty list of non-empty suffixes")
        return normalized

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"Invalid pattern {v!r}: {exc}")
        return v


class CodecConfig(BaseModel):
    format: Literal["avif", "webp"] = "avif"
    quality: int = Field(default=80, ge=0, le=100)
    effort: int = Field(default=5, ge=0, le=9)
    lossless: bool = False
    strip_metadata: bool = False


class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    codec: CodecConfig = Field(default_factory=CodecConfig)

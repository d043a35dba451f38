# editorial/keywords/suggest.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from jinja2 import Template

from editorial.app import settings
from editorial.app.errors import ResponseMissingField
from editorial.keywords.llm import SERVICE, StructuredLLM
from editorial.keywords.normalize import normalize

log = logging.getLogger(__name__)

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

SUGGEST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title_translation": {"type": "string"},
        "keywords": _STRING_LIST,
        "keywords_translated": _STRING_LIST,
    },
    "required": ["title_translation", "keywords", "keywords_translated"],
    "additionalProperties": False,
}

EXPAND_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {"keywords": _STRING_LIST},
    "required": ["keywords"],
    "additionalProperties": False,
}


# ---------- config / prompt ----------
def load_config(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@dataclass
class PromptSet:
    system: Template
    user: Template


@dataclass
class KeywordPromptConfig:
    model: str = settings.DEFAULT_KEYWORD_MODEL
    temperature: float = 0.0
    target_language: str = "Japanese"
    suggest: Optional[PromptSet] = None
    expand: Optional[PromptSet] = None

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "KeywordPromptConfig":
        model = cfg.get("model", {}) or {}

        def _prompts(section: str) -> PromptSet:
            sec = cfg.get(section) or {}
            if "system" not in sec or "user_template" not in sec:
                raise ValueError(f"keywords config: section {section!r} needs system and user_template")
            return PromptSet(system=Template(sec["system"]), user=Template(sec["user_template"]))

        return cls(
            model=settings.KEYWORD_MODEL or model.get("name") or settings.DEFAULT_KEYWORD_MODEL,
            temperature=float(model.get("temperature", 0.0)),
            target_language=(cfg.get("language", {}) or {}).get("target", "Japanese"),
            suggest=_prompts("suggest"),
            expand=_prompts("expand"),
        )

    @classmethod
    def load(cls, path: str = settings.KEYWORDS_CONFIG) -> "KeywordPromptConfig":
        if not Path(path).exists():
            raise FileNotFoundError(f"keywords config not found: {path}")
        return cls.from_dict(load_config(path))


@dataclass
class Suggestion:
    keywords: List[str] = field(default_factory=list)
    title_translation: str = ""


def _string_list(decoded: Dict[str, Any], key: str) -> List[Any]:
    value = decoded.get(key)
    if not isinstance(value, list):
        raise ResponseMissingField(SERVICE, key)
    return value


class KeywordSuggester:
    """Language-model keyword suggestions, always returned as canonical tokens."""

    def __init__(self, llm: Optional[StructuredLLM] = None, config: Optional[KeywordPromptConfig] = None):
        self.config = config or KeywordPromptConfig.load()
        self.llm = llm or StructuredLLM(model=self.config.model, temperature=self.config.temperature)

    def suggest(self, title: str, comment: str) -> Suggestion:
        title = title or ""
        comment = comment or ""
        if title == "" and comment == "":
            return Suggestion()

        ctx = {"target_language": self.config.target_language}
        decoded = self.llm.complete(
            self.config.suggest.system.render(**ctx),
            self.config.suggest.user.render(title=title, comment=comment, **ctx),
            "keyword_response",
            SUGGEST_SCHEMA,
        )
        raw = _string_list(decoded, "keywords") + _string_list(decoded, "keywords_translated")
        translation = decoded.get("title_translation")
        translation = translation.strip() if isinstance(translation, str) else ""
        tokens = normalize(raw)
        log.info("suggested %d keyword(s) from %d raw", len(tokens), len(raw))
        return Suggestion(keywords=tokens, title_translation=translation)

    def expand_query(self, query: str) -> List[str]:
        query = (query or "").strip()
        if not query:
            return []

        ctx = {"target_language": self.config.target_language}
        decoded = self.llm.complete(
            self.config.expand.system.render(**ctx),
            self.config.expand.user.render(query=query, **ctx),
            "keyword_response",
            EXPAND_SCHEMA,
        )
        return normalize(_string_list(decoded, "keywords"))

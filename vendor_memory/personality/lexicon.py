"""Emotion lexicon loaded from JSON data and validated at startup"""

import json
from pathlib import Path
from typing import Optional, Union

from loguru import logger
from pydantic import BaseModel, Field, model_validator

from vendor_memory.core.config import settings
from vendor_memory.core.models import EmotionType


class EmotionLexicon(BaseModel):
    """
    Keyword tables driving the emotional analyzer.

    Declaration order of ``emotions`` is the tie-break priority: when two
    emotions score the same, the one listed first wins.
    """

    emotions: dict[EmotionType, list[str]]
    intensifiers: list[str] = Field(default_factory=list)
    triggers: dict[str, list[str]] = Field(default_factory=dict)
    positive: list[EmotionType] = Field(default_factory=list)
    negative: list[EmotionType] = Field(default_factory=list)
    responses: dict[EmotionType, list[str]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_consistency(self) -> "EmotionLexicon":
        empty = [e.value for e, kws in self.emotions.items() if not kws]
        if empty:
            raise ValueError(f"Emotions without keywords: {empty}")

        overlap = set(self.positive) & set(self.negative)
        if overlap:
            raise ValueError(f"Emotions both positive and negative: {sorted(e.value for e in overlap)}")

        if not self.responses.get(EmotionType.NEUTRAL):
            raise ValueError("Response bank needs at least one neutral phrase")

        silent = [e.value for e, phrases in self.responses.items() if not phrases]
        if silent:
            raise ValueError(f"Empty response lists: {silent}")

        # Matching is case-insensitive on the lowered message
        self.emotions = {e: [kw.lower() for kw in kws] for e, kws in self.emotions.items()}
        self.triggers = {t: [kw.lower() for kw in kws] for t, kws in self.triggers.items()}
        self.intensifiers = [kw.lower() for kw in self.intensifiers]
        return self


def load_lexicon(path: Optional[Union[Path, str]] = None) -> EmotionLexicon:
    """
    Read and validate a lexicon file.

    Raises:
        FileNotFoundError: the file does not exist
        pydantic.ValidationError: the content is malformed
    """
    path = Path(path) if path else settings.lexicon_file
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    lexicon = EmotionLexicon.model_validate(raw)
    logger.debug(f"Loaded emotion lexicon from {path} ({len(lexicon.emotions)} emotions)")
    return lexicon

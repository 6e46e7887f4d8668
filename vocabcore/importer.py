"""
YAML word-list import for vocabcore.

A word list looks like:

    reason: translation_lookup      # optional default for every entry
    words:
      - text: serendipity
        definition: finding something good without looking for it
        pronunciation: /ˌserənˈdɪpəti/
      - text: ephemeral
        definition: lasting a very short time
        reason: listening_difficulty
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict, Field, ValidationError, field_validator

from .models import AddReason

logger = logging.getLogger(__name__)


# --- Internal Pydantic Models for Raw YAML Validation ---


class _RawWordEntry(PydanticBaseModel):
    text: str = Field(..., min_length=1)
    definition: str = Field(..., min_length=1)
    pronunciation: Optional[str] = Field(default=None)
    reason: Optional[AddReason] = Field(default=None)

    model_config = ConfigDict(extra="forbid")

    @field_validator("text", mode="before")
    @classmethod
    def normalize_text(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class _RawWordListFile(PydanticBaseModel):
    reason: AddReason = Field(default=AddReason.TranslationLookup)
    words: List[_RawWordEntry] = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


@dataclass
class WordListProcessingError(Exception):
    file_path: Path
    message: str
    word_index: Optional[int] = None

    def __str__(self) -> str:
        context_parts = [f"File: {self.file_path.name}"]
        if self.word_index is not None:
            context_parts.append(f"Word Index: {self.word_index}")
        return f"{' | '.join(context_parts)} | Error: {self.message}"


@dataclass(frozen=True)
class WordListEntry:
    text: str
    definition: str
    add_reason: AddReason
    pronunciation: Optional[str] = None


def load_word_list(file_path: Path) -> List[WordListEntry]:
    """
    Read and validate a YAML word list.

    Entries without a `reason` inherit the file-level default.

    Raises:
        WordListProcessingError: If the file is missing or unreadable, is not
            valid YAML, or does not match the word-list schema. The message
            names the offending field.
    """
    file_path = Path(file_path)
    try:
        content = file_path.read_text(encoding="utf-8")
        raw_yaml_content = yaml.safe_load(content)
    except FileNotFoundError:
        raise WordListProcessingError(file_path, "File not found.") from None
    except IOError as e:
        raise WordListProcessingError(
            file_path, f"Could not read file: {e}"
        ) from e
    except yaml.YAMLError as e:
        raise WordListProcessingError(
            file_path, f"Invalid YAML syntax: {e}"
        ) from e

    if not isinstance(raw_yaml_content, dict):
        raise WordListProcessingError(
            file_path, "Top level of YAML must be a dictionary (word list object)."
        )

    try:
        word_list = _RawWordListFile.model_validate(raw_yaml_content)
    except ValidationError as e:
        error_details = e.errors()[0]
        loc = error_details["loc"]
        field = ".".join(map(str, loc))
        word_index = loc[1] if len(loc) > 1 and loc[0] == "words" else None
        raise WordListProcessingError(
            file_path,
            f"Validation error in field '{field}': {error_details['msg']}",
            word_index=word_index if isinstance(word_index, int) else None,
        ) from e

    entries = [
        WordListEntry(
            text=raw.text,
            definition=raw.definition,
            add_reason=raw.reason or word_list.reason,
            pronunciation=raw.pronunciation,
        )
        for raw in word_list.words
    ]
    logger.info(f"Loaded {len(entries)} words from {file_path}")
    return entries

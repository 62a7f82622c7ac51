"""
Domain models: user input and the two reading types.

Readings use the camelCase field names of the model's response schema on the
wire and snake_case attributes in Python. They are frozen once parsed.
"""

import json
import logging
from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from tianji.errors import ReadingParseError, ReadingValidationError

logger = logging.getLogger(__name__)

PHRASE_COUNT = 3
PHRASE_MIN_CHARS = 4
PHRASE_MAX_CHARS = 8

INVALID_READING_MESSAGE = "天机批注残缺，请再试一次。"


class Tab(str, Enum):
    """Reading types offered by the front-end."""
    FORTUNE = "fortune"
    COMPATIBILITY = "compatibility"


@dataclass(frozen=True)
class UserInfo:
    """Birth information for one person, as typed into the form."""
    name: str = ""
    birth_date: str = ""  # YYYY-MM-DD
    birth_time: str = ""  # HH:mm, optional
    birth_place: str = ""
    gender: str = "男"

    @property
    def is_complete(self) -> bool:
        """Name and birth date are the only required fields."""
        return bool(self.name.strip() and self.birth_date.strip())

    def describe(self) -> str:
        """One-line description used in prompts."""
        parts = [f"{self.name}（{self.gender}）", f"生于{self.birth_date}"]
        if self.birth_time:
            parts.append(f"{self.birth_time}时")
        if self.birth_place:
            parts.append(f"出生地{self.birth_place}")
        return "，".join(parts)


class _Reading(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    # strict: "88", 88.0 and true are schema violations, not scores
    score: int = Field(strict=True, ge=1, le=100)
    todo: list[str]
    notodo: list[str]
    image_prompt: Optional[str] = None
    image_url: Optional[str] = None

    @model_validator(mode="after")
    def _check_exclusive(self) -> "_Reading":
        overlap = set(self.todo) & set(self.notodo)
        if overlap:
            raise ValueError(f"todo and notodo overlap: {sorted(overlap)}")
        return self

    @property
    @abstractmethod
    def narrative(self) -> str:
        """The long-form reading the master speaks."""

    def with_image(self, image_url: Optional[str]) -> "_Reading":
        return self.model_copy(update={"image_url": image_url})

    def to_wire(self) -> dict[str, Any]:
        """Dump with the response schema's field names; absent optional fields stay absent."""
        return self.model_dump(by_alias=True, exclude_none=True)


class FortuneResult(_Reading):
    """Daily fortune for one person."""

    bazi: str
    summary: str
    insight: str
    image_prompt: str
    five_elements: Optional[str] = None
    lucky_color: Optional[str] = None
    lucky_direction: Optional[str] = None

    @property
    def narrative(self) -> str:
        return self.insight


class CompatibilityResult(_Reading):
    """Compatibility reading for two people."""

    match_analysis: str
    dynamic: str
    bazi_a: Optional[str] = None
    bazi_b: Optional[str] = None
    five_element_match: Optional[str] = None
    advice: Optional[str] = None

    @property
    def narrative(self) -> str:
        return self.match_analysis


R = TypeVar("R", bound=_Reading)


def _check_phrases(result: _Reading, strict: bool) -> None:
    problems = []
    for field_name in ("todo", "notodo"):
        phrases = getattr(result, field_name)
        if len(phrases) != PHRASE_COUNT:
            problems.append(f"{field_name} has {len(phrases)} phrases")
        for phrase in phrases:
            if not PHRASE_MIN_CHARS <= len(phrase.strip()) <= PHRASE_MAX_CHARS:
                problems.append(f"{field_name} phrase out of bounds: {phrase!r}")

    if not problems:
        return
    if strict:
        raise ReadingValidationError(INVALID_READING_MESSAGE, detail={"problems": problems})
    logger.warning(f"Reading breaks phrase rules: {'; '.join(problems)}")


def parse_reading(model_cls: type[R], text: Optional[str], strict: bool = False) -> R:
    """Parse a model response into a reading.

    Absent text parses as an empty object, which then fails validation.

    Raises:
        ReadingParseError: Text is not a JSON object
        ReadingValidationError: JSON breaks the output contract
    """
    try:
        data = json.loads(text or "{}")
    except json.JSONDecodeError as e:
        raise ReadingParseError(INVALID_READING_MESSAGE, detail={"error": str(e)}) from e
    if not isinstance(data, dict):
        raise ReadingParseError(INVALID_READING_MESSAGE, detail={"error": f"expected object, got {type(data).__name__}"})

    try:
        result = model_cls.model_validate(data)
    except ValidationError as e:
        logger.warning(f"{model_cls.__name__} failed validation: {e}")
        raise ReadingValidationError(INVALID_READING_MESSAGE, detail={"errors": str(e)}) from e

    _check_phrases(result, strict)
    return result

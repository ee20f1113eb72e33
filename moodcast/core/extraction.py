"""
Pattern extraction consumer.

Builds the extraction request sent to a text-generation model, validates the
JSON it returns against a versioned schema, and ingests the accepted items into
the pattern store. Malformed items are skipped one by one; a failed call yields
zero new patterns and never reaches the forecaster as an exception.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError, field_validator

from moodcast.core.config import ForecastConfig
from moodcast.core.models import (
    JournalEntry,
    MonthDay,
    OccupationType,
    PatternType,
    PersonalPattern,
)
from moodcast.core.patterns import PersonalPatternStore

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1"
WEEKDAY_NUMBERS = {
    "monday": 1, "tuesday": 2, "wednesday": 3, "thursday": 4,
    "friday": 5, "saturday": 6, "sunday": 7,
}

# (system_prompt, user_message) -> raw model text
TextGenerator = Callable[[str, str], str]


class PatternExtractionError(Exception):
    """The extraction call failed or returned something that is not a usable payload."""
    pass


# ============================================================================
# SCHEMA
# ============================================================================

class SignificantDateItem(BaseModel):
    month_day: str = Field(..., alias="monthDay", description="MM-DD")
    description: str = Field(..., min_length=1)
    mood_impact: float = Field(..., alias="moodImpact", ge=-ForecastConfig.PATTERN_IMPACT_LIMIT, le=ForecastConfig.PATTERN_IMPACT_LIMIT)
    confidence: float = Field(..., ge=0.0, le=1.0)
    is_positive: Optional[bool] = Field(default=None, alias="isPositive")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("month_day")
    @classmethod
    def _valid_month_day(cls, value: str) -> str:
        MonthDay.parse(value)
        return value.strip()


class WeekdayPatternItem(BaseModel):
    day_name: str = Field(..., alias="dayName")
    description: str = Field(..., min_length=1)
    mood_impact: float = Field(..., alias="moodImpact", ge=-ForecastConfig.PATTERN_IMPACT_LIMIT, le=ForecastConfig.PATTERN_IMPACT_LIMIT)
    confidence: float = Field(..., ge=0.0, le=1.0)

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("day_name")
    @classmethod
    def _known_day(cls, value: str) -> str:
        if value.strip().lower() not in WEEKDAY_NUMBERS:
            raise ValueError(f"Unknown weekday: {value!r}")
        return value.strip().capitalize()

    @property
    def weekday(self) -> int:
        return WEEKDAY_NUMBERS[self.day_name.lower()]


class EmotionalTriggerItem(BaseModel):
    keywords: List[str] = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    mood_impact: float = Field(..., alias="moodImpact", ge=-ForecastConfig.PATTERN_IMPACT_LIMIT, le=ForecastConfig.PATTERN_IMPACT_LIMIT)
    confidence: float = Field(..., ge=0.0, le=1.0)

    model_config = {"frozen": True, "populate_by_name": True}


class PatternExtractionResult(BaseModel):
    """Validated extraction payload. Invalid list items never make it in."""
    schema_version: str = Field(default=SCHEMA_VERSION, alias="schemaVersion")
    occupation_type: Optional[str] = Field(default=None, alias="occupationType")
    significant_dates: List[SignificantDateItem] = Field(default_factory=list, alias="significantDates")
    weekday_patterns: List[WeekdayPatternItem] = Field(default_factory=list, alias="weekdayPatterns")
    emotional_triggers: List[EmotionalTriggerItem] = Field(default_factory=list, alias="emotionalTriggers")
    skipped_items: int = 0

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("schema_version", mode="before")
    @classmethod
    def _supported_version(cls, value: Any) -> str:
        version = str(value if value is not None else SCHEMA_VERSION)
        if version.split(".")[0] != SCHEMA_VERSION:
            raise ValueError(f"Unsupported schema version {version}")
        return version

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PatternExtractionResult":
        """
        Validates a decoded payload item by item.

        Raises:
            PatternExtractionError: payload is not an object or its version is unsupported.
        """
        if not isinstance(payload, dict):
            raise PatternExtractionError(f"Expected a JSON object, got {type(payload).__name__}")

        skipped = 0
        sections = {}
        for key, model in (
            ("significantDates", SignificantDateItem),
            ("weekdayPatterns", WeekdayPatternItem),
            ("emotionalTriggers", EmotionalTriggerItem),
        ):
            raw_items = payload.get(key) or []
            if not isinstance(raw_items, list):
                logger.warning(f"[EXTRACTION] '{key}' is not a list, ignoring")
                skipped += 1
                continue
            valid = []
            for raw in raw_items:
                try:
                    valid.append(model.model_validate(raw))
                except ValidationError as e:
                    skipped += 1
                    logger.warning(f"[EXTRACTION] Skipping invalid {key} item: {e.errors()[0].get('msg')}")
            sections[key] = valid

        occupation = payload.get("occupationType")
        try:
            return cls.model_validate({
                "schemaVersion": payload.get("schemaVersion", SCHEMA_VERSION),
                "occupationType": occupation if isinstance(occupation, str) else None,
                "skipped_items": skipped,
                **sections,
            })
        except ValidationError as e:
            raise PatternExtractionError(f"Invalid extraction payload: {e}") from e

    def occupation(self) -> Optional[OccupationType]:
        if not self.occupation_type:
            return None
        try:
            occupation = OccupationType(self.occupation_type.strip())
        except ValueError:
            logger.warning(f"[EXTRACTION] Unknown occupation type: {self.occupation_type!r}")
            return None
        return None if occupation is OccupationType.UNKNOWN else occupation

    def to_patterns(self) -> List[PersonalPattern]:
        """Converts items to patterns, dropping anything under the acceptance threshold."""
        threshold = ForecastConfig.PATTERN_MIN_CONFIDENCE
        patterns: List[PersonalPattern] = []

        occupation = self.occupation()
        if occupation is not None:
            patterns.append(PersonalPattern(
                pattern_type=PatternType.OCCUPATION,
                name="Occupation Pattern",
                description=f"Based on {occupation.value} work schedule",
                mood_impact=0.0,
                confidence=ForecastConfig.OCCUPATION_PATTERN_CONFIDENCE,
                occupation=occupation,
            ))

        for item in self.significant_dates:
            if item.confidence >= threshold:
                patterns.append(PersonalPattern(
                    pattern_type=PatternType.SIGNIFICANT_DATE,
                    name="Significant Date",
                    description=item.description,
                    mood_impact=item.mood_impact,
                    confidence=item.confidence,
                    month_day=MonthDay.parse(item.month_day),
                ))

        for item in self.weekday_patterns:
            if item.confidence >= threshold:
                patterns.append(PersonalPattern(
                    pattern_type=PatternType.WEEKDAY_PREFERENCE,
                    name=f"{item.day_name} Pattern",
                    description=item.description,
                    mood_impact=item.mood_impact,
                    confidence=item.confidence,
                    day_of_week=item.weekday,
                ))

        for item in self.emotional_triggers:
            if item.confidence >= threshold:
                patterns.append(PersonalPattern(
                    pattern_type=PatternType.RECURRING_TRIGGER,
                    name=", ".join(k.strip() for k in item.keywords if k.strip()) or "Emotional Trigger",
                    description=item.description,
                    mood_impact=item.mood_impact,
                    confidence=item.confidence,
                    trigger_keywords=tuple(item.keywords),
                ))
        return patterns


# ============================================================================
# REQUEST
# ============================================================================

SYSTEM_PROMPT = """You are an expert psychologist analyzing journal entries to identify personal mood patterns.

Your task is to extract patterns that can predict future mood, including:

1. **Occupation Type**: Determine if the person is an employee, business owner, student, freelancer, unemployed, or retired based on their writing.

2. **Significant Dates**: Look for mentions of important personal dates (anniversaries, deaths, birthdays, traumatic events) that might affect mood on specific calendar days.

3. **Weekday Patterns**: Identify if certain days of the week consistently affect their mood (e.g., "I hate Mondays", "Fridays are my favorite").

4. **Emotional Triggers**: Identify recurring themes, keywords, or situations that affect their mood.

Respond ONLY with valid JSON in this exact format:
{
    "schemaVersion": "1",
    "occupationType": "employee|businessOwner|student|freelancer|unemployed|retired|unknown",
    "significantDates": [
        {
            "monthDay": "MM-DD",
            "description": "Brief description",
            "isPositive": true/false,
            "moodImpact": -3.0 to 3.0,
            "confidence": 0.0 to 1.0
        }
    ],
    "weekdayPatterns": [
        {
            "dayName": "Monday",
            "description": "Brief description",
            "moodImpact": -3.0 to 3.0,
            "confidence": 0.0 to 1.0
        }
    ],
    "emotionalTriggers": [
        {
            "keywords": ["word1", "word2"],
            "description": "Brief description",
            "moodImpact": -3.0 to 3.0,
            "confidence": 0.0 to 1.0
        }
    ]
}

Only include patterns you are confident about. If you don't find a pattern type, return an empty array for that field.
Be conservative with confidence scores: only use high confidence (>0.7) for very clear patterns."""


def format_entries(entries: Sequence[JournalEntry], limit: int = ForecastConfig.EXTRACTION_ENTRY_LIMIT) -> str:
    """Most recent entries first, one block per entry."""
    recent = sorted(entries, key=lambda e: e.created_at, reverse=True)[:limit]
    blocks = []
    for e in recent:
        stamp = f"{e.created_at:%A, %b} {e.created_at.day} {e.created_at.year}"
        mood = e.mood if e.mood is not None else 5
        blocks.append(f"[{stamp}] (Mood: {mood}/10)\n{e.content}")
    return "\n\n---\n\n".join(blocks)


def build_user_message(entries: Sequence[JournalEntry]) -> str:
    return f"Analyze these journal entries and extract mood patterns:\n\n{format_entries(entries)}"


def clean_response(text: str) -> str:
    """Strips markdown code fences around a JSON answer."""
    return text.replace("```json", "").replace("```", "").strip()


def parse_extraction_response(text: str) -> PatternExtractionResult:
    """
    Decodes and validates raw model output.

    Raises:
        PatternExtractionError: empty, non-JSON or structurally invalid output.
    """
    if not text or not text.strip():
        raise PatternExtractionError("Empty extraction response")
    cleaned = clean_response(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise PatternExtractionError(f"Response is not valid JSON: {e}") from e
    return PatternExtractionResult.from_payload(payload)


# ============================================================================
# CONSUMER
# ============================================================================

class PatternExtractionConsumer:
    """
    Runs extraction and feeds accepted patterns to the store.

    Args:
        store: Destination pattern store.
        generator: Text generator (system prompt, user message) -> raw text.
            Without one, only ingest()/ingest_response() are usable.
    """

    def __init__(self, store: PersonalPatternStore, generator: Optional[TextGenerator] = None):
        self.store = store
        self.generator = generator

    def ingest(self, result: PatternExtractionResult) -> int:
        """Adds the result's accepted patterns. Returns how many changed the store."""
        occupation = result.occupation()
        if occupation is not None:
            self.store.set_occupation(occupation, persist=False)

        patterns = result.to_patterns()
        added = self.store.add_patterns(patterns)
        logger.info(
            f"[EXTRACTION] Accepted {added}/{len(patterns)} patterns "
            f"({result.skipped_items} invalid items skipped), store now holds {len(self.store)}"
        )
        return added

    def ingest_response(self, text: str) -> int:
        """Parses and ingests raw model output; failures yield zero patterns."""
        try:
            result = parse_extraction_response(text)
        except PatternExtractionError as e:
            logger.error(f"[EXTRACTION] Could not parse extraction response: {e}")
            return 0
        return self.ingest(result)

    def extract_from_entries(self, entries: Sequence[JournalEntry]) -> int:
        """
        Full round trip: prompt, generate, validate, ingest.

        Returns:
            Number of patterns added (0 on any failure).
        """
        if not entries:
            logger.info("[EXTRACTION] No entries provided, skipping")
            return 0
        if self.generator is None:
            logger.warning("[EXTRACTION] No text generator configured, skipping")
            return 0

        user_message = build_user_message(entries)
        logger.info(f"[EXTRACTION] Sending {min(len(entries), ForecastConfig.EXTRACTION_ENTRY_LIMIT)} entries ({len(user_message)} chars)")
        try:
            response = self.generator(SYSTEM_PROMPT, user_message)
        except Exception as e:
            logger.error(f"[EXTRACTION] Extraction call failed: {e}")
            return 0
        return self.ingest_response(response)

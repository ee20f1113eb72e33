"""
Domain models for mood forecasting.

Everything here is an immutable value: journal entries are read-only inputs,
and predictions, summaries and contextual factors are created fresh per
request and never mutated afterwards.
"""

import calendar
import math
import uuid
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from moodcast.core.config import ForecastConfig


# ============================================================================
# HELPERS
# ============================================================================

def clamp(value: float, lower: float, upper: float) -> float:
    """Clamps value into [lower, upper]."""
    return max(lower, min(upper, value))


def clamp_mood(value: float) -> float:
    return clamp(value, ForecastConfig.MOOD_MIN, ForecastConfig.MOOD_MAX)


def to_naive(value: datetime) -> datetime:
    """Converts an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def as_datetime(value: Any) -> datetime:
    """Accepts a date or datetime and returns a naive datetime (dates at midnight)."""
    if isinstance(value, datetime):
        return to_naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days from earlier to later (floored; negative when earlier is after later)."""
    return (later - earlier) // timedelta(days=1)


def weekday_name(weekday: int) -> str:
    """ISO weekday (1 = Monday) to English day name."""
    return calendar.day_name[weekday - 1]


# ============================================================================
# JOURNAL ENTRIES
# ============================================================================

@dataclass(frozen=True)
class JournalEntry:
    """A journal entry as written by the user; mood may be back-filled later."""
    created_at: datetime
    mood: Optional[int] = None
    content: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", as_datetime(self.created_at))
        if self.mood is not None:
            mood = int(round(self.mood))
            mood = int(clamp(mood, ForecastConfig.ENTRY_MOOD_MIN, ForecastConfig.ENTRY_MOOD_MAX))
            object.__setattr__(self, "mood", mood)

    @property
    def has_mood(self) -> bool:
        return self.mood is not None

    @property
    def weekday(self) -> int:
        return self.created_at.isoweekday()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        """Builds an entry from a JSON/Mongo document (camelCase or snake_case keys)."""
        created = data.get("created_at", data.get("createdAt"))
        if isinstance(created, str):
            created = datetime.fromisoformat(created.replace("Z", "+00:00"))
        if created is None:
            raise ValueError("Journal entry is missing 'createdAt'")
        mood = data.get("mood")
        entry_id = data.get("id", data.get("_id"))
        return cls(
            created_at=created,
            mood=int(mood) if mood is not None else None,
            content=data.get("content") or "",
            id=str(entry_id) if entry_id is not None else str(uuid.uuid4()),
        )


# ============================================================================
# CALENDAR CONTEXT ENUMS
# ============================================================================

class Season(Enum):
    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"
    WINTER = "winter"

    @property
    def mood_impact(self) -> float:
        return {
            Season.SPRING: 0.5,
            Season.SUMMER: 0.7,
            Season.FALL: 0.0,
            Season.WINTER: -0.4,
        }[self]

    @classmethod
    def from_date(cls, value: date) -> "Season":
        month = value.month
        if month in (3, 4, 5):
            return cls.SPRING
        if month in (6, 7, 8):
            return cls.SUMMER
        if month in (9, 10, 11):
            return cls.FALL
        return cls.WINTER


class MoonPhase(Enum):
    NEW_MOON = "newMoon"
    WAXING_CRESCENT = "waxingCrescent"
    FIRST_QUARTER = "firstQuarter"
    WAXING_GIBBOUS = "waxingGibbous"
    FULL_MOON = "fullMoon"
    WANING_GIBBOUS = "waningGibbous"
    LAST_QUARTER = "lastQuarter"
    WANING_CRESCENT = "waningCrescent"

    @property
    def mood_impact(self) -> float:
        if self is MoonPhase.FULL_MOON:
            return -0.2
        if self is MoonPhase.NEW_MOON:
            return 0.1
        return 0.0

    @classmethod
    def calculate(cls, value: date) -> "MoonPhase":
        """
        Approximates the lunar phase from the Julian day number.
        Age is measured from the reference new moon of 2000-01-06.
        """
        year, month, day = value.year, value.month, value.day
        if month < 3:
            year -= 1
            month += 12

        a = year // 100
        b = a // 4
        c = 2 - a + b
        e = int(365.25 * (year + 4716))
        f = int(30.6001 * (month + 1))
        julian_day = c + day + e + f - 1524.5

        new_moons = (julian_day - 2451549.5) / 29.53
        age = (new_moons - math.floor(new_moons)) * 29.53

        boundaries = [
            (1.84566, cls.NEW_MOON),
            (5.53699, cls.WAXING_CRESCENT),
            (9.22831, cls.FIRST_QUARTER),
            (12.91963, cls.WAXING_GIBBOUS),
            (16.61096, cls.FULL_MOON),
            (20.30228, cls.WANING_GIBBOUS),
            (23.99361, cls.LAST_QUARTER),
        ]
        for upper, phase in boundaries:
            if age < upper:
                return phase
        return cls.WANING_CRESCENT


class WeatherCondition(Enum):
    SUNNY = "sunny"
    PARTLY_CLOUDY = "partlyCloudy"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    STORMY = "stormy"
    SNOWY = "snowy"
    FOGGY = "foggy"

    @property
    def mood_impact(self) -> float:
        return {
            WeatherCondition.SUNNY: 0.8,
            WeatherCondition.PARTLY_CLOUDY: 0.3,
            WeatherCondition.CLOUDY: -0.2,
            WeatherCondition.RAINY: -0.5,
            WeatherCondition.STORMY: -0.8,
            WeatherCondition.SNOWY: 0.2,
            WeatherCondition.FOGGY: -0.3,
        }[self]


@dataclass(frozen=True)
class WeatherSnapshot:
    """Best-effort weather for a target date; absent when unavailable."""
    temperature: float
    condition: WeatherCondition
    humidity: Optional[float] = None
    uv_index: Optional[float] = None

    def __str__(self) -> str:
        return f"{self.condition.value}, {self.temperature:.1f}C"


@dataclass(frozen=True)
class TimeOfYearContext:
    days_until_holiday: Optional[int]
    holiday_name: Optional[str]
    is_back_to_school_season: bool
    is_tax_season: bool
    is_new_year_period: bool

    @property
    def mood_impact(self) -> float:
        impact = 0.0
        if self.days_until_holiday is not None and self.days_until_holiday <= 7:
            impact += 0.3
        if self.is_new_year_period:
            impact += 0.2
        if self.is_tax_season:
            impact -= 0.3
        return impact


@dataclass(frozen=True)
class ContextualFactors:
    """Calendar and environment context derived for one target date."""
    season: Season
    moon_phase: MoonPhase
    is_holiday: bool
    days_to_next_holiday: Optional[int]
    time_of_year: TimeOfYearContext
    days_since_holiday: Optional[int] = None
    weather: Optional[WeatherSnapshot] = None


# ============================================================================
# PERSONAL PATTERNS
# ============================================================================

class PatternType(Enum):
    OCCUPATION = "occupationType"
    WEEKDAY_PREFERENCE = "weekdayPreference"
    SIGNIFICANT_DATE = "significantDate"
    RECURRING_TRIGGER = "recurringTrigger"


class OccupationType(Enum):
    EMPLOYEE = "employee"
    BUSINESS_OWNER = "businessOwner"
    STUDENT = "student"
    FREELANCER = "freelancer"
    UNEMPLOYED = "unemployed"
    RETIRED = "retired"
    UNKNOWN = "unknown"

    def mood_impact_for_weekday(self, weekday: int) -> float:
        """Typical mood shift for an ISO weekday given this occupation."""
        tables = {
            # Dreads Monday, lifts toward the weekend
            OccupationType.EMPLOYEE: {1: -0.6, 2: -0.3, 3: 0.0, 4: 0.3, 5: 0.8, 6: 0.5, 7: 0.3},
            # Business opens Monday; closed Sunday
            OccupationType.BUSINESS_OWNER: {1: 0.7, 2: 0.5, 3: 0.4, 4: 0.3, 5: 0.2, 6: -0.1, 7: -0.2},
            OccupationType.STUDENT: {1: -0.4, 2: -0.2, 3: 0.0, 4: 0.2, 5: 0.7, 6: 0.5, 7: 0.2},
        }
        return tables.get(self, {}).get(weekday, 0.0)


@dataclass(frozen=True)
class MonthDay:
    """A recurring yearly calendar day."""
    month: int
    day: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid month: {self.month}")
        # 2000 is a leap year, so Feb 29 is accepted
        if not 1 <= self.day <= calendar.monthrange(2000, self.month)[1]:
            raise ValueError(f"Invalid day {self.day} for month {self.month}")

    def matches(self, value: date) -> bool:
        return value.month == self.month and value.day == self.day

    def days_until(self, value: date) -> int:
        """Days from value to the next occurrence (0 when value matches)."""
        for year in range(value.year, value.year + 9):
            if self.month == 2 and self.day == 29 and not calendar.isleap(year):
                continue
            target = date(year, self.month, self.day)
            if target >= value:
                return (target - value).days
        return 365

    @classmethod
    def parse(cls, text: str) -> "MonthDay":
        """Parses "MM-DD"."""
        parts = text.strip().split("-")
        if len(parts) != 2:
            raise ValueError(f"Expected MM-DD, got {text!r}")
        return cls(month=int(parts[0]), day=int(parts[1]))

    def __str__(self) -> str:
        return f"{self.month:02d}-{self.day:02d}"


@dataclass(frozen=True)
class PersonalPattern:
    """A learned, user-specific mood-impact rule."""
    pattern_type: PatternType
    name: str
    description: str
    mood_impact: float
    confidence: float
    day_of_week: Optional[int] = None
    month_day: Optional[MonthDay] = None
    occupation: Optional[OccupationType] = None
    trigger_keywords: Tuple[str, ...] = ()
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        keywords = tuple(sorted({k.strip().lower() for k in self.trigger_keywords if k and k.strip()}))
        object.__setattr__(self, "trigger_keywords", keywords)

    @property
    def identity(self) -> Tuple[Any, ...]:
        """Two patterns with the same identity describe the same rule."""
        return (
            self.pattern_type,
            self.day_of_week,
            self.month_day,
            self.occupation,
            self.trigger_keywords,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "patternType": self.pattern_type.value,
            "name": self.name,
            "description": self.description,
            "moodImpact": self.mood_impact,
            "confidence": self.confidence,
            "dayOfWeek": self.day_of_week,
            "monthDay": str(self.month_day) if self.month_day else None,
            "occupationType": self.occupation.value if self.occupation else None,
            "triggerKeywords": list(self.trigger_keywords),
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "PersonalPattern":
        month_day = doc.get("monthDay")
        occupation = doc.get("occupationType")
        created = doc.get("createdAt")
        return cls(
            pattern_type=PatternType(doc["patternType"]),
            name=doc.get("name", ""),
            description=doc.get("description", ""),
            mood_impact=float(doc.get("moodImpact", 0.0)),
            confidence=float(doc.get("confidence", 0.0)),
            day_of_week=doc.get("dayOfWeek"),
            month_day=MonthDay.parse(month_day) if month_day else None,
            occupation=OccupationType(occupation) if occupation else None,
            trigger_keywords=tuple(doc.get("triggerKeywords") or ()),
            id=str(doc.get("id") or uuid.uuid4()),
            created_at=datetime.fromisoformat(created) if isinstance(created, str) else datetime.now(),
        )


# ============================================================================
# ANALYTICS
# ============================================================================

class TrendDirection(Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"

    @property
    def description(self) -> str:
        return {
            TrendDirection.IMPROVING: "trending up",
            TrendDirection.DECLINING: "trending down",
            TrendDirection.STABLE: "holding steady",
        }[self]


@dataclass(frozen=True)
class WeekdayStat:
    weekday: int  # ISO, 1 = Monday
    average_mood: float
    sample_count: int
    standard_deviation: float
    rank: int  # 1 = best, 7 = hardest

    @property
    def weekday_name(self) -> str:
        return weekday_name(self.weekday)


@dataclass(frozen=True)
class AnalyticsSummary:
    personal_baseline: float
    volatility: float
    weekday_stats: Tuple[WeekdayStat, ...]
    best_day: Optional[WeekdayStat]
    hardest_day: Optional[WeekdayStat]
    trend: TrendDirection
    trend_strength: int
    total_entries: int
    recent_themes: Tuple[str, ...] = ()

    @property
    def has_enough_data(self) -> bool:
        return self.total_entries >= ForecastConfig.TREND_MIN_ENTRIES

    @property
    def data_quality_description(self) -> str:
        if self.total_entries < 3:
            return "Building your profile..."
        if self.total_entries < 7:
            return "Learning your patterns"
        if self.total_entries < 14:
            return "Good data foundation"
        if self.total_entries < 30:
            return "Strong pattern recognition"
        return "Rich personal insights"

    def stat_for(self, weekday: int) -> Optional[WeekdayStat]:
        for stat in self.weekday_stats:
            if stat.weekday == weekday:
                return stat
        return None


class MoodVisualState(Enum):
    SIGNIFICANTLY_ABOVE = "significantlyAbove"
    ABOVE_BASELINE = "aboveBaseline"
    NEAR_BASELINE = "nearBaseline"
    BELOW_BASELINE = "belowBaseline"
    SIGNIFICANTLY_BELOW = "significantlyBelow"

    @classmethod
    def from_comparative_score(cls, score: float) -> "MoodVisualState":
        if score >= 1.5:
            return cls.SIGNIFICANTLY_ABOVE
        if score >= 0.5:
            return cls.ABOVE_BASELINE
        if score >= -0.5:
            return cls.NEAR_BASELINE
        if score >= -1.5:
            return cls.BELOW_BASELINE
        return cls.SIGNIFICANTLY_BELOW


@dataclass(frozen=True)
class MoodInsight:
    """What the analytics engine says about one date."""
    date: date
    predicted_mood: float
    comparative_score: float
    personal_baseline: float
    trend: TrendDirection
    trend_strength: int
    primary_insight: str
    secondary_insight: Optional[str]
    emotional_context: Optional[str]
    confidence: float
    data_points_used: int
    weekday_average: Optional[float] = None
    weekday_rank: Optional[int] = None

    @property
    def visual_state(self) -> MoodVisualState:
        return MoodVisualState.from_comparative_score(self.comparative_score)


# ============================================================================
# PREDICTION
# ============================================================================

@dataclass(frozen=True)
class PredictionFactor:
    """A named contribution to the adjusted estimate."""
    name: str
    impact: float
    description: str
    confidence: float

    @property
    def impact_description(self) -> str:
        magnitude = abs(self.impact)
        direction = "positive" if self.impact > 0 else "negative"
        if magnitude >= 0.5:
            return f"Strong {direction} impact"
        if magnitude >= 0.2:
            return f"Moderate {direction} impact"
        return f"Slight {direction} impact"


@dataclass(frozen=True)
class ConfidenceBand:
    lower: float
    upper: float

    @property
    def spread(self) -> float:
        return self.upper - self.lower


class OutlookDirection(Enum):
    RISING = "rising"
    STEADY = "steady"
    EASING = "easing"
    VOLATILE = "volatile"


@dataclass(frozen=True)
class MicroOutlook:
    direction: OutlookDirection
    headline: str
    summary: str


@dataclass(frozen=True)
class SupportSuggestion:
    title: str
    detail: str


class MoodState(Enum):
    RADIANT = "Radiant"
    POSITIVE = "Positive"
    BALANCED = "Balanced"
    LOW = "Low"
    CHALLENGING = "Challenging"

    @classmethod
    def from_mood(cls, mood: float) -> "MoodState":
        if mood >= 8.5:
            return cls.RADIANT
        if mood >= 7.0:
            return cls.POSITIVE
        if mood >= 5.5:
            return cls.BALANCED
        if mood >= 4.0:
            return cls.LOW
        return cls.CHALLENGING


@dataclass(frozen=True)
class MoodPrediction:
    """A complete forecast for one date."""
    date: date
    predicted_mood: float
    confidence: float
    contributing_factors: Tuple[PredictionFactor, ...]
    base_prediction: float
    contextual_factors: ContextualFactors
    personal_baseline: float
    comparative_score: float
    confidence_band: ConfidenceBand
    trend: TrendDirection
    trend_strength: int
    volatility_score: float
    stability_score: float
    micro_outlook: MicroOutlook
    support_suggestion: SupportSuggestion
    horizon_confidence: float = ForecastConfig.HORIZON_TODAY_CONFIDENCE
    weekday_average: Optional[float] = None
    weekday_rank: Optional[int] = None
    primary_insight: Optional[str] = None
    secondary_insight: Optional[str] = None

    @property
    def mood_state(self) -> MoodState:
        return MoodState.from_mood(self.predicted_mood)

    @property
    def visual_state(self) -> MoodVisualState:
        return MoodVisualState.from_comparative_score(self.comparative_score)

    @property
    def should_gray_out(self) -> bool:
        return self.horizon_confidence < ForecastConfig.GRAY_OUT_THRESHOLD

    @property
    def confidence_description(self) -> str:
        if self.confidence >= 0.8:
            return "High confidence"
        if self.confidence >= 0.6:
            return "Medium confidence"
        return "Low confidence"

    @property
    def comparative_description(self) -> str:
        score = self.comparative_score
        if abs(score) < 0.3:
            return "Near your typical range"
        if score > 0:
            return f"+{abs(score):.1f} above average"
        return f"{abs(score):.1f} below average"

    @property
    def short_comparative(self) -> Optional[str]:
        score = self.comparative_score
        if abs(score) < 0.3:
            return None
        return f"{score:+.1f}"

    def to_dict(self) -> Dict[str, Any]:
        """Serializable representation (enums as values, dates as ISO strings)."""
        def convert(value: Any) -> Any:
            if isinstance(value, Enum):
                return value.value
            if isinstance(value, (date, datetime)):
                return value.isoformat()
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            if isinstance(value, (list, tuple)):
                return [convert(v) for v in value]
            return value

        data = convert(asdict(self))
        data["mood_state"] = self.mood_state.value
        data["confidence_description"] = self.confidence_description
        data["comparative_description"] = self.comparative_description
        return data

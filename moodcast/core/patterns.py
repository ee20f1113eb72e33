"""
Personal pattern store.

Holds learned, user-specific mood rules (significant dates, weekday
preferences, occupation, recurring triggers) and answers lookups by date.
An optional repository persists changes; persistence failures are logged and
never interrupt forecasting.
"""

import logging
import re
import threading
from typing import Any, Iterable, List, Optional, Protocol

from moodcast.core.config import ForecastConfig
from moodcast.core.models import (
    OccupationType,
    PatternType,
    PersonalPattern,
    as_datetime,
)

logger = logging.getLogger(__name__)


def keyword_in_text(keyword: str, text: str) -> bool:
    """Whole-word, case-insensitive match ("sad" does not match "saddle")."""
    return re.search(rf"\b{re.escape(keyword)}\b", text, re.IGNORECASE) is not None


class PatternRepository(Protocol):
    """Persistence contract for the pattern store."""

    def save_patterns(self, patterns: List[PersonalPattern]) -> None: ...

    def load_patterns(self) -> List[PersonalPattern]: ...

    def save_occupation(self, occupation: Optional[OccupationType]) -> None: ...

    def load_occupation(self) -> Optional[OccupationType]: ...


class PersonalPatternStore:
    """In-memory pattern collection with optional best-effort persistence."""

    def __init__(self, repository: Optional[PatternRepository] = None):
        self._repository = repository
        self._patterns: List[PersonalPattern] = []
        self._occupation: Optional[OccupationType] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Loading / persistence
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Loads patterns and occupation from the repository. Returns pattern count."""
        if self._repository is None:
            return 0
        try:
            patterns = self._repository.load_patterns()
            occupation = self._repository.load_occupation()
        except Exception as e:
            logger.error(f"[PATTERNS] Failed to load patterns: {e}")
            return 0

        with self._lock:
            self._patterns = [p for p in patterns if p.confidence >= ForecastConfig.PATTERN_MIN_CONFIDENCE]
            self._occupation = occupation
        logger.info(f"[PATTERNS] Loaded {len(self._patterns)} patterns (occupation: {occupation.value if occupation else 'none'})")
        return len(self._patterns)

    def _persist(self) -> None:
        if self._repository is None:
            return
        try:
            self._repository.save_patterns(self.patterns)
            self._repository.save_occupation(self._occupation)
        except Exception as e:
            logger.error(f"[PATTERNS] Failed to persist patterns: {e}")

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_pattern(self, pattern: PersonalPattern, persist: bool = True) -> bool:
        """
        Adds a pattern unless it is low-confidence or a weaker duplicate.

        A pattern describing the same rule as an existing one replaces it only
        when its confidence is strictly higher.

        Returns:
            True if the store changed.
        """
        if pattern.confidence < ForecastConfig.PATTERN_MIN_CONFIDENCE:
            logger.debug(f"[PATTERNS] Rejected low-confidence pattern '{pattern.name}' ({pattern.confidence:.2f})")
            return False

        with self._lock:
            for index, existing in enumerate(self._patterns):
                if existing.identity != pattern.identity:
                    continue
                if pattern.confidence > existing.confidence:
                    self._patterns[index] = pattern
                    logger.info(f"[PATTERNS] Replaced '{existing.name}' with higher-confidence '{pattern.name}'")
                    break
                return False
            else:
                self._patterns.append(pattern)
                logger.info(f"[PATTERNS] Added {pattern.pattern_type.value} pattern '{pattern.name}' (impact {pattern.mood_impact:+.1f})")

        if persist:
            self._persist()
        return True

    def add_patterns(self, patterns: Iterable[PersonalPattern]) -> int:
        """Adds several patterns and persists once. Returns how many were accepted."""
        added = sum(1 for p in patterns if self.add_pattern(p, persist=False))
        if added:
            self._persist()
        return added

    def set_occupation(self, occupation: Optional[OccupationType], persist: bool = True) -> None:
        with self._lock:
            self._occupation = occupation
        logger.info(f"[PATTERNS] Occupation set to {occupation.value if occupation else 'none'}")
        if persist:
            self._persist()

    def clear(self) -> None:
        with self._lock:
            self._patterns = []
            self._occupation = None
        self._persist()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def patterns(self) -> List[PersonalPattern]:
        with self._lock:
            return list(self._patterns)

    @property
    def occupation(self) -> Optional[OccupationType]:
        with self._lock:
            if self._occupation is not None:
                return self._occupation
            for p in self._patterns:
                if p.pattern_type is PatternType.OCCUPATION and p.occupation is not None:
                    return p.occupation
            return None

    def patterns_affecting(self, target: Any) -> List[PersonalPattern]:
        """
        Patterns relevant to a date: weekday preferences on that weekday,
        significant dates on that month/day, and occupation patterns always.
        """
        target_date = as_datetime(target).date()
        weekday = target_date.isoweekday()
        matches = []
        for p in self.patterns:
            if p.pattern_type is PatternType.WEEKDAY_PREFERENCE and p.day_of_week == weekday:
                matches.append(p)
            elif p.pattern_type is PatternType.SIGNIFICANT_DATE and p.month_day and p.month_day.matches(target_date):
                matches.append(p)
            elif p.pattern_type is PatternType.OCCUPATION:
                matches.append(p)
        return matches

    def significant_dates_on(self, target: Any) -> List[PersonalPattern]:
        return [
            p for p in self.patterns_affecting(target)
            if p.pattern_type is PatternType.SIGNIFICANT_DATE
        ]

    def weekday_patterns(self, weekday: int) -> List[PersonalPattern]:
        return [
            p for p in self.patterns
            if p.pattern_type is PatternType.WEEKDAY_PREFERENCE and p.day_of_week == weekday
        ]

    def triggers_matching(self, text: str) -> List[PersonalPattern]:
        """Recurring-trigger patterns with a keyword appearing as a whole word in text."""
        if not text:
            return []
        return [
            p for p in self.patterns
            if p.pattern_type is PatternType.RECURRING_TRIGGER
            and any(keyword_in_text(keyword, text) for keyword in p.trigger_keywords)
        ]

    def __len__(self) -> int:
        return len(self.patterns)

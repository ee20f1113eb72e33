"""
Moodcast: personal mood forecasting from journal history.

This module orchestrates the forecasting pipeline:
1. Loads journal entries (JSON file or MongoDB)
2. Optionally extracts personal patterns from recent entries with Gemini
3. Gathers context (season, moon, holidays, optional weather)
4. Forecasts one or more days and prints the result

Supports execution modes:
- Normal: full pipeline with external calls where configured
- Dry run: no network calls; the extraction prompt is written to a file
- JSON: machine-readable output on stdout
"""

import os
import sys
import argparse
import datetime
import json
import logging
from typing import List, Optional, Sequence, Tuple

# Add project root for nested imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from moodcast.adapters.clients import gemini as gemini_client
from moodcast.adapters.clients import weather as weather_client
from moodcast.adapters.repositories import mongo as mongo_client
from moodcast.core.analytics import PersonalMoodAnalytics
from moodcast.core.cache import TTLCache
from moodcast.core.config import ForecastConfig, Settings
from moodcast.core.context import ContextualFactorGatherer
from moodcast.core.extraction import PatternExtractionConsumer, SYSTEM_PROMPT, build_user_message
from moodcast.core.models import JournalEntry, MoodPrediction
from moodcast.core.patterns import PersonalPatternStore
from moodcast.core.service import MoodPredictionService
from moodcast.utils.logger import setup_logger

logger = logging.getLogger(__name__)

# Constants
DRY_RUN_PROMPT_FILE = "dry_run_extraction_prompt.log"
MAX_FORECAST_DAYS = 30


# ============================================================================
# ARGUMENT PARSING
# ============================================================================

def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parses and validates command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Moodcast: forecast your mood from your journal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py --entries journal.json                 # Forecast tomorrow
  python run.py --entries journal.json --days 7        # Forecast a week
  python run.py --from-db --extract-patterns           # Learn patterns, then forecast
  python run.py --entries journal.json --city Bordeaux # Include weather
  python run.py --entries journal.json --dry-run       # No network calls
        """
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument("--entries", metavar="FILE", help="JSON file holding a list of journal entries")
    source.add_argument("--from-db", action="store_true", help="Load entries and patterns from MongoDB")

    parser.add_argument("--date", type=datetime.date.fromisoformat, help="First forecast date (YYYY-MM-DD), default tomorrow")
    parser.add_argument("--days", type=int, default=1, help=f"Number of days to forecast (1-{MAX_FORECAST_DAYS})")
    parser.add_argument("--lat", type=float, help="Latitude for weather")
    parser.add_argument("--lon", type=float, help="Longitude for weather")
    parser.add_argument("--city", help="City name for weather (geocoded)")
    parser.add_argument("--region", help="Holiday region code (US, GB, DE, FR, ...)")
    parser.add_argument("--extract-patterns", action="store_true", help="Run AI pattern extraction before forecasting")
    parser.add_argument("--json", action="store_true", help="Print predictions as JSON")
    parser.add_argument("--dry-run", action="store_true", help="Simulation mode: no network calls, save extraction prompt to file")

    args = parser.parse_args(argv)
    if (args.lat is None) != (args.lon is None):
        parser.error("--lat and --lon must be given together")
    if not 1 <= args.days <= MAX_FORECAST_DAYS:
        parser.error(f"--days must be between 1 and {MAX_FORECAST_DAYS}")
    return args


# ============================================================================
# DATA LOADING
# ============================================================================

def load_entries_file(path: str) -> List[JournalEntry]:
    """
    Reads journal entries from a JSON list.

    Malformed items are skipped with a warning.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("entries", [])

    entries = []
    for index, item in enumerate(raw):
        try:
            entries.append(JournalEntry.from_dict(item))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping entry #{index}: {e}")
    logger.info(f"Loaded {len(entries)} entries from {path}")
    return entries


def resolve_location(args: argparse.Namespace) -> Optional[Tuple[float, float]]:
    if args.lat is not None:
        return args.lat, args.lon
    if args.city:
        if args.dry_run:
            logger.info(f"Dry run: skipping geocoding for '{args.city}'")
            return None
        return weather_client.geocode_city(args.city)
    return None


# ============================================================================
# OUTPUT
# ============================================================================

def print_predictions(service: MoodPredictionService, predictions: List[MoodPrediction], as_json: bool) -> None:
    if as_json:
        print(json.dumps([p.to_dict() for p in predictions], indent=2, ensure_ascii=False))
        return

    for prediction in predictions:
        headline, detail = service.summary_line(prediction)
        band = prediction.confidence_band
        print(f"{headline}  [{band.lower:.1f} - {band.upper:.1f}]{'  (low certainty)' if prediction.should_gray_out else ''}")
        print(f"    {detail}")
        if prediction.primary_insight:
            print(f"    {prediction.primary_insight}")
        for factor in prediction.contributing_factors:
            print(f"    - {factor.name}: {factor.impact:+.2f} ({factor.description})")
        print(f"    > {prediction.support_suggestion.title}: {prediction.support_suggestion.detail}")


# ============================================================================
# MAIN EXECUTION
# ============================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main execution function for the forecasting pipeline.

    Returns:
        Process exit code.
    """
    args = parse_arguments(argv)
    setup_logger("moodcast")
    settings = Settings.from_env()

    if args.dry_run:
        logger.info("--- DRY RUN MODE ACTIVATED ---")
    logger.info("--- Moodcast Starting ---")

    # ========================================================================
    # STEP 1: Load entries and patterns
    # ========================================================================
    logger.info(">>> STEP 1: Loading journal...")
    repository = None
    entries: List[JournalEntry] = []

    if args.entries:
        try:
            entries = load_entries_file(args.entries)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read entries file: {e}")
            return 1
    elif args.from_db:
        if args.dry_run:
            logger.info("Dry run: skipping database connection")
        else:
            try:
                repository = mongo_client.MoodRepository(mongo_client.connect(settings.mongodb_uri))
                entries = repository.load_entries()
            except (mongo_client.MongoDBConnectionError, mongo_client.MongoDBOperationError) as e:
                logger.error(f"Database unavailable: {e}")
                return 1
    else:
        logger.warning("No entry source given; forecasting from population defaults")

    pattern_store = PersonalPatternStore(repository)
    pattern_store.load()

    # ========================================================================
    # STEP 2: Pattern extraction
    # ========================================================================
    if args.extract_patterns:
        logger.info(">>> STEP 2: Extracting personal patterns...")
        if args.dry_run:
            with open(DRY_RUN_PROMPT_FILE, "w", encoding="utf-8") as f:
                f.write(f"--- SYSTEM ---\n{SYSTEM_PROMPT}\n\n--- USER ---\n{build_user_message(entries)}")
            logger.info(f"Dry run: Prompt saved to {DRY_RUN_PROMPT_FILE}")
        else:
            generator = gemini_client.create_text_generator(settings.gemini_api_key)
            added = PatternExtractionConsumer(pattern_store, generator).extract_from_entries(entries)
            logger.info(f"[OK] {added} new patterns learned")

    # ========================================================================
    # STEP 3: Forecast
    # ========================================================================
    logger.info(">>> STEP 3: Forecasting...")
    weather_fetcher = None
    if settings.openweather_api_key and not args.dry_run:
        client = weather_client.OpenWeatherClient(settings.openweather_api_key, cache_ttl=settings.weather_cache_ttl)
        weather_fetcher = lambda target, location: weather_client.fetch_weather_snapshot(target, location, client)

    gatherer = ContextualFactorGatherer(
        region=args.region or settings.region,
        weather_fetcher=weather_fetcher,
        cache=TTLCache(settings.weather_cache_ttl, name="context", max_size=ForecastConfig.CONTEXT_CACHE_SIZE),
    )
    analytics = PersonalMoodAnalytics(
        pattern_store,
        cache=TTLCache(settings.analytics_cache_ttl, name="analytics"),
    )
    service = MoodPredictionService(
        pattern_store=pattern_store,
        context_gatherer=gatherer,
        analytics=analytics,
    )

    start = args.date or (datetime.date.today() + datetime.timedelta(days=1))
    predictions = service.predict_range(start, args.days, entries, resolve_location(args))
    print_predictions(service, predictions, args.json)

    logger.info("--- Execution Complete ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())

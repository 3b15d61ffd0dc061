import json
import logging
import math
import random
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

# Dataset is treated as a 30-day baseline
BASELINE_DAYS = 30
DEFAULT_COMPARISON_FACTOR = 0.9
KEY_EVENT_SHARE = 0.05
FILTERED_USERS_SHARE = 0.7

PATH_KEYS = ("Paths", "Page path and screen class", "Landing page + query string")
UNKNOWN_PATH = "/unknown"

CHANNELS = [
    ("Organic Search", "organic", 0.4),
    ("Direct", "direct", 0.25),
    ("Referral", "referral", 0.2),
    ("Social", "social", 0.15),
]


class DatasetError(Exception):
    pass


# ----------------------------
# Models
# ----------------------------

class GaDataParams(BaseModel):
    model_config = ConfigDict(extra="ignore")

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    comparison_start_date: Optional[date] = None
    comparison_end_date: Optional[date] = None
    traffic_source_type: Optional[str] = None

    @field_validator(
        "start_date", "end_date", "comparison_start_date", "comparison_end_date",
        mode="before",
    )
    @classmethod
    def _blank_date_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PageBreakdown(_CamelModel):
    path: str
    sessions: int
    prev_sessions: int
    key_event_rate: float
    prev_key_event_rate: float


class ChannelBreakdown(_CamelModel):
    name: str
    sessions: int
    prev_sessions: int
    key_event_rate: float
    prev_key_event_rate: float


class ReportData(_CamelModel):
    sessions: int
    prev_sessions: int
    users: int
    prev_users: int
    engagement_rate: float
    prev_engagement_rate: float
    key_events: int
    prev_key_events: int
    session_key_event_rate: float
    prev_session_key_event_rate: float
    pages: List[PageBreakdown]
    channels: List[ChannelBreakdown]


# ----------------------------
# Helpers
# ----------------------------

def round_half_up(x: float) -> int:
    """
    Round to the nearest integer with halves going up, the way dashboards
    usually round (Python's round() sends 2.5 to 2).
    """
    return math.floor(x + 0.5)


def get_value(row: Dict[str, Any], key: str) -> Any:
    """
    Case-insensitive substring lookup over the row's columns.
    The first column (in insertion order) whose trimmed, lowercased name
    contains the trimmed, lowercased key wins. Returns 0 if nothing matches.
    """
    target = key.lower().strip()
    for column in row:
        if target in column.lower().strip():
            return row[column]
    return 0


def get_number(row: Dict[str, Any], key: str) -> float:
    value = get_value(row, key)
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.replace(",", "").strip())
        except ValueError:
            return 0
    if isinstance(value, float):
        # NaN / Infinity are not counts
        return value if math.isfinite(value) else 0
    return 0


def get_path(row: Dict[str, Any]) -> str:
    for key in PATH_KEYS:
        value = get_value(row, key)
        if value:
            return str(value)
    return UNKNOWN_PATH


def _span_days(start: date, end: date) -> int:
    return abs((end - start).days)


def date_adjustment_factor(start: Optional[date], end: Optional[date]) -> float:
    if start and end:
        return _span_days(start, end) / BASELINE_DAYS
    return 1.0


def comparison_adjustment_factor(start: Optional[date], end: Optional[date]) -> float:
    if start and end:
        return 0.85 + _span_days(start, end) / 100
    return DEFAULT_COMPARISON_FACTOR


def load_dataset(path) -> List[Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
    except FileNotFoundError as e:
        raise DatasetError(f"dataset not found: {path}") from e
    except OSError as e:
        raise DatasetError(f"dataset could not be read: {path}: {e}") from e
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError
        raise DatasetError(f"dataset is not valid JSON: {path}: {e}") from e

    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise DatasetError(f"dataset must be a JSON array of objects: {path}")

    logger.debug("Loaded %d rows from %s", len(rows), path)
    return rows


# ----------------------------
# Generator
# ----------------------------

class ReportGenerator:
    """
    Builds a mock GA report from a static set of "Pages and screens" rows.

    Key-event rates for pages and channels are drawn from `rng`, so two calls
    with the same parameters return different rates unless a seeded
    random.Random is passed in.
    """

    def __init__(self, rows: List[Dict[str, Any]], rng: Optional[random.Random] = None):
        self.rows = rows
        self.rng = rng or random.Random()

    def generate(self, params: Optional[GaDataParams] = None) -> ReportData:
        params = params or GaDataParams()

        date_factor = date_adjustment_factor(params.start_date, params.end_date)
        comp_factor = comparison_adjustment_factor(
            params.comparison_start_date, params.comparison_end_date
        )
        logger.debug("date factor=%s comparison factor=%s", date_factor, comp_factor)

        sessions = round_half_up(sum(get_number(r, "Views") for r in self.rows) * date_factor)
        users = round_half_up(sum(get_number(r, "Users") for r in self.rows) * date_factor)

        engagement_rate = 100 * (sessions / users) if users else 0.0
        prev_engagement_rate = max(engagement_rate - 2.5, 0.0)
        totals = self._totals(sessions, users, comp_factor)

        pages = self._pages(date_factor, comp_factor)

        channels = [
            (name, ctype, round_half_up(sessions * share)) for name, ctype, share in CHANNELS
        ]
        source = (params.traffic_source_type or "").strip().lower()
        if source:
            channels = [c for c in channels if c[1] == source]
            filtered_sessions = channels[0][2] if channels else 0
            totals = self._totals(
                filtered_sessions,
                round_half_up(filtered_sessions * FILTERED_USERS_SHARE),
                comp_factor,
            )

        return ReportData(
            engagement_rate=engagement_rate,
            prev_engagement_rate=prev_engagement_rate,
            pages=pages,
            channels=[
                ChannelBreakdown(
                    name=name,
                    sessions=channel_sessions,
                    prev_sessions=round_half_up(channel_sessions * comp_factor),
                    key_event_rate=self.rng.random() * 15 + 5,
                    prev_key_event_rate=self.rng.random() * 15 + 5,
                )
                for name, _, channel_sessions in channels
            ],
            **totals,
        )

    @staticmethod
    def _totals(sessions: int, users: int, comp_factor: float) -> Dict[str, Any]:
        key_events = round_half_up(sessions * KEY_EVENT_SHARE)
        rate = 100 * (key_events / sessions) if sessions else 0.0
        return {
            "sessions": sessions,
            "users": users,
            "key_events": key_events,
            "prev_sessions": round_half_up(sessions * comp_factor),
            "prev_users": round_half_up(users * (comp_factor + 0.02)),
            "prev_key_events": round_half_up(key_events * comp_factor),
            "session_key_event_rate": rate,
            "prev_session_key_event_rate": rate - 0.5,
        }

    def _pages(self, date_factor: float, comp_factor: float) -> List[PageBreakdown]:
        # sorted() is stable, so equal view counts keep dataset order
        ordered = sorted(self.rows, key=lambda r: get_number(r, "Views"), reverse=True)
        pages = []
        for row in ordered:
            page_views = round_half_up(get_number(row, "Views") * date_factor)
            pages.append(
                PageBreakdown(
                    path=get_path(row),
                    sessions=page_views,
                    prev_sessions=round_half_up(page_views * comp_factor),
                    key_event_rate=self.rng.random() * 20,
                    prev_key_event_rate=self.rng.random() * 20,
                )
            )
        return pages


def generate_report(path, params: Optional[GaDataParams] = None,
                    rng: Optional[random.Random] = None) -> ReportData:
    return ReportGenerator(load_dataset(path), rng=rng).generate(params)

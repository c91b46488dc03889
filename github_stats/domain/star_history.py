"""Star history analytics: daily series, growth trends and milestones."""
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from github_stats.domain.models import (
    StarHistoryAnalytics,
    StarHistoryPoint,
    Stargazer,
    parse_timestamp,
)


GROWTH_WINDOWS = {
    "last_7_days": 7,
    "last_30_days": 30,
    "last_90_days": 90,
    "last_year": 365,
}

MILESTONES = [
    (1000, "1k"),
    (5000, "5k"),
    (10000, "10k"),
    (50000, "50k"),
    (100000, "100k"),
]


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def age_in_days(created_at: Optional[str], now: Optional[datetime] = None) -> int:
    created = parse_timestamp(created_at)
    if created is None:
        return 0
    return int((_now(now) - created).total_seconds() // 86400)


def build_history_points(stargazers: Iterable[Stargazer]) -> List[StarHistoryPoint]:
    """Running cumulative star count, one point per day with star events.

    Stargazers without a timestamp are left out of the series.
    """
    per_day = Counter(
        s.starred_at.astimezone(timezone.utc).date().isoformat()
        for s in stargazers
        if s.has_timestamp
    )

    points = []
    running = 0
    for day in sorted(per_day):
        running += per_day[day]
        points.append(StarHistoryPoint(date=day, stars=running, change=per_day[day]))
    return points


def find_best_growth_day(points: List[StarHistoryPoint]) -> Optional[Dict[str, Any]]:
    best = None
    for point in points:
        if point.change > 0 and (best is None or point.change > best.change):
            best = point
    return {"date": best.date, "stars_gained": best.change} if best else None


def find_worst_growth_day(points: List[StarHistoryPoint]) -> Optional[Dict[str, Any]]:
    """Largest single-day loss.

    The stargazer listing only reports additions, so this stays None until
    a source with unstar events is wired in.
    """
    worst = None
    for point in points:
        if point.change < 0 and (worst is None or point.change < worst.change):
            worst = point
    return {"date": worst.date, "stars_lost": abs(worst.change)} if worst else None


def calculate_growth_trends(
    points: List[StarHistoryPoint], now: Optional[datetime] = None
) -> Dict[str, int]:
    today = _now(now)
    trends = {}
    for label, days in GROWTH_WINDOWS.items():
        cutoff = (today - timedelta(days=days)).date().isoformat()
        trends[label] = sum(point.change for point in points if point.date >= cutoff)
    return trends


def calculate_milestones(
    points: List[StarHistoryPoint], current_stars: int
) -> List[Dict[str, Any]]:
    """Date each star milestone was first reached in the series.

    A milestone is listed only when the repository is past it today and the
    sampled history actually crosses it.
    """
    milestones = []
    for target, milestone_type in MILESTONES:
        if current_stars < target:
            continue
        reached = next((point for point in points if point.stars >= target), None)
        if reached is not None:
            milestones.append({
                "stars": target,
                "date": reached.date,
                "milestone_type": milestone_type,
            })
    return milestones


def calculate_star_history(
    repository: Dict[str, Any],
    stargazers: List[Stargazer],
    now: Optional[datetime] = None,
) -> StarHistoryAnalytics:
    current_stars = repository.get("stargazers_count", 0)
    age = age_in_days(repository.get("created_at"), now)
    points = build_history_points(stargazers)

    growth_per_day = current_stars / age if age > 0 else 0

    return StarHistoryAnalytics(
        current_stars=current_stars,
        total_growth=current_stars,
        growth_rate_per_day=round(growth_per_day, 2),
        growth_rate_per_month=round(growth_per_day * 30, 2),
        best_growth_day=find_best_growth_day(points),
        worst_growth_day=find_worst_growth_day(points),
        history_points=points,
        growth_trends=calculate_growth_trends(points, now),
        milestones=calculate_milestones(points, current_stars),
    )


def simple_star_history(
    repository: Dict[str, Any], now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Cheap estimate from repository metadata alone, no stargazer listing."""
    current_stars = repository.get("stargazers_count", 0)
    age = age_in_days(repository.get("created_at"), now)
    return {
        "current_stars": current_stars,
        "estimated_daily_growth": round(current_stars / age, 2) if age > 0 else 0,
        "repository_age_days": age,
        "star_history_url": f"https://star-history.com/#{repository.get('full_name')}&Date",
    }

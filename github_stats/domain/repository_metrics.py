"""Language and commit-activity summaries."""
from datetime import datetime, timezone
from typing import Any, Dict, List


def calculate_language_breakdown(languages: Dict[str, int]) -> List[Dict[str, Any]]:
    """Share of each language by bytes, largest first."""
    total = sum(languages.values())
    breakdown = [
        {
            "language": language,
            "bytes": size,
            "percentage": f"{size / total * 100:.2f}" if total else "0.00",
        }
        for language, size in languages.items()
    ]
    return sorted(breakdown, key=lambda entry: entry["bytes"], reverse=True)


def analyze_commit_activity(activity: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Summarize the 52-week commit activity series."""
    if not activity:
        return {
            "summary": {
                "total_commits": 0,
                "average_commits_per_week": 0,
                "most_active_week": None,
            },
            "weekly_activity": [],
        }

    weekly_totals = [(week or {}).get("total", 0) for week in activity]
    total_commits = sum(weekly_totals)

    most_active = None
    for week, total in zip(activity, weekly_totals):
        if total > 0 and (most_active is None or total > most_active["total"]):
            most_active = week

    return {
        "summary": {
            "total_commits": total_commits,
            "average_commits_per_week": round(total_commits / len(activity), 2),
            "most_active_week": {
                "week_timestamp": most_active["week"],
                "commits": most_active["total"],
                "date": datetime.fromtimestamp(most_active["week"], tz=timezone.utc)
                .date()
                .isoformat(),
            } if most_active else None,
        },
        "weekly_activity": activity,
    }

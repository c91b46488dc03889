"""Traffic referrer categorization and analysis."""
from typing import Any, Dict, List, Optional


SEARCH_ENGINES = ("google.", "bing.", "duckduckgo.")
SOCIAL_MEDIA = ("reddit.com", "twitter.com", "x.com", "linkedin.com")
DEVELOPER_COMMUNITIES = ("stackoverflow.com", "stackexchange.com")
BLOG_PLATFORMS = ("medium.com", "dev.to")
VIDEO_PLATFORMS = ("youtube.com", "twitch.tv")


def categorize_referrer(referrer: str) -> str:
    if referrer == "Google":
        return "search_engine"
    if referrer == "github.com":
        return "github_internal"
    if "github.com" in referrer:
        return "github_related"
    if any(domain in referrer for domain in SEARCH_ENGINES):
        return "search_engine"
    if any(domain in referrer for domain in SOCIAL_MEDIA):
        return "social_media"
    if any(domain in referrer for domain in DEVELOPER_COMMUNITIES):
        return "developer_community"
    if any(domain in referrer for domain in BLOG_PLATFORMS):
        return "blog_platform"
    if any(domain in referrer for domain in VIDEO_PLATFORMS):
        return "video_platform"
    return "other"


def _percent(part: int, whole: int) -> str:
    return f"{part / whole * 100:.2f}%" if whole > 0 else "0%"


def _conversion(referrer: Dict[str, Any]) -> float:
    return referrer["uniques"] / referrer["count"] if referrer["count"] else 0.0


def analyze_referrers(
    referrers: List[Dict[str, Any]], include_analysis: bool = True
) -> Dict[str, Any]:
    """Traffic summary for the 14-day referrer window GitHub exposes.

    ``referrers`` arrive ordered by visit count, as the API returns them.
    """
    total_traffic = sum(r["count"] for r in referrers)
    total_uniques = sum(r["uniques"] for r in referrers)

    categorized = [
        {
            **referrer,
            "category": categorize_referrer(referrer["referrer"]),
            "conversion_rate": _percent(referrer["uniques"], referrer["count"]),
        }
        for referrer in referrers
    ]

    category_stats: Dict[str, Dict[str, int]] = {}
    for referrer in categorized:
        stats = category_stats.setdefault(
            referrer["category"], {"count": 0, "uniques": 0, "referrers": 0}
        )
        stats["count"] += referrer["count"]
        stats["uniques"] += referrer["uniques"]
        stats["referrers"] += 1

    top_traffic: Optional[Dict[str, Any]] = referrers[0] if referrers else None
    top_uniques = max(referrers, key=lambda r: r["uniques"]) if referrers else None
    best_conversion = max(categorized, key=_conversion) if categorized else None

    summary = {
        "total_referrers": len(referrers),
        "total_traffic": total_traffic,
        "total_unique_visitors": total_uniques,
        "average_conversion_rate": _percent(total_uniques, total_traffic),
        "data_period": "Last 14 days (GitHub API limitation)",
    }
    if not referrers:
        summary["note"] = (
            "No traffic data available. This requires repository owner/admin "
            "access and recent traffic."
        )

    result: Dict[str, Any] = {
        "summary": summary,
        "top_performers": {
            "highest_traffic": {
                "referrer": top_traffic["referrer"],
                "total_visits": top_traffic["count"],
                "category": categorize_referrer(top_traffic["referrer"]),
            } if top_traffic else None,
            "highest_uniques": {
                "referrer": top_uniques["referrer"],
                "unique_visitors": top_uniques["uniques"],
                "category": categorize_referrer(top_uniques["referrer"]),
            } if top_uniques else None,
            "best_conversion": {
                "referrer": best_conversion["referrer"],
                "conversion_rate": best_conversion["conversion_rate"],
                "category": best_conversion["category"],
            } if best_conversion else None,
        },
    }

    if include_analysis:
        result["category_analysis"] = sorted(
            (
                {
                    "category": category,
                    "total_visits": stats["count"],
                    "unique_visitors": stats["uniques"],
                    "referrer_count": stats["referrers"],
                    "traffic_share": _percent(stats["count"], total_traffic),
                    "avg_conversion_rate": _percent(stats["uniques"], stats["count"]),
                }
                for category, stats in category_stats.items()
            ),
            key=lambda entry: entry["total_visits"],
            reverse=True,
        )

        def category_count(name: str) -> int:
            return category_stats.get(name, {}).get("count", 0)

        result["traffic_insights"] = {
            "is_organic_heavy": category_count("search_engine") > total_traffic * 0.5,
            "has_social_presence": category_count("social_media") > 0,
            "developer_community_reach": category_count("developer_community") > 0,
            "github_visibility": category_count("github_internal") > total_traffic * 0.3,
        }

    result["detailed_referrers"] = [
        {
            "rank": rank,
            "referrer": referrer["referrer"],
            "category": referrer["category"],
            "total_visits": referrer["count"],
            "unique_visitors": referrer["uniques"],
            "conversion_rate": referrer["conversion_rate"],
            "traffic_percentage": _percent(referrer["count"], total_traffic),
            "uniques_percentage": _percent(referrer["uniques"], total_uniques),
        }
        for rank, referrer in enumerate(categorized, start=1)
    ]
    return result

"""Release and download analytics derived from raw release records."""
from typing import Any, Dict, List, Optional

from github_stats.domain.models import DownloadStats, ReleaseAnalytics, parse_timestamp


MEBIBYTE = 1024 * 1024

# Upper bounds in MiB; anything at or above the last bound falls in "> 1GB".
SIZE_RANGES = [
    ("< 1MB", 1),
    ("1-10MB", 10),
    ("10-100MB", 100),
    ("100MB-1GB", 1024),
]
LARGEST_SIZE_RANGE = "> 1GB"


def size_in_mb(size_bytes: int) -> float:
    return round(size_bytes / MEBIBYTE, 2)


def file_extension(filename: str) -> str:
    """Lower-cased extension of an asset name, ``unknown`` when it has none."""
    if "." not in filename:
        return "unknown"
    return filename.rsplit(".", 1)[-1].lower() or "unknown"


def size_range(size_mb: float) -> str:
    for label, upper_bound in SIZE_RANGES:
        if size_mb < upper_bound:
            return label
    return LARGEST_SIZE_RANGE


def release_downloads(release: Dict[str, Any]) -> int:
    return sum(asset.get("download_count", 0) for asset in release.get("assets") or [])


def calculate_release_frequency(releases: List[Dict[str, Any]]) -> Dict[str, float]:
    """Mean spacing between published, non-draft releases.

    All three figures are 0 with fewer than two qualifying releases.
    """
    published = [r for r in releases if r.get("published_at") and not r.get("draft")]
    if len(published) <= 1:
        return {
            "days_between_releases": 0,
            "releases_per_month": 0,
            "releases_per_year": 0,
        }

    dates = sorted(parse_timestamp(r["published_at"]) for r in published)
    total_days = (dates[-1] - dates[0]).total_seconds() // 86400
    days_between = total_days / (len(dates) - 1)

    return {
        "days_between_releases": round(days_between, 2),
        "releases_per_month": round(30 / days_between, 2) if days_between > 0 else 0,
        "releases_per_year": round(365 / days_between, 2) if days_between > 0 else 0,
    }


def calculate_asset_types(releases: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    asset_types: Dict[str, Dict[str, Any]] = {}
    for release in releases:
        for asset in release.get("assets") or []:
            bucket = asset_types.setdefault(
                file_extension(asset.get("name", "")),
                {"count": 0, "total_downloads": 0, "total_size_mb": 0.0},
            )
            bucket["count"] += 1
            bucket["total_downloads"] += asset.get("download_count", 0)
            bucket["total_size_mb"] += asset.get("size", 0) / MEBIBYTE

    for bucket in asset_types.values():
        bucket["total_size_mb"] = round(bucket["total_size_mb"], 2)
    return asset_types


def calculate_prerelease_stats(releases: List[Dict[str, Any]]) -> Dict[str, Any]:
    prereleases = [r for r in releases if r.get("prerelease")]
    percentage = round(len(prereleases) / len(releases) * 100, 2) if releases else 0
    return {
        "total_prereleases": len(prereleases),
        "percentage_prereleases": percentage,
    }


def _most_downloaded(
    releases: List[Dict[str, Any]], totals: List[int]
) -> Optional[Dict[str, Any]]:
    if not releases:
        return None
    # max() keeps the first release on ties
    index = max(range(len(releases)), key=lambda i: totals[i])
    release = releases[index]
    return {
        "tag_name": release.get("tag_name"),
        "name": release.get("name"),
        "downloads": totals[index],
        "published_at": release.get("published_at"),
    }


def calculate_release_metrics(releases: List[Dict[str, Any]]) -> ReleaseAnalytics:
    """Aggregate download totals, cadence and asset mix across releases."""
    totals = [release_downloads(release) for release in releases]
    download_trends = [
        {
            "tag_name": release.get("tag_name"),
            "total_downloads": total,
            "asset_breakdown": sorted(
                (
                    {
                        "name": asset.get("name"),
                        "downloads": asset.get("download_count", 0),
                        "size_mb": size_in_mb(asset.get("size", 0)),
                    }
                    for asset in release.get("assets") or []
                ),
                key=lambda asset: asset["downloads"],
                reverse=True,
            ),
        }
        for release, total in zip(releases, totals)
    ]
    total_downloads = sum(totals)

    return ReleaseAnalytics(
        total_releases=len(releases),
        total_downloads=total_downloads,
        total_assets=sum(len(release.get("assets") or []) for release in releases),
        average_downloads_per_release=(
            round(total_downloads / len(releases)) if releases else 0
        ),
        most_downloaded_release=_most_downloaded(releases, totals),
        latest_release=next((r for r in releases if not r.get("draft")), None),
        release_frequency=calculate_release_frequency(releases),
        download_trends=download_trends,
        asset_types=calculate_asset_types(releases),
        prerelease_stats=calculate_prerelease_stats(releases),
    )


def calculate_download_distribution(assets: List[Dict[str, Any]]) -> Dict[str, Dict[str, int]]:
    by_file_type: Dict[str, int] = {}
    by_size_range = {label: 0 for label, _ in SIZE_RANGES}
    by_size_range[LARGEST_SIZE_RANGE] = 0

    for asset in assets:
        extension = file_extension(asset["name"])
        by_file_type[extension] = by_file_type.get(extension, 0) + asset["downloads"]
        by_size_range[size_range(asset["size_mb"])] += asset["downloads"]

    return {"by_file_type": by_file_type, "by_size_range": by_size_range}


def calculate_download_stats(releases: List[Dict[str, Any]]) -> DownloadStats:
    """Per-release and per-asset download breakdowns."""
    downloads_by_release = []
    all_assets = []
    for release in releases:
        assets = [
            {
                "name": asset.get("name", ""),
                "downloads": asset.get("download_count", 0),
                "size_mb": size_in_mb(asset.get("size", 0)),
                "content_type": asset.get("content_type"),
            }
            for asset in release.get("assets") or []
        ]
        downloads_by_release.append({
            "tag_name": release.get("tag_name"),
            "name": release.get("name"),
            "published_at": release.get("published_at"),
            "total_downloads": sum(asset["downloads"] for asset in assets),
            "assets": sorted(assets, key=lambda asset: asset["downloads"], reverse=True),
        })
        all_assets.extend(
            {
                "name": asset["name"],
                "release_tag": release.get("tag_name"),
                "downloads": asset["downloads"],
                "size_mb": asset["size_mb"],
            }
            for asset in assets
        )

    top_assets = sorted(all_assets, key=lambda asset: asset["downloads"], reverse=True)[:20]

    return DownloadStats(
        total_downloads=sum(asset["downloads"] for asset in all_assets),
        downloads_by_release=sorted(
            downloads_by_release, key=lambda release: release["total_downloads"], reverse=True
        ),
        top_assets=top_assets,
        download_distribution=calculate_download_distribution(all_assets),
    )

"""Tests for language and commit activity summaries."""
from github_stats.domain.repository_metrics import (
    analyze_commit_activity,
    calculate_language_breakdown,
)


def test_language_breakdown_sorted_with_percentages():
    """Test languages are ordered by bytes with 2-decimal percentages."""
    breakdown = calculate_language_breakdown({"Shell": 100, "Python": 700, "C": 200})

    assert breakdown == [
        {"language": "Python", "bytes": 700, "percentage": "70.00"},
        {"language": "C", "bytes": 200, "percentage": "20.00"},
        {"language": "Shell", "bytes": 100, "percentage": "10.00"},
    ]


def test_language_breakdown_empty():
    """Test no languages gives an empty breakdown."""
    assert calculate_language_breakdown({}) == []


def test_commit_activity_summary():
    """Test totals, weekly average and the first busiest week."""
    activity = [
        {"week": 1704067200, "total": 3, "days": [0, 1, 2, 0, 0, 0, 0]},
        {"week": 1704672000, "total": 9, "days": [0, 9, 0, 0, 0, 0, 0]},
        {"week": 1705276800, "total": 9, "days": [9, 0, 0, 0, 0, 0, 0]},
        {"week": 1705881600, "total": 0, "days": [0, 0, 0, 0, 0, 0, 0]},
    ]

    result = analyze_commit_activity(activity)

    assert result["summary"] == {
        "total_commits": 21,
        "average_commits_per_week": 5.25,
        "most_active_week": {
            "week_timestamp": 1704672000,
            "commits": 9,
            "date": "2024-01-08",
        },
    }
    assert result["weekly_activity"] == activity


def test_commit_activity_without_commits():
    """Test an idle year has no most active week."""
    activity = [{"week": 1704067200, "total": 0, "days": [0] * 7}]

    assert analyze_commit_activity(activity)["summary"]["most_active_week"] is None


def test_commit_activity_empty():
    """Test empty activity gives zeros."""
    assert analyze_commit_activity([]) == {
        "summary": {
            "total_commits": 0,
            "average_commits_per_week": 0,
            "most_active_week": None,
        },
        "weekly_activity": [],
    }

"""Influencer scoring and distribution analytics over stargazer profiles."""
import math
from datetime import datetime
from statistics import median
from typing import Any, Dict, List, Optional

from github_stats.domain.models import (
    InfluencerAnalytics,
    InfluencerProfile,
    Stargazer,
    format_timestamp,
)
from github_stats.domain.star_history import age_in_days


FOLLOWER_WEIGHT = 0.6
REPO_WEIGHT = 0.2
AGE_WEIGHT = 0.2

MEGA_INFLUENCER_FOLLOWERS = 10000

NOTABLE_COMPANIES = [
    "GitHub",
    "Microsoft",
    "Google",
    "Meta",
    "Apple",
    "Netflix",
    "Amazon",
    "Vercel",
    "Stripe",
]


def calculate_influence_score(followers: int, repos: int, account_age_years: int) -> float:
    """Weighted blend of reach, output and tenure.

    Followers are log-damped; repository count and account age are each
    capped at 10 so neither can dominate.
    """
    normalized_followers = math.log10(followers + 1) * 10
    normalized_repos = min(repos / 10, 10)
    normalized_age = min(account_age_years, 10)
    return (
        normalized_followers * FOLLOWER_WEIGHT
        + normalized_repos * REPO_WEIGHT
        + normalized_age * AGE_WEIGHT
    )


def build_influencer_profile(
    user: Dict[str, Any], stargazer: Stargazer, now: Optional[datetime] = None
) -> InfluencerProfile:
    followers = user.get("followers") or 0
    public_repos = user.get("public_repos") or 0
    account_age_years = age_in_days(user.get("created_at"), now) // 365

    return InfluencerProfile(
        login=user["login"],
        id=user.get("id", 0),
        name=user.get("name"),
        avatar_url=user.get("avatar_url"),
        html_url=user.get("html_url"),
        followers=followers,
        following=user.get("following") or 0,
        public_repos=public_repos,
        public_gists=user.get("public_gists") or 0,
        bio=user.get("bio"),
        company=user.get("company"),
        location=user.get("location"),
        blog=user.get("blog"),
        twitter_username=user.get("twitter_username"),
        created_at=user.get("created_at"),
        starred_at=format_timestamp(stargazer.starred_at),
        influence_score=calculate_influence_score(followers, public_repos, account_age_years),
    )


def _by_score(profiles: List[InfluencerProfile]) -> List[InfluencerProfile]:
    return sorted(profiles, key=lambda p: p.influence_score, reverse=True)


def calculate_influence_distribution(profiles: List[InfluencerProfile]) -> Dict[str, int]:
    return {
        "mega_influencers": sum(1 for p in profiles if p.followers >= 10000),
        "macro_influencers": sum(1 for p in profiles if 1000 <= p.followers < 10000),
        "micro_influencers": sum(1 for p in profiles if 100 <= p.followers < 1000),
        "regular_users": sum(1 for p in profiles if p.followers < 100),
    }


def calculate_geographic_distribution(profiles: List[InfluencerProfile]) -> Dict[str, int]:
    distribution: Dict[str, int] = {}
    for profile in profiles:
        if profile.location:
            location = profile.location.strip()
            distribution[location] = distribution.get(location, 0) + 1
    return distribution


def calculate_company_distribution(profiles: List[InfluencerProfile]) -> Dict[str, int]:
    distribution: Dict[str, int] = {}
    for profile in profiles:
        if profile.company:
            company = profile.company.strip().replace("@", "", 1)
            distribution[company] = distribution.get(company, 0) + 1
    return distribution


def calculate_influence_metrics(
    profiles: List[InfluencerProfile], total_followers: int
) -> Dict[str, float]:
    """Reach figures, including the share held by the top 10% of profiles."""
    by_followers = sorted((p.followers for p in profiles), reverse=True)
    top_count = math.ceil(len(by_followers) * 0.1)
    top_followers = sum(by_followers[:top_count])
    concentration = top_followers / total_followers * 100 if total_followers > 0 else 0

    return {
        "total_potential_reach": total_followers,
        "median_followers": median(by_followers) if by_followers else 0,
        "top_10_percent_followers": top_followers,
        "influence_concentration": round(concentration, 2),
    }


def _works_at_notable_company(profile: InfluencerProfile) -> bool:
    if not profile.company:
        return False
    company = profile.company.lower()
    return any(name.lower() in company for name in NOTABLE_COMPANIES)


def identify_notable_stargazers(profiles: List[InfluencerProfile]) -> List[Dict[str, Any]]:
    """Mega influencers, then notable employers, then top scorers; at most 20."""
    notable: List[Dict[str, Any]] = []
    selected = set()

    def add(profile: InfluencerProfile, reason: str) -> None:
        if profile.login in selected:
            return
        selected.add(profile.login)
        notable.append({
            "login": profile.login,
            "followers": profile.followers,
            "company": profile.company,
            "reason": reason,
        })

    mega = [p for p in profiles if p.followers >= MEGA_INFLUENCER_FOLLOWERS][:10]
    for profile in mega:
        add(profile, f"Mega influencer with {profile.followers:,} followers")

    employed = [p for p in profiles if _works_at_notable_company(p)][:5]
    for profile in employed:
        add(profile, f"Works at notable company: {profile.company}")

    for profile in _by_score(profiles)[:5]:
        add(profile, f"High influence score ({round(profile.influence_score)})")

    return notable[:20]


def analyze_influencers(profiles: List[InfluencerProfile]) -> InfluencerAnalytics:
    total_followers = sum(p.followers for p in profiles)
    average = total_followers / len(profiles) if profiles else 0

    return InfluencerAnalytics(
        total_stargazers_analyzed=len(profiles),
        total_followers_reached=total_followers,
        average_followers_per_stargazer=round(average),
        top_influencers=_by_score(profiles)[:50],
        influence_distribution=calculate_influence_distribution(profiles),
        geographic_distribution=calculate_geographic_distribution(profiles),
        company_distribution=calculate_company_distribution(profiles),
        metrics=calculate_influence_metrics(profiles, total_followers),
        notable_stargazers=identify_notable_stargazers(profiles),
    )

"""
Prompt templates for the profile and auction pipelines.
"""

import json
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel

from insight.profile.models import FingerprintRecord, GeoData


class PromptTemplate(BaseModel):
    name: str
    system_prompt: str
    user_prompt_template: str
    temperature: float = 0.5


PROFILE_TEMPLATE = PromptTemplate(
    name="profile",
    system_prompt="""You are a user profiling AI for an educational privacy demonstration.
Analyze browser fingerprint data and infer personal details.
Always respond with valid JSON only, no markdown.""",
    user_prompt_template="""Analyze this browser fingerprint and describe what advertisers and tech companies could infer about the visitor.

DATA:
{data}

Respond with one JSON object using these camelCase fields:
- likelyDeveloper (boolean), developerScore (0-100), developerReason (string)
- likelyGamer, gamerScore, gamerReason
- likelyDesigner, designerScore, designerReason
- likelyPowerUser, powerUserScore, powerUserReason
- privacyConscious, privacyScore, privacyReason
- deviceTier ("budget" | "mid-range" | "high-end" | "premium"), estimatedDeviceValue (e.g. "$1,500-$2,500"), deviceAge ("new" | "recent" | "older" | "old")
- humanScore (0-100, 100 = definitely human), botIndicators (string[])
- likelyTechSavvy, likelyMobile, likelyWorkDevice (booleans), likelyCountry (string)
- inferredInterests (string[]), fraudRiskScore (0-100), fraudIndicators (string[])
- personalityTraits (string[]), incomeLevel ("low" | "medium" | "high" | "very-high"), ageRange (e.g. "25-35"), occupation (best guess)

Speculative fields (low confidence, use "unknown" when there is no supporting evidence):
relationshipStatus, relationshipReason, educationLevel, educationReason, politicalLeaning, politicalReason,
lifeSituation, financialHealth, financialReason, workStyle, workReason, sleepSchedule, sleepReason,
stressLevel, stressReason, socialLife, socialReason, likelyParent, parentReason, petOwner, petType,
homeowner, homeReason, carOwner, carType, healthConscious, healthReason, dietaryPreference, coffeeOrTea,
drinksAlcohol, smokes, fitnessLevel, fitnessReason, lifeEvents, shoppingHabits, shoppingReason,
brandPreference, streamingServices, musicTaste, travelFrequency, travelReason, creepyInsights

Signals worth weighing:
- Coding fonts (Fira Code, JetBrains Mono) or framework DevTools extensions mean a developer
- High-end GPUs, lots of RAM and high DPI displays mean a premium device
- Ad blockers, Do Not Track, GPC, incognito and VPN usage mean privacy awareness
- Gamepad support, gaming GPUs, Steam or Discord mean a gamer
- Visit time hints at sleep schedule and work style""",
    temperature=0.5,
)

AUCTION_TEMPLATE = PromptTemplate(
    name="auction",
    system_prompt="""You are an ad auction simulator.
Generate realistic RTB bids based on user profiles.
Always respond with valid JSON only, no markdown.""",
    user_prompt_template="""Simulate a real-time bidding (RTB) ad auction for an educational privacy demo.

USER PROFILE:
{profile_summary}
Location: {country} ({country_code})

Generate 15-25 bidders:
1. Always include the major global DSPs (Google, Meta, Amazon, Criteo, The Trade Desk)
2. Add local or regional ad networks that operate in the visitor's country
3. Add specialized bidders that match the profile (gaming, developer, crypto, professional)

Price CPMs by market tier:
- Tier 1 (US, UK, AU, CA, DE, CH): $1.50-$4.00
- Tier 2 (FR, JP, IT, ES, NL, KR): $0.80-$2.00
- Tier 3 (BR, MX, PL, RU, TR): $0.30-$1.00
- Tier 4 (IN, ID, PH, VN, NG): $0.05-$0.40

Adjust for value: premium device +30-50%, developer or professional +40%, crypto wallets +50% for finance,
ad blocker -70% (most will not bid), VPN -40%. Some bidders should "no-bid" with a reason.

Respond with this JSON shape:
{{
  "bids": [
    {{"bidder": "Google Ads", "cpm": 1.45, "status": "bid", "reason": "Cross-platform data enables precise targeting"}},
    {{"bidder": "Yandex Ads", "cpm": 0, "status": "no-bid", "reason": "User outside target region"}}
  ],
  "valueFactors": [
    {{"factor": "Premium Device", "impact": "+50%", "impactValue": 1.5, "description": "High-end hardware indicates purchasing power"}}
  ]
}}

Use full company names as bidders and do not include emojis.""",
    temperature=0.7,
)


def visit_time(zone_name: str | None, now: datetime | None = None) -> dict[str, Any]:
    """Local visit-time context in the caller's timezone (UTC if unknown)."""
    now = now or datetime.now(timezone.utc)
    try:
        zone = ZoneInfo(zone_name) if zone_name else timezone.utc
    except (ZoneInfoNotFoundError, ValueError, OSError):
        zone = timezone.utc

    local = now.astimezone(zone)
    hour = local.hour
    weekend = local.weekday() >= 5
    return {
        "localHour": hour,
        "dayOfWeek": local.strftime("%A"),
        "isWeekend": weekend,
        "isLateNight": hour < 6,
        "isWorkHours": 9 <= hour <= 17 and not weekend,
    }


def _profile_data(
    record: FingerprintRecord, geo: GeoData | None, now: datetime | None
) -> dict[str, Any]:
    info = record.model_dump(
        by_alias=True, exclude_none=True, exclude={"fingerprint_id", "cross_browser_id"}
    )
    data: dict[str, Any] = {
        "screenResolution": f"{record.screen_width}x{record.screen_height}",
        "browser": f"{record.browser_name} {record.browser_version}",
        **info,
    }
    if geo is not None:
        data["geo"] = geo.model_dump(
            by_alias=True, exclude_none=True, include={"city", "region", "country", "isp"}
        )
    data["visitTime"] = visit_time(record.timezone or (geo.timezone if geo else None), now)
    return data


def build_profile_prompt(
    record: FingerprintRecord, geo: GeoData | None = None, now: datetime | None = None
) -> str:
    data = _profile_data(record, geo, now)
    return PROFILE_TEMPLATE.user_prompt_template.format(data=json.dumps(data, indent=2))


def build_auction_prompt(profile_summary: str, country: str, country_code: str) -> str:
    return AUCTION_TEMPLATE.user_prompt_template.format(
        profile_summary=profile_summary,
        country=country,
        country_code=country_code.upper(),
    )

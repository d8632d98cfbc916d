"""
Profile pipeline data models.

``FingerprintRecord`` and ``GeoData`` are inbound (caller supplied, validated
strictly so malformed requests are rejected). ``UserProfile`` is the single
internal schema every profile source is normalized into.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from insight.ai.normalizer import (
    LenientModel,
    clamp_score,
    coerce_bool,
    coerce_choice,
    coerce_str,
    coerce_str_list,
)

ProfileSource = Literal["ai", "cache", "fallback"]

DEVICE_TIERS = ("budget", "mid-range", "high-end", "premium")
DEVICE_AGES = ("new", "recent", "older", "old")
INCOME_LEVELS = ("low", "medium", "high", "very-high")


@dataclass(frozen=True)
class FingerprintKey:
    """Caller identity: per-browser fingerprint plus cross-browser hardware id."""

    fingerprint_id: str
    cross_browser_id: str

    @property
    def caller_id(self) -> str:
        return f"{self.fingerprint_id}:{self.cross_browser_id}"


class _Inbound(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class GeoData(_Inbound):
    """Server-side IP geolocation, passed through opaquely."""

    city: str | None = None
    region: str | None = None
    country: str | None = None
    country_code: str | None = None
    isp: str | None = None
    timezone: str | None = None


class BehaviorSummary(_Inbound):
    mouse_speed: float | None = None
    typing_speed: float | None = None
    scroll_speed: float | None = None
    session_duration: float | None = None
    tab_switch_count: int | None = None


class AdvancedBehavior(_Inbound):
    dev_tools_open: bool = False
    rage_click_count: int | None = None
    likely_handedness: str | None = None
    keyboard_shortcuts_used: list[str] = Field(default_factory=list)


class VpnDetection(_Inbound):
    likely_using_vpn: bool = Field(default=False, alias="likelyUsingVPN")


class FingerprintRecord(_Inbound):
    """The fingerprint/behaviour record a browser submits."""

    fingerprint_id: str = Field(min_length=1)
    cross_browser_id: str = Field(min_length=1)

    # Hardware
    screen_width: int | None = None
    screen_height: int | None = None
    screen_color_depth: int | None = None
    device_pixel_ratio: float | None = None
    hardware_concurrency: int | None = None
    device_memory: float | None = None
    device_memory_capped: bool | None = None
    max_touch_points: int | None = None
    webgl_vendor: str | None = None
    webgl_renderer: str | None = None
    hardware_family: str | None = None

    # Browser
    browser_name: str | None = None
    browser_version: str | None = None
    platform: str | None = None
    language: str | None = None
    languages: list[str] = Field(default_factory=list)
    timezone: str | None = None
    history_length: int | None = None

    # Privacy
    do_not_track: bool | None = None
    ad_blocker_detected: bool | None = None
    is_incognito: bool | None = None
    global_privacy_control: bool | None = None
    vpn_detection: VpnDetection | None = None

    # Software signals
    extensions_detected: list[str] = Field(default_factory=list)
    fonts_detected: list[str] = Field(default_factory=list)
    social_logins: dict[str, Any] | None = None
    crypto_wallets: list[str] = Field(default_factory=list)
    installed_apps: list[str] = Field(default_factory=list)

    # Display and media
    prefers_color_scheme: str | None = None
    prefers_reduced_motion: bool | None = None
    color_gamut: str | None = None
    hdr_supported: bool | None = None
    media_devices: dict[str, Any] | None = None
    drm_supported: dict[str, Any] | None = None
    video_codecs: list[str] = Field(default_factory=list)
    storage_quota: dict[str, Any] | None = None

    # Connection
    connection_type: str | None = None
    connection_downlink: float | None = None

    # API support
    gamepads_supported: bool | None = None
    web_gpu_supported: bool | None = Field(default=None, alias="webGPUSupported")
    midi_supported: bool | None = None
    bluetooth_supported: bool | None = None

    # Automation
    is_automated: bool | None = None
    is_headless: bool | None = None
    is_virtual_machine: bool | None = None

    # Behaviour
    behavior: BehaviorSummary | None = None
    advanced_behavior: AdvancedBehavior | None = None

    @property
    def key(self) -> FingerprintKey:
        return FingerprintKey(self.fingerprint_id, self.cross_browser_id)


class ProfileRequest(_Inbound):
    client_info: FingerprintRecord
    geo: GeoData | None = None


class VisitRequest(_Inbound):
    """Identity the broadcast transport reports for each new connection."""

    fingerprint_id: str = Field(min_length=1)
    cross_browser_id: str = Field(min_length=1)

    @property
    def key(self) -> FingerprintKey:
        return FingerprintKey(self.fingerprint_id, self.cross_browser_id)


SCORE_FIELDS = (
    "developer_score",
    "gamer_score",
    "designer_score",
    "power_user_score",
    "privacy_score",
    "human_score",
    "fraud_risk_score",
)
FLAG_FIELDS = (
    "likely_developer",
    "likely_gamer",
    "likely_designer",
    "likely_power_user",
    "privacy_conscious",
    "likely_tech_savvy",
    "likely_mobile",
    "likely_work_device",
    "ai_generated",
    "likely_parent",
    "pet_owner",
    "homeowner",
    "car_owner",
    "health_conscious",
    "drinks_alcohol",
    "smokes",
)
TEXT_FIELDS = (
    "developer_reason",
    "gamer_reason",
    "designer_reason",
    "power_user_reason",
    "privacy_reason",
    "estimated_device_value",
    "likely_country",
    "ai_source",
    "age_range",
    "occupation",
    "relationship_status",
    "relationship_reason",
    "education_level",
    "education_reason",
    "political_leaning",
    "political_reason",
    "life_situation",
    "financial_health",
    "financial_reason",
    "work_style",
    "work_reason",
    "sleep_schedule",
    "sleep_reason",
    "stress_level",
    "stress_reason",
    "social_life",
    "social_reason",
    "parent_reason",
    "pet_type",
    "home_reason",
    "car_type",
    "health_reason",
    "dietary_preference",
    "coffee_or_tea",
    "fitness_level",
    "fitness_reason",
    "shopping_habits",
    "shopping_reason",
    "travel_frequency",
    "travel_reason",
)
LIST_FIELDS = (
    "bot_indicators",
    "inferred_interests",
    "fraud_indicators",
    "personality_traits",
    "life_events",
    "brand_preference",
    "streaming_services",
    "music_taste",
    "creepy_insights",
)


class UserProfile(LenientModel):
    """Scored profile inferred from a fingerprint record."""

    REQUIRED: ClassVar[dict[str, tuple[type, ...]]] = {
        "likelyDeveloper": (bool,),
        "developerScore": (int, float),
    }

    likely_developer: bool = False
    developer_score: int = 0
    developer_reason: str | None = None
    likely_gamer: bool = False
    gamer_score: int = 0
    gamer_reason: str | None = None
    likely_designer: bool = False
    designer_score: int = 0
    designer_reason: str | None = None
    likely_power_user: bool = False
    power_user_score: int = 0
    power_user_reason: str | None = None
    privacy_conscious: bool = False
    privacy_score: int = 0
    privacy_reason: str | None = None

    # Device
    device_tier: Literal["budget", "mid-range", "high-end", "premium"] = "mid-range"
    estimated_device_value: str = "Unknown"
    device_age: Literal["new", "recent", "older", "old"] = "recent"

    # Bot / fraud
    human_score: int = 100
    bot_indicators: list[str] = Field(default_factory=list)
    fraud_risk_score: int = 0
    fraud_indicators: list[str] = Field(default_factory=list)

    # Summary flags
    likely_tech_savvy: bool = False
    likely_mobile: bool = False
    likely_work_device: bool = False
    likely_country: str = "Unknown"
    inferred_interests: list[str] = Field(default_factory=list)

    # Provenance
    ai_generated: bool = False
    ai_source: str | None = None

    # Extended
    personality_traits: list[str] | None = None
    income_level: Literal["low", "medium", "high", "very-high"] | None = None
    age_range: str | None = None
    occupation: str | None = None

    # Speculative inferences
    relationship_status: str | None = None
    relationship_reason: str | None = None
    education_level: str | None = None
    education_reason: str | None = None
    political_leaning: str | None = None
    political_reason: str | None = None
    life_situation: str | None = None
    financial_health: str | None = None
    financial_reason: str | None = None
    work_style: str | None = None
    work_reason: str | None = None
    sleep_schedule: str | None = None
    sleep_reason: str | None = None
    stress_level: str | None = None
    stress_reason: str | None = None
    social_life: str | None = None
    social_reason: str | None = None
    likely_parent: bool | None = None
    parent_reason: str | None = None
    pet_owner: bool | None = None
    pet_type: str | None = None
    homeowner: bool | None = None
    home_reason: str | None = None
    car_owner: bool | None = None
    car_type: str | None = None
    health_conscious: bool | None = None
    health_reason: str | None = None
    dietary_preference: str | None = None
    coffee_or_tea: str | None = None
    drinks_alcohol: bool | None = None
    smokes: bool | None = None
    fitness_level: str | None = None
    fitness_reason: str | None = None
    life_events: list[str] | None = None
    shopping_habits: str | None = None
    shopping_reason: str | None = None
    brand_preference: list[str] | None = None
    streaming_services: list[str] | None = None
    music_taste: list[str] | None = None
    travel_frequency: str | None = None
    travel_reason: str | None = None
    creepy_insights: list[str] | None = None

    @field_validator(*SCORE_FIELDS, mode="before")
    @classmethod
    def _clamp_scores(cls, value: Any, info: ValidationInfo) -> int:
        return clamp_score(value, cls.default_for(info.field_name))

    @field_validator(*FLAG_FIELDS, mode="before")
    @classmethod
    def _coerce_flags(cls, value: Any, info: ValidationInfo) -> bool | None:
        return coerce_bool(value, cls.default_for(info.field_name))

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, value: Any, info: ValidationInfo) -> str | None:
        return coerce_str(value, cls.default_for(info.field_name))

    @field_validator(*LIST_FIELDS, mode="before")
    @classmethod
    def _coerce_lists(cls, value: Any, info: ValidationInfo) -> list[str] | None:
        return coerce_str_list(value, cls.default_for(info.field_name))

    @field_validator("device_tier", mode="before")
    @classmethod
    def _coerce_tier(cls, value: Any) -> str:
        return coerce_choice(value, DEVICE_TIERS, "mid-range")

    @field_validator("device_age", mode="before")
    @classmethod
    def _coerce_age(cls, value: Any) -> str:
        return coerce_choice(value, DEVICE_AGES, "recent")

    @field_validator("income_level", mode="before")
    @classmethod
    def _coerce_income(cls, value: Any) -> str | None:
        return coerce_choice(value, INCOME_LEVELS, None)


class ProfileResponse(BaseModel):
    profile: dict[str, Any] | None
    source: ProfileSource
    error: str | None = None

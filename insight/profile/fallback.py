"""
Rule-based profile used whenever remote inference is unavailable.

A pure function of the declared record fields: no I/O, no clock, no
randomness, so the same record always yields the same profile.
"""

import re

from insight.profile.models import FingerprintRecord, GeoData, UserProfile

DEVELOPER_FONTS = (
    "fira code",
    "jetbrains mono",
    "source code pro",
    "consolas",
    "monaco",
    "menlo",
    "cascadia code",
    "hack",
)
DEVELOPER_EXTENSIONS = (
    "react devtools",
    "vue devtools",
    "redux devtools",
    "angular devtools",
    "vscode",
)
GAMING_GPU = re.compile(r"RTX|GTX|Radeon RX|GeForce", re.IGNORECASE)
MOBILE_PLATFORM = re.compile(r"Mobile|Android|iPhone|iPad", re.IGNORECASE)
SOCIAL_NETWORKS = ("google", "facebook", "twitter", "github")


def _matches_any(values: list[str], needles: tuple[str, ...]) -> bool:
    return any(needle in value.lower() for value in values for needle in needles)


def _detected(likely: bool, signals: dict[str, bool], empty: str) -> str:
    if not likely:
        return empty
    found = [label for label, present in signals.items() if present]
    return f"Detected: {', '.join(found)}"


def generate_fallback_profile(
    record: FingerprintRecord, geo: GeoData | None = None
) -> UserProfile:
    """Build a fully-populated profile from fingerprint heuristics alone."""
    advanced = record.advanced_behavior
    apps = [app.lower() for app in record.installed_apps]

    # Developer
    has_dev_fonts = _matches_any(record.fonts_detected, DEVELOPER_FONTS)
    has_dev_extensions = _matches_any(record.extensions_detected, DEVELOPER_EXTENSIONS)
    dev_tools_open = bool(advanced and advanced.dev_tools_open)
    developer_score = min(
        100,
        (40 if has_dev_fonts else 0)
        + (40 if has_dev_extensions else 0)
        + (30 if dev_tools_open else 0),
    )
    likely_developer = developer_score >= 40

    # Gamer
    has_gamepad = bool(record.gamepads_supported)
    has_gaming_gpu = bool(GAMING_GPU.search(record.webgl_renderer or ""))
    has_discord = "discord" in apps
    has_steam = "steam" in apps
    gamer_score = min(
        100,
        (30 if has_gamepad else 0)
        + (30 if has_gaming_gpu else 0)
        + (20 if has_discord else 0)
        + (30 if has_steam else 0),
    )
    likely_gamer = gamer_score >= 40

    # Designer
    high_dpi = (record.device_pixel_ratio or 1) >= 2
    wide_gamut = record.color_gamut in ("p3", "rec2020")
    hdr = bool(record.hdr_supported)
    high_resolution = (record.screen_width or 0) >= 2560
    designer_score = 25 * sum((high_dpi, wide_gamut, hdr, high_resolution))
    likely_designer = designer_score >= 50

    # Power user
    many_cores = (record.hardware_concurrency or 0) >= 8
    much_ram = (record.device_memory or 0) >= 16
    multilingual = len(record.languages) >= 3
    shortcuts = len(advanced.keyboard_shortcuts_used) if advanced else 0
    uses_shortcuts = shortcuts > 3
    power_user_score = min(
        100,
        (25 if many_cores else 0)
        + (25 if much_ram else 0)
        + (20 if multilingual else 0)
        + (30 if uses_shortcuts else 0),
    )
    likely_power_user = power_user_score >= 50

    # Privacy
    ad_blocker = bool(record.ad_blocker_detected)
    dnt = bool(record.do_not_track)
    gpc = bool(record.global_privacy_control)
    incognito = bool(record.is_incognito)
    vpn = bool(record.vpn_detection and record.vpn_detection.likely_using_vpn)
    privacy_score = min(
        100,
        (25 if ad_blocker else 0)
        + (15 if dnt else 0)
        + (20 if gpc else 0)
        + (25 if incognito else 0)
        + (25 if vpn else 0),
    )
    privacy_conscious = privacy_score >= 40

    # Device tier
    ram_gb = record.device_memory if record.device_memory is not None else 4
    cores = record.hardware_concurrency if record.hardware_concurrency is not None else 4
    if ram_gb >= 32 or cores >= 16 or has_gaming_gpu:
        device_tier, device_value = "premium", "$2,000-$4,000"
    elif ram_gb >= 16 or cores >= 8:
        device_tier, device_value = "high-end", "$1,000-$2,000"
    elif ram_gb <= 4 and cores <= 4:
        device_tier, device_value = "budget", "$200-$500"
    else:
        device_tier, device_value = "mid-range", "$500-$1,000"

    likely_mobile = (record.max_touch_points or 0) > 1 and bool(
        MOBILE_PLATFORM.search(record.platform or "")
    )

    # Bots
    automated = bool(record.is_automated)
    headless = bool(record.is_headless)
    virtual_machine = bool(record.is_virtual_machine)
    bot_indicators = [
        label
        for label, present in (
            ("Automation detected", automated),
            ("Headless browser", headless),
            ("Virtual machine", virtual_machine),
        )
        if present
    ]
    human_score = max(
        0,
        100
        - (50 if automated else 0)
        - (30 if headless else 0)
        - (20 if virtual_machine else 0),
    )

    interests: list[str] = []
    if likely_developer:
        interests += ["Software Development", "Technology"]
    if likely_gamer:
        interests += ["Gaming", "Entertainment"]
    if likely_designer:
        interests += ["Design", "Creative Work"]
    if record.crypto_wallets:
        interests += ["Cryptocurrency", "Finance"]
    logins = record.social_logins or {}
    if any(logins.get(network) for network in SOCIAL_NETWORKS):
        interests.append("Social Media")

    fraud_indicators: list[str] = []
    if automated:
        fraud_indicators.append("Automation detected")
    if vpn and incognito:
        fraud_indicators.append("VPN + Incognito mode")
    if headless:
        fraud_indicators.append("Headless browser")

    if likely_developer:
        occupation = "Tech Professional"
    elif likely_designer:
        occupation = "Creative Professional"
    else:
        occupation = "Unknown"

    return UserProfile(
        likely_developer=likely_developer,
        developer_score=developer_score,
        developer_reason=_detected(
            likely_developer,
            {
                "coding fonts": has_dev_fonts,
                "dev extensions": has_dev_extensions,
                "DevTools open": dev_tools_open,
            },
            "No strong developer indicators",
        ),
        likely_gamer=likely_gamer,
        gamer_score=gamer_score,
        gamer_reason=_detected(
            likely_gamer,
            {
                "gaming GPU": has_gaming_gpu,
                "gamepad support": has_gamepad,
                "Discord": has_discord,
                "Steam": has_steam,
            },
            "No strong gaming indicators",
        ),
        likely_designer=likely_designer,
        designer_score=designer_score,
        designer_reason=_detected(
            likely_designer,
            {
                "high DPI display": high_dpi,
                "wide color gamut": wide_gamut,
                "HDR support": hdr,
                "high resolution": high_resolution,
            },
            "No strong designer indicators",
        ),
        likely_power_user=likely_power_user,
        power_user_score=power_user_score,
        power_user_reason=_detected(
            likely_power_user,
            {
                "high CPU cores": many_cores,
                "high RAM": much_ram,
                "keyboard shortcuts": uses_shortcuts,
            },
            "Average user setup",
        ),
        privacy_conscious=privacy_conscious,
        privacy_score=privacy_score,
        privacy_reason=_detected(
            privacy_conscious,
            {
                "ad blocker": ad_blocker,
                "DNT": dnt,
                "GPC": gpc,
                "incognito": incognito,
                "VPN": vpn,
            },
            "Standard privacy settings",
        ),
        device_tier=device_tier,
        estimated_device_value=device_value,
        device_age="recent",
        human_score=human_score,
        bot_indicators=bot_indicators,
        likely_tech_savvy=likely_developer or likely_power_user or privacy_conscious,
        likely_mobile=likely_mobile,
        likely_work_device=not likely_gamer and (cores >= 8 or ram_gb >= 16),
        likely_country=(geo.country if geo and geo.country else "Unknown"),
        inferred_interests=interests,
        fraud_risk_score=min(100, len(fraud_indicators) * 25),
        fraud_indicators=fraud_indicators,
        personality_traits=(
            ["Analytical", "Detail-oriented"] if likely_developer else ["Curious"]
        ),
        income_level="high" if device_tier == "premium" else "medium",
        age_range="25-45",
        occupation=occupation,
        ai_generated=False,
    )

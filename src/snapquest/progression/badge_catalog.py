"""Badge catalog: requirement metrics, presentation table and seed data.

Requirement types and thresholds are data stored with each definition. Icons
and colors are closed enumerations mapped to rendering metadata here; a
stored key outside the enumeration renders with the fallback entry.
"""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.db.models import BadgeDefinition

logger = logging.getLogger(__name__)


class RequirementType(str, Enum):
    STREAK = "streak"
    PHOTOS = "photos"
    LIKES_RECEIVED = "likes_received"
    TOP_PHOTOS = "top_photos"
    THEME_REPEATS = "theme_repeats"
    XP = "xp"
    LEVEL = "level"
    HUNTS = "hunts"
    EVENTS_CREATED = "events_created"
    EVENTS_JOINED = "events_joined"
    # 1 once the user has a photo taken in the hour window, else 0
    EARLY_BIRD = "early_bird"
    NIGHT_OWL = "night_owl"


class BadgeIcon(str, Enum):
    FLAME = "flame"
    STAR = "star"
    TARGET = "target"
    ZAP = "zap"
    CROWN = "crown"
    TROPHY = "trophy"
    CAMERA = "camera"
    AWARD = "award"
    IMAGE = "image"
    MEDAL = "medal"
    GEM = "gem"
    MAP = "map"
    COMPASS = "compass"
    GLOBE = "globe"
    USERS = "users"
    PARTY_POPPER = "party-popper"
    SUNRISE = "sunrise"
    MOON = "moon"


class BadgeColor(str, Enum):
    PRIMARY = "primary"
    GOLD = "gold"
    ACCENT = "accent"
    SUCCESS = "success"
    DESTRUCTIVE = "destructive"


# Icon -> client icon component name
ICON_COMPONENTS: dict[BadgeIcon, str] = {
    BadgeIcon.FLAME: "Flame",
    BadgeIcon.STAR: "Star",
    BadgeIcon.TARGET: "Target",
    BadgeIcon.ZAP: "Zap",
    BadgeIcon.CROWN: "Crown",
    BadgeIcon.TROPHY: "Trophy",
    BadgeIcon.CAMERA: "Camera",
    BadgeIcon.AWARD: "Award",
    BadgeIcon.IMAGE: "Image",
    BadgeIcon.MEDAL: "Medal",
    BadgeIcon.GEM: "Gem",
    BadgeIcon.MAP: "Map",
    BadgeIcon.COMPASS: "Compass",
    BadgeIcon.GLOBE: "Globe",
    BadgeIcon.USERS: "Users",
    BadgeIcon.PARTY_POPPER: "PartyPopper",
    BadgeIcon.SUNRISE: "Sunrise",
    BadgeIcon.MOON: "Moon",
}

# Color -> CSS background class
COLOR_CLASSES: dict[BadgeColor, str] = {
    BadgeColor.PRIMARY: "bg-primary",
    BadgeColor.GOLD: "bg-gold",
    BadgeColor.ACCENT: "bg-accent",
    BadgeColor.SUCCESS: "bg-success",
    BadgeColor.DESTRUCTIVE: "bg-destructive",
}

FALLBACK_ICON = BadgeIcon.AWARD
FALLBACK_COLOR = BadgeColor.PRIMARY


def parse_icon(key: str | None) -> BadgeIcon:
    try:
        return BadgeIcon((key or "").strip().lower())
    except ValueError:
        return FALLBACK_ICON


def parse_color(key: str | None) -> BadgeColor:
    try:
        return BadgeColor((key or "").strip().lower())
    except ValueError:
        return FALLBACK_COLOR


def render_metadata(icon_key: str | None, color_key: str | None) -> dict:
    """Rendering metadata for stored icon/color keys."""
    icon = parse_icon(icon_key)
    color = parse_color(color_key)
    return {
        "icon": icon.value,
        "icon_component": ICON_COMPONENTS[icon],
        "color": color.value,
        "color_class": COLOR_CLASSES[color],
    }


BADGE_SEED_DATA: list[dict] = [
    # Photo milestones
    {
        "slug": "first_step",
        "name": "First Step",
        "description": "Upload your first photo",
        "category": "photos",
        "requirement_type": RequirementType.PHOTOS.value,
        "requirement_value": 1,
        "icon": BadgeIcon.CAMERA.value,
        "color": BadgeColor.PRIMARY.value,
        "sort_order": 1,
    },
    {
        "slug": "beginner",
        "name": "Beginner",
        "description": "Upload 5 photos",
        "category": "photos",
        "requirement_type": RequirementType.PHOTOS.value,
        "requirement_value": 5,
        "icon": BadgeIcon.IMAGE.value,
        "color": BadgeColor.PRIMARY.value,
        "sort_order": 2,
    },
    {
        "slug": "photographer",
        "name": "Photographer",
        "description": "Upload 10 photos",
        "category": "photos",
        "requirement_type": RequirementType.PHOTOS.value,
        "requirement_value": 10,
        "icon": BadgeIcon.AWARD.value,
        "color": BadgeColor.ACCENT.value,
        "sort_order": 3,
    },
    {
        "slug": "archivist",
        "name": "Archivist",
        "description": "Upload 100 photos",
        "category": "photos",
        "requirement_type": RequirementType.PHOTOS.value,
        "requirement_value": 100,
        "icon": BadgeIcon.GEM.value,
        "color": BadgeColor.GOLD.value,
        "sort_order": 4,
    },
    # Streaks
    {
        "slug": "on_a_roll",
        "name": "On a Roll",
        "description": "Complete challenges 3 days in a row",
        "category": "streaks",
        "requirement_type": RequirementType.STREAK.value,
        "requirement_value": 3,
        "icon": BadgeIcon.FLAME.value,
        "color": BadgeColor.PRIMARY.value,
        "sort_order": 10,
    },
    {
        "slug": "week_of_light",
        "name": "Week of Light",
        "description": "Complete challenges 7 days in a row",
        "category": "streaks",
        "requirement_type": RequirementType.STREAK.value,
        "requirement_value": 7,
        "icon": BadgeIcon.SUNRISE.value,
        "color": BadgeColor.ACCENT.value,
        "sort_order": 11,
    },
    {
        "slug": "month_of_frames",
        "name": "Month of Frames",
        "description": "Complete challenges 30 days in a row",
        "category": "streaks",
        "requirement_type": RequirementType.STREAK.value,
        "requirement_value": 30,
        "icon": BadgeIcon.CROWN.value,
        "color": BadgeColor.GOLD.value,
        "sort_order": 12,
    },
    # Community
    {
        "slug": "first_star",
        "name": "First Star",
        "description": "Receive your first like",
        "category": "community",
        "requirement_type": RequirementType.LIKES_RECEIVED.value,
        "requirement_value": 1,
        "icon": BadgeIcon.STAR.value,
        "color": BadgeColor.GOLD.value,
        "sort_order": 20,
    },
    {
        "slug": "crowd_favourite",
        "name": "Crowd Favourite",
        "description": "Receive 100 likes in total",
        "category": "community",
        "requirement_type": RequirementType.LIKES_RECEIVED.value,
        "requirement_value": 100,
        "icon": BadgeIcon.USERS.value,
        "color": BadgeColor.SUCCESS.value,
        "sort_order": 21,
    },
    {
        "slug": "top_shot",
        "name": "Top Shot",
        "description": "Get 10 likes on a single photo",
        "category": "community",
        "requirement_type": RequirementType.TOP_PHOTOS.value,
        "requirement_value": 1,
        "icon": BadgeIcon.TROPHY.value,
        "color": BadgeColor.GOLD.value,
        "sort_order": 22,
    },
    # Themes
    {
        "slug": "theme_devotee",
        "name": "Theme Devotee",
        "description": "Shoot the same theme 5 times",
        "category": "themes",
        "requirement_type": RequirementType.THEME_REPEATS.value,
        "requirement_value": 5,
        "icon": BadgeIcon.TARGET.value,
        "color": BadgeColor.ACCENT.value,
        "sort_order": 30,
    },
    # Progression
    {
        "slug": "rising_star",
        "name": "Rising Star",
        "description": "Earn 1,000 XP",
        "category": "progression",
        "requirement_type": RequirementType.XP.value,
        "requirement_value": 1000,
        "icon": BadgeIcon.ZAP.value,
        "color": BadgeColor.PRIMARY.value,
        "sort_order": 40,
    },
    {
        "slug": "level_ten",
        "name": "Master of Light",
        "description": "Reach level 10",
        "category": "progression",
        "requirement_type": RequirementType.LEVEL.value,
        "requirement_value": 10,
        "icon": BadgeIcon.MEDAL.value,
        "color": BadgeColor.GOLD.value,
        "sort_order": 41,
    },
    # Hunts
    {
        "slug": "hunter",
        "name": "Hunter",
        "description": "Complete a scavenger hunt",
        "category": "hunts",
        "requirement_type": RequirementType.HUNTS.value,
        "requirement_value": 1,
        "icon": BadgeIcon.MAP.value,
        "color": BadgeColor.GOLD.value,
        "sort_order": 50,
    },
    {
        "slug": "explorer",
        "name": "Explorer",
        "description": "Complete 5 scavenger hunts",
        "category": "hunts",
        "requirement_type": RequirementType.HUNTS.value,
        "requirement_value": 5,
        "icon": BadgeIcon.COMPASS.value,
        "color": BadgeColor.SUCCESS.value,
        "sort_order": 51,
    },
    # Events
    {
        "slug": "host",
        "name": "Host",
        "description": "Create a private event",
        "category": "events",
        "requirement_type": RequirementType.EVENTS_CREATED.value,
        "requirement_value": 1,
        "icon": BadgeIcon.PARTY_POPPER.value,
        "color": BadgeColor.ACCENT.value,
        "sort_order": 60,
    },
    {
        "slug": "socialite",
        "name": "Socialite",
        "description": "Take part in 3 events",
        "category": "events",
        "requirement_type": RequirementType.EVENTS_JOINED.value,
        "requirement_value": 3,
        "icon": BadgeIcon.USERS.value,
        "color": BadgeColor.SUCCESS.value,
        "sort_order": 61,
    },
    # Time of day
    {
        "slug": "early_bird",
        "name": "Early Bird",
        "description": "Upload a photo between 3 and 6 in the morning",
        "category": "special",
        "requirement_type": RequirementType.EARLY_BIRD.value,
        "requirement_value": 1,
        "icon": BadgeIcon.SUNRISE.value,
        "color": BadgeColor.GOLD.value,
        "sort_order": 70,
    },
    {
        "slug": "night_owl",
        "name": "Night Owl",
        "description": "Upload a photo between midnight and 3 in the morning",
        "category": "special",
        "requirement_type": RequirementType.NIGHT_OWL.value,
        "requirement_value": 1,
        "icon": BadgeIcon.MOON.value,
        "color": BadgeColor.PRIMARY.value,
        "sort_order": 71,
    },
]


async def seed_badges(db: AsyncSession) -> int:
    """Insert badge definitions missing by slug. Returns number of badges inserted."""
    existing = set((await db.execute(select(BadgeDefinition.slug))).scalars().all())
    inserted = 0
    for badge_data in BADGE_SEED_DATA:
        if badge_data["slug"] in existing:
            continue
        try:
            async with db.begin_nested():
                db.add(BadgeDefinition(**badge_data))
                await db.flush()
        except IntegrityError:
            # Seeded concurrently by another process
            continue
        inserted += 1

    await db.commit()
    logger.info("Seeded %d badge definitions", inserted)
    return inserted

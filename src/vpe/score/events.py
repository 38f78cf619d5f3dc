"""Score event catalogue: named activities and the points they grant."""

from __future__ import annotations

SCORE_EVENTS: dict[str, dict] = {
    # Messaging
    "MESSAGE_GLOBAL": {"points": 1, "category": "MESSAGING", "description": "Sent global message"},
    "MESSAGE_ZONE": {"points": 1, "category": "MESSAGING", "description": "Sent zone message"},
    "MESSAGE_DM": {"points": 2, "category": "MESSAGING", "description": "Sent direct message"},
    "MESSAGE_FIRST_DAILY": {"points": 5, "category": "MESSAGING", "description": "First message of the day bonus"},
    # Social
    "GUILD_JOINED": {"points": 15, "category": "SOCIAL", "description": "Joined a guild"},
    "INVITE_ACCEPTED": {"points": 20, "category": "SOCIAL", "description": "Someone accepted your invite"},
    # Agency
    "GIG_APPLIED": {"points": 10, "category": "AGENCY", "description": "Applied to a gig"},
    "GIG_COMPLETED": {"points": 50, "category": "AGENCY", "description": "Completed a gig"},
    # Economy
    "STAKE_VOID": {"points": 10, "category": "ECONOMY", "description": "Staked VOID"},
    "XVOID_7DAY_HOLD": {"points": 20, "category": "ECONOMY", "description": "Held xVOID for 7 days"},
    "STAKING_WEEKLY_BONUS": {"points": 10, "category": "ECONOMY", "description": "Weekly staking bonus"},
    # Exploration
    "ZONE_VISITED": {"points": 5, "category": "EXPLORATION", "description": "Visited new zone"},
    "DISTRICT_UNLOCKED": {"points": 30, "category": "EXPLORATION", "description": "Unlocked new district"},
    # Creator
    "CONTENT_POSTED": {"points": 10, "category": "CREATOR", "description": "Posted content"},
    "CREATOR_QUEST_COMPLETED": {"points": 25, "category": "CREATOR", "description": "Completed creator quest"},
    # Identity
    "ONBOARDING_COMPLETED": {"points": 10, "category": "IDENTITY", "description": "Completed profile setup"},
}


def get_event_points(event_type: str) -> float:
    """Points for a catalogued event. Raises KeyError for unknown types."""
    return float(SCORE_EVENTS[event_type]["points"])

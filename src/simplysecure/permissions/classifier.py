"""Permission risk classification.

Every permission type maps to exactly one risk level, one recommendation and
one fixed explanation. The tables below are the whole algorithm; there are no
error cases because the set of permission types is closed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class PermissionType(str, Enum):
    """OS capabilities an application can request."""

    CAMERA = "camera"
    MICROPHONE = "microphone"
    LOCATION = "location"
    CONTACTS = "contacts"
    PHOTOS = "photos"
    NOTIFICATIONS = "notifications"
    CALENDAR = "calendar"
    REMINDERS = "reminders"
    NETWORK = "network"
    FILES = "files"
    SYSTEM_EVENTS = "system_events"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    @property
    def description(self) -> str:
        return f"{self.value.capitalize()} privacy risk"


class PermissionRecommendation(str, Enum):
    ALLOW = "allow"
    LIMITED = "limited"
    DENY = "deny"

    @property
    def label(self) -> str:
        return {"allow": "Allow", "limited": "Allow Limited", "deny": "Deny"}[self.value]

    @property
    def strictness(self) -> int:
        return {"allow": 0, "limited": 1, "deny": 2}[self.value]


_TYPE_LABELS: dict[PermissionType, str] = {
    PermissionType.CAMERA: "Camera",
    PermissionType.MICROPHONE: "Microphone",
    PermissionType.LOCATION: "Location",
    PermissionType.CONTACTS: "Contacts",
    PermissionType.PHOTOS: "Photos",
    PermissionType.NOTIFICATIONS: "Notifications",
    PermissionType.CALENDAR: "Calendar",
    PermissionType.REMINDERS: "Reminders",
    PermissionType.NETWORK: "Network",
    PermissionType.FILES: "Files",
    PermissionType.SYSTEM_EVENTS: "System Events",
}

_RISK_RANK: dict[RiskLevel, int] = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}

RISK_TABLE: dict[PermissionType, RiskLevel] = {
    PermissionType.CAMERA: RiskLevel.HIGH,
    PermissionType.MICROPHONE: RiskLevel.HIGH,
    PermissionType.CONTACTS: RiskLevel.HIGH,
    PermissionType.PHOTOS: RiskLevel.HIGH,
    PermissionType.FILES: RiskLevel.HIGH,
    PermissionType.LOCATION: RiskLevel.MEDIUM,
    PermissionType.NOTIFICATIONS: RiskLevel.MEDIUM,
    PermissionType.CALENDAR: RiskLevel.MEDIUM,
    PermissionType.REMINDERS: RiskLevel.MEDIUM,
    PermissionType.NETWORK: RiskLevel.LOW,
    PermissionType.SYSTEM_EVENTS: RiskLevel.LOW,
}

# Keyed by type only; the risk level does not refine the recommendation.
RECOMMENDATION_TABLE: dict[PermissionType, PermissionRecommendation] = {
    PermissionType.CAMERA: PermissionRecommendation.DENY,
    PermissionType.MICROPHONE: PermissionRecommendation.DENY,
    PermissionType.CONTACTS: PermissionRecommendation.LIMITED,
    PermissionType.PHOTOS: PermissionRecommendation.LIMITED,
    PermissionType.LOCATION: PermissionRecommendation.ALLOW,
    PermissionType.NOTIFICATIONS: PermissionRecommendation.ALLOW,
    PermissionType.CALENDAR: PermissionRecommendation.ALLOW,
    PermissionType.REMINDERS: PermissionRecommendation.ALLOW,
    PermissionType.NETWORK: PermissionRecommendation.ALLOW,
    PermissionType.FILES: PermissionRecommendation.ALLOW,
    PermissionType.SYSTEM_EVENTS: PermissionRecommendation.ALLOW,
}

_CALENDAR_REASONING = "Calendar access can see your schedule. Only allow to productivity apps you trust."

REASONING_TABLE: dict[PermissionType, str] = {
    PermissionType.CAMERA: (
        "Camera access can be used to record you without consent. "
        "Only allow if absolutely necessary for the app's core functionality."
    ),
    PermissionType.MICROPHONE: (
        "Microphone access can record conversations. Grant only to trusted apps that genuinely need audio input."
    ),
    PermissionType.LOCATION: (
        "Location access reveals your whereabouts. Consider if the app truly needs your precise location."
    ),
    PermissionType.CONTACTS: (
        "Contact access can expose personal information of your friends and family. "
        "Use limited access when possible."
    ),
    PermissionType.PHOTOS: (
        "Photo library access can see all your personal images. "
        "Grant limited access to specific photos when possible."
    ),
    PermissionType.NOTIFICATIONS: (
        "Notifications are generally safe but can be annoying. Allow if you want app updates."
    ),
    PermissionType.CALENDAR: _CALENDAR_REASONING,
    PermissionType.REMINDERS: _CALENDAR_REASONING,
    PermissionType.NETWORK: "Network access is usually necessary for apps to function properly.",
    PermissionType.FILES: "File access should be limited to specific folders when possible.",
    PermissionType.SYSTEM_EVENTS: (
        "System events access can monitor system activity. Only allow to trusted system utilities."
    ),
}


@dataclass(frozen=True)
class Classification:
    risk_level: RiskLevel
    recommendation: PermissionRecommendation
    reasoning: str


def classify(permission_type: PermissionType | str) -> Classification:
    """Classify a permission type. Accepts the enum or its string value."""
    ptype = PermissionType(permission_type)
    return Classification(
        risk_level=RISK_TABLE[ptype],
        recommendation=RECOMMENDATION_TABLE[ptype],
        reasoning=REASONING_TABLE[ptype],
    )


@dataclass(frozen=True)
class Permission:
    """A requested capability; risk fields are fixed at construction from ``type``."""

    type: PermissionType
    description: str
    is_required: bool = False
    risk_level: RiskLevel = field(init=False)
    recommendation: PermissionRecommendation = field(init=False)
    reasoning: str = field(init=False)

    def __post_init__(self) -> None:
        ptype = PermissionType(self.type)
        result = classify(ptype)
        # frozen dataclass: assign derived fields through object.__setattr__
        object.__setattr__(self, "type", ptype)
        object.__setattr__(self, "risk_level", result.risk_level)
        object.__setattr__(self, "recommendation", result.recommendation)
        object.__setattr__(self, "reasoning", result.reasoning)


def all_classifications() -> dict[PermissionType, Classification]:
    """Return the classification of every permission type, in declaration order."""
    return {ptype: classify(ptype) for ptype in PermissionType}

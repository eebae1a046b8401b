"""Query rewriting: robot configuration + vendor vocabulary expansion.

Rewriting is purely additive: the user's text is kept verbatim and keyword
clusters are appended after it. Vendor detection is driven by the catalog's
VendorProfile patterns, never by names hard-coded here.

Config-toggle clusters deliberately avoid vendor names so that ticking a
framework box never narrows the candidate pool to that vendor's tier.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ftcrag.catalog import SourceCatalog


class DriveType(str, Enum):
    MECANUM = "mecanum"
    TANK = "tank"
    OMNI = "omni"


_ROADRUNNER_TERMS = "trajectory pose follower"
_FTCLIB_TERMS = "command subsystem scheduler"
_DASHBOARD_TERMS = "telemetry packet field overlay"
_EXTERNAL_VISION_TERMS = "detector neural network"


@dataclass(frozen=True)
class RobotConfig:
    """Caller-supplied hints. Every field is optional and defaults to absent/off."""

    drive_type: DriveType | None = None
    roadrunner: bool = False
    ftclib: bool = False
    dashboard: bool = False
    external_vision: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RobotConfig:
        """Build from a request payload.

        Accepts snake_case keys or the camelCase form
        (``driveType`` + ``frameworkToggles.{roadrunner, ftclib, dashboard,
        externalVision}``). Unrecognised keys and drive types are ignored.
        """
        if not data:
            return cls()
        toggles = data.get("frameworkToggles") or data.get("framework_toggles") or {}
        merged = {**data, **toggles}

        raw_drive = merged.get("driveType", merged.get("drive_type"))
        try:
            drive = DriveType(str(raw_drive).lower()) if raw_drive else None
        except ValueError:
            drive = None

        return cls(
            drive_type=drive,
            roadrunner=bool(merged.get("roadrunner", False)),
            ftclib=bool(merged.get("ftclib", False)),
            dashboard=bool(merged.get("dashboard", False)),
            external_vision=bool(
                merged.get("externalVision", merged.get("external_vision", False))
            ),
        )


def rewrite_query(
    text: str, config: RobotConfig | None, catalog: SourceCatalog
) -> str:
    """Append vendor, topic and robot-configuration keyword clusters to *text*."""
    terms: list[str] = []

    for vendor in catalog.vendors:
        if vendor.mentioned_in(text):
            terms.append(vendor.expansion)

    for cluster in catalog.expansions:
        if cluster.matches(text):
            terms.append(cluster.expansion)

    if config is not None:
        if config.drive_type is not None:
            terms.append(config.drive_type.value)
        if config.roadrunner:
            terms.append(_ROADRUNNER_TERMS)
        if config.ftclib:
            terms.append(_FTCLIB_TERMS)
        if config.dashboard:
            terms.append(_DASHBOARD_TERMS)
        if config.external_vision:
            terms.append(_EXTERNAL_VISION_TERMS)

    if not terms:
        return text
    return f"{text} {' '.join(terms)}"


def detect_vendor_tier(query: str, catalog: SourceCatalog) -> int | None:
    """Return the single priority tier the query targets, or None.

    Several vendors sharing one tier (Road Runner and Pedro) still count as
    one target; vendors from two different tiers are ambiguous.
    """
    tiers = {int(v.tier) for v in catalog.vendors if v.mentioned_in(query)}
    if len(tiers) == 1:
        return tiers.pop()
    return None

"""Source catalog: what gets ingested, how authoritative it is, and vendor hints.

Priority tiers (lower = more authoritative) are a fixed enumeration. Each
tier maps to exactly one relevance weight; weights never increase as the
tier number grows. Vendor profiles tie a tier to the names users type
("limelight", "road runner") and to the API vocabulary those vendors' docs
use, which drives query expansion, vendor-restricted pooling and the
lexical keyword bonus.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType

CURRENT_SEASON = "DECODE 2025-26"


class SourcePriority(IntEnum):
    SDK = 1
    TOP_TEAMS = 2
    ROADRUNNER = 3
    FTCLIB = 4
    LIMELIGHT = 5
    PHOTONVISION = 6
    DASHBOARD = 7
    OFFICIAL_DOCS = 8
    USER_REPO = 9


DEFAULT_TIER_WEIGHTS: Mapping[int, float] = MappingProxyType(
    {
        SourcePriority.SDK: 2.0,
        SourcePriority.TOP_TEAMS: 1.8,
        SourcePriority.ROADRUNNER: 1.6,
        SourcePriority.FTCLIB: 1.4,
        SourcePriority.LIMELIGHT: 1.2,
        SourcePriority.PHOTONVISION: 1.0,
        SourcePriority.DASHBOARD: 0.8,
        SourcePriority.OFFICIAL_DOCS: 0.6,
        SourcePriority.USER_REPO: 0.5,
    }
)

PRIORITY_LABELS: Mapping[int, str] = MappingProxyType(
    {
        SourcePriority.SDK: "SDK",
        SourcePriority.TOP_TEAMS: "Top Teams",
        SourcePriority.ROADRUNNER: "Road Runner / Pedro",
        SourcePriority.FTCLIB: "FTCLib",
        SourcePriority.LIMELIGHT: "Limelight / Vision",
        SourcePriority.PHOTONVISION: "PhotonVision",
        SourcePriority.DASHBOARD: "Dashboard",
        SourcePriority.OFFICIAL_DOCS: "Official Docs",
        SourcePriority.USER_REPO: "User Repo",
    }
)


# ---------------------------------------------------------------------------
# Source descriptors, one variant per kind
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RepositorySource:
    """A GitHub repository; only files under *paths* are ingested."""

    name: str
    url: str
    priority: SourcePriority
    paths: tuple[str, ...]


@dataclass(frozen=True)
class WebSource:
    """A web page, or several pages when *paths* are appended to *url*."""

    name: str
    url: str
    priority: SourcePriority
    paths: tuple[str, ...] | None = None


@dataclass(frozen=True)
class DocumentSource:
    """A binary document (PDF) recorded as a reference, not extracted."""

    name: str
    url: str
    priority: SourcePriority


SourceDescriptor = RepositorySource | WebSource | DocumentSource


# ---------------------------------------------------------------------------
# Vendor hints + query expansion
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VendorProfile:
    """How one vendor/library is recognised in a query.

    Attributes:
        name: Short vendor name.
        tier: Priority tier holding this vendor's documentation.
        patterns: Case-insensitive regexes that mean "the user named this vendor".
        keywords: Lowercase API terms; each one present in both query and chunk
            earns a lexical bonus for chunks of this tier.
        expansion: Keyword cluster appended to queries that name the vendor.
    """

    name: str
    tier: SourcePriority
    patterns: tuple[str, ...]
    keywords: tuple[str, ...]
    expansion: str

    def mentioned_in(self, text: str) -> bool:
        return any(re.search(p, text, re.IGNORECASE) for p in self.patterns)


@dataclass(frozen=True)
class KeywordExpansion:
    """Vendor-neutral cluster appended when any pattern matches the query."""

    patterns: tuple[str, ...]
    expansion: str

    def matches(self, text: str) -> bool:
        return any(re.search(p, text, re.IGNORECASE) for p in self.patterns)


DEFAULT_VENDORS: tuple[VendorProfile, ...] = (
    VendorProfile(
        name="limelight",
        tier=SourcePriority.LIMELIGHT,
        patterns=(r"\blime\s*light",),
        keywords=(
            "limelight",
            "limelight3a",
            "llresult",
            "llstatus",
            "pipelineswitch",
            "getlatestresult",
            "detectorresult",
            "fiducialresult",
        ),
        expansion=(
            "Limelight3A LLResult LLStatus DetectorResult FiducialResult "
            "getLatestResult pipelineSwitch com.qualcomm.hardware.limelightvision"
        ),
    ),
    VendorProfile(
        name="photonvision",
        tier=SourcePriority.PHOTONVISION,
        patterns=(r"\bphoton\s*vision\b",),
        keywords=(
            "photonvision",
            "photoncamera",
            "photonpipelineresult",
            "photontrackedtarget",
            "getbesttarget",
        ),
        expansion=(
            "PhotonCamera PhotonPipelineResult PhotonTrackedTarget "
            "getBestTarget org.photonvision"
        ),
    ),
    VendorProfile(
        name="roadrunner",
        tier=SourcePriority.ROADRUNNER,
        patterns=(r"\broad\s*-?\s*runner\b",),
        keywords=(
            "roadrunner",
            "trajectorybuilder",
            "mecanumdrive",
            "pose2d",
            "actionbuilder",
            "followtrajectory",
            "driveconstants",
        ),
        expansion=(
            "Trajectory TrajectoryBuilder MecanumDrive DriveConstants Pose2d "
            "actionBuilder followTrajectory com.acmerobotics.roadrunner"
        ),
    ),
    VendorProfile(
        name="pedro",
        tier=SourcePriority.ROADRUNNER,
        patterns=(r"\bpedro\b", r"\bpedropathing\b"),
        keywords=(
            "pedropathing",
            "follower",
            "pathbuilder",
            "pathchain",
            "bezierline",
            "beziercurve",
        ),
        expansion="Follower PathBuilder PathChain BezierLine BezierCurve com.pedropathing",
    ),
    VendorProfile(
        name="ftclib",
        tier=SourcePriority.FTCLIB,
        patterns=(r"\bftc\s*lib\b",),
        keywords=(
            "ftclib",
            "commandopmode",
            "subsystembase",
            "commandbase",
            "commandscheduler",
            "gamepadex",
        ),
        expansion=(
            "CommandOpMode SubsystemBase CommandBase CommandScheduler GamepadEx "
            "com.arcrobotics.ftclib"
        ),
    ),
    VendorProfile(
        name="dashboard",
        tier=SourcePriority.DASHBOARD,
        patterns=(r"\bftc\s*dashboard\b",),
        keywords=("ftcdashboard", "telemetrypacket", "fieldoverlay", "multipletelemetry"),
        expansion=(
            "FtcDashboard TelemetryPacket fieldOverlay MultipleTelemetry "
            "com.acmerobotics.dashboard"
        ),
    ),
)

DEFAULT_EXPANSIONS: tuple[KeywordExpansion, ...] = (
    KeywordExpansion(
        patterns=(r"\bapril\s*tags?\b", r"\bvision\b"),
        expansion="VisionPortal AprilTagProcessor AprilTagDetection",
    ),
    KeywordExpansion(
        patterns=(r"\bteleop\b", r"\bautonomous\b", r"\bop\s*mode\b"),
        expansion="LinearOpMode runOpMode waitForStart opModeIsActive",
    ),
)


# ---------------------------------------------------------------------------
# Default sources
# ---------------------------------------------------------------------------

_TEAMCODE = ("TeamCode/src/main/java",)

TOP_TEAM_REPOS: tuple[SourceDescriptor, ...] = (
    RepositorySource(
        name="Team 11212 Clueless - 2024 World Champions",
        url="https://github.com/FTCclueless/CenterStage",
        priority=SourcePriority.TOP_TEAMS,
        paths=_TEAMCODE,
    ),
    RepositorySource(
        name="Team 11212 Clueless - Into The Deep 2024-2025",
        url="https://github.com/FTCclueless/IntoTheDeep",
        priority=SourcePriority.TOP_TEAMS,
        paths=_TEAMCODE,
    ),
    RepositorySource(
        name="Team 21229 Quality Control - Pedro Pathing",
        url="https://github.com/21229QualityControl/Pedro-Pathing-Quickstart",
        priority=SourcePriority.TOP_TEAMS,
        paths=_TEAMCODE,
    ),
    RepositorySource(
        name="Team 492 Titan Robotics - Multi-Year",
        url="https://github.com/trc492/Ftc2024CenterStage",
        priority=SourcePriority.TOP_TEAMS,
        paths=_TEAMCODE,
    ),
    RepositorySource(
        name="Team 16481 RoboRacers - CenterStage",
        url="https://github.com/RoboRacers/FtcRobotController-2024",
        priority=SourcePriority.TOP_TEAMS,
        paths=_TEAMCODE,
    ),
)

FTC_SOURCES: tuple[SourceDescriptor, ...] = (
    RepositorySource(
        name="FTC SDK - Official Samples",
        url="https://github.com/FIRST-Tech-Challenge/FtcRobotController",
        priority=SourcePriority.SDK,
        paths=(
            "FtcRobotController/src/main/java/org/firstinspires/ftc/robotcontroller/external/samples",
        ),
    ),
    RepositorySource(
        name="FTC SDK - Hardware Layer",
        url="https://github.com/FIRST-Tech-Challenge/FtcRobotController",
        priority=SourcePriority.SDK,
        paths=(
            "RobotCore/src/main/java/com/qualcomm/robotcore/hardware",
            "Hardware/src/main/java/com/qualcomm/hardware",
        ),
    ),
    RepositorySource(
        name="Road Runner Quickstart - Complete Examples",
        url="https://github.com/acmerobotics/road-runner-quickstart",
        priority=SourcePriority.ROADRUNNER,
        paths=("TeamCode/src/main/java/org/firstinspires/ftc/teamcode",),
    ),
    RepositorySource(
        name="Pedro Pathing - Official Quickstart",
        url="https://github.com/Pedro-Pathing/Quickstart",
        priority=SourcePriority.ROADRUNNER,
        paths=_TEAMCODE,
    ),
    RepositorySource(
        name="FTCLib - Core Library",
        url="https://github.com/FTCLib/FTCLib",
        priority=SourcePriority.FTCLIB,
        paths=("core/src/main/java/com/arcrobotics/ftclib",),
    ),
    RepositorySource(
        name="FTCLib - Examples",
        url="https://github.com/FTCLib/FTCLib",
        priority=SourcePriority.FTCLIB,
        paths=("examples/src/main/java",),
    ),
    RepositorySource(
        name="EasyOpenCV - Vision Library",
        url="https://github.com/OpenFTC/EasyOpenCV",
        priority=SourcePriority.LIMELIGHT,
        paths=("easyopencv/src/main/java/org/openftc/easyopencv", "examples/src/main/java"),
    ),
    RepositorySource(
        name="EOCV AprilTag Plugin - Examples",
        url="https://github.com/OpenFTC/EOCV-AprilTag-Plugin",
        priority=SourcePriority.LIMELIGHT,
        paths=("examples/src/main/java/org/firstinspires/ftc/teamcode",),
    ),
    WebSource(
        name="Limelight - FTC Programming Guide",
        url="https://docs.limelightvision.io/docs/docs-limelight/apis/ftc-programming",
        priority=SourcePriority.LIMELIGHT,
    ),
    WebSource(
        name="PhotonVision - Documentation",
        url="https://docs.photonvision.org/en/latest/",
        priority=SourcePriority.PHOTONVISION,
    ),
    WebSource(
        name="FTC Dashboard - Documentation",
        url="https://acmerobotics.github.io/ftc-dashboard/",
        priority=SourcePriority.DASHBOARD,
        paths=("", "features", "gettingstarted"),
    ),
    RepositorySource(
        name="Game Manual 0 - Best Practices",
        url="https://github.com/gamemanual0/gm0",
        priority=SourcePriority.OFFICIAL_DOCS,
        paths=("source/docs",),
    ),
    DocumentSource(
        name="DECODE 2025-26 Competition Manual",
        url="https://firstinspires.blob.core.windows.net/ftc/2024-25/Competition-Manual.pdf",
        priority=SourcePriority.OFFICIAL_DOCS,
    ),
    WebSource(
        name="FTC Resources - Official Documentation",
        url="https://ftc-resources.firstinspires.org",
        priority=SourcePriority.OFFICIAL_DOCS,
    ),
)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SourceCatalog:
    """Static description of every ingestible source plus tier metadata.

    Raises:
        ValueError: If a tier has no weight or weights increase with the
            tier number.
    """

    sources: tuple[SourceDescriptor, ...]
    weights: Mapping[int, float] = field(default_factory=lambda: DEFAULT_TIER_WEIGHTS)
    vendors: tuple[VendorProfile, ...] = DEFAULT_VENDORS
    expansions: tuple[KeywordExpansion, ...] = DEFAULT_EXPANSIONS
    labels: Mapping[int, str] = field(default_factory=lambda: PRIORITY_LABELS)

    def __post_init__(self) -> None:
        missing = [t.name for t in SourcePriority if t not in self.weights]
        if missing:
            raise ValueError(f"No weight defined for priority tier(s): {', '.join(missing)}")
        previous = None
        for tier in SourcePriority:
            w = self.weights[tier]
            if previous is not None and w > previous:
                raise ValueError(
                    f"Tier weights must not increase with tier number: "
                    f"{tier.name}={w} > {previous}"
                )
            previous = w

    def weight(self, tier: int) -> float:
        """Relevance multiplier for *tier*; unknown tiers get the lowest weight."""
        if tier in self.weights:
            return self.weights[tier]
        return min(self.weights.values())

    def label(self, tier: int) -> str:
        return self.labels.get(tier, str(tier))


def default_catalog() -> SourceCatalog:
    """Top team repositories first, then the official / vendor sources."""
    return SourceCatalog(sources=TOP_TEAM_REPOS + FTC_SOURCES)

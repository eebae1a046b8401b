"""Manually authored documents and the built-in seed set.

Seed documents guarantee a handful of core topics are always answerable,
even when the network sources are unreachable.
"""

from __future__ import annotations

import re

from ftcrag.catalog import CURRENT_SEASON, SourcePriority
from ftcrag.store.models import Document


def create_document(
    title: str,
    content: str,
    source_url: str,
    priority: int,
    season_tag: str = CURRENT_SEASON,
) -> Document:
    """Build a Document by hand. The id is derived from *title*."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return Document(
        id=f"manual-{slug}",
        title=title,
        content=content,
        source_url=source_url,
        season_tag=season_tag,
        source_priority=int(priority),
    )


def seed_documents(season_tag: str = CURRENT_SEASON) -> list[Document]:
    return [
        create_document(
            "FTC SDK Overview",
            """The FTC SDK (Software Development Kit) provides the core libraries and tools for programming FTC robots.

Key components:
- OpMode base classes (LinearOpMode, OpMode)
- Hardware interfaces (DcMotor, Servo, etc.)
- Vision processing (VisionPortal, AprilTag detection)
- Telemetry system
- Configuration system

All OpModes must extend either LinearOpMode or OpMode and be annotated with @TeleOp or @Autonomous.

Example structure:
@Autonomous(name="Basic Auto")
public class BasicAuto extends LinearOpMode {
    @Override
    public void runOpMode() {
        // Hardware initialization
        waitForStart();
        // Autonomous logic
    }
}

Source: https://ftc-docs.firstinspires.org/ftc_sdk/overview/index.html""",
            "https://ftc-docs.firstinspires.org/ftc_sdk/overview/index.html",
            SourcePriority.TOP_TEAMS,
            season_tag,
        ),
        create_document(
            "Limelight FTC Integration",
            """Limelight is an external vision processor that can be used for AprilTag detection and object tracking in FTC.

Setup:
1. Connect Limelight to Robot Controller via USB
2. Configure team number in Limelight web interface
3. Set pipeline index for desired detection mode

Code integration:
import com.qualcomm.hardware.limelightvision.LLResult;
import com.qualcomm.hardware.limelightvision.Limelight3A;

Limelight3A limelight;
limelight = hardwareMap.get(Limelight3A.class, "limelight");
limelight.pipelineSwitch(0);
limelight.start();

LLResult result = limelight.getLatestResult();
if (result != null && result.isValid()) {
    // Process detection results
}

Source: https://docs.limelightvision.io/docs/docs-limelight/apis/ftc-programming""",
            "https://docs.limelightvision.io/docs/docs-limelight/apis/ftc-programming",
            SourcePriority.LIMELIGHT,
            season_tag,
        ),
        create_document(
            "Road Runner Quickstart",
            """Road Runner is a motion planning library for FTC that enables smooth, accurate autonomous movement.

Coordinate System:
- X axis: Forward (towards field forward)
- Y axis: Left (towards driver's left)
- Heading: Counter-clockwise positive (radians)

Key classes:
- MecanumDrive / TankDrive: Base drive classes
- DriveConstants: Physical robot parameters
- TrajectoryBuilder: Creates motion paths

Setup steps:
1. Add Road Runner dependency to build.gradle
2. Create DriveConstants.java with robot measurements
3. Run tuning OpModes (straight test, turn test, track width)
4. Build trajectories in Autonomous

Example:
Trajectory traj = drive.trajectoryBuilder(new Pose2d())
    .forward(24)
    .turn(Math.toRadians(90))
    .build();
drive.followTrajectory(traj);

Source: https://learnroadrunner.com""",
            "https://learnroadrunner.com",
            SourcePriority.ROADRUNNER,
            season_tag,
        ),
    ]

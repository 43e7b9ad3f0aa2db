"""
Build command preparation.

This module turns validated build settings into the shell scripts the
controller runs: the Gradle (or EAS) invocation for local Android builds,
and the pre-flight check, hydration and xcodebuild invocation for remote
iOS builds.
"""

import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from ..models.runtime import HardwareProfile
from ..validation import validate_enum_choice

ANDROID_BUILD_TYPES = ["apk", "aab"]
IOS_BUILD_TYPES = ["device", "simulator"]

XCODE_MISSING_MARKER = "XCODE_NOT_FOUND"
IOS_PREFLIGHT_COMMAND = f"which xcodebuild || echo '{XCODE_MISSING_MARKER}'"

IOS_DEVICE_DESTINATION = "generic/platform=iOS"


@dataclass(frozen=True)
class AndroidArtifact:
    """Where Gradle leaves the debug artifact of a build type."""

    relative_path: str
    extension: str


ANDROID_ARTIFACTS = {
    "apk": AndroidArtifact("android/app/build/outputs/apk/debug/app-debug.apk", "apk"),
    "aab": AndroidArtifact("android/app/build/outputs/bundle/debug/app-debug.aab", "aab"),
}


def android_task(build_type: str) -> str:
    """Gradle task producing the requested format."""
    build_type = validate_enum_choice(build_type, ANDROID_BUILD_TYPES, field_name="android.build_type")
    return "bundleDebug" if build_type == "aab" else "assembleDebug"


def android_artifact(build_type: str) -> AndroidArtifact:
    build_type = validate_enum_choice(build_type, ANDROID_BUILD_TYPES, field_name="android.build_type")
    return ANDROID_ARTIFACTS[build_type]


def prepare_android_command(
    project_dir: str,
    build_type: str,
    turbo_mode: bool,
    profile: HardwareProfile,
    sdk_path: str,
) -> str:
    """
    Build the shell script for a local Android build.

    Turbo mode drives Gradle directly with the heap and worker count taken
    from ``profile`` and every cache/parallelism switch on; lint and unit
    tests are skipped. Without turbo mode the project is built through
    ``eas build --local``.

    Args:
        project_dir: Project root as seen from inside the build shell.
        build_type: "apk" or "aab".
        turbo_mode: Use the tuned Gradle invocation.
        profile: Hardware profile sizing heap and workers.
        sdk_path: Android SDK root as seen from inside the build shell.

    Returns:
        A script suitable for ``bash -c``.
    """
    task = android_task(build_type)

    if not turbo_mode:
        return (
            f"export NODE_ENV=development && cd {shlex.quote(project_dir)} && "
            f"npx eas build --platform android --local --profile preview --non-interactive 2>&1"
        )

    gradle_opts = (
        f"-Xmx{profile.jvm_heap_gb}g -XX:+UseParallelGC -XX:MaxMetaspaceSize=1g "
        f"-Dorg.gradle.daemon.idletimeout=3600000"
    )
    gradle_flags = [
        "--parallel",
        "--build-cache",
        "--configuration-cache",
        "--configuration-cache-problems=warn",
        f"--max-workers={profile.max_workers}",
        "-Dorg.gradle.caching=true",
        "-Dorg.gradle.parallel=true",
        "-Dorg.gradle.vfs.watch=true",
        "-Dkotlin.incremental=true",
        "-x lint",
        "-x test",
    ]
    steps = [
        "export NODE_ENV=development",
        f"export ANDROID_HOME={shlex.quote(sdk_path)}",
        'export PATH="$ANDROID_HOME/platform-tools:$ANDROID_HOME/cmdline-tools/latest/bin:$PATH"',
        f"export GRADLE_OPTS={shlex.quote(gradle_opts)}",
        f"cd {shlex.quote(project_dir + '/android')}",
        "chmod +x ./gradlew",
        f"./gradlew {task} {' '.join(gradle_flags)} 2>&1",
    ]
    return " && ".join(steps)


def quote_remote_path(path: str) -> str:
    """Shell-quote a path, leaving a leading ``~/`` unquoted so it still expands."""
    if path == "~":
        return path
    if path.startswith("~/"):
        rest = path[2:]
        return "~/" + shlex.quote(rest) if rest else "~/"
    return shlex.quote(path)


def ios_destination(build_type: str, simulator_name: str = "iPhone 15") -> str:
    """xcodebuild ``-destination`` selector for a build type."""
    build_type = validate_enum_choice(build_type, IOS_BUILD_TYPES, field_name="ios.build_type")
    if build_type == "device":
        return IOS_DEVICE_DESTINATION
    return f"platform=iOS Simulator,name={simulator_name}"


def prepare_hydration_script() -> str:
    """
    Install JavaScript dependencies and CocoaPods only when they are missing.

    A lockfile selects the strict, offline-first ``npm ci``; without one
    ``npm install`` is used.
    """
    return (
        "if [ ! -d 'node_modules' ]; then "
        "if [ -f 'package-lock.json' ]; then "
        "echo '>> Hydrating with npm ci (strict)...'; npm ci --prefer-offline; "
        "else "
        "echo '>> Hydrating with npm install (fallback)...'; npm install; "
        "fi; "
        "fi; "
        "if [ -d 'ios' ] && [ ! -d 'ios/Pods' ]; then "
        "echo '>> Installing pods...'; (cd ios && pod install); "
        "fi"
    )


def prepare_ios_command(
    remote_path: str,
    scheme: str,
    build_type: str,
    simulator_name: str = "iPhone 15",
) -> str:
    """
    Build the remote script: hydration followed by the xcodebuild invocation.
    """
    destination = ios_destination(build_type, simulator_name)
    xcodebuild = " ".join([
        "xcodebuild",
        f"-workspace {shlex.quote(scheme + '.xcworkspace')}",
        f"-scheme {shlex.quote(scheme)}",
        "-configuration Debug",
        f"-destination {shlex.quote(destination)}",
        "COMPILER_INDEX_STORE_ENABLE=NO",
        "DEBUG_INFORMATION_FORMAT=dwarf",
        "RCT_NO_LAUNCH_PACKAGER=1",
    ])
    return (
        f"cd {quote_remote_path(remote_path)} && {{ {prepare_hydration_script()}; }} && "
        f"cd ios && {xcodebuild}"
    )


def artifact_source(working_dir: Path, build_type: str) -> Tuple[Path, str]:
    """Absolute artifact path for a build type, and its extension."""
    artifact = android_artifact(build_type)
    return Path(working_dir) / artifact.relative_path, artifact.extension

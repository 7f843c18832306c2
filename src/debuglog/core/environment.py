"""Capture of runtime and CI/CD context at log time."""

import os
import platform
import sys
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from importlib import metadata

from debuglog.core.models import CICDContext, Environment

Clock = Callable[[], datetime]

# Maintained by hand; not discovered from the installed distribution set.
TRACKED_PACKAGE_VERSIONS: dict[str, str] = {
    "aiosqlite": "0.20.0",
    "sentry-sdk": "2.18.0",
    "pytest": "8.3.3",
    "pytest-asyncio": "0.24.0",
    "pytest-bdd": "7.3.0",
    "hypothesis": "6.115.0",
}

CI_FLAG = "CI"

# Each field is read from the first variable that is set.
CI_VARIABLES: dict[str, tuple[str, ...]] = {
    "pipeline_id": ("GITHUB_RUN_ID", "GITLAB_CI_PIPELINE_ID"),
    "branch": ("GITHUB_REF_NAME", "CI_COMMIT_REF_NAME"),
    "commit_sha": ("GITHUB_SHA", "CI_COMMIT_SHA"),
    "job_id": ("GITHUB_JOB", "CI_JOB_ID"),
    "workflow_run_id": ("GITHUB_RUN_ID",),
}

DEFAULT_CI_ENVIRONMENT = "ci"


def utc_now() -> datetime:
    return datetime.now(UTC)


def _first_set(environ: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = environ.get(name)
        if value:
            return value
    return None


def is_ci(environ: Mapping[str, str] | None = None) -> bool:
    """Return True when the boolean CI flag is set to "true"."""
    environ = os.environ if environ is None else environ
    return environ.get(CI_FLAG, "").lower() == "true"


def detect_ci_context(environ: Mapping[str, str] | None = None) -> CICDContext | None:
    """Detect the pipeline run this process belongs to.

    Args:
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        CICDContext when the CI flag is set, otherwise None.
    """
    environ = os.environ if environ is None else environ
    if not is_ci(environ):
        return None
    fields = {key: _first_set(environ, names) for key, names in CI_VARIABLES.items()}
    return CICDContext(
        environment=environ.get("ENVIRONMENT") or DEFAULT_CI_ENVIRONMENT,
        **fields,
    )


def installer_version() -> str:
    try:
        return metadata.version("pip")
    except metadata.PackageNotFoundError:
        return "unknown"


def capture_environment(
    environ: Mapping[str, str] | None = None,
    clock: Clock | None = None,
    package_versions: Mapping[str, str] | None = None,
) -> Environment:
    """Take an environment snapshot for a new entry.

    Called once per log call and never cached.

    Args:
        environ: Environment mapping. Defaults to os.environ.
        clock: Source of the capture timestamp. Defaults to UTC now.
        package_versions: Overrides TRACKED_PACKAGE_VERSIONS.

    Returns:
        Environment with ci_cd_info set only when running under CI.
    """
    clock = clock or utc_now
    ci_context = detect_ci_context(environ)
    versions = package_versions
    if versions is None:
        versions = TRACKED_PACKAGE_VERSIONS
    return Environment(
        runtime_version=platform.python_version(),
        installer_version=installer_version(),
        package_versions=dict(versions),
        os=sys.platform,
        timestamp=clock().isoformat(),
        ci_cd_info=ci_context.to_info() if ci_context else None,
    )

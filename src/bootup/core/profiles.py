"""Install profiles and the default repositories they imply."""

from dataclasses import dataclass
from enum import Enum

from bootup.core.exceptions import ConfigurationError

DEFAULT_VERSIONS_URL = "https://github.com/jenkins-x/jenkins-x-versions.git"
DEFAULT_VERSIONS_REF = "master"
DEFAULT_BOOT_REPOSITORY = "https://github.com/jenkins-x/jenkins-x-boot-config.git"

CLOUDBEES_VERSIONS_URL = "https://github.com/cloudbees/cloudbees-jenkins-x-versions.git"
CLOUDBEES_VERSIONS_REF = "master"
CLOUDBEES_BOOT_REPOSITORY = "https://github.com/cloudbees/cloudbees-jenkins-x-boot-config.git"


class InstallProfile(str, Enum):
    """Recognized install profiles."""

    OSS = "oss"
    CLOUDBEES = "cloudbees"


@dataclass(frozen=True)
class ProfileDefaults:
    """Default repositories for an install profile."""

    version_stream_url: str
    version_stream_ref: str
    boot_config_url: str


PROFILE_DEFAULTS: dict[InstallProfile, ProfileDefaults] = {
    InstallProfile.OSS: ProfileDefaults(
        version_stream_url=DEFAULT_VERSIONS_URL,
        version_stream_ref=DEFAULT_VERSIONS_REF,
        boot_config_url=DEFAULT_BOOT_REPOSITORY,
    ),
    InstallProfile.CLOUDBEES: ProfileDefaults(
        version_stream_url=CLOUDBEES_VERSIONS_URL,
        version_stream_ref=CLOUDBEES_VERSIONS_REF,
        boot_config_url=CLOUDBEES_BOOT_REPOSITORY,
    ),
}

_missing = [p.value for p in InstallProfile if p not in PROFILE_DEFAULTS]
if _missing:
    raise ConfigurationError(f"Install profiles without defaults: {', '.join(_missing)}")


def parse_profile(name: str | InstallProfile) -> InstallProfile:
    """Parse an install profile name.

    Args:
        name: Profile name (case-insensitive) or profile

    Returns:
        InstallProfile

    Raises:
        ConfigurationError: If the profile is not recognized
    """
    if isinstance(name, InstallProfile):
        return name
    try:
        return InstallProfile(name.strip().lower())
    except ValueError as e:
        known = ", ".join(p.value for p in InstallProfile)
        raise ConfigurationError(f"Unknown install profile '{name}' (expected one of: {known})") from e


def defaults_for(profile: str | InstallProfile) -> ProfileDefaults:
    """Get default repositories for a profile."""
    return PROFILE_DEFAULTS[parse_profile(profile)]


def normalize_git_url(url: str) -> str:
    """Normalize a git URL for comparison (case, trailing slash and .git)."""
    normalized = url.strip().rstrip("/").lower()
    if normalized.endswith(".git"):
        normalized = normalized[: -len(".git")]
    return normalized


def profile_for_stream_url(url: str) -> InstallProfile:
    """Find the install profile whose default version stream is ``url``.

    Raises:
        ConfigurationError: If no profile uses this version stream
    """
    wanted = normalize_git_url(url)
    for profile, defaults in PROFILE_DEFAULTS.items():
        if normalize_git_url(defaults.version_stream_url) == wanted:
            return profile
    raise ConfigurationError(
        f"Unable to determine default boot config URL for version stream {url}; "
        "pass --git-url explicitly"
    )

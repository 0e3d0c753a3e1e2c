"""Active profile resolution."""
from typing import Optional

from .environment import ACTIVE_PROFILES_PROPERTY, ConfigEnvironment


def resolve_active_profile(environment: ConfigEnvironment) -> Optional[str]:
    """
    Resolve the single active profile.

    Priority order:
    1. First entry of the environment's explicit active profile list
    2. First comma-separated token of spring.profiles.active
       (SPRING_PROFILES_ACTIVE and --spring.profiles.active also land here)

    Returns:
        Profile name, or None if no profile is declared
    """
    active_profiles = environment.active_profiles
    if active_profiles:
        return active_profiles[0]

    declared = environment.get_property(ACTIVE_PROFILES_PROPERTY)
    if declared:
        first = declared.split(",")[0].strip()
        if first:
            return first
    return None

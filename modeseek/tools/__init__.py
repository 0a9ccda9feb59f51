"""Run profiles and configuration utilities."""

from .config_loader import (
    Profile,
    available_profiles,
    load_profile,
    profile_name_from_env,
)

__all__ = [
    "Profile",
    "available_profiles",
    "load_profile",
    "profile_name_from_env",
]

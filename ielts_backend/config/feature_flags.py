"""
Feature Flags Configuration

Centralized feature flag management for the grading backend.
All feature flags are loaded from environment variables.
"""
import os


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


class FeatureFlags:
    """
    Feature flags for the application.

    To add a new feature flag:
    1. Add it here as a class property
    2. Load it from environment variable
    3. Use it in your code
    """

    # Writing sessions report the (task1 + 2*task2) / 3 band instead of the raw sum
    FEATURE_WRITING_BAND_OVERRIDE: bool = get_bool_env('FEATURE_WRITING_BAND_OVERRIDE', True)

    # Explicit admin recompute of a submitted session
    FEATURE_ADMIN_REGRADE: bool = get_bool_env('FEATURE_ADMIN_REGRADE', True)

    # Student-facing results include the stored correct answers
    FEATURE_EXPOSE_CORRECT_ANSWERS: bool = get_bool_env('FEATURE_EXPOSE_CORRECT_ANSWERS', False)

    @classmethod
    def is_enabled(cls, flag_name: str) -> bool:
        """Check if a feature flag is enabled by name."""
        return getattr(cls, flag_name, False)

    @classmethod
    def get_all_flags(cls) -> dict:
        """Get all feature flags as a dictionary."""
        return {
            key: value
            for key, value in cls.__dict__.items()
            if not key.startswith('_') and isinstance(value, bool)
        }


feature_flags = FeatureFlags()

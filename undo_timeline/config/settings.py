"""
Configuration and Feature Flags for History Replay

This module provides feature flags for the two replay behaviours that are
kept as-is by default but can be switched per deployment. Flags are
controlled via environment variables for safe toggling without code changes.

Usage:
    from undo_timeline.config.settings import is_enabled

    if is_enabled('symmetric_redo'):
        # Redo replays operations in recording order
        ...
    else:
        # Redo replays operations last-recorded first
        ...

Environment Variables:
    USE_SYMMETRIC_REDO=true/false     - Replay redo in recording order
    USE_REVERSING_ROLLBACK=true/false - Make rollback() undo instead of redo

A TransactionManager reads the flags once, at construction. Explicit
constructor arguments take precedence.
"""

import os
from typing import Dict


# Feature flags with environment variable overrides
FEATURE_FLAGS: Dict[str, bool] = {
    # Transaction.redo() order
    'symmetric_redo': os.getenv('USE_SYMMETRIC_REDO', 'false').lower() == 'true',

    # TransactionManager.rollback() direction
    'rollback_reverses': os.getenv('USE_REVERSING_ROLLBACK', 'false').lower() == 'true',
}


def is_enabled(flag: str) -> bool:
    """
    Check if a feature flag is enabled.

    Args:
        flag: Feature flag name (e.g., 'symmetric_redo')

    Returns:
        True if flag is enabled, False otherwise

    Raises:
        KeyError: If flag name is not recognized

    Example:
        >>> is_enabled('symmetric_redo')
        False  # Default

        >>> # After: export USE_SYMMETRIC_REDO=true
        >>> is_enabled('symmetric_redo')
        True
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    return FEATURE_FLAGS[flag]


def get_all_flags() -> Dict[str, bool]:
    """
    Get all feature flags and their current state.

    Returns:
        Dictionary of flag names to boolean values
    """
    return FEATURE_FLAGS.copy()


def set_flag(flag: str, enabled: bool) -> None:
    """
    Programmatically set a feature flag (for testing only).

    Args:
        flag: Feature flag name
        enabled: True to enable, False to disable

    Warning:
        This is for testing only. In production, use environment variables.
        Managers that already exist keep the value they read.
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    FEATURE_FLAGS[flag] = enabled

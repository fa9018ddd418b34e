"""Utility modules for the planner service."""

from .datetime_utils import (
    utc_now,
    now_ms,
    today_iso,
    to_date_key,
    parse_date_key,
    is_valid_timezone,
    to_naive_utc,
)

from .colors import (
    rgb_to_hex,
    hex_to_rgb,
    text_color_for_background,
)

from .passwords import (
    hash_password,
    verify_password,
)

from .background_tasks import (
    create_safe_task,
    safe_background_task,
)

__all__ = [
    # Datetime utilities
    "utc_now",
    "now_ms",
    "today_iso",
    "to_date_key",
    "parse_date_key",
    "is_valid_timezone",
    "to_naive_utc",
    # Colour utilities
    "rgb_to_hex",
    "hex_to_rgb",
    "text_color_for_background",
    # Passwords
    "hash_password",
    "verify_password",
    # Background tasks
    "create_safe_task",
    "safe_background_task",
]

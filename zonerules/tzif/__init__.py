"""Reading TZif timezone files and compiling them into zone rules."""

__all__ = [
    "compiler",
    "model",
    "provider",
    "timezoneinfo",
    "tz_rule",
    "tzif",
]

"""Process-level helpers: clock, configuration and logging."""

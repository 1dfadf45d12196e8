"""Scheduler sub-package — trigger evaluation, rate limits and periodic timers."""

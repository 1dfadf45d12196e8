"""emotion_nudge — emotion-aware notification scheduling.

Ingests behavioural and emotional events for a single user, derives usage
and emotional patterns, and decides when and what personalised
notification to send through a push backend.
"""

__version__ = "0.1.0"

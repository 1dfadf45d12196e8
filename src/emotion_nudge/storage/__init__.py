"""Persistence collaborator — SQLAlchemy async event log and notification history."""

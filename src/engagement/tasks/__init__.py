"""Scheduled and one-shot background tasks."""

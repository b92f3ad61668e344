"""Engagement services: entity store, optimistic mutator and domain services."""

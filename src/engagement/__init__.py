"""Engagement state synchronization client for the prompts catalogue."""

"""Configuration and authentication gate."""

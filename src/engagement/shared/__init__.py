"""HTTP client helpers and API error parsing."""

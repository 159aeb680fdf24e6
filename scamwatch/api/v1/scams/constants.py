"""Constants for scam detection routes."""

DEFAULT_EMERGING_DAYS = 7

SEVERITY_FILTER_DESCRIPTION = "Comma-separated severities to keep, e.g. critical,high"
DATE_RANGE_DESCRIPTION = "Explicit start_date/end_date take precedence over days"

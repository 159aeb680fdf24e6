"""Constants for analytics routes."""

DATE_RANGE_DESCRIPTION = "Explicit start_date/end_date take precedence over days"

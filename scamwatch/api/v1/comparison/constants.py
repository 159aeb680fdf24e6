"""Constants for comparison routes."""

DEFAULT_COMPARISON_DAYS = 7
DEFAULT_GAINERS_LIMIT = 20
MAX_GAINERS_LIMIT = 500

"""Constants for Google Trends routes."""

MAX_KEYWORD_LENGTH = 100
MAX_EXPLORE_KEYWORDS = 5

KEYWORDS_DESCRIPTION = f"Comma-separated keywords, at most {MAX_EXPLORE_KEYWORDS}"
TIME_RANGE_DESCRIPTION = "Google Trends time range, e.g. 'today 3-m' or 'today 12-m'"
TRENDS_UNAVAILABLE = "Failed to fetch trends data. Google Trends may be rate limiting requests."

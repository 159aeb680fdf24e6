"""Keyword configuration schemas."""

from pydantic import BaseModel, Field, model_validator

from scamwatch.services.analysis_types import Severity


class KeywordCategory(BaseModel):
    """One group of scam terms with a base severity."""

    id: str
    name: str
    description: str = ""
    severity: Severity
    terms: list[str]
    # Contextual categories only match when one of these is also present
    must_contain: list[str] | None = None
    context_tag: str = "CRA"


class KeywordCategories(BaseModel):
    """The four rule categories, in precedence order."""

    fake_expired_benefits: KeywordCategory
    illegitimate_payment_methods: KeywordCategory
    threat_language: KeywordCategory
    suspicious_modifiers: KeywordCategory


class Whitelist(BaseModel):
    description: str = ""
    patterns: list[str] = Field(default_factory=list)


class DateWindow(BaseModel):
    """Inclusive month/day window; may wrap past the end of the year."""

    start_month: int = Field(ge=1, le=12)
    start_day: int = Field(ge=1, le=31)
    end_month: int = Field(ge=1, le=12)
    end_day: int = Field(ge=1, le=31)
    multiplier: float = 1.0


class PaymentCalendar(BaseModel):
    """Benefit payment dates: every listed day in every listed month."""

    months: list[int]
    days: list[int]
    multiplier: float = 1.0

    def includes(self, month: int, day: int) -> bool:
        return month in self.months and day in self.days


class SeasonalMultipliers(BaseModel):
    tax_season: DateWindow
    payment_calendars: dict[str, PaymentCalendar] = Field(default_factory=dict)


class KeywordsConfig(BaseModel):
    """Full scam keywords configuration."""

    version: str
    last_updated: str = ""
    categories: KeywordCategories
    whitelist: Whitelist = Field(default_factory=Whitelist)
    seasonal_multipliers: SeasonalMultipliers
    trends_keywords: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _require_context_terms(self) -> "KeywordsConfig":
        for category in (
            self.categories.illegitimate_payment_methods,
            self.categories.threat_language,
        ):
            if not category.must_contain:
                raise ValueError(f"Category '{category.id}' requires must_contain context terms")
        return self

    def reference_terms(self) -> list[str]:
        """Known scam terms used for lexical similarity."""
        return [
            *self.categories.fake_expired_benefits.terms,
            *self.categories.illegitimate_payment_methods.terms,
            *self.categories.threat_language.terms,
        ]

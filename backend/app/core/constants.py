"""Application-wide constants for the TuitionDesk backend."""

from __future__ import annotations

BRAND_NAME = "TuitionDesk"

# Billing fallbacks
DEFAULT_CURRENCY_CODE = "GBP"
DEFAULT_TIMEZONE = "Europe/London"

# Price used when an organisation has no usable rate card at all (minor units)
FALLBACK_LESSON_RATE_MINOR = 3000

# Term window used when no term encloses the effective date
TERM_FALLBACK_DAYS = 90
CUSTOM_PERIOD_TERM_NAME = "Custom period"

# Duration used when an original lesson cannot be measured
DEFAULT_LESSON_DURATION_MINUTES = 30

# Wire convention for weekdays: 0=Sunday .. 6=Saturday
DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

CURRENCY_SYMBOLS = {
    "GBP": "£",
    "EUR": "€",
    "USD": "$",
    "AUD": "A$",
    "CAD": "C$",
    "NZD": "NZ$",
}

LESSON_CANCELLATION_REASON = "Term adjustment"

# API metadata
API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = f"Backend API for {BRAND_NAME} - scheduling and billing for music tuition"
API_VERSION = "1.0.0"

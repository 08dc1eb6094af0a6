"""
Presentation-layer taxonomy used by the trust annotator.

Values are stable strings because they are emitted verbatim in JSON reports.
``TrustLabel`` members map to a fixed display priority via ``LABEL_PRIORITY``
(1 = shown first).
"""

from enum import StrEnum


class TrustLabel(StrEnum):
    BEST_VALUE = "best_value"
    CHEAPEST_SAFE = "cheapest_safe"
    LONG_TERM_CHOICE = "long_term_choice"
    FASTEST_DELIVERY = "fastest_delivery"
    MOST_REVIEWED = "most_reviewed"
    HIGHER_RISK_LOWER_PRICE = "higher_risk_lower_price"


LABEL_PRIORITY: dict[TrustLabel, int] = {
    TrustLabel.BEST_VALUE:              1,
    TrustLabel.CHEAPEST_SAFE:           2,
    TrustLabel.LONG_TERM_CHOICE:        3,
    TrustLabel.FASTEST_DELIVERY:        4,
    TrustLabel.MOST_REVIEWED:           5,
    TrustLabel.HIGHER_RISK_LOWER_PRICE: 6,
}


class Sentiment(StrEnum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    CAUTIOUS = "cautious"


class ConfidenceLevel(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class CtaVariant(StrEnum):
    BUY_RECOMMENDATION = "buy_recommendation"
    CHECK_PRICE = "check_price"
    GET_OPTION = "get_option"


class RiskSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


SEVERITY_RANK: dict[RiskSeverity, int] = {
    RiskSeverity.LOW:    0,
    RiskSeverity.MEDIUM: 1,
    RiskSeverity.HIGH:   2,
}

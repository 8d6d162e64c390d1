"""Calculs fiscaux : périodes, agrégation du chiffre d'affaires et seuils de TVA."""

from collectif_fr.fiscal.aggregator import (
    FiscalAggregator,
    FiscalPeriodSummary,
    check_eligibility,
)
from collectif_fr.fiscal.periods import FiscalPeriod, declaration_deadline
from collectif_fr.fiscal.thresholds import (
    ThresholdClassification,
    ThresholdEvent,
    ThresholdMonitor,
    classify,
)

__all__ = [
    "FiscalAggregator",
    "FiscalPeriod",
    "FiscalPeriodSummary",
    "ThresholdClassification",
    "ThresholdEvent",
    "ThresholdMonitor",
    "check_eligibility",
    "classify",
    "declaration_deadline",
]

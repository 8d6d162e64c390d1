"""Rapports de déclaration URSSAF, rappels et relevés de TVA."""

from collectif_fr.reporting.tva import (
    TvaInvoiceLine,
    TvaReport,
    TvaReporter,
    tva_report_to_csv,
)
from collectif_fr.reporting.urssaf import (
    ALERTS,
    UrssafReporter,
    build_report,
    declaration_message,
    reminder_message,
    report_to_csv,
)

__all__ = [
    "ALERTS",
    "TvaInvoiceLine",
    "TvaReport",
    "TvaReporter",
    "UrssafReporter",
    "build_report",
    "declaration_message",
    "reminder_message",
    "report_to_csv",
    "tva_report_to_csv",
]

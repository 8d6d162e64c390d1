"""Répartition des factures collectives : résolution des parts,
matérialisation des sous-factures et propagation des paiements."""

from collectif_fr.sharing.materializer import SubInvoiceMaterializer, sub_invoice_number
from collectif_fr.sharing.propagation import PaymentEvent, PaymentPropagator
from collectif_fr.sharing.resolver import (
    ShareAllocation,
    resolve_invoice_shares,
    resolve_shares,
    retained_amount,
    validate_shares,
)

__all__ = [
    "PaymentEvent",
    "PaymentPropagator",
    "ShareAllocation",
    "SubInvoiceMaterializer",
    "resolve_invoice_shares",
    "resolve_shares",
    "retained_amount",
    "sub_invoice_number",
    "validate_shares",
]

"""Propagation du statut de paiement aux sous-factures.

FR: Reçoit les notifications du prestataire de paiement
    (`{invoice_id, new_status}`), vérifie la transition dans le graphe des
    statuts de paiement et l'applique à la facture dans une transaction.
    Les sous-factures n'ont pas de statut de paiement propre : elles le
    dérivent de leur facture parente, donc une seule écriture suffit pour
    que toutes passent à `paid` ensemble. Une notification pour une facture
    inconnue est journalisée puis ignorée ; rejouer `paid` est sans effet.
EN: Receives payment notifications, checks the transition against the
    payment-status graph and applies it in one transaction. Sub-invoices
    derive their status from the parent, so one write flips them all.
    Unknown invoices are logged and dropped; replaying `paid` is a no-op.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from collectif_fr.errors import InvalidPaymentTransitionError
from collectif_fr.models.enums import PaymentStatus
from collectif_fr.models.invoice import Invoice
from collectif_fr.store.base import BaseStore

logger = logging.getLogger(__name__)

# Pas de remboursement : `paid` est terminal
TRANSITIONS: dict[PaymentStatus, list[PaymentStatus]] = {
    PaymentStatus.PENDING: [PaymentStatus.PAID, PaymentStatus.OVERDUE],
    PaymentStatus.OVERDUE: [PaymentStatus.PAID],
    PaymentStatus.PAID: [],
}


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    """Vérifie si la transition de paiement est autorisée."""
    return target in TRANSITIONS.get(current, [])


class PaymentEvent(BaseModel):
    """Notification de paiement reçue du prestataire."""

    invoice_id: str = Field(..., min_length=1, description="Facture / Invoice ID")
    new_status: PaymentStatus = Field(
        default=PaymentStatus.PAID,
        description="Nouveau statut / New payment status",
    )
    occurred_at: datetime | None = Field(
        default=None,
        description="Horodatage côté prestataire / Provider timestamp",
    )


class PaymentPropagator:
    """Applique les notifications de paiement aux factures."""

    def __init__(self, store: BaseStore) -> None:
        self.store = store

    def apply(self, event: PaymentEvent) -> Invoice | None:
        """Applique une notification de paiement.

        Returns:
            La facture mise à jour, la facture inchangée si la notification
            est un rejeu, ou None si la facture est inconnue.

        Raises:
            InvalidPaymentTransitionError: Si la transition est interdite
                (par exemple `paid -> pending`).
        """
        with self.store.atomic(event.invoice_id):
            invoice = self.store.find_invoice(event.invoice_id)
            if invoice is None:
                logger.warning(
                    "Notification de paiement ignorée : facture %s inconnue",
                    event.invoice_id,
                )
                return None

            if invoice.payment_status == event.new_status:
                logger.debug(
                    "Notification rejouée pour la facture %s (%s)",
                    invoice.number,
                    event.new_status,
                )
                return invoice

            if not can_transition(invoice.payment_status, event.new_status):
                msg = (
                    f"Transition de paiement interdite pour la facture "
                    f"{invoice.number} : {invoice.payment_status} -> {event.new_status}"
                )
                raise InvalidPaymentTransitionError(msg)

            update: dict[str, object] = {
                "payment_status": event.new_status,
                "version": invoice.version + 1,
            }
            if event.new_status == PaymentStatus.PAID:
                update["paid_at"] = event.occurred_at or datetime.now(UTC)
            updated = invoice.model_copy(update=update)
            self.store.save_invoice(updated)

            if event.new_status == PaymentStatus.PAID:
                count = len(self.store.list_sub_invoices(invoice.id))
                logger.info(
                    "Facture %s payée : %d sous-factures passent à payé",
                    invoice.number,
                    count,
                )
            else:
                logger.info(
                    "Facture %s : statut de paiement %s -> %s",
                    invoice.number,
                    invoice.payment_status,
                    event.new_status,
                )
            return updated

    def mark_paid(self, invoice_id: str, paid_at: datetime | None = None) -> Invoice | None:
        """Raccourci pour une notification `paid`."""
        return self.apply(
            PaymentEvent(invoice_id=invoice_id, new_status=PaymentStatus.PAID, occurred_at=paid_at)
        )

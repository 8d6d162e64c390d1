"""Sérialiseurs légers pour la facturation collective.

FR: Fonctions de sérialisation Django → dict JSON-safe,
    sans dépendance à Django REST Framework.
EN: Lightweight serialization functions from Django models to
    JSON-safe dicts, without DRF dependency.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collectif_fr.contrib.django.models import Invoice, Share, SubInvoice


def share_to_dict(share: Share) -> dict:
    """Sérialise une part déclarée en dict JSON-safe."""
    return {
        "position": share.position,
        "user_id": share.user_id,
        "share_type": share.share_type,
        "share_value": str(share.share_value),
    }


def sub_invoice_to_dict(sub_invoice: SubInvoice) -> dict:
    """Sérialise une sous-facture, statut de paiement dérivé inclus."""
    return {
        "id": sub_invoice.pk,
        "number": sub_invoice.number,
        "parent_invoice_id": sub_invoice.parent_id,
        "issuer_id": sub_invoice.issuer_id,
        "receiver_id": sub_invoice.receiver_id,
        "amount": str(sub_invoice.amount),
        "status": sub_invoice.status,
        "payment_status": str(sub_invoice.payment_status),
        "created_at": sub_invoice.created_at.isoformat(),
    }


def invoice_to_dict(invoice: Invoice) -> dict:
    """Sérialise un modèle Django Invoice en dict JSON-safe."""
    return {
        "id": invoice.pk,
        "number": invoice.number,
        "issuer_id": invoice.issuer_id,
        "collective_id": invoice.collective_id,
        "client_name": invoice.client_name,
        "invoice_date": invoice.invoice_date.isoformat(),
        "due_date": invoice.due_date.isoformat() if invoice.due_date else None,
        "total_amount": str(invoice.total_amount),
        "payment_status": invoice.payment_status,
        "paid_at": invoice.paid_at.isoformat() if invoice.paid_at else None,
        "status": invoice.status,
        "version": invoice.version,
        "shares": [share_to_dict(share) for share in invoice.shares.all()],
        "sub_invoices": [
            sub_invoice_to_dict(sub) for sub in invoice.sub_invoices.all()
        ],
    }

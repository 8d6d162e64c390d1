"""Modèles de données Pydantic pour la facturation collective."""

from collectif_fr.models.invoice import Invoice, InvoiceItem, Share, SubInvoice
from collectif_fr.models.report import DeclarationReminder, UrssafReport
from collectif_fr.models.user import Collective, CollectiveMember, User

__all__ = [
    "Collective",
    "CollectiveMember",
    "DeclarationReminder",
    "Invoice",
    "InvoiceItem",
    "Share",
    "SubInvoice",
    "UrssafReport",
    "User",
]

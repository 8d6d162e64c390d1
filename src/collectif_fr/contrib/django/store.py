"""Store adossé à l'ORM Django.

FR: Implémente `BaseStore` avec les modèles de l'application. `atomic`
    ouvre une transaction et verrouille la ligne de la facture
    (`select_for_update`) : deux résolutions concurrentes d'une même
    facture sont sérialisées par la base. `snapshot` regroupe les lectures
    dans une même transaction.
EN: BaseStore over the app's ORM models. `atomic` opens a transaction and
    row-locks the invoice; `snapshot` groups reads in one transaction.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date

from django.contrib.auth import get_user_model
from django.db import transaction

from collectif_fr.contrib.django import models
from collectif_fr.errors import UnknownCollectiveError, UnknownUserError
from collectif_fr.models.invoice import Invoice, SubInvoice
from collectif_fr.models.report import UrssafReport
from collectif_fr.models.user import Collective, User
from collectif_fr.store.base import BaseStore


def _pk(value: str) -> int | None:
    """Clé primaire Django depuis un identifiant Pydantic (None si invalide)."""
    return int(value) if value.isdigit() else None


class DjangoStore(BaseStore):
    """Store Django (transactions et verrous de ligne de la base)."""

    # --- Transactions ---

    @contextmanager
    def atomic(self, invoice_id: str | None = None) -> Iterator[None]:
        with transaction.atomic():
            if invoice_id is not None and (pk := _pk(invoice_id)) is not None:
                list(models.Invoice.objects.select_for_update().filter(pk=pk).values("pk"))
            yield

    @contextmanager
    def snapshot(self) -> Iterator[None]:
        with transaction.atomic():
            yield

    # --- Utilisateurs et collectifs ---

    def get_user(self, user_id: str) -> User:
        pk = _pk(user_id)
        profile = (
            models.FiscalProfile.objects.filter(user_id=pk).first() if pk is not None else None
        )
        if profile is not None:
            return profile.to_pydantic()
        account = get_user_model().objects.filter(pk=pk).first() if pk is not None else None
        if account is None:
            msg = f"Utilisateur introuvable : {user_id}"
            raise UnknownUserError(msg)
        # Compte sans profil fiscal : aucun régime renseigné
        return User(id=user_id, name=account.get_username())

    def save_user(self, user: User) -> User:
        models.FiscalProfile.objects.update_or_create(
            user_id=int(user.id),
            defaults={
                "name": user.name or "",
                "fiscal_regime": str(user.fiscal_regime or ""),
                "activity_type": str(user.activity_type or ""),
                "declaration_frequency": str(user.declaration_frequency or ""),
                "siret": user.siret or "",
                "vat_number": user.vat_number or "",
            },
        )
        return user

    def iter_users(self) -> Iterator[User]:
        for profile in models.FiscalProfile.objects.order_by("user_id"):
            yield profile.to_pydantic()

    def get_collective(self, collective_id: str) -> Collective:
        pk = _pk(collective_id)
        collective = (
            models.Collective.objects.prefetch_related("memberships")
            .filter(pk=pk)
            .first()
            if pk is not None
            else None
        )
        if collective is None:
            msg = f"Collectif introuvable : {collective_id}"
            raise UnknownCollectiveError(msg)
        return collective.to_pydantic()

    @transaction.atomic
    def save_collective(self, collective: Collective) -> Collective:
        django_collective, _ = models.Collective.objects.update_or_create(
            pk=int(collective.id),
            defaults={"name": collective.name},
        )
        django_collective.memberships.all().delete()
        models.CollectiveMember.objects.bulk_create(
            models.CollectiveMember(
                collective=django_collective,
                user_id=int(m.user_id),
                role=str(m.role),
            )
            for m in collective.members
        )
        return collective

    # --- Factures ---

    def _invoices(self):
        return models.Invoice.objects.prefetch_related("items", "shares")

    def find_invoice(self, invoice_id: str) -> Invoice | None:
        pk = _pk(invoice_id)
        if pk is None:
            return None
        invoice = self._invoices().filter(pk=pk).first()
        return invoice.to_pydantic() if invoice is not None else None

    @transaction.atomic
    def save_invoice(self, invoice: Invoice) -> Invoice:
        django_invoice, _ = models.Invoice.objects.update_or_create(
            pk=int(invoice.id),
            defaults=models.Invoice.field_values(invoice),
        )
        django_invoice.replace_children(invoice)
        return invoice

    def list_issued_invoices(self, user_id: str, start: date, end: date) -> list[Invoice]:
        return [
            inv.to_pydantic()
            for inv in self._invoices().filter(
                issuer_id=_pk(user_id),
                invoice_date__gte=start,
                invoice_date__lt=end,
            )
        ]

    # --- Sous-factures ---

    def list_sub_invoices(self, invoice_id: str) -> list[SubInvoice]:
        parent = self.find_invoice(invoice_id)
        if parent is None:
            return []
        return [
            sub.to_pydantic(parent)
            for sub in models.SubInvoice.objects.filter(parent_id=int(parent.id))
        ]

    def save_sub_invoice(self, sub_invoice: SubInvoice) -> SubInvoice:
        row, _ = models.SubInvoice.objects.update_or_create(
            parent_id=int(sub_invoice.parent_invoice_id),
            receiver_id=int(sub_invoice.receiver_id),
            defaults={
                "number": sub_invoice.number,
                "issuer_id": int(sub_invoice.issuer_id),
                "amount": sub_invoice.amount,
                "status": str(sub_invoice.status),
            },
        )
        return row.to_pydantic(sub_invoice.parent)

    def delete_sub_invoice(self, invoice_id: str, receiver_id: str) -> None:
        models.SubInvoice.objects.filter(
            parent_id=_pk(invoice_id),
            receiver_id=_pk(receiver_id),
        ).delete()

    def list_received_sub_invoices(
        self,
        user_id: str,
        start: date,
        end: date,
    ) -> list[SubInvoice]:
        rows = models.SubInvoice.objects.select_related("parent").filter(
            receiver_id=_pk(user_id),
            parent__invoice_date__gte=start,
            parent__invoice_date__lt=end,
        )
        return [row.to_pydantic() for row in rows]

    # --- Rapports URSSAF ---

    def find_report(self, user_id: str, start: date, end: date) -> UrssafReport | None:
        row = models.UrssafReport.objects.filter(
            user_id=_pk(user_id),
            period_start=start,
            period_end=end,
        ).first()
        return row.to_pydantic() if row is not None else None

    def save_report(self, report: UrssafReport) -> UrssafReport:
        models.UrssafReport.objects.update_or_create(
            user_id=int(report.user_id),
            period_start=report.period_start,
            period_end=report.period_end,
            defaults={
                "report_data": report.model_dump(mode="json"),
                "automatic": report.automatic,
            },
        )
        return report

    def list_reports(self, user_id: str) -> list[UrssafReport]:
        return [
            row.to_pydantic()
            for row in models.UrssafReport.objects.filter(user_id=_pk(user_id))
        ]

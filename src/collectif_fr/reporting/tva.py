"""Relevé de TVA des factures émises.

FR: Destiné aux utilisateurs assujettis (numéro de TVA renseigné) : pour
    chaque facture émise sur la période, détaille le montant HT, la TVA et
    le montant TTC calculés depuis les lignes. Toutes les factures émises
    sont listées, payées ou non, par date puis par numéro.
EN: For VAT-registered users: lists every invoice issued in the period
    with its excl.-tax, VAT and incl.-tax amounts computed from the items.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from collectif_fr.errors import VatNotRegisteredError
from collectif_fr.fiscal.periods import FiscalPeriod
from collectif_fr.models.invoice import Invoice
from collectif_fr.sharing.resolver import quantize_cents
from collectif_fr.store.base import BaseStore

logger = logging.getLogger(__name__)

TVA_CSV_COLUMNS: tuple[str, ...] = (
    "invoice_number",
    "invoice_date",
    "client_name",
    "total_excl_tax",
    "total_vat",
    "total_incl_tax",
)


class TvaInvoiceLine(BaseModel):
    """Ligne du relevé : une facture émise."""

    model_config = ConfigDict(frozen=True)

    invoice_id: str = Field(..., description="Identifiant / Invoice ID")
    invoice_number: str = Field(..., description="Numéro / Invoice number")
    invoice_date: date = Field(..., description="Date de facture / Invoice date")
    client_name: str | None = Field(default=None, description="Client / Client name")
    total_excl_tax: Decimal = Field(..., description="Total HT / Total excluding tax")
    total_vat: Decimal = Field(..., description="Total TVA / Total VAT")
    total_incl_tax: Decimal = Field(..., description="Total TTC / Total including tax")

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> TvaInvoiceLine:
        """Ventile une facture. Sans lignes, tout le montant est compté HT."""
        if invoice.items:
            excl_tax = sum((i.amount_excl_tax for i in invoice.items), Decimal("0"))
            vat = sum((i.vat_amount for i in invoice.items), Decimal("0"))
        else:
            excl_tax, vat = invoice.total_amount, Decimal("0")
        return cls(
            invoice_id=invoice.id,
            invoice_number=invoice.number,
            invoice_date=invoice.invoice_date,
            client_name=invoice.client_name,
            total_excl_tax=quantize_cents(excl_tax),
            total_vat=quantize_cents(vat),
            total_incl_tax=quantize_cents(invoice.total_amount),
        )


class TvaReport(BaseModel):
    """Relevé de TVA d'un utilisateur assujetti sur une période."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., description="Utilisateur / User ID")
    vat_number: str = Field(..., description="Numéro de TVA / VAT number")
    period: FiscalPeriod = Field(..., description="Période / Period")
    lines: list[TvaInvoiceLine] = Field(default_factory=list, description="Factures / Invoices")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_excl_tax(self) -> Decimal:
        return sum((line.total_excl_tax for line in self.lines), Decimal("0.00"))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_vat(self) -> Decimal:
        return sum((line.total_vat for line in self.lines), Decimal("0.00"))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_incl_tax(self) -> Decimal:
        return sum((line.total_incl_tax for line in self.lines), Decimal("0.00"))


def tva_report_to_csv(report: TvaReport) -> str:
    """Export CSV du relevé : une ligne par facture, séparateur `;`."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=";", lineterminator="\n")
    writer.writerow(TVA_CSV_COLUMNS)
    for line in report.lines:
        data = line.model_dump(mode="json")
        writer.writerow(["" if data[c] is None else data[c] for c in TVA_CSV_COLUMNS])
    return buffer.getvalue()


class TvaReporter:
    """Construit les relevés de TVA à partir du store."""

    def __init__(self, store: BaseStore) -> None:
        self.store = store

    def build_report(self, user_id: str, period: FiscalPeriod) -> TvaReport:
        """Relevé de TVA de `user_id` sur `period`.

        Raises:
            UnknownUserError: Si l'utilisateur n'existe pas.
            VatNotRegisteredError: Si l'utilisateur n'a pas de numéro de TVA.
        """
        with self.store.snapshot():
            user = self.store.get_user(user_id)
            if not user.vat_number:
                msg = f"Relevé de TVA réservé aux assujettis : {user_id} sans numéro de TVA"
                raise VatNotRegisteredError(msg)
            invoices = self.store.list_issued_invoices(user_id, period.start, period.end)

        invoices.sort(key=lambda inv: (inv.invoice_date, inv.number))
        report = TvaReport(
            user_id=user_id,
            vat_number=user.vat_number,
            period=period,
            lines=[TvaInvoiceLine.from_invoice(inv) for inv in invoices],
        )
        logger.debug(
            "Relevé de TVA de %s sur %s : %d factures, TVA %s €",
            user_id,
            period.label,
            len(report.lines),
            report.total_vat,
        )
        return report

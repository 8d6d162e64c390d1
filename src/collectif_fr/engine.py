"""Façade du moteur de partage et de conformité fiscale.

FR: Point d'entrée de la couche API. Regroupe le résolveur de parts, le
    matérialiseur de sous-factures, la propagation des paiements,
    l'agrégateur fiscal, le moniteur de seuil, les rapports URSSAF et les
    relevés de TVA autour d'un même store. Les erreurs métier ne sont
    jamais propagées sous forme d'exception : chaque opération retourne un
    résultat typé (`ok`, `error_code`, `message`, `errors`) sur lequel
    l'appelant branche de façon déterministe.
EN: API-layer entry point. Business errors are never raised: every
    operation returns a typed result the caller branches on.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from typing import Self

from pydantic import BaseModel, Field

from collectif_fr.config import DEFAULT_SETTINGS, EngineSettings
from collectif_fr.errors import CollectifError, ConcurrentEditError, ErrorCode
from collectif_fr.fiscal.aggregator import FiscalAggregator, FiscalPeriodSummary
from collectif_fr.fiscal.periods import FiscalPeriod
from collectif_fr.fiscal.thresholds import ThresholdEvent, ThresholdMonitor
from collectif_fr.models.invoice import Invoice, Share, SubInvoice
from collectif_fr.models.report import DeclarationReminder, UrssafReport
from collectif_fr.notifications import LoggingSink, NotificationSink
from collectif_fr.reporting.tva import TvaReport, TvaReporter
from collectif_fr.reporting.urssaf import UrssafReporter
from collectif_fr.sharing.materializer import SubInvoiceMaterializer
from collectif_fr.sharing.propagation import PaymentEvent, PaymentPropagator
from collectif_fr.sharing.resolver import ShareAllocation, resolve_invoice_shares
from collectif_fr.store.base import BaseStore

logger = logging.getLogger(__name__)


class EngineResult(BaseModel):
    """Résultat d'une opération : succès ou erreur typée."""

    ok: bool = Field(default=True, description="Succès / Success")
    error_code: ErrorCode | None = Field(default=None, description="Code d'erreur / Error code")
    message: str | None = Field(default=None, description="Message d'erreur / Error message")
    errors: list[str] = Field(default_factory=list, description="Détails / Details")

    @classmethod
    def failure(cls, exc: CollectifError, **values: object) -> Self:
        return cls(
            ok=False,
            error_code=exc.code,
            message=str(exc),
            errors=exc.errors or [str(exc)],
            **values,
        )


class ShareResolution(EngineResult):
    allocations: list[ShareAllocation] = Field(
        default_factory=list,
        description="Montants résolus / Resolved amounts",
    )


class InvoiceResult(EngineResult):
    invoice: Invoice | None = Field(default=None, description="Facture / Invoice")
    sub_invoices: list[SubInvoice] = Field(
        default_factory=list,
        description="Sous-factures / Sub-invoices",
    )


class SummaryResult(EngineResult):
    summary: FiscalPeriodSummary | None = Field(
        default=None,
        description="Résumé fiscal / Fiscal summary",
    )


class ThresholdResult(EngineResult):
    event: ThresholdEvent | None = Field(
        default=None,
        description="Événement émis / Emitted event",
    )


class ReportResult(EngineResult):
    report: UrssafReport | None = Field(default=None, description="Rapport / Report")


class TvaReportResult(EngineResult):
    report: TvaReport | None = Field(default=None, description="Relevé de TVA / VAT report")


class CollectiveEngine:
    """Moteur de facturation collective et de conformité fiscale.

    FR: Exemple d'utilisation :

        engine = CollectiveEngine(MemoryStore())
        result = engine.create_invoice(invoice)
        if not result.ok:
            print(result.error_code, result.errors)

    EN: Wires every component around one store and one settings object.
    """

    def __init__(
        self,
        store: BaseStore,
        settings: EngineSettings = DEFAULT_SETTINGS,
        sink: NotificationSink | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.sink = sink or LoggingSink()
        self.materializer = SubInvoiceMaterializer(store, settings)
        self.propagator = PaymentPropagator(store)
        self.aggregator = FiscalAggregator(store, settings)
        self.monitor = ThresholdMonitor(self.aggregator, self.sink)
        self.reporter = UrssafReporter(store, self.aggregator, self.sink)
        self.tva_reporter = TvaReporter(store)

    # --- Parts et sous-factures ---

    def resolve_shares(self, invoice: Invoice | str) -> ShareResolution:
        """Résout les parts d'une facture sans rien écrire."""
        try:
            if isinstance(invoice, str):
                invoice = self.store.get_invoice(invoice)
            collective = (
                self.store.get_collective(invoice.collective_id)
                if invoice.collective_id is not None
                else None
            )
            allocations = resolve_invoice_shares(invoice, collective, self.settings)
        except CollectifError as exc:
            return ShareResolution.failure(exc)
        return ShareResolution(allocations=allocations)

    def create_invoice(self, invoice: Invoice) -> InvoiceResult:
        """Enregistre une nouvelle facture et matérialise ses sous-factures.

        FR: Les parts sont validées avant toute écriture ; en cas d'erreur
            ni la facture ni aucune sous-facture n'est enregistrée.
        EN: Shares are validated before any write.
        """
        try:
            with self.store.atomic(invoice.id):
                if self.store.find_invoice(invoice.id) is not None:
                    msg = f"La facture {invoice.id} existe déjà"
                    raise ConcurrentEditError(msg)
                resolution = self.resolve_shares(invoice)
                if not resolution.ok:
                    return InvoiceResult(
                        ok=False,
                        error_code=resolution.error_code,
                        message=resolution.message,
                        errors=resolution.errors,
                    )
                self.store.save_invoice(invoice)
                sub_invoices = self.materializer.materialize(invoice.id)
                logger.info("Facture %s enregistrée", invoice.number)
                return InvoiceResult(
                    invoice=self.store.get_invoice(invoice.id),
                    sub_invoices=sub_invoices,
                )
        except CollectifError as exc:
            return InvoiceResult.failure(exc)

    def update_shares(
        self,
        invoice_id: str,
        shares: Sequence[Share],
        *,
        expected_version: int | None = None,
    ) -> InvoiceResult:
        """Remplace les parts d'une facture non finalisée."""
        try:
            sub_invoices = self.materializer.update_shares(
                invoice_id, shares, expected_version=expected_version
            )
        except CollectifError as exc:
            return InvoiceResult.failure(exc)
        return InvoiceResult(
            invoice=self.store.get_invoice(invoice_id),
            sub_invoices=sub_invoices,
        )

    def finalize_invoice(self, invoice_id: str) -> InvoiceResult:
        """Fige une facture et ses sous-factures."""
        try:
            invoice = self.materializer.finalize(invoice_id)
        except CollectifError as exc:
            return InvoiceResult.failure(exc)
        return InvoiceResult(
            invoice=invoice,
            sub_invoices=self.store.list_sub_invoices(invoice_id),
        )

    def sub_invoices(self, invoice_id: str) -> list[SubInvoice]:
        return self.store.list_sub_invoices(invoice_id)

    # --- Paiements ---

    def handle_payment(self, event: PaymentEvent) -> Invoice | None:
        """Applique une notification de paiement.

        FR: Les erreurs de propagation (facture inconnue, transition
            interdite) sont journalisées puis ignorées : retourne None.
        EN: Propagation errors are logged and dropped; returns None.
        """
        try:
            return self.propagator.apply(event)
        except CollectifError as exc:
            logger.warning(
                "Notification de paiement ignorée pour la facture %s : %s",
                event.invoice_id,
                exc,
            )
            return None

    # --- Fiscalité ---

    def compute_fiscal_summary(self, user_id: str, period: FiscalPeriod) -> SummaryResult:
        """Résumé fiscal d'un utilisateur sur une période."""
        try:
            summary = self.aggregator.compute_summary(user_id, period)
        except CollectifError as exc:
            return SummaryResult.failure(exc)
        return SummaryResult(summary=summary)

    def evaluate_threshold(self, user_id: str, period: FiscalPeriod) -> ThresholdResult:
        """Classe le chiffre d'affaires de la période et émet l'événement."""
        try:
            event = self.monitor.evaluate(user_id, period)
        except CollectifError as exc:
            return ThresholdResult.failure(exc)
        return ThresholdResult(event=event)

    def build_report(self, user_id: str, period: FiscalPeriod) -> ReportResult:
        """Rapport URSSAF à la demande."""
        try:
            report = self.reporter.build_report(user_id, period)
        except CollectifError as exc:
            return ReportResult.failure(exc)
        return ReportResult(report=report)

    def generate_due_reports(self, reference_date: date) -> list[UrssafReport]:
        """Génération planifiée des rapports URSSAF."""
        return self.reporter.generate_due_reports(reference_date)

    def send_declaration_reminders(self, reference_date: date) -> list[DeclarationReminder]:
        """Rappels de déclaration URSSAF du mois de `reference_date`."""
        return self.reporter.send_reminders(reference_date)

    def build_tva_report(self, user_id: str, period: FiscalPeriod) -> TvaReportResult:
        """Relevé de TVA d'un utilisateur assujetti."""
        try:
            report = self.tva_reporter.build_report(user_id, period)
        except CollectifError as exc:
            return TvaReportResult.failure(exc)
        return TvaReportResult(report=report)

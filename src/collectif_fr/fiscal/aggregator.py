"""Agrégation du chiffre d'affaires et calcul des cotisations URSSAF.

FR: Parcourt, sur une période `[start, end)`, les factures payées émises
    par l'utilisateur et les sous-factures payées qu'il a reçues. Pour une
    facture collective, seule la part conservée par l'émetteur compte :
    le montant total moins ses sous-factures enregistrées. Les montants
    partagés sont comptés chez leurs destinataires via ces mêmes
    sous-factures, jamais deux fois. Les taux appliqués sont ceux du
    barème en vigueur au début de la période.
EN: Walks, over `[start, end)`, the user's paid issued invoices and paid
    received sub-invoices. For a collective invoice only the issuer's
    retained share counts: the total minus its stored sub-invoices. Shared
    amounts count for their receivers through those same sub-invoices.
    Rates come from the schedule effective at the period start.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from collectif_fr.config import DEFAULT_SETTINGS, EngineSettings
from collectif_fr.errors import MissingActivityTypeError, NotMicroEntrepreneurError
from collectif_fr.fiscal.periods import FiscalPeriod
from collectif_fr.fiscal.thresholds import ThresholdClassification, classify
from collectif_fr.models.enums import ActivityType, DeclarationFrequency
from collectif_fr.models.user import User
from collectif_fr.sharing.resolver import quantize_cents
from collectif_fr.store.base import BaseStore

logger = logging.getLogger(__name__)


class FiscalPeriodSummary(BaseModel):
    """Résumé fiscal d'un utilisateur sur une période.

    FR: Valeur dérivée, jamais persistée comme source de vérité :
        toujours recalculée depuis les factures et sous-factures payées.
    EN: Derived value, always recomputed from paid invoices and
        sub-invoices.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., description="Utilisateur / User ID")
    period: FiscalPeriod = Field(..., description="Période / Period")
    activity_type: ActivityType = Field(..., description="Type d'activité / Activity type")
    declaration_frequency: DeclarationFrequency | None = Field(
        default=None,
        description="Fréquence de déclaration / Filing frequency",
    )
    issued_turnover: Decimal = Field(
        ...,
        description="Part conservée des factures émises / Retained issued turnover",
    )
    received_turnover: Decimal = Field(
        ...,
        description="Sous-factures reçues / Received sub-invoice turnover",
    )
    turnover: Decimal = Field(..., description="Chiffre d'affaires imposable / Turnover")
    contribution_rate: Decimal = Field(..., description="Taux de cotisations / Rate")
    income_tax_rate: Decimal = Field(..., description="Taux d'impôt / Income-tax rate")
    contribution: Decimal = Field(..., description="Cotisations / Contributions")
    income_tax: Decimal = Field(..., description="Impôt sur le revenu / Income tax")
    net_income: Decimal = Field(..., description="Revenu net / Net income")
    threshold: ThresholdClassification = Field(
        ...,
        description="Position vis-à-vis du seuil de TVA / VAT threshold position",
    )
    invoice_count: int = Field(default=0, description="Factures comptées / Invoices")
    sub_invoice_count: int = Field(default=0, description="Sous-factures comptées / Sub-invoices")


def check_eligibility(user: User) -> ActivityType:
    """Vérifie que l'utilisateur est un micro-entrepreneur typé.

    Raises:
        NotMicroEntrepreneurError: Si le régime n'est ni MicroBIC ni BNC.
        MissingActivityTypeError: Si le type d'activité n'est pas renseigné.
    """
    if not user.is_micro_entrepreneur:
        regime = user.fiscal_regime.value if user.fiscal_regime else "non renseigné"
        msg = f"L'utilisateur {user.id} n'est pas micro-entrepreneur (régime : {regime})"
        raise NotMicroEntrepreneurError(msg)
    if user.activity_type is None:
        msg = f"Type d'activité non renseigné pour l'utilisateur {user.id}"
        raise MissingActivityTypeError(msg)
    return user.activity_type


class FiscalAggregator:
    """Calcule les résumés fiscaux à partir du store."""

    def __init__(
        self,
        store: BaseStore,
        settings: EngineSettings = DEFAULT_SETTINGS,
    ) -> None:
        self.store = store
        self.settings = settings

    def compute_summary(self, user_id: str, period: FiscalPeriod) -> FiscalPeriodSummary:
        """Résumé fiscal de `user_id` sur `period`.

        Raises:
            UnknownUserError: Si l'utilisateur n'existe pas.
            NotMicroEntrepreneurError: Si le régime n'est pas micro.
            MissingActivityTypeError: Si le type d'activité manque.
            NoRateScheduleError: Si aucun barème ne couvre la période.
        """
        with self.store.snapshot():
            user = self.store.get_user(user_id)
            activity_type = check_eligibility(user)
            invoices = [
                inv
                for inv in self.store.list_issued_invoices(user_id, period.start, period.end)
                if inv.is_paid
            ]
            shared_out = {
                inv.id: sum(
                    (sub.amount for sub in self.store.list_sub_invoices(inv.id)),
                    Decimal("0"),
                )
                for inv in invoices
            }
            sub_invoices = [
                sub
                for sub in self.store.list_received_sub_invoices(
                    user_id, period.start, period.end
                )
                if sub.parent.is_paid
            ]

        # Part conservée : total moins les sous-factures matérialisées
        issued = sum(
            (inv.total_amount - shared_out[inv.id] for inv in invoices), Decimal("0")
        )
        received = sum((sub.amount for sub in sub_invoices), Decimal("0"))
        turnover = issued + received

        rates = self.settings.rate_table.rates_for(activity_type, on=period.start)
        contribution = quantize_cents(turnover * rates.contribution_rate)
        income_tax = quantize_cents(turnover * rates.income_tax_rate)

        summary = FiscalPeriodSummary(
            user_id=user_id,
            period=period,
            activity_type=activity_type,
            declaration_frequency=user.declaration_frequency,
            issued_turnover=issued,
            received_turnover=received,
            turnover=turnover,
            contribution_rate=rates.contribution_rate,
            income_tax_rate=rates.income_tax_rate,
            contribution=contribution,
            income_tax=income_tax,
            net_income=turnover - contribution - income_tax,
            threshold=classify(
                turnover,
                rates.vat_threshold,
                self.settings.approaching_threshold_pct,
            ),
            invoice_count=len(invoices),
            sub_invoice_count=len(sub_invoices),
        )
        logger.debug(
            "Résumé fiscal de %s sur %s : CA %s €, cotisations %s €",
            user_id,
            period.label,
            turnover,
            contribution,
        )
        return summary

"""Modèles du rapport URSSAF persisté et du rappel de déclaration.

FR: Un rapport fige, pour un utilisateur et une période de déclaration,
    le chiffre d'affaires encaissé, les cotisations et l'impôt estimés
    ainsi que la situation vis-à-vis du seuil de TVA. Unicité :
    (utilisateur, début de période, fin de période).
EN: A report freezes, for a user and a filing period, the collected
    turnover, estimated contributions and tax, and the VAT threshold
    situation. Unique on (user, period start, period end).
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from collectif_fr.models.enums import (
    ActivityType,
    DeclarationFrequency,
    FiscalRegime,
    ThresholdState,
)

DISCLAIMER = (
    "Ce rapport est une estimation basée sur vos factures payées et ne "
    "remplace pas votre déclaration officielle sur autoentrepreneur.urssaf.fr."
)


class UrssafReport(BaseModel):
    """Rapport URSSAF d'une période de déclaration."""

    user_id: str = Field(..., description="Utilisateur / User ID")
    period_start: date = Field(..., description="Début de période (inclus) / Period start")
    period_end: date = Field(..., description="Fin de période (exclue) / Period end")
    user_name: str | None = Field(default=None, description="Nom / Name")
    siret: str | None = Field(default=None, description="SIRET")
    fiscal_regime: FiscalRegime | None = Field(default=None, description="Régime / Regime")
    activity_type: ActivityType = Field(..., description="Type d'activité / Activity type")
    turnover: Decimal = Field(..., description="Chiffre d'affaires encaissé / Turnover")
    contribution_rate_pct: Decimal = Field(
        ...,
        description="Taux de cotisations en % / Contribution rate in %",
    )
    contribution: Decimal = Field(..., description="Cotisations / Contributions")
    income_tax_rate_pct: Decimal = Field(
        ...,
        description="Taux du versement libératoire en % / Income-tax rate in %",
    )
    income_tax: Decimal = Field(..., description="Impôt sur le revenu / Income tax")
    net_income: Decimal = Field(..., description="Revenu net / Net income")
    vat_threshold: Decimal = Field(..., description="Seuil de TVA / VAT threshold")
    threshold_state: ThresholdState = Field(..., description="État du seuil / Threshold state")
    vat_applicable: bool = Field(..., description="TVA applicable / VAT applies")
    alert: str = Field(..., description="Alerte TVA / VAT alert")
    deadline: date = Field(..., description="Date limite de déclaration / Filing deadline")
    message: str = Field(..., description="Message de déclaration / Filing message")
    disclaimer: str = Field(default=DISCLAIMER, description="Avertissement / Disclaimer")
    automatic: bool = Field(
        default=False,
        description="Généré par la tâche planifiée / Generated by the scheduler",
    )
    created_at: datetime | None = Field(default=None, description="Création / Created at")

    @property
    def key(self) -> tuple[str, date, date]:
        """Clé d'unicité (utilisateur, début, fin)."""
        return (self.user_id, self.period_start, self.period_end)


class DeclarationReminder(BaseModel):
    """Rappel de déclaration URSSAF émis vers le système de notification.

    FR: Émis le mois où la déclaration de la période précédente est due.
        Le chiffre d'affaires est cumulé depuis le 1er janvier de l'année
        de la période jusqu'à sa fin ; les cotisations sont estimées sur ce
        cumul.
    EN: Emitted in the month the previous period's filing is due. Turnover
        is cumulated from January 1st of the period's year to its end.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., description="Utilisateur / User ID")
    frequency: DeclarationFrequency = Field(..., description="Fréquence / Filing frequency")
    period_start: date = Field(..., description="Début de période (inclus) / Period start")
    period_end: date = Field(..., description="Fin de période (exclue) / Period end")
    deadline: date = Field(..., description="Date limite de déclaration / Filing deadline")
    year_turnover: Decimal = Field(
        ...,
        description="Chiffre d'affaires cumulé de l'année / Year-to-date turnover",
    )
    estimated_contribution: Decimal = Field(
        ...,
        description="Cotisations estimées sur le cumul / Estimated contributions",
    )
    message: str = Field(..., description="Message du rappel / Reminder message")

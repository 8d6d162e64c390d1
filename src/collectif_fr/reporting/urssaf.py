"""Rapports de déclaration URSSAF.

FR: Construit, pour une période de déclaration, un rapport figé à partir
    du résumé fiscal : chiffre d'affaires encaissé, cotisations, impôt,
    revenu net, alerte TVA et échéance de déclaration. La génération
    planifiée parcourt les micro-entrepreneurs, calcule la période
    précédente selon leur fréquence de déclaration, ignore les périodes
    déjà traitées ou sans chiffre d'affaires, enregistre le rapport et
    émet l'événement de seuil correspondant. Les rappels de déclaration
    suivent le même parcours et partent vers le même destinataire.
EN: Builds frozen filing reports from fiscal summaries. Scheduled
    generation walks micro-entrepreneurs, computes their previous filing
    period, skips periods already reported or without turnover, stores the
    report and emits the matching threshold event. Filing reminders walk
    the same users and go to the same sink.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import UTC, date, datetime
from decimal import Decimal

from collectif_fr.errors import CollectifError
from collectif_fr.fiscal.aggregator import FiscalAggregator, FiscalPeriodSummary
from collectif_fr.fiscal.periods import FiscalPeriod, declaration_deadline
from collectif_fr.fiscal.thresholds import ThresholdEvent
from collectif_fr.models.enums import DeclarationFrequency, ThresholdState
from collectif_fr.models.report import DeclarationReminder, UrssafReport
from collectif_fr.models.user import User
from collectif_fr.notifications import NotificationSink
from collectif_fr.store.base import BaseStore

logger = logging.getLogger(__name__)

ALERTS: dict[ThresholdState, str] = {
    ThresholdState.NOMINAL: "Sous seuil de TVA",
    ThresholdState.APPROACHING: "Proche du seuil TVA",
    ThresholdState.EXCEEDED: "Seuil TVA dépassé",
}

_FREQUENCY_LABELS: dict[DeclarationFrequency, str] = {
    DeclarationFrequency.MONTHLY: "mensuelle",
    DeclarationFrequency.QUARTERLY: "trimestrielle",
}

# Mois suivant la fin d'un trimestre civil
REMINDER_MONTHS_QUARTERLY = frozenset({1, 4, 7, 10})

CSV_COLUMNS: tuple[str, ...] = (
    "period",
    "user_name",
    "siret",
    "fiscal_regime",
    "activity_type",
    "turnover",
    "contribution_rate_pct",
    "contribution",
    "income_tax_rate_pct",
    "income_tax",
    "net_income",
    "vat_applicable",
    "alert",
    "message",
    "disclaimer",
)


def _rate_pct(rate: Decimal) -> Decimal:
    return (rate * 100).quantize(Decimal("0.1"))


def declaration_message(period: FiscalPeriod, frequency: DeclarationFrequency | None) -> str:
    """Message d'échéance, par exemple `Déclaration mensuelle à effectuer avant le 20/04/2024`."""
    deadline = declaration_deadline(period)
    kind = f" {_FREQUENCY_LABELS[frequency]}" if frequency is not None else ""
    return f"Déclaration{kind} à effectuer avant le {deadline:%d/%m/%Y}"


def reminder_message(
    period: FiscalPeriod,
    frequency: DeclarationFrequency,
    summary: FiscalPeriodSummary,
) -> str:
    """Message de rappel : échéance, chiffre d'affaires cumulé et cotisations estimées."""
    return (
        f"{declaration_message(period, frequency)} : CA annuel {summary.turnover} €, "
        f"URSSAF estimé {summary.contribution} €"
    )


def build_report(
    user: User,
    summary: FiscalPeriodSummary,
    *,
    automatic: bool = False,
    created_at: datetime | None = None,
) -> UrssafReport:
    """Construit le rapport URSSAF d'un résumé fiscal (sans l'enregistrer)."""
    state = summary.threshold.state
    return UrssafReport(
        user_id=user.id,
        period_start=summary.period.start,
        period_end=summary.period.end,
        user_name=user.name,
        siret=user.siret,
        fiscal_regime=user.fiscal_regime,
        activity_type=summary.activity_type,
        turnover=summary.turnover,
        contribution_rate_pct=_rate_pct(summary.contribution_rate),
        contribution=summary.contribution,
        income_tax_rate_pct=_rate_pct(summary.income_tax_rate),
        income_tax=summary.income_tax,
        net_income=summary.net_income,
        vat_threshold=summary.threshold.threshold,
        threshold_state=state,
        vat_applicable=state == ThresholdState.EXCEEDED,
        alert=ALERTS[state],
        deadline=declaration_deadline(summary.period),
        message=declaration_message(summary.period, summary.declaration_frequency),
        automatic=automatic,
        created_at=created_at or datetime.now(UTC),
    )


def report_to_csv(report: UrssafReport) -> str:
    """Export CSV d'un rapport : une ligne d'en-tête, une ligne de valeurs, séparateur `;`."""
    period = FiscalPeriod(start=report.period_start, end=report.period_end)
    data = report.model_dump(mode="json")
    data["period"] = period.label
    data["vat_applicable"] = "oui" if report.vat_applicable else "non"

    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=";", lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    writer.writerow(["" if data[c] is None else data[c] for c in CSV_COLUMNS])
    return buffer.getvalue()


class UrssafReporter:
    """Génère et enregistre les rapports URSSAF."""

    def __init__(
        self,
        store: BaseStore,
        aggregator: FiscalAggregator,
        sink: NotificationSink | None = None,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.sink = sink

    def build_report(self, user_id: str, period: FiscalPeriod) -> UrssafReport:
        """Rapport à la demande : calculé, enregistré puis retourné.

        FR: Un rapport existant pour la même période est remplacé.

        Raises:
            UnknownUserError: Si l'utilisateur n'existe pas.
            FiscalProfileError: Si l'utilisateur n'est pas éligible.
        """
        user = self.store.get_user(user_id)
        summary = self.aggregator.compute_summary(user_id, period)
        report = build_report(user, summary)
        self.store.save_report(report)
        logger.info("Rapport URSSAF généré pour %s sur %s", user_id, period.label)
        return report

    def generate_due_reports(self, reference_date: date) -> list[UrssafReport]:
        """Génération planifiée pour tous les micro-entrepreneurs.

        FR: La période traitée est le mois ou le trimestre civil précédant
            `reference_date`. Les utilisateurs non éligibles sont ignorés,
            ainsi que les périodes déjà couvertes ou sans chiffre d'affaires.
            Une erreur sur un utilisateur est journalisée et n'interrompt
            pas le traitement des autres.
        EN: Processes the calendar month or quarter before `reference_date`.

        Returns:
            Les rapports créés lors de cet appel.
        """
        created: list[UrssafReport] = []
        for user in self.store.iter_users():
            if (
                not user.is_micro_entrepreneur
                or user.activity_type is None
                or user.declaration_frequency is None
            ):
                continue

            period = FiscalPeriod.previous_for(user.declaration_frequency, reference_date)
            if self.store.find_report(user.id, period.start, period.end) is not None:
                logger.debug("Rapport déjà existant pour %s sur %s", user.id, period.label)
                continue

            try:
                summary = self.aggregator.compute_summary(user.id, period)
            except CollectifError as exc:
                logger.warning("Utilisateur %s ignoré : %s", user.id, exc)
                continue

            if summary.turnover == 0:
                continue

            report = build_report(user, summary, automatic=True)
            self.store.save_report(report)
            created.append(report)
            logger.info(
                "Rapport URSSAF automatique pour %s sur %s : CA %s €, cotisations %s €",
                user.id,
                period.label,
                summary.turnover,
                summary.contribution,
            )

            if self.sink is not None:
                self.sink.emit(
                    ThresholdEvent.from_classification(user.id, period, summary.threshold)
                )
        return created

    def send_reminders(self, reference_date: date) -> list[DeclarationReminder]:
        """Rappels de déclaration du mois de `reference_date`.

        FR: Les déclarants mensuels sont relancés chaque mois pour le mois
            précédent, les trimestriels en janvier, avril, juillet et
            octobre pour le trimestre écoulé. Aucun rappel sans chiffre
            d'affaires cumulé. Une erreur sur un utilisateur est
            journalisée et n'interrompt pas le traitement des autres.
        EN: Monthly filers are reminded every month, quarterly filers in
            the month following a quarter. No reminder without turnover.

        Returns:
            Les rappels émis lors de cet appel.
        """
        sent: list[DeclarationReminder] = []
        for user in self.store.iter_users():
            frequency = user.declaration_frequency
            if not user.is_micro_entrepreneur or user.activity_type is None or frequency is None:
                continue
            if (
                frequency == DeclarationFrequency.QUARTERLY
                and reference_date.month not in REMINDER_MONTHS_QUARTERLY
            ):
                continue

            period = FiscalPeriod.previous_for(frequency, reference_date)
            cumulated = FiscalPeriod(start=date(period.start.year, 1, 1), end=period.end)
            try:
                summary = self.aggregator.compute_summary(user.id, cumulated)
            except CollectifError as exc:
                logger.warning("Rappel URSSAF non envoyé à %s : %s", user.id, exc)
                continue

            if summary.turnover == 0:
                continue

            reminder = DeclarationReminder(
                user_id=user.id,
                frequency=frequency,
                period_start=period.start,
                period_end=period.end,
                deadline=declaration_deadline(period),
                year_turnover=summary.turnover,
                estimated_contribution=summary.contribution,
                message=reminder_message(period, frequency, summary),
            )
            if self.sink is not None:
                self.sink.emit(reminder)
            sent.append(reminder)
        logger.info("%d rappels URSSAF émis au %s", len(sent), reference_date.isoformat())
        return sent

"""Surveillance du seuil de franchise en base de TVA.

FR: `classify` compare un chiffre d'affaires au seuil de TVA et retourne
    un état (nominal, approaching, exceeded). Cette classification est le
    seul déclencheur des notifications : le moniteur la transmet à un
    `NotificationSink` sans jamais envoyer lui-même de message.
EN: `classify` compares turnover against the VAT threshold. The
    classification is the only notification trigger: the monitor hands
    it to a `NotificationSink` and never delivers messages itself.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from collectif_fr.fiscal.periods import FiscalPeriod
from collectif_fr.models.enums import ThresholdState

if TYPE_CHECKING:
    from collectif_fr.fiscal.aggregator import FiscalAggregator
    from collectif_fr.notifications import NotificationSink

logger = logging.getLogger(__name__)

DEFAULT_APPROACHING_PCT = Decimal("70")
EXCEEDED_PCT = Decimal("100")


class ThresholdClassification(BaseModel):
    """Position d'un chiffre d'affaires par rapport au seuil de TVA."""

    model_config = ConfigDict(frozen=True)

    state: ThresholdState = Field(..., description="État / State")
    turnover: Decimal = Field(..., description="Chiffre d'affaires / Turnover")
    threshold: Decimal = Field(..., description="Seuil de TVA / VAT threshold")
    remaining: Decimal = Field(
        ...,
        description="Marge avant le seuil, jamais négative / Headroom, never negative",
    )
    overage: Decimal = Field(
        default=Decimal("0"),
        description="Dépassement du seuil / Amount above the threshold",
    )
    proximity_pct: Decimal = Field(
        ...,
        description="Pourcentage du seuil atteint (au centième) / Percent of threshold",
    )


def classify(
    total_turnover: Decimal,
    threshold: Decimal,
    approaching_pct: Decimal = DEFAULT_APPROACHING_PCT,
) -> ThresholdClassification:
    """Classe un chiffre d'affaires par rapport au seuil.

    FR: nominal sous `approaching_pct` % du seuil, approaching jusqu'à
        100 % exclus, exceeded à partir de 100 %. L'état est calculé sur le
        pourcentage exact ; seul `proximity_pct` est arrondi.
    EN: nominal below `approaching_pct`%, approaching below 100%,
        exceeded from 100%. The state uses the exact percentage.

    Raises:
        ValueError: Si le seuil n'est pas strictement positif.
    """
    if threshold <= 0:
        msg = f"Seuil invalide : {threshold} (doit être strictement positif)"
        raise ValueError(msg)

    exact_pct = total_turnover * EXCEEDED_PCT / threshold
    if exact_pct >= EXCEEDED_PCT:
        state = ThresholdState.EXCEEDED
    elif exact_pct >= approaching_pct:
        state = ThresholdState.APPROACHING
    else:
        state = ThresholdState.NOMINAL

    return ThresholdClassification(
        state=state,
        turnover=total_turnover,
        threshold=threshold,
        remaining=max(threshold - total_turnover, Decimal("0")),
        overage=max(total_turnover - threshold, Decimal("0")),
        proximity_pct=exact_pct.quantize(Decimal("0.01")),
    )


class ThresholdEvent(BaseModel):
    """Événement émis vers le système de notification."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., description="Utilisateur / User ID")
    period: FiscalPeriod = Field(..., description="Période évaluée / Evaluated period")
    state: ThresholdState = Field(..., description="État / State")
    remaining: Decimal = Field(..., description="Marge avant le seuil / Headroom")
    proximity_pct: Decimal = Field(..., description="Pourcentage du seuil / Percent")
    turnover: Decimal = Field(..., description="Chiffre d'affaires / Turnover")
    threshold: Decimal = Field(..., description="Seuil de TVA / VAT threshold")

    @classmethod
    def from_classification(
        cls,
        user_id: str,
        period: FiscalPeriod,
        classification: ThresholdClassification,
    ) -> ThresholdEvent:
        return cls(
            user_id=user_id,
            period=period,
            state=classification.state,
            remaining=classification.remaining,
            proximity_pct=classification.proximity_pct,
            turnover=classification.turnover,
            threshold=classification.threshold,
        )


class ThresholdMonitor:
    """Évalue le seuil de TVA d'un utilisateur et émet l'événement."""

    def __init__(self, aggregator: FiscalAggregator, sink: NotificationSink) -> None:
        self.aggregator = aggregator
        self.sink = sink

    def evaluate(self, user_id: str, period: FiscalPeriod) -> ThresholdEvent:
        """Calcule le résumé fiscal de la période et émet sa classification.

        Raises:
            FiscalProfileError: Si l'utilisateur n'est pas éligible.
            UnknownUserError: Si l'utilisateur n'existe pas.
        """
        summary = self.aggregator.compute_summary(user_id, period)
        event = ThresholdEvent.from_classification(user_id, period, summary.threshold)
        logger.debug(
            "Seuil TVA de %s sur %s : %s (%s %%)",
            user_id,
            period.label,
            event.state,
            event.proximity_pct,
        )
        self.sink.emit(event)
        return event

    def evaluate_year_to_date(self, user_id: str, reference_date: date) -> ThresholdEvent:
        """Évalue l'année civile en cours jusqu'à `reference_date` inclus."""
        return self.evaluate(user_id, FiscalPeriod.year_to_date(reference_date))

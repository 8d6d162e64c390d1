"""Points de sortie vers le système de notification.

FR: Le moteur ne fait qu'émettre des événements (seuil de TVA, rappel de
    déclaration URSSAF) ; leur acheminement (e-mail, notification in-app,
    file d'attente) relève d'un collaborateur externe qui implémente
    `NotificationSink`.
EN: The engine only emits events (VAT threshold, URSSAF filing
    reminder); delivery belongs to an external collaborator implementing
    `NotificationSink`.
"""

import logging
from abc import ABCMeta, abstractmethod

from collectif_fr.fiscal.thresholds import ThresholdEvent
from collectif_fr.models.enums import ThresholdState
from collectif_fr.models.report import DeclarationReminder

logger = logging.getLogger(__name__)

NotificationEvent = ThresholdEvent | DeclarationReminder


class NotificationSink(metaclass=ABCMeta):
    """Destinataire des événements de seuil et des rappels."""

    @abstractmethod
    def emit(self, event: NotificationEvent) -> None:
        """Reçoit un événement. Ne doit pas bloquer indéfiniment."""
        ...


class MemorySink(NotificationSink):
    """Conserve les événements en mémoire (tests, démonstration)."""

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    def emit(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def for_user(self, user_id: str) -> list[NotificationEvent]:
        return [e for e in self.events if e.user_id == user_id]

    @property
    def threshold_events(self) -> list[ThresholdEvent]:
        return [e for e in self.events if isinstance(e, ThresholdEvent)]

    @property
    def reminders(self) -> list[DeclarationReminder]:
        return [e for e in self.events if isinstance(e, DeclarationReminder)]


class LoggingSink(NotificationSink):
    """Journalise les événements ; les dépassements en avertissement."""

    def emit(self, event: NotificationEvent) -> None:
        if isinstance(event, DeclarationReminder):
            logger.info("Rappel URSSAF pour %s : %s", event.user_id, event.message)
            return
        level = logging.WARNING if event.state == ThresholdState.EXCEEDED else logging.INFO
        logger.log(
            level,
            "Seuil TVA %s pour %s sur %s : %s € / %s € (%s %%)",
            event.state,
            event.user_id,
            event.period.label,
            event.turnover,
            event.threshold,
            event.proximity_pct,
        )

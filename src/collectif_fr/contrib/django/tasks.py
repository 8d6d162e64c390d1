"""Tâches Celery pour la facturation collective.

FR: Tâches planifiables (Celery beat) : génération des rapports URSSAF de
    la période échue, rappels de déclaration, surveillance du seuil de TVA
    sur l'année en cours et synchronisation asynchrone des sous-factures.
EN: Schedulable tasks: URSSAF reports for the elapsed period, filing
    reminders, year-to-date VAT threshold monitoring and async sub-invoice
    synchronisation.
"""

import logging
from datetime import date

from celery import shared_task
from django.db import DatabaseError
from django.utils import timezone

from collectif_fr.errors import CollectifError, ShareValidationError

logger = logging.getLogger(__name__)


def _reference_date(value: str | None) -> date:
    return date.fromisoformat(value) if value else timezone.localdate()


@shared_task
def generate_urssaf_reports(reference_date: str | None = None) -> int:
    """Génère les rapports URSSAF dus à `reference_date` (AAAA-MM-JJ).

    FR: Sans date, utilise la date du jour. Retourne le nombre de rapports
        créés ; les périodes déjà couvertes sont ignorées.
    EN: Defaults to today. Returns the number of reports created.
    """
    from collectif_fr.contrib.django.conf import get_engine

    day = _reference_date(reference_date)
    reports = get_engine().generate_due_reports(day)
    logger.info("%d rapports URSSAF générés au %s", len(reports), day.isoformat())
    return len(reports)


@shared_task
def evaluate_vat_thresholds(reference_date: str | None = None) -> int:
    """Évalue le seuil de TVA de chaque micro-entrepreneur depuis le 1er janvier.

    FR: Les événements sont émis vers le destinataire configuré
        (NOTIFICATION_SINK). Retourne le nombre d'utilisateurs évalués.
    EN: Events go to the configured sink. Returns the number of users
        evaluated.
    """
    from collectif_fr.contrib.django.conf import get_engine

    day = _reference_date(reference_date)
    engine = get_engine()
    evaluated = 0
    for user in engine.store.iter_users():
        if not user.is_micro_entrepreneur or user.activity_type is None:
            continue
        try:
            engine.monitor.evaluate_year_to_date(user.id, day)
        except CollectifError as exc:
            logger.warning("Seuil TVA non évalué pour %s : %s", user.id, exc)
            continue
        evaluated += 1
    return evaluated


@shared_task
def send_urssaf_reminders(reference_date: str | None = None) -> int:
    """Émet les rappels de déclaration URSSAF du mois.

    FR: À planifier une fois par mois. Les rappels partent vers le
        destinataire configuré (NOTIFICATION_SINK). Retourne le nombre de
        rappels émis.
    EN: Schedule monthly. Returns the number of reminders emitted.
    """
    from collectif_fr.contrib.django.conf import get_engine

    day = _reference_date(reference_date)
    return len(get_engine().send_declaration_reminders(day))


@shared_task(bind=True, max_retries=3)
def materialize_sub_invoices(self, invoice_id: int) -> bool:
    """Synchronise les sous-factures d'une facture.

    FR: Les erreurs de base de données sont réessayées ; des parts
        invalides sont journalisées et retournent False sans nouvel essai.
    EN: Database errors are retried; invalid shares are logged and return
        False without retry.
    """
    from collectif_fr.contrib.django.conf import get_engine

    try:
        sub_invoices = get_engine().materializer.materialize(str(invoice_id))
    except ShareValidationError as exc:
        logger.warning("Parts invalides pour la facture %s : %s", invoice_id, exc)
        return False
    except DatabaseError as exc:
        logger.exception("Erreur de synchronisation des sous-factures de %s", invoice_id)
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))

    logger.info("Facture %s : %d sous-factures synchronisées", invoice_id, len(sub_invoices))
    return True

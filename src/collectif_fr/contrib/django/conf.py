"""Configuration du moteur via settings Django.

FR: Helper pour accéder aux paramètres COLLECTIF_FR définis dans
    settings.py. Fournit des valeurs par défaut, construit les
    `EngineSettings` du moteur et instancie dynamiquement le
    destinataire des notifications.
EN: Helper for accessing COLLECTIF_FR settings defined in settings.py.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.conf import settings
from django.utils.module_loading import import_string

from collectif_fr.config import EngineSettings
from collectif_fr.engine import CollectiveEngine
from collectif_fr.notifications import LoggingSink, NotificationSink

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, object] = {
    "RATE_TABLE": None,
    "APPROACHING_THRESHOLD_PCT": Decimal("70"),
    "PERCENT_TOLERANCE": Decimal("0.01"),
    "ABSORB_REMAINDER_INTO_ISSUER": False,
    "NOTIFICATION_SINK": None,
}

_ENGINE_KEYS = (
    "RATE_TABLE",
    "APPROACHING_THRESHOLD_PCT",
    "PERCENT_TOLERANCE",
    "ABSORB_REMAINDER_INTO_ISSUER",
)


def get_setting(name: str) -> object:
    """Retourne la valeur d'un paramètre COLLECTIF_FR.

    FR: Cherche dans settings.COLLECTIF_FR[name], puis dans les défauts.
    EN: Looks up settings.COLLECTIF_FR[name], then falls back to defaults.
    """
    if name not in DEFAULTS:
        msg = f"Paramètre COLLECTIF_FR inconnu : {name}"
        raise KeyError(msg)
    user_settings = getattr(settings, "COLLECTIF_FR", {})
    return user_settings.get(name, DEFAULTS[name])


def get_engine_settings() -> EngineSettings:
    """Construit les paramètres du moteur.

    FR: RATE_TABLE peut être un barème (`RateTable`), un dict validable ou
        le chemin complet d'un objet barème (`"monprojet.bareme.TABLE_2025"`).
        Absent, le barème par défaut de la lib s'applique.
    EN: RATE_TABLE may be a RateTable, a mapping or a dotted path.
    """
    values = {name: get_setting(name) for name in _ENGINE_KEYS}
    rate_table = values["RATE_TABLE"]
    if isinstance(rate_table, str):
        values["RATE_TABLE"] = import_string(rate_table)
    return EngineSettings.from_mapping(values)


def get_notification_sink() -> NotificationSink:
    """Instancie le destinataire des notifications configuré.

    FR: NOTIFICATION_SINK est le chemin complet d'une classe
        `NotificationSink` instanciable sans argument. Absent, les
        événements sont simplement journalisés.
    EN: Dotted path of a NotificationSink class; defaults to LoggingSink.
    """
    sink_path = get_setting("NOTIFICATION_SINK")
    if not sink_path:
        return LoggingSink()
    sink_class = import_string(sink_path)
    return sink_class()


def get_engine() -> CollectiveEngine:
    """Moteur branché sur l'ORM Django et les paramètres du projet."""
    from collectif_fr.contrib.django.store import DjangoStore

    return CollectiveEngine(
        DjangoStore(),
        settings=get_engine_settings(),
        sink=get_notification_sink(),
    )

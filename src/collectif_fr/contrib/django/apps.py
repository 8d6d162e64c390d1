"""Configuration de l'application Django pour la facturation collective."""

from django.apps import AppConfig


class CollectifFrConfig(AppConfig):
    """Configuration de l'app Django collectif-fr."""

    name = "collectif_fr.contrib.django"
    label = "collectif_fr"
    verbose_name = "Facturation collective"
    default_auto_field = "django.db.models.BigAutoField"

"""Paramètres du moteur de partage et de conformité fiscale.

FR: Regroupe les paramètres injectables : barème fiscal daté, seuil
    d'alerte TVA, tolérance sur la somme des pourcentages et politique
    d'attribution du reliquat. L'intégration Django construit ces
    paramètres depuis `settings.COLLECTIF_FR`.
EN: Groups the injectable settings: dated rate table, VAT warning level,
    percent-sum tolerance and remainder policy.
"""

from collections.abc import Mapping
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from collectif_fr.rates import DEFAULT_RATE_TABLE, RateTable


class EngineSettings(BaseModel):
    """Paramètres du moteur."""

    model_config = ConfigDict(frozen=True)

    rate_table: RateTable = Field(
        default=DEFAULT_RATE_TABLE,
        description="Barème fiscal daté / Dated rate table",
    )
    approaching_threshold_pct: Decimal = Field(
        default=Decimal("70"),
        gt=0,
        lt=100,
        description=(
            "Pourcentage du seuil TVA à partir duquel l'état devient "
            "'approaching' / Warning level in % of the VAT threshold"
        ),
    )
    percent_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description=(
            "Tolérance sur la somme des parts en pourcentage / "
            "Tolerance on the sum of percent shares"
        ),
    )
    absorb_remainder_into_issuer: bool = Field(
        default=False,
        description=(
            "Attribuer le reliquat non réparti à l'émetteur au lieu de "
            "rejeter la facture / Give the unallocated remainder to the issuer"
        ),
    )

    @classmethod
    def from_mapping(cls, values: Mapping[str, object]) -> "EngineSettings":
        """Construit les paramètres depuis un dict à clés MAJUSCULES.

        FR: Format des settings Django (`RATE_TABLE`, `APPROACHING_THRESHOLD_PCT`,
            ...). Les clés absentes prennent la valeur par défaut.
        EN: Django settings format. Missing keys take their default.
        """
        data = {key.lower(): value for key, value in values.items() if value is not None}
        return cls.model_validate(data)


DEFAULT_SETTINGS = EngineSettings()

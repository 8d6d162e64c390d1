"""Barème fiscal des micro-entrepreneurs, versionné par date d'effet.

FR: Taux de cotisations URSSAF, taux du versement libératoire de l'impôt
    sur le revenu et seuil de franchise en base de TVA, par type d'activité.
    Les taux légaux changent chaque année : le barème est une donnée
    injectée (liste de barèmes datés), jamais une constante codée en dur.
EN: URSSAF contribution rate, flat income-tax rate and VAT franchise
    threshold by activity type. Legal rates change yearly: the table is
    injected data (dated schedules), never a hardcoded constant.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from collectif_fr.errors import NoRateScheduleError, UnknownActivityTypeError
from collectif_fr.models.enums import ActivityType


class ActivityRates(BaseModel):
    """Taux applicables à un type d'activité.

    FR: Les taux sont exprimés en fraction (0.22 pour 22 %).
    EN: Rates are fractions (0.22 for 22%).
    """

    model_config = ConfigDict(frozen=True)

    contribution_rate: Decimal = Field(
        ...,
        ge=0,
        le=1,
        description="Taux de cotisations URSSAF / Social contribution rate",
    )
    income_tax_rate: Decimal = Field(
        ...,
        ge=0,
        le=1,
        description="Taux du versement libératoire / Flat income-tax rate",
    )
    vat_threshold: Decimal = Field(
        ...,
        gt=0,
        description="Seuil de franchise en base de TVA (€) / VAT threshold",
    )


class RateSchedule(BaseModel):
    """Barème complet en vigueur à partir d'une date.

    FR: Doit couvrir tous les types d'activité.
    EN: Must cover every activity type.
    """

    model_config = ConfigDict(frozen=True)

    effective_from: date = Field(..., description="Date d'entrée en vigueur / Effective date")
    label: str | None = Field(default=None, description="Libellé / Label")
    rates: dict[ActivityType, ActivityRates] = Field(
        ...,
        description="Taux par type d'activité / Rates by activity type",
    )

    @model_validator(mode="after")
    def _check_coverage(self) -> RateSchedule:
        missing = [t.value for t in ActivityType if t not in self.rates]
        if missing:
            msg = (
                f"Barème du {self.effective_from.isoformat()} incomplet : "
                f"types manquants {missing}"
            )
            raise ValueError(msg)
        return self


class RateTable(BaseModel):
    """Suite de barèmes datés.

    FR: Le barème applicable à une date est le plus récent dont la date
        d'effet est antérieure ou égale à cette date.
    EN: The schedule applicable on a date is the latest one whose effective
        date is on or before it.
    """

    model_config = ConfigDict(frozen=True)

    schedules: list[RateSchedule] = Field(..., min_length=1)

    @field_validator("schedules")
    @classmethod
    def _sort_schedules(cls, schedules: list[RateSchedule]) -> list[RateSchedule]:
        dates = [s.effective_from for s in schedules]
        if len(set(dates)) != len(dates):
            msg = "Deux barèmes ne peuvent pas avoir la même date d'effet"
            raise ValueError(msg)
        return sorted(schedules, key=lambda s: s.effective_from)

    @property
    def latest(self) -> RateSchedule:
        return self.schedules[-1]

    def schedule_on(self, day: date) -> RateSchedule:
        """Retourne le barème en vigueur à `day`.

        Raises:
            NoRateScheduleError: Si `day` précède le premier barème.
        """
        applicable = [s for s in self.schedules if s.effective_from <= day]
        if not applicable:
            msg = (
                f"Aucun barème en vigueur au {day.isoformat()} "
                f"(premier barème : {self.schedules[0].effective_from.isoformat()})"
            )
            raise NoRateScheduleError(msg)
        return applicable[-1]

    def rates_for(
        self,
        activity_type: ActivityType | str,
        on: date | None = None,
    ) -> ActivityRates:
        """Taux applicables à un type d'activité.

        Args:
            activity_type: COMMERCANT, PRESTATAIRE ou LIBERAL.
            on: Date de référence (barème le plus récent si absente).

        Raises:
            UnknownActivityTypeError: Si le type n'existe pas.
            NoRateScheduleError: Si aucun barème n'est en vigueur à `on`.
        """
        kind = _coerce_activity_type(activity_type)
        schedule = self.latest if on is None else self.schedule_on(on)
        return schedule.rates[kind]

    def with_schedule(self, schedule: RateSchedule) -> RateTable:
        """Nouveau barème incluant `schedule` (remplace la même date d'effet)."""
        kept = [s for s in self.schedules if s.effective_from != schedule.effective_from]
        return RateTable(schedules=[*kept, schedule])


def _coerce_activity_type(value: ActivityType | str) -> ActivityType:
    try:
        return ActivityType(value)
    except ValueError:
        allowed = [t.value for t in ActivityType]
        msg = f"Type d'activité inconnu : {value!r}. Types possibles : {allowed}"
        raise UnknownActivityTypeError(msg) from None


SCHEDULE_2024 = RateSchedule(
    effective_from=date(2024, 1, 1),
    label="Barème micro-entrepreneur 2024",
    rates={
        ActivityType.COMMERCANT: ActivityRates(
            contribution_rate=Decimal("0.128"),
            income_tax_rate=Decimal("0.010"),
            vat_threshold=Decimal("91900"),
        ),
        ActivityType.PRESTATAIRE: ActivityRates(
            contribution_rate=Decimal("0.220"),
            income_tax_rate=Decimal("0.017"),
            vat_threshold=Decimal("36800"),
        ),
        ActivityType.LIBERAL: ActivityRates(
            contribution_rate=Decimal("0.220"),
            income_tax_rate=Decimal("0.022"),
            vat_threshold=Decimal("36800"),
        ),
    },
)

DEFAULT_RATE_TABLE = RateTable(schedules=[SCHEDULE_2024])


def rates_for(
    activity_type: ActivityType | str,
    table: RateTable = DEFAULT_RATE_TABLE,
    on: date | None = None,
) -> ActivityRates:
    """Raccourci fonctionnel pour `table.rates_for(activity_type, on)`."""
    return table.rates_for(activity_type, on=on)

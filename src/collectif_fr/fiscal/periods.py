"""Périodes fiscales et échéances de déclaration URSSAF.

FR: Une période est un intervalle semi-ouvert `[start, end)` : la date
    `end` n'appartient pas à la période. Les déclarations mensuelles ou
    trimestrielles portent sur le mois ou le trimestre civil précédent et
    sont dues au plus tard le 20 du mois suivant la fin de période.
EN: A period is the half-open interval `[start, end)`. Monthly or
    quarterly filings cover the previous calendar month or quarter and are
    due on the 20th of the month following the period end.
"""

from __future__ import annotations

from datetime import date, timedelta

from pydantic import BaseModel, ConfigDict, Field, model_validator

from collectif_fr.models.enums import DeclarationFrequency

DECLARATION_DAY = 20


def _add_months(day: date, months: int) -> date:
    """Premier jour du mois décalé de `months` mois."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


class FiscalPeriod(BaseModel):
    """Période fiscale `[start, end)`."""

    model_config = ConfigDict(frozen=True)

    start: date = Field(..., description="Premier jour (inclus) / First day, inclusive")
    end: date = Field(..., description="Borne de fin (exclue) / End bound, exclusive")

    @model_validator(mode="after")
    def _check_bounds(self) -> FiscalPeriod:
        if self.end <= self.start:
            msg = (
                f"Période invalide : fin ({self.end.isoformat()}) antérieure ou "
                f"égale au début ({self.start.isoformat()})"
            )
            raise ValueError(msg)
        return self

    @classmethod
    def month(cls, year: int, month: int) -> FiscalPeriod:
        start = date(year, month, 1)
        return cls(start=start, end=_add_months(start, 1))

    @classmethod
    def quarter(cls, year: int, quarter: int) -> FiscalPeriod:
        if not 1 <= quarter <= 4:
            msg = f"Trimestre invalide : {quarter} (1 à 4)"
            raise ValueError(msg)
        start = date(year, 3 * (quarter - 1) + 1, 1)
        return cls(start=start, end=_add_months(start, 3))

    @classmethod
    def year(cls, year: int) -> FiscalPeriod:
        return cls(start=date(year, 1, 1), end=date(year + 1, 1, 1))

    @classmethod
    def containing(cls, frequency: DeclarationFrequency, day: date) -> FiscalPeriod:
        """Mois ou trimestre civil contenant `day`."""
        if frequency == DeclarationFrequency.MONTHLY:
            return cls.month(day.year, day.month)
        return cls.quarter(day.year, (day.month - 1) // 3 + 1)

    @classmethod
    def previous_for(
        cls,
        frequency: DeclarationFrequency,
        reference_date: date,
    ) -> FiscalPeriod:
        """Période de déclaration précédant celle qui contient `reference_date`.

        FR: Mois civil précédent (mensuel) ou trimestre civil précédent
            (trimestriel). Le 15 avril 2024 donne mars 2024 ou T1 2024.
        EN: Previous calendar month or quarter.
        """
        current = cls.containing(frequency, reference_date)
        return cls.containing(frequency, current.start - timedelta(days=1))

    @classmethod
    def year_to_date(cls, reference_date: date) -> FiscalPeriod:
        """Du 1er janvier jusqu'à `reference_date` inclus."""
        return cls(
            start=date(reference_date.year, 1, 1),
            end=reference_date + timedelta(days=1),
        )

    @property
    def last_day(self) -> date:
        """Dernier jour inclus de la période."""
        return self.end - timedelta(days=1)

    @property
    def label(self) -> str:
        """Libellé au format français : `01/03/2024 - 31/03/2024`."""
        return f"{self.start:%d/%m/%Y} - {self.last_day:%d/%m/%Y}"

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end


def declaration_deadline(period: FiscalPeriod) -> date:
    """Date limite de déclaration : le 20 du mois suivant la fin de période."""
    return _add_months(period.last_day, 1).replace(day=DECLARATION_DAY)

"""Tests des périodes fiscales et échéances de déclaration."""

from datetime import date

import pytest

from collectif_fr.fiscal.periods import FiscalPeriod, declaration_deadline
from collectif_fr.models.enums import DeclarationFrequency


class TestFiscalPeriod:
    def test_month(self):
        period = FiscalPeriod.month(2024, 3)
        assert period.start == date(2024, 3, 1)
        assert period.end == date(2024, 4, 1)
        assert period.last_day == date(2024, 3, 31)

    def test_december_rolls_over(self):
        assert FiscalPeriod.month(2024, 12).end == date(2025, 1, 1)

    @pytest.mark.parametrize(
        "quarter,start,end",
        [
            (1, date(2024, 1, 1), date(2024, 4, 1)),
            (2, date(2024, 4, 1), date(2024, 7, 1)),
            (4, date(2024, 10, 1), date(2025, 1, 1)),
        ],
    )
    def test_quarter(self, quarter, start, end):
        period = FiscalPeriod.quarter(2024, quarter)
        assert (period.start, period.end) == (start, end)

    @pytest.mark.parametrize("quarter", [0, 5])
    def test_invalid_quarter(self, quarter):
        with pytest.raises(ValueError, match="Trimestre invalide"):
            FiscalPeriod.quarter(2024, quarter)

    def test_end_must_follow_start(self):
        with pytest.raises(ValueError):
            FiscalPeriod(start=date(2024, 3, 1), end=date(2024, 3, 1))

    def test_half_open(self):
        period = FiscalPeriod.month(2024, 3)
        assert period.contains(date(2024, 3, 1))
        assert period.contains(date(2024, 3, 31))
        assert not period.contains(date(2024, 4, 1))

    def test_label(self):
        assert FiscalPeriod.month(2024, 2).label == "01/02/2024 - 29/02/2024"

    def test_year_to_date_includes_reference(self):
        period = FiscalPeriod.year_to_date(date(2024, 6, 30))
        assert period.start == date(2024, 1, 1)
        assert period.contains(date(2024, 6, 30))
        assert not period.contains(date(2024, 7, 1))

    def test_year(self):
        period = FiscalPeriod.year(2024)
        assert period.label == "01/01/2024 - 31/12/2024"


class TestPreviousPeriod:
    """Période déclarée à une date donnée."""

    @pytest.mark.parametrize(
        "frequency,reference,expected",
        [
            (DeclarationFrequency.MONTHLY, date(2024, 4, 15), FiscalPeriod.month(2024, 3)),
            (DeclarationFrequency.MONTHLY, date(2024, 1, 5), FiscalPeriod.month(2023, 12)),
            (DeclarationFrequency.QUARTERLY, date(2024, 4, 15), FiscalPeriod.quarter(2024, 1)),
            (DeclarationFrequency.QUARTERLY, date(2024, 6, 30), FiscalPeriod.quarter(2024, 1)),
            (DeclarationFrequency.QUARTERLY, date(2024, 2, 1), FiscalPeriod.quarter(2023, 4)),
        ],
    )
    def test_previous_for(self, frequency, reference, expected):
        assert FiscalPeriod.previous_for(frequency, reference) == expected


class TestDeadline:
    @pytest.mark.parametrize(
        "period,expected",
        [
            (FiscalPeriod.month(2024, 3), date(2024, 4, 20)),
            (FiscalPeriod.month(2024, 12), date(2025, 1, 20)),
            (FiscalPeriod.quarter(2024, 1), date(2024, 4, 20)),
            (FiscalPeriod.quarter(2024, 4), date(2025, 1, 20)),
        ],
    )
    def test_twentieth_of_following_month(self, period, expected):
        assert declaration_deadline(period) == expected

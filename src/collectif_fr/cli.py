"""Points d'entrée CLI pour collectif-fr."""

import argparse
import sys
from datetime import date
from decimal import Decimal, InvalidOperation

from collectif_fr.errors import CollectifError
from collectif_fr.fiscal.thresholds import DEFAULT_APPROACHING_PCT, classify
from collectif_fr.models.enums import ActivityType
from collectif_fr.rates import DEFAULT_RATE_TABLE


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value.replace(",", "."))
    except InvalidOperation:
        msg = f"montant invalide : {value!r}"
        raise argparse.ArgumentTypeError(msg) from None


def _date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        msg = f"date invalide : {value!r} (attendu AAAA-MM-JJ)"
        raise argparse.ArgumentTypeError(msg) from None


def rates(argv: list[str] | None = None) -> None:
    """Point d'entrée pour la commande `collectif-rates`."""
    parser = argparse.ArgumentParser(
        prog="collectif-rates",
        description="Affiche le barème micro-entrepreneur en vigueur à une date.",
    )
    parser.add_argument("--on", type=_date, default=None, help="Date de référence (AAAA-MM-JJ)")
    args = parser.parse_args(argv)

    try:
        schedule = (
            DEFAULT_RATE_TABLE.latest
            if args.on is None
            else DEFAULT_RATE_TABLE.schedule_on(args.on)
        )
    except CollectifError as exc:
        print(f"collectif-rates : {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Barème en vigueur depuis le {schedule.effective_from:%d/%m/%Y}")
    for activity_type in ActivityType:
        r = schedule.rates[activity_type]
        print(
            f"  {activity_type.value:<12} cotisations {r.contribution_rate * 100:.1f} %"
            f"  impôt {r.income_tax_rate * 100:.1f} %"
            f"  seuil TVA {r.vat_threshold} €"
        )


def classify_turnover(argv: list[str] | None = None) -> None:
    """Point d'entrée pour la commande `collectif-classify`."""
    parser = argparse.ArgumentParser(
        prog="collectif-classify",
        description="Classe un chiffre d'affaires par rapport au seuil de TVA.",
    )
    parser.add_argument("activity_type", choices=[t.value for t in ActivityType])
    parser.add_argument("turnover", type=_decimal, help="Chiffre d'affaires en euros")
    parser.add_argument(
        "--approaching-pct",
        type=_decimal,
        default=DEFAULT_APPROACHING_PCT,
        help="Pourcentage d'alerte (70 par défaut)",
    )
    args = parser.parse_args(argv)

    threshold = DEFAULT_RATE_TABLE.rates_for(args.activity_type).vat_threshold
    result = classify(args.turnover, threshold, args.approaching_pct)
    print(f"État : {result.state.value}")
    print(f"Seuil : {result.threshold} €  ({result.proximity_pct} % atteint)")
    print(f"Marge restante : {result.remaining} €")
    if result.overage:
        print(f"Dépassement : {result.overage} €")

"""Propriétés du résolveur sur des répartitions générées aléatoirement.

FR: Graine fixe : la somme des montants est toujours exactement égale au
    total, aucun montant n'est négatif, et le calcul est déterministe.
EN: Fixed seed: amounts always sum exactly to the total, none is negative,
    and resolution is deterministic.
"""

import random
from decimal import Decimal

import pytest

from collectif_fr.models.enums import ShareType
from collectif_fr.models.invoice import Share
from collectif_fr.sharing.resolver import CENT, resolve_shares


def _random_case(rng: random.Random) -> tuple[Decimal, list[Share]]:
    total = Decimal(rng.randint(0, 5_000_000)) * CENT
    owners = [f"membre-{i}" for i in range(rng.randint(1, 6))]

    shares: list[Share] = []
    fixed_budget = total
    n_fixed = rng.randint(0, len(owners) - 1)
    for owner in owners[:n_fixed]:
        value = Decimal(rng.randint(0, int(fixed_budget / CENT) // 2)) * CENT
        fixed_budget -= value
        shares.append(Share(user_id=owner, share_type=ShareType.FIXED, share_value=value))

    percent_owners = owners[n_fixed:]
    # Pourcentages à deux décimales sommant exactement à 100
    cuts = sorted(rng.randint(0, 10_000) for _ in range(len(percent_owners) - 1))
    bounds = [0, *cuts, 10_000]
    for owner, low, high in zip(percent_owners, bounds, bounds[1:]):
        shares.append(
            Share(
                user_id=owner,
                share_type=ShareType.PERCENT,
                share_value=Decimal(high - low) * CENT,
            )
        )
    return total, shares


@pytest.mark.parametrize("seed", range(25))
def test_amounts_sum_to_total(seed):
    rng = random.Random(seed)
    total, shares = _random_case(rng)

    allocations = resolve_shares(total, shares)

    assert sum(a.amount for a in allocations) == total
    assert all(a.amount >= 0 for a in allocations)
    assert all(a.amount == a.amount.quantize(CENT) for a in allocations)
    assert [a.user_id for a in allocations] == [s.user_id for s in shares]


@pytest.mark.parametrize("seed", range(5))
def test_resolution_is_deterministic(seed):
    total, shares = _random_case(random.Random(seed))
    assert resolve_shares(total, shares) == resolve_shares(total, shares)


@pytest.mark.parametrize("seed", range(10))
def test_remainder_owner_keeps_sum(seed):
    """Avec attribution du reliquat, des pourcentages incomplets restent exacts."""
    rng = random.Random(seed)
    total = Decimal(rng.randint(1, 1_000_000)) * CENT
    shares = [
        Share(
            user_id=f"membre-{i}",
            share_type=ShareType.PERCENT,
            share_value=Decimal(rng.randint(0, 2_000)) * CENT,
        )
        for i in range(rng.randint(1, 4))
    ]

    allocations = resolve_shares(total, shares, remainder_owner="emetteur")

    assert sum(a.amount for a in allocations) == total
    assert all(a.amount >= 0 for a in allocations)

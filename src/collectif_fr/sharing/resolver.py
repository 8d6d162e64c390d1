"""Résolution des parts d'une facture collective en montants.

FR: Transforme les parts déclarées (pourcentage ou montant fixe) en
    montants au centime dont la somme est exactement égale au montant total
    de la facture. Les parts fixes sont servies d'abord ; les pourcentages
    s'appliquent au reste. Chaque montant est arrondi au centime (arrondi
    bancaire) et la dernière part dans l'ordre de déclaration absorbe le
    résidu d'arrondi.
EN: Turns declared shares into cent amounts that sum exactly to the
    invoice total. Fixed shares are served first; percents apply to the
    remainder. Amounts are rounded half-even and the last share in
    declaration order absorbs the rounding residual.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_HALF_EVEN, Decimal

from pydantic import BaseModel, ConfigDict, Field

from collectif_fr.config import DEFAULT_SETTINGS, EngineSettings
from collectif_fr.errors import (
    DuplicateShareOwnerError,
    IncompleteAllocationError,
    InvalidShareValueError,
    InvalidTotalAmountError,
    NotCollectiveMemberError,
    OverAllocatedSharesError,
    SharesWithoutCollectiveError,
    ShareValidationError,
)
from collectif_fr.models.enums import ShareType
from collectif_fr.models.invoice import Invoice, Share
from collectif_fr.models.user import Collective

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
DEFAULT_PERCENT_TOLERANCE = Decimal("0.01")

_Problem = tuple[type[ShareValidationError], str]


class ShareAllocation(BaseModel):
    """Montant résolu pour un titulaire de part.

    FR: `implicit` signale la part de reliquat attribuée à l'émetteur
        lorsqu'elle n'a pas été déclarée.
    EN: `implicit` flags the issuer remainder share when it was not declared.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., description="Titulaire / Share owner")
    share_type: ShareType = Field(..., description="Type de part / Share type")
    share_value: Decimal = Field(..., description="Valeur déclarée / Declared value")
    amount: Decimal = Field(..., description="Montant résolu / Resolved amount")
    implicit: bool = Field(default=False, description="Part implicite / Implicit share")


def quantize_cents(amount: Decimal) -> Decimal:
    """Arrondi bancaire au centime."""
    return amount.quantize(CENT, rounding=ROUND_HALF_EVEN)


def _find_problems(
    total_amount: Decimal,
    shares: Sequence[Share],
    percent_tolerance: Decimal,
    remainder_owner: str | None,
) -> list[_Problem]:
    problems: list[_Problem] = []

    if total_amount < 0 or total_amount != total_amount.quantize(CENT):
        problems.append(
            (
                InvalidTotalAmountError,
                f"Montant total invalide : {total_amount} (positif, au centime)",
            )
        )

    if not shares and remainder_owner is None:
        problems.append(
            (IncompleteAllocationError, "Aucune part déclarée sur la facture collective")
        )

    seen: set[str] = set()
    for position, share in enumerate(shares, start=1):
        label = f"Part {position} ({share.user_id})"
        value = share.share_value
        if value < 0:
            problems.append((InvalidShareValueError, f"{label} : valeur négative {value}"))
        elif share.share_type == ShareType.PERCENT and value > HUNDRED:
            problems.append(
                (InvalidShareValueError, f"{label} : pourcentage supérieur à 100 ({value})")
            )
        elif share.share_type == ShareType.FIXED and value != value.quantize(CENT):
            problems.append(
                (InvalidShareValueError, f"{label} : montant fixe au-delà du centime ({value})")
            )
        if share.user_id in seen:
            problems.append(
                (DuplicateShareOwnerError, f"{label} : utilisateur déjà titulaire d'une part")
            )
        seen.add(share.user_id)

    # Les contrôles d'allocation supposent des valeurs valides
    if problems:
        return problems

    fixed_total = sum(
        (s.share_value for s in shares if s.share_type == ShareType.FIXED), Decimal("0")
    )
    if fixed_total > total_amount:
        problems.append(
            (
                OverAllocatedSharesError,
                f"Parts fixes ({fixed_total} €) supérieures au montant total "
                f"({total_amount} €)",
            )
        )
        return problems

    remaining = total_amount - fixed_total
    percents = [s.share_value for s in shares if s.share_type == ShareType.PERCENT]
    if percents:
        percent_total = sum(percents, Decimal("0"))
        if percent_total > HUNDRED + percent_tolerance:
            problems.append(
                (
                    OverAllocatedSharesError,
                    f"Somme des pourcentages supérieure à 100 ({percent_total} %)",
                )
            )
        elif (
            percent_total < HUNDRED - percent_tolerance
            and remaining > 0
            and remainder_owner is None
        ):
            problems.append(
                (
                    IncompleteAllocationError,
                    f"Somme des pourcentages inférieure à 100 ({percent_total} %) : "
                    f"le reliquat doit être attribué explicitement",
                )
            )
    elif remaining > 0 and remainder_owner is None:
        problems.append(
            (
                IncompleteAllocationError,
                f"{remaining} € non attribués : le reliquat doit être attribué "
                f"explicitement",
            )
        )
    return problems


def validate_shares(
    total_amount: Decimal,
    shares: Sequence[Share],
    *,
    percent_tolerance: Decimal = DEFAULT_PERCENT_TOLERANCE,
    remainder_owner: str | None = None,
) -> list[str]:
    """Valide des parts déclarées. Retourne la liste des erreurs."""
    return [
        message
        for _, message in _find_problems(
            total_amount, shares, percent_tolerance, remainder_owner
        )
    ]


def _absorb_residual(amounts: list[Decimal], residual: Decimal) -> None:
    """Impute le résidu d'arrondi en partant de la dernière part."""
    if residual >= 0:
        amounts[-1] += residual
        return
    # Résidu négatif : aucun montant ne doit devenir négatif
    for index in reversed(range(len(amounts))):
        taken = min(amounts[index], -residual)
        amounts[index] -= taken
        residual += taken
        if residual == 0:
            break


def resolve_shares(
    total_amount: Decimal,
    shares: Sequence[Share],
    *,
    percent_tolerance: Decimal = DEFAULT_PERCENT_TOLERANCE,
    remainder_owner: str | None = None,
) -> list[ShareAllocation]:
    """Calcule le montant de chaque part.

    FR: Fonction pure : les mêmes entrées donnent toujours les mêmes
        montants. La somme des montants retournés est exactement égale à
        `total_amount`.
    EN: Pure function. The returned amounts sum exactly to `total_amount`.

    Args:
        total_amount: Montant total de la facture (au centime).
        shares: Parts déclarées, dans l'ordre de déclaration.
        percent_tolerance: Tolérance sur la somme des pourcentages.
        remainder_owner: Titulaire du reliquat non réparti (sinon le
            reliquat est une erreur).

    Returns:
        Les allocations, dans l'ordre de déclaration (part implicite en fin).

    Raises:
        InvalidShareValueError: Valeur négative, > 100 % ou sous le centime.
        DuplicateShareOwnerError: Deux parts pour le même utilisateur.
        OverAllocatedSharesError: Parts supérieures au montant total.
        IncompleteAllocationError: Reliquat non attribué.
        InvalidTotalAmountError: Montant total invalide.
    """
    problems = _find_problems(total_amount, shares, percent_tolerance, remainder_owner)
    if problems:
        error_class = problems[0][0]
        messages = [message for _, message in problems]
        raise error_class(f"Parts invalides : {'; '.join(messages)}", errors=messages)

    fixed_total = sum(
        (s.share_value for s in shares if s.share_type == ShareType.FIXED), Decimal("0")
    )
    remaining = total_amount - fixed_total

    amounts: list[Decimal] = []
    for share in shares:
        if share.share_type == ShareType.FIXED:
            amounts.append(quantize_cents(share.share_value))
        else:
            amounts.append(quantize_cents(remaining * share.share_value / HUNDRED))

    owners = [s.user_id for s in shares]
    implicit_owner: str | None = None
    if remainder_owner is not None:
        leftover = total_amount - sum(amounts, Decimal("0"))
        if leftover > 0:
            if remainder_owner in owners:
                amounts[owners.index(remainder_owner)] += leftover
            else:
                implicit_owner = remainder_owner
                amounts.append(leftover)

    residual = total_amount - sum(amounts, Decimal("0"))
    if residual:
        _absorb_residual(amounts, residual)

    allocations = [
        ShareAllocation(
            user_id=share.user_id,
            share_type=share.share_type,
            share_value=share.share_value,
            amount=amount,
        )
        for share, amount in zip(shares, amounts)
    ]
    if implicit_owner is not None:
        allocations.append(
            ShareAllocation(
                user_id=implicit_owner,
                share_type=ShareType.FIXED,
                share_value=amounts[-1],
                amount=amounts[-1],
                implicit=True,
            )
        )
    return allocations


def resolve_invoice_shares(
    invoice: Invoice,
    collective: Collective | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[ShareAllocation]:
    """Résout les parts d'une facture.

    FR: Une facture non collective revient entièrement à son émetteur et
        ne peut pas porter de parts. Pour une facture collective,
        l'émetteur et chaque titulaire de part doivent être membres du
        collectif.
    EN: A non-collective invoice goes entirely to its issuer and may not
        carry shares. For a collective invoice, the issuer and every share
        owner must be collective members.

    Raises:
        SharesWithoutCollectiveError: Si une facture sans collectif porte
            des parts.
        NotCollectiveMemberError: Si un titulaire n'est pas membre.
        ShareValidationError: Voir `resolve_shares`.
    """
    if not invoice.is_collective:
        if invoice.shares:
            msg = (
                f"Facture {invoice.number} : {len(invoice.shares)} parts déclarées "
                f"sans collectif"
            )
            raise SharesWithoutCollectiveError(msg, errors=[msg])
        return [
            ShareAllocation(
                user_id=invoice.issuer_id,
                share_type=ShareType.PERCENT,
                share_value=HUNDRED,
                amount=invoice.total_amount,
                implicit=True,
            )
        ]

    if collective is not None:
        outsiders = [s.user_id for s in invoice.shares if not collective.is_member(s.user_id)]
        if not collective.is_member(invoice.issuer_id):
            outsiders.insert(0, invoice.issuer_id)
        if outsiders:
            errors = [
                f"{user_id} n'est pas membre du collectif {collective.name}"
                for user_id in dict.fromkeys(outsiders)
            ]
            raise NotCollectiveMemberError(
                f"Parts invalides : {'; '.join(errors)}", errors=errors
            )

    remainder_owner = invoice.issuer_id if settings.absorb_remainder_into_issuer else None
    return resolve_shares(
        invoice.total_amount,
        invoice.shares,
        percent_tolerance=settings.percent_tolerance,
        remainder_owner=remainder_owner,
    )


def retained_amount(user_id: str, allocations: Sequence[ShareAllocation]) -> Decimal:
    """Montant alloué à `user_id` (0 s'il n'a pas de part)."""
    return sum((a.amount for a in allocations if a.user_id == user_id), Decimal("0"))

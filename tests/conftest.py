"""Fixtures partagées : utilisateurs, collectif, store en mémoire et factures."""

from collections.abc import Callable
from datetime import date
from decimal import Decimal

import pytest

from collectif_fr.models.enums import (
    ActivityType,
    CollectiveRole,
    DeclarationFrequency,
    FiscalRegime,
    ShareType,
)
from collectif_fr.models.invoice import Invoice, Share
from collectif_fr.models.user import Collective, CollectiveMember, User
from collectif_fr.store.memory import MemoryStore


@pytest.fixture
def alex() -> User:
    """Prestataire de services, déclaration mensuelle (émetteur du collectif)."""
    return User(
        id="alex",
        name="Alex Martin",
        fiscal_regime=FiscalRegime.MICRO_BIC,
        activity_type=ActivityType.PRESTATAIRE,
        declaration_frequency=DeclarationFrequency.MONTHLY,
        siret="12345678900011",
    )


@pytest.fixture
def sarah() -> User:
    """Profession libérale, déclaration trimestrielle."""
    return User(
        id="sarah",
        name="Sarah Dubois",
        fiscal_regime=FiscalRegime.BNC,
        activity_type=ActivityType.LIBERAL,
        declaration_frequency=DeclarationFrequency.QUARTERLY,
        siret="98765432100022",
    )


@pytest.fixture
def marc() -> User:
    """Commerçant, déclaration mensuelle."""
    return User(
        id="marc",
        name="Marc Petit",
        fiscal_regime=FiscalRegime.MICRO_BIC,
        activity_type=ActivityType.COMMERCANT,
        declaration_frequency=DeclarationFrequency.MONTHLY,
    )


@pytest.fixture
def sasu_user() -> User:
    """Dirigeant de SASU, hors régime micro."""
    return User(
        id="lea",
        name="Léa SASU",
        fiscal_regime=FiscalRegime.SASU,
        vat_number="FR12345678901",
    )


@pytest.fixture
def collective() -> Collective:
    """Collectif réunissant Alex, Sarah et Marc."""
    return Collective(
        id="atelier",
        name="Atelier Commun",
        members=[
            CollectiveMember(user_id="alex", role=CollectiveRole.OWNER),
            CollectiveMember(user_id="sarah", role=CollectiveRole.ADMIN),
            CollectiveMember(user_id="marc"),
        ],
    )


@pytest.fixture
def store(alex, sarah, marc, sasu_user, collective) -> MemoryStore:
    """Store en mémoire peuplé avec les utilisateurs et le collectif."""
    memory = MemoryStore()
    for user in (alex, sarah, marc, sasu_user):
        memory.save_user(user)
    memory.save_collective(collective)
    return memory


@pytest.fixture
def make_invoice() -> Callable[..., Invoice]:
    """Fabrique de factures collectives émises par Alex."""

    def _make(
        total: str = "9000.00",
        shares: list[Share] | None = None,
        *,
        invoice_id: str = "inv-1",
        number: str = "FA-2024-001",
        issuer_id: str = "alex",
        collective_id: str | None = "atelier",
        invoice_date: date = date(2024, 3, 15),
    ) -> Invoice:
        return Invoice(
            id=invoice_id,
            number=number,
            issuer_id=issuer_id,
            collective_id=collective_id,
            client_name="Client SA",
            invoice_date=invoice_date,
            total_amount=Decimal(total),
            shares=shares or [],
        )

    return _make


@pytest.fixture
def scenario_a_shares() -> list[Share]:
    """Deux parts fixes puis une part de 100 % du reste."""
    return [
        Share(user_id="alex", share_type=ShareType.FIXED, share_value=Decimal("4000")),
        Share(user_id="sarah", share_type=ShareType.FIXED, share_value=Decimal("3000")),
        Share(user_id="marc", share_type=ShareType.PERCENT, share_value=Decimal("100")),
    ]

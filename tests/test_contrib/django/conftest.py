"""Configuration pytest pour les tests Django.

FR: Configure Django avec SQLite in-memory pour les tests.
EN: Configures Django with in-memory SQLite for tests.
"""

from datetime import date
from decimal import Decimal

import django
from django.conf import settings


def pytest_configure() -> None:
    """Configure Django pour les tests."""
    if not settings.configured:
        settings.configure(
            DATABASES={
                "default": {
                    "ENGINE": "django.db.backends.sqlite3",
                    "NAME": ":memory:",
                },
            },
            INSTALLED_APPS=[
                "django.contrib.contenttypes",
                "django.contrib.auth",
                "collectif_fr.contrib.django",
            ],
            DEFAULT_AUTO_FIELD="django.db.models.BigAutoField",
            USE_TZ=True,
        )
        django.setup()


import pytest  # noqa: E402

from collectif_fr.models.enums import (  # noqa: E402
    ActivityType,
    CollectiveRole,
    DeclarationFrequency,
    FiscalRegime,
    ShareType,
)
from collectif_fr.models.invoice import Invoice as PydanticInvoice  # noqa: E402
from collectif_fr.models.invoice import InvoiceItem as PydanticInvoiceItem  # noqa: E402
from collectif_fr.models.invoice import Share as PydanticShare  # noqa: E402
from collectif_fr.models.user import User as PydanticUser  # noqa: E402


@pytest.fixture
def accounts(db) -> dict:
    """Fixture : comptes Django d'Alex, Sarah, Marc et Léa, avec profil fiscal."""
    from django.contrib.auth import get_user_model

    from collectif_fr.contrib.django.store import DjangoStore

    profiles = {
        "alex": dict(
            fiscal_regime=FiscalRegime.MICRO_BIC,
            activity_type=ActivityType.PRESTATAIRE,
            declaration_frequency=DeclarationFrequency.MONTHLY,
            siret="12345678900011",
        ),
        "sarah": dict(
            fiscal_regime=FiscalRegime.BNC,
            activity_type=ActivityType.LIBERAL,
            declaration_frequency=DeclarationFrequency.QUARTERLY,
        ),
        "marc": dict(
            fiscal_regime=FiscalRegime.MICRO_BIC,
            activity_type=ActivityType.COMMERCANT,
            declaration_frequency=DeclarationFrequency.MONTHLY,
        ),
        "lea": dict(fiscal_regime=FiscalRegime.SASU, vat_number="FR12345678901"),
    }
    store = DjangoStore()
    users = {}
    for username, profile in profiles.items():
        account = get_user_model().objects.create_user(username=username)
        store.save_user(PydanticUser(id=str(account.pk), name=username.title(), **profile))
        users[username] = account
    return users


@pytest.fixture
def django_collective(accounts):
    """Fixture : collectif Django réunissant Alex, Sarah et Marc."""
    from collectif_fr.contrib.django.models import Collective, CollectiveMember

    collective = Collective.objects.create(name="Atelier Commun")
    for username, role in (
        ("alex", CollectiveRole.OWNER),
        ("sarah", CollectiveRole.ADMIN),
        ("marc", CollectiveRole.MEMBER),
    ):
        CollectiveMember.objects.create(
            collective=collective, user=accounts[username], role=role
        )
    return collective


@pytest.fixture
def sample_pydantic_invoice(accounts, django_collective) -> PydanticInvoice:
    """Fixture : facture collective Pydantic de 9000 € (4000 / 3000 / reste)."""
    return PydanticInvoice(
        id="nouvelle",
        number="FA-2024-001",
        issuer_id=str(accounts["alex"].pk),
        collective_id=str(django_collective.pk),
        client_name="Client SA",
        invoice_date=date(2024, 3, 15),
        due_date=date(2024, 4, 15),
        total_amount=Decimal("9000.00"),
        items=[
            PydanticInvoiceItem(
                description="Refonte du site",
                quantity=Decimal("1"),
                unit_price=Decimal("6000.00"),
            ),
            PydanticInvoiceItem(
                description="Formation",
                quantity=Decimal("2"),
                unit_price=Decimal("1500.00"),
            ),
        ],
        shares=[
            PydanticShare(
                user_id=str(accounts["alex"].pk),
                share_type=ShareType.FIXED,
                share_value=Decimal("4000"),
            ),
            PydanticShare(
                user_id=str(accounts["sarah"].pk),
                share_type=ShareType.FIXED,
                share_value=Decimal("3000"),
            ),
            PydanticShare(
                user_id=str(accounts["marc"].pk),
                share_type=ShareType.PERCENT,
                share_value=Decimal("100"),
            ),
        ],
    )


@pytest.fixture
def sample_invoice(db, sample_pydantic_invoice):
    """Fixture : facture Django sauvée en base (avec lignes et parts)."""
    from collectif_fr.contrib.django.models import Invoice

    return Invoice.create_with_children(sample_pydantic_invoice)

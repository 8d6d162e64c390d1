"""Tests du store Django : le moteur complet sur l'ORM."""

from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from collectif_fr.contrib.django.models import SubInvoice
from collectif_fr.contrib.django.store import DjangoStore
from collectif_fr.engine import CollectiveEngine
from collectif_fr.errors import (
    ConcurrentEditError,
    UnknownCollectiveError,
    UnknownUserError,
)
from collectif_fr.fiscal.periods import FiscalPeriod
from collectif_fr.models.enums import (
    DocumentStatus,
    ShareType,
    SubInvoicePaymentStatus,
)
from collectif_fr.models.invoice import Share
from collectif_fr.notifications import MemorySink
from collectif_fr.sharing.propagation import PaymentEvent

MARCH_2024 = FiscalPeriod.month(2024, 3)


@pytest.fixture
def store(db) -> DjangoStore:
    return DjangoStore()


@pytest.fixture
def engine(store) -> CollectiveEngine:
    return CollectiveEngine(store, sink=MemorySink())


class TestUsersAndCollectives:
    def test_get_user(self, store, accounts):
        user = store.get_user(str(accounts["sarah"].pk))
        assert user.name == "Sarah"
        assert user.is_micro_entrepreneur

    def test_account_without_profile(self, store, db):
        account = get_user_model().objects.create_user(username="nina")
        user = store.get_user(str(account.pk))
        assert user.fiscal_regime is None
        assert user.name == "nina"

    @pytest.mark.parametrize("user_id", ["999999", "pas-un-id"])
    def test_unknown_user(self, store, user_id):
        with pytest.raises(UnknownUserError):
            store.get_user(user_id)

    def test_iter_users(self, store, accounts):
        assert {u.name for u in store.iter_users()} == {"Alex", "Sarah", "Marc", "Lea"}

    def test_collective(self, store, django_collective):
        collective = store.get_collective(str(django_collective.pk))
        assert len(collective.members) == 3

    def test_save_collective_replaces_members(self, store, django_collective, accounts):
        collective = store.get_collective(str(django_collective.pk))
        collective.members = collective.members[:1]
        store.save_collective(collective)
        assert django_collective.memberships.count() == 1

    def test_unknown_collective(self, store):
        with pytest.raises(UnknownCollectiveError):
            store.get_collective("999999")


class TestInvoiceWorkflow:
    """Parts, sous-factures et paiement au travers de l'ORM."""

    def test_materialize(self, engine, sample_invoice, accounts):
        invoice_id = str(sample_invoice.pk)

        subs = engine.materializer.materialize(invoice_id)

        assert [(s.number, s.receiver_id, s.amount) for s in subs] == [
            ("FA-2024-001-S01", str(accounts["sarah"].pk), Decimal("3000.00")),
            ("FA-2024-001-S02", str(accounts["marc"].pk), Decimal("2000.00")),
        ]
        assert SubInvoice.objects.filter(parent=sample_invoice).count() == 2

    def test_payment_propagates(self, engine, sample_invoice):
        invoice_id = str(sample_invoice.pk)
        engine.materializer.materialize(invoice_id)

        engine.handle_payment(PaymentEvent(invoice_id=invoice_id))

        subs = engine.sub_invoices(invoice_id)
        assert all(s.payment_status == SubInvoicePaymentStatus.PAID for s in subs)
        assert all(
            sub.payment_status == SubInvoicePaymentStatus.PAID
            for sub in SubInvoice.objects.filter(parent=sample_invoice)
        )

    def test_fiscal_summary(self, engine, sample_invoice, accounts):
        invoice_id = str(sample_invoice.pk)
        engine.materializer.materialize(invoice_id)
        engine.handle_payment(PaymentEvent(invoice_id=invoice_id))

        alex = engine.compute_fiscal_summary(str(accounts["alex"].pk), MARCH_2024)
        marc = engine.compute_fiscal_summary(str(accounts["marc"].pk), MARCH_2024)

        assert alex.summary.turnover == Decimal("4000.00")
        assert marc.summary.turnover == Decimal("2000.00")
        assert marc.summary.contribution == Decimal("256.00")

    def test_update_shares_and_finalize(self, engine, store, sample_invoice, accounts):
        invoice_id = str(sample_invoice.pk)
        engine.materializer.materialize(invoice_id)
        sarah = str(accounts["sarah"].pk)

        subs = engine.materializer.update_shares(
            invoice_id,
            [Share(user_id=sarah, share_type=ShareType.PERCENT, share_value=Decimal("100"))],
            expected_version=0,
        )
        assert [(s.receiver_id, s.amount) for s in subs] == [(sarah, Decimal("9000.00"))]

        with pytest.raises(ConcurrentEditError):
            engine.materializer.update_shares(invoice_id, [], expected_version=0)

        finalized = engine.materializer.finalize(invoice_id)
        assert finalized.is_finalized
        sample_invoice.refresh_from_db()
        assert sample_invoice.status == DocumentStatus.FINALIZED
        assert sample_invoice.version == 2
        assert sample_invoice.created_at is not None

    def test_atomic_rolls_back(self, store, sample_invoice):
        invoice = store.get_invoice(str(sample_invoice.pk))

        with pytest.raises(RuntimeError):
            with store.atomic(invoice.id):
                store.save_invoice(invoice.model_copy(update={"client_name": "Autre"}))
                raise RuntimeError("échec")

        assert store.get_invoice(invoice.id).client_name == "Client SA"

    def test_received_sub_invoices_by_parent_date(self, engine, store, sample_invoice, accounts):
        engine.materializer.materialize(str(sample_invoice.pk))
        marc = str(accounts["marc"].pk)

        march = store.list_received_sub_invoices(marc, date(2024, 3, 1), date(2024, 4, 1))
        april = store.list_received_sub_invoices(marc, date(2024, 4, 1), date(2024, 5, 1))

        assert [s.amount for s in march] == [Decimal("2000.00")]
        assert april == []


class TestReports:
    def test_report_saved_and_replaced(self, engine, store, sample_invoice, accounts):
        invoice_id = str(sample_invoice.pk)
        engine.materializer.materialize(invoice_id)
        engine.handle_payment(PaymentEvent(invoice_id=invoice_id))
        alex = str(accounts["alex"].pk)

        engine.build_report(alex, MARCH_2024)
        engine.build_report(alex, MARCH_2024)

        reports = store.list_reports(alex)
        assert len(reports) == 1
        assert reports[0].turnover == Decimal("4000.00")
        assert store.find_report(alex, MARCH_2024.start, MARCH_2024.end) == reports[0]

    def test_generate_due_reports(self, engine, sample_invoice):
        invoice_id = str(sample_invoice.pk)
        engine.materializer.materialize(invoice_id)
        engine.handle_payment(PaymentEvent(invoice_id=invoice_id))

        created = engine.generate_due_reports(date(2024, 4, 15))

        assert len(created) == 3
        assert engine.generate_due_reports(date(2024, 4, 15)) == []

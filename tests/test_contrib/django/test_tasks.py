"""Tests des tâches Celery (exécutées de façon synchrone)."""

from collectif_fr.contrib.django.conf import get_engine
from collectif_fr.contrib.django.models import Share, SubInvoice, UrssafReport
from collectif_fr.contrib.django.tasks import (
    evaluate_vat_thresholds,
    generate_urssaf_reports,
    materialize_sub_invoices,
    send_urssaf_reminders,
)
from collectif_fr.errors import ConcurrentEditError
from collectif_fr.fiscal.thresholds import ThresholdMonitor
from collectif_fr.sharing.propagation import PaymentEvent


class TestMaterializeTask:
    def test_materialize(self, sample_invoice):
        assert materialize_sub_invoices(sample_invoice.pk) is True
        assert SubInvoice.objects.filter(parent=sample_invoice).count() == 2

    def test_invalid_shares_not_retried(self, sample_invoice):
        Share.objects.filter(invoice=sample_invoice, position=3).delete()

        assert materialize_sub_invoices(sample_invoice.pk) is False
        assert not SubInvoice.objects.exists()


class TestScheduledTasks:
    def _pay(self, invoice):
        engine = get_engine()
        engine.materializer.materialize(str(invoice.pk))
        engine.handle_payment(PaymentEvent(invoice_id=str(invoice.pk)))

    def test_generate_reports(self, sample_invoice):
        self._pay(sample_invoice)

        assert generate_urssaf_reports("2024-04-15") == 3
        assert UrssafReport.objects.filter(automatic=True).count() == 3
        assert generate_urssaf_reports("2024-04-15") == 0

    def test_evaluate_thresholds(self, sample_invoice):
        self._pay(sample_invoice)
        assert evaluate_vat_thresholds("2024-06-30") == 3

    def test_evaluate_before_first_schedule(self, accounts):
        assert evaluate_vat_thresholds("2023-06-30") == 0

    def test_evaluate_continues_after_user_error(self, accounts, sample_invoice, monkeypatch):
        self._pay(sample_invoice)
        evaluate = ThresholdMonitor.evaluate_year_to_date
        marc_id = str(accounts["marc"].pk)

        def failing_for_marc(monitor, user_id, reference_date):
            if user_id == marc_id:
                raise ConcurrentEditError("Facture verrouillée")
            return evaluate(monitor, user_id, reference_date)

        monkeypatch.setattr(ThresholdMonitor, "evaluate_year_to_date", failing_for_marc)
        assert evaluate_vat_thresholds("2024-06-30") == 2

    def test_send_reminders(self, sample_invoice):
        self._pay(sample_invoice)
        assert send_urssaf_reminders("2024-04-05") == 3
        assert send_urssaf_reminders("2024-05-05") == 2

    def test_no_reminder_without_turnover(self, accounts):
        assert send_urssaf_reminders("2024-04-05") == 0

"""Tests des vues JSON Django."""

import csv
import io
import json
from datetime import date
from decimal import Decimal

import pytest
from django.http import Http404
from django.test import RequestFactory

from collectif_fr.contrib.django.conf import get_engine
from collectif_fr.contrib.django.models import Invoice, UrssafReport
from collectif_fr.contrib.django.views import (
    DownloadReportCSVView,
    FiscalSummaryView,
    PaymentWebhookView,
    ResolveSharesView,
    SubInvoicesView,
    TvaReportView,
)
from collectif_fr.fiscal.periods import FiscalPeriod
from collectif_fr.models.enums import ShareType
from collectif_fr.models.invoice import Invoice as PydanticInvoice
from collectif_fr.models.invoice import InvoiceItem, Share


@pytest.fixture
def rf() -> RequestFactory:
    return RequestFactory()


def _post_json(rf, payload) -> object:
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return rf.post("/webhooks/payment/", data=body, content_type="application/json")


def _json(response) -> dict:
    return json.loads(response.content)


@pytest.fixture
def materialized(sample_invoice):
    get_engine().materializer.materialize(str(sample_invoice.pk))
    return sample_invoice


class TestPaymentWebhookView:
    def test_paid(self, rf, materialized):
        response = PaymentWebhookView.as_view()(
            _post_json(rf, {"invoice_id": str(materialized.pk), "new_status": "paid"})
        )

        assert response.status_code == 200
        assert _json(response) == {"status": "ok", "payment_status": "paid"}
        detail = SubInvoicesView.as_view()(rf.get("/"), invoice_id=materialized.pk)
        assert all(sub["payment_status"] == "paid" for sub in _json(detail)["sub_invoices"])

    def test_unknown_invoice_acknowledged(self, rf, db):
        response = PaymentWebhookView.as_view()(_post_json(rf, {"invoice_id": "999999"}))
        assert response.status_code == 202
        assert _json(response) == {"status": "ignored"}

    def test_forbidden_transition_acknowledged(self, rf, materialized):
        view = PaymentWebhookView.as_view()
        view(_post_json(rf, {"invoice_id": str(materialized.pk)}))

        response = view(
            _post_json(rf, {"invoice_id": str(materialized.pk), "new_status": "overdue"})
        )

        assert response.status_code == 202
        materialized.refresh_from_db()
        assert materialized.payment_status == "paid"

    @pytest.mark.parametrize(
        "payload",
        ["pas du json", {"new_status": "paid"}, {"invoice_id": "1", "new_status": "refunded"}],
    )
    def test_invalid_payload(self, rf, db, payload):
        response = PaymentWebhookView.as_view()(_post_json(rf, payload))
        assert response.status_code == 400
        assert "details" in _json(response)

    def test_get_not_allowed(self, rf):
        assert PaymentWebhookView.as_view()(rf.get("/")).status_code == 405


class TestResolveSharesView:
    def test_allocations(self, rf, sample_invoice, accounts):
        response = ResolveSharesView.as_view()(rf.post("/"), invoice_id=sample_invoice.pk)

        assert response.status_code == 200
        data = _json(response)
        assert data["ok"] is True
        assert [a["amount"] for a in data["allocations"]] == ["4000.00", "3000.00", "2000.00"]
        assert not sample_invoice.sub_invoices.exists()

    def test_unknown_invoice(self, rf, db):
        with pytest.raises(Http404):
            ResolveSharesView.as_view()(rf.post("/"), invoice_id=999999)


class TestSubInvoicesView:
    def test_get_before_materialization(self, rf, sample_invoice):
        data = _json(SubInvoicesView.as_view()(rf.get("/"), invoice_id=sample_invoice.pk))
        assert data["number"] == "FA-2024-001"
        assert len(data["shares"]) == 3
        assert data["sub_invoices"] == []

    def test_post_materializes(self, rf, sample_invoice):
        response = SubInvoicesView.as_view()(rf.post("/"), invoice_id=sample_invoice.pk)

        assert response.status_code == 200
        subs = _json(response)["sub_invoices"]
        assert [(s["number"], s["amount"], s["payment_status"]) for s in subs] == [
            ("FA-2024-001-S01", "3000.00", "unpaid"),
            ("FA-2024-001-S02", "2000.00", "unpaid"),
        ]

    def test_post_invalid_shares(self, rf, sample_pydantic_invoice, accounts):
        incomplete = sample_pydantic_invoice.model_copy(
            update={
                "items": [],
                "shares": [
                    Share(
                        user_id=str(accounts["sarah"].pk),
                        share_type=ShareType.PERCENT,
                        share_value=Decimal("30"),
                    )
                ],
            }
        )
        invoice = Invoice.create_with_children(incomplete)

        response = SubInvoicesView.as_view()(rf.post("/"), invoice_id=invoice.pk)

        assert response.status_code == 400
        assert _json(response)["code"] == "incomplete_allocation"
        assert not invoice.sub_invoices.exists()

    def test_finalized_invoice_unchanged(self, rf, materialized):
        get_engine().finalize_invoice(str(materialized.pk))
        response = SubInvoicesView.as_view()(rf.post("/"), invoice_id=materialized.pk)
        data = _json(response)
        assert data["status"] == "finalized"
        assert all(s["status"] == "finalized" for s in data["sub_invoices"])


class TestFiscalSummaryView:
    def _get(self, rf, user_id, **params):
        return FiscalSummaryView.as_view()(rf.get("/", params), user_id=user_id)

    def test_summary(self, rf, materialized, accounts):
        PaymentWebhookView.as_view()(_post_json(rf, {"invoice_id": str(materialized.pk)}))

        response = self._get(
            rf, accounts["marc"].pk, start="2024-03-01", end="2024-04-01"
        )

        assert response.status_code == 200
        summary = _json(response)["summary"]
        assert summary["turnover"] == "2000.00"
        assert summary["contribution"] == "256.00"
        assert summary["threshold"]["state"] == "nominal"

    @pytest.mark.parametrize(
        "params",
        [{}, {"start": "2024-03-01"}, {"start": "2024-04-01", "end": "2024-03-01"}],
    )
    def test_invalid_period(self, rf, accounts, params):
        assert self._get(rf, accounts["alex"].pk, **params).status_code == 400

    def test_sasu_user(self, rf, accounts):
        response = self._get(rf, accounts["lea"].pk, start="2024-03-01", end="2024-04-01")
        assert response.status_code == 400
        assert _json(response)["code"] == "not_micro_entrepreneur"

    def test_unknown_user(self, rf, db):
        response = self._get(rf, 999999, start="2024-03-01", end="2024-04-01")
        assert response.status_code == 404


class TestDownloadReportCSVView:
    def test_csv(self, rf, materialized, accounts):
        engine = get_engine()
        PaymentWebhookView.as_view()(_post_json(rf, {"invoice_id": str(materialized.pk)}))
        engine.build_report(str(accounts["alex"].pk), FiscalPeriod.month(2024, 3))
        report = UrssafReport.objects.get(user=accounts["alex"])

        response = DownloadReportCSVView.as_view()(rf.get("/"), report_id=report.pk)

        assert response.status_code == 200
        assert response["Content-Type"] == "text/csv"
        assert "urssaf_report_2024-03-01.csv" in response["Content-Disposition"]
        rows = list(csv.reader(io.StringIO(response.content.decode()), delimiter=";"))
        assert dict(zip(rows[0], rows[1]))["turnover"] == "4000.00"

    def test_unknown_report(self, rf, db):
        with pytest.raises(Http404):
            DownloadReportCSVView.as_view()(rf.get("/"), report_id=999999)


class TestTvaReportView:
    @pytest.fixture
    def lea_invoice(self, accounts):
        return Invoice.create_with_children(
            PydanticInvoice(
                id="nouvelle",
                number="FA-L-001",
                issuer_id=str(accounts["lea"].pk),
                client_name="Client SA",
                invoice_date=date(2024, 2, 12),
                total_amount=Decimal("1500.00"),
                items=[
                    InvoiceItem(
                        description="Conseil",
                        quantity=Decimal("2"),
                        unit_price=Decimal("500.00"),
                        vat_rate=Decimal("20"),
                    ),
                    InvoiceItem(
                        description="Formation exonérée",
                        quantity=Decimal("1"),
                        unit_price=Decimal("300.00"),
                    ),
                ],
            )
        )

    def _get(self, rf, user_id, **params):
        return TvaReportView.as_view()(rf.get("/", params), user_id=user_id)

    def test_json(self, rf, accounts, lea_invoice):
        response = self._get(rf, accounts["lea"].pk, start="2024-01-01", end="2024-04-01")

        assert response.status_code == 200
        report = _json(response)
        assert report["vat_number"] == "FR12345678901"
        assert report["lines"][0]["invoice_number"] == "FA-L-001"
        assert report["total_excl_tax"] == "1300.00"
        assert report["total_vat"] == "200.00"

    def test_csv(self, rf, accounts, lea_invoice):
        response = self._get(
            rf, accounts["lea"].pk, start="2024-01-01", end="2024-04-01", format="csv"
        )

        assert response["Content-Type"] == "text/csv"
        assert "tva_report_2024-01-01.csv" in response["Content-Disposition"]
        rows = list(csv.reader(io.StringIO(response.content.decode()), delimiter=";"))
        assert dict(zip(rows[0], rows[1]))["total_incl_tax"] == "1500.00"

    def test_without_vat_number_forbidden(self, rf, accounts):
        response = self._get(rf, accounts["alex"].pk, start="2024-01-01", end="2024-04-01")
        assert response.status_code == 403
        assert _json(response)["code"] == "vat_not_registered"

    def test_invalid_period(self, rf, accounts):
        response = self._get(rf, accounts["lea"].pk, start="2024-04-01", end="2024-01-01")
        assert response.status_code == 400

"""Configuration des URLs Django pour la facturation collective."""

from django.urls import path

from collectif_fr.contrib.django.views import (
    DownloadReportCSVView,
    FiscalSummaryView,
    PaymentWebhookView,
    ResolveSharesView,
    SubInvoicesView,
    TvaReportView,
)

app_name = "collectif_fr"

urlpatterns = [
    path(
        "webhooks/payment/",
        PaymentWebhookView.as_view(),
        name="payment-webhook",
    ),
    path(
        "invoices/<int:invoice_id>/resolve-shares/",
        ResolveSharesView.as_view(),
        name="resolve-shares",
    ),
    path(
        "invoices/<int:invoice_id>/sub-invoices/",
        SubInvoicesView.as_view(),
        name="sub-invoices",
    ),
    path(
        "users/<int:user_id>/fiscal-summary/",
        FiscalSummaryView.as_view(),
        name="fiscal-summary",
    ),
    path(
        "users/<int:user_id>/tva-report/",
        TvaReportView.as_view(),
        name="tva-report",
    ),
    path(
        "reports/<int:report_id>/csv/",
        DownloadReportCSVView.as_view(),
        name="report-csv",
    ),
]

"""Vues Django pour la facturation collective.

FR: Vues CBV (Class-Based Views) JSON : notification de paiement
    (webhook), résolution des parts, matérialisation des sous-factures,
    résumé fiscal, relevé de TVA et export CSV des rapports URSSAF. Les
    erreurs métier du moteur sont traduites en codes HTTP (400 validation,
    403 relevé de TVA sans numéro, 404 introuvable, 409 conflit). Pas de
    dépendance à Django REST Framework.
EN: JSON CBV views. Engine errors map to HTTP codes (400 validation,
    403 no VAT number, 404 not found, 409 conflict). No DRF dependency.
"""

import logging
from datetime import date

from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from pydantic import ValidationError

from collectif_fr.contrib.django.conf import get_engine
from collectif_fr.contrib.django.models import Invoice, UrssafReport
from collectif_fr.contrib.django.serializers import invoice_to_dict
from collectif_fr.engine import EngineResult
from collectif_fr.errors import ErrorCode
from collectif_fr.fiscal.periods import FiscalPeriod
from collectif_fr.reporting.tva import tva_report_to_csv
from collectif_fr.reporting.urssaf import report_to_csv
from collectif_fr.sharing.propagation import PaymentEvent

logger = logging.getLogger(__name__)

_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.UNKNOWN_INVOICE: 404,
    ErrorCode.UNKNOWN_USER: 404,
    ErrorCode.UNKNOWN_COLLECTIVE: 404,
    ErrorCode.VAT_NOT_REGISTERED: 403,
    ErrorCode.CONCURRENT_EDIT: 409,
    ErrorCode.FINALIZED_INVOICE: 409,
    ErrorCode.INVALID_PAYMENT_TRANSITION: 409,
}


def error_response(result: EngineResult) -> JsonResponse:
    """Réponse JSON d'un résultat en échec."""
    return JsonResponse(
        {
            "error": result.message,
            "code": result.error_code,
            "details": result.errors,
        },
        status=_HTTP_STATUS.get(result.error_code, 400),
    )


class InvoiceMixin:
    """Mixin fournissant un helper pour récupérer une facture."""

    def get_invoice(self, invoice_id: int) -> Invoice:
        """Récupère une facture par son ID ou lève Http404."""
        return get_object_or_404(Invoice, pk=invoice_id)


@method_decorator(csrf_exempt, name="dispatch")
class PaymentWebhookView(View):
    """Reçoit les notifications de paiement du prestataire (POST).

    FR: Corps JSON `{"invoice_id": "42", "new_status": "paid"}`. Une
        notification pour une facture inconnue est acceptée (202) puis
        ignorée, pour que le prestataire ne la renvoie pas indéfiniment.
    EN: Unknown invoices are acknowledged with 202 and dropped.
    """

    def post(self, request) -> JsonResponse:
        try:
            event = PaymentEvent.model_validate_json(request.body)
        except ValidationError as exc:
            return JsonResponse(
                {
                    "error": "Notification invalide.",
                    "details": exc.errors(
                        include_url=False, include_context=False, include_input=False
                    ),
                },
                status=400,
            )

        try:
            invoice = get_engine().handle_payment(event)
        except Exception:
            logger.exception("Erreur de traitement du paiement de la facture %s", event.invoice_id)
            return JsonResponse(
                {"error": "Erreur lors du traitement du paiement."},
                status=500,
            )

        if invoice is None:
            return JsonResponse({"status": "ignored"}, status=202)
        return JsonResponse(
            {"status": "ok", "payment_status": invoice.payment_status}
        )


@method_decorator(csrf_exempt, name="dispatch")
class ResolveSharesView(InvoiceMixin, View):
    """Résout les parts d'une facture sans rien écrire (POST)."""

    def post(self, request, invoice_id: int) -> JsonResponse:
        invoice = self.get_invoice(invoice_id)
        result = get_engine().resolve_shares(str(invoice.pk))
        if not result.ok:
            return error_response(result)
        return JsonResponse(result.model_dump(mode="json"))


@method_decorator(csrf_exempt, name="dispatch")
class SubInvoicesView(InvoiceMixin, View):
    """Liste (GET) ou synchronise (POST) les sous-factures d'une facture."""

    def get(self, request, invoice_id: int) -> JsonResponse:
        invoice = self.get_invoice(invoice_id)
        return JsonResponse(invoice_to_dict(invoice))

    def post(self, request, invoice_id: int) -> JsonResponse:
        invoice = self.get_invoice(invoice_id)
        engine = get_engine()
        resolution = engine.resolve_shares(str(invoice.pk))
        if not resolution.ok:
            return error_response(resolution)
        engine.materializer.materialize(str(invoice.pk))
        invoice.refresh_from_db()
        return JsonResponse(invoice_to_dict(invoice))


class PeriodMixin:
    """Mixin lisant la période des paramètres `start` et `end` (AAAA-MM-JJ, `end` exclu)."""

    def get_period(self, request) -> FiscalPeriod | None:
        """Période demandée, ou None si les paramètres sont absents ou invalides."""
        try:
            return FiscalPeriod(
                start=date.fromisoformat(request.GET.get("start", "")),
                end=date.fromisoformat(request.GET.get("end", "")),
            )
        except ValueError:
            return None

    def invalid_period(self) -> JsonResponse:
        return JsonResponse(
            {"error": "Période invalide : paramètres start et end attendus (AAAA-MM-JJ)."},
            status=400,
        )


class FiscalSummaryView(PeriodMixin, View):
    """Résumé fiscal d'un utilisateur sur une période (GET)."""

    def get(self, request, user_id: int) -> JsonResponse:
        period = self.get_period(request)
        if period is None:
            return self.invalid_period()

        result = get_engine().compute_fiscal_summary(str(user_id), period)
        if not result.ok:
            return error_response(result)
        return JsonResponse(result.model_dump(mode="json"))


class DownloadReportCSVView(View):
    """Télécharge un rapport URSSAF au format CSV (GET)."""

    def get(self, request, report_id: int) -> HttpResponse:
        report = get_object_or_404(UrssafReport, pk=report_id).to_pydantic()
        response = HttpResponse(report_to_csv(report), content_type="text/csv")
        response["Content-Disposition"] = (
            f'attachment; filename="urssaf_report_{report.period_start.isoformat()}.csv"'
        )
        return response



class TvaReportView(PeriodMixin, View):
    """Relevé de TVA d'un utilisateur assujetti (GET).

    FR: JSON par défaut, CSV avec `format=csv`. Un utilisateur sans numéro
        de TVA reçoit une 403.
    EN: JSON by default, CSV with `format=csv`. 403 without a VAT number.
    """

    def get(self, request, user_id: int) -> HttpResponse:
        period = self.get_period(request)
        if period is None:
            return self.invalid_period()

        result = get_engine().build_tva_report(str(user_id), period)
        if not result.ok:
            return error_response(result)
        if request.GET.get("format") == "csv":
            response = HttpResponse(tva_report_to_csv(result.report), content_type="text/csv")
            response["Content-Disposition"] = (
                f'attachment; filename="tva_report_{period.start.isoformat()}.csv"'
            )
            return response
        return JsonResponse(result.report.model_dump(mode="json"))

"""Modèles Django pour la facturation collective.

FR: Modèles Django mappés sur les modèles Pydantic de la lib. Les
    identifiants Pydantic sont les clés primaires Django converties en
    chaîne. Le statut de paiement d'une sous-facture n'est pas une
    colonne : c'est une propriété lue sur la facture parente.
EN: Django models mapped to the library's Pydantic models. Pydantic ids
    are Django primary keys as strings. A sub-invoice's payment status is
    not a column: it is a property read from the parent invoice.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models, transaction

from collectif_fr.models.enums import (
    ActivityType,
    CollectiveRole,
    DeclarationFrequency,
    DocumentStatus,
    FiscalRegime,
    PaymentStatus,
    ShareType,
    SubInvoicePaymentStatus,
)
from collectif_fr.models.invoice import Invoice as PydanticInvoice
from collectif_fr.models.invoice import InvoiceItem as PydanticInvoiceItem
from collectif_fr.models.invoice import Share as PydanticShare
from collectif_fr.models.invoice import SubInvoice as PydanticSubInvoice
from collectif_fr.models.report import UrssafReport as PydanticUrssafReport
from collectif_fr.models.user import Collective as PydanticCollective
from collectif_fr.models.user import CollectiveMember as PydanticCollectiveMember
from collectif_fr.models.user import User as PydanticUser


class FiscalProfile(models.Model):
    """Identité fiscale d'un utilisateur Django."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="fiscal_profile",
        verbose_name="utilisateur",
    )
    name = models.CharField("nom", max_length=200, blank=True, default="")
    fiscal_regime = models.CharField(
        "régime fiscal",
        max_length=10,
        choices=[(r.value, r.value) for r in FiscalRegime],
        blank=True,
        default="",
    )
    activity_type = models.CharField(
        "type d'activité",
        max_length=12,
        choices=[
            (ActivityType.COMMERCANT, "Commerçant"),
            (ActivityType.PRESTATAIRE, "Prestataire de services"),
            (ActivityType.LIBERAL, "Profession libérale"),
        ],
        blank=True,
        default="",
    )
    declaration_frequency = models.CharField(
        "fréquence de déclaration",
        max_length=10,
        choices=[
            (DeclarationFrequency.MONTHLY, "Mensuelle"),
            (DeclarationFrequency.QUARTERLY, "Trimestrielle"),
        ],
        blank=True,
        default="",
    )
    siret = models.CharField("SIRET", max_length=14, blank=True, default="")
    vat_number = models.CharField("n° TVA", max_length=20, blank=True, default="")

    class Meta:
        verbose_name = "profil fiscal"
        verbose_name_plural = "profils fiscaux"

    def __str__(self) -> str:
        return f"Profil fiscal de {self.name or self.user}"

    def to_pydantic(self) -> PydanticUser:
        """Convertit le profil en modèle Pydantic `User`."""
        return PydanticUser(
            id=str(self.user_id),
            name=self.name or None,
            fiscal_regime=FiscalRegime(self.fiscal_regime) if self.fiscal_regime else None,
            activity_type=ActivityType(self.activity_type) if self.activity_type else None,
            declaration_frequency=(
                DeclarationFrequency(self.declaration_frequency)
                if self.declaration_frequency
                else None
            ),
            siret=self.siret or None,
            vat_number=self.vat_number or None,
        )


class Collective(models.Model):
    """Groupe d'utilisateurs facturant ensemble."""

    name = models.CharField("nom", max_length=200)
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="CollectiveMember",
        related_name="collectives",
        verbose_name="membres",
    )
    created_at = models.DateTimeField("date de création", auto_now_add=True)

    class Meta:
        verbose_name = "collectif"
        verbose_name_plural = "collectifs"

    def __str__(self) -> str:
        return f"Collectif {self.name}"

    def to_pydantic(self) -> PydanticCollective:
        return PydanticCollective(
            id=str(self.pk),
            name=self.name,
            members=[
                PydanticCollectiveMember(
                    user_id=str(m.user_id),
                    role=CollectiveRole(m.role),
                )
                for m in self.memberships.all()
            ],
        )


class CollectiveMember(models.Model):
    """Appartenance d'un utilisateur à un collectif, avec son rôle."""

    collective = models.ForeignKey(
        Collective,
        on_delete=models.CASCADE,
        related_name="memberships",
        verbose_name="collectif",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="collective_memberships",
        verbose_name="utilisateur",
    )
    role = models.CharField(
        "rôle",
        max_length=10,
        choices=[
            (CollectiveRole.OWNER, "Propriétaire"),
            (CollectiveRole.ADMIN, "Administrateur"),
            (CollectiveRole.MEMBER, "Membre"),
        ],
        default=CollectiveRole.MEMBER,
    )

    class Meta:
        verbose_name = "membre du collectif"
        verbose_name_plural = "membres du collectif"
        constraints = [
            models.UniqueConstraint(
                fields=["collective", "user"],
                name="unique_collective_member",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user} ({self.role})"


class Invoice(models.Model):
    """Facture client, éventuellement émise pour le compte d'un collectif.

    FR: Possède ses lignes et ses parts. `version` est incrémentée à chaque
        écriture par le moteur pour détecter les éditions concurrentes.
    EN: Owns its items and shares. `version` is bumped on every engine write.
    """

    number = models.CharField("numéro de facture", max_length=50, unique=True)
    issuer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="issued_invoices",
        verbose_name="émetteur",
    )
    collective = models.ForeignKey(
        Collective,
        on_delete=models.PROTECT,
        related_name="invoices",
        verbose_name="collectif",
        blank=True,
        null=True,
    )
    client_name = models.CharField("client", max_length=200, blank=True, default="")
    invoice_date = models.DateField("date de facture")
    due_date = models.DateField("date d'échéance", blank=True, null=True)
    total_amount = models.DecimalField("montant total", max_digits=12, decimal_places=2)
    payment_status = models.CharField(
        "statut de paiement",
        max_length=10,
        choices=[
            (PaymentStatus.PENDING, "En attente"),
            (PaymentStatus.PAID, "Payée"),
            (PaymentStatus.OVERDUE, "En retard"),
        ],
        default=PaymentStatus.PENDING,
    )
    paid_at = models.DateTimeField("date de paiement", blank=True, null=True)
    status = models.CharField(
        "statut",
        max_length=10,
        choices=[
            (DocumentStatus.DRAFT, "Brouillon"),
            (DocumentStatus.FINALIZED, "Finalisée"),
        ],
        default=DocumentStatus.DRAFT,
    )
    version = models.PositiveIntegerField("version", default=0)
    created_at = models.DateTimeField("date de création", auto_now_add=True)
    updated_at = models.DateTimeField("date de modification", auto_now=True)

    class Meta:
        verbose_name = "facture"
        verbose_name_plural = "factures"
        indexes = [
            models.Index(
                fields=["issuer", "invoice_date"],
                name="idx_issuer_invoice_date",
            ),
        ]

    def __str__(self) -> str:
        return f"Facture {self.number}"

    def to_pydantic(self) -> PydanticInvoice:
        """Convertit la facture Django, lignes et parts incluses."""
        return PydanticInvoice(
            id=str(self.pk),
            number=self.number,
            issuer_id=str(self.issuer_id),
            collective_id=str(self.collective_id) if self.collective_id else None,
            client_name=self.client_name or None,
            invoice_date=self.invoice_date,
            due_date=self.due_date,
            total_amount=self.total_amount,
            payment_status=PaymentStatus(self.payment_status),
            paid_at=self.paid_at,
            status=DocumentStatus(self.status),
            items=[item.to_pydantic() for item in self.items.all()],
            shares=[share.to_pydantic() for share in self.shares.all()],
            version=self.version,
        )

    @staticmethod
    def field_values(invoice: PydanticInvoice) -> dict[str, object]:
        """Valeurs des colonnes (hors clé primaire) depuis un modèle Pydantic."""
        return dict(
            number=invoice.number,
            issuer_id=int(invoice.issuer_id),
            collective_id=int(invoice.collective_id) if invoice.collective_id else None,
            client_name=invoice.client_name or "",
            invoice_date=invoice.invoice_date,
            due_date=invoice.due_date,
            total_amount=invoice.total_amount,
            payment_status=str(invoice.payment_status),
            paid_at=invoice.paid_at,
            status=str(invoice.status),
            version=invoice.version,
        )

    @classmethod
    def from_pydantic(cls, invoice: PydanticInvoice) -> Invoice:
        """Crée une instance Django (non sauvée) depuis un modèle Pydantic.

        FR: Ne sauvegarde pas en base : appeler .save() ou utiliser
            create_with_children(). Un identifiant numérique devient la clé
            primaire.
        EN: Does not save. A numeric id becomes the primary key.
        """
        pk = int(invoice.id) if invoice.id.isdigit() else None
        return cls(pk=pk, **cls.field_values(invoice))

    def replace_children(self, invoice: PydanticInvoice) -> None:
        """Remplace les lignes et les parts par celles du modèle Pydantic."""
        self.items.all().delete()
        self.shares.all().delete()
        InvoiceItem.objects.bulk_create(
            InvoiceItem.from_pydantic(item, self, idx)
            for idx, item in enumerate(invoice.items, start=1)
        )
        Share.objects.bulk_create(
            Share.from_pydantic(share, self, idx)
            for idx, share in enumerate(invoice.shares, start=1)
        )

    @classmethod
    @transaction.atomic
    def create_with_children(cls, invoice: PydanticInvoice) -> Invoice:
        """Crée une facture avec ses lignes et ses parts en une transaction."""
        django_invoice = cls.from_pydantic(invoice)
        django_invoice.save()
        django_invoice.replace_children(invoice)
        return django_invoice


class InvoiceItem(models.Model):
    """Ligne de facture."""

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="items",
        verbose_name="facture",
    )
    position = models.PositiveIntegerField("position")
    description = models.CharField("désignation", max_length=500)
    quantity = models.DecimalField("quantité", max_digits=12, decimal_places=4)
    unit_price = models.DecimalField("prix unitaire", max_digits=12, decimal_places=4)
    vat_rate = models.DecimalField(
        "taux de TVA (%)", max_digits=5, decimal_places=2, default=Decimal("0")
    )

    class Meta:
        verbose_name = "ligne de facture"
        verbose_name_plural = "lignes de facture"
        ordering = ["position"]

    def __str__(self) -> str:
        return f"Ligne {self.position} : {self.description}"

    def to_pydantic(self) -> PydanticInvoiceItem:
        return PydanticInvoiceItem(
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            vat_rate=self.vat_rate,
        )

    @classmethod
    def from_pydantic(
        cls, item: PydanticInvoiceItem, invoice: Invoice, idx: int = 1
    ) -> InvoiceItem:
        return cls(
            invoice=invoice,
            position=idx,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            vat_rate=item.vat_rate,
        )


class Share(models.Model):
    """Part déclarée sur une facture collective, dans l'ordre de déclaration."""

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="shares",
        verbose_name="facture",
    )
    position = models.PositiveIntegerField("position")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="invoice_shares",
        verbose_name="titulaire",
    )
    share_type = models.CharField(
        "type de part",
        max_length=10,
        choices=[
            (ShareType.PERCENT, "Pourcentage"),
            (ShareType.FIXED, "Montant fixe"),
        ],
    )
    share_value = models.DecimalField("valeur", max_digits=12, decimal_places=4)

    class Meta:
        verbose_name = "part"
        verbose_name_plural = "parts"
        ordering = ["position"]

    def __str__(self) -> str:
        return f"Part {self.position} de {self.invoice_id} : {self.share_value} ({self.share_type})"

    def to_pydantic(self) -> PydanticShare:
        return PydanticShare(
            user_id=str(self.user_id),
            share_type=ShareType(self.share_type),
            share_value=self.share_value,
        )

    @classmethod
    def from_pydantic(cls, share: PydanticShare, invoice: Invoice, idx: int = 1) -> Share:
        return cls(
            invoice=invoice,
            position=idx,
            user_id=int(share.user_id),
            share_type=str(share.share_type),
            share_value=share.share_value,
        )


class SubInvoice(models.Model):
    """Sous-facture dérivée d'une facture collective.

    FR: Aucune colonne de statut de paiement : `payment_status` est lu sur
        la facture parente. Supprimée avec sa parente.
    EN: No payment-status column: `payment_status` reads the parent.
    """

    number = models.CharField("numéro", max_length=60, unique=True)
    parent = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="sub_invoices",
        verbose_name="facture parente",
    )
    issuer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="issued_sub_invoices",
        verbose_name="émetteur",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="received_sub_invoices",
        verbose_name="destinataire",
    )
    amount = models.DecimalField("montant", max_digits=12, decimal_places=2)
    status = models.CharField(
        "statut",
        max_length=10,
        choices=[
            (DocumentStatus.DRAFT, "Brouillon"),
            (DocumentStatus.FINALIZED, "Finalisée"),
        ],
        default=DocumentStatus.DRAFT,
    )
    created_at = models.DateTimeField("date de création", auto_now_add=True)

    class Meta:
        verbose_name = "sous-facture"
        verbose_name_plural = "sous-factures"
        ordering = ["number"]
        constraints = [
            models.UniqueConstraint(
                fields=["parent", "receiver"],
                name="unique_sub_invoice_receiver",
            ),
        ]

    def __str__(self) -> str:
        return f"Sous-facture {self.number}"

    @property
    def payment_status(self) -> SubInvoicePaymentStatus:
        """Statut miroir de la facture parente."""
        if self.parent.payment_status == PaymentStatus.PAID:
            return SubInvoicePaymentStatus.PAID
        return SubInvoicePaymentStatus.UNPAID

    def to_pydantic(self, parent: PydanticInvoice | None = None) -> PydanticSubInvoice:
        """Convertit la sous-facture, liée à sa parente Pydantic."""
        return PydanticSubInvoice(
            number=self.number,
            parent=parent or self.parent.to_pydantic(),
            issuer_id=str(self.issuer_id),
            receiver_id=str(self.receiver_id),
            amount=self.amount,
            status=DocumentStatus(self.status),
            created_at=self.created_at,
        )


class UrssafReport(models.Model):
    """Rapport URSSAF figé d'une période de déclaration."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="urssaf_reports",
        verbose_name="utilisateur",
    )
    period_start = models.DateField("début de période")
    period_end = models.DateField("fin de période (exclue)")
    report_data = models.JSONField("données du rapport")
    automatic = models.BooleanField("généré automatiquement", default=False)
    created_at = models.DateTimeField("date de création", auto_now_add=True)

    class Meta:
        verbose_name = "rapport URSSAF"
        verbose_name_plural = "rapports URSSAF"
        ordering = ["-period_start"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "period_start", "period_end"],
                name="unique_urssaf_report_period",
            ),
        ]

    def __str__(self) -> str:
        return f"Rapport URSSAF {self.period_start:%d/%m/%Y} - {self.user}"

    def to_pydantic(self) -> PydanticUrssafReport:
        return PydanticUrssafReport.model_validate(self.report_data)

    @classmethod
    def from_pydantic(cls, report: PydanticUrssafReport) -> UrssafReport:
        """Crée une instance Django (non sauvée) depuis un rapport Pydantic."""
        return cls(
            user_id=int(report.user_id),
            period_start=report.period_start,
            period_end=report.period_end,
            report_data=report.model_dump(mode="json"),
            automatic=report.automatic,
        )

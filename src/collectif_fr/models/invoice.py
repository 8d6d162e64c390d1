"""Modèles pour les factures collectives, leurs parts et sous-factures.

FR: Une facture client peut être émise au nom d'un collectif ; elle porte
    alors une liste de parts (pourcentage ou montant fixe) qui sont
    matérialisées en sous-factures dépendantes. Le statut de paiement d'une
    sous-facture n'est jamais stocké : il est calculé depuis la facture
    parente.
EN: A client invoice may be issued on behalf of a collective; it then
    carries shares that are materialized as dependent sub-invoices. A
    sub-invoice's payment status is never stored: it is computed from the
    parent invoice.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, computed_field, model_validator

from collectif_fr.models.enums import (
    DocumentStatus,
    PaymentStatus,
    ShareType,
    SubInvoicePaymentStatus,
)


class InvoiceItem(BaseModel):
    """Ligne de facture (quantité × prix unitaire).

    FR: Le taux de TVA vaut 0 pour un micro-entrepreneur en franchise.
    EN: VAT rate is 0 for a micro-entrepreneur under the VAT franchise.
    """

    description: str = Field(..., description="Désignation / Item description")
    quantity: Decimal = Field(..., description="Quantité / Quantity")
    unit_price: Decimal = Field(..., description="Prix unitaire HT / Unit price")
    vat_rate: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Taux de TVA en % / VAT rate in %",
    )

    @property
    def amount_excl_tax(self) -> Decimal:
        """Montant HT de la ligne / Line amount excluding tax."""
        return self.quantity * self.unit_price

    @property
    def vat_amount(self) -> Decimal:
        """TVA de la ligne, au centime / Line VAT, to the cent."""
        return (self.amount_excl_tax * self.vat_rate / Decimal("100")).quantize(Decimal("0.01"))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def line_total(self) -> Decimal:
        """Montant TTC de la ligne / Line total including tax."""
        return self.amount_excl_tax + self.vat_amount


class Share(BaseModel):
    """Règle de répartition déclarée sur une facture collective.

    FR: La valeur n'est pas contrainte ici : le résolveur de parts signale
        explicitement les valeurs invalides au lieu de les rejeter en amont.
    EN: The value is not constrained here: the share resolver reports
        invalid values explicitly.
    """

    user_id: str = Field(..., min_length=1, description="Titulaire de la part / Share owner")
    share_type: ShareType = Field(..., description="Pourcentage ou fixe / Percent or fixed")
    share_value: Decimal = Field(..., description="Valeur déclarée / Declared value")


class Invoice(BaseModel):
    """Facture client.

    FR: Possède exclusivement ses lignes et ses parts. `version` est
        incrémentée à chaque écriture pour détecter les éditions concurrentes.
    EN: Exclusively owns its items and shares. `version` is bumped on each
        write to detect concurrent edits.
    """

    id: str = Field(..., min_length=1, description="Identifiant / Invoice ID")
    number: str = Field(..., description="Numéro de facture / Invoice number")
    issuer_id: str = Field(..., min_length=1, description="Émetteur / Issuing user")
    collective_id: str | None = Field(
        default=None,
        description="Collectif pour le compte duquel la facture est émise / Collective",
    )
    client_name: str | None = Field(default=None, description="Client / Client name")
    invoice_date: date = Field(..., description="Date de facture / Invoice date")
    due_date: date | None = Field(default=None, description="Échéance / Due date")
    total_amount: Decimal = Field(..., description="Montant total TTC / Total amount")
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        description="Statut de paiement / Payment status",
    )
    paid_at: datetime | None = Field(
        default=None,
        description="Horodatage du paiement / Payment timestamp",
    )
    status: DocumentStatus = Field(
        default=DocumentStatus.DRAFT,
        description="Cycle de vie documentaire / Document status",
    )
    items: list[InvoiceItem] = Field(default_factory=list, description="Lignes / Items")
    shares: list[Share] = Field(default_factory=list, description="Parts / Shares")
    version: int = Field(default=0, ge=0, description="Version d'écriture / Write version")

    @model_validator(mode="after")
    def _check_items_total(self) -> "Invoice":
        if self.items and self.items_total != self.total_amount:
            msg = (
                f"Le total des lignes ({self.items_total}) ne correspond pas "
                f"au montant total ({self.total_amount})"
            )
            raise ValueError(msg)
        return self

    @property
    def items_total(self) -> Decimal:
        """Somme TTC des lignes / Sum of item totals."""
        return sum((item.line_total for item in self.items), Decimal("0"))

    @property
    def is_collective(self) -> bool:
        return self.collective_id is not None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def is_finalized(self) -> bool:
        return self.status == DocumentStatus.FINALIZED


class SubInvoice(BaseModel):
    """Sous-facture dérivée d'une facture collective.

    FR: Document émis par le membre `receiver_id` pour justifier sa part de
        la facture parente. Clé naturelle : (facture parente, destinataire).
        Le statut de paiement est calculé depuis la facture parente liée ;
        il n'existe aucun moyen de le modifier directement.
    EN: Document justifying member `receiver_id`'s share of the parent
        invoice. Natural key: (parent invoice, receiver). Payment status is
        computed from the bound parent invoice and cannot be set directly.
    """

    number: str = Field(..., description="Numéro de sous-facture / Sub-invoice number")
    parent: Invoice = Field(..., exclude=True, repr=False)
    issuer_id: str = Field(..., description="Émetteur (facturant du collectif) / Issuer")
    receiver_id: str = Field(..., description="Titulaire de la part / Share owner")
    amount: Decimal = Field(..., ge=0, description="Montant de la part / Share amount")
    status: DocumentStatus = Field(
        default=DocumentStatus.DRAFT,
        description="Cycle de vie documentaire / Document status",
    )
    created_at: datetime | None = Field(
        default=None,
        description="Date de création / Creation timestamp",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def parent_invoice_id(self) -> str:
        """Identifiant de la facture parente / Parent invoice ID."""
        return self.parent.id

    @computed_field  # type: ignore[prop-decorator]
    @property
    def payment_status(self) -> SubInvoicePaymentStatus:
        """Statut miroir de la facture parente / Mirrors the parent invoice."""
        if self.parent.is_paid:
            return SubInvoicePaymentStatus.PAID
        return SubInvoicePaymentStatus.UNPAID

    @property
    def invoice_date(self) -> date:
        """Date de la facture parente, utilisée pour l'imputation fiscale."""
        return self.parent.invoice_date

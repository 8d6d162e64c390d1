"""Énumérations pour la facturation collective des micro-entrepreneurs.

FR: Vocabulaires du moteur de partage et de conformité fiscale : types
    d'activité URSSAF, régimes fiscaux, statuts de paiement et de document.
EN: Vocabularies for the sharing and fiscal compliance engine: URSSAF
    activity types, fiscal regimes, payment and document statuses.
"""

from enum import StrEnum


class ActivityType(StrEnum):
    """Type d'activité du micro-entrepreneur.

    FR: Détermine le taux de cotisations URSSAF, le taux du versement
        libératoire et le seuil de franchise en base de TVA.
    EN: Determines the URSSAF contribution rate, the flat income-tax rate
        and the VAT franchise threshold.
    """

    COMMERCANT = "COMMERCANT"
    """Vente de marchandises (BIC) / Sale of goods"""

    PRESTATAIRE = "PRESTATAIRE"
    """Prestations de services commerciales ou artisanales (BIC) / Services"""

    LIBERAL = "LIBERAL"
    """Professions libérales (BNC) / Liberal professions"""


class FiscalRegime(StrEnum):
    """Régime fiscal de l'utilisateur."""

    MICRO_BIC = "MicroBIC"
    """Micro-entreprise, bénéfices industriels et commerciaux"""

    BNC = "BNC"
    """Micro-entreprise, bénéfices non commerciaux"""

    SASU = "SASU"
    """Société par actions simplifiée unipersonnelle"""

    EI = "EI"
    """Entreprise individuelle au réel"""

    OTHER = "Other"
    """Autre régime"""


MICRO_REGIMES: frozenset[FiscalRegime] = frozenset(
    {FiscalRegime.MICRO_BIC, FiscalRegime.BNC}
)


class DeclarationFrequency(StrEnum):
    """Fréquence de déclaration du chiffre d'affaires à l'URSSAF."""

    MONTHLY = "monthly"
    """Déclaration mensuelle / Monthly filing"""

    QUARTERLY = "quarterly"
    """Déclaration trimestrielle / Quarterly filing"""


class PaymentStatus(StrEnum):
    """Statut de paiement d'une facture client.

    FR: Reçu du prestataire de paiement (collaborateur externe).
    EN: Reported by the payment collaborator.
    """

    PENDING = "pending"
    """En attente de paiement / Awaiting payment"""

    PAID = "paid"
    """Payée / Paid"""

    OVERDUE = "overdue"
    """En retard / Overdue"""


class SubInvoicePaymentStatus(StrEnum):
    """Statut de paiement dérivé d'une sous-facture."""

    UNPAID = "unpaid"
    PAID = "paid"


class DocumentStatus(StrEnum):
    """Cycle de vie documentaire, indépendant du paiement."""

    DRAFT = "draft"
    """Brouillon modifiable / Editable draft"""

    FINALIZED = "finalized"
    """Finalisée, immuable / Finalized, immutable"""


class ShareType(StrEnum):
    """Nature d'une part déclarée sur une facture collective."""

    PERCENT = "percent"
    """Pourcentage du reste après parts fixes / Percent of the remainder"""

    FIXED = "fixed"
    """Montant fixe en euros / Fixed amount"""


class CollectiveRole(StrEnum):
    """Rôle d'un membre dans un collectif."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class ThresholdState(StrEnum):
    """Position du chiffre d'affaires par rapport au seuil de TVA.

    FR: Ordonné : nominal < approaching < exceeded.
    EN: Ordered: nominal < approaching < exceeded.
    """

    NOMINAL = "nominal"
    """Sous le seuil d'alerte / Below the warning level"""

    APPROACHING = "approaching"
    """Proche du seuil / Approaching the threshold"""

    EXCEEDED = "exceeded"
    """Seuil atteint ou dépassé / Threshold reached or exceeded"""

    @property
    def rank(self) -> int:
        """Rang dans l'ordre nominal < approaching < exceeded."""
        return _THRESHOLD_RANKS[self]


_THRESHOLD_RANKS: dict[ThresholdState, int] = {
    ThresholdState.NOMINAL: 0,
    ThresholdState.APPROACHING: 1,
    ThresholdState.EXCEEDED: 2,
}

"""Hiérarchie d'exceptions du moteur de partage et de conformité fiscale.

FR: Exceptions typées regroupées en familles (validation des parts, profil
    fiscal, cohérence, ressource introuvable). Chaque classe porte un code
    stable (`ErrorCode`) pour que l'appelant puisse brancher sur la nature
    de l'erreur sans analyser le message.
EN: Typed exceptions grouped in families (share validation, fiscal profile,
    consistency, not found). Each class carries a stable code so callers
    branch on the error kind, never on the message.
"""

from enum import StrEnum


class ErrorCode(StrEnum):
    """Codes d'erreur stables exposés à la couche API."""

    INVALID_SHARE_VALUE = "invalid_share_value"
    OVER_ALLOCATED_SHARES = "over_allocated_shares"
    INCOMPLETE_ALLOCATION = "incomplete_allocation"
    DUPLICATE_SHARE_OWNER = "duplicate_share_owner"
    NOT_COLLECTIVE_MEMBER = "not_collective_member"
    INVALID_TOTAL_AMOUNT = "invalid_total_amount"
    SHARES_WITHOUT_COLLECTIVE = "shares_without_collective"
    NOT_MICRO_ENTREPRENEUR = "not_micro_entrepreneur"
    MISSING_ACTIVITY_TYPE = "missing_activity_type"
    UNKNOWN_ACTIVITY_TYPE = "unknown_activity_type"
    NO_RATE_SCHEDULE = "no_rate_schedule"
    VAT_NOT_REGISTERED = "vat_not_registered"
    CONCURRENT_EDIT = "concurrent_edit"
    FINALIZED_INVOICE = "finalized_invoice"
    INVALID_PAYMENT_TRANSITION = "invalid_payment_transition"
    UNKNOWN_INVOICE = "unknown_invoice"
    UNKNOWN_USER = "unknown_user"
    UNKNOWN_COLLECTIVE = "unknown_collective"


class CollectifError(Exception):
    """Erreur de base pour toutes les opérations du moteur.

    FR: Classe parente de toutes les exceptions. `errors` détaille les
        problèmes individuels quand plusieurs sont détectés à la fois.
    EN: Base class for all engine exceptions.
    """

    code: ErrorCode

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors: list[str] = errors or []


# --- Validation des parts ---


class ShareValidationError(CollectifError):
    """Parts déclarées invalides. Jamais corrigées silencieusement."""


class InvalidShareValueError(ShareValidationError):
    """Valeur de part négative, pourcentage > 100 ou montant sous le centime."""

    code = ErrorCode.INVALID_SHARE_VALUE


class OverAllocatedSharesError(ShareValidationError):
    """Les parts dépassent le montant total de la facture."""

    code = ErrorCode.OVER_ALLOCATED_SHARES


class IncompleteAllocationError(ShareValidationError):
    """Une partie du montant total n'est attribuée à personne."""

    code = ErrorCode.INCOMPLETE_ALLOCATION


class DuplicateShareOwnerError(ShareValidationError):
    """Un même utilisateur possède plusieurs parts sur la facture."""

    code = ErrorCode.DUPLICATE_SHARE_OWNER


class NotCollectiveMemberError(ShareValidationError):
    """Le titulaire d'une part n'est pas membre du collectif."""

    code = ErrorCode.NOT_COLLECTIVE_MEMBER


class InvalidTotalAmountError(ShareValidationError):
    """Montant total négatif ou exprimé au-delà du centime."""

    code = ErrorCode.INVALID_TOTAL_AMOUNT


class SharesWithoutCollectiveError(ShareValidationError):
    """Parts déclarées sur une facture qui n'est liée à aucun collectif."""

    code = ErrorCode.SHARES_WITHOUT_COLLECTIVE


# --- Profil fiscal ---


class FiscalProfileError(CollectifError):
    """Profil fiscal incompatible avec le calcul demandé."""


class NotMicroEntrepreneurError(FiscalProfileError):
    """Le régime fiscal n'est ni MicroBIC ni BNC."""

    code = ErrorCode.NOT_MICRO_ENTREPRENEUR


class MissingActivityTypeError(FiscalProfileError):
    """Type d'activité micro-entrepreneur non renseigné."""

    code = ErrorCode.MISSING_ACTIVITY_TYPE


class UnknownActivityTypeError(FiscalProfileError):
    """Type d'activité absent du barème."""

    code = ErrorCode.UNKNOWN_ACTIVITY_TYPE


class NoRateScheduleError(FiscalProfileError):
    """Aucun barème en vigueur à la date demandée."""

    code = ErrorCode.NO_RATE_SCHEDULE


class VatNotRegisteredError(FiscalProfileError):
    """L'utilisateur n'a pas de numéro de TVA intracommunautaire."""

    code = ErrorCode.VAT_NOT_REGISTERED


# --- Cohérence ---


class ConsistencyError(CollectifError):
    """Conflit d'état : l'appelant doit relire puis réessayer."""


class ConcurrentEditError(ConsistencyError):
    """La facture a été modifiée depuis sa lecture (version périmée)."""

    code = ErrorCode.CONCURRENT_EDIT


class FinalizedInvoiceError(ConsistencyError):
    """La facture est finalisée : parts et sous-factures sont figées."""

    code = ErrorCode.FINALIZED_INVOICE


class InvalidPaymentTransitionError(ConsistencyError):
    """Transition de statut de paiement non autorisée."""

    code = ErrorCode.INVALID_PAYMENT_TRANSITION


# --- Ressources introuvables ---


class NotFoundError(CollectifError):
    """Ressource introuvable dans la couche de persistance."""


class UnknownInvoiceError(NotFoundError):
    code = ErrorCode.UNKNOWN_INVOICE


class UnknownUserError(NotFoundError):
    code = ErrorCode.UNKNOWN_USER


class UnknownCollectiveError(NotFoundError):
    code = ErrorCode.UNKNOWN_COLLECTIVE

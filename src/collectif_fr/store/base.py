"""Interface abstraite de la couche de persistance.

FR: Le moteur ne connaît la persistance qu'au travers de cette interface :
    lectures/écritures typées des utilisateurs, collectifs, factures,
    sous-factures et rapports URSSAF, plus deux gestionnaires de contexte :
    `atomic(invoice_id)` qui sérialise les écritures sur une facture et
    annule tout en cas d'erreur, et `snapshot()` qui garantit une lecture
    cohérente de plusieurs enregistrements.
EN: The engine only sees persistence through this interface: typed
    reads/writes plus `atomic(invoice_id)` (serialized writes on one
    invoice, rolled back on error) and `snapshot()` (consistent multi-read).
"""

from abc import ABCMeta, abstractmethod
from collections.abc import Iterator
from contextlib import AbstractContextManager
from datetime import date

from collectif_fr.errors import UnknownInvoiceError
from collectif_fr.models.invoice import Invoice, SubInvoice
from collectif_fr.models.report import UrssafReport
from collectif_fr.models.user import Collective, User


class BaseStore(metaclass=ABCMeta):
    """Classe de base abstraite pour les stores.

    FR: Les méthodes `get_*` lèvent une `NotFoundError` typée si
        l'enregistrement n'existe pas ; les méthodes `find_*` retournent
        None. Les objets retournés sont des copies : les modifier ne
        modifie pas le store.
    EN: `get_*` raise a typed NotFoundError; `find_*` return None.
        Returned objects are copies.
    """

    # --- Transactions ---

    @abstractmethod
    def atomic(self, invoice_id: str | None = None) -> AbstractContextManager[None]:
        """Transaction d'écriture, verrouillant la facture `invoice_id`.

        Deux blocs `atomic` sur la même facture ne s'entrelacent jamais.
        Toute exception annule les écritures du bloc.
        """
        ...

    @abstractmethod
    def snapshot(self) -> AbstractContextManager[None]:
        """Lecture cohérente : aucune écriture n'est visible à moitié."""
        ...

    # --- Utilisateurs et collectifs ---

    @abstractmethod
    def get_user(self, user_id: str) -> User:
        """Raises: UnknownUserError."""
        ...

    @abstractmethod
    def save_user(self, user: User) -> User: ...

    @abstractmethod
    def iter_users(self) -> Iterator[User]:
        """Parcourt tous les utilisateurs."""
        ...

    @abstractmethod
    def get_collective(self, collective_id: str) -> Collective:
        """Raises: UnknownCollectiveError."""
        ...

    @abstractmethod
    def save_collective(self, collective: Collective) -> Collective: ...

    # --- Factures ---

    @abstractmethod
    def find_invoice(self, invoice_id: str) -> Invoice | None: ...

    def get_invoice(self, invoice_id: str) -> Invoice:
        """Raises: UnknownInvoiceError."""
        invoice = self.find_invoice(invoice_id)
        if invoice is None:
            msg = f"Facture introuvable : {invoice_id}"
            raise UnknownInvoiceError(msg)
        return invoice

    @abstractmethod
    def save_invoice(self, invoice: Invoice) -> Invoice: ...

    @abstractmethod
    def list_issued_invoices(self, user_id: str, start: date, end: date) -> list[Invoice]:
        """Factures émises par `user_id` datées dans `[start, end)`."""
        ...

    # --- Sous-factures ---

    @abstractmethod
    def list_sub_invoices(self, invoice_id: str) -> list[SubInvoice]:
        """Sous-factures d'une facture, triées par numéro."""
        ...

    @abstractmethod
    def save_sub_invoice(self, sub_invoice: SubInvoice) -> SubInvoice:
        """Crée ou met à jour la sous-facture (clé : parente, destinataire)."""
        ...

    @abstractmethod
    def delete_sub_invoice(self, invoice_id: str, receiver_id: str) -> None: ...

    @abstractmethod
    def list_received_sub_invoices(
        self,
        user_id: str,
        start: date,
        end: date,
    ) -> list[SubInvoice]:
        """Sous-factures reçues par `user_id` dont la parente est datée dans `[start, end)`."""
        ...

    # --- Rapports URSSAF ---

    @abstractmethod
    def find_report(self, user_id: str, start: date, end: date) -> UrssafReport | None: ...

    @abstractmethod
    def save_report(self, report: UrssafReport) -> UrssafReport:
        """Enregistre un rapport (remplace celui de la même période)."""
        ...

    @abstractmethod
    def list_reports(self, user_id: str) -> list[UrssafReport]:
        """Rapports d'un utilisateur, du plus récent au plus ancien."""
        ...

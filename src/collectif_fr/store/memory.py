"""Store en mémoire pour les tests et le développement.

FR: Stocke tout dans des dictionnaires protégés par un unique verrou
    ré-entrant. Un bloc `atomic` prend le verrou, mémorise l'état et le
    restaure si une exception traverse le bloc. Les sous-factures sont
    stockées sans leur statut de paiement et sont liées à la version
    courante de leur facture parente à chaque lecture.
EN: Dict-backed store behind a single re-entrant lock. An `atomic` block
    saves the state and restores it if an exception escapes. Sub-invoices
    are stored without a payment status and bound to the current parent
    invoice on every read.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal

from collectif_fr.errors import (
    UnknownCollectiveError,
    UnknownInvoiceError,
    UnknownUserError,
)
from collectif_fr.models.enums import DocumentStatus
from collectif_fr.models.invoice import Invoice, SubInvoice
from collectif_fr.models.report import UrssafReport
from collectif_fr.models.user import Collective, User
from collectif_fr.store.base import BaseStore

logger = logging.getLogger(__name__)


@dataclass
class _StoredSubInvoice:
    """Ligne de sous-facture, sans statut de paiement."""

    number: str
    parent_id: str
    issuer_id: str
    receiver_id: str
    amount: Decimal
    status: DocumentStatus
    created_at: datetime


class MemoryStore(BaseStore):
    """Store en mémoire.

    FR: Toutes les écritures et les lectures groupées passent par le même
        verrou : les blocs `atomic` sur une même facture sont donc
        sérialisés, et un `snapshot` ne voit jamais un bloc à moitié écrit.
    EN: Writes and grouped reads share one lock, so `atomic` blocks are
        serialized and a `snapshot` never sees a half-written block.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._collectives: dict[str, Collective] = {}
        self._invoices: dict[str, Invoice] = {}
        self._sub_invoices: dict[tuple[str, str], _StoredSubInvoice] = {}
        self._reports: dict[tuple[str, date, date], UrssafReport] = {}

    # --- Transactions ---

    def _state(self) -> tuple[dict, ...]:
        return (
            self._users,
            self._collectives,
            self._invoices,
            self._sub_invoices,
            self._reports,
        )

    @contextmanager
    def atomic(self, invoice_id: str | None = None) -> Iterator[None]:
        with self._lock:
            saved = copy.deepcopy(self._state())
            try:
                yield
            except BaseException:
                (
                    self._users,
                    self._collectives,
                    self._invoices,
                    self._sub_invoices,
                    self._reports,
                ) = saved
                logger.debug("Transaction annulée (facture %s)", invoice_id)
                raise

    @contextmanager
    def snapshot(self) -> Iterator[None]:
        with self._lock:
            yield

    # --- Utilisateurs et collectifs ---

    def get_user(self, user_id: str) -> User:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                msg = f"Utilisateur introuvable : {user_id}"
                raise UnknownUserError(msg)
            return user.model_copy(deep=True)

    def save_user(self, user: User) -> User:
        with self._lock:
            self._users[user.id] = user.model_copy(deep=True)
        return user

    def iter_users(self) -> Iterator[User]:
        with self._lock:
            users = [u.model_copy(deep=True) for u in self._users.values()]
        yield from users

    def get_collective(self, collective_id: str) -> Collective:
        with self._lock:
            collective = self._collectives.get(collective_id)
            if collective is None:
                msg = f"Collectif introuvable : {collective_id}"
                raise UnknownCollectiveError(msg)
            return collective.model_copy(deep=True)

    def save_collective(self, collective: Collective) -> Collective:
        with self._lock:
            self._collectives[collective.id] = collective.model_copy(deep=True)
        return collective

    # --- Factures ---

    def find_invoice(self, invoice_id: str) -> Invoice | None:
        with self._lock:
            invoice = self._invoices.get(invoice_id)
            return invoice.model_copy(deep=True) if invoice is not None else None

    def save_invoice(self, invoice: Invoice) -> Invoice:
        with self._lock:
            self._invoices[invoice.id] = invoice.model_copy(deep=True)
        return invoice

    def list_issued_invoices(self, user_id: str, start: date, end: date) -> list[Invoice]:
        with self._lock:
            return [
                inv.model_copy(deep=True)
                for inv in self._invoices.values()
                if inv.issuer_id == user_id and start <= inv.invoice_date < end
            ]

    # --- Sous-factures ---

    def _bind(self, row: _StoredSubInvoice) -> SubInvoice:
        return SubInvoice(
            number=row.number,
            parent=self._invoices[row.parent_id].model_copy(deep=True),
            issuer_id=row.issuer_id,
            receiver_id=row.receiver_id,
            amount=row.amount,
            status=row.status,
            created_at=row.created_at,
        )

    def list_sub_invoices(self, invoice_id: str) -> list[SubInvoice]:
        with self._lock:
            rows = [r for r in self._sub_invoices.values() if r.parent_id == invoice_id]
            return [self._bind(r) for r in sorted(rows, key=lambda r: r.number)]

    def save_sub_invoice(self, sub_invoice: SubInvoice) -> SubInvoice:
        with self._lock:
            parent_id = sub_invoice.parent_invoice_id
            if parent_id not in self._invoices:
                msg = f"Facture parente introuvable : {parent_id}"
                raise UnknownInvoiceError(msg)
            key = (parent_id, sub_invoice.receiver_id)
            existing = self._sub_invoices.get(key)
            created_at = sub_invoice.created_at or (
                existing.created_at if existing else datetime.now(UTC)
            )
            self._sub_invoices[key] = _StoredSubInvoice(
                number=sub_invoice.number,
                parent_id=parent_id,
                issuer_id=sub_invoice.issuer_id,
                receiver_id=sub_invoice.receiver_id,
                amount=sub_invoice.amount,
                status=sub_invoice.status,
                created_at=created_at,
            )
            return self._bind(self._sub_invoices[key])

    def delete_sub_invoice(self, invoice_id: str, receiver_id: str) -> None:
        with self._lock:
            self._sub_invoices.pop((invoice_id, receiver_id), None)

    def list_received_sub_invoices(
        self,
        user_id: str,
        start: date,
        end: date,
    ) -> list[SubInvoice]:
        with self._lock:
            return [
                self._bind(row)
                for row in self._sub_invoices.values()
                if row.receiver_id == user_id
                and start <= self._invoices[row.parent_id].invoice_date < end
            ]

    # --- Rapports URSSAF ---

    def find_report(self, user_id: str, start: date, end: date) -> UrssafReport | None:
        with self._lock:
            report = self._reports.get((user_id, start, end))
            return report.model_copy(deep=True) if report is not None else None

    def save_report(self, report: UrssafReport) -> UrssafReport:
        with self._lock:
            self._reports[report.key] = report.model_copy(deep=True)
        return report

    def list_reports(self, user_id: str) -> list[UrssafReport]:
        with self._lock:
            reports = [r for r in self._reports.values() if r.user_id == user_id]
            return [
                r.model_copy(deep=True)
                for r in sorted(reports, key=lambda r: r.period_start, reverse=True)
            ]

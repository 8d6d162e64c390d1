"""Matérialisation des parts en sous-factures.

FR: Pour chaque part résolue dont le titulaire n'est pas l'émetteur, crée
    ou met à jour une sous-facture identifiée par (facture parente,
    destinataire). Les sous-factures des parts disparues sont supprimées.
    Toute l'opération se déroule dans une seule transaction par facture :
    la somme des parts n'est jamais observable dans un état intermédiaire.
    Une facture finalisée fige ses parts et ses sous-factures.
EN: For each resolved share owned by someone other than the issuer,
    upserts a sub-invoice keyed by (parent, receiver) and removes those of
    vanished shares, in one transaction per invoice. A finalized invoice
    freezes its shares and sub-invoices.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from collectif_fr.config import DEFAULT_SETTINGS, EngineSettings
from collectif_fr.errors import ConcurrentEditError, FinalizedInvoiceError
from collectif_fr.models.enums import DocumentStatus
from collectif_fr.models.invoice import Invoice, Share, SubInvoice
from collectif_fr.sharing.resolver import ShareAllocation, resolve_invoice_shares
from collectif_fr.store.base import BaseStore

logger = logging.getLogger(__name__)


def sub_invoice_number(parent_number: str, sequence: int) -> str:
    """Numéro de sous-facture : `<numéro parent>-S<nn>`."""
    return f"{parent_number}-S{sequence:02d}"


def _sequence_of(number: str) -> int | None:
    _, sep, suffix = number.rpartition("-S")
    if not sep or not suffix.isdigit():
        return None
    return int(suffix)


class SubInvoiceMaterializer:
    """Crée, met à jour et fige les sous-factures d'une facture collective."""

    def __init__(
        self,
        store: BaseStore,
        settings: EngineSettings = DEFAULT_SETTINGS,
    ) -> None:
        self.store = store
        self.settings = settings

    def _resolve(self, invoice: Invoice) -> list[ShareAllocation]:
        collective = (
            self.store.get_collective(invoice.collective_id)
            if invoice.collective_id is not None
            else None
        )
        return resolve_invoice_shares(invoice, collective, self.settings)

    def materialize(self, invoice_id: str) -> list[SubInvoice]:
        """Synchronise les sous-factures avec les parts de la facture.

        FR: Idempotent : rejouer l'opération sur une facture inchangée ne
            modifie rien. Sur une facture finalisée, retourne les
            sous-factures existantes sans les toucher.
        EN: Idempotent. On a finalized invoice, returns the existing
            sub-invoices untouched.

        Raises:
            UnknownInvoiceError: Si la facture n'existe pas.
            ShareValidationError: Si les parts sont invalides (aucune
                sous-facture n'est alors créée ni modifiée).
        """
        with self.store.atomic(invoice_id):
            invoice = self.store.get_invoice(invoice_id)
            existing = {s.receiver_id: s for s in self.store.list_sub_invoices(invoice_id)}

            if invoice.is_finalized:
                logger.debug("Facture %s finalisée : sous-factures inchangées", invoice.number)
                return list(existing.values())

            targets = [
                allocation
                for allocation in self._resolve(invoice)
                if allocation.user_id != invoice.issuer_id
            ]
            target_ids = {a.user_id for a in targets}

            for receiver_id in existing.keys() - target_ids:
                self.store.delete_sub_invoice(invoice_id, receiver_id)
                logger.info(
                    "Sous-facture %s supprimée (part retirée)",
                    existing[receiver_id].number,
                )

            used = {
                _sequence_of(existing[r].number)
                for r in existing.keys() & target_ids
            }
            for position, allocation in enumerate(targets, start=1):
                current = existing.get(allocation.user_id)
                if current is not None:
                    if current.amount != allocation.amount:
                        self.store.save_sub_invoice(
                            current.model_copy(update={"amount": allocation.amount})
                        )
                        logger.info(
                            "Sous-facture %s mise à jour : %s € -> %s €",
                            current.number,
                            current.amount,
                            allocation.amount,
                        )
                    continue

                sequence = position
                while sequence in used:
                    sequence += 1
                used.add(sequence)
                created = self.store.save_sub_invoice(
                    SubInvoice(
                        number=sub_invoice_number(invoice.number, sequence),
                        parent=invoice,
                        issuer_id=invoice.issuer_id,
                        receiver_id=allocation.user_id,
                        amount=allocation.amount,
                    )
                )
                logger.info(
                    "Sous-facture %s créée pour %s : %s €",
                    created.number,
                    allocation.user_id,
                    allocation.amount,
                )

            return self.store.list_sub_invoices(invoice_id)

    def update_shares(
        self,
        invoice_id: str,
        shares: Sequence[Share],
        *,
        expected_version: int | None = None,
    ) -> list[SubInvoice]:
        """Remplace les parts d'une facture puis re-matérialise.

        Args:
            invoice_id: Identifiant de la facture.
            shares: Nouvelles parts, dans l'ordre de déclaration.
            expected_version: Version lue par l'appelant. Si la facture a
                changé depuis, l'édition est refusée.

        Raises:
            FinalizedInvoiceError: Si la facture est finalisée.
            ConcurrentEditError: Si `expected_version` est périmée.
            ShareValidationError: Si les nouvelles parts sont invalides
                (rien n'est écrit).
        """
        with self.store.atomic(invoice_id):
            invoice = self.store.get_invoice(invoice_id)
            if invoice.is_finalized:
                msg = f"Facture {invoice.number} finalisée : parts non modifiables"
                raise FinalizedInvoiceError(msg)
            if expected_version is not None and expected_version != invoice.version:
                msg = (
                    f"Facture {invoice.number} modifiée entre-temps "
                    f"(version {invoice.version}, attendue {expected_version})"
                )
                raise ConcurrentEditError(msg)

            updated = invoice.model_copy(
                update={"shares": list(shares), "version": invoice.version + 1}
            )
            self._resolve(updated)
            self.store.save_invoice(updated)
            logger.info(
                "Parts de la facture %s remplacées (%d parts, version %d)",
                invoice.number,
                len(updated.shares),
                updated.version,
            )
            return self.materialize(invoice_id)

    def finalize(self, invoice_id: str) -> Invoice:
        """Finalise la facture et ses sous-factures.

        FR: Les sous-factures sont synchronisées une dernière fois avant
            d'être figées. Rejouer sur une facture finalisée est sans effet.
        EN: Sub-invoices are synchronized one last time, then frozen.
        """
        with self.store.atomic(invoice_id):
            invoice = self.store.get_invoice(invoice_id)
            if invoice.is_finalized:
                return invoice

            sub_invoices = self.materialize(invoice_id)
            finalized = invoice.model_copy(
                update={"status": DocumentStatus.FINALIZED, "version": invoice.version + 1}
            )
            self.store.save_invoice(finalized)
            for sub in sub_invoices:
                self.store.save_sub_invoice(
                    sub.model_copy(update={"status": DocumentStatus.FINALIZED})
                )
            logger.info(
                "Facture %s finalisée avec %d sous-factures",
                invoice.number,
                len(sub_invoices),
            )
            return finalized

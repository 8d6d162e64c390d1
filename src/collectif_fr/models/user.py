"""Modèles pour l'identité fiscale des utilisateurs et les collectifs.

FR: Un utilisateur porte son identité fiscale (régime, type d'activité,
    fréquence de déclaration, SIRET, numéro de TVA). Un collectif regroupe
    des utilisateurs qui facturent ensemble un client.
EN: A user carries their fiscal identity. A collective groups users who
    jointly bill a client.
"""

from pydantic import BaseModel, Field, model_validator

from collectif_fr.models.enums import (
    MICRO_REGIMES,
    ActivityType,
    CollectiveRole,
    DeclarationFrequency,
    FiscalRegime,
)


class User(BaseModel):
    """Identité fiscale d'un utilisateur.

    FR: Un micro-entrepreneur (MicroBIC, BNC) est en franchise de TVA :
        un numéro de TVA est refusé dès la validation. La complétude du
        profil (type d'activité, fréquence, numéro de TVA hors régime
        micro) est contrôlée par `profile_errors()` : un profil incomplet
        peut exister en base, c'est le calcul fiscal qui le rejette.
    EN: A micro-entrepreneur is VAT-exempt, so a VAT number is rejected at
        validation. Profile completeness is checked by `profile_errors()`;
        the fiscal computation rejects incomplete profiles.
    """

    id: str = Field(..., min_length=1, description="Identifiant / User ID")
    name: str | None = Field(default=None, description="Nom / Display name")
    fiscal_regime: FiscalRegime | None = Field(
        default=None,
        description="Régime fiscal / Fiscal regime",
    )
    activity_type: ActivityType | None = Field(
        default=None,
        description="Type d'activité micro-entrepreneur / Activity type",
    )
    declaration_frequency: DeclarationFrequency | None = Field(
        default=None,
        description="Fréquence de déclaration URSSAF / Filing frequency",
    )
    siret: str | None = Field(
        default=None,
        min_length=14,
        max_length=14,
        pattern=r"^\d{14}$",
        description="Numéro SIRET (14 chiffres) / SIRET number",
    )
    vat_number: str | None = Field(
        default=None,
        description="Numéro de TVA intracommunautaire / VAT number",
    )

    @model_validator(mode="after")
    def _check_vat_exemption(self) -> "User":
        if self.is_micro_entrepreneur and self.vat_number:
            msg = (
                "Un micro-entrepreneur en franchise de TVA ne peut pas "
                "avoir de numéro de TVA"
            )
            raise ValueError(msg)
        return self

    def profile_errors(self) -> list[str]:
        """Valide la complétude du profil fiscal. Retourne la liste des erreurs.

        FR: Régime micro : type d'activité et fréquence de déclaration
            obligatoires. Autres régimes : numéro de TVA obligatoire.
        EN: Micro regimes need activity type and filing frequency; other
            regimes need a VAT number.
        """
        if self.fiscal_regime is None:
            return ["Régime fiscal non renseigné"]
        errors = []
        if self.is_micro_entrepreneur:
            if self.activity_type is None:
                errors.append(
                    f"Régime {self.fiscal_regime.value} : type d'activité obligatoire"
                )
            if self.declaration_frequency is None:
                errors.append(
                    f"Régime {self.fiscal_regime.value} : fréquence de déclaration "
                    f"obligatoire"
                )
        elif not self.vat_number:
            errors.append(f"Numéro de TVA obligatoire pour le régime {self.fiscal_regime.value}")
        return errors

    @property
    def is_micro_entrepreneur(self) -> bool:
        """Vrai pour les régimes MicroBIC et BNC."""
        return self.fiscal_regime in MICRO_REGIMES


class CollectiveMember(BaseModel):
    """Appartenance d'un utilisateur à un collectif."""

    user_id: str = Field(..., min_length=1, description="Identifiant du membre / Member ID")
    role: CollectiveRole = Field(
        default=CollectiveRole.MEMBER,
        description="Rôle dans le collectif / Role",
    )


class Collective(BaseModel):
    """Groupe d'utilisateurs facturant ensemble.

    FR: Un collectif possède zéro ou plusieurs factures ; les parts de ces
        factures ne peuvent être attribuées qu'à ses membres.
    EN: A collective owns zero or more invoices; their shares may only be
        allocated to its members.
    """

    id: str = Field(..., min_length=1, description="Identifiant / Collective ID")
    name: str = Field(..., description="Nom du collectif / Collective name")
    members: list[CollectiveMember] = Field(
        default_factory=list,
        description="Membres / Members",
    )

    @property
    def member_ids(self) -> frozenset[str]:
        """Identifiants des membres."""
        return frozenset(m.user_id for m in self.members)

    def is_member(self, user_id: str) -> bool:
        return user_id in self.member_ids

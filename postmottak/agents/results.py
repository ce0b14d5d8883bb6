"""
Structured result shapes the agent fills in, one per email type.

Field descriptions are sent to the model as part of the response schema,
so they are written for the model and kept in Norwegian.
"""

from enum import Enum

from pydantic import BaseModel, Field


class Rf1350Result(BaseModel):
    """Grant application e-mail from regionalforvaltning.no."""

    organization_number: str = Field(
        "",
        description=(
            "Er 9 siffer langt og er organisasjonsnummeret som står bak Org.nr:. "
            "Kan inneholde mellomrom, bindestrek eller punktum"
        ),
    )
    project_name: str = Field("", description="Ligger alltid etter Prosjektnavn:")
    project_owner: str = Field("", description="Ligger alltid etter Prosjekteier:")
    project_number: str = Field("", description="Er på formatet: 00-0000")
    reference_number: str = Field("", description="Er på formatet: 0000-0000")
    type: str = Field(
        "",
        description=(
            "Skal alltid være en av følgende typer og du må selv finne ut hvilken som stemmer ut fra input:\n"
            "- 'Anmodning om utbetaling'\n"
            "- 'Automatisk kvittering på innsendt søknad'\n"
            "- 'Overføring av mottatt søknad'"
        ),
    )

    @property
    def organization_digits(self) -> str:
        """Organization number with separators removed."""
        return "".join(ch for ch in self.organization_number if ch.isdigit())

    def valid_organization_number(self) -> bool:
        return len(self.organization_digits) == 9


class LoyvegarantiType(str, Enum):
    LOYVEGARANTI = "Løyvegaranti"
    ENDRING_AV_LOYVEGARANTI = "Endring av løyvegaranti"
    OPPHOR_AV_LOYVEGARANTI = "Opphør av løyvegaranti"


class LoyvegarantiResult(BaseModel):
    """Taxi license guarantee notice from the insurer."""

    description: str = Field("", description="Er en kort beskrivelse av innholdet")
    organization_name: str = Field("", description="Er alltid i store bokstaver. Og står før 'Org.nr'")
    organization_number: str = Field("", description="Er 9 siffer langt og kan inneholde mellomrom")
    title: str = Field("", description="Er en hensiksmessig tittel for innholdet")
    type: LoyvegarantiType | None = Field(
        None,
        description=(
            "Er 'Løyvegaranti' for ny garanti, 'Endring av løyvegaranti' når en eksisterende "
            "garanti endres og 'Opphør av løyvegaranti' når garantien opphører"
        ),
    )


class PengetransportenResult(BaseModel):
    """Invoice and payment related e-mail."""

    attachments: list[str] = Field(default_factory=list, description="Navn på vedlegg som er fakturaer")
    description: str = Field("", description="Er en kort begrunnelse for vurderingen")
    is_invoice_related: bool = Field(
        False,
        description="Skal settes til true dersom innholdet handler om faktura, betaling, purring eller inkasso",
    )


class InnsynResult(BaseModel):
    """Request for access to archived documents."""

    description: str = Field(
        "",
        description="Du sier om innholdet er en henvendelse om innsyn i et eller flere dokumenter i arkivet",
    )
    is_innsyn: bool = Field(
        False,
        description=(
            "Du skal være minst 90% sikker på at innholdet er en henvendelse om innsyn i et eller "
            "flere dokumenter i arkivet før du setter is_innsyn = true"
        ),
    )


class GeneralResult(BaseModel):
    """General extraction used by the case number email type."""

    case_number: str | None = Field(None, description="Er på formatet: 00/00000")
    contains_sensitive_data: bool = Field(
        False,
        description=(
            "Skal settes til true dersom input inneholder sensitiv informasjon. Sensitiv informasjon er "
            "blant annet: Fødselsnummer, Bankkontonummer, Personnummer, Passord, Kredittkortnummer, "
            "BankID, diagnoser, helsedata"
        ),
    )
    sensitive_data_categories: list[str] = Field(
        default_factory=list,
        description="Er en liste med kategorier for sensitiv informasjon",
    )
    description: str | None = Field(None, description="Er en kort beskrivelse av innholdet")
    document_number: str | None = Field(None, description="Er på formatet: 00/00000-0")
    organization_number: str | None = Field(None, description="Er 9 siffer langt og kan inneholde mellomrom")
    project_number: str | None = Field(None, description="Er på formatet: 00-0000")
    title: str = Field("", description="Er en hensiksmessig tittel for innholdet")


class FunFactResult(BaseModel):
    message: str = Field(
        "",
        description=(
            "Skal være en hyggelig, veldig kort og kreativ fun-fact om arkivering. Maks en linje. "
            "Alt MÅ være eksisterende og riktige fakta. Aldri finn opp facts!"
        ),
    )


# Agent name -> result shape, for ad-hoc probing
AGENT_RESULTS: dict[str, type[BaseModel]] = {
    "rf1350": Rf1350Result,
    "loyvegaranti": LoyvegarantiResult,
    "pengetransporten": PengetransportenResult,
    "innsyn": InnsynResult,
    "general": GeneralResult,
    "funfact": FunFactResult,
}

"""
Typed records for archive API responses.

The archive speaks PascalCase JSON; fields are aliased so records can be
validated straight from responses and dumped back with by_alias=True.
Unknown fields are kept so cached records survive a round trip through
flow status storage.
"""

from pydantic import BaseModel, ConfigDict, Field


class ArchiveRecord(BaseModel):
    """Base for all archive records."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ResponsiblePerson(ArchiveRecord):
    email: str | None = Field(None, alias="Email")


class Category(ArchiveRecord):
    recno: str | None = Field(None, alias="Recno")
    code: str | None = Field(None, alias="Code")


class ArchiveCaseDocument(ArchiveRecord):
    """Document summary as listed on a case."""

    document_number: str | None = Field(None, alias="DocumentNumber")
    document_title: str | None = Field(None, alias="DocumentTitle")
    category: Category | None = Field(None, alias="Category")


class ArchiveCase(ArchiveRecord):
    case_number: str | None = Field(None, alias="CaseNumber")
    title: str | None = Field(None, alias="Title")
    status: str | None = Field(None, alias="Status")
    responsible_person: ResponsiblePerson | None = Field(None, alias="ResponsiblePerson")
    documents: list[ArchiveCaseDocument] | None = Field(None, alias="Documents")


class ArchiveProject(ArchiveRecord):
    project_number: str | None = Field(None, alias="ProjectNumber")
    title: str | None = Field(None, alias="Title")
    responsible_person: ResponsiblePerson | None = Field(None, alias="ResponsiblePerson")


class DocumentContact(ArchiveRecord):
    reference_number: str | None = Field(None, alias="ReferenceNumber")
    role: str | None = Field(None, alias="Role")


class ArchiveDocument(ArchiveRecord):
    document_number: str | None = Field(None, alias="DocumentNumber")
    title: str | None = Field(None, alias="Title")
    contacts: list[DocumentContact] | None = Field(None, alias="Contacts")


class Enterprise(ArchiveRecord):
    """Enterprise contact as returned by syncEnterprise."""

    enterprise_number: str | None = Field(None, alias="EnterpriseNumber")
    name: str | None = Field(None, alias="Name")
    recno: str | None = Field(None, alias="Recno")

"""
Centralized configuration using Pydantic Settings.

All environment variables are loaded and validated here.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True  # False for colored dev output

    # Entra ID app registration (client credentials)
    azure_tenant_id: str = ""
    azure_client_id: str = ""
    azure_client_secret: str = ""

    # Microsoft Graph / post-room mailbox
    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    graph_scope: str = "https://graph.microsoft.com/.default"
    postmottak_upn: str = ""
    mail_folder_inbox_id: str = "inbox"
    mail_folder_finished_id: str = ""
    mail_folder_arkivarer_id: str = ""  # Manual handling by archivists
    mail_folder_maybe_id: str = ""  # Partial match, manual review
    mail_folder_unknown_id: str = ""  # No email type matched
    mail_page_size: int = 100
    mail_max_pages: int = 5
    mail_received_since_days: int | None = None

    # Archive (P360 SIF)
    archive_base_url: str = ""
    archive_scope: str = ""
    archive_document_category_epost_inn: str = ""
    archive_timeout_seconds: int = 60

    # Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_max_output_tokens: int = 10000

    # MinIO (flow status blobs)
    minio_endpoint: str | None = None
    minio_access_key: str | None = None
    minio_secret_key: str | None = None
    minio_bucket: str = "postmottak-flowstatus"
    minio_secure: bool = True
    flow_status_queue_prefix: str = "queue"
    flow_status_failed_prefix: str = "failed"

    # Retry schedule: minutes to wait after the 1st, 2nd, ... failed attempt.
    # A flow is escalated once its run count exceeds the length of this list.
    retry_intervals_minutes: list[int] = [15, 60, 240, 720]

    # Email types, tried in this order. More specific types first.
    email_type_order: list[str] = [
        "rf1350",
        "loyvegaranti",
        "case_number",
        "innsyn",
        "pengetransporten",
    ]

    # Email type: RF13.50
    rf1350_enabled: bool = True
    rf1350_test_project_number: str | None = None

    # Email type: Løyvegaranti
    loyvegaranti_enabled: bool = True
    loyvegaranti_responsible_enterprise_recno: str = ""

    # Email type: Pengetransporten
    pengetransporten_enabled: bool = True
    pengetransporten_forward_addresses: list[str] = []
    pengetransporten_subjects: list[str] = [
        "e-Faktura",
        "Faktura",
        "Regning",
        "Inkasso",
        "Inkassovarsel",
        "Purring",
        "Kreditnota",
        "Debetnota",
        "Proformafaktura",
        "Skattefaktura",
        "Salgsfaktura",
        "Oppgjør",
        "Skyldig saldo",
        "Forfalt betaling",
        "Faktureringsvarsel",
        "Betalingspåminnelse",
        "Kontoutskrift",
        "Finansdokument",
        "Transaksjonsoppføring",
        "Fakturanummer",
        "Refusjonskrav",
        "Rentenota",
        "Betalingspåminning",
        "Bill",
        "Invoice",
        "Credit Note",
        "Debit Note",
        "Proforma Invoice",
        "Tax Invoice",
        "Sales Invoice",
        "Settlement",
        "Balance Due",
        "Overdue Payment",
        "Billing Notice",
        "Payment Reminder",
        "Account Statement",
        "Financial Document",
        "Transaction Record",
        "Invoice Number",
        "Refund Claim",
    ]

    # Email type: Innsyn
    innsyn_enabled: bool = False
    innsyn_forward_addresses: list[str] = []

    # Email type: case number lookup
    case_number_enabled: bool = False

    # Statistics
    statistics_base_url: str = ""
    statistics_key: str = ""
    app_name: str = "postmottak-arkivering"
    app_version: str = "1.0.0"

    # Scheduler
    scheduler_enabled: bool = False
    scheduler_interval_minutes: int = 10

    @property
    def token_url(self) -> str:
        """OAuth2 token endpoint for the configured tenant."""
        return f"https://login.microsoftonline.com/{self.azure_tenant_id}/oauth2/v2.0/token"

    @property
    def archive_scopes(self) -> list[str]:
        """Archive scopes, comma separated in the environment."""
        return [scope.strip() for scope in self.archive_scope.split(",") if scope.strip()]


# Global settings instance
settings = Settings()


def require_setting(settings: Settings, name: str):
    """Read a setting that cannot be empty. Raises ValueError naming it."""
    value = getattr(settings, name)
    if not value:
        raise ValueError(f"{name.upper()} is required")
    return value

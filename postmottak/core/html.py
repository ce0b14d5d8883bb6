"""
HTML snippets written into message bodies.

Every terminal outcome leaves a visible audit banner at the top of the
message so the archivists can see what the robot did and why.
"""

import html

BOX_STYLE = (
    "border: 1pt solid #848484; padding: 10pt; background-color: #fff4d0; "
    "font-size: 12pt; line-height: 12pt; font-family: 'Arial'; color: Black; "
    "text-align: left;"
)


def html_box(message: str) -> str:
    """Wrap a message in the yellow audit box."""
    return f'<div style="{BOX_STYLE}">{message}</div>'


def with_banner(banner: str, body: str | None) -> str:
    """Prepend a banner box to an HTML body."""
    return f"{html_box(banner)}{body or ''}"


def diagnostics_line(email_type: str, reason: str) -> str:
    """One entry in the aggregated no-match diagnostics."""
    return f"<b>{email_type}</b>: {reason}<br /><br />"


def success_banner(title: str, result_text: str, fun_fact: str = "") -> str:
    message = f"<b>{html.escape(title)}</b><br />{result_text}"
    if fun_fact:
        message += f"<br /><br /><i>{html.escape(fun_fact)}</i>"
    return message


def escalation_banner(title: str, error_message: str | None, run_count: int) -> str:
    message = (
        f"<b>{html.escape(title)}</b><br />"
        "Robåten klarte ikke å arkivere denne e-posten automatisk, "
        "og den er sendt til arkivarene for manuell behandling."
    )
    if error_message:
        attempts = f" etter {run_count} forsøk" if run_count else ""
        message += f"<br /><br />Feilmelding{attempts}:<br />{html.escape(error_message)}"
    return message


def forward_banner(description: str) -> str:
    """Banner placed on top of a forwarded message."""
    return html_box(
        f"Denne e-posten er håndtert av KI og videresendt på begrunnelse: {description}."
        "<br />Ta kontakt med arkivet dersom du mener at dette er feil."
    )


def recipient_list(addresses: list[str]) -> str:
    items = "".join(f"<li>{address}</li>" for address in addresses)
    return f"<ul>{items}</ul>"

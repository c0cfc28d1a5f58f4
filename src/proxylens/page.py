"""Captured login page.

Extracting the form from a rendered document is done by whatever drives the
browser; this module only holds what was captured and turns it into the
plaintext payload.
"""

from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import urljoin

from proxylens.crypto import commit
from proxylens.payload import SecurePayload


class PageSource(Protocol):
    """Protocol for whatever captures the login page."""

    def capture(self) -> "CapturedPage":
        """Return the login form and page state."""
        ...


def resolve_form_action(action: Optional[str], document_url: str) -> str:
    """Return the absolute form action.

    A missing or empty action submits to the document itself; a relative
    action is resolved against the document URL.
    """
    if not action:
        return document_url
    return urljoin(document_url, action)


@dataclass(frozen=True)
class CapturedPage:
    """Login form and page state as captured from the document.

    Attributes:
        form_markup: Outer HTML of the login form.
        document_url: URL of the page holding the form.
        form_action: Raw ``action`` attribute of the form, if any.
        cookies: ``document.cookie`` style cookie string.
    """

    form_markup: str
    document_url: str
    form_action: Optional[str] = None
    cookies: str = ""

    def __repr__(self) -> str:
        return f"CapturedPage(document_url={self.document_url!r}, ...)"

    def capture(self) -> "CapturedPage":
        return self

    @property
    def resolved_action(self) -> str:
        return resolve_form_action(self.form_action, self.document_url)

    def to_payload(self) -> SecurePayload:
        """Build the plaintext payload, committing to the form action."""
        return SecurePayload(
            destination_url=self.document_url,
            destination_commitment=commit(self.resolved_action),
            form_markup=self.form_markup,
            cookies=self.cookies,
        )

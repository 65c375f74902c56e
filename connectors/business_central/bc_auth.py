"""Business Central Authentication.

On-premises Business Central web services authenticate with Basic auth using
a web service access key (or NAV user password). The header value is computed
once from immutable credentials and attached to every request individually.
"""

import base64
from dataclasses import dataclass, field

from core.config import ERPSettings


@dataclass(frozen=True)
class BCBasicCredentials:
    """Web service credentials.

    Attributes:
        username: BC user name (may include a domain, e.g. "CRONUS\\PORTAL")
        password: Web service access key or password
    """
    username: str
    password: str = field(repr=False)

    @classmethod
    def from_settings(cls, settings: ERPSettings) -> "BCBasicCredentials":
        return cls(username=settings.username, password=settings.password)

    @property
    def authorization_header(self) -> str:
        """Get the Authorization header value."""
        raw = f"{self.username}:{self.password}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

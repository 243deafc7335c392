"""ncb-e2e - Browser regression helpers for the NoCowboys site."""

from ncb_e2e.__version__ import (
    __author__,
    __copyright__,
    __description__,
    __license__,
    __title__,
    __version__,
    __version_info__,
    get_version,
    get_version_info,
)
from ncb_e2e.email_links import CandidateLink, EmailLinkResolver, email_fragment
from ncb_e2e.exceptions import (
    AmbiguousOptionWarning,
    E2EError,
    FieldDisabledError,
    LinkNotFoundError,
    NavigationTimeoutError,
    OptionNotFoundError,
    VerificationLinkNotFoundError,
)
from ncb_e2e.race import RaceResult, race
from ncb_e2e.selectize import CascadingSelector, FieldState, SelectizeField, SelectOption

__all__ = [
    "__version__",
    "__version_info__",
    "__title__",
    "__description__",
    "__author__",
    "__license__",
    "__copyright__",
    "get_version",
    "get_version_info",
    "AmbiguousOptionWarning",
    "CandidateLink",
    "CascadingSelector",
    "E2EError",
    "EmailLinkResolver",
    "FieldDisabledError",
    "FieldState",
    "LinkNotFoundError",
    "NavigationTimeoutError",
    "OptionNotFoundError",
    "RaceResult",
    "SelectizeField",
    "SelectOption",
    "VerificationLinkNotFoundError",
    "email_fragment",
    "race",
]

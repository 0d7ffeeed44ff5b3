"""Domain Matcher.

Maps an email address to the institution that owns its domain. Pure: the
caller supplies the institutions (in creation order) and the set of public
webmail domains that must never match.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from admissions.institution.exceptions import InvalidEmailError
from admissions.institution.models import Institution


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class Matched:
    institution_id: str
    is_domain_owned: bool = True


MatchResult = NoMatch | Matched


def extract_domain(email: str) -> str:
    """Return the lower-cased domain of `email`.

    Raises:
        InvalidEmailError: Unless there is exactly one '@' with text on both sides.
    """
    local, sep, domain = email.strip().partition("@")
    if not sep or not local or not domain or "@" in domain:
        raise InvalidEmailError()
    return domain.lower()


def match(
    email: str,
    institutions: Iterable[Institution],
    generic_domains: Iterable[str],
) -> MatchResult:
    """Return the first active institution whose allowed domains contain the email's."""
    domain = extract_domain(email)
    if domain in {d.lower() for d in generic_domains}:
        return NoMatch()

    for institution in institutions:
        if not institution.is_active:
            continue
        allowed = {d.strip().lower() for d in institution.allowed_email_domains}
        if domain in allowed:
            return Matched(institution_id=institution.id)
    return NoMatch()

"""
Location values -- where stock lives.

A location is either a whole department or one section nested under a
department.  Callers hold one of the two tagged variants below; services
resolve human-authored destination codes (``BAR`` or ``BAR:cellar``) into
them exactly once.

Ledger rows need a non-null discriminator for the unique key because SQL
unique constraints treat NULLs as distinct, so department scope is stored
under the literal scope key ``department`` and section scope under the
section id.
"""

import re
from dataclasses import dataclass
from uuid import UUID

from inventory_kernel.exceptions import InvalidDestinationCodeError

SECTION_DELIMITER = ":"
DEPARTMENT_SCOPE_KEY = "department"

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class DepartmentLocation:
    """Department scope: stock held by the department itself."""

    department_id: UUID

    @property
    def section_id(self) -> None:
        return None

    @property
    def scope_key(self) -> str:
        return DEPARTMENT_SCOPE_KEY


@dataclass(frozen=True)
class SectionLocation:
    """Section scope: stock held by one section, separate from its parent."""

    department_id: UUID
    section_id: UUID

    @property
    def scope_key(self) -> str:
        return str(self.section_id)


Location = DepartmentLocation | SectionLocation


def location_for(department_id: UUID, section_id: UUID | None = None) -> Location:
    """Build the location variant for a (department, optional section) pair."""
    if section_id is None:
        return DepartmentLocation(department_id=department_id)
    return SectionLocation(department_id=department_id, section_id=section_id)


def location_scope_key(section_id: UUID | str | None) -> str:
    """Ledger scope key for a section id, or department scope when None."""
    if section_id is None:
        return DEPARTMENT_SCOPE_KEY
    return str(section_id)


@dataclass(frozen=True)
class DestinationCode:
    """Parsed form of ``DEPT`` or ``DEPT:slugOrId``."""

    department_code: str
    section_ref: str | None = None

    @property
    def is_section(self) -> bool:
        return self.section_ref is not None


def parse_destination_code(code: str) -> DestinationCode:
    """
    Split a destination code into its department code and section ref.

    Everything after the first delimiter is the section slug-or-id, so
    ``BAR:a:b`` addresses section ``a:b`` of ``BAR``.

    Raises:
        InvalidDestinationCodeError: empty code, empty department part, or
            a trailing delimiter with no section part.
    """
    if code is None or not code.strip():
        raise InvalidDestinationCodeError(str(code), "code is empty")

    code = code.strip()
    if SECTION_DELIMITER not in code:
        return DestinationCode(department_code=code)

    department_code, _, section_ref = code.partition(SECTION_DELIMITER)
    if not department_code:
        raise InvalidDestinationCodeError(code, "missing department code")
    if not section_ref:
        raise InvalidDestinationCodeError(code, "missing section slug or id (expected PARENT:slug)")
    return DestinationCode(department_code=department_code, section_ref=section_ref)


def compose_section_code(department_code: str, section_ref: str) -> str:
    return f"{department_code}{SECTION_DELIMITER}{section_ref}"


def slugify(name: str) -> str:
    """Lowercase, collapse non-alphanumerics to '-', trim leading/trailing '-'."""
    return _SLUG_STRIP.sub("-", name.lower()).strip("-")

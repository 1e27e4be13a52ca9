"""
LocationService -- departments, sections, and destination resolution.

Responsibility:
    Creates and deactivates stock locations and turns the ways callers
    address a location (an opaque id, a ``DEPT`` code, a ``DEPT:slugOrId``
    code) into a resolved DepartmentLocation / SectionLocation.

Architecture position:
    Kernel > Services.  Flush-only (caller commits).

Invariants enforced:
    - Section slugs are unique within their department.
    - Only active departments and sections resolve.

Failure modes:
    - DepartmentNotFoundError, SectionNotFoundError for unknown or inactive
      locations.
    - InvalidDestinationCodeError for malformed codes.
    - DepartmentCodeConflictError, SectionSlugConflictError on duplicates.
"""

from uuid import UUID

from sqlalchemy import or_, select

from inventory_kernel.domain.dtos import DepartmentInfo, SectionInfo
from inventory_kernel.domain.locations import (
    DepartmentLocation,
    Location,
    SectionLocation,
    parse_destination_code,
    slugify,
)
from inventory_kernel.exceptions import (
    DepartmentCodeConflictError,
    DepartmentNotFoundError,
    SectionNotFoundError,
    SectionSlugConflictError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.location import Department, DepartmentSection
from inventory_kernel.services.base import BaseService

logger = get_logger("services.location")


def _as_uuid(value) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _department_info(department: Department) -> DepartmentInfo:
    return DepartmentInfo(
        id=department.id,
        code=department.code,
        name=department.name,
        is_active=department.is_active,
    )


def _section_info(section: DepartmentSection) -> SectionInfo:
    return SectionInfo(
        id=section.id,
        department_id=section.department_id,
        name=section.name,
        slug=section.slug,
        code=section.code,
        is_active=section.is_active,
    )


class LocationService(BaseService):
    """Manage departments and sections; resolve location references."""

    # -- administration ---------------------------------------------------

    def create_department(self, code: str, name: str) -> DepartmentInfo:
        code = (code or "").strip()
        name = (name or "").strip()
        if not code:
            raise ValueError("Missing required field: code")
        if not name:
            raise ValueError("Missing required field: name")

        existing = self.session.scalar(select(Department.id).where(Department.code == code))
        if existing is not None:
            raise DepartmentCodeConflictError(code)

        department = Department(code=code, name=name, is_active=True)
        self.session.add(department)
        self.session.flush()

        logger.info(
            "department_created",
            extra={"department_id": str(department.id), "department_code": code},
        )
        return _department_info(department)

    def create_section(
        self,
        department_id: UUID,
        name: str,
        slug: str | None = None,
    ) -> SectionInfo:
        """
        Create a section under an active department.

        The slug defaults to a slugified form of the name and must be
        unique within the department.
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Missing required field: name")

        department = self._active_department_by_id(department_id)
        slug = slugify(slug.strip() if slug and slug.strip() else name)
        if not slug:
            raise ValueError(f"Cannot derive a slug from {name!r}")

        taken = self.session.scalar(
            select(DepartmentSection.id).where(
                DepartmentSection.department_id == department.id,
                DepartmentSection.slug == slug,
            )
        )
        if taken is not None:
            raise SectionSlugConflictError(str(department.id), slug)

        section = DepartmentSection(
            department_id=department.id,
            name=name,
            slug=slug,
            is_active=True,
        )
        section.department = department
        self.session.add(section)
        self.session.flush()

        logger.info(
            "section_created",
            extra={
                "department_id": str(department.id),
                "section_id": str(section.id),
                "section_code": section.code,
            },
        )
        return _section_info(section)

    def deactivate_section(self, section_id: UUID) -> SectionInfo:
        section = self.session.get(DepartmentSection, section_id)
        if section is None:
            raise SectionNotFoundError(None, str(section_id))
        section.is_active = False
        self.session.flush()
        logger.info("section_deactivated", extra={"section_id": str(section_id)})
        return _section_info(section)

    def section_code(self, section_id: UUID) -> str:
        """Composite ``PARENT:slug`` code of a section."""
        section = self.session.get(DepartmentSection, section_id)
        if section is None:
            raise SectionNotFoundError(None, str(section_id))
        return section.code

    # -- resolution -------------------------------------------------------

    def resolve_destination_code(self, code: str) -> Location:
        """
        Resolve ``DEPT`` or ``DEPT:slugOrId`` to a location.

        The section part matches the section's slug or, when it parses as
        a UUID, its id, within the named department only.
        """
        parsed = parse_destination_code(code)

        department = self.session.scalar(
            select(Department).where(
                Department.code == parsed.department_code,
                Department.is_active.is_(True),
            )
        )
        if department is None:
            raise DepartmentNotFoundError(parsed.department_code)

        if not parsed.is_section:
            return DepartmentLocation(department_id=department.id)

        matches = [DepartmentSection.slug == parsed.section_ref]
        section_uuid = _as_uuid(parsed.section_ref)
        if section_uuid is not None:
            matches.append(DepartmentSection.id == section_uuid)

        section = self.session.scalars(
            select(DepartmentSection)
            .where(
                DepartmentSection.department_id == department.id,
                DepartmentSection.is_active.is_(True),
                or_(*matches),
            )
            .order_by(DepartmentSection.slug)
        ).first()
        if section is None:
            raise SectionNotFoundError(parsed.department_code, parsed.section_ref)

        return SectionLocation(department_id=department.id, section_id=section.id)

    def resolve_location_id(self, location_id: UUID | str) -> Location:
        """Resolve an opaque id naming either a department or a section."""
        location_uuid = _as_uuid(location_id)
        if location_uuid is None:
            raise DepartmentNotFoundError(str(location_id))

        department = self.session.get(Department, location_uuid)
        if department is not None:
            if not department.is_active:
                raise DepartmentNotFoundError(str(location_id))
            return DepartmentLocation(department_id=department.id)

        section = self.session.get(DepartmentSection, location_uuid)
        if section is None or not section.is_active:
            raise DepartmentNotFoundError(str(location_id))
        self._active_department_by_id(section.department_id)
        return SectionLocation(department_id=section.department_id, section_id=section.id)

    def require_active(self, location: Location) -> Location:
        """
        Verify a previously resolved location still exists and is active.

        Raises:
            DepartmentNotFoundError: department missing or inactive.
            SectionNotFoundError: section missing, inactive, or moved.
        """
        self._active_department_by_id(location.department_id)
        if isinstance(location, SectionLocation):
            section = self.session.get(
                DepartmentSection, location.section_id, populate_existing=True
            )
            if (
                section is None
                or not section.is_active
                or section.department_id != location.department_id
            ):
                raise SectionNotFoundError(str(location.department_id), str(location.section_id))
        return location

    def _active_department_by_id(self, department_id) -> Department:
        department_uuid = _as_uuid(department_id)
        department = None
        if department_uuid is not None:
            department = self.session.get(Department, department_uuid, populate_existing=True)
        if department is None or not department.is_active:
            raise DepartmentNotFoundError(str(department_id))
        return department

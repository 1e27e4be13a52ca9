"""
Module: inventory_kernel.models.location
Responsibility: ORM persistence for stock locations: departments and the
    sections nested under them.
Architecture position: Kernel > Models.  May import from db/ and domain/
    value modules only.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - Department.code is globally unique (uq_department_code).
    - Section slug is unique within its department (uq_section_department_slug).
    - A section belongs to exactly one department for its whole life.

Failure modes:
    - IntegrityError on duplicate department code or section slug.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TimestampedBase
from inventory_kernel.domain.locations import compose_section_code


class Department(TimestampedBase):
    """
    Top-level stock location (bar, kitchen, store room, ...).

    Guarantees:
        - code is the human-authored handle used in destination codes.
        - Inactive departments can neither send nor receive transfers.
    """

    __tablename__ = "departments"

    __table_args__ = (
        UniqueConstraint("code", name="uq_department_code"),
        Index("idx_department_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    sections: Mapped[list["DepartmentSection"]] = relationship(
        back_populates="department",
        order_by="DepartmentSection.name",
    )

    def __repr__(self) -> str:
        return f"<Department {self.code}: {self.name}>"


class DepartmentSection(TimestampedBase):
    """
    Sub-location nested under one department.

    A section holds its own ledger balances, distinct from its parent's.
    It is addressed either by id or by the composite code ``PARENT:slug``.
    """

    __tablename__ = "department_sections"

    __table_args__ = (
        UniqueConstraint("department_id", "slug", name="uq_section_department_slug"),
        Index("idx_section_department", "department_id"),
    )

    department_id: Mapped[UUID] = mapped_column(
        ForeignKey("departments.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    slug: Mapped[str] = mapped_column(String(100), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    department: Mapped[Department] = relationship(back_populates="sections")

    @property
    def code(self) -> str:
        """Composite destination code, e.g. ``BAR:cellar``."""
        return compose_section_code(self.department.code, self.slug or str(self.id))

    def __repr__(self) -> str:
        return f"<DepartmentSection {self.slug} of {self.department_id}>"

"""
Module: datetz.db.base
Responsibility: Declarative base for ORM models that carry DateTz columns.
    Its type annotation map turns ``Mapped[DateTz]`` into a DateTzType
    column without further ceremony.
Architecture position: DB.  Lowest-level import target for models.  MUST NOT
    import from db/listeners.py or db/queries.py.
"""

from typing import ClassVar

from sqlalchemy.orm import DeclarativeBase

from datetz.db.types import DateTzType
from datetz.domain.date_tz import DateTz


class Base(DeclarativeBase):
    """
    Declarative base for models with DateTz attributes.

    Guarantees:
        - ``Mapped[DateTz]`` maps to ``DateTzType()``, which follows the
          active settings (also after ``set_settings``).  Use
          ``datetz_column(...)`` for per-field options.
    """

    type_annotation_map: ClassVar[dict] = {
        DateTz: DateTzType(),
    }

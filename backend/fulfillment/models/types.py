import enum
from typing import Optional, Type

from sqlalchemy import Enum as SAEnum
from sqlalchemy.types import TypeDecorator


class LowercaseEnum(TypeDecorator):
    """Enum column persisted by lowercase value.

    Status strings arrive from admin tooling in mixed case ("Confirmed",
    "SENT"). Writes accept members or any-case strings; reads always return
    members of ``enum_cls``.
    """

    impl = SAEnum
    cache_ok = True

    def __init__(self, enum_cls: Type[enum.Enum], name: Optional[str] = None):
        self.enum_cls = enum_cls
        super().__init__(
            *[member.value for member in enum_cls],
            name=name or enum_cls.__name__.lower(),
        )

    def _member(self, value) -> enum.Enum:
        raw = value.value if isinstance(value, enum.Enum) else str(value)
        return self.enum_cls(raw.strip().lower())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return self._member(value).value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self._member(value)

"""
Domain records shared by the compositor, the export negotiator and the store.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation


def normalize_phone(raw: str | None) -> str:
    """Keep digits only (country code included, no '+')."""
    return re.sub(r"\D", "", str(raw or ""))


def to_price(value) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid price: {value!r}")
    if not price.is_finite():
        raise ValueError(f"Invalid price: {value!r}")
    if price < 0:
        raise ValueError(f"Price must be non-negative: {value!r}")
    return price


@dataclass
class Design:
    id: str
    name: str = ""
    fabric: str = ""
    description: str = ""
    wholesale_price: Decimal | None = None
    retail_price: Decimal | None = None
    image: str = ""
    catalogue_id: str | None = None
    catalogue_name: str | None = None
    user_id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Design":
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            fabric=row.get("fabric") or "",
            description=row.get("description") or "",
            wholesale_price=to_price(row.get("wholesale_price")),
            retail_price=to_price(row.get("retail_price")),
            image=row.get("image") or "",
            catalogue_id=row.get("catalogue_id"),
            catalogue_name=row.get("catalogue_name"),
            user_id=row.get("user_id"),
            created_at=row.get("created_at"),
        )


@dataclass(frozen=True)
class LabelOptions:
    include_wholesale: bool = False
    include_retail: bool = True
    include_fabric: bool = True
    include_description: bool = False
    include_firm_name: bool = True

    @classmethod
    def names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_mapping(cls, data: dict | None) -> "LabelOptions":
        """Build options from a JSON-ish mapping; unknown keys are ignored."""
        data = data or {}
        values = {}
        for name in cls.names():
            if name in data:
                values[name] = bool(data[name])
        return cls(**values)

    def toggled(self, name: str) -> "LabelOptions":
        if name not in self.names():
            raise ValueError(f"Unknown label option: {name}")
        return replace(self, **{name: not getattr(self, name)})

    def as_dict(self) -> dict:
        return {name: getattr(self, name) for name in self.names()}


@dataclass
class GroupMember:
    name: str
    phone_number: str
    id: str | None = None

    def __post_init__(self):
        self.name = (self.name or "").strip()
        self.phone_number = normalize_phone(self.phone_number)


@dataclass
class Group:
    id: str
    name: str
    members: list[GroupMember] = field(default_factory=list)
    user_id: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Group":
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            user_id=row.get("user_id"),
            members=[
                GroupMember(name=m.get("name", ""), phone_number=m.get("phone_number", ""), id=m.get("id"))
                for m in row.get("members", [])
            ],
        )

    def reachable_members(self) -> list[GroupMember]:
        return [m for m in self.members if m.phone_number]


SHARE_TARGET_BROADCAST = "broadcast"
SHARE_TARGET_GROUP = "group"


@dataclass(frozen=True)
class ShareTarget:
    kind: str = SHARE_TARGET_BROADCAST
    group: Group | None = None

    @classmethod
    def broadcast(cls) -> "ShareTarget":
        return cls(SHARE_TARGET_BROADCAST)

    @classmethod
    def for_group(cls, group: Group) -> "ShareTarget":
        return cls(SHARE_TARGET_GROUP, group)

    @property
    def is_group(self) -> bool:
        return self.kind == SHARE_TARGET_GROUP

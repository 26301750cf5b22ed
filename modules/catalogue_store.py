"""
Persistent store for users, catalogues, designs and contact groups.

Every read and write is scoped to the owning user: rows that belong to
someone else behave exactly like rows that do not exist.
"""

from __future__ import annotations

import logging
import math
import threading
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    insert,
    or_,
    select,
    update,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError

from config.settings import DATABASE_URL
from modules.models import normalize_phone, to_price

logger = logging.getLogger(__name__)

_metadata = MetaData()
_engine = None
_database_url = DATABASE_URL
_schema_initialized = False
_schema_lock = threading.Lock()

SORT_NEWEST = "newest"
SORT_PRICE_LOW = "price-low"
SORT_PRICE_HIGH = "price-high"
ALL = "All"
DEFAULT_PAGE_SIZE = 50


class NotFoundError(LookupError):
    """Row missing or owned by another user."""


class DuplicateMemberError(ValueError):
    """Phone number already present in the group."""


users_table = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=True),
    Column("firm_name", String(255), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

catalogues_table = Table(
    "catalogues",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("user_id", String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

designs_table = Table(
    "designs",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("user_id", String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("catalogue_id", String(32), ForeignKey("catalogues.id", ondelete="SET NULL"), nullable=True, index=True),
    Column("name", String(255), nullable=False, server_default=""),
    Column("fabric", String(255), nullable=False, server_default="", index=True),
    Column("description", Text, nullable=True),
    Column("wholesale_price", Numeric(12, 2, asdecimal=False), nullable=False, server_default="0"),
    Column("retail_price", Numeric(12, 2, asdecimal=False), nullable=False, server_default="0", index=True),
    Column("image", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now(), index=True),
)

groups_table = Table(
    "groups",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("user_id", String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

group_members_table = Table(
    "group_members",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("group_id", String(32), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("phone_number", String(32), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("group_id", "phone_number", name="uq_group_members_group_phone"),
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _clean(value) -> str:
    return str(value or "").strip()


# ── Engine ───────────────────────────────────────────────────────────────────

def get_engine():
    global _engine
    if _engine is not None:
        return _engine

    db_url = (_database_url or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is empty")

    connect_args = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    _engine = create_engine(
        db_url,
        future=True,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    return _engine


def configure(database_url: str) -> None:
    """Point the store at another database (tests, CLI overrides)."""
    global _engine, _database_url, _schema_initialized
    with _schema_lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _database_url = database_url
        _schema_initialized = False


def get_db_runtime_info() -> dict:
    """Return safe DB runtime information for logs/UI."""
    db_url = (_database_url or "").strip()
    dialect = "unknown"
    masked_url = db_url
    try:
        parsed = make_url(db_url)
        dialect = parsed.get_backend_name() or "unknown"
        masked_url = parsed.render_as_string(hide_password=True)
    except Exception:
        pass
    return {"configured": bool(db_url), "database_url_masked": masked_url, "dialect": dialect}


def ensure_schema():
    global _schema_initialized
    if _schema_initialized:
        return
    with _schema_lock:
        if _schema_initialized:
            return
        _metadata.create_all(get_engine())
        _schema_initialized = True
        logger.info("Catalogue store schema ready")


# ── Users ────────────────────────────────────────────────────────────────────

def create_user(email: str, name: str | None = None, firm_name: str | None = None) -> dict:
    email = _clean(email).lower()
    if not email:
        raise ValueError("Email is required")
    ensure_schema()
    row = {
        "id": _new_id(),
        "email": email,
        "name": _clean(name) or None,
        "firm_name": _clean(firm_name) or None,
        "created_at": _utc_now(),
    }
    try:
        with get_engine().begin() as conn:
            conn.execute(insert(users_table).values(**row))
    except IntegrityError as exc:
        raise ValueError(f"User with email {email} already exists") from exc
    return row


def get_user(user_id: str) -> dict | None:
    ensure_schema()
    with get_engine().connect() as conn:
        row = conn.execute(select(users_table).where(users_table.c.id == user_id)).mappings().first()
    return dict(row) if row else None


# ── Catalogues ───────────────────────────────────────────────────────────────

def list_catalogues(user_id: str) -> list[dict]:
    ensure_schema()
    stmt = (
        select(catalogues_table, func.count(designs_table.c.id).label("design_count"))
        .select_from(catalogues_table.outerjoin(designs_table, designs_table.c.catalogue_id == catalogues_table.c.id))
        .where(catalogues_table.c.user_id == user_id)
        .group_by(*catalogues_table.c)
        .order_by(catalogues_table.c.created_at.desc())
    )
    with get_engine().connect() as conn:
        return [dict(r) for r in conn.execute(stmt).mappings().all()]


def get_catalogue(user_id: str, catalogue_id: str) -> dict | None:
    ensure_schema()
    stmt = select(catalogues_table).where(
        catalogues_table.c.id == catalogue_id,
        catalogues_table.c.user_id == user_id,
    )
    with get_engine().connect() as conn:
        row = conn.execute(stmt).mappings().first()
    return dict(row) if row else None


def create_catalogue(user_id: str, name: str) -> dict:
    name = _clean(name)
    if not name:
        raise ValueError("Catalogue name is required")
    ensure_schema()
    row = {"id": _new_id(), "user_id": user_id, "name": name, "created_at": _utc_now()}
    with get_engine().begin() as conn:
        conn.execute(insert(catalogues_table).values(**row))
    return row


def update_catalogue(user_id: str, catalogue_id: str, name: str) -> dict:
    name = _clean(name)
    if not name:
        raise ValueError("Catalogue name is required")
    ensure_schema()
    with get_engine().begin() as conn:
        res = conn.execute(
            update(catalogues_table)
            .where(catalogues_table.c.id == catalogue_id, catalogues_table.c.user_id == user_id)
            .values(name=name)
        )
    if res.rowcount == 0:
        raise NotFoundError(f"Catalogue {catalogue_id} not found")
    return get_catalogue(user_id, catalogue_id)


def delete_catalogue(user_id: str, catalogue_id: str) -> None:
    """Delete a catalogue; its designs stay, detached from it."""
    ensure_schema()
    with get_engine().begin() as conn:
        owned = conn.execute(
            select(catalogues_table.c.id).where(
                catalogues_table.c.id == catalogue_id,
                catalogues_table.c.user_id == user_id,
            )
        ).first()
        if owned is None:
            raise NotFoundError(f"Catalogue {catalogue_id} not found")
        conn.execute(
            update(designs_table).where(designs_table.c.catalogue_id == catalogue_id).values(catalogue_id=None)
        )
        conn.execute(delete(catalogues_table).where(catalogues_table.c.id == catalogue_id))


# ── Designs ──────────────────────────────────────────────────────────────────

def _design_select():
    return select(designs_table, catalogues_table.c.name.label("catalogue_name")).select_from(
        designs_table.outerjoin(catalogues_table, designs_table.c.catalogue_id == catalogues_table.c.id)
    )


def _check_catalogue(conn, user_id: str, catalogue_id: str | None):
    if not catalogue_id:
        return
    owned = conn.execute(
        select(catalogues_table.c.id).where(
            catalogues_table.c.id == catalogue_id,
            catalogues_table.c.user_id == user_id,
        )
    ).first()
    if owned is None:
        raise ValueError("Invalid catalogue")


def list_designs(
    user_id: str,
    *,
    fabric: str | None = None,
    catalogue: str | None = None,
    min_price=None,
    max_price=None,
    search: str | None = None,
    sort_by: str = SORT_NEWEST,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> dict:
    """
    List a user's designs with optional filters.

    'All' (or empty) for fabric/catalogue means no filter; the price range
    applies to the retail price; search matches description or fabric,
    case-insensitively.
    """
    ensure_schema()
    page = max(1, int(page or 1))
    limit = max(1, min(int(limit or DEFAULT_PAGE_SIZE), 200))

    conditions = [designs_table.c.user_id == user_id]
    if catalogue and catalogue != ALL:
        conditions.append(designs_table.c.catalogue_id == catalogue)
    if fabric and fabric != ALL:
        conditions.append(designs_table.c.fabric == fabric)
    if min_price not in (None, ""):
        conditions.append(designs_table.c.retail_price >= float(to_price(min_price)))
    if max_price not in (None, ""):
        conditions.append(designs_table.c.retail_price <= float(to_price(max_price)))
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        conditions.append(
            or_(
                func.lower(designs_table.c.description).like(pattern),
                func.lower(designs_table.c.fabric).like(pattern),
            )
        )

    if sort_by == SORT_PRICE_LOW:
        order = [designs_table.c.retail_price.asc(), designs_table.c.created_at.desc()]
    elif sort_by == SORT_PRICE_HIGH:
        order = [designs_table.c.retail_price.desc(), designs_table.c.created_at.desc()]
    else:
        order = [designs_table.c.created_at.desc()]

    stmt = _design_select().where(*conditions).order_by(*order).offset((page - 1) * limit).limit(limit)
    count_stmt = select(func.count()).select_from(designs_table).where(*conditions)
    with get_engine().connect() as conn:
        rows = [dict(r) for r in conn.execute(stmt).mappings().all()]
        total = conn.execute(count_stmt).scalar_one()

    return {
        "designs": rows,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
    }


def get_design(user_id: str, design_id: str) -> dict | None:
    ensure_schema()
    stmt = _design_select().where(designs_table.c.id == design_id, designs_table.c.user_id == user_id)
    with get_engine().connect() as conn:
        row = conn.execute(stmt).mappings().first()
    return dict(row) if row else None


def get_designs(user_id: str, design_ids: list[str]) -> list[dict]:
    """Fetch designs by id, returned in the order the ids were given."""
    if not design_ids:
        return []
    ensure_schema()
    stmt = _design_select().where(designs_table.c.id.in_(design_ids), designs_table.c.user_id == user_id)
    with get_engine().connect() as conn:
        rows = {r["id"]: dict(r) for r in conn.execute(stmt).mappings().all()}
    return [rows[i] for i in design_ids if i in rows]


def create_design(
    user_id: str,
    *,
    image: str,
    wholesale_price,
    retail_price,
    fabric: str,
    name: str | None = None,
    description: str | None = None,
    catalogue_id: str | None = None,
) -> dict:
    if not _clean(image):
        raise ValueError("Image is required")
    if not _clean(fabric):
        raise ValueError("Fabric is required")
    wholesale = to_price(wholesale_price)
    retail = to_price(retail_price)
    if wholesale is None or retail is None:
        raise ValueError("Wholesale and retail prices are required")

    ensure_schema()
    row = {
        "id": _new_id(),
        "user_id": user_id,
        "catalogue_id": catalogue_id or None,
        "name": _clean(name) or _clean(fabric),
        "fabric": _clean(fabric),
        "description": _clean(description),
        "wholesale_price": float(wholesale),
        "retail_price": float(retail),
        "image": image,
        "created_at": _utc_now(),
    }
    with get_engine().begin() as conn:
        _check_catalogue(conn, user_id, row["catalogue_id"])
        conn.execute(insert(designs_table).values(**row))
    logger.info(f"Created design {row['id']} for user {user_id}")
    return get_design(user_id, row["id"])


_UPDATABLE_DESIGN_FIELDS = ("name", "fabric", "description", "image", "catalogue_id")


def update_design(user_id: str, design_id: str, **changes) -> dict:
    values = {}
    for key in _UPDATABLE_DESIGN_FIELDS:
        if key in changes and changes[key] is not None:
            values[key] = changes[key] if key == "image" else _clean(changes[key])
    for key in ("wholesale_price", "retail_price"):
        if changes.get(key) is not None:
            values[key] = float(to_price(changes[key]))
    if "catalogue_id" in values and not values["catalogue_id"]:
        values["catalogue_id"] = None

    ensure_schema()
    with get_engine().begin() as conn:
        owned = conn.execute(
            select(designs_table.c.id).where(designs_table.c.id == design_id, designs_table.c.user_id == user_id)
        ).first()
        if owned is None:
            raise NotFoundError(f"Design {design_id} not found")
        _check_catalogue(conn, user_id, values.get("catalogue_id"))
        if values:
            conn.execute(update(designs_table).where(designs_table.c.id == design_id).values(**values))
    return get_design(user_id, design_id)


def delete_design(user_id: str, design_id: str) -> None:
    ensure_schema()
    with get_engine().begin() as conn:
        res = conn.execute(
            delete(designs_table).where(designs_table.c.id == design_id, designs_table.c.user_id == user_id)
        )
    if res.rowcount == 0:
        raise NotFoundError(f"Design {design_id} not found")


def list_fabrics(user_id: str) -> list[str]:
    ensure_schema()
    stmt = (
        select(designs_table.c.fabric)
        .where(designs_table.c.user_id == user_id, designs_table.c.fabric != "")
        .distinct()
        .order_by(designs_table.c.fabric)
    )
    with get_engine().connect() as conn:
        return [r[0] for r in conn.execute(stmt).all()]


# ── Groups ───────────────────────────────────────────────────────────────────

def _format_members(members: list[dict] | None) -> list[dict]:
    formatted = []
    seen = set()
    for member in members or []:
        name = _clean(member.get("name"))
        phone = normalize_phone(member.get("phone_number") or member.get("phoneNumber"))
        if not name or not phone:
            raise ValueError("Member name and phone number are required")
        if phone in seen:
            raise DuplicateMemberError(f"Member with phone number {phone} listed twice")
        seen.add(phone)
        formatted.append({"name": name, "phone_number": phone})
    return formatted


def _insert_members(conn, group_id: str, members: list[dict]) -> None:
    now = _utc_now()
    for member in members:
        conn.execute(
            insert(group_members_table).values(
                id=_new_id(),
                group_id=group_id,
                name=member["name"],
                phone_number=member["phone_number"],
                created_at=now,
            )
        )


def _load_members(conn, group_ids: list[str]) -> dict[str, list[dict]]:
    members: dict[str, list[dict]] = {gid: [] for gid in group_ids}
    if not group_ids:
        return members
    stmt = (
        select(group_members_table)
        .where(group_members_table.c.group_id.in_(group_ids))
        .order_by(group_members_table.c.created_at.asc())
    )
    for row in conn.execute(stmt).mappings().all():
        members[row["group_id"]].append(dict(row))
    return members


def list_groups(user_id: str) -> list[dict]:
    ensure_schema()
    with get_engine().connect() as conn:
        groups = [
            dict(r)
            for r in conn.execute(
                select(groups_table)
                .where(groups_table.c.user_id == user_id)
                .order_by(groups_table.c.created_at.desc())
            ).mappings().all()
        ]
        members = _load_members(conn, [g["id"] for g in groups])
    for group in groups:
        group["members"] = members[group["id"]]
    return groups


def get_group(user_id: str, group_id: str) -> dict | None:
    ensure_schema()
    with get_engine().connect() as conn:
        row = conn.execute(
            select(groups_table).where(groups_table.c.id == group_id, groups_table.c.user_id == user_id)
        ).mappings().first()
        if row is None:
            return None
        group = dict(row)
        group["members"] = _load_members(conn, [group_id])[group_id]
    return group


def create_group(user_id: str, name: str, members: list[dict] | None = None) -> dict:
    name = _clean(name)
    if not name:
        raise ValueError("Group name is required")
    formatted = _format_members(members)
    ensure_schema()
    group_id = _new_id()
    with get_engine().begin() as conn:
        conn.execute(insert(groups_table).values(id=group_id, user_id=user_id, name=name, created_at=_utc_now()))
        _insert_members(conn, group_id, formatted)
    logger.info(f"Created group {group_id} with {len(formatted)} members")
    return get_group(user_id, group_id)


def update_group(user_id: str, group_id: str, name: str | None = None, members: list[dict] | None = None) -> dict:
    """Rename a group and/or replace its whole member list."""
    formatted = _format_members(members) if members is not None else None
    ensure_schema()
    with get_engine().begin() as conn:
        owned = conn.execute(
            select(groups_table.c.id).where(groups_table.c.id == group_id, groups_table.c.user_id == user_id)
        ).first()
        if owned is None:
            raise NotFoundError(f"Group {group_id} not found")
        if name is not None and _clean(name):
            conn.execute(update(groups_table).where(groups_table.c.id == group_id).values(name=_clean(name)))
        if formatted is not None:
            conn.execute(delete(group_members_table).where(group_members_table.c.group_id == group_id))
            _insert_members(conn, group_id, formatted)
    return get_group(user_id, group_id)


def delete_group(user_id: str, group_id: str) -> None:
    ensure_schema()
    with get_engine().begin() as conn:
        res = conn.execute(
            delete(groups_table).where(groups_table.c.id == group_id, groups_table.c.user_id == user_id)
        )
        if res.rowcount:
            conn.execute(delete(group_members_table).where(group_members_table.c.group_id == group_id))
    if res.rowcount == 0:
        raise NotFoundError(f"Group {group_id} not found")


def add_member(user_id: str, group_id: str, name: str, phone_number: str) -> dict:
    member = _format_members([{"name": name, "phone_number": phone_number}])[0]
    if get_group(user_id, group_id) is None:
        raise NotFoundError(f"Group {group_id} not found")
    row = {"id": _new_id(), "group_id": group_id, "created_at": _utc_now(), **member}
    try:
        with get_engine().begin() as conn:
            conn.execute(insert(group_members_table).values(**row))
    except IntegrityError as exc:
        raise DuplicateMemberError("Member with this phone number already exists in the group") from exc
    return row


def remove_member(user_id: str, group_id: str, member_id: str) -> None:
    if get_group(user_id, group_id) is None:
        raise NotFoundError(f"Group {group_id} not found")
    with get_engine().begin() as conn:
        res = conn.execute(
            delete(group_members_table).where(
                group_members_table.c.id == member_id,
                group_members_table.c.group_id == group_id,
            )
        )
    if res.rowcount == 0:
        raise NotFoundError(f"Member {member_id} not found")

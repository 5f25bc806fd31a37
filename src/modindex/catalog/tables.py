"""SQLAlchemy Core table definitions for the parts of the catalog we read."""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    func,
)

metadata = MetaData()

OWNER_ROLE = "Owner"

statuses = Table(
    "statuses",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("status", String(64), nullable=False, unique=True),
)

users = Table(
    "users",
    metadata,
    Column("id", BigInteger, primary_key=True),
    Column("username", String(255), nullable=False, unique=True),
)

team_members = Table(
    "team_members",
    metadata,
    Column("id", BigInteger, primary_key=True),
    Column("team_id", BigInteger, nullable=False, index=True),
    Column("user_id", BigInteger, ForeignKey("users.id"), nullable=False),
    Column("role", String(255), nullable=False),
)

mods = Table(
    "mods",
    metadata,
    Column("id", BigInteger, primary_key=True),
    Column("team_id", BigInteger, nullable=False),
    Column("title", String(256), nullable=False),
    Column("description", String(2048), nullable=False),
    Column("body_url", String(2048), nullable=True),
    Column("published", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("status", Integer, ForeignKey("statuses.id"), nullable=False),
    Column("downloads", Integer, nullable=False, default=0),
    Column("follows", Integer, nullable=False, default=0),
    Column("icon_url", String(2048), nullable=True),
    Column("slug", String(255), nullable=True, unique=True),
    Column("is_nsfw", Boolean, nullable=False, default=False),
)

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("category", String(255), nullable=False, unique=True),
)

mods_categories = Table(
    "mods_categories",
    metadata,
    Column("joining_mod_id", BigInteger, ForeignKey("mods.id"), primary_key=True),
    Column("joining_category_id", Integer, ForeignKey("categories.id"), primary_key=True),
)

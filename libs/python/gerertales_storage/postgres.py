"""PostgreSQL store for signed-in writers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from gerertales_schemas import AppSettings, Story, UserProfile

from .base import StoryRepository
from .exceptions import StoryNotFoundError

logger = logging.getLogger(__name__)

SETTINGS_KEY = "app_settings"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    bio TEXT,
    avatar_color TEXT,
    avatar_url TEXT,
    joined_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    credits NUMERIC(12, 2) NOT NULL DEFAULT 50 CHECK (credits >= 0),
    stripe_customer_id TEXT,
    subscription_status TEXT NOT NULL DEFAULT 'inactive',
    subscription_tier TEXT NOT NULL DEFAULT 'free',
    is_admin BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE TABLE IF NOT EXISTS stories (
    id TEXT PRIMARY KEY,
    owner_id TEXT REFERENCES profiles (id) ON DELETE CASCADE,
    owner_name TEXT,
    title TEXT NOT NULL,
    spark TEXT,
    tone TEXT,
    format TEXT NOT NULL,
    active_chapter_index INTEGER NOT NULL DEFAULT 0,
    characters JSONB NOT NULL DEFAULT '[]'::jsonb,
    locations JSONB NOT NULL DEFAULT '[]'::jsonb,
    toc JSONB NOT NULL DEFAULT '[]'::jsonb,
    last_modified TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    cover_image TEXT,
    collection TEXT,
    is_public BOOLEAN NOT NULL DEFAULT FALSE,
    published_at TIMESTAMPTZ
);

CREATE TABLE IF NOT EXISTS system_config (
    key TEXT PRIMARY KEY,
    value JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS audit_logs (
    id BIGSERIAL PRIMARY KEY,
    user_id TEXT,
    type TEXT NOT NULL,
    message TEXT NOT NULL,
    metadata JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

UPSERT_STORY_SQL = """
    INSERT INTO stories (
        id, owner_id, owner_name, title, spark, tone, format, active_chapter_index,
        characters, locations, toc, last_modified, cover_image, collection, is_public, published_at
    )
    VALUES (
        %(id)s, %(owner_id)s, %(owner_name)s, %(title)s, %(spark)s, %(tone)s, %(format)s,
        %(active_chapter_index)s, %(characters)s, %(locations)s, %(toc)s, %(last_modified)s,
        %(cover_image)s, %(collection)s, %(is_public)s, %(published_at)s
    )
    ON CONFLICT (id) DO UPDATE SET
        owner_name = EXCLUDED.owner_name,
        title = EXCLUDED.title,
        spark = EXCLUDED.spark,
        tone = EXCLUDED.tone,
        format = EXCLUDED.format,
        active_chapter_index = EXCLUDED.active_chapter_index,
        characters = EXCLUDED.characters,
        locations = EXCLUDED.locations,
        toc = EXCLUDED.toc,
        last_modified = EXCLUDED.last_modified,
        cover_image = EXCLUDED.cover_image,
        collection = EXCLUDED.collection,
        is_public = EXCLUDED.is_public,
        published_at = EXCLUDED.published_at
"""

UPSERT_PROFILE_SQL = """
    INSERT INTO profiles (
        id, name, bio, avatar_color, avatar_url, joined_date, credits,
        stripe_customer_id, subscription_status, subscription_tier, is_admin
    )
    VALUES (
        %(id)s, %(name)s, %(bio)s, %(avatar_color)s, %(avatar_url)s, %(joined_date)s, %(credits)s,
        %(stripe_customer_id)s, %(subscription_status)s, %(subscription_tier)s, %(is_admin)s
    )
    ON CONFLICT (id) DO UPDATE SET
        name = EXCLUDED.name,
        bio = EXCLUDED.bio,
        avatar_color = EXCLUDED.avatar_color,
        avatar_url = EXCLUDED.avatar_url,
        stripe_customer_id = EXCLUDED.stripe_customer_id,
        subscription_status = EXCLUDED.subscription_status,
        subscription_tier = EXCLUDED.subscription_tier
"""


def to_timestamp(epoch_ms: Optional[int]) -> Optional[datetime]:
    if epoch_ms is None:
        return None
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)


def to_epoch_ms(value: Optional[datetime]) -> Optional[int]:
    if value is None:
        return None
    return round(value.timestamp() * 1000)


def story_from_row(row: dict[str, Any]) -> Story:
    return Story.model_validate(
        {
            "id": row["id"],
            "owner_id": row.get("owner_id"),
            "owner_name": row.get("owner_name"),
            "title": row["title"],
            "spark": row.get("spark") or "",
            "tone": row.get("tone") or "",
            "format": row["format"],
            "active_chapter_index": row.get("active_chapter_index") or 0,
            "characters": row.get("characters") or [],
            "locations": row.get("locations") or [],
            "toc": row.get("toc") or [],
            "last_modified": to_epoch_ms(row.get("last_modified")),
            "cover_image": row.get("cover_image"),
            "collection": row.get("collection"),
            "is_public": bool(row.get("is_public")),
            "published_at": to_epoch_ms(row.get("published_at")),
        }
    )


def story_params(story: Story) -> dict[str, Any]:
    payload = story.to_json_dict()
    return {
        "id": story.id,
        "owner_id": story.owner_id,
        "owner_name": story.owner_name,
        "title": story.title,
        "spark": story.spark,
        "tone": story.tone,
        "format": story.format.value,
        "active_chapter_index": story.active_chapter_index,
        "characters": Jsonb(payload.get("characters", [])),
        "locations": Jsonb(payload.get("locations", [])),
        "toc": Jsonb(payload.get("toc", [])),
        "last_modified": to_timestamp(story.last_modified),
        "cover_image": story.cover_image,
        "collection": story.collection,
        "is_public": story.is_public,
        "published_at": to_timestamp(story.published_at),
    }


def profile_from_row(row: dict[str, Any]) -> UserProfile:
    return UserProfile.model_validate(
        {
            "id": row["id"],
            "name": row["name"],
            "bio": row.get("bio") or "",
            "avatar_color": row.get("avatar_color") or "#60A5FA",
            "avatar_url": row.get("avatar_url"),
            "joined_date": to_epoch_ms(row.get("joined_date")),
            "credits": float(row.get("credits") or 0),
            "stripe_customer_id": row.get("stripe_customer_id"),
            "subscription_status": row.get("subscription_status") or "inactive",
            "subscription_tier": row.get("subscription_tier") or "free",
            "is_admin": bool(row.get("is_admin")),
        }
    )


class PostgresStore(StoryRepository):
    """Stories and profiles in PostgreSQL; settings in ``system_config``.

    Credits are never written here: balances change only through
    :class:`gerertales_billing.PostgresLedger`.
    """

    name = "postgres"

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def ensure_schema(self) -> None:
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
            conn.commit()

    def list_stories(self, owner_id: Optional[str] = None) -> list[Story]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            if owner_id is None:
                cur.execute("SELECT * FROM stories ORDER BY last_modified DESC")
            else:
                cur.execute(
                    "SELECT * FROM stories WHERE owner_id = %s ORDER BY last_modified DESC",
                    (owner_id,),
                )
            rows = cur.fetchall()
        return [story_from_row(row) for row in rows]

    def get_story(self, story_id: str) -> Story:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute("SELECT * FROM stories WHERE id = %s", (story_id,))
            row = cur.fetchone()
        if row is None:
            raise StoryNotFoundError(story_id)
        return story_from_row(row)

    def save_story(self, story: Story) -> Story:
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(UPSERT_STORY_SQL, story_params(story))
            conn.commit()
        logger.debug("Story saved", extra={"story_id": story.id})
        return story

    def delete_story(self, story_id: str, owner_id: Optional[str] = None) -> None:
        with self._pool.connection() as conn, conn.cursor() as cur:
            if owner_id is None:
                cur.execute("DELETE FROM stories WHERE id = %s", (story_id,))
            else:
                cur.execute("DELETE FROM stories WHERE id = %s AND owner_id = %s", (story_id, owner_id))
            deleted = cur.rowcount
            conn.commit()
        if not deleted:
            raise StoryNotFoundError(story_id)
        logger.info("Story deleted", extra={"story_id": story_id})

    def get_profile(self, profile_id: Optional[str] = None) -> Optional[UserProfile]:
        if profile_id is None:
            return None
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute("SELECT * FROM profiles WHERE id = %s", (profile_id,))
            row = cur.fetchone()
        return profile_from_row(row) if row else None

    def save_profile(self, profile: UserProfile) -> UserProfile:
        if profile.id is None:
            raise ValueError("Remote profiles require an id")
        params = profile.model_dump(mode="json")
        params["joined_date"] = to_timestamp(profile.joined_date)
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(UPSERT_PROFILE_SQL, params)
            conn.commit()
        return profile

    def get_settings(self) -> AppSettings:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
            cur.execute("SELECT value FROM system_config WHERE key = %s", (SETTINGS_KEY,))
            row = cur.fetchone()
        if row is None:
            return self.save_settings(AppSettings())
        return AppSettings.model_validate(row["value"])

    def save_settings(self, settings: AppSettings) -> AppSettings:
        with self._pool.connection() as conn, conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO system_config (key, value, updated_at)
                VALUES (%s, %s, NOW())
                ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
                """,
                (SETTINGS_KEY, Jsonb(settings.to_json_dict())),
            )
            conn.commit()
        return settings

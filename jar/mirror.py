"""
mirror.py -- Optional remote mirror (Supabase REST) for memories, stories
and family members.

Every row carries the owning user_id. The mirror is advisory: callers
catch RemoteMirrorUnavailable, log it, and carry on with local state.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from jar.errors import RemoteMirrorUnavailable
from jar.models import FamilyMember, MemoryRecord, StoryRecord

logger = logging.getLogger(__name__)

MEMORIES_TABLE: str = "memories"
STORIES_TABLE: str = "stories"
FAMILY_TABLE: str = "family_members"


def memory_row(record: MemoryRecord, user_id: str) -> dict[str, Any]:
    return {
        "id": record.id,
        "user_id": user_id,
        "emotion": record.emotion,
        "prompt": record.prompt,
        "audio_url": record.audio_ref,
        "transcript": record.transcript,
        "mood": record.mood,
        "themes": record.themes,
        "created_at": record.created_at,
        "blockchain_tx": record.blockchain_tx,
    }


def story_row(story: StoryRecord, user_id: str) -> dict[str, Any]:
    return {
        "id": story.id,
        "user_id": user_id,
        "title": story.title,
        "story_text": story.content,
        "memory_ids": story.source_memory_ids,
        "audio_url": story.audio_ref,
        "created_at": story.created_at,
    }


def family_row(member: FamilyMember, user_id: str) -> dict[str, Any]:
    return {
        "id": member.id,
        "user_id": user_id,
        "name": member.name,
        "member_email": member.email,
        "access_level": member.access_level,
        "created_at": member.joined_at,
    }


class RemoteMirror:
    """Thin PostgREST client: insert, select by owner, update by primary key."""

    def __init__(self, base_url: str, api_key: str, client: httpx.AsyncClient) -> None:
        self._rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        self._client = client

    async def _send(self, method: str, table: str, **kwargs: Any) -> list[dict[str, Any]]:
        url = f"{self._rest_url}/{table}"
        try:
            resp = await self._client.request(method, url, headers=self._headers, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RemoteMirrorUnavailable(
                f"Mirror returned {exc.response.status_code} for {method} {table}: "
                f"{exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteMirrorUnavailable(f"Mirror unreachable for {method} {table}: {exc}") from exc
        if not resp.content:
            return []
        try:
            body = resp.json()
        except ValueError as exc:
            raise RemoteMirrorUnavailable(f"Mirror sent a non-JSON body for {method} {table}") from exc
        return body if isinstance(body, list) else [body]

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any] | None:
        rows = await self._send("POST", table, json=[row])
        return rows[0] if rows else None

    async def select(self, table: str, user_id: str) -> list[dict[str, Any]]:
        return await self._send(
            "GET", table,
            params={"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.asc"},
        )

    async def update(self, table: str, row_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        rows = await self._send("PATCH", table, params={"id": f"eq.{row_id}"}, json=fields)
        return rows[0] if rows else None

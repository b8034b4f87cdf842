"""Supabase persistence for user profiles and saved advisory reports.

The store is optional: without SUPABASE_URL and SUPABASE_KEY every call is a
no-op returning None. API errors are logged and also return None, so a failed
save never breaks the advisory flow.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from supabase import Client, create_client

from . import config, debug

log = logging.getLogger(__name__)


def _iso(value: Any) -> str:
    """Report timestamps arrive as epoch milliseconds or ISO strings."""
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()
        except (ValueError, OverflowError, OSError):
            return str(value)
    if value:
        return str(value)
    return datetime.now(timezone.utc).isoformat()


class ReportStore:
    """Thin wrapper over the ``profiles`` and ``reports`` tables."""

    def __init__(self, client: Optional[Client] = None, url: str | None = None, key: str | None = None):
        if client is None:
            url = url if url is not None else config.SUPABASE_URL
            key = key if key is not None else config.SUPABASE_KEY
            if url and key:
                client = create_client(url, key)
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client is not None

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def sync_user_profile(self, user: dict[str, Any]) -> Optional[list]:
        """Upsert a user's profile row. Users without a uid are skipped."""
        uid = user.get("uid")
        if not self.enabled or not uid:
            return None
        row = {
            "id": uid,
            "display_name": user.get("displayName"),
            "mobile": user.get("mobile"),
            "role": user.get("role"),
            "farm_location": user.get("farmLocation"),
            "progress": user.get("progress"),
            "preferred_categories": user.get("preferredCategories"),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            result = self.client.table("profiles").upsert(row).execute()
        except Exception as e:
            log.error(f"Supabase profile sync failed: {e}")
            debug.log_storage("profiles", f"upsert {uid}: {e}", success=False)
            return None
        debug.log_storage("profiles", f"upsert {uid}")
        return result.data

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def save_report(self, user_id: str, report: dict[str, Any]) -> Optional[list]:
        """Insert a saved report for ``user_id``."""
        if not self.enabled:
            return None
        row = {
            "id": report.get("id"),
            "user_id": user_id,
            "timestamp": _iso(report.get("timestamp")),
            "type": report.get("type"),
            "title": report.get("title"),
            "content": report.get("content"),
            "audio_base64": report.get("audioBase64"),
            "image_url": report.get("imageUrl"),
            "icon": report.get("icon"),
        }
        try:
            result = self.client.table("reports").insert(row).execute()
        except Exception as e:
            log.error(f"Supabase report save failed: {e}")
            debug.log_storage("reports", f"insert {row['id']}: {e}", success=False)
            return None
        debug.log_storage("reports", f"insert {row['id']}")
        return result.data


_store: ReportStore | None = None


def get_store() -> ReportStore:
    global _store
    if _store is None:
        _store = ReportStore()
    return _store

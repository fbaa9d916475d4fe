"""SQLite cache of finished analyses, keyed by username, read by the preview image endpoint."""
import json
import time
from typing import Any

import aiosqlite

from ethos_spider.models import ProfileAnalysis

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS analysis_cache (
        username    TEXT PRIMARY KEY,
        name        TEXT NOT NULL,
        result_json TEXT NOT NULL,
        created_at  INTEGER NOT NULL
    )
"""


class AnalysisCache:
    def __init__(self, db_path: str) -> None:
        self.db_path = db_path

    async def init(self) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(_SCHEMA)
            await db.commit()

    async def put(self, username: str, name: str, analysis: ProfileAnalysis) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(_SCHEMA)
            await db.execute(
                """INSERT OR REPLACE INTO analysis_cache
                   (username, name, result_json, created_at) VALUES (?, ?, ?, ?)""",
                (
                    username.lstrip("@").lower(),
                    name,
                    analysis.model_dump_json(by_alias=True),
                    int(time.time() * 1000),
                ),
            )
            await db.commit()

    async def get(self, username: str) -> dict[str, Any] | None:
        """Return ``{"name", "analysis"}`` for a cached username, or None."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(_SCHEMA)
            async with db.execute(
                "SELECT name, result_json FROM analysis_cache WHERE username = ?",
                (username.lstrip("@").lower(),),
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            return None
        return {"name": row[0], "analysis": json.loads(row[1])}

import re
import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "career_profiles"


def normalize_email(email: str) -> str:
    """user.name@mail.com -> user_name_mail_com"""
    return re.sub(r"[@.]", "_", email.strip().lower())


class ProfileStore:
    """
    Profile documents as JSON in redis, keyed by normalized email.
    Without a client it keeps documents in memory for the process lifetime.
    """

    def __init__(self, client: Optional[redis.Redis] = None):
        self.client = client
        self._memory: Dict[str, str] = {}

    @staticmethod
    def key(email: str) -> str:
        return f"{KEY_PREFIX}:{normalize_email(email)}"

    async def _read(self, key: str) -> Optional[str]:
        if self.client:
            return await self.client.get(key)
        return self._memory.get(key)

    async def _write(self, key: str, raw: str) -> None:
        if self.client:
            await self.client.set(key, raw)
        else:
            self._memory[key] = raw

    async def get(self, email: str) -> Optional[Dict[str, Any]]:
        raw = await self._read(self.key(email))
        if not raw:
            return None
        try:
            doc = json.loads(raw)
        except ValueError:
            logger.error(f"Corrupt profile document for {normalize_email(email)}")
            return None
        return doc if isinstance(doc, dict) else None

    async def merge(self, email: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow-merge ``fields`` over the stored document and write it back."""
        key = self.key(email)
        current = await self.get(email) or {"email": email}
        current.update(fields)
        await self._write(key, json.dumps(current))
        logger.info(f"Profile {key} updated ({', '.join(sorted(fields))})")
        return current

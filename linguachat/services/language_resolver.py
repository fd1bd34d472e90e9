import logging

from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.models.api.languages import DEFAULT_LANGUAGE, Language, parse_language
from linguachat.repositories.user_repository import UserRepository

log = logging.getLogger(__name__)


class LanguagePreferenceResolver:
    """Reads a user's preferred language from the live profile row.

    Conversation snapshots also carry a language, but they are display
    metadata and may be stale; routing decisions always come from here.
    """

    def __init__(self, db: AsyncSession):
        self.user_repo = UserRepository(db)

    async def resolve_language(self, user_id: str) -> Language:
        code = await self.user_repo.get_language(user_id)
        language = parse_language(code)
        if language is None:
            if code:
                log.warning("User %s has unsupported language %r; using default", user_id, code)
            return DEFAULT_LANGUAGE
        return language

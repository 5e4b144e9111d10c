"""In-memory implementation of TagRepository for testing."""

import uuid
from datetime import datetime, timezone

from domain.model.tag import PromptTag, Tag


class FakeTagRepository:
    def __init__(self):
        self.tags: dict[str, Tag] = {}
        self.links: dict[str, PromptTag] = {}

    # ── tags ─────────────────────────────────────────────────

    async def get_or_create(self, name: str, color: str) -> Tag:
        # no await between lookup and insert, so this is atomic on the event loop
        existing = self._by_name(name)
        if existing:
            return existing

        tag = Tag(id=uuid.uuid4().hex, name=name, color=color, created_at=datetime.now(timezone.utc))
        self.tags[tag.id] = tag
        return tag

    def _by_name(self, name: str) -> Tag | None:
        for tag in self.tags.values():
            if tag.name == name:
                return tag
        return None

    async def list_tags(self, prompt_id: str | None = None) -> list[Tag]:
        if prompt_id is None:
            return sorted(self.tags.values(), key=lambda t: t.name)
        tag_ids = [link.tag_id for link in self.links.values() if link.prompt_id == prompt_id]
        return [self.tags[tid] for tid in tag_ids if tid in self.tags]

    # ── associations ─────────────────────────────────────────

    async def link(self, prompt_id: str, tag_id: str) -> PromptTag:
        for link in self.links.values():
            if link.prompt_id == prompt_id and link.tag_id == tag_id:
                return link
        link = PromptTag(id=uuid.uuid4().hex, prompt_id=prompt_id, tag_id=tag_id)
        self.links[link.id] = link
        return link

    async def unlink(self, prompt_id: str, tag_id: str) -> bool:
        for link_id, link in list(self.links.items()):
            if link.prompt_id == prompt_id and link.tag_id == tag_id:
                del self.links[link_id]
                return True
        return False

    async def unlink_all(self, prompt_id: str) -> int:
        doomed = [lid for lid, link in self.links.items() if link.prompt_id == prompt_id]
        for link_id in doomed:
            del self.links[link_id]
        return len(doomed)

from dataclasses import dataclass
from datetime import datetime

DEFAULT_TAG_COLOR = '#3B82F6'


@dataclass
class Tag:
    """Shared label row; name is unique across the catalog."""
    id: str
    name: str
    color: str = DEFAULT_TAG_COLOR
    created_at: datetime | None = None


@dataclass(frozen=True)
class PromptTag:
    """Association between a prompt and a tag."""
    id: str
    prompt_id: str
    tag_id: str

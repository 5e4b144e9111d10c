from dataclasses import dataclass, field
from datetime import datetime

from domain.model.prompt import Prompt


@dataclass(frozen=True)
class Favorite:
    """A user's bookmark of a prompt. Unique per (user_id, prompt_id)."""
    id: str
    user_id: str
    prompt_id: str
    created_at: datetime


@dataclass
class UserFavorites:
    """Favorites of one user joined to the prompts they point at.

    `prompts` skips favorites whose prompt no longer exists, so it can be
    shorter than `favorites`.
    """
    favorites: list[Favorite] = field(default_factory=list)
    prompts: list[Prompt] = field(default_factory=list)

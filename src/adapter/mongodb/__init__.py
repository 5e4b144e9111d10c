"""MongoDB adapters. Collection names shared by the repositories."""

USERS_COLLECTION_NAME = 'users'
PROFILES_COLLECTION_NAME = 'profiles'
PROMPTS_COLLECTION_NAME = 'prompts'
TAGS_COLLECTION_NAME = 'tags'
PROMPT_TAGS_COLLECTION_NAME = 'prompt_tags'
FAVORITES_COLLECTION_NAME = 'favorites'

"""Errors raised to callers of the clustering engine.

Transient failures of the article source or the oracle are never raised;
they are logged where they happen and replaced by a fallback value.
"""


class StoryweaveError(Exception):
    """Base class for errors raised by storyweave"""


class StorageNotInitializedError(StoryweaveError):
    """The story store was used before initialize() was called"""

    def __init__(self):
        super().__init__("Story store not initialized. Call initialize() first.")


class StoryNotFoundError(StoryweaveError):
    """A story looked up directly by id does not exist"""

    def __init__(self, story_id: str):
        self.story_id = story_id
        super().__init__(f"Story {story_id} not found")

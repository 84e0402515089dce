from storyweave.services.news_api import FetchResult, NewsAPIClient
from storyweave.services.ollama import OllamaService
from storyweave.services.oracle import AnalysisOracle
from storyweave.services.storage import StoryStore

__all__ = [
    "FetchResult",
    "NewsAPIClient",
    "OllamaService",
    "AnalysisOracle",
    "StoryStore",
]

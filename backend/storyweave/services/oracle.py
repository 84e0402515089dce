import time
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from storyweave.schemas import SimilarityAnalysis, Story
from storyweave.services.ollama import OllamaService
from storyweave.services.prompts import (
    SYSTEM_PROMPT,
    build_analysis_prompt,
    build_similarity_prompt,
    build_update_prompt,
)

CALL_COUNT_WINDOW_SECONDS = 3600

_NEGATIVE_MARKERS = ('not similar', 'not the same', 'different event', 'different topic', 'unrelated')


def parse_similarity_text(text: str) -> SimilarityAnalysis:
    """
    Heuristic reading of a similarity verdict that came back as prose

    Looks for "similar" / "same topic" and a stated confidence level.
    """
    lowered = (text or '').lower()
    negative = any(marker in lowered for marker in _NEGATIVE_MARKERS)
    is_similar = not negative and ('similar' in lowered or 'same topic' in lowered)

    if 'high confidence' in lowered:
        confidence = 0.8
    elif 'medium confidence' in lowered:
        confidence = 0.6
    else:
        confidence = 0.4

    return SimilarityAnalysis(
        is_similar=is_similar,
        confidence_score=confidence,
        reasonings=[text.strip()] if text and text.strip() else [],
        method='oracle',
    )


def parse_similarity_json(data: Dict[str, Any]) -> SimilarityAnalysis:
    is_similar = data.get('isSimilar', data.get('is_similar', False))
    if isinstance(is_similar, str):
        is_similar = is_similar.strip().lower() in ('true', 'yes')

    confidence = data.get('confidenceScore', data.get('confidence_score', 0.0))
    try:
        confidence = min(max(float(confidence), 0.0), 1.0)
    except (TypeError, ValueError):
        confidence = 0.0

    reasonings = data.get('reasonings', data.get('reasoning', []))
    if isinstance(reasonings, str):
        reasonings = [reasonings]
    elif not isinstance(reasonings, list):
        reasonings = []

    return SimilarityAnalysis(
        is_similar=bool(is_similar),
        confidence_score=confidence,
        reasonings=[str(r) for r in reasonings],
        method='oracle',
    )


class AnalysisOracle:
    """
    LLM-backed judgments about stories

    Every call returns None when the model is unreachable or answers with
    something unusable; nothing is raised to the caller.
    """

    def __init__(
        self,
        ollama: OllamaService,
        analysis_model: str,
        similarity_model: str,
        clock: Callable[[], float] = time.time,
    ):
        self.ollama = ollama
        self.analysis_model = analysis_model
        self.similarity_model = similarity_model
        self._clock = clock
        self.call_count = 0
        self._window_started = clock()

    def _track_call(self):
        self.call_count += 1
        now = self._clock()
        if now - self._window_started > CALL_COUNT_WINDOW_SECONDS:
            logger.info(f"Oracle calls in the last hour: {self.call_count}")
            self.call_count = 0
            self._window_started = now

    async def _generate(self, prompt: str, model: str) -> Optional[Any]:
        self._track_call()
        result = await self.ollama.generate(
            prompt=prompt,
            model=model,
            system_prompt=SYSTEM_PROMPT,
            temperature=0.3,
            format="json",
        )
        if not result:
            return None
        return result.get('response')

    async def similarity(self, first: Story, second: Story, entities: List[str]) -> Optional[SimilarityAnalysis]:
        try:
            response = await self._generate(
                build_similarity_prompt(first, second, entities),
                self.similarity_model,
            )
        except Exception as e:
            logger.error(f"Similarity request failed: {e}")
            return None

        if isinstance(response, dict):
            return parse_similarity_json(response)
        if isinstance(response, str) and response.strip():
            logger.warning("Similarity response was not JSON, parsing heuristically")
            return parse_similarity_text(response)

        logger.warning(f"Unusable similarity response for {first.id} / {second.id}")
        return None

    async def analyze(self, stories: List[Story], complexity: str = 'standard') -> Optional[Dict[str, Any]]:
        """
        Full analysis of a story group

        Returns:
            Raw analysis JSON (see normalize_analysis) or None
        """
        try:
            response = await self._generate(build_analysis_prompt(stories, complexity), self.analysis_model)
        except Exception as e:
            logger.error(f"Analysis request failed: {e}")
            return None

        if not isinstance(response, dict):
            logger.warning(f"Analysis response was not a JSON object ({type(response).__name__})")
            return None
        return response

    async def update_analysis(self, story: Story, new_story: Story) -> Optional[Dict[str, Any]]:
        """Partial analysis describing what `new_story` adds to `story`"""
        try:
            response = await self._generate(build_update_prompt(story, new_story), self.analysis_model)
        except Exception as e:
            logger.error(f"Analysis update request failed for {story.id}: {e}")
            return None

        if not isinstance(response, dict):
            logger.warning(f"Analysis update for {story.id} was not a JSON object")
            return None
        return response

"""
Prompt builders for the analysis oracle.

Story content is truncated before it goes into a prompt; the limits
depend on the analysis complexity.
"""
import json
from typing import List

from storyweave.schemas import Story

SYSTEM_PROMPT = (
    "You are a careful news analyst. You compare and summarize coverage of news "
    "events from several outlets. Respond only with valid JSON."
)

CONTENT_LIMITS = {
    'minimal': 0,
    'standard': 1500,
    'comprehensive': 4000,
}


def _story_block(story: Story, complexity: str) -> str:
    lines = [
        f"Title: {story.title}",
        f"Summary: {story.summary}",
        f"Sources: {', '.join(source.name for source in story.sources) or 'Unknown'}",
    ]
    limit = CONTENT_LIMITS.get(complexity, CONTENT_LIMITS['standard'])
    if limit and story.content:
        lines.append(f"Content: {story.content[:limit]}")
    if complexity == 'comprehensive':
        for source in story.sources:
            if source.quote:
                lines.append(f"Quote ({source.name}): {source.quote}")
    return "\n".join(lines)


def build_similarity_prompt(first: Story, second: Story, entities: List[str]) -> str:
    return f"""Determine if these two news stories are about the same event or topic.
Consider: core subject, key entities, timeframe, and causal relationships.

Story A:
Title: {first.title}
Summary: {first.summary}

Story B:
Title: {second.title}
Summary: {second.summary}

Entities mentioned: {', '.join(entities[:20]) or 'none detected'}

Respond ONLY with valid JSON in this exact format:
{{
  "isSimilar": true,
  "confidenceScore": 0.0,
  "reasonings": ["..."]
}}"""


def build_analysis_prompt(stories: List[Story], complexity: str) -> str:
    blocks = "\n\n".join(
        f"Article {index}:\n{_story_block(story, complexity)}"
        for index, story in enumerate(stories, start=1)
    )

    if complexity == 'minimal':
        focus = """Provide a focused analysis. Be concise but informative.
Extract the main story in 1-2 sentences, 3-5 key points in order of importance,
major perspectives if several exist, a timeline of main events and 1-2 notable quotes."""
    else:
        focus = """Analyze these news articles comprehensively. Be concise but thorough.
Focus on the core narrative and context, key developments with significance levels,
the different perspectives and their evidence, short and long term implications,
notable quotes with context, an accurate chronology and related broader topics."""

    return f"""{focus}

{blocks}

Respond ONLY with valid JSON in this format (omit empty sections):
{{
  "summary": "...",
  "backgroundContext": "...",
  "keyPoints": [{{"point": "...", "importance": "high|medium|low", "context": "..."}}],
  "mainPerspectives": ["..."],
  "controversialPoints": ["..."],
  "perspectives": [{{"sourceName": "...", "stance": "...", "summary": "...", "keyArguments": ["..."], "bias": "...", "evidence": ["..."]}}],
  "implications": {{"shortTerm": ["..."], "longTerm": ["..."]}},
  "notableQuotes": [{{"text": "...", "source": "...", "context": "..."}}],
  "timeline": [{{"timestamp": "YYYY-MM-DDTHH:MM:SSZ", "event": "...", "significance": "...", "sources": ["..."]}}],
  "relatedTopics": ["..."]
}}"""


def build_update_prompt(story: Story, new_story: Story) -> str:
    current = {
        'summary': story.analysis.summary,
        'keyPoints': [kp.point for kp in story.analysis.key_points[:10]],
        'mainPerspectives': story.analysis.main_perspectives[:5],
        'latestTimelineEvent': story.analysis.timeline[0].event if story.analysis.timeline else None,
    }

    return f"""Update an existing story analysis with new information.
Focus only on what changed or is new; don't repeat the existing analysis.

Existing analysis:
{json.dumps(current, indent=2)}

New article:
{_story_block(new_story, 'standard')}

Consider new developments for the timeline, new perspectives, notable new quotes,
updates to the summary and new key points or evidence.

Respond ONLY with valid JSON containing just the fields that need updating, using
the keys summary, backgroundContext, keyPoints, mainPerspectives, controversialPoints,
perspectives, implications, notableQuotes, timeline and relatedTopics."""

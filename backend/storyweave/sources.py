"""
Outlets known to the article source, with their political bias on a
-1 (left) to 1 (right) scale. Enabled outlets are requested by the
top-headlines fetch.
"""
from typing import Dict, List, NamedTuple


class NewsOutlet(NamedTuple):
    id: str
    name: str
    category: str
    bias: float
    reliability: float
    enabled: bool = True


NEWS_OUTLETS: List[NewsOutlet] = [
    # International
    NewsOutlet('bbc-news', 'BBC News', 'International', 0.0, 0.9),
    NewsOutlet('reuters', 'Reuters', 'International', 0.0, 0.95),
    NewsOutlet('the-associated-press', 'Associated Press', 'International', 0.0, 0.95),
    NewsOutlet('al-jazeera-english', 'Al Jazeera', 'International', -0.1, 0.85),
    # US
    NewsOutlet('cnn', 'CNN', 'US', -0.2, 0.8),
    NewsOutlet('the-new-york-times', 'New York Times', 'US', -0.2, 0.9),
    NewsOutlet('the-washington-post', 'Washington Post', 'US', -0.1, 0.85),
    NewsOutlet('fox-news', 'Fox News', 'US', 0.3, 0.7),
    NewsOutlet('the-wall-street-journal', 'Wall Street Journal', 'US', 0.1, 0.9),
    NewsOutlet('usa-today', 'USA Today', 'US', 0.0, 0.85),
    # Politics
    NewsOutlet('politico', 'Politico', 'Politics', 0.0, 0.85),
    NewsOutlet('the-hill', 'The Hill', 'Politics', 0.0, 0.85),
    # Business
    NewsOutlet('bloomberg', 'Bloomberg', 'Business', 0.0, 0.9),
    NewsOutlet('financial-times', 'Financial Times', 'Business', 0.0, 0.9),
    # Technology
    NewsOutlet('the-verge', 'The Verge', 'Technology', 0.0, 0.85),
    NewsOutlet('wired', 'Wired', 'Technology', -0.1, 0.85),
    NewsOutlet('techcrunch', 'TechCrunch', 'Technology', 0.0, 0.85),
    # Sports
    NewsOutlet('espn', 'ESPN', 'Sports', 0.0, 0.85, enabled=False),
]

_BY_ID: Dict[str, NewsOutlet] = {outlet.id: outlet for outlet in NEWS_OUTLETS}


def get_enabled_outlet_ids() -> List[str]:
    return [outlet.id for outlet in NEWS_OUTLETS if outlet.enabled]


def get_outlet_bias(outlet_id) -> float:
    outlet = _BY_ID.get(outlet_id or '')
    return outlet.bias if outlet else 0.0


def get_outlet_category(outlet_id) -> str:
    outlet = _BY_ID.get(outlet_id or '')
    return outlet.category if outlet else ''

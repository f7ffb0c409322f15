"""
Default Source Catalogue
========================

Feeds seeded into an empty source registry on first start.
"""

from typing import Dict, List

DEFAULT_SOURCES: List[Dict[str, str]] = [
    {
        "id": "techcrunch",
        "name": "TechCrunch",
        "url": "https://techcrunch.com",
        "feed_url": "https://techcrunch.com/feed/",
        "language": "en",
    },
    {
        "id": "hacker-news",
        "name": "Hacker News",
        "url": "https://news.ycombinator.com",
        "feed_url": "https://hnrss.org/frontpage",
        "language": "en",
    },
    {
        "id": "mit-technology-review",
        "name": "MIT Technology Review",
        "url": "https://www.technologyreview.com",
        "feed_url": "https://www.technologyreview.com/feed/",
        "language": "en",
    },
    {
        "id": "venturebeat",
        "name": "VentureBeat",
        "url": "https://venturebeat.com",
        "feed_url": "https://venturebeat.com/feed/",
        "language": "en",
    },
    {
        "id": "coindesk",
        "name": "CoinDesk",
        "url": "https://www.coindesk.com",
        "feed_url": "https://www.coindesk.com/arc/outboundfeeds/rss/",
        "language": "en",
    },
    {
        "id": "bbc-technology",
        "name": "BBC Technology",
        "url": "https://www.bbc.com/news/technology",
        "feed_url": "https://feeds.bbci.co.uk/news/technology/rss.xml",
        "language": "en",
    },
    {
        "id": "reuters-technology",
        "name": "Reuters Technology",
        "url": "https://www.reuters.com/technology",
        "feed_url": "https://www.reuters.com/technology/feed/",
        "language": "en",
    },
    {
        "id": "habr",
        "name": "Habr",
        "url": "https://habr.com",
        "feed_url": "https://habr.com/ru/rss/hub/artificial_intelligence/",
        "language": "ru",
    },
    {
        "id": "rbc-tech",
        "name": "RBC Tech",
        "url": "https://www.rbc.ru/technology_and_media",
        "feed_url": "https://rssexport.rbc.ru/rbcnews/news/30/full.rss",
        "language": "ru",
    },
]

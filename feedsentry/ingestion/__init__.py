"""
FeedSentry Ingestion Module
===========================

Feed retrieval and parsing components.

This module handles:
- HTTP fetching with timeout and bounded retry
- RSS/Atom parsing into candidate items
- Text normalization of feed fields
"""

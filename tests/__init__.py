"""
Shelfmark Test Suite

Tests are organized into:
- unit/: Predicate builder, field translation, credentials, repositories, import
- integration/: HTTP API against an in-memory database
"""

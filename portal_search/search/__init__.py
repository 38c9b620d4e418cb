"""
Hybrid search engine for portal content.

This module provides search functionality combining:
1. Keyword search with prefix matching
2. Fuzzy trigram matching for typo tolerance
3. Semantic similarity using query embeddings
4. Grouping of ranked rows by content type
"""

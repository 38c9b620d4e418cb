"""
Hybrid search engine for the municipal portal.

Fuses keyword/prefix, fuzzy/trigram and semantic/embedding relevance signals
computed by the index store into one grouped result set.
"""

__version__ = "1.0.0"

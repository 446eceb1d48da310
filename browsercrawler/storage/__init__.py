"""
Storage layer: URL fingerprints and frontier state persistence.

State stores live in ``browsercrawler.storage.state_store``.
"""

from .dedup_index import DeduplicationIndex, compute_key, normalize_url

__all__ = ['DeduplicationIndex', 'compute_key', 'normalize_url']

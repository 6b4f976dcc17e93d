"""Utility functions for Registry API v2 puller."""

from .digest import calculate_digest, compute_chain_id, split_digest, validate_digest

__all__ = ["calculate_digest", "compute_chain_id", "split_digest", "validate_digest"]

"""Sync — applying canonical content to a downstream repository.

This package provides the primitives for:
- Sync: writing the global document, skills, rules and agents per target
- Lockfile: the record of what the last sync wrote
- Orphans: safely removing artifacts the source no longer has
- Drift detection: finding managed content that was edited by hand
"""

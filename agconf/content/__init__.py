"""Content layer — the text formats the engine reads and writes.

- Frontmatter codec for skill, rule and agent files
- Content hashing and managed metadata for drift detection
- Marker blocks and merging for the global instructions document
"""

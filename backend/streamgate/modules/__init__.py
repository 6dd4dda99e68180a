"""Application modules.

This package contains the feature modules of the streaming packager:
- packaging: Stream inspection, rendition ladder planning, DASH packaging
- catalog: Durable catalog of playable assets
- signing: URI signing token issuance and verification
"""

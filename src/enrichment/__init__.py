"""Change-log enrichment for the activity feed.

This package turns raw audit rows into client-ready feed entries:
- Context resolution from side-loaded lookups
- Discriminated entry construction with mapping checks
- Feed ordering, paging and error collection
- A command-line replay tool
"""

__version__ = "0.1.0"

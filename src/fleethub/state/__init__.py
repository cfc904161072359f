"""State layer.

This package is the single source of truth for how inbound inventory
snapshots become the local view state: the synchronizer's lifecycle phase,
the current vehicle set and the open detail selection.
"""

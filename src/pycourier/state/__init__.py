"""Order state layer.

This package is the single source of truth for how REST snapshots,
realtime push signals and local driver actions are merged into the
order view presented to subscribers.
"""

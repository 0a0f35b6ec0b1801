"""
Command line entrypoints, one per task, plus the `luantictl` dispatcher.
"""

"""Contributor journey computation.

This package replays contributor event histories against the ladder
registry and folds them into persisted profile summaries.
"""

"""Resumable batch jobs.

This package drives checkpointed jobs one bounded tick at a time and
delivers completion signals to downstream subscribers.
"""

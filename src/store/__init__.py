"""Persistence layer.

This package stores events, profiles, settings and batch job state in
one SQLite database and exposes the SDK client built on top of them.
"""

"""Contributor event ingestion.

This package parses CSV event exports, validates and deduplicates
events, and runs staged files through the resumable import job.
"""

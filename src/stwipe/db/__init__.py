"""Persistence for playlists, videos, study shorts and study progress."""

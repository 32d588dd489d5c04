"""Classroom move voting over a shared chess position."""

"""Batch operations for Todoist projects and filters."""

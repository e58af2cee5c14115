"""Taskboard: per-user tasks with threaded comments."""

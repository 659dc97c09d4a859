"""Taskiq broker, tasks and dedup helpers."""

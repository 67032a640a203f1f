"""Temporal integration: workflows, activities, schedules and the worker."""

"""Pydantic domain models for the video catalog."""

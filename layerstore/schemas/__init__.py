"""Pydantic schemas for ingestion inputs."""

"""Pydantic schemas for the API."""

from hkidash.schemas import dashboard, master, record, user

__all__ = ["dashboard", "master", "record", "user"]

"""Scheduling presentation layer - calendar payload composition."""

from .surface import CalendarSurfaceComposer

__all__ = ["CalendarSurfaceComposer"]

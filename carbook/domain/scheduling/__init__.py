"""Scheduling domain - Time slot capacity, generation and reservation"""

from .allocator import SlotAllocator
from .generator import SlotGenerator
from .router import router

__all__ = ["SlotAllocator", "SlotGenerator", "router"]

"""
Test fixtures for the campaign launch workflow.

This module provides reusable test data for testing.
"""

from .factories import *

__all__ = [
    "CampaignFactory",
    "CreativeFactory",
    "OwnerProfileFactory",
    "LaunchRequestFactory",
]

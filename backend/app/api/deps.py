"""
Provider dependencies for the route handlers.

Each provider is a process-wide singleton created on first use, so its
``httpx.AsyncClient`` connection pool is shared across requests. Tests
swap them through ``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from backend.app.chat.assistant import ChatAssistant
from backend.app.ingestion.openweather import OpenWeatherClient
from backend.app.ingestion.usgs_feed import UsgsFeedClient
from backend.app.responders.locator import ResponderLocator
from backend.app.responders.overpass import OverpassClient


@lru_cache()
def get_weather_provider() -> OpenWeatherClient:
    return OpenWeatherClient()


@lru_cache()
def get_seismic_feed() -> UsgsFeedClient:
    return UsgsFeedClient()


@lru_cache()
def get_overpass_client() -> OverpassClient:
    return OverpassClient()


def get_locator() -> ResponderLocator:
    return ResponderLocator(get_overpass_client())


@lru_cache()
def get_chat_assistant() -> ChatAssistant:
    return ChatAssistant()


async def close_providers() -> None:
    """Close every provider that was created."""
    for factory in (get_weather_provider, get_seismic_feed, get_overpass_client, get_chat_assistant):
        if factory.cache_info().currsize:
            await factory().close()
        factory.cache_clear()

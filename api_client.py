"""
Clinic API Client Manager.
Provides a shared httpx.AsyncClient configured from settings.
"""

import logging
from typing import Optional

import httpx

from config import settings

logger = logging.getLogger(__name__)


class ClinicApiClientManager:
    """
    Singleton manager for the clinic API AsyncClient.
    One connection pool is shared by the appointment repository and
    the facility directory.
    """

    _instance = None
    _client: Optional[httpx.AsyncClient] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def is_configured(self) -> bool:
        return bool(settings.clinic_api_url)

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create the AsyncClient."""
        if self._client is None:
            base_url = settings.clinic_api_url.rstrip("/")
            logger.info(f"Initializing clinic API client: {base_url}")

            headers = {
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
            if settings.clinic_api_token:
                headers["Authorization"] = f"Bearer {settings.clinic_api_token}"

            self._client = httpx.AsyncClient(
                base_url=base_url,
                headers=headers,
                timeout=settings.clinic_api_timeout,
            )

        return self._client

    async def close(self):
        """Close the client connection."""
        if self._client:
            await self._client.aclose()
            self._client = None


# Global client manager instance
client_manager = ClinicApiClientManager()

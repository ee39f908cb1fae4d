"""Public HTTP tunnels forwarding to the local result collector."""

import asyncio
import logging
from abc import ABC, abstractmethod

from pyngrok import conf, ngrok
from pyngrok.exception import PyngrokError

from rn_tape.errors import NetworkError

log = logging.getLogger(__name__)


class Tunnel(ABC):
    """A public endpoint forwarding to a local port."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether the tunnel is currently open."""

    @abstractmethod
    async def connect(self, port: int) -> str:
        """Open the tunnel to ``port`` and return its public URL.

        Raises:
            NetworkError: If the tunnel cannot be opened

        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the tunnel and release everything backing it."""


class NgrokTunnel(Tunnel):
    """Tunnel backed by an ngrok agent managed through pyngrok."""

    def __init__(self, *, host: str = "127.0.0.1", region: str | None = None) -> None:
        self.host = host
        self.pyngrok_config = conf.PyngrokConfig(region=region)
        self._public_url: str | None = None

    @property
    def connected(self) -> bool:
        return self._public_url is not None

    @property
    def public_url(self) -> str | None:
        return self._public_url

    async def connect(self, port: int) -> str:
        addr = f"{self.host}:{port}"
        try:
            tunnel = await asyncio.to_thread(
                ngrok.connect,
                addr,
                "http",
                pyngrok_config=self.pyngrok_config,
            )
        except PyngrokError as exc:
            raise NetworkError(
                f"Could not open ngrok tunnel to {addr}: {exc}",
                data=getattr(exc, "ngrok_error", None),
            ) from exc

        if not tunnel.public_url:
            raise NetworkError(f"ngrok returned no public URL for {addr}")

        self._public_url = tunnel.public_url
        return tunnel.public_url

    async def disconnect(self) -> None:
        public_url, self._public_url = self._public_url, None
        try:
            if public_url is not None:
                await asyncio.to_thread(
                    ngrok.disconnect, public_url, pyngrok_config=self.pyngrok_config
                )
        finally:
            # The agent process is started even when connecting fails
            await asyncio.to_thread(ngrok.kill, pyngrok_config=self.pyngrok_config)

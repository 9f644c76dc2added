"""Utxo source backed by the dcrdata block explorer API."""
import asyncio
import logging
from typing import Dict, List, Optional

import aiohttp

from models.transactions import OutPoint, UtxoEntry, UtxoMap, amount_from_coins
from services.interfaces import IndexerUtxoSource
from utils.exceptions import IndexerError

logger = logging.getLogger(__name__)

class DcrdataUtxoSource(IndexerUtxoSource):
    """Resolves split transaction inputs through a dcrdata instance."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_config(cls, config) -> 'DcrdataUtxoSource':
        """Create a source from the buyer configuration."""
        return cls(config.dcrdata_url)

    async def initialize(self):
        """Initialize HTTP session."""
        if not self._session:
            self._session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self):
        """Cleanup resources."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _get_json(self, path: str) -> Dict:
        if not self._session:
            await self.initialize()

        url = f"{self.base_url}{path}"
        try:
            async with self._session.get(url) as response:
                if response.status != 200:
                    body = await response.text()
                    raise IndexerError(
                        f"Request to {url} failed: {body.strip()}",
                        status_code=response.status
                    )
                return await response.json()
        except aiohttp.ClientError as e:
            raise IndexerError(f"Request to {url} failed: {e}") from e

    async def check_online(self, chain_network: str) -> None:
        """Ensure the explorer is synced and serving the expected network.

        Raises:
            IndexerError: If the explorer is unreachable, not ready or on another network
        """
        status = await self._get_json("/api/status")
        if not status.get('ready'):
            raise IndexerError(f"dcrdata at {self.base_url} is not ready")

        network = status.get('network_name')
        if network and network != chain_network:
            raise IndexerError(
                f"dcrdata at {self.base_url} is on network {network}, expected {chain_network}"
            )
        logger.info(f"dcrdata online at {self.base_url} (height {status.get('db_height')})")

    async def fetch_split_utxos(self, outpoints: List[OutPoint]) -> UtxoMap:
        """Fetch the funding output of each outpoint.

        Raises:
            IndexerError: If a referenced transaction or output cannot be found
        """
        by_tx: Dict[str, List[OutPoint]] = {}
        for outpoint in outpoints:
            by_tx.setdefault(outpoint.tx_hash, []).append(outpoint)

        txs = await asyncio.gather(*(self._get_json(f"/api/tx/{h}") for h in by_tx))

        utxos: UtxoMap = {}
        for tx_hash, tx in zip(by_tx, txs):
            vouts = {out['n']: out for out in tx.get('vout', [])}
            for outpoint in by_tx[tx_hash]:
                out = vouts.get(outpoint.index)
                if out is None:
                    raise IndexerError(f"Output {outpoint} not found in dcrdata")
                utxos[outpoint] = UtxoEntry(
                    value=amount_from_coins(out['value']),
                    pk_script=bytes.fromhex(out.get('scriptPubKey', {}).get('hex', '')),
                    version=out.get('version', 0)
                )
        return utxos


"""
Token metadata lookups used by --bootstrap.

For each pool: token0()/token1() on the pair, then symbol()/decimals() on both
tokens, all through AsyncWeb3 contract calls. Lookups for different pools run
concurrently.

Usage:
    async with TokenMetadataFetcher.from_config([250, 43114]) as fetcher:
        table = await fetcher.fetch_all({250: ["0x..."]})
"""

from __future__ import annotations

import asyncio
from typing import Iterable

from web3 import AsyncWeb3, Web3
from web3.providers import AsyncHTTPProvider

from config.loader import get_config
from core.pair_state import PairTable
from monitor_logging.logger_manager import setup_module_logger
from shared.constants import DEFAULT_TOKEN_DECIMALS, UNKNOWN_SYMBOL
from shared.errors import TokenMetadataError
from shared.types import Pair


class TokenMetadataFetcher:
    """Reads pool token metadata over HTTP RPC, one AsyncWeb3 per chain."""

    def __init__(self, w3_by_chain: dict[int, AsyncWeb3]) -> None:
        self._w3_by_chain = w3_by_chain
        cfg = get_config()
        self._pair_abi = cfg.get_abi("uniswap_v2_pair")
        self._erc20_abi = cfg.get_abi("erc20")
        self._logger = setup_module_logger(
            "token_metadata", "token_metadata.log", module_folder="Bootstrap_Logs"
        )

    @classmethod
    def from_config(cls, chain_ids: Iterable[int]) -> TokenMetadataFetcher:
        cfg = get_config()
        return cls(
            {cid: AsyncWeb3(AsyncHTTPProvider(cfg.get_http_url(cid))) for cid in chain_ids}
        )

    async def __aenter__(self) -> TokenMetadataFetcher:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session behind every chain's provider."""
        for chain_id, w3 in self._w3_by_chain.items():
            await w3.provider.disconnect()
            self._logger.debug("Closed RPC session for chain %s", chain_id)

    # ------------------------------------------------------------------
    # Single pool
    # ------------------------------------------------------------------

    async def fetch_pair(self, address: str, chain_id: int) -> Pair:
        w3 = self._w3_by_chain.get(chain_id)
        if w3 is None:
            raise TokenMetadataError(f"No RPC endpoint configured for chain {chain_id}")

        try:
            pool = w3.eth.contract(address=Web3.to_checksum_address(address), abi=self._pair_abi)
            token0, token1 = await asyncio.gather(
                pool.functions.token0().call(),
                pool.functions.token1().call(),
            )
        except Exception as e:
            self._logger.error("token0/token1 lookup failed for %s: %s", address, e)
            raise TokenMetadataError(f"token0/token1 lookup failed for {address}: {e}") from e

        symbol_a, symbol_b, decimals_a, decimals_b = await asyncio.gather(
            self._symbol(w3, token0),
            self._symbol(w3, token1),
            self._decimals(w3, token0),
            self._decimals(w3, token1),
        )
        self._logger.info(
            "Pool %s on chain %s: %s(%d)/%s(%d)",
            address,
            chain_id,
            symbol_a,
            decimals_a,
            symbol_b,
            decimals_b,
        )
        return Pair(
            symbol_a=symbol_a,
            symbol_b=symbol_b,
            decimals_a=decimals_a,
            decimals_b=decimals_b,
            chain_id=chain_id,
            orientation_normal=True,
        )

    async def _symbol(self, w3: AsyncWeb3, token: str) -> str:
        try:
            contract = w3.eth.contract(address=Web3.to_checksum_address(token), abi=self._erc20_abi)
            return str(await contract.functions.symbol().call())
        except Exception as e:
            self._logger.warning("symbol() failed for %s: %s", token, e)
            return UNKNOWN_SYMBOL

    async def _decimals(self, w3: AsyncWeb3, token: str) -> int:
        try:
            contract = w3.eth.contract(address=Web3.to_checksum_address(token), abi=self._erc20_abi)
            return int(await contract.functions.decimals().call())
        except Exception as e:
            self._logger.warning("decimals() failed for %s: %s", token, e)
            return DEFAULT_TOKEN_DECIMALS

    # ------------------------------------------------------------------
    # Whole bootstrap list
    # ------------------------------------------------------------------

    async def fetch_all(self, bootstrap: dict[int, list[str]]) -> PairTable:
        """Fetch every pool; pools whose token lookup fails are left out."""
        jobs = [
            (address, chain_id)
            for chain_id, addresses in bootstrap.items()
            for address in addresses
        ]
        results = await asyncio.gather(
            *(self.fetch_pair(address, chain_id) for address, chain_id in jobs),
            return_exceptions=True,
        )

        table = PairTable()
        for (address, chain_id), result in zip(jobs, results):
            if isinstance(result, TokenMetadataError):
                continue
            if isinstance(result, BaseException):
                raise result
            table.set(address, result)

        self._logger.info("Fetched %d/%d pools", len(table), len(jobs))
        return table

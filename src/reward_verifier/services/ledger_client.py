"""
Reward Root Verifier - Ledger Client

Reads the roots a reward contract currently commits to through web3.

The endpoint is either given explicitly or picked from a network name,
with LEDGER_RPC_URL taking precedence over the name.
"""

import asyncio

import structlog
from aiohttp import ClientError, ClientTimeout
from eth_utils import to_checksum_address
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import BadFunctionCallOutput, Web3Exception

from reward_verifier.core.config import settings
from reward_verifier.core.validation import normalize_address

logger = structlog.get_logger(__name__)

PENDING_REWARDS_ROOT = "pendingRewardsRoot"
REWARDS_ROOT = "rewardsRoot"
ROOT_PROPERTY_NAMES = (PENDING_REWARDS_ROOT, REWARDS_ROOT)

# Only the root views of the reward contract
REWARD_ABI = [
    {
        "type": "function",
        "name": name,
        "inputs": [],
        "outputs": [{"name": "", "type": "bytes32"}],
        "stateMutability": "view",
    }
    for name in ROOT_PROPERTY_NAMES
]


class LedgerClientError(Exception):
    """Base exception for ledger client errors."""

    pass


class ContractNotFoundError(LedgerClientError):
    """No contract code answers at the address on this network."""

    pass


class UnknownNetworkError(LedgerClientError):
    """No endpoint is configured for the network name."""

    pass


def resolve_rpc_url(network: str | None = None, rpc_url: str | None = None) -> str:
    """
    Pick the JSON-RPC endpoint to read roots from.

    Args:
        network: Network name looked up in NETWORK_RPC_URLS
            (default: LEDGER_NETWORK)
        rpc_url: Explicit endpoint, used as-is when given

    Returns:
        Endpoint URL

    Raises:
        UnknownNetworkError: If the network name has no configured endpoint
    """
    if rpc_url:
        return rpc_url
    if settings.LEDGER_RPC_URL:
        return settings.LEDGER_RPC_URL

    name = (network or settings.LEDGER_NETWORK).lower()
    try:
        return settings.NETWORK_RPC_URLS[name]
    except KeyError:
        known = ", ".join(sorted(settings.NETWORK_RPC_URLS))
        raise UnknownNetworkError(f"Unknown network {name!r}, expected one of: {known}") from None


class LedgerClient:
    """
    Reads reward contract roots over web3.

    Can be used as an async context manager; an injected AsyncWeb3 is
    used as-is and never disconnected by the ledger client.
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        timeout: float = settings.HTTP_TIMEOUT_SECONDS,
        web3: AsyncWeb3 | None = None,
    ) -> None:
        """
        Initialize ledger client.

        Args:
            rpc_url: Ethereum JSON-RPC endpoint (default: resolve_rpc_url())
            timeout: Per-request timeout in seconds
            web3: Optional preconfigured AsyncWeb3 instance
        """
        self._rpc_url = rpc_url or resolve_rpc_url()
        self._timeout = timeout
        self._web3 = web3
        self._owns_web3 = web3 is None

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def __aenter__(self) -> "LedgerClient":
        self._get_web3()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._web3 is not None and self._owns_web3:
            await self._web3.provider.disconnect()
            self._web3 = None

    async def get_root(self, contract_address: str, property_name: str) -> str:
        """
        Read a bytes32 root view from the reward contract.

        Args:
            contract_address: Reward contract address
            property_name: One of ROOT_PROPERTY_NAMES

        Returns:
            Lower-case 0x-prefixed root

        Raises:
            ContractNotFoundError: If the call returns no data
            LedgerClientError: On transport or RPC failure
            ValueError: If the address or view name is not valid
        """
        if property_name not in ROOT_PROPERTY_NAMES:
            raise ValueError(f"Unknown root view {property_name!r}")

        address = to_checksum_address(normalize_address(contract_address))
        contract = self._get_web3().eth.contract(address=address, abi=REWARD_ABI)

        try:
            root = await getattr(contract.functions, property_name)().call()
        except BadFunctionCallOutput as e:
            raise ContractNotFoundError(
                f"Contract at {address} does not exist on the network behind {self._rpc_url}"
            ) from e
        except (Web3Exception, ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(
                "Ledger call failed",
                contract=address,
                property=property_name,
                error=str(e),
            )
            raise LedgerClientError(f"{property_name} call failed: {e}") from e

        root_hex = "0x" + bytes(root).hex()
        logger.info("Read root from ledger", contract=address, property=property_name, root=root_hex)
        return root_hex

    async def get_roots(self, contract_address: str) -> dict[str, str]:
        """Read every root the reward contract exposes, keyed by view name."""
        return {
            name: await self.get_root(contract_address, name)
            for name in ROOT_PROPERTY_NAMES
        }

    def _get_web3(self) -> AsyncWeb3:
        if self._web3 is None:
            provider = AsyncHTTPProvider(
                self._rpc_url,
                request_kwargs={"timeout": ClientTimeout(total=self._timeout)},
            )
            self._web3 = AsyncWeb3(provider)
            self._owns_web3 = True
        return self._web3

"""
Reward Root Verifier - Leaf and Proof Sources

Retrieves the raw leaf set and per-account proof records published for a
root. The verifier depends only on the LeafSource and ProofSource
protocols; HostedProofStore implements both over HTTP.

Hosted layout:
    {base_url}{root}/leaves.csv                 one "account,amount" row per leaf
    {base_url}{root}/proofs/{account}.json      {"amount": "...", "proof": ["0x..", ...]}
"""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog

from reward_verifier.core.config import settings
from reward_verifier.core.validation import is_address, is_uint256_string
from reward_verifier.crypto.merkle import Leaf

logger = structlog.get_logger(__name__)


class SourceError(Exception):
    """Base exception for leaf and proof source errors."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class SourceUnavailableError(SourceError):
    """The leaf set for a root could not be retrieved."""

    pass


class LeafParseError(SourceError):
    """The leaf set was retrieved but is not valid leaf data."""

    pass


class ProofUnavailableError(SourceError):
    """The proof record for an account could not be retrieved or read."""

    pass


@dataclass(frozen=True)
class ProofArtifact:
    """
    Proof record published for one account.

    Attributes:
        amount: Amount the record claims, as a decimal string
        proof: Sibling digests ordered from leaf to root
        url: Where the record was read from
    """

    amount: str
    proof: tuple[str, ...]
    url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], url: str = "") -> "ProofArtifact":
        """
        Deserialize from a hosted proof record.

        Raises:
            KeyError: If a field is missing
            ValueError: If the proof is not a list of strings
        """
        amount = data["amount"]
        proof = data["proof"]
        if not isinstance(proof, list) or not all(isinstance(p, str) for p in proof):
            raise ValueError("proof must be a list of hex strings")
        return cls(amount=str(amount), proof=tuple(proof), url=url)


class LeafSource(Protocol):
    """Provides the raw leaf set of a root."""

    async def fetch_leaves(self, root: str) -> list[Leaf]:
        """Raises SourceUnavailableError or LeafParseError."""
        ...


class ProofSource(Protocol):
    """Provides the proof record of one account under a root."""

    async def fetch_proof(self, root: str, account: str) -> ProofArtifact:
        """Raises ProofUnavailableError."""
        ...


def parse_leaves(text: str) -> list[Leaf]:
    """
    Parse newline-delimited "account,amount" rows.

    Blank lines and surrounding whitespace are ignored. There is no header
    row. Order and duplicates are preserved.

    Args:
        text: Raw leaf file contents

    Returns:
        Leaves in file order

    Raises:
        LeafParseError: If a row is not an address and a uint256 amount
    """
    leaves = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        row = line.strip()
        if not row:
            continue

        fields = [field.strip() for field in row.split(",")]
        if len(fields) != 2:
            raise LeafParseError(f"Line {line_number}: expected 'account,amount', got {row!r}")

        account, amount = fields
        if not is_address(account):
            raise LeafParseError(f"Line {line_number}: invalid account {account!r}")
        if not is_uint256_string(amount):
            raise LeafParseError(f"Line {line_number}: invalid amount {amount!r}")

        leaves.append(Leaf(account=account, amount=amount))
    return leaves


class HostedProofStore:
    """
    Leaf and proof source backed by a static file host.

    Can be used as an async context manager; an injected httpx client is
    used as-is and never closed by the store.
    """

    def __init__(
        self,
        base_url: str = settings.PROOFS_BASE_URL,
        leaves_file_name: str = settings.LEAVES_FILE_NAME,
        proofs_dir_name: str = settings.PROOFS_DIR_NAME,
        timeout: float = settings.HTTP_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize proof store.

        Args:
            base_url: Prefix that root directories hang off
            leaves_file_name: Leaf file name inside a root directory
            proofs_dir_name: Proof directory inside a root directory
            timeout: Per-request timeout in seconds
            client: Optional preconfigured httpx client
        """
        self._base_url = base_url.rstrip("/") + "/"
        self._leaves_file_name = leaves_file_name
        self._proofs_dir_name = proofs_dir_name.strip("/") + "/"
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "HostedProofStore":
        self._get_client()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying client if this store created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    def leaves_url(self, root: str) -> str:
        return f"{self._base_url}{root}/{self._leaves_file_name}"

    def proof_url(self, root: str, account: str) -> str:
        return f"{self._base_url}{root}/{self._proofs_dir_name}{account.lower()}.json"

    async def fetch_leaves(self, root: str) -> list[Leaf]:
        """
        Fetch and parse the leaf set of a root.

        Raises:
            SourceUnavailableError: On transport failure or non-success status
            LeafParseError: If the file is not valid leaf data
        """
        url = self.leaves_url(root)
        client = self._get_client()

        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise SourceUnavailableError(
                f"Could not get leaves for root {root} from {url}: {e}",
                url=url,
            ) from e

        if not response.is_success:
            raise SourceUnavailableError(
                f"Could not get leaves for root {root} from {url}: "
                f"{response.status_code}: {response.reason_phrase}",
                url=url,
                status_code=response.status_code,
            )

        try:
            leaves = parse_leaves(response.text)
        except LeafParseError as e:
            raise LeafParseError(
                f"Malformed leaves for root {root} at {url}: {e}",
                url=url,
                status_code=response.status_code,
            ) from e

        logger.info("Fetched leaves", root=root, url=url, leaf_count=len(leaves))
        return leaves

    async def fetch_proof(self, root: str, account: str) -> ProofArtifact:
        """
        Fetch the proof record of an account.

        Raises:
            ProofUnavailableError: On transport failure, non-success status
                or an unreadable record
        """
        url = self.proof_url(root, account)
        client = self._get_client()

        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise ProofUnavailableError(f"Request failed: {e}", url=url) from e

        if not response.is_success:
            raise ProofUnavailableError(
                f"{response.status_code}: {response.reason_phrase}",
                url=url,
                status_code=response.status_code,
            )

        try:
            return ProofArtifact.from_dict(response.json(), url=url)
        except (KeyError, TypeError, ValueError) as e:
            raise ProofUnavailableError(
                f"Malformed proof record: {e}",
                url=url,
                status_code=response.status_code,
            ) from e

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
            self._owns_client = True
        return self._client

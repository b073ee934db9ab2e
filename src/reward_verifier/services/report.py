"""
Reward Root Verifier - Report Rendering

Human-readable summaries of verification outcomes.
"""

from reward_verifier.core.config import settings
from reward_verifier.services.aggregator import (
    VerificationError,
    VerificationResponse,
    VerificationResult,
)


def format_amount(
    amount: int,
    decimals: int = settings.TOKEN_DECIMALS,
    symbol: str = settings.TOKEN_SYMBOL,
) -> str:
    """
    Format an amount in the token's smallest unit as whole tokens.

    Example:
        >>> format_amount(1234500000000000000000, decimals=18, symbol="ANVL")
        '1,234.500000000000000000 ANVL'
    """
    if decimals <= 0:
        return f"{amount:,} {symbol}"
    whole, fraction = divmod(amount, 10**decimals)
    return f"{whole:,}.{fraction:0{decimals}d} {symbol}"


def describe_issues(result: VerificationResult) -> str:
    """List every populated issue bucket of a result, one leaf per line."""
    sections = []

    if not result.root_matches:
        sections.append(
            f"\tThe computed root {result.computed_root} does not match {result.root}"
        )

    if result.not_found:
        lines = [
            f"[{i.account},{i.amount}] at url {i.at_url} ({i.reason})"
            for i in result.not_found
        ]
        sections.append("\tThe following leaves were not found:\n\t\t" + ",\n\t\t".join(lines))

    if result.proof_invalid:
        lines = [f"[{i.account},{i.amount}] at url {i.at_url}" for i in result.proof_invalid]
        sections.append("\tThe following leaves had invalid proofs:\n\t\t" + ",\n\t\t".join(lines))

    if result.amount_mismatch:
        lines = [
            f"[{i.account},{i.amount}] found amount {i.amount_at_url} at url {i.at_url}"
            for i in result.amount_mismatch
        ]
        sections.append(
            "\tThe following leaves had amount mismatches:\n\t\t" + ",\n\t\t".join(lines)
        )

    return "\n".join(sections)


def render_response(response: VerificationResponse, label: str = "root") -> str:
    """Render one verification outcome as a multi-line message."""
    if isinstance(response, VerificationError):
        return f"error verifying {label} {response.root}: {response.msg}"

    if response.valid:
        return (
            f"{label} {response.root} is valid and all proofs exist and are valid.\n"
            f"{label} {response.root} makes a total of {format_amount(response.leaf_sum)} claimable."
        )

    return (
        f"{label} {response.root} is invalid due to the following issues:\n"
        f"{describe_issues(response)}"
    )

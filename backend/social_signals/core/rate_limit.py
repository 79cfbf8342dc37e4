"""
Delays between batches of scraping-provider calls.

Post-detail refreshes run in fixed batches; a short pause between batches keeps
the provider from throttling the account.
"""
import asyncio
import logging

logger = logging.getLogger(__name__)


async def apply_batch_delay(delay: float, operation_name: str = "batch") -> float:
    """
    Sleep between two batches of provider calls.

    Args:
        delay: Delay in seconds
        operation_name: Name of the operation for logging purposes

    Returns:
        The delay applied in seconds

    Raises:
        ValueError: If delay is negative
    """
    if delay < 0:
        raise ValueError(f"Delay must be non-negative (delay={delay})")
    if delay == 0:
        return 0.0

    logger.info(f"[{operation_name}] Waiting {delay:.2f}s before next batch")
    await asyncio.sleep(delay)

    return delay

"""Backoff policy for the request executor."""


def linear_backoff(attempt: int, base_delay: float) -> float:
    """Delay to wait after failed attempt ``attempt`` (0-based).

    Grows linearly: base, 2 * base, 3 * base, ...

    Args:
        attempt: Index of the attempt that just failed
        base_delay: Base delay in seconds

    Returns:
        Delay in seconds
    """
    if attempt < 0:
        raise ValueError(f"attempt must be >= 0, got {attempt}")
    return base_delay * (attempt + 1)

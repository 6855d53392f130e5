"""Query-string helpers shared by the routers."""

from src.pt_common.errors import RequestValidationFailedError


def parse_holder(holder: str | int | None) -> int | None:
    """'all', empty or missing means every account holder; otherwise an integer id."""
    if holder is None:
        return None
    if isinstance(holder, int):
        return holder
    holder = holder.strip()
    if not holder or holder.lower() == "all":
        return None
    try:
        return int(holder)
    except ValueError:
        raise RequestValidationFailedError(f"Invalid account holder: {holder}") from None
